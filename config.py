"""
Application configuration: environment-aware settings.

All environment variables are documented here. Values are read from the
process environment, with a local .env file loaded first when present.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent


def _optional_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


class BaseConfig:
    # Storage slot
    DATA_DIR = os.environ.get("EDUSMART_DATA_DIR", str(BASE_DIR / "session_data"))
    STORAGE_KEY = "edusmart_ai_data"

    # AI provider (seeds the settings of a fresh dataset; users can change it later)
    GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY", "")
    AI_REQUEST_TIMEOUT = _optional_float("AI_REQUEST_TIMEOUT")  # seconds per model attempt

    # Derived views
    DASHBOARD_TOP_N = 5
    SLIDE_TOP_N = 8

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Local host only; single user
    HOST = os.environ.get("HOST", "127.0.0.1")
    PORT = int(os.environ.get("PORT", "5001"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")

    @classmethod
    def validate(cls):
        """Fail fast on unusable configuration."""
        errors: list[str] = []

        if not cls.DATA_DIR:
            errors.append("EDUSMART_DATA_DIR must not be empty.")

        if cls.AI_REQUEST_TIMEOUT is not None and cls.AI_REQUEST_TIMEOUT <= 0:
            errors.append("AI_REQUEST_TIMEOUT must be a positive number of seconds.")

        if not cls.GOOGLE_API_KEY:
            warnings.warn("GOOGLE_API_KEY is not set; AI reports need a key entered in Settings.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    GOOGLE_API_KEY = ""


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
