"""
Test fixtures for EduSmart Tracker.

Provides app, client, store and gradebook fixtures backed by a temporary
storage directory. Gemini is mocked globally to avoid API calls during tests.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

FIXED_TODAY = date(2024, 3, 15)


@pytest.fixture(scope="session", autouse=True)
def mock_gemini():
    """Mock Google Generative AI globally to prevent API calls."""
    mock_genai = MagicMock()
    mock_genai.GenerativeModel.return_value.generate_content.return_value = MagicMock(
        text="## Phân tích\n\n- Tiến bộ đều ở môn **Toán học**\n- Cần cải thiện *Ngữ văn*"
    )
    with patch.dict("sys.modules", {
        "google.generativeai": mock_genai,
    }):
        yield mock_genai


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    from storage import DatasetStore, SlotStorage

    return DatasetStore(SlotStorage(data_dir))


@pytest.fixture
def gradebook(store):
    from gradebook import Gradebook

    return Gradebook(store, today=lambda: FIXED_TODAY)


@pytest.fixture
def app(data_dir):
    """App wired to a throwaway storage directory."""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "DATA_DIR": str(data_dir),
        "GOOGLE_API_KEY": "",
        "LOG_LEVEL": "WARNING",
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def keyed_client(client):
    """Client whose settings already carry an API key."""
    resp = client.patch("/api/settings", json={"geminiApiKey": "test-key"})
    assert resp.status_code == 200
    return client


@pytest.fixture
def make_score():
    """Factory for ScoreEntry values with sensible defaults."""
    from models import ScoreEntry

    def _make(entry_id, student_id, subject_id, score, day="2024-01-10", type="quiz"):
        return ScoreEntry(
            id=entry_id,
            student_id=student_id,
            subject_id=subject_id,
            score=score,
            type=type,
            date=day,
        )

    return _make
