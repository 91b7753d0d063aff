"""
Shared helpers used across blueprints.
"""

from __future__ import annotations

from typing import Any

from flask import current_app, request

from gradebook import Gradebook
from models import SETTINGS_FIELDS, Dataset, ScoreEntry, ValidationError


def current_gradebook() -> Gradebook:
    """The Gradebook owned by the running app (created in create_app)."""
    return current_app.extensions["gradebook"]


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def settings_changes(data: dict[str, Any]) -> dict[str, Any]:
    """Translate camelCase settings keys from the client into Gradebook field names."""
    changes = {}
    for key, value in data.items():
        if key not in SETTINGS_FIELDS:
            raise ValidationError(f"Unknown setting: {key!r}")
        changes[SETTINGS_FIELDS[key]] = value
    return changes


def public_settings(dataset: Dataset) -> dict[str, Any]:
    """Settings without the secret key itself."""
    s = dataset.settings
    return {"theme": s.theme, "selectedModel": s.selected_model, "hasApiKey": s.has_api_key}


def public_snapshot(dataset: Dataset) -> dict[str, Any]:
    data = dataset.to_dict()
    data["settings"] = public_settings(dataset)
    return data


def score_json(entry: ScoreEntry, subject_name: str | None = None) -> dict[str, Any]:
    data = entry.to_dict()
    data["subjectName"] = subject_name
    return data
