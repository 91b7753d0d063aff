"""
Domain model: students, subjects, score entries, settings and the Dataset aggregate.

The Dataset is the unit of persistence. It serializes to the camelCase JSON
layout stored in the single storage slot (see storage.py).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Optional

DATASET_VERSION = 1

SCORE_TYPES = ("quiz", "assignment", "midterm", "final")
THEMES = ("light", "dark")

SCORE_MIN = 0.0
SCORE_MAX = 10.0


class ValidationError(ValueError):
    """User-supplied input violates a domain invariant."""


@dataclass(frozen=True)
class AIModel:
    id: str
    name: str
    description: str
    is_default: bool = False


# Declared order is the fallback order.
AI_MODELS: list[AIModel] = [
    AIModel("gemini-3-flash-preview", "Gemini 3 Flash", "Nhanh, tiết kiệm quota", is_default=True),
    AIModel("gemini-3-pro-preview", "Gemini 3 Pro", "Mạnh mẽ, phân tích sâu"),
    AIModel("gemini-2.5-flash", "Gemini 2.5 Flash", "Ổn định, dự phòng"),
]
MODEL_IDS: tuple[str, ...] = tuple(m.id for m in AI_MODELS)


def new_id() -> str:
    return uuid.uuid4().hex


def _require_object(data: Any, label: str) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"{label} must be an object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class Subject:
    id: str
    name: str
    icon: str
    color: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "icon": self.icon, "color": self.color}

    @staticmethod
    def from_dict(data: dict) -> Subject:
        _require_object(data, "subject")
        return Subject(
            id=str(data["id"]),
            name=str(data["name"]),
            icon=str(data.get("icon", "")),
            color=str(data.get("color", "")),
        )


DEFAULT_SUBJECTS: list[Subject] = [
    Subject("math", "Toán học", "Calculator", "bg-blue-500"),
    Subject("literature", "Ngữ văn", "BookOpen", "bg-orange-500"),
    Subject("english", "Tiếng Anh", "Languages", "bg-purple-500"),
    Subject("physics", "Vật lý", "Zap", "bg-indigo-500"),
    Subject("chemistry", "Hóa học", "FlaskConical", "bg-emerald-500"),
    Subject("biology", "Sinh học", "Dna", "bg-pink-500"),
]


@dataclass(frozen=True)
class Student:
    id: str
    name: str
    grade: str  # class label, e.g. "10A1"
    email: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "grade": self.grade}
        if self.email is not None:
            data["email"] = self.email
        return data

    @staticmethod
    def from_dict(data: dict) -> Student:
        _require_object(data, "student")
        email = data.get("email")
        return Student(
            id=str(data["id"]),
            name=str(data["name"]),
            grade=str(data["grade"]),
            email=str(email) if email is not None else None,
        )


@dataclass(frozen=True)
class ScoreEntry:
    id: str
    student_id: str
    subject_id: str
    score: float
    type: str
    date: str  # YYYY-MM-DD

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "score": self.score,
            "type": self.type,
            "date": self.date,
        }

    @staticmethod
    def from_dict(data: dict) -> ScoreEntry:
        _require_object(data, "score")
        score = data["score"]
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise TypeError(f"score must be a number, got {score!r}")
        return ScoreEntry(
            id=str(data["id"]),
            student_id=str(data["studentId"]),
            subject_id=str(data["subjectId"]),
            score=score,
            type=str(data["type"]),
            date=str(data["date"]),
        )


# JSON key -> attribute name
SETTINGS_FIELDS: dict[str, str] = {
    "theme": "theme",
    "geminiApiKey": "gemini_api_key",
    "selectedModel": "selected_model",
}


@dataclass(frozen=True)
class Settings:
    theme: str = "light"
    gemini_api_key: str = ""
    selected_model: str = MODEL_IDS[0]

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)

    def to_dict(self) -> dict:
        return {
            "theme": self.theme,
            "geminiApiKey": self.gemini_api_key,
            "selectedModel": self.selected_model,
        }

    @staticmethod
    def from_dict(data: dict) -> Settings:
        """Raises ValueError for a theme or model id this build does not know."""
        _require_object(data, "settings")
        settings = Settings(
            theme=str(data.get("theme", "light")),
            gemini_api_key=str(data.get("geminiApiKey", "") or ""),
            selected_model=str(data.get("selectedModel", MODEL_IDS[0])),
        )
        if settings.theme not in THEMES:
            raise ValueError(f"unknown theme {settings.theme!r}")
        if settings.selected_model not in MODEL_IDS:
            raise ValueError(f"unknown model {settings.selected_model!r}")
        return settings


@dataclass(frozen=True)
class Dataset:
    students: tuple[Student, ...] = ()
    subjects: tuple[Subject, ...] = field(default_factory=lambda: tuple(DEFAULT_SUBJECTS))
    scores: tuple[ScoreEntry, ...] = ()
    settings: Settings = field(default_factory=Settings)

    def student_ids(self) -> set[str]:
        return {s.id for s in self.students}

    def subject_ids(self) -> set[str]:
        return {s.id for s in self.subjects}

    def find_student(self, student_id: str) -> Optional[Student]:
        return next((s for s in self.students if s.id == student_id), None)

    def find_subject(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self.subjects if s.id == subject_id), None)

    def replace(self, **changes: Any) -> Dataset:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "version": DATASET_VERSION,
            "students": [s.to_dict() for s in self.students],
            "subjects": [s.to_dict() for s in self.subjects],
            "scores": [s.to_dict() for s in self.scores],
            "settings": self.settings.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict) -> Dataset:
        """Rebuild a Dataset from its persisted form.

        Raises KeyError, TypeError or ValueError when the payload is not a
        structurally valid dataset (missing collections, duplicate ids,
        scores pointing at unknown students or subjects).
        """
        _require_object(data, "dataset payload")
        dataset = Dataset(
            students=tuple(Student.from_dict(s) for s in data["students"]),
            subjects=tuple(Subject.from_dict(s) for s in data["subjects"]),
            scores=tuple(ScoreEntry.from_dict(s) for s in data["scores"]),
            settings=Settings.from_dict(data.get("settings") or {}),
        )
        dataset.check_integrity()
        return dataset

    def check_integrity(self) -> None:
        for label, items in (("student", self.students), ("subject", self.subjects), ("score", self.scores)):
            ids = [item.id for item in items]
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {label} id")
        student_ids = self.student_ids()
        subject_ids = self.subject_ids()
        for entry in self.scores:
            if entry.student_id not in student_ids:
                raise ValueError(f"score {entry.id} references unknown student {entry.student_id}")
            if entry.subject_id not in subject_ids:
                raise ValueError(f"score {entry.id} references unknown subject {entry.subject_id}")


def default_dataset(api_key: str = "") -> Dataset:
    """Seed used at first start and after clearing all data."""
    return Dataset(settings=Settings(gemini_api_key=api_key))


# ── Validation helpers ────────────────────────────────────────────


def require_text(value: Any, label: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def validate_score(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Score must be a number between {SCORE_MIN:g} and {SCORE_MAX:g}")
    # NaN fails the comparison too
    if not SCORE_MIN <= value <= SCORE_MAX:
        raise ValidationError(f"Score must be a number between {SCORE_MIN:g} and {SCORE_MAX:g}")
    return value


def validate_score_type(value: Any) -> str:
    if value not in SCORE_TYPES:
        raise ValidationError(f"Unknown score type: {value!r}")
    return value


def validate_theme(value: Any) -> str:
    if value not in THEMES:
        raise ValidationError(f"Unknown theme: {value!r}")
    return value


def validate_model(value: Any) -> str:
    if value not in MODEL_IDS:
        raise ValidationError(f"Unknown model: {value!r}")
    return value
