"""
Gradebook: the owned state container and the only way to change the Dataset.

Each mutation validates first, builds a new Dataset value, persists it and
only then swaps it in, all under one lock. A rejected mutation therefore
leaves both the in-memory dataset and the stored slot untouched.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from typing import Any, Optional

from models import (
    Dataset,
    ScoreEntry,
    Settings,
    Student,
    ValidationError,
    new_id,
    require_text,
    validate_model,
    validate_score,
    validate_score_type,
    validate_theme,
)
from storage import DatasetStore

logger = logging.getLogger(__name__)


class Gradebook:
    """Holds the process-wide Dataset and persists every change."""

    def __init__(self, store: DatasetStore, today: Callable[[], date] = date.today) -> None:
        self.store = store
        self._today = today
        self._lock = threading.Lock()
        self._dataset = store.load()

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    def _commit(self, dataset: Dataset) -> None:
        """Persist then publish. Caller holds the lock."""
        self.store.save(dataset)
        self._dataset = dataset

    # ── Students ──────────────────────────────────────────────

    def add_student(self, name: Any, grade: Any, email: Any = None) -> Student:
        name = require_text(name, "Name")
        grade = require_text(grade, "Grade")
        email = (email.strip() or None) if isinstance(email, str) else None

        student = Student(id=new_id(), name=name, grade=grade, email=email)
        with self._lock:
            ds = self._dataset
            self._commit(ds.replace(students=ds.students + (student,)))
        logger.info("Added student %s (%s)", student.id, student.grade)
        return student

    def delete_student(self, student_id: str) -> bool:
        """Remove a student and every score that references them, in one write.

        Returns False (and writes nothing) when no such student exists.
        """
        with self._lock:
            ds = self._dataset
            if ds.find_student(student_id) is None:
                return False
            students = tuple(s for s in ds.students if s.id != student_id)
            scores = tuple(s for s in ds.scores if s.student_id != student_id)
            removed = len(ds.scores) - len(scores)
            self._commit(ds.replace(students=students, scores=scores))
        logger.info("Deleted student %s and %d score(s)", student_id, removed, extra={"student_id": student_id})
        return True

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._dataset.find_student(student_id)

    # ── Scores ────────────────────────────────────────────────

    def add_score(self, student_id: str, subject_id: str, score: Any, type: Any) -> ScoreEntry:
        score = validate_score(score)
        score_type = validate_score_type(type)

        with self._lock:
            ds = self._dataset
            if ds.find_student(student_id) is None:
                raise ValidationError(f"Unknown student: {student_id!r}")
            if ds.find_subject(subject_id) is None:
                raise ValidationError(f"Unknown subject: {subject_id!r}")
            entry = ScoreEntry(
                id=new_id(),
                student_id=student_id,
                subject_id=subject_id,
                score=score,
                type=score_type,
                date=self._today().isoformat(),
            )
            self._commit(ds.replace(scores=ds.scores + (entry,)))
        logger.info("Recorded %s score %s for student %s in %s", score_type, score, student_id, subject_id,
                    extra={"student_id": student_id})
        return entry

    def student_scores(self, student_id: str) -> list[ScoreEntry]:
        """A student's scores in chronological order (entry order within a day)."""
        entries = [s for s in self._dataset.scores if s.student_id == student_id]
        return sorted(entries, key=lambda s: s.date)

    def subject_name(self, subject_id: str) -> Optional[str]:
        subject = self._dataset.find_subject(subject_id)
        return subject.name if subject else None

    # ── Settings ──────────────────────────────────────────────

    def update_settings(self, **changes: Any) -> Settings:
        """Shallow-merge settings fields; unknown fields and values are rejected."""
        clean: dict[str, Any] = {}
        for field_name, value in changes.items():
            if field_name == "theme":
                clean["theme"] = validate_theme(value)
            elif field_name == "selected_model":
                clean["selected_model"] = validate_model(value)
            elif field_name == "gemini_api_key":
                if not isinstance(value, str):
                    raise ValidationError("API key must be a string")
                clean["gemini_api_key"] = value.strip()
            else:
                raise ValidationError(f"Unknown setting: {field_name!r}")

        with self._lock:
            ds = self._dataset
            settings = replace(ds.settings, **clean)
            self._commit(ds.replace(settings=settings))
        logger.info("Updated settings: %s", ", ".join(sorted(clean)) or "(none)")
        return settings

    # ── Reset ─────────────────────────────────────────────────

    def clear_all(self) -> None:
        """Drop the stored slot and return to the default seed."""
        with self._lock:
            self.store.clear()
            self._dataset = self.store.default()
        logger.info("Cleared all data")
