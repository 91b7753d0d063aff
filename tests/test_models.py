"""Tests for the domain model: serialization, integrity checks and validators."""

from __future__ import annotations

import math

import pytest

from models import (
    AI_MODELS,
    DEFAULT_SUBJECTS,
    MODEL_IDS,
    Dataset,
    ScoreEntry,
    Settings,
    Student,
    ValidationError,
    default_dataset,
    require_text,
    validate_model,
    validate_score,
    validate_score_type,
    validate_theme,
)


class TestDefaults:
    def test_default_dataset_seeds_subjects(self):
        ds = default_dataset()
        assert [s.id for s in ds.subjects] == [
            "math", "literature", "english", "physics", "chemistry", "biology",
        ]
        assert ds.students == ()
        assert ds.scores == ()

    def test_default_settings(self):
        s = default_dataset().settings
        assert s.theme == "light"
        assert s.gemini_api_key == ""
        assert s.selected_model == "gemini-3-flash-preview"
        assert not s.has_api_key

    def test_default_api_key_seed(self):
        assert default_dataset("abc").settings.has_api_key

    def test_exactly_one_default_model_listed_first(self):
        defaults = [m for m in AI_MODELS if m.is_default]
        assert len(defaults) == 1
        assert MODEL_IDS[0] == defaults[0].id


class TestSerialization:
    def test_student_email_omitted_when_absent(self):
        assert "email" not in Student("s1", "An", "10A1").to_dict()
        assert Student("s1", "An", "10A1", "an@x.vn").to_dict()["email"] == "an@x.vn"

    def test_score_uses_camel_case_keys(self):
        entry = ScoreEntry("e1", "s1", "math", 8.5, "quiz", "2024-01-10")
        data = entry.to_dict()
        assert data["studentId"] == "s1"
        assert data["subjectId"] == "math"
        assert ScoreEntry.from_dict(data) == entry

    def test_score_from_dict_rejects_non_numeric(self):
        data = {"id": "e1", "studentId": "s1", "subjectId": "math",
                "score": "8", "type": "quiz", "date": "2024-01-10"}
        with pytest.raises(TypeError):
            ScoreEntry.from_dict(data)
        data["score"] = True
        with pytest.raises(TypeError):
            ScoreEntry.from_dict(data)

    def test_settings_camel_case(self):
        s = Settings(theme="dark", gemini_api_key="k", selected_model="gemini-2.5-flash")
        assert s.to_dict() == {"theme": "dark", "geminiApiKey": "k", "selectedModel": "gemini-2.5-flash"}
        assert Settings.from_dict(s.to_dict()) == s

    def test_dataset_round_trip_keeps_vietnamese_text(self):
        student = Student("s1", "Nguyễn Văn An", "10A1")
        ds = default_dataset().replace(
            students=(student,),
            scores=(ScoreEntry("e1", "s1", "literature", 7.25, "midterm", "2024-02-01"),),
        )
        data = ds.to_dict()
        assert data["version"] == 1
        assert Dataset.from_dict(data) == ds


class TestIntegrity:
    def test_orphan_student_reference_rejected(self):
        data = default_dataset().to_dict()
        data["scores"] = [{"id": "e1", "studentId": "ghost", "subjectId": "math",
                           "score": 5, "type": "quiz", "date": "2024-01-01"}]
        with pytest.raises(ValueError, match="unknown student"):
            Dataset.from_dict(data)

    def test_orphan_subject_reference_rejected(self):
        data = default_dataset().to_dict()
        data["students"] = [{"id": "s1", "name": "An", "grade": "10A1"}]
        data["scores"] = [{"id": "e1", "studentId": "s1", "subjectId": "history",
                           "score": 5, "type": "quiz", "date": "2024-01-01"}]
        with pytest.raises(ValueError, match="unknown subject"):
            Dataset.from_dict(data)

    def test_duplicate_ids_rejected(self):
        data = default_dataset().to_dict()
        data["students"] = [{"id": "s1", "name": "An", "grade": "10A1"},
                            {"id": "s1", "name": "Bình", "grade": "10A2"}]
        with pytest.raises(ValueError, match="duplicate student id"):
            Dataset.from_dict(data)

    def test_missing_collection_is_key_error(self):
        with pytest.raises(KeyError):
            Dataset.from_dict({"students": [], "subjects": []})

    def test_non_object_payload(self):
        with pytest.raises(TypeError):
            Dataset.from_dict([])

    @pytest.mark.parametrize("record_type,item", [
        (Student, None), (Student, "s1"), (ScoreEntry, 7), (Settings, "dark"),
    ])
    def test_non_object_records_are_type_errors(self, record_type, item):
        with pytest.raises(TypeError):
            record_type.from_dict(item)

    @pytest.mark.parametrize("settings", [{"selectedModel": "gpt-4"}, {"theme": "neon"}])
    def test_unknown_settings_values_rejected_on_load(self, settings):
        with pytest.raises(ValueError):
            Settings.from_dict(settings)

    def test_missing_settings_use_defaults(self):
        assert Settings.from_dict({}) == Settings()


class TestValidators:
    @pytest.mark.parametrize("value", [0, 0.0, 5, 7.25, 10, 10.0])
    def test_valid_scores(self, value):
        assert validate_score(value) == value

    @pytest.mark.parametrize("value", [-0.1, 10.5, math.nan, math.inf, -math.inf, 10**400, "8", None, True])
    def test_invalid_scores(self, value):
        with pytest.raises(ValidationError):
            validate_score(value)

    def test_score_types(self):
        for t in ("quiz", "assignment", "midterm", "final"):
            assert validate_score_type(t) == t
        with pytest.raises(ValidationError):
            validate_score_type("homework")

    def test_theme_and_model(self):
        assert validate_theme("dark") == "dark"
        with pytest.raises(ValidationError):
            validate_theme("blue")
        assert validate_model("gemini-3-pro-preview") == "gemini-3-pro-preview"
        with pytest.raises(ValidationError):
            validate_model("gpt-4")

    def test_require_text_strips(self):
        assert require_text("  An  ", "Name") == "An"
        with pytest.raises(ValidationError, match="Name is required"):
            require_text("   ", "Name")
        with pytest.raises(ValidationError):
            require_text(None, "Name")

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)

    def test_default_subject_names(self):
        assert DEFAULT_SUBJECTS[0].name == "Toán học"
