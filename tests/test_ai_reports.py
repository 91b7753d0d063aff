"""Tests for AI report prompts and their dispatch through the fallback loop."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ai_reports import (
    NO_SCORES_TEXT,
    analyze_student_performance,
    build_student_prompt,
    build_study_plan_prompt,
    generate_study_plan,
    score_history_lines,
)
from ai_resilience import AllModelsFailedError, ConfigurationError, FallbackResult
from models import DEFAULT_SUBJECTS, Settings, Student, ValidationError

AN = Student("s1", "An", "10A1")
KEYED = Settings(gemini_api_key="k", selected_model="gemini-3-pro-preview")


class TestPrompts:
    def test_history_lines_sorted_with_subject_names(self, make_score):
        scores = [
            make_score("e2", "s1", "literature", 6.5, day="2024-02-01", type="midterm"),
            make_score("e1", "s1", "math", 9, day="2024-01-15"),
            make_score("e3", "s2", "math", 3, day="2024-01-01"),
        ]
        assert score_history_lines(AN, scores, DEFAULT_SUBJECTS) == [
            "Toán học: 9 (quiz, ngày 2024-01-15)",
            "Ngữ văn: 6.5 (midterm, ngày 2024-02-01)",
        ]

    def test_student_prompt_contains_identity_and_history(self, make_score):
        prompt = build_student_prompt(AN, [make_score("e1", "s1", "math", 9)], DEFAULT_SUBJECTS)
        assert "Học sinh: An" in prompt
        assert "Lớp: 10A1" in prompt
        assert "Toán học: 9" in prompt
        assert "tiếng Việt" in prompt

    def test_student_prompt_without_scores(self):
        assert NO_SCORES_TEXT in build_student_prompt(AN, [], DEFAULT_SUBJECTS)

    def test_study_plan_prompt(self):
        prompt = build_study_plan_prompt("Hình học không gian")
        assert '"Hình học không gian"' in prompt
        assert "cơ bản đến nâng cao" in prompt


class TestDispatch:
    def test_analysis_uses_selected_model_first(self, make_score):
        with patch("ai_reports.call_with_fallback") as mock_call:
            mock_call.return_value = FallbackResult(text="## Báo cáo", model_id="gemini-3-pro-preview")
            report = analyze_student_performance(AN, [], DEFAULT_SUBJECTS, KEYED, timeout=5)
        assert report == "## Báo cáo"
        prompt, models, key = mock_call.call_args.args
        assert models[0] == "gemini-3-pro-preview"
        assert len(models) == 3
        assert key == "k"
        assert mock_call.call_args.kwargs == {"timeout": 5}
        assert "Học sinh: An" in prompt

    def test_missing_key(self):
        with patch("ai_resilience._do_call") as mock_call:
            with pytest.raises(ConfigurationError):
                analyze_student_performance(AN, [], DEFAULT_SUBJECTS, Settings())
            with pytest.raises(ConfigurationError):
                generate_study_plan("Đạo hàm", Settings())
        mock_call.assert_not_called()

    def test_missing_key_reported_before_blank_topic(self):
        with pytest.raises(ConfigurationError):
            generate_study_plan("  ", Settings())

    def test_blank_topic_rejected(self):
        with patch("ai_reports.call_with_fallback") as mock_call:
            with pytest.raises(ValidationError):
                generate_study_plan("   ", KEYED)
        mock_call.assert_not_called()

    def test_study_plan_returns_text_untouched(self):
        with patch("ai_reports.call_with_fallback") as mock_call:
            mock_call.return_value = FallbackResult(text="  raw *markdown*  ", model_id="x")
            assert generate_study_plan(" Đạo hàm ", KEYED) == "  raw *markdown*  "
        assert '"Đạo hàm"' in mock_call.call_args.args[0]

    def test_all_models_failing_propagates(self):
        def failing(model, prompt, api_key, timeout=None):
            raise RuntimeError(f"{model} down")

        with patch("ai_resilience._do_call", side_effect=failing):
            with pytest.raises(AllModelsFailedError) as exc_info:
                analyze_student_performance(AN, [], DEFAULT_SUBJECTS, KEYED)
        assert len(exc_info.value.failures) == 3
