"""
AI reports: student performance analysis and study-plan generation.

Both entry points build a Vietnamese prompt and hand it to the fallback loop in
ai_resilience. The model's markdown answer is returned untouched for display
or for export.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from ai_resilience import ConfigurationError, call_with_fallback, ordered_models
from models import ScoreEntry, Settings, Student, Subject, ValidationError

NO_SCORES_TEXT = "Chưa có dữ liệu điểm số."

STUDENT_ANALYSIS_PROMPT = """Bạn là một chuyên gia tư vấn giáo dục cao cấp. Hãy phân tích dữ liệu học tập sau đây của học sinh:

Học sinh: {name}
Lớp: {grade}

Lịch sử điểm số:
{history}

Yêu cầu:
1. Phân tích xu hướng học tập (tiến bộ hay sa sút).
2. Xác định các môn học thế mạnh và môn học cần cải thiện.
3. Dự báo kết quả học tập trong tương lai gần.
4. Đề xuất lộ trình can thiệp sư phạm cá nhân hóa (các bước cụ thể để cải thiện).
5. Lời khuyên cho phụ huynh và giáo viên.

Hãy trả lời bằng tiếng Việt, định dạng Markdown chuyên nghiệp, rõ ràng."""

STUDY_PLAN_PROMPT = (
    'Hãy lập một lộ trình học tập chi tiết cho chủ đề: "{topic}". '
    "Lộ trình nên bao gồm các giai đoạn từ cơ bản đến nâng cao, các tài liệu tham khảo gợi ý "
    "và phương pháp tự học hiệu quả. Trả lời bằng tiếng Việt, định dạng Markdown."
)


def _format_score(value: float) -> str:
    return f"{value:g}"


def score_history_lines(student: Student, scores: Sequence[ScoreEntry], subjects: Sequence[Subject]) -> list[str]:
    """One line per score, oldest first: '<subject>: <score> (<type>, ngày <date>)'."""
    names = {s.id: s.name for s in subjects}
    own = sorted((s for s in scores if s.student_id == student.id), key=lambda s: s.date)
    return [
        f"{names.get(s.subject_id, s.subject_id)}: {_format_score(s.score)} ({s.type}, ngày {s.date})"
        for s in own
    ]


def build_student_prompt(student: Student, scores: Sequence[ScoreEntry], subjects: Sequence[Subject]) -> str:
    history = "\n".join(score_history_lines(student, scores, subjects)) or NO_SCORES_TEXT
    return STUDENT_ANALYSIS_PROMPT.format(name=student.name, grade=student.grade, history=history)


def build_study_plan_prompt(topic: str) -> str:
    return STUDY_PLAN_PROMPT.format(topic=topic)


def _run(prompt: str, settings: Settings, timeout: Optional[float]) -> str:
    result = call_with_fallback(
        prompt,
        ordered_models(settings.selected_model),
        settings.gemini_api_key,
        timeout=timeout,
    )
    return result.text


def analyze_student_performance(
    student: Student,
    scores: Sequence[ScoreEntry],
    subjects: Sequence[Subject],
    settings: Settings,
    timeout: Optional[float] = None,
) -> str:
    """Narrative analysis of one student's full score history."""
    return _run(build_student_prompt(student, scores, subjects), settings, timeout)


def generate_study_plan(topic: str, settings: Settings, timeout: Optional[float] = None) -> str:
    """Staged (basic -> advanced) self-study plan for a free-text topic."""
    if not settings.gemini_api_key:
        raise ConfigurationError("Gemini API key is not configured. Add it in Settings.")
    topic = topic.strip() if isinstance(topic, str) else ""
    if not topic:
        raise ValidationError("Topic is required")
    return _run(build_study_plan_prompt(topic), settings, timeout)
