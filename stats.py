"""
Statistics engine: derived views over the Dataset.

Every function here is pure: it reads students/subjects/scores and returns
plain dicts and lists ready for JSON or for the exporters. Empty inputs always
give defined results (0, [] or None), never NaN.

Averages are rounded half-up to one decimal place when the view is computed;
stored scores are never rounded.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

from models import Dataset, ScoreEntry, Student, Subject


class ScoreBand(NamedTuple):
    key: str
    name: str
    label: str
    lower: float  # inclusive; the top band has no upper bound


# Ordered high to low; a score falls into the first band whose lower bound it reaches.
SCORE_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand("excellent", "Giỏi", "Giỏi (≥8)", 8.0),
    ScoreBand("good", "Khá", "Khá (6.5-8)", 6.5),
    ScoreBand("average", "Trung bình", "Trung bình (5-6.5)", 5.0),
    ScoreBand("weak", "Yếu", "Yếu (<5)", float("-inf")),
)


def round1(value: float) -> float:
    """Round half-up to one decimal (2.25 -> 2.3, unlike the built-in round)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def band_for(score: float) -> ScoreBand:
    for band in SCORE_BANDS:
        if score >= band.lower:
            return band
    return SCORE_BANDS[-1]


def overall_average(scores: Sequence[ScoreEntry]) -> float:
    if not scores:
        return 0.0
    return round1(_mean([s.score for s in scores]))


def per_subject_average(scores: Sequence[ScoreEntry], subjects: Sequence[Subject]) -> list[dict]:
    """One row per subject, in subject declaration order; 0 when a subject has no scores."""
    by_subject: dict[str, list[float]] = {}
    for s in scores:
        by_subject.setdefault(s.subject_id, []).append(s.score)

    rows = []
    for sub in subjects:
        values = by_subject.get(sub.id)
        rows.append({
            "id": sub.id,
            "name": sub.name,
            "color": sub.color,
            "avg": round1(_mean(values)) if values else 0.0,
        })
    return rows


def monthly_trend(scores: Sequence[ScoreEntry]) -> list[dict]:
    grouped: dict[str, list[float]] = {}
    for s in scores:
        grouped.setdefault(s.date[:7], []).append(s.score)
    return [
        {"month": month, "avg": round1(_mean(values))}
        for month, values in sorted(grouped.items())
    ]


def score_distribution(scores: Sequence[ScoreEntry]) -> list[dict]:
    counts = {band.key: 0 for band in SCORE_BANDS}
    for s in scores:
        counts[band_for(s.score).key] += 1
    return [
        {"key": band.key, "name": band.name, "label": band.label, "count": counts[band.key]}
        for band in SCORE_BANDS
        if counts[band.key] > 0
    ]


def student_average(student_id: str, scores: Sequence[ScoreEntry]) -> Optional[float]:
    """Rounded mean of a student's scores, or None when they have none.

    None is distinct from 0.0, which is a valid average.
    """
    values = [s.score for s in scores if s.student_id == student_id]
    if not values:
        return None
    return round1(_mean(values))


def student_rows(students: Iterable[Student], scores: Sequence[ScoreEntry]) -> list[dict]:
    counts: dict[str, int] = {}
    for s in scores:
        counts[s.student_id] = counts.get(s.student_id, 0) + 1
    return [
        {
            "id": st.id,
            "name": st.name,
            "grade": st.grade,
            "email": st.email,
            "avg": student_average(st.id, scores),
            "count": counts.get(st.id, 0),
        }
        for st in students
    ]


def ranking(students: Sequence[Student], scores: Sequence[ScoreEntry], limit: int) -> list[dict]:
    """Top `limit` students by average, best first.

    Students without any score are excluded. Ties keep the students'
    input order.
    """
    if limit <= 0:
        return []
    ranked = [
        {
            "student_id": row["id"],
            "name": row["name"],
            "grade": row["grade"],
            "avg": row["avg"],
            "count": row["count"],
        }
        for row in student_rows(students, scores)
        if row["avg"] is not None
    ]
    ranked.sort(key=lambda r: r["avg"], reverse=True)
    return ranked[:limit]


def recent_students(students: Sequence[Student], n: int = 5) -> list[Student]:
    """Last `n` students added, newest first."""
    if n <= 0:
        return []
    return list(reversed(students[-n:]))


def search_students(students: Iterable[Student], term: str) -> list[Student]:
    needle = (term or "").strip().lower()
    if not needle:
        return list(students)
    return [s for s in students if needle in s.name.lower() or needle in s.grade.lower()]


def summary(dataset: Dataset) -> dict:
    """Headline numbers for the dashboard and the overview slide."""
    scores = dataset.scores
    return {
        "total_students": len(dataset.students),
        "total_scores": len(scores),
        "avg_score": overall_average(scores),
        "excellent_count": sum(1 for s in scores if s.score >= SCORE_BANDS[0].lower),
        "weak_count": sum(1 for s in scores if s.score < SCORE_BANDS[2].lower),
    }
