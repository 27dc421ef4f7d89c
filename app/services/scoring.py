"""Score aggregation over an attempt's answers.

The late-submission penalty targets the score (not the percentage) and is
applied once, only to a positive raw score. Negative totals produced by negative
marking are kept unless the exam configures a floor.
"""
import math
from typing import Iterable, Optional, Sequence, Mapping, Any

from app.schemas.exam_attempt import ScoreSummary


def compute_percentage(score: float, total_marks: float) -> float:
    if not total_marks:
        return 0.0
    return round(score / total_marks * 100, 2)


def resolve_grade(percentage: float, grade_scale: Optional[Sequence[Mapping[str, Any]]]) -> Optional[str]:
    if not grade_scale:
        return None
    bands = sorted(grade_scale, key=lambda band: band["min_percentage"], reverse=True)
    for band in bands:
        if percentage >= band["min_percentage"]:
            return band["grade"]
    return None


def apply_late_penalty(score: float, penalty_percentage: float) -> float:
    if penalty_percentage <= 0 or score <= 0:
        return score
    return score * (1 - penalty_percentage / 100)


def aggregate_score(
    marks_awarded: Iterable[float],
    total_marks: float,
    pass_mark: float,
    late_penalty_percentage: float = 0,
    score_floor: Optional[float] = None,
    grade_scale: Optional[Sequence[Mapping[str, Any]]] = None,
) -> ScoreSummary:
    raw_score = math.fsum(marks_awarded)

    score = apply_late_penalty(raw_score, late_penalty_percentage)
    if score_floor is not None:
        score = max(score, score_floor)

    percentage = compute_percentage(score, total_marks)

    return ScoreSummary(
        raw_score=raw_score,
        score=score,
        percentage=percentage,
        passed=percentage >= pass_mark,
        grade=resolve_grade(percentage, grade_scale),
        late_penalty_applied=late_penalty_percentage,
    )
