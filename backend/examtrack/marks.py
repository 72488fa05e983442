"""Expected marks projection and test statistics."""
from __future__ import annotations
from typing import Any, Dict, Iterable, List

from .progress import round_half_up


def expected_marks(weightage: float, tests: Iterable[Any]) -> int:
    """weightage x rounded average score / 100, rounded. No tests -> 0."""
    scores = [t.score or 0 for t in tests or []]
    if not scores:
        return 0
    average = round_half_up(sum(scores) / len(scores))
    return round_half_up((weightage or 0) * average / 100)


def subject_expected_marks(subject: Any) -> int:
    return expected_marks(subject.weightage, getattr(subject, "tests", None) or [])


def score_statistics(tests: Iterable[Any]) -> Dict[str, Any]:
    tests = list(tests or [])
    if not tests:
        return {
            "total_tests": 0,
            "average_score": 0,
            "highest_score": 0,
            "lowest_score": 0,
            "recent_score": 0,
            "trend": "stable",
        }
    # most recent first
    ordered = sorted(tests, key=lambda t: (t.created_at is not None, t.created_at or 0), reverse=True)
    scores = [t.score for t in ordered]
    recent = scores[0]
    previous = scores[1] if len(scores) > 1 else scores[0]
    if recent > previous:
        trend = "up"
    elif recent < previous:
        trend = "down"
    else:
        trend = "stable"
    return {
        "total_tests": len(scores),
        "average_score": round_half_up(sum(scores) / len(scores)),
        "highest_score": max(scores),
        "lowest_score": min(scores),
        "recent_score": recent,
        "trend": trend,
    }


def mock_test_summary(mock_tests: Iterable[Any]) -> Dict[str, Any]:
    mock_tests = list(mock_tests or [])
    attempted = [m for m in mock_tests if m.actual_marks is not None]
    expected_total = sum(m.expected_marks or 0 for m in attempted)
    actual_total = sum(m.actual_marks for m in attempted)
    return {
        "total": len(mock_tests),
        "attempted": len(attempted),
        "expected_marks": expected_total,
        "actual_marks": actual_total,
        "difference": actual_total - expected_total,
    }


def projected_total(subjects: List[Any], target_marks: int | None = None) -> Dict[str, Any]:
    per_subject = [
        {"subject_id": s.id, "name": s.name, "weightage": s.weightage, "expected_marks": subject_expected_marks(s)}
        for s in subjects
    ]
    total = sum(p["expected_marks"] for p in per_subject)
    return {
        "subjects": per_subject,
        "expected_marks": total,
        "target_marks": target_marks,
        "gap": (target_marks - total) if target_marks is not None else None,
    }
