"""Progress roll-ups from topics to chapters and subjects.

Every function here is pure: it reads the attributes of topic / chapter /
subject objects (ORM rows or anything shaped like them) and returns
percentages in [0, 100]. Empty collections yield 0.
"""
from __future__ import annotations
import math
from typing import Any, Dict, Iterable, Optional

CATEGORIES = ("learning", "revision", "practice", "test")

CATEGORY_WEIGHTS: Dict[str, float] = {
    "learning": 0.4,
    "revision": 0.3,
    "practice": 0.15,
    "test": 0.15,
}

# revision / practice / test counters stop at this value
MAX_CATEGORY_COUNT = 3

# maximum points the average test score adds to a subject's overall progress
TEST_SCORE_SHARE = 0.2

PROGRESS_MODES = ("binary", "stepped")

FOUNDATION_LEVELS = ("Beginner", "Moderate", "Advanced")

_COUNT_FIELDS = {
    "revision": "revision_count",
    "practice": "practice_count",
    "test": "test_count",
}


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    result = math.floor(value * factor + 0.5) / factor
    return int(result) if digits == 0 else result


def clamp_percent(value: float) -> float:
    return max(0, min(100, value))


def _default_mode() -> str:
    from .settings import settings

    return settings.topic_progress_mode


def _validate_mode(mode: Optional[str]) -> str:
    mode = mode or _default_mode()
    if mode not in PROGRESS_MODES:
        raise ValueError(f"progress mode must be one of {PROGRESS_MODES}, got {mode!r}")
    return mode


def _validate_category(category: str) -> None:
    if category not in CATEGORIES:
        raise ValueError(f"category must be one of {CATEGORIES}, got {category!r}")


def category_count(topic: Any, category: str) -> int:
    """Counter value for a revision/practice/test category, capped at 3."""
    _validate_category(category)
    if category == "learning":
        return 1 if getattr(topic, "learning_status", False) else 0
    value = getattr(topic, _COUNT_FIELDS[category], 0) or 0
    return max(0, min(MAX_CATEGORY_COUNT, int(value)))


# ---------------------------------------------------------------------------
# Topic
# ---------------------------------------------------------------------------

def topic_progress(topic: Any, category: str, mode: Optional[str] = None) -> float:
    """Progress of one topic in one category.

    Learning is always 0 or 100. For the counted categories ``binary`` mode
    treats any count as complete, ``stepped`` mode scores count / 3.
    """
    _validate_category(category)
    if category == "learning":
        return 100 if getattr(topic, "learning_status", False) else 0
    count = category_count(topic, category)
    if _validate_mode(mode) == "binary":
        return 100 if count > 0 else 0
    return count / MAX_CATEGORY_COUNT * 100


def is_topic_completed(topic: Any, mode: Optional[str] = None) -> bool:
    return all(topic_progress(topic, c, mode) == 100 for c in CATEGORIES)


# ---------------------------------------------------------------------------
# Chapter
# ---------------------------------------------------------------------------

def chapter_progress(chapter: Any, category: str, mode: Optional[str] = None) -> int:
    topics = list(getattr(chapter, "topics", None) or [])
    if not topics:
        return 0
    total = sum(topic_progress(t, category, mode) for t in topics)
    return clamp_percent(round_half_up(total / len(topics)))


def weighted_overall(values: Dict[str, float]) -> int:
    total = sum(values.get(c, 0) * w for c, w in CATEGORY_WEIGHTS.items())
    return clamp_percent(round_half_up(total))


def chapter_overall_progress(chapter: Any, mode: Optional[str] = None) -> int:
    return weighted_overall({c: chapter_progress(chapter, c, mode) for c in CATEGORIES})


def chapter_snapshot(chapter: Any, mode: Optional[str] = None) -> Dict[str, int]:
    values = {c: chapter_progress(chapter, c, mode) for c in CATEGORIES}
    values["overall"] = weighted_overall(values)
    return values


# ---------------------------------------------------------------------------
# Subject
# ---------------------------------------------------------------------------

def _chapters(subject: Any) -> list:
    return list(getattr(subject, "chapters", None) or [])


def average_test_score(tests: Iterable[Any]) -> float:
    scores = [t.score or 0 for t in tests or []]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def subject_progress(subject: Any, category: str, mode: Optional[str] = None) -> int:
    chapters = _chapters(subject)
    if not chapters:
        return 0
    total = sum(chapter_progress(ch, category, mode) for ch in chapters)
    return clamp_percent(round_half_up(total / len(chapters)))


def test_score_contribution(subject: Any) -> int:
    tests = list(getattr(subject, "tests", None) or [])
    if not tests:
        return 0
    return round_half_up(average_test_score(tests) * TEST_SCORE_SHARE)


def subject_overall_progress(subject: Any, mode: Optional[str] = None) -> int:
    base = weighted_overall({c: subject_progress(subject, c, mode) for c in CATEGORIES})
    return clamp_percent(min(100, base + test_score_contribution(subject)))


def subject_snapshot(subject: Any, mode: Optional[str] = None) -> Dict[str, int]:
    values = {c: subject_progress(subject, c, mode) for c in CATEGORIES}
    base = weighted_overall(values)
    values["overall"] = clamp_percent(min(100, base + test_score_contribution(subject)))
    return values


# ---------------------------------------------------------------------------
# Foundation classifier
# ---------------------------------------------------------------------------

def classify_foundation(learning: float, revision: float) -> str:
    if learning >= 80 and revision >= 70:
        return "Advanced"
    if learning >= 50 and revision >= 40:
        return "Moderate"
    return "Beginner"


def subject_foundation_level(subject: Any, mode: Optional[str] = None) -> str:
    if not _chapters(subject):
        return "Beginner"
    return classify_foundation(
        subject_progress(subject, "learning", mode),
        subject_progress(subject, "revision", mode),
    )


# ---------------------------------------------------------------------------
# Counts
# ---------------------------------------------------------------------------

def topics_count(subject: Any) -> int:
    return sum(len(getattr(ch, "topics", None) or []) for ch in _chapters(subject))


def completed_topics_count(subject: Any) -> Dict[str, int]:
    completed = sum(
        1 for ch in _chapters(subject) for t in (getattr(ch, "topics", None) or []) if getattr(t, "learning_status", False)
    )
    return {"completed": completed, "total": topics_count(subject)}


def completed_chapters_count(subject: Any, mode: Optional[str] = None) -> int:
    return sum(1 for ch in _chapters(subject) if chapter_progress(ch, "learning", mode) == 100)


def completion_stats(subject: Any, mode: Optional[str] = None) -> Dict[str, Dict[str, float]]:
    total_chapters = len(_chapters(subject))
    done_chapters = completed_chapters_count(subject, mode)
    topics = completed_topics_count(subject)
    return {
        "chapters": {
            "total": total_chapters,
            "completed": done_chapters,
            "percentage": round_half_up(done_chapters / total_chapters * 100) if total_chapters else 0,
        },
        "topics": {
            "total": topics["total"],
            "completed": topics["completed"],
            "percentage": round_half_up(topics["completed"] / topics["total"] * 100) if topics["total"] else 0,
        },
    }
