"""Exam-wide foundation ladder.

Subjects are combined into one set of category metrics, weighted by subject
weightage, and placed on a ten-step ladder by overall progress.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from .progress import CATEGORIES, round_half_up, subject_snapshot


@dataclass(frozen=True)
class LadderLevel:
    level: int
    title: str
    description: str
    min_progress: int
    requirements: Dict[str, int]


LADDER: Sequence[LadderLevel] = (
    LadderLevel(1, "Novice Explorer", "Beginning the journey with basic topic exploration and initial learning.", 0,
                {"learning": 10, "revision": 0, "practice": 0, "test": 0}),
    LadderLevel(2, "Basic Learner", "Building basic understanding of core concepts across subjects.", 11,
                {"learning": 20, "revision": 10, "practice": 5, "test": 0}),
    LadderLevel(3, "Steady Beginner", "Developing consistent learning patterns and topic coverage.", 21,
                {"learning": 35, "revision": 20, "practice": 15, "test": 10}),
    LadderLevel(4, "Foundation Builder", "Mastering core concepts with regular practice and revision.", 31,
                {"learning": 45, "revision": 30, "practice": 25, "test": 20}),
    LadderLevel(5, "Intermediate Practitioner", "Balanced progress across learning, revision, and practice.", 41,
                {"learning": 55, "revision": 45, "practice": 40, "test": 35}),
    LadderLevel(6, "Advanced Learner", "Deep understanding with strong problem-solving abilities.", 51,
                {"learning": 70, "revision": 60, "practice": 55, "test": 50}),
    LadderLevel(7, "Competent Solver", "Proficient in solving complex problems with good test performance.", 61,
                {"learning": 80, "revision": 70, "practice": 65, "test": 60}),
    LadderLevel(8, "Expert Candidate", "Advanced preparation with strong performance across all areas.", 71,
                {"learning": 85, "revision": 80, "practice": 75, "test": 70}),
    LadderLevel(9, "Master Aspirant", "Near complete mastery with excellent test performance.", 81,
                {"learning": 90, "revision": 85, "practice": 85, "test": 80}),
    LadderLevel(10, "Champion", "Complete preparation with outstanding performance.", 91,
                {"learning": 95, "revision": 90, "practice": 90, "test": 85}),
)

STRENGTH_LABELS = {
    "learning": "Strong conceptual learning",
    "revision": "Excellent revision habits",
    "practice": "Strong problem-solving practice",
    "test": "Outstanding test performance",
}

IMPROVEMENT_LABELS = {
    "learning": "Focus on conceptual learning",
    "revision": "Increase revision frequency",
    "practice": "More problem-solving practice needed",
    "test": "Improve test performance",
}

# how far a category must sit from overall to count as a strength / weakness
MARGIN = 10


def weighted_metrics(subjects: List[Any], mode: Optional[str] = None) -> Dict[str, float]:
    keys = CATEGORIES + ("overall",)
    if not subjects:
        return {k: 0.0 for k in keys}
    total_weightage = sum(s.weightage or 0 for s in subjects)
    acc = {k: 0.0 for k in keys}
    for s in subjects:
        # equal weights when no subject carries a weightage
        weight = (s.weightage or 0) / total_weightage if total_weightage > 0 else 1 / len(subjects)
        snap = subject_snapshot(s, mode)
        for k in keys:
            acc[k] += snap[k] * weight
    return {k: round_half_up(v, 1) for k, v in acc.items()}


def level_for(overall: float) -> LadderLevel:
    current = LADDER[0]
    for level in LADDER:
        if overall >= level.min_progress:
            current = level
        else:
            break
    return current


def exam_foundation(subjects: List[Any], mode: Optional[str] = None) -> Dict[str, Any]:
    metrics = weighted_metrics(subjects, mode)
    overall = metrics["overall"]
    current = level_for(overall)
    next_level = LADDER[current.level] if current.level < len(LADDER) else None
    if next_level is None:
        to_next = 100.0
    else:
        span = next_level.min_progress - current.min_progress
        to_next = min(100.0, (overall - current.min_progress) / span * 100)
    return {
        "current_level": asdict(current),
        "next_level": asdict(next_level) if next_level else None,
        "progress_to_next_level": round_half_up(to_next, 1),
        "strengths": [STRENGTH_LABELS[c] for c in CATEGORIES if metrics[c] > overall + MARGIN],
        "areas_to_improve": [IMPROVEMENT_LABELS[c] for c in CATEGORIES if metrics[c] < overall - MARGIN],
        "overall_progress": overall,
        "metrics": metrics,
    }
