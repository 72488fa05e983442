from __future__ import annotations
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .activity import utc_today

# days before the exam
LEARNING_DEADLINE = 60
REVISION_DEADLINE = 45
PRACTICE_DEADLINE = 30
MOCK_TESTS_START = 30
FINAL_REVISION = 15
QUICK_REVISION = 7

# a phase counts as passed this many days after its deadline
PASSED_AFTER_DAYS = 15


def days_until(exam_date: date, today: Optional[date] = None) -> int:
    return (exam_date - (today or utc_today())).days


def current_phase(days_left: int) -> str:
    if days_left <= QUICK_REVISION:
        return "Final Preparation"
    if days_left <= FINAL_REVISION:
        return "Final Revision"
    if days_left <= PRACTICE_DEADLINE:
        return "Mock Tests"
    if days_left <= REVISION_DEADLINE:
        return "Practice"
    if days_left <= LEARNING_DEADLINE:
        return "Revision"
    return "Learning"


def phase_status(deadline: int, days_left: int) -> Dict[str, bool]:
    upcoming = days_left > deadline
    passed = days_left < deadline - PASSED_AFTER_DAYS
    return {"is_upcoming": upcoming, "is_passed": passed, "is_current": not upcoming and not passed}


def recommendation(progress: Mapping[str, float], days_left: int) -> str:
    learning = progress.get("learning", 0)
    revision = progress.get("revision", 0)
    practice = progress.get("practice", 0)
    test = progress.get("test", 0)
    if days_left > LEARNING_DEADLINE:
        if learning < 50:
            return "Focus on completing the learning phase. You should aim to complete basic concepts first."
        if learning < 80:
            return "Good progress on learning! Keep going and start light revision of completed topics."
        return "Excellent learning progress! Start focusing on revision and practice problems."
    if days_left > REVISION_DEADLINE:
        if learning < 90:
            return "Warning: Speed up your learning phase. You should be almost done with basics by now."
        if revision < 50:
            return "Focus on revision. Aim to revise all completed topics at least once."
        return "Good revision progress! Start incorporating practice problems."
    if days_left > PRACTICE_DEADLINE:
        if revision < 70:
            return "Warning: Increase revision pace. Start practice problems for strong topics."
        if practice < 30:
            return "Focus on solving more practice problems and previous year questions."
        return "Balance revision with practice. Start preparing for mock tests."
    if days_left > FINAL_REVISION:
        if practice < 60:
            return "Focus on solving full-length practice tests and analyzing mistakes."
        if test < 40:
            return "Take more mock tests and work on time management."
        return "Good progress! Focus on weak areas identified from mock tests."
    return "Final stretch! Focus on quick revisions and stay confident."


_MILESTONES = (
    ("Complete Learning Phase", LEARNING_DEADLINE, "learning",
     "Focus on understanding core concepts and completing syllabus"),
    ("First Revision Round", REVISION_DEADLINE, "revision",
     "Revise completed topics and solve basic problems"),
    ("Practice Phase", PRACTICE_DEADLINE, "practice",
     "Focus on problem-solving and previous year questions"),
    ("Mock Tests", MOCK_TESTS_START, "test",
     "Take full-length mock tests and analyze performance"),
)


def countdown(exam_date: date, progress: Mapping[str, float], today: Optional[date] = None) -> Dict[str, Any]:
    days_left = days_until(exam_date, today)
    milestones = []
    for label, deadline, category, advice in _MILESTONES:
        milestones.append({
            "label": label,
            # days until this milestone's deadline is reached
            "days_left": max(0, days_left - deadline),
            **phase_status(deadline, days_left),
            "progress": progress.get(category, 0),
            "recommendation": advice,
        })
    return {
        "days_left": days_left,
        "current_phase": current_phase(days_left),
        "progress": dict(progress),
        "milestones": milestones,
        "recommendation": recommendation(progress, days_left),
    }
