"""Calendar, streak and range helpers used by the analytics routes."""
from __future__ import annotations
import calendar
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .progress import CATEGORIES, round_half_up


def utc_today() -> date:
    """Today's date in UTC, the zone progress timestamps are stored in."""
    return datetime.utcnow().date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def goal_progress(total: int, daily_goal: int) -> float:
    if daily_goal <= 0:
        return 100.0
    return min(total / daily_goal * 100, 100.0)


def current_streak(active_days: Set[date], today: Optional[date] = None) -> int:
    """Consecutive days with activity counting back from today."""
    day = today or utc_today()
    streak = 0
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def advance_streak(
    current: int, longest: int, last_study_date: Optional[date], today: Optional[date] = None
) -> Tuple[int, int]:
    """New (current, longest) after studying today.

    Studying the day after ``last_study_date`` extends the streak, studying again
    on the same day keeps it, anything else restarts at 1.
    """
    today = today or utc_today()
    if last_study_date == today:
        new_current = max(current, 1)
    elif last_study_date is not None and last_study_date == today - timedelta(days=1):
        new_current = current + 1
    else:
        new_current = 1
    return new_current, max(longest, new_current)


def empty_day(day: date) -> Dict[str, Any]:
    return {
        "date": day.isoformat(),
        **{c: 0 for c in CATEGORIES},
        "total_count": 0,
        "details": {c: [] for c in CATEGORIES},
    }


def group_by_day(entries: Iterable[Any], daily_goal: int) -> List[Dict[str, Any]]:
    """Group completed TopicProgress rows into per-day counts and details."""
    days: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        if entry.type not in CATEGORIES:
            continue
        day = entry.date.date()
        bucket = days.setdefault(day.isoformat(), empty_day(day))
        bucket[entry.type] += 1
        bucket["total_count"] += 1
        topic = entry.topic
        if topic is not None and topic.chapter is not None and topic.chapter.subject is not None:
            bucket["details"][entry.type].append({
                "subject": topic.chapter.subject.name,
                "topic": topic.name,
                "completed_at": entry.date.isoformat(),
            })
    result = []
    for key in sorted(days):
        bucket = days[key]
        bucket["goal_progress"] = goal_progress(bucket["total_count"], daily_goal)
        result.append(bucket)
    return result


def activity_range(range_name: str, anchor: date, today: Optional[date] = None) -> Tuple[date, date]:
    """Date span for subject analytics: day, week (Sunday start), month or all (last 365 days)."""
    if range_name == "week":
        start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if range_name == "month":
        last = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last)
    if range_name == "all":
        end = today or utc_today()
        return end - timedelta(days=365), end
    return anchor, anchor


def stats_range(range_name: str, anchor: date) -> Tuple[date, date]:
    """Date span for study stats: day, week (last 7 days), month or year."""
    if range_name == "week":
        return anchor - timedelta(days=6), anchor
    if range_name == "month":
        last = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last)
    if range_name == "year":
        return date(anchor.year, 1, 1), date(anchor.year, 12, 31)
    return anchor, anchor


def study_stats(activities: List[Any], current: int = 0, longest: int = 0) -> Dict[str, Any]:
    stats: Dict[str, Any] = {
        "total_study_time": 0,
        "learning_time": 0,
        "revision_time": 0,
        "practice_time": 0,
        "average_productivity": 0,
        "average_focus_score": 0,
        "total_interruptions": 0,
        "goal_completion_rate": 0,
        "current_streak": current,
        "longest_streak": longest,
        "daily_breakdown": [
            {
                "date": a.date.isoformat(),
                "study_time": a.study_time,
                "goal_completed": a.goal_completed,
                "productivity": a.productivity,
                "focus_score": a.focus_score,
                "interruptions": a.interruptions,
                "learning_time": a.learning_time,
                "revision_time": a.revision_time,
                "practice_time": a.practice_time,
            }
            for a in activities
        ],
    }
    if activities:
        n = len(activities)
        stats["total_study_time"] = sum(a.study_time for a in activities)
        stats["learning_time"] = sum(a.learning_time for a in activities)
        stats["revision_time"] = sum(a.revision_time for a in activities)
        stats["practice_time"] = sum(a.practice_time for a in activities)
        stats["average_productivity"] = round_half_up(sum(a.productivity for a in activities) / n, 1)
        stats["average_focus_score"] = round_half_up(sum(a.focus_score for a in activities) / n, 1)
        stats["total_interruptions"] = sum(a.interruptions for a in activities)
        stats["goal_completion_rate"] = round_half_up(sum(1 for a in activities if a.goal_completed) / n * 100, 1)
    return stats
