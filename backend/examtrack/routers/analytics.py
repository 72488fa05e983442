from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from ..activity import (
    activity_range,
    current_streak,
    day_bounds,
    empty_day,
    goal_progress,
    group_by_day,
    utc_today,
)
from ..db import get_db
from ..models import Chapter, Subject, Topic, TopicProgress
from ..progress import CATEGORIES, round_half_up
from ..settings import settings
from .auth import CurrentUser, get_current_user


router = APIRouter(prefix="/api/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)


def _completed_between(db: Session, username: str, start: datetime, end: datetime) -> List[TopicProgress]:
    return (
        db.query(TopicProgress)
        .options(joinedload(TopicProgress.topic).joinedload(Topic.chapter).joinedload(Chapter.subject))
        .filter(
            TopicProgress.username == username,
            TopicProgress.completed.is_(True),
            TopicProgress.date >= start,
            TopicProgress.date <= end,
        )
        .order_by(TopicProgress.date)
        .all()
    )


def _active_days(db: Session, username: str) -> set:
    rows = (
        db.query(TopicProgress.date)
        .filter(TopicProgress.username == username, TopicProgress.completed.is_(True))
        .all()
    )
    return {r[0].date() for r in rows}


@router.get("/calendar")
async def calendar_day(
    day: Optional[date] = Query(default=None, alias="date"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # progress timestamps are stored in UTC
    day = day or utc_today()
    start, end = day_bounds(day)
    grouped = group_by_day(_completed_between(db, user.username, start, end), settings.daily_goal_activities)
    result = grouped[0] if grouped else {**empty_day(day), "goal_progress": goal_progress(0, settings.daily_goal_activities)}
    result["streak"] = current_streak(_active_days(db, user.username), utc_today())
    result["daily_goal"] = settings.daily_goal_activities
    return result


@router.get("/calendar/month")
async def calendar_range(
    start: date,
    end: date,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    entries = _completed_between(db, user.username, day_bounds(start)[0], day_bounds(end)[1])
    return {
        "days": group_by_day(entries, settings.daily_goal_activities),
        "streak": current_streak(_active_days(db, user.username), utc_today()),
        "daily_goal": settings.daily_goal_activities,
    }


@router.get("/subjects")
async def subject_activity(
    range_name: Literal["day", "week", "month", "all"] = Query(default="day", alias="range"),
    anchor: Optional[date] = Query(default=None, alias="date"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = utc_today()
    first, last = activity_range(range_name, anchor or today, today)
    start, end = day_bounds(first)[0], day_bounds(last)[1]
    entries = (
        db.query(TopicProgress.subject_id, TopicProgress.type)
        .filter(
            TopicProgress.username == user.username,
            TopicProgress.completed.is_(True),
            TopicProgress.date >= start,
            TopicProgress.date <= end,
        )
        .all()
    )
    counts: Dict[int, Dict[str, int]] = {}
    for subject_id, kind in entries:
        if kind not in CATEGORIES:
            continue
        bucket = counts.setdefault(subject_id, {c: 0 for c in CATEGORIES})
        bucket[kind] += 1

    subjects = db.query(Subject).filter(Subject.username == user.username).order_by(Subject.position, Subject.id).all()
    rows = []
    for s in subjects:
        activity = dict(counts.get(s.id, {c: 0 for c in CATEGORIES}))
        activity["total"] = sum(activity[c] for c in CATEGORIES)
        rows.append({
            "id": s.id,
            "name": s.name,
            "weightage": s.weightage,
            "overall_progress": s.overall_progress,
            **{f"{c}_progress": getattr(s, f"{c}_progress") for c in CATEGORIES},
            "activity": activity,
        })
    # most active first, ties keep position order
    rows = sorted(rows, key=lambda r: r["activity"]["total"], reverse=True)

    totals = {c: sum(r["activity"][c] for r in rows) for c in CATEGORIES}
    totals["total"] = sum(r["activity"]["total"] for r in rows)
    for r in rows:
        r["activity_percentage"] = round_half_up(r["activity"]["total"] / totals["total"] * 100) if totals["total"] else 0

    return {
        "subjects": rows,
        "total_stats": totals,
        "date_range": {"start": start.isoformat(), "end": end.isoformat(), "range": range_name},
    }
