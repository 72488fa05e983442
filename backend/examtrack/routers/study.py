from __future__ import annotations

import logging
import datetime as dt
from datetime import timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..activity import advance_streak, stats_range, study_stats, utc_today
from ..db import get_db
from ..models import DailyActivity, StudyStreak
from ..settings import settings
from .auth import CurrentUser, get_current_user


router = APIRouter(prefix="/api", tags=["study"])
logger = logging.getLogger(__name__)

# minute and count columns that a POST adds onto the day's row
_ADDITIVE_FIELDS = ("study_time", "learning_time", "revision_time", "practice_time", "topics_count", "tests_count", "interruptions")


class StreakUpdate(BaseModel):
    daily_progress: float = Field(default=0, ge=0)
    daily_goal_hours: Optional[int] = Field(default=None, ge=1, le=24)


class ActivityEntry(BaseModel):
    date: Optional[dt.date] = None
    study_time: int = Field(default=0, ge=0)
    learning_time: int = Field(default=0, ge=0)
    revision_time: int = Field(default=0, ge=0)
    practice_time: int = Field(default=0, ge=0)
    topics_count: int = Field(default=0, ge=0)
    tests_count: int = Field(default=0, ge=0)
    productivity: Optional[float] = Field(default=None, ge=0, le=100)
    focus_score: Optional[float] = Field(default=None, ge=0, le=100)
    interruptions: int = Field(default=0, ge=0)
    goal_completed: Optional[bool] = None


def streak_out(streak: StudyStreak) -> dict:
    return {
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
        "last_study_date": streak.last_study_date.isoformat() if streak.last_study_date else None,
        "daily_goal_hours": streak.daily_goal_hours,
        "daily_progress": streak.daily_progress,
    }


def activity_out(a: DailyActivity) -> dict:
    return {
        "id": a.id,
        "date": a.date.isoformat(),
        **{f: getattr(a, f) for f in _ADDITIVE_FIELDS},
        "productivity": a.productivity,
        "focus_score": a.focus_score,
        "goal_completed": a.goal_completed,
    }


def get_or_create_streak(db: Session, username: str) -> StudyStreak:
    streak = db.query(StudyStreak).filter(StudyStreak.username == username).first()
    if streak is None:
        streak = StudyStreak(
            username=username,
            current_streak=0,
            longest_streak=0,
            daily_goal_hours=settings.default_daily_goal_hours,
            daily_progress=0,
        )
        db.add(streak)
        db.commit()
        db.refresh(streak)
    return streak


@router.get("/study-streak")
async def read_streak(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return streak_out(get_or_create_streak(db, user.username))


@router.patch("/study-streak")
async def mark_studied(req: StreakUpdate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    streak = get_or_create_streak(db, user.username)
    today = utc_today()
    streak.current_streak, streak.longest_streak = advance_streak(
        streak.current_streak, streak.longest_streak, streak.last_study_date, today
    )
    streak.last_study_date = today
    streak.daily_progress = req.daily_progress
    if req.daily_goal_hours is not None:
        streak.daily_goal_hours = req.daily_goal_hours
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not update study streak for %s", user.username)
        raise HTTPException(status_code=500, detail=str(e))
    db.refresh(streak)
    return streak_out(streak)


@router.get("/daily-activities")
async def list_activities(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    since = utc_today() - timedelta(days=30)
    rows = (
        db.query(DailyActivity)
        .filter(DailyActivity.username == user.username, DailyActivity.date >= since)
        .order_by(DailyActivity.date)
        .all()
    )
    return [activity_out(a) for a in rows]


@router.post("/daily-activities")
async def record_activity(req: ActivityEntry, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    day = req.date or utc_today()
    row = (
        db.query(DailyActivity)
        .filter(DailyActivity.username == user.username, DailyActivity.date == day)
        .order_by(DailyActivity.id)
        .first()
    )
    if row is None:
        row = DailyActivity(username=user.username, date=day)
        for field in _ADDITIVE_FIELDS:
            setattr(row, field, 0)
        db.add(row)
    for field in _ADDITIVE_FIELDS:
        setattr(row, field, (getattr(row, field) or 0) + getattr(req, field))
    if req.productivity is not None:
        row.productivity = req.productivity
    if req.focus_score is not None:
        row.focus_score = req.focus_score
    if req.goal_completed is not None:
        row.goal_completed = req.goal_completed
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not record daily activity for %s", user.username)
        raise HTTPException(status_code=500, detail=str(e))
    db.refresh(row)
    return activity_out(row)


@router.get("/study-stats")
async def read_study_stats(
    range_name: Literal["day", "week", "month", "year"] = Query(default="week", alias="range"),
    anchor: Optional[dt.date] = Query(default=None, alias="date"),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    start, end = stats_range(range_name, anchor or utc_today())
    rows = (
        db.query(DailyActivity)
        .filter(DailyActivity.username == user.username, DailyActivity.date >= start, DailyActivity.date <= end)
        .order_by(DailyActivity.date)
        .all()
    )
    streak = db.query(StudyStreak).filter(StudyStreak.username == user.username).first()
    stats = study_stats(
        rows,
        streak.current_streak if streak else 0,
        streak.longest_streak if streak else 0,
    )
    stats["range"] = {"start": start.isoformat(), "end": end.isoformat(), "range": range_name}
    return stats
