from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..activity import utc_today
from ..countdown import days_until
from ..db import get_db
from ..models import ScheduledTest, Subject, User
from ..scheduler import TestScheduler
from .auth import CurrentUser, get_current_user


router = APIRouter(prefix="/api/study-plan", tags=["study-plan"])
logger = logging.getLogger(__name__)


class ScheduledTestUpdate(BaseModel):
    test_id: int
    completed: bool
    score: Optional[float] = Field(default=None, ge=0, le=100)


def scheduled_out(row: ScheduledTest) -> dict:
    return {
        "id": row.id,
        "key": row.key,
        "type": row.type,
        "name": row.name,
        "questions": row.questions,
        "marks": row.marks,
        "duration": row.duration,
        "scheduled_for": row.scheduled_for.isoformat(),
        "subject_ids": list(row.subject_ids or []),
        "completed": row.completed,
        "score": row.score,
        "completed_at": row.completed_at.isoformat() if row.completed_at else None,
    }


@router.get("/tests")
async def pending_tests(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(ScheduledTest)
        .filter(ScheduledTest.username == user.username, ScheduledTest.completed.is_(False))
        .order_by(ScheduledTest.scheduled_for, ScheduledTest.id)
        .all()
    )
    return [scheduled_out(r) for r in rows]


@router.post("/tests")
async def generate_tests(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = db.get(User, user.username)
    if account is None or account.exam_date is None:
        raise HTTPException(status_code=400, detail="Set an exam date before generating a test plan")
    subjects = (
        db.query(Subject)
        .filter(Subject.username == user.username)
        .order_by(Subject.position, Subject.id)
        .all()
    )
    today = utc_today()
    scheduler = TestScheduler(
        subjects,
        {s.id: s.learning_progress for s in subjects},
        days_until(account.exam_date, today),
        today=today,
    )
    schedule = scheduler.generate()

    existing = {
        key for (key,) in db.query(ScheduledTest.key).filter(ScheduledTest.username == user.username).all()
    }
    created = 0
    try:
        for entry in schedule:
            if entry.key in existing:
                continue
            db.add(ScheduledTest(
                username=user.username,
                key=entry.key,
                type=entry.type,
                name=entry.name,
                questions=entry.questions,
                marks=entry.marks,
                duration=entry.duration,
                scheduled_for=entry.scheduled_for,
                subject_ids=list(entry.subject_ids),
                completed=entry.completed,
            ))
            created += 1
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not save test plan for %s", user.username)
        raise HTTPException(status_code=500, detail=str(e))
    logger.info("Generated %s tests (%s new) for %s", len(schedule), created, user.username)
    return [entry.to_dict() for entry in schedule]


@router.put("/tests")
async def complete_test(req: ScheduledTestUpdate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    row = (
        db.query(ScheduledTest)
        .filter(ScheduledTest.id == req.test_id, ScheduledTest.username == user.username)
        .first()
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Scheduled test not found")
    row.completed = req.completed
    row.score = req.score
    row.completed_at = datetime.utcnow() if req.completed else None
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not update scheduled test %s", req.test_id)
        raise HTTPException(status_code=500, detail=str(e))
    db.refresh(row)
    return scheduled_out(row)
