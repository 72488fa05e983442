from __future__ import annotations

import logging
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, selectinload

from ..countdown import countdown
from ..db import get_db, with_retry
from ..foundation import exam_foundation
from ..marks import mock_test_summary, projected_total, score_statistics
from ..models import Chapter, Subject, User
from ..progress import CATEGORIES, completion_stats, subject_snapshot
from ..recommendations import smart_recommendations
from .assessments import mock_test_out, test_out
from .auth import CurrentUser, get_current_user
from .study import activity_out, streak_out
from .study_plan import scheduled_out
from .subjects import subject_out


router = APIRouter(prefix="/api", tags=["user"])
logger = logging.getLogger(__name__)


class ExamDetails(BaseModel):
    exam_name: Optional[str] = Field(default=None, max_length=128)
    exam_date: Optional[dt.date] = None
    target_score: Optional[int] = Field(default=None, ge=0, le=100)
    total_marks: Optional[int] = Field(default=None, gt=0)
    target_marks: Optional[int] = Field(default=None, gt=0)


class OnboardingRequest(BaseModel):
    exam_name: str = Field(min_length=1, max_length=128)
    exam_date: dt.date
    target_score: int = Field(ge=0, le=100)
    total_marks: int = Field(gt=0)
    target_marks: int = Field(gt=0)


def profile_out(user: User) -> dict:
    return {
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "exam_name": user.exam_name,
        "exam_date": user.exam_date.isoformat() if user.exam_date else None,
        "target_score": user.target_score,
        "total_marks": user.total_marks,
        "target_marks": user.target_marks,
        "created_at": user.created_at.isoformat(),
        "needs_onboarding": user.exam_date is None,
    }


def _account(db: Session, username: str) -> User:
    account = db.get(User, username)
    if account is None:
        raise HTTPException(status_code=404, detail="User not found")
    return account


def _save(db: Session, account: User, what: str) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not save %s for %s", what, account.username)
        raise HTTPException(status_code=500, detail=str(e))
    db.refresh(account)


@router.get("/user/profile")
async def read_profile(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return profile_out(_account(db, user.username))


@router.patch("/user/exam-details")
async def update_exam_details(req: ExamDetails, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = _account(db, user.username)
    for field, value in req.model_dump(exclude_unset=True).items():
        setattr(account, field, value)
    _save(db, account, "exam details")
    return profile_out(account)


@router.post("/onboarding")
async def onboard(req: OnboardingRequest, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = _account(db, user.username)
    for field, value in req.model_dump().items():
        setattr(account, field, value)
    _save(db, account, "onboarding")
    logger.info("Onboarded %s for %s on %s", user.username, account.exam_name, account.exam_date)
    return {"success": True, "user": profile_out(account)}


def _load_subjects(db: Session, username: str):
    return (
        db.query(Subject)
        .options(
            selectinload(Subject.chapters).selectinload(Chapter.topics),
            selectinload(Subject.tests),
            selectinload(Subject.mock_tests),
        )
        .filter(Subject.username == username)
        .order_by(Subject.position, Subject.id)
        .all()
    )


@router.get("/user/dashboard")
def dashboard(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = _account(db, user.username)
    subjects = with_retry(lambda: _load_subjects(db, user.username), db)

    foundation = exam_foundation(subjects)
    metrics = foundation["metrics"]
    subject_rows = []
    for s in subjects:
        snap = subject_snapshot(s)
        subject_rows.append({
            "id": s.id,
            "name": s.name,
            "weightage": s.weightage,
            "foundation_level": s.foundation_level,
            "overall_progress": snap["overall"],
            **{f"{c}_progress": snap[c] for c in CATEGORIES},
            "completion": completion_stats(s),
            "test_statistics": score_statistics(s.tests),
            "mock_tests": mock_test_summary(s.mock_tests),
        })
    total_chapters = sum(r["completion"]["chapters"]["total"] for r in subject_rows)
    completed_chapters = sum(r["completion"]["chapters"]["completed"] for r in subject_rows)

    return {
        "user": profile_out(account),
        "progress": {"overall": metrics["overall"], **{c: metrics[c] for c in CATEGORIES}},
        "completed_chapters": completed_chapters,
        "total_chapters": total_chapters,
        "subjects": subject_rows,
        "foundation": foundation,
        "marks": projected_total(subjects, account.target_marks),
        "countdown": countdown(account.exam_date, metrics) if account.exam_date else None,
        "recommendations": smart_recommendations(subjects),
    }


@router.get("/user/export")
async def export_data(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = _account(db, user.username)
    subjects = _load_subjects(db, user.username)
    exported = []
    for s in subjects:
        data = subject_out(s)
        data["tests"] = [test_out(t) for t in s.tests]
        data["mock_tests"] = [mock_test_out(m) for m in s.mock_tests]
        exported.append(data)
    return {
        "exported_at": dt.datetime.utcnow().isoformat(),
        "user": profile_out(account),
        "subjects": exported,
        "study_streak": streak_out(account.study_streak) if account.study_streak else None,
        "daily_activities": [activity_out(a) for a in sorted(account.daily_activities, key=lambda a: a.date)],
        "topic_progress": [
            {
                "topic_id": p.topic_id,
                "subject_id": p.subject_id,
                "type": p.type,
                "completed": p.completed,
                "date": p.date.isoformat(),
            }
            for p in sorted(account.topic_progress, key=lambda p: p.date)
        ],
        "scheduled_tests": [scheduled_out(r) for r in sorted(account.scheduled_tests, key=lambda r: r.scheduled_for)],
    }


@router.delete("/user", status_code=204)
async def delete_account(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    account = _account(db, user.username)
    try:
        db.delete(account)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Could not delete account %s", user.username)
        raise HTTPException(status_code=500, detail=str(e))
    logger.info("Deleted account %s", user.username)
