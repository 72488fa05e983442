from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..access import owned_subject
from ..db import get_db
from ..marks import score_statistics, subject_expected_marks
from ..models import Chapter, Subject
from ..progress import CATEGORIES, completion_stats, subject_snapshot, topics_count, completed_topics_count
from ..rollup import refresh_subject
from .auth import CurrentUser, get_current_user


router = APIRouter(prefix="/api/subjects", tags=["subjects"])
logger = logging.getLogger(__name__)


class SubjectCreate(BaseModel):
	name: str = Field(min_length=1, max_length=256)
	weightage: float = Field(default=0, ge=0, le=100)


class SubjectUpdate(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=256)
	weightage: Optional[float] = Field(default=None, ge=0, le=100)


class ReorderRequest(BaseModel):
	subject_ids: List[int]


class ChapterCreate(BaseModel):
	name: str = Field(min_length=1, max_length=256)
	important: bool = False


def topic_out(topic) -> Dict[str, Any]:
	return {
		"id": topic.id,
		"chapter_id": topic.chapter_id,
		"name": topic.name,
		"important": topic.important,
		"learning_status": topic.learning_status,
		"revision_count": topic.revision_count,
		"practice_count": topic.practice_count,
		"test_count": topic.test_count,
		"last_revised": topic.last_revised.isoformat() if topic.last_revised else None,
		"next_revision": topic.next_revision.isoformat() if topic.next_revision else None,
		"position": topic.position,
	}


def chapter_out(chapter, with_topics: bool = True) -> Dict[str, Any]:
	data = {
		"id": chapter.id,
		"subject_id": chapter.subject_id,
		"name": chapter.name,
		"important": chapter.important,
		"overall_progress": chapter.overall_progress,
		**{f"{c}_progress": getattr(chapter, f"{c}_progress") for c in CATEGORIES},
		"position": chapter.position,
	}
	if with_topics:
		data["topics"] = [topic_out(t) for t in chapter.topics]
	return data


def subject_out(subject, with_chapters: bool = True) -> Dict[str, Any]:
	data = {
		"id": subject.id,
		"name": subject.name,
		"weightage": subject.weightage,
		"expected_marks": subject.expected_marks,
		"foundation_level": subject.foundation_level,
		"overall_progress": subject.overall_progress,
		**{f"{c}_progress": getattr(subject, f"{c}_progress") for c in CATEGORIES},
		"position": subject.position,
		"topics_count": topics_count(subject),
		"completed_topics": completed_topics_count(subject)["completed"],
	}
	if with_chapters:
		data["chapters"] = [chapter_out(ch) for ch in subject.chapters]
	return data


@router.get("")
async def list_subjects(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subjects = (
		db.query(Subject)
		.filter(Subject.username == user.username)
		.order_by(Subject.position, Subject.id)
		.all()
	)
	return [subject_out(s) for s in subjects]


@router.post("", status_code=201)
async def create_subject(req: SubjectCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	last = db.query(func.max(Subject.position)).filter(Subject.username == user.username).scalar()
	subject = Subject(
		username=user.username,
		name=req.name.strip(),
		weightage=req.weightage,
		position=(last + 1) if last is not None else 0,
	)
	try:
		db.add(subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not create subject for %s", user.username)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(subject)
	logger.info("Created subject %s for %s", subject.id, user.username)
	return subject_out(subject)


@router.get("/weightage")
async def subject_weightage(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subjects = (
		db.query(Subject)
		.filter(Subject.username == user.username)
		.order_by(Subject.position, Subject.id)
		.all()
	)
	rows = [
		{"id": s.id, "name": s.name, "weightage": s.weightage, "expected_marks": subject_expected_marks(s)}
		for s in subjects
	]
	return {"subjects": rows, "total_weightage": sum(s.weightage or 0 for s in subjects)}


@router.post("/reorder")
async def reorder_subjects(req: ReorderRequest, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subjects = db.query(Subject).filter(Subject.username == user.username).all()
	by_id = {s.id: s for s in subjects}
	if len(set(req.subject_ids)) != len(req.subject_ids) or set(req.subject_ids) != set(by_id):
		raise HTTPException(status_code=400, detail="subject_ids must list every subject exactly once")
	try:
		for position, subject_id in enumerate(req.subject_ids):
			by_id[subject_id].position = position
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not reorder subjects for %s", user.username)
		raise HTTPException(status_code=500, detail=str(e))
	return [{"id": sid, "position": pos} for pos, sid in enumerate(req.subject_ids)]


@router.get("/{subject_id}")
async def get_subject(subject_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, subject_id)
	data = subject_out(subject)
	data["completion"] = completion_stats(subject)
	return data


@router.patch("/{subject_id}")
async def update_subject(
	subject_id: int,
	req: SubjectUpdate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	subject = owned_subject(db, user.username, subject_id)
	if req.name is not None:
		subject.name = req.name.strip()
	try:
		if req.weightage is not None:
			subject.weightage = req.weightage
			subject.expected_marks = subject_expected_marks(subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not update subject %s", subject_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(subject)
	return subject_out(subject)


@router.delete("/{subject_id}", status_code=204)
async def delete_subject(subject_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, subject_id)
	try:
		db.delete(subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not delete subject %s", subject_id)
		raise HTTPException(status_code=500, detail=str(e))
	logger.info("Deleted subject %s for %s", subject_id, user.username)


@router.get("/{subject_id}/progress")
async def subject_progress(subject_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, subject_id)
	snap = subject_snapshot(subject)
	return {
		"subject_id": subject.id,
		"overall_progress": snap["overall"],
		**{f"{c}_progress": snap[c] for c in CATEGORIES},
		"foundation_level": subject.foundation_level,
		"completion": completion_stats(subject),
		"chapters": [chapter_out(ch, with_topics=False) for ch in subject.chapters],
	}


@router.get("/{subject_id}/tests")
async def subject_tests(subject_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, subject_id)
	tests = sorted(subject.tests, key=lambda t: t.created_at, reverse=True)
	return {
		"tests": [
			{
				"id": t.id,
				"name": t.name,
				"score": t.score,
				"total_marks": t.total_marks,
				"marks_scored": t.marks_scored,
				"created_at": t.created_at.isoformat(),
			}
			for t in tests
		],
		"statistics": score_statistics(tests),
		"expected_marks": subject_expected_marks(subject),
	}


@router.post("/{subject_id}/chapters", status_code=201)
async def create_chapter(
	subject_id: int,
	req: ChapterCreate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	subject = owned_subject(db, user.username, subject_id)
	last = db.query(func.max(Chapter.position)).filter(Chapter.subject_id == subject.id).scalar()
	chapter = Chapter(
		subject_id=subject.id,
		name=req.name.strip(),
		important=req.important,
		position=(last + 1) if last is not None else 0,
	)
	try:
		db.add(chapter)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not create chapter in subject %s", subject_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(chapter)
	return chapter_out(chapter)
