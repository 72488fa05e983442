from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..access import owned_topic
from ..db import get_db
from ..models import TopicProgress
from ..progress import CATEGORIES, MAX_CATEGORY_COUNT, chapter_progress, subject_progress
from ..rollup import refresh_subject
from .auth import CurrentUser, get_current_user
from .subjects import topic_out


router = APIRouter(prefix="/api/topics", tags=["topics"])
logger = logging.getLogger(__name__)

# days until the next revision, keyed by the revision count just reached
REVISION_INTERVALS = {1: 1, 2: 3, 3: 7}

_COUNT_FIELDS = {"revision": "revision_count", "practice": "practice_count", "test": "test_count"}


def next_revision_after(count: int, now: datetime) -> datetime:
	return now + timedelta(days=REVISION_INTERVALS.get(count, REVISION_INTERVALS[MAX_CATEGORY_COUNT]))


class TopicUpdate(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=256)
	important: Optional[bool] = None
	learning_status: Optional[bool] = None
	revision_count: Optional[int] = Field(default=None, ge=0, le=MAX_CATEGORY_COUNT)
	practice_count: Optional[int] = Field(default=None, ge=0, le=MAX_CATEGORY_COUNT)
	test_count: Optional[int] = Field(default=None, ge=0, le=MAX_CATEGORY_COUNT)


class ProgressRequest(BaseModel):
	type: str


class StatusRequest(BaseModel):
	type: Literal["learning", "revision", "practice", "test"]
	current_value: int = Field(default=0, ge=0, le=MAX_CATEGORY_COUNT)
	new_value: int = Field(default=0, ge=0, le=MAX_CATEGORY_COUNT)
	update_progress: bool = True


@router.patch("/{topic_id}")
async def update_topic(
	topic_id: int,
	req: TopicUpdate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	topic = owned_topic(db, user.username, topic_id)
	changes = req.model_dump(exclude_unset=True, exclude_none=True)
	if "name" in changes:
		changes["name"] = changes["name"].strip()
	for field, value in changes.items():
		setattr(topic, field, value)
	try:
		refresh_subject(db, topic.chapter.subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not update topic %s", topic_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(topic)
	return topic_out(topic)


@router.delete("/{topic_id}", status_code=204)
async def delete_topic(topic_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	topic = owned_topic(db, user.username, topic_id)
	subject = topic.chapter.subject
	try:
		db.delete(topic)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not delete topic %s", topic_id)
		raise HTTPException(status_code=500, detail=str(e))


@router.post("/{topic_id}/progress")
async def record_progress(
	topic_id: int,
	req: ProgressRequest,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	if req.type not in CATEGORIES:
		raise HTTPException(status_code=400, detail="Invalid progress type")
	topic = owned_topic(db, user.username, topic_id)
	subject = topic.chapter.subject
	now = datetime.utcnow()
	entry = TopicProgress(
		username=user.username,
		topic_id=topic.id,
		subject_id=subject.id,
		type=req.type,
		completed=True,
		date=now,
	)
	if req.type == "learning":
		topic.learning_status = True
	else:
		field = _COUNT_FIELDS[req.type]
		setattr(topic, field, min(MAX_CATEGORY_COUNT, (getattr(topic, field) or 0) + 1))
		if req.type == "revision":
			topic.last_revised = now
			topic.next_revision = next_revision_after(topic.revision_count, now)
	try:
		db.add(entry)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not record %s progress on topic %s", req.type, topic_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(entry)
	return {
		"id": entry.id,
		"topic_id": entry.topic_id,
		"subject_id": entry.subject_id,
		"type": entry.type,
		"completed": entry.completed,
		"date": entry.date.isoformat(),
	}


@router.post("/{topic_id}/status")
async def update_status(
	topic_id: int,
	req: StatusRequest,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	topic = owned_topic(db, user.username, topic_id)
	chapter = topic.chapter
	subject = chapter.subject
	names = {"topic_name": topic.name, "chapter_name": chapter.name, "subject_name": subject.name}
	if req.type != "learning" and not topic.learning_status:
		raise HTTPException(
			status_code=400,
			detail={
				"error": "TOPIC_NOT_LEARNED",
				"message": "You need to learn this topic first before marking progress in other categories.",
				"names": names,
			},
		)

	if req.type == "learning":
		topic.learning_status = not topic.learning_status
	else:
		setattr(topic, _COUNT_FIELDS[req.type], req.new_value)
		if req.type == "revision" and req.new_value > req.current_value:
			now = datetime.utcnow()
			topic.last_revised = now
			topic.next_revision = next_revision_after(req.new_value, now)

	completion = {
		"is_completed": False,
		"is_topic_category_completed": False,
		"is_chapter_completed": False,
		"is_subject_completed": False,
		"names": names,
	}
	try:
		refresh_subject(db, subject)
		if req.update_progress:
			if req.type == "learning":
				completion["is_completed"] = topic.learning_status
			else:
				completion["is_completed"] = getattr(topic, _COUNT_FIELDS[req.type]) == req.new_value
			completion["is_topic_category_completed"] = req.type != "learning" and req.new_value == MAX_CATEGORY_COUNT
			completion["is_chapter_completed"] = chapter_progress(chapter, req.type) == 100
			completion["is_subject_completed"] = subject_progress(subject, req.type) == 100
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not update %s status on topic %s", req.type, topic_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(topic)
	return {"success": True, "topic": topic_out(topic), "completion_status": completion}
