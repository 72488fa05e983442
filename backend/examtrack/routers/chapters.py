from __future__ import annotations
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..access import owned_chapter
from ..db import get_db
from ..models import Topic
from ..rollup import refresh_subject
from .auth import CurrentUser, get_current_user
from .subjects import chapter_out, topic_out


router = APIRouter(prefix="/api/chapters", tags=["chapters"])
logger = logging.getLogger(__name__)


class ChapterUpdate(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=256)
	important: Optional[bool] = None


class TopicCreate(BaseModel):
	name: str = Field(min_length=1, max_length=256)
	important: bool = False


class TopicReorder(BaseModel):
	topic_ids: List[int]


@router.patch("/{chapter_id}")
async def update_chapter(
	chapter_id: int,
	req: ChapterUpdate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	chapter = owned_chapter(db, user.username, chapter_id)
	if req.name is not None:
		chapter.name = req.name.strip()
	if req.important is not None:
		chapter.important = req.important
	try:
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not update chapter %s", chapter_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(chapter)
	return chapter_out(chapter)


@router.delete("/{chapter_id}", status_code=204)
async def delete_chapter(chapter_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	chapter = owned_chapter(db, user.username, chapter_id)
	subject = chapter.subject
	try:
		db.delete(chapter)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not delete chapter %s", chapter_id)
		raise HTTPException(status_code=500, detail=str(e))


@router.post("/{chapter_id}/topics", status_code=201)
async def create_topic(
	chapter_id: int,
	req: TopicCreate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	chapter = owned_chapter(db, user.username, chapter_id)
	last = db.query(func.max(Topic.position)).filter(Topic.chapter_id == chapter.id).scalar()
	topic = Topic(
		chapter_id=chapter.id,
		name=req.name.strip(),
		important=req.important,
		position=(last + 1) if last is not None else 0,
	)
	try:
		db.add(topic)
		# a new unlearned topic lowers the chapter averages
		refresh_subject(db, chapter.subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not create topic in chapter %s", chapter_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(topic)
	return topic_out(topic)


@router.put("/{chapter_id}/topics/reorder")
async def reorder_topics(
	chapter_id: int,
	req: TopicReorder,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	chapter = owned_chapter(db, user.username, chapter_id)
	by_id = {t.id: t for t in chapter.topics}
	if len(set(req.topic_ids)) != len(req.topic_ids) or set(req.topic_ids) != set(by_id):
		raise HTTPException(status_code=400, detail="topic_ids must list every topic of the chapter exactly once")
	try:
		for position, topic_id in enumerate(req.topic_ids):
			by_id[topic_id].position = position
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not reorder topics in chapter %s", chapter_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.expire(chapter, ["topics"])
	return [topic_out(t) for t in chapter.topics]
