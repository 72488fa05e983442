"""Owner-scoped lookups. Rows belonging to someone else read as missing."""
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .models import Chapter, MockTest, Subject, Test, Topic


def owned_subject(db: Session, username: str, subject_id: int) -> Subject:
    subject = db.query(Subject).filter(Subject.id == subject_id, Subject.username == username).first()
    if subject is None:
        raise HTTPException(status_code=404, detail="Subject not found")
    return subject


def owned_chapter(db: Session, username: str, chapter_id: int) -> Chapter:
    chapter = (
        db.query(Chapter)
        .join(Subject, Chapter.subject_id == Subject.id)
        .filter(Chapter.id == chapter_id, Subject.username == username)
        .first()
    )
    if chapter is None:
        raise HTTPException(status_code=404, detail="Chapter not found")
    return chapter


def owned_topic(db: Session, username: str, topic_id: int) -> Topic:
    topic = (
        db.query(Topic)
        .join(Chapter, Topic.chapter_id == Chapter.id)
        .join(Subject, Chapter.subject_id == Subject.id)
        .filter(Topic.id == topic_id, Subject.username == username)
        .first()
    )
    if topic is None:
        raise HTTPException(status_code=404, detail="Topic not found")
    return topic


def owned_test(db: Session, username: str, test_id: int) -> Test:
    test = (
        db.query(Test)
        .join(Subject, Test.subject_id == Subject.id)
        .filter(Test.id == test_id, Subject.username == username)
        .first()
    )
    if test is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return test


def owned_mock_test(db: Session, username: str, mock_test_id: int) -> MockTest:
    mock = (
        db.query(MockTest)
        .join(Subject, MockTest.subject_id == Subject.id)
        .filter(MockTest.id == mock_test_id, Subject.username == username)
        .first()
    )
    if mock is None:
        raise HTTPException(status_code=404, detail="Mock test not found")
    return mock
