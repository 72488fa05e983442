from __future__ import annotations
import logging

from sqlalchemy.orm import Session

from .marks import subject_expected_marks
from .models import Chapter, Subject
from .progress import CATEGORIES, chapter_snapshot, subject_foundation_level, subject_snapshot


logger = logging.getLogger(__name__)


def refresh_chapter(chapter: Chapter) -> dict:
    snap = chapter_snapshot(chapter)
    for category in CATEGORIES:
        setattr(chapter, f"{category}_progress", snap[category])
    chapter.overall_progress = snap["overall"]
    return snap


def refresh_subject(db: Session, subject: Subject) -> dict:
    """Recompute stored progress columns for a subject and all its chapters.

    Flushes pending changes first so relationship collections reflect them;
    the caller owns the commit.
    """
    db.flush()
    db.expire(subject, ["chapters", "tests"])
    for chapter in subject.chapters:
        db.expire(chapter, ["topics"])
        refresh_chapter(chapter)
    snap = subject_snapshot(subject)
    for category in CATEGORIES:
        setattr(subject, f"{category}_progress", snap[category])
    subject.overall_progress = snap["overall"]
    subject.foundation_level = subject_foundation_level(subject)
    subject.expected_marks = subject_expected_marks(subject)
    logger.debug("Refreshed subject %s progress: %s", subject.id, snap)
    return snap
