from __future__ import annotations
import logging
from collections import defaultdict
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import DailyActivity


logger = logging.getLogger(__name__)


def merge_duplicate_daily_activities(db: Session) -> int:
	# Keep the oldest row per (user, day), fold minutes and counts of the rest into it
	rows = db.query(DailyActivity).order_by(DailyActivity.created_at, DailyActivity.id).all()
	groups: dict = defaultdict(list)
	for row in rows:
		groups[(row.username, row.date)].append(row)

	removed = 0
	for (username, day), group in groups.items():
		if len(group) < 2:
			continue
		keep, rest = group[0], group[1:]
		for field in ("study_time", "learning_time", "revision_time", "practice_time", "topics_count", "tests_count", "interruptions"):
			setattr(keep, field, sum(getattr(r, field) or 0 for r in group))
		keep.goal_completed = any(r.goal_completed for r in group)
		ids = [r.id for r in rest]
		res = db.execute(delete(DailyActivity).where(DailyActivity.id.in_(ids)))
		removed += res.rowcount or 0
		logger.info("Merged %s duplicate daily activities for %s on %s", len(rest), username, day)

	db.commit()
	return removed
