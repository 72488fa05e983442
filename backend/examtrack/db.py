from __future__ import annotations
import logging
import time
from typing import Callable, TypeVar

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import DisconnectionError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./examtrack.db"

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
	_engine_kwargs["connect_args"] = {"check_same_thread": False}
	# In-memory databases live on a single connection
	if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
		_engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()

T = TypeVar("T")

RETRYABLE_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


def with_retry(
	operation: Callable[[], T],
	db: Session | None = None,
	retries: int | None = None,
	delay: float | None = None,
) -> T:
	"""Run a database operation, retrying connection-class failures.

	When ``db`` is given its invalidated transaction is rolled back before each
	retry so the session can reconnect. Waits ``delay * attempt`` seconds
	between attempts (linear back-off) and re-raises the last error once the
	retries are used up.
	"""
	max_retries = settings.db_max_retries if retries is None else retries
	base_delay = settings.db_retry_delay_seconds if delay is None else delay
	attempt = 0
	while True:
		try:
			return operation()
		except RETRYABLE_ERRORS as err:
			if attempt >= max_retries:
				raise
			attempt += 1
			if db is not None:
				db.rollback()
			logger.warning("Retrying database operation (%s attempts remaining): %s", max_retries - attempt + 1, err)
			time.sleep(base_delay * attempt)


# Best-effort lightweight migrations for existing databases (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		logger.exception("Could not inspect database schema")
		return
	if "users" in tables:
		cols = {c["name"] for c in inspector.get_columns("users")}
		with engine.begin() as conn:
			if "target_marks" not in cols:
				conn.exec_driver_sql("ALTER TABLE users ADD COLUMN target_marks INTEGER")
			if "total_marks" not in cols:
				conn.exec_driver_sql("ALTER TABLE users ADD COLUMN total_marks INTEGER")
	if "subjects" in tables:
		cols = {c["name"] for c in inspector.get_columns("subjects")}
		if "position" not in cols:
			with engine.begin() as conn:
				conn.exec_driver_sql("ALTER TABLE subjects ADD COLUMN position INTEGER DEFAULT 0 NOT NULL")
	if "topics" in tables:
		cols = {c["name"] for c in inspector.get_columns("topics")}
		if "position" not in cols:
			with engine.begin() as conn:
				conn.exec_driver_sql("ALTER TABLE topics ADD COLUMN position INTEGER DEFAULT 0 NOT NULL")
