import sqlite3
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from examtrack.cleanup import merge_duplicate_daily_activities
from examtrack.db import Base, with_retry
from examtrack.models import DailyActivity, Subject, User


def flaky(failures):
    calls = {"n": 0}

    def operation():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))
        return "ok"

    return operation, calls


def test_with_retry_recovers_from_transient_errors():
    operation, calls = flaky(2)
    assert with_retry(operation, retries=3, delay=0) == "ok"
    assert calls["n"] == 3


def test_with_retry_gives_up():
    operation, calls = flaky(10)
    with pytest.raises(OperationalError):
        with_retry(operation, retries=3, delay=0)
    assert calls["n"] == 4


def test_with_retry_does_not_retry_other_errors():
    calls = {"n": 0}

    def operation():
        calls["n"] += 1
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        with_retry(operation, retries=3, delay=0)
    assert calls["n"] == 1


def test_with_retry_reconnects_session_after_disconnect(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'retry.db'}")
    Base.metadata.create_all(engine)
    drops = {"left": 1}

    @event.listens_for(engine, "do_execute")
    def drop_connection(cursor, statement, parameters, context):
        if "FROM subjects" in statement and drops["left"]:
            drops["left"] -= 1
            raise sqlite3.OperationalError("disk I/O error")

    @event.listens_for(engine, "handle_error")
    def treat_as_disconnect(ctx):
        ctx.is_disconnect = True

    session = sessionmaker(bind=engine)()
    try:
        session.add(User(username="alice", password_hash="x"))
        session.add(Subject(username="alice", name="Algorithms"))
        session.commit()

        subjects = with_retry(lambda: session.query(Subject).all(), session, retries=3, delay=0)
        assert [s.name for s in subjects] == ["Algorithms"]
        assert drops["left"] == 0
    finally:
        session.close()
        engine.dispose()


def test_merge_duplicate_daily_activities(db):
    db.add(User(username="alice", password_hash="x"))
    day = date(2024, 1, 5)
    db.add_all([
        DailyActivity(username="alice", date=day, study_time=30, learning_time=30, topics_count=1),
        DailyActivity(username="alice", date=day, study_time=20, revision_time=20, goal_completed=True),
        DailyActivity(username="alice", date=date(2024, 1, 6), study_time=10),
    ])
    db.commit()

    assert merge_duplicate_daily_activities(db) == 1
    rows = db.query(DailyActivity).order_by(DailyActivity.date).all()
    assert len(rows) == 2
    merged = rows[0]
    assert merged.study_time == 50
    assert merged.revision_time == 20
    assert merged.topics_count == 1
    assert merged.goal_completed is True
