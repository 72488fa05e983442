from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


class User(Base):
	__tablename__ = "users"
	# Primary key is username (unique single identifier)
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	name = Column(String(256), nullable=True)
	exam_name = Column(String(128), nullable=True)
	exam_date = Column(Date, nullable=True)
	target_score = Column(Integer, nullable=True)
	total_marks = Column(Integer, nullable=True)
	target_marks = Column(Integer, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	subjects = relationship("Subject", back_populates="user", cascade="all, delete-orphan", order_by="Subject.position")
	study_streak = relationship("StudyStreak", back_populates="user", cascade="all, delete-orphan", uselist=False)
	daily_activities = relationship("DailyActivity", cascade="all, delete-orphan")
	topic_progress = relationship("TopicProgress", cascade="all, delete-orphan")
	scheduled_tests = relationship("ScheduledTest", cascade="all, delete-orphan")
	sessions = relationship("AuthSession", cascade="all, delete-orphan")


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Token id (jti); deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Subject(Base):
	__tablename__ = "subjects"
	id = Column(Integer, primary_key=True, index=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	weightage = Column(Float, default=0.0, nullable=False)  # % of total exam marks
	expected_marks = Column(Float, default=0.0, nullable=False)
	foundation_level = Column(String(16), default="Beginner", nullable=False)
	overall_progress = Column(Float, default=0.0, nullable=False)
	learning_progress = Column(Float, default=0.0, nullable=False)
	revision_progress = Column(Float, default=0.0, nullable=False)
	practice_progress = Column(Float, default=0.0, nullable=False)
	test_progress = Column(Float, default=0.0, nullable=False)
	position = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	user = relationship("User", back_populates="subjects")
	chapters = relationship("Chapter", back_populates="subject", cascade="all, delete-orphan", order_by="Chapter.position")
	tests = relationship("Test", back_populates="subject", cascade="all, delete-orphan", order_by="Test.created_at")
	mock_tests = relationship("MockTest", back_populates="subject", cascade="all, delete-orphan")


class Chapter(Base):
	__tablename__ = "chapters"
	id = Column(Integer, primary_key=True, index=True)
	subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	important = Column(Boolean, default=False, nullable=False)
	overall_progress = Column(Float, default=0.0, nullable=False)
	learning_progress = Column(Float, default=0.0, nullable=False)
	revision_progress = Column(Float, default=0.0, nullable=False)
	practice_progress = Column(Float, default=0.0, nullable=False)
	test_progress = Column(Float, default=0.0, nullable=False)
	position = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	subject = relationship("Subject", back_populates="chapters")
	topics = relationship("Topic", back_populates="chapter", cascade="all, delete-orphan", order_by="Topic.position")


class Topic(Base):
	__tablename__ = "topics"
	id = Column(Integer, primary_key=True, index=True)
	chapter_id = Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	important = Column(Boolean, default=False, nullable=False)
	learning_status = Column(Boolean, default=False, nullable=False)
	revision_count = Column(Integer, default=0, nullable=False)  # 0..3
	practice_count = Column(Integer, default=0, nullable=False)  # 0..3
	test_count = Column(Integer, default=0, nullable=False)  # 0..3
	last_revised = Column(DateTime, nullable=True)
	next_revision = Column(DateTime, nullable=True)
	position = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	chapter = relationship("Chapter", back_populates="topics")
	progress_entries = relationship("TopicProgress", back_populates="topic", cascade="all, delete-orphan")


class Test(Base):
	__tablename__ = "tests"
	# Not a pytest test class
	__test__ = False
	id = Column(Integer, primary_key=True, index=True)
	subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	score = Column(Float, nullable=False)  # percentage 0..100
	total_marks = Column(Float, nullable=False)
	marks_scored = Column(Float, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	subject = relationship("Subject", back_populates="tests")


class MockTest(Base):
	__tablename__ = "mock_tests"
	id = Column(Integer, primary_key=True, index=True)
	subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False)
	name = Column(String(256), nullable=False)
	date = Column(Date, nullable=False)
	expected_marks = Column(Float, default=0.0, nullable=False)
	actual_marks = Column(Float, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	subject = relationship("Subject", back_populates="mock_tests")


class TopicProgress(Base):
	__tablename__ = "topic_progress"
	id = Column(Integer, primary_key=True, index=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), index=True, nullable=False)
	topic_id = Column(Integer, ForeignKey("topics.id", ondelete="CASCADE"), index=True, nullable=False)
	subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False)
	type = Column(String(16), nullable=False)  # learning | revision | practice | test
	completed = Column(Boolean, default=True, nullable=False)
	date = Column(DateTime, default=datetime.utcnow, index=True, nullable=False)

	topic = relationship("Topic", back_populates="progress_entries")
	subject = relationship("Subject")


class StudyStreak(Base):
	__tablename__ = "study_streaks"
	id = Column(Integer, primary_key=True, index=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), unique=True, nullable=False)
	current_streak = Column(Integer, default=0, nullable=False)
	longest_streak = Column(Integer, default=0, nullable=False)
	last_study_date = Column(Date, nullable=True)
	daily_goal_hours = Column(Integer, default=6, nullable=False)
	daily_progress = Column(Float, default=0.0, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	user = relationship("User", back_populates="study_streak")


class DailyActivity(Base):
	__tablename__ = "daily_activities"
	id = Column(Integer, primary_key=True, index=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), index=True, nullable=False)
	date = Column(Date, index=True, nullable=False)
	study_time = Column(Integer, default=0, nullable=False)  # minutes
	learning_time = Column(Integer, default=0, nullable=False)
	revision_time = Column(Integer, default=0, nullable=False)
	practice_time = Column(Integer, default=0, nullable=False)
	topics_count = Column(Integer, default=0, nullable=False)
	tests_count = Column(Integer, default=0, nullable=False)
	productivity = Column(Float, default=0.0, nullable=False)
	focus_score = Column(Float, default=0.0, nullable=False)
	interruptions = Column(Integer, default=0, nullable=False)
	goal_completed = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ScheduledTest(Base):
	__tablename__ = "scheduled_tests"
	__table_args__ = (UniqueConstraint("username", "key", name="uq_scheduled_tests_user_key"),)
	id = Column(Integer, primary_key=True, index=True)
	username = Column(String(128), ForeignKey("users.username", ondelete="CASCADE"), index=True, nullable=False)
	key = Column(String(64), nullable=False)  # e.g. "twt-3-0"
	type = Column(String(8), nullable=False)
	name = Column(String(256), nullable=False)
	questions = Column(Integer, nullable=False)
	marks = Column(Integer, nullable=False)
	duration = Column(Integer, nullable=False)  # minutes
	scheduled_for = Column(Date, nullable=False)
	subject_ids = Column(JSON, nullable=False, default=list)
	completed = Column(Boolean, default=False, nullable=False)
	score = Column(Float, nullable=True)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
