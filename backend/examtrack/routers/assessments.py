from __future__ import annotations
import logging
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from ..access import owned_mock_test, owned_subject, owned_test
from ..db import get_db
from ..marks import mock_test_summary
from ..models import MockTest, Subject, Test
from ..rollup import refresh_subject
from .auth import CurrentUser, get_current_user


router = APIRouter(prefix="/api", tags=["tests"])
logger = logging.getLogger(__name__)


class TestCreate(BaseModel):
	name: str = Field(min_length=1, max_length=256)
	subject_id: int
	score: float = Field(ge=0, le=100)
	total_marks: float = Field(ge=0)
	marks_scored: float = Field(ge=0)

	@model_validator(mode="after")
	def _marks_within_total(self):
		if self.marks_scored > self.total_marks:
			raise ValueError("Marks scored cannot be greater than total marks")
		return self


class MockTestCreate(BaseModel):
	name: str = Field(min_length=1, max_length=256)
	subject_id: int
	date: dt.date
	expected_marks: float = Field(default=0, ge=0)
	actual_marks: Optional[float] = Field(default=None, ge=0)


class MockTestUpdate(BaseModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=256)
	date: Optional[dt.date] = None
	expected_marks: Optional[float] = Field(default=None, ge=0)
	actual_marks: Optional[float] = Field(default=None, ge=0)


def test_out(test: Test) -> dict:
	return {
		"id": test.id,
		"subject_id": test.subject_id,
		"name": test.name,
		"score": test.score,
		"total_marks": test.total_marks,
		"marks_scored": test.marks_scored,
		"created_at": test.created_at.isoformat(),
	}


def mock_test_out(mock: MockTest) -> dict:
	return {
		"id": mock.id,
		"subject_id": mock.subject_id,
		"name": mock.name,
		"date": mock.date.isoformat(),
		"expected_marks": mock.expected_marks,
		"actual_marks": mock.actual_marks,
	}


@router.get("/tests")
async def list_tests(
	subject_id: Optional[int] = None,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	if subject_id is None:
		raise HTTPException(status_code=400, detail="subject_id is required")
	subject = owned_subject(db, user.username, subject_id)
	tests = db.query(Test).filter(Test.subject_id == subject.id).order_by(Test.created_at.desc(), Test.id.desc()).all()
	return [test_out(t) for t in tests]


@router.post("/tests", status_code=201)
async def create_test(req: TestCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, req.subject_id)
	test = Test(
		subject_id=subject.id,
		name=req.name.strip(),
		score=req.score,
		total_marks=req.total_marks,
		marks_scored=req.marks_scored,
	)
	try:
		db.add(test)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not record test for subject %s", req.subject_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(test)
	logger.info("Recorded test %s (score %s) for subject %s", test.id, test.score, subject.id)
	return test_out(test)


@router.delete("/tests/{test_id}", status_code=204)
async def delete_test(test_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	test = owned_test(db, user.username, test_id)
	subject = test.subject
	try:
		db.delete(test)
		refresh_subject(db, subject)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not delete test %s", test_id)
		raise HTTPException(status_code=500, detail=str(e))


@router.get("/mock-tests")
async def list_mock_tests(
	subject_id: Optional[int] = None,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	query = db.query(MockTest).join(Subject, MockTest.subject_id == Subject.id).filter(Subject.username == user.username)
	if subject_id is not None:
		query = query.filter(MockTest.subject_id == subject_id)
	mocks = query.order_by(MockTest.date, MockTest.id).all()
	return {"mock_tests": [mock_test_out(m) for m in mocks], "summary": mock_test_summary(mocks)}


@router.post("/mock-tests", status_code=201)
async def create_mock_test(req: MockTestCreate, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	subject = owned_subject(db, user.username, req.subject_id)
	mock = MockTest(
		subject_id=subject.id,
		name=req.name.strip(),
		date=req.date,
		expected_marks=req.expected_marks,
		actual_marks=req.actual_marks,
	)
	try:
		db.add(mock)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not create mock test for subject %s", req.subject_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(mock)
	return mock_test_out(mock)


@router.patch("/mock-tests/{mock_test_id}")
async def update_mock_test(
	mock_test_id: int,
	req: MockTestUpdate,
	user: CurrentUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	mock = owned_mock_test(db, user.username, mock_test_id)
	for field, value in req.model_dump(exclude_unset=True).items():
		if value is None and field != "actual_marks":
			continue
		setattr(mock, field, value)
	try:
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not update mock test %s", mock_test_id)
		raise HTTPException(status_code=500, detail=str(e))
	db.refresh(mock)
	return mock_test_out(mock)


@router.delete("/mock-tests/{mock_test_id}", status_code=204)
async def delete_mock_test(mock_test_id: int, user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
	mock = owned_mock_test(db, user.username, mock_test_id)
	try:
		db.delete(mock)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.exception("Could not delete mock test %s", mock_test_id)
		raise HTTPException(status_code=500, detail=str(e))
