import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .db import Base, SessionLocal, engine, ensure_schema
from .cleanup import merge_duplicate_daily_activities
from .settings import settings
from .routers import auth
from .routers import subjects
from .routers import chapters
from .routers import topics
from .routers import assessments
from .routers import analytics
from .routers import study
from .routers import study_plan
from .routers import user

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Exam Prep Tracker API")
app.include_router(auth.router)
app.include_router(subjects.router)
app.include_router(chapters.router)
app.include_router(topics.router)
app.include_router(assessments.router)
app.include_router(analytics.router)
app.include_router(study.router)
app.include_router(study_plan.router)
app.include_router(user.router)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
	logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
	return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.get("/info")
def root():
	return {"status": "ok", "topic_progress_mode": settings.topic_progress_mode}


def _run_cleanup():
	db = SessionLocal()
	try:
		merge_duplicate_daily_activities(db)
	except SQLAlchemyError:
		db.rollback()
		logger.exception("Daily activity cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran once; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_run_cleanup()


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except SQLAlchemyError:
		logger.exception("Schema migration failed")
	_run_cleanup()
	asyncio.create_task(_cleanup_watcher())
