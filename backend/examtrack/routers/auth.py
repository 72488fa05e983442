from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..settings import settings
from ..db import get_db
from ..models import AuthSession, User

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

_invalid_credentials = HTTPException(status_code=401, detail="Could not validate credentials")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class CurrentUser(BaseModel):
	username: str


class RegisterRequest(BaseModel):
	username: str = Field(min_length=3, max_length=128)
	password: str = Field(min_length=1)
	email: Optional[str] = Field(default=None, max_length=256)
	name: Optional[str] = Field(default=None, max_length=256)

	@field_validator("username")
	@classmethod
	def _strip_username(cls, value: str) -> str:
		value = value.strip()
		if len(value) < 3:
			raise ValueError("username must be 3-128 characters")
		return value

	@field_validator("email", "name")
	@classmethod
	def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
		return (value or "").strip() or None


def hash_password(password: str) -> str:
	return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def _ensure_seed_user(db: Session) -> None:
	username, password = settings.seed_username, settings.seed_password_plain
	if not username or not password or db.get(User, username) is not None:
		return
	db.add(User(username=username, password_hash=hash_password(password)))
	db.commit()
	logger.info("Created seed user %s", username)


def authenticate_user(db: Session, username: str, password: str) -> Optional[CurrentUser]:
	_ensure_seed_user(db)
	account = db.get(User, username)
	if account is None or not verify_password(password, account.password_hash):
		return None
	return CurrentUser(username=account.username)


def token_expiry(expires_delta: Optional[timedelta] = None) -> datetime:
	"""Expiry for a new token, capped at the largest representable datetime."""
	if expires_delta is None:
		minutes = settings.access_token_expire_minutes
		expires_delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	try:
		return datetime.now(timezone.utc) + expires_delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
	payload = {**claims, "exp": token_expiry(expires_delta)}
	return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
	"""Verified claims of a bearer token; raises 401 when it is unusable."""
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise _invalid_credentials
	if not payload.get("sub") or not payload.get("jti"):
		raise _invalid_credentials
	return payload


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	# One session row per token; deleting it revokes the token
	jti = uuid.uuid4().hex
	try:
		db.add(AuthSession(session_id=jti, username=user.username))
		db.commit()
	except Exception:
		db.rollback()
		logger.exception("Could not persist session for %s", user.username)
		raise HTTPException(status_code=500, detail="Could not create session")
	logger.info("Issued token for %s", user.username)
	return Token(access_token=create_access_token({"sub": user.username, "jti": jti}))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
	payload = decode_token(token)
	try:
		session_row = db.get(AuthSession, payload["jti"])
		if session_row is None or session_row.username != payload["sub"]:
			raise _invalid_credentials
		session_row.last_activity_at = datetime.utcnow()
		db.commit()
	except HTTPException:
		raise
	except Exception:
		# DB trouble counts as unauthenticated
		db.rollback()
		logger.exception("Session lookup failed")
		raise _invalid_credentials
	return CurrentUser(username=payload["sub"])


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
	return user


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	if db.get(User, req.username) is not None:
		raise HTTPException(status_code=409, detail="username already exists")
	db.add(User(
		username=req.username,
		password_hash=hash_password(req.password),
		email=req.email,
		name=req.name,
	))
	try:
		db.commit()
	except IntegrityError:
		# lost a race with a concurrent registration
		db.rollback()
		raise HTTPException(status_code=409, detail="username already exists")
	except Exception:
		db.rollback()
		logger.exception("Could not register %s", req.username)
		raise HTTPException(status_code=500, detail="Could not register user")
	logger.info("Registered user %s", req.username)
	return {"username": req.username}


@router.post("/logout", status_code=204)
async def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	session_row = db.get(AuthSession, decode_token(token)["jti"])
	if session_row is not None:
		db.delete(session_row)
		db.commit()
