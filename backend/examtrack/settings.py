from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Seed user, created on first login (dev convenience)
	seed_username: str | None = Field(default=None, validation_alias="SEED_USERNAME")
	seed_password_plain: str | None = Field(default=None, validation_alias="SEED_PASSWORD")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	db_max_retries: int = Field(default=3, validation_alias="DB_MAX_RETRIES")
	db_retry_delay_seconds: float = Field(default=1.0, validation_alias="DB_RETRY_DELAY_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# "binary": any revision/practice/test count counts as 100%
	# "stepped": count out of 3
	topic_progress_mode: str = Field(default="binary", validation_alias="TOPIC_PROGRESS_MODE")
	# Completed activities per day that make up 100% of the calendar goal
	daily_goal_activities: int = Field(default=5, validation_alias="DAILY_GOAL_ACTIVITIES")
	default_daily_goal_hours: int = Field(default=6, validation_alias="DEFAULT_DAILY_GOAL_HOURS")
	math_subjects: List[str] = Field(
		default=["Discrete Mathematics", "Engineering Mathematics", "Aptitude"],
		validation_alias="MATH_SUBJECTS",
	)

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
