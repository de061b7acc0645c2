"""
Configuration settings for the gamification engine
"""
import logging
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field


class Settings(BaseSettings):
    """Engine settings loaded from environment variables"""

    # App
    APP_NAME: str = "Luku Gamification Engine"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None  # Only for LocalStack, ECS uses IAM roles
    AWS_SECRET_ACCESS_KEY: Optional[str] = None  # Only for LocalStack, ECS uses IAM roles

    # DynamoDB
    DYNAMODB_ENDPOINT: Optional[str] = None  # None uses AWS, set for LocalStack
    DYNAMODB_USER_PROGRESS_TABLE: str = "luku-dev-user-progress"
    DYNAMODB_SUBMISSIONS_TABLE: str = "luku-dev-outfit-submissions"
    DYNAMODB_SUBMISSIONS_USER_INDEX: str = "userId-index"
    DYNAMODB_CONNECT_TIMEOUT_SECONDS: float = 3.0
    DYNAMODB_READ_TIMEOUT_SECONDS: float = 5.0

    # Optimistic transactions
    TRANSACTION_MAX_ATTEMPTS: int = Field(default=5, ge=1, le=10)
    TRANSACTION_ATTEMPT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # Leaderboard
    LEADERBOARD_RELEASE_HOUR: int = Field(default=18, ge=0, le=23)
    LEADERBOARD_TIMEZONE: str = "UTC"

    # Gamification
    STARTING_POINTS: int = 5
    STREAK_SHIELD_COST: int = 10
    STREAK_SHIELD_WINDOW_HOURS: int = 48
    AI_POWERUP_WINDOW_HOURS: int = 24
    PROFILE_BOOST_WINDOW_HOURS: int = 168
    POINTS_PER_REFERRAL: int = 2
    REFERRAL_ROCKSTAR_THRESHOLD: int = 3

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns cached settings instance (singleton)"""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from LOG_LEVEL. Safe to call more than once."""
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("luku_engine").setLevel(level)
