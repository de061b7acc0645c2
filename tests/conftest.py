"""
Shared fixtures: moto-backed DynamoDB tables, a controllable clock and
helpers to seed user progress and submissions.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import boto3
import pytest
from moto import mock_aws

from luku_engine.config import Settings
from luku_engine.dynamo import DynamoDBClient, create_tables
from luku_engine.engine import GamificationEngine
from luku_engine.schemas import SubmissionRecord, UserProgress
from luku_engine.services.progress_repository import ProgressRepository


class FrozenClock:
    """Clock returning a fixed instant until advanced"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")


@pytest.fixture
def settings(aws_credentials):
    return Settings(
        _env_file=None,
        DYNAMODB_USER_PROGRESS_TABLE="test-user-progress",
        DYNAMODB_SUBMISSIONS_TABLE="test-outfit-submissions",
        TRANSACTION_MAX_ATTEMPTS=3,
        LEADERBOARD_RELEASE_HOUR=18,
        LEADERBOARD_TIMEZONE="UTC",
    )


@pytest.fixture
def dynamodb(settings):
    """Create mock DynamoDB tables"""
    with mock_aws():
        resource = boto3.resource("dynamodb", region_name="us-east-1")
        create_tables(resource, settings)
        yield resource


@pytest.fixture
def clock():
    # Saturday 2024-01-06, after the 18:00 release
    return FrozenClock(datetime(2024, 1, 6, 20, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(dynamodb, settings, clock):
    return GamificationEngine(settings=settings, db=DynamoDBClient(settings), clock=clock)


@pytest.fixture
def seed_user(engine):
    """Write a UserProgress record with arbitrary state directly to the table"""

    def _seed(user_id: str = "user-1", **fields) -> UserProgress:
        fields.setdefault("username", user_id)
        progress = UserProgress(userId=user_id, **fields)
        engine.progress.table.put_item(Item=ProgressRepository.to_item(progress))
        return progress

    return _seed


@pytest.fixture
def add_submission(engine):
    """Append a SubmissionRecord to the ledger"""
    counter = {"n": 0}

    def _add(
        user_id: str,
        rating: float,
        day: date,
        submitted_at: Optional[datetime] = None,
        **fields
    ) -> SubmissionRecord:
        counter["n"] += 1
        record = SubmissionRecord(
            submissionId=fields.pop("submissionId", f"sub-{counter['n']}"),
            userId=user_id,
            rating=rating,
            leaderboardDate=day,
            submittedAt=submitted_at or datetime.combine(day, datetime.min.time(), tzinfo=timezone.utc)
            + timedelta(hours=9, minutes=counter["n"]),
            username=fields.pop("username", user_id),
            **fields
        )
        return engine.submissions.append(record)

    return _add
