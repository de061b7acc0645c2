"""
DynamoDB access for the gamification engine

Provides the lazily initialized client used by the repositories, the
attribute conversion helpers, and table creation for local development
and tests:
- UserProgress table (hash key user_id, optimistic version attribute)
- Submissions table (PK=DATE#<date>, SK=SUBMISSION#<id>, GSI on user_id)
"""
import re
import boto3
from botocore.config import Config
from typing import Any, Callable, Dict, Optional
from decimal import Decimal
import logging

from luku_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class DynamoDBClient:
    """DynamoDB client with lazy initialization"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._dynamodb = None
        self._user_progress_table = None
        self._submissions_table = None

    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource"""
        if self._dynamodb is None:
            kwargs = {
                'region_name': self.settings.AWS_REGION,
                'config': Config(
                    connect_timeout=self.settings.DYNAMODB_CONNECT_TIMEOUT_SECONDS,
                    read_timeout=self.settings.DYNAMODB_READ_TIMEOUT_SECONDS,
                    retries={'max_attempts': 2, 'mode': 'standard'}
                ),
            }

            # Only use endpoint_url for LocalStack
            if self.settings.DYNAMODB_ENDPOINT:
                kwargs['endpoint_url'] = self.settings.DYNAMODB_ENDPOINT

            # Explicit credentials only in LocalStack mode, otherwise the IAM role is used
            if self.settings.DYNAMODB_ENDPOINT and self.settings.AWS_ACCESS_KEY_ID:
                kwargs['aws_access_key_id'] = self.settings.AWS_ACCESS_KEY_ID
                kwargs['aws_secret_access_key'] = self.settings.AWS_SECRET_ACCESS_KEY
                logger.info("Using explicit AWS credentials (LocalStack mode)")
            else:
                logger.info("Using default AWS credential chain")

            self._dynamodb = boto3.resource('dynamodb', **kwargs)
        return self._dynamodb

    @property
    def user_progress_table(self):
        if self._user_progress_table is None:
            self._user_progress_table = self.dynamodb.Table(self.settings.DYNAMODB_USER_PROGRESS_TABLE)
        return self._user_progress_table

    @property
    def submissions_table(self):
        if self._submissions_table is None:
            self._submissions_table = self.dynamodb.Table(self.settings.DYNAMODB_SUBMISSIONS_TABLE)
        return self._submissions_table


# ============= TABLE MANAGEMENT =============

def create_tables(dynamodb, settings: Optional[Settings] = None) -> None:
    """Create the engine tables if they do not exist (local development and tests)"""
    settings = settings or get_settings()
    existing = {table.name for table in dynamodb.tables.all()}

    if settings.DYNAMODB_USER_PROGRESS_TABLE not in existing:
        dynamodb.create_table(
            TableName=settings.DYNAMODB_USER_PROGRESS_TABLE,
            KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "user_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST"
        )
        logger.info(f"Created table {settings.DYNAMODB_USER_PROGRESS_TABLE}")

    if settings.DYNAMODB_SUBMISSIONS_TABLE not in existing:
        dynamodb.create_table(
            TableName=settings.DYNAMODB_SUBMISSIONS_TABLE,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"}
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "leaderboard_date", "AttributeType": "S"}
            ],
            GlobalSecondaryIndexes=[{
                "IndexName": settings.DYNAMODB_SUBMISSIONS_USER_INDEX,
                "KeySchema": [
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "leaderboard_date", "KeyType": "RANGE"}
                ],
                "Projection": {"ProjectionType": "ALL"}
            }],
            BillingMode="PAY_PER_REQUEST"
        )
        logger.info(f"Created table {settings.DYNAMODB_SUBMISSIONS_TABLE}")


# ============= KEY BUILDERS =============

def build_submission_pk(leaderboard_date: str) -> str:
    """Partition key for a leaderboard day, e.g. DATE#2024-01-06"""
    return f"DATE#{leaderboard_date}"


def build_submission_sk(submission_id: str) -> str:
    return f"SUBMISSION#{submission_id}"


# ============= ITEM CONVERSION =============

def to_attribute(value: Any) -> Any:
    """Prepare a JSON-mode model dump for boto3: floats become Decimal"""
    if isinstance(value, dict):
        return {key: to_attribute(nested) for key, nested in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_attribute(nested) for nested in value]
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def from_attribute(value: Any) -> Any:
    """Undo boto3's Decimal numbers: whole values become int, the rest float"""
    if isinstance(value, Decimal):
        integral = value.to_integral_value()
        return int(integral) if integral == value else float(value)
    if isinstance(value, dict):
        return {key: from_attribute(nested) for key, nested in value.items()}
    if isinstance(value, (list, set)):
        converted = [from_attribute(nested) for nested in value]
        return sorted(converted) if isinstance(value, set) else converted
    return value


def camel_key(name: str) -> str:
    """user_id -> userId, last_top3_bonus_date -> lastTop3BonusDate"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_key(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def rename_keys(data: Dict[str, Any], rename: Callable[[str], str]) -> Dict[str, Any]:
    """Rename top-level attribute names only; nested map keys are data"""
    return {rename(key): value for key, value in data.items()}
