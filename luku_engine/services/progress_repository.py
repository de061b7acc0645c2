"""User Progress Repository - Data Access Layer"""
from typing import Optional, Dict, Any
import logging

from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from luku_engine.dynamo import camel_key, from_attribute, rename_keys, snake_key, to_attribute
from luku_engine.errors import AlreadyExistsError, DependencyUnavailableError, StaleWriteError
from luku_engine.logic.dates import utc_now
from luku_engine.schemas import UserProgress

logger = logging.getLogger(__name__)

TIMEOUT_ERRORS = (ReadTimeoutError, ConnectTimeoutError)


class ProgressRepository:
    """
    Repository for UserProgress documents in DynamoDB.

    Exposes the optimistic concurrency primitives the transaction runner
    is built on: read_user() returns the record with its version and
    commit_if_unchanged() writes the whole record only if the version
    has not moved since the read.
    """

    def __init__(self, table):
        """
        Args:
            table: boto3 DynamoDB Table resource (user progress table)
        """
        self.table = table

    def read_user(self, user_id: str, consistent: bool = True) -> Optional[UserProgress]:
        """Return the user's progress, or None if no record exists"""
        try:
            response = self.table.get_item(Key={"user_id": user_id}, ConsistentRead=consistent)
        except TIMEOUT_ERRORS:
            raise
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading progress for user {user_id}: {e}")
            raise DependencyUnavailableError(f"User progress store unavailable: {e}") from e

        if "Item" not in response:
            return None
        return self.from_item(response["Item"])

    def create(self, progress: UserProgress) -> UserProgress:
        """Insert a new record. Fails with AlreadyExistsError if the user already has one."""
        now = utc_now()
        new_value = progress.model_copy(update={"version": 0, "createdAt": now, "updatedAt": now})
        try:
            self.table.put_item(
                Item=self.to_item(new_value),
                ConditionExpression="attribute_not_exists(user_id)"
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise AlreadyExistsError(f"User progress for {progress.userId} already exists") from e
            logger.error(f"Error creating progress for user {progress.userId}: {e}")
            raise DependencyUnavailableError(f"User progress store unavailable: {e}") from e

        logger.info(f"Created progress for user {progress.userId} with {new_value.points} points")
        return new_value

    def commit_if_unchanged(
        self,
        user_id: str,
        expected_version: int,
        new_value: UserProgress
    ) -> UserProgress:
        """
        Write the full record if its stored version still equals expected_version.

        Returns:
            The stored record with the incremented version

        Raises:
            StaleWriteError: if another writer committed first (retryable)
        """
        stored = new_value.model_copy(update={
            "userId": user_id,
            "version": expected_version + 1,
            "updatedAt": utc_now(),
        })
        try:
            self.table.put_item(
                Item=self.to_item(stored),
                ConditionExpression="version = :expected_version",
                ExpressionAttributeValues={":expected_version": expected_version}
            )
        except TIMEOUT_ERRORS:
            raise
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning(f"Version mismatch for user {user_id}: expected {expected_version}")
                raise StaleWriteError(user_id, expected_version) from e
            logger.error(f"Error committing progress for user {user_id}: {e}")
            raise DependencyUnavailableError(f"User progress store unavailable: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error committing progress for user {user_id}: {e}")
            raise DependencyUnavailableError(f"User progress store unavailable: {e}") from e

        return stored

    # ============= ITEM MAPPING =============

    @staticmethod
    def to_item(progress: UserProgress) -> Dict[str, Any]:
        data = progress.model_dump(mode="json", exclude_none=True)
        return to_attribute(rename_keys(data, snake_key))

    @staticmethod
    def from_item(item: Dict[str, Any]) -> UserProgress:
        return UserProgress.model_validate(rename_keys(from_attribute(item), camel_key))
