"""Submission Ledger Repository - Data Access Layer"""
from datetime import date, timedelta
from typing import List, Dict, Any
import logging

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from luku_engine.dynamo import (
    build_submission_pk,
    build_submission_sk,
    camel_key,
    from_attribute,
    rename_keys,
    snake_key,
    to_attribute,
)
from luku_engine.errors import AlreadyExistsError, DependencyUnavailableError
from luku_engine.logic.dates import format_date
from luku_engine.schemas import SubmissionRecord

logger = logging.getLogger(__name__)


class SubmissionRepository:
    """
    Append-only ledger of outfit rating events.

    Records are partitioned by leaderboard date (PK=DATE#<date>) so one
    query returns a whole day; the userId index serves per-user history.
    """

    def __init__(self, table, user_index: str = "userId-index"):
        self.table = table
        self.user_index = user_index

    def append(self, record: SubmissionRecord) -> SubmissionRecord:
        """Write a new record. A submissionId can only be written once per date."""
        item = self.to_item(record)
        try:
            self.table.put_item(Item=item, ConditionExpression="attribute_not_exists(PK)")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise AlreadyExistsError(f"Submission {record.submissionId} already recorded") from e
            logger.error(f"Error appending submission {record.submissionId}: {e}")
            raise DependencyUnavailableError(f"Submission ledger unavailable: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error appending submission {record.submissionId}: {e}")
            raise DependencyUnavailableError(f"Submission ledger unavailable: {e}") from e

        logger.info(
            f"Recorded submission {record.submissionId} for user {record.userId} "
            f"on {format_date(record.leaderboardDate)} (rating={record.rating})"
        )
        return record

    def list_for_date(self, leaderboard_date: date) -> List[SubmissionRecord]:
        """All submissions for one leaderboard date, in storage order"""
        return self._query(
            KeyConditionExpression=Key("PK").eq(build_submission_pk(format_date(leaderboard_date)))
        )

    def list_in_range(self, start: date, end: date) -> List[SubmissionRecord]:
        """All submissions with start <= leaderboardDate <= end"""
        records: List[SubmissionRecord] = []
        current = start
        while current <= end:
            records.extend(self.list_for_date(current))
            current += timedelta(days=1)
        return records

    def list_for_user(self, user_id: str) -> List[SubmissionRecord]:
        return self._query(
            IndexName=self.user_index,
            KeyConditionExpression=Key("user_id").eq(user_id)
        )

    def _query(self, **kwargs) -> List[SubmissionRecord]:
        items: List[Dict[str, Any]] = []
        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error querying submissions: {e}")
            raise DependencyUnavailableError(f"Submission ledger unavailable: {e}") from e

        try:
            return [self.from_item(item) for item in items]
        except ValidationError as e:
            logger.error(f"Malformed submission item in ledger: {e}")
            raise DependencyUnavailableError(f"Submission ledger returned a malformed item: {e}") from e

    # ============= ITEM MAPPING =============

    @staticmethod
    def to_item(record: SubmissionRecord) -> Dict[str, Any]:
        item = rename_keys(record.model_dump(mode="json", exclude_none=True), snake_key)
        item["PK"] = build_submission_pk(format_date(record.leaderboardDate))
        item["SK"] = build_submission_sk(record.submissionId)
        return to_attribute(item)

    @staticmethod
    def from_item(item: Dict[str, Any]) -> SubmissionRecord:
        data = {k: v for k, v in from_attribute(item).items() if k not in ("PK", "SK")}
        return SubmissionRecord.model_validate(rename_keys(data, camel_key))
