#!/usr/bin/env python3
"""
Create the engine's DynamoDB tables in LocalStack for local development

Usage:
    DYNAMODB_ENDPOINT=http://localhost:4566 python scripts/create_tables_local.py
"""
import sys

from botocore.exceptions import BotoCoreError, ClientError

from luku_engine.config import configure_logging, get_settings
from luku_engine.dynamo import DynamoDBClient, create_tables


def main() -> int:
    settings = get_settings()
    configure_logging(settings)

    if not settings.DYNAMODB_ENDPOINT:
        print("✗ DYNAMODB_ENDPOINT is not set, refusing to create tables against AWS")
        return 1

    try:
        create_tables(DynamoDBClient(settings).dynamodb, settings)
    except (ClientError, BotoCoreError) as e:
        print(f"✗ Error creating tables: {e}")
        return 1

    print(f"✓ Tables ready: {settings.DYNAMODB_USER_PROGRESS_TABLE}, {settings.DYNAMODB_SUBMISSIONS_TABLE}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
