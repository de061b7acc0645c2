"""
Calendar helpers shared by the perks, leaderboard and feature services

All date-sensitive logic receives "now" explicitly; utc_now() is only the
default clock.
"""
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from luku_engine.errors import InvalidArgumentError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def parse_date(value: Union[str, date], field: str = "date") -> date:
    """
    Parse a YYYY-MM-DD calendar date

    Raises:
        InvalidArgumentError: if the value is malformed or not a real date
    """
    if isinstance(value, datetime):
        raise InvalidArgumentError(f"{field} must be a calendar date without time, got {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidArgumentError(f"Invalid {field} format. Please use YYYY-MM-DD, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid {field} {value!r}: {e}") from e


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def yesterday(value: date) -> date:
    return value - timedelta(days=1)


def calendar_days_between(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if reversed)"""
    return (later - earlier).days


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5  # Saturday=5, Sunday=6


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidArgumentError(f"Unknown timezone {name!r}") from e


def local_date(moment: datetime, zone: ZoneInfo) -> date:
    return ensure_aware(moment).astimezone(zone).date()


def round_half_up(value: float, places: int = 0) -> Decimal:
    """Round like a calculator (2.25 -> 2.3), not banker's rounding"""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
