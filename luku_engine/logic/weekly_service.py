"""
Weekly Leaderboard Service - 7-day rollup per user

totalPoints is a week-scoped score derived from the submissions,
unrelated to the persisted points balance:

    totalPoints = round(avgRating * totalSubmissions * 10 + bestRating * 5)
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

from luku_engine.logic.dates import (
    Clock,
    format_date,
    get_zone,
    local_date,
    parse_date,
    round_half_up,
    utc_now,
)
from luku_engine.schemas import SubmissionRecord
from luku_engine.schemas_leaderboard import WeeklyLeaderboardEntry, WeeklyLeaderboardResponse
from luku_engine.services.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)

DAYS_IN_WEEK = 7


def week_start_for(day: date) -> date:
    """Monday of the week containing day (Sunday belongs to the week that started 6 days earlier)"""
    return day - timedelta(days=day.weekday())


def weekly_score(avg_rating: float, total_submissions: int, best_rating: float) -> int:
    return int(round_half_up(avg_rating * total_submissions * 10 + best_rating * 5))


def aggregate_user(user_id: str, records: List[SubmissionRecord]) -> Dict:
    ratings = [record.rating for record in records]
    avg_rating = float(round_half_up(sum(ratings) / len(ratings), 1))
    best_rating = max(ratings)
    latest = max(records, key=lambda record: record.leaderboardDate)
    return {
        "userId": user_id,
        "username": latest.username,
        "userPhotoUrl": latest.userPhotoUrl,
        "totalSubmissions": len(records),
        "avgRating": avg_rating,
        "bestRating": best_rating,
        "totalPoints": weekly_score(avg_rating, len(records), best_rating),
    }


class WeeklyLeaderboardService:
    """Weekly aggregation over the submission ledger (read-only)."""

    def __init__(self, submissions: SubmissionRepository, timezone: str = "UTC", clock: Clock = utc_now):
        self.submissions = submissions
        self.zone = get_zone(timezone)
        self.clock = clock

    def get_weekly_leaderboard(self, week_start: Union[str, date]) -> WeeklyLeaderboardResponse:
        """
        Aggregate submissions with weekStart <= leaderboardDate <= weekStart + 6.

        weekStart is expected to be a Monday; it is not normalized.
        """
        start = parse_date(week_start, "week start")
        end = start + timedelta(days=DAYS_IN_WEEK - 1)

        by_user: Dict[str, List[SubmissionRecord]] = defaultdict(list)
        for record in self.submissions.list_in_range(start, end):
            by_user[record.userId].append(record)

        rows = [aggregate_user(user_id, records) for user_id, records in by_user.items()]
        rows.sort(key=lambda row: (-row["totalPoints"], -row["bestRating"], row["userId"]))
        entries = [WeeklyLeaderboardEntry(rank=rank, **row) for rank, row in enumerate(rows, start=1)]

        if entries:
            message = f"Displaying {len(entries)} entries for week {format_date(start)} to {format_date(end)}."
        else:
            message = f"No submissions found for week {format_date(start)} to {format_date(end)}."

        logger.info(f"Weekly leaderboard {format_date(start)}: {len(entries)} users")
        return WeeklyLeaderboardResponse(weekStart=start, weekEnd=end, entries=entries, message=message)

    def get_current_week_start(self, now: Optional[datetime] = None) -> str:
        """Monday of the current week (in the leaderboard timezone) as YYYY-MM-DD"""
        today = local_date(now or self.clock(), self.zone)
        return format_date(week_start_for(today))
