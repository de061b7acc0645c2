"""
Leaderboard Service - ranked daily views over the submission ledger

Handles:
- Ranking one day's submissions by (rating desc, submittedAt asc)
- Release gating: before the configured release hour the previous
  day's finalized ranking is served instead of the requested day
- Best-effort enrichment with live profile data from UserProgress

This is a read path: a single query per call, no retries, no writes.
"""
import logging
import math
from datetime import date, datetime, time
from typing import Dict, List, Optional, Union

from luku_engine.errors import DependencyUnavailableError
from luku_engine.logic.dates import (
    Clock,
    ensure_aware,
    format_date,
    get_zone,
    local_date,
    parse_date,
    utc_now,
    yesterday,
)
from luku_engine.schemas import SubmissionRecord, UserProgress
from luku_engine.schemas_leaderboard import DailyLeaderboardResponse, LeaderboardEntry
from luku_engine.services.progress_repository import TIMEOUT_ERRORS, ProgressRepository
from luku_engine.services.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)

LOOKUP_ERRORS = (DependencyUnavailableError,) + TIMEOUT_ERRORS


def ranking_key(record: SubmissionRecord):
    """Sort key: higher rating first, earlier submission wins ties"""
    return (-record.rating, ensure_aware(record.submittedAt))


class LeaderboardService:
    """Daily leaderboard queries with release-hour gating."""

    def __init__(
        self,
        submissions: SubmissionRepository,
        progress: ProgressRepository,
        release_hour: int = 18,
        timezone: str = "UTC",
        clock: Clock = utc_now,
    ):
        self.submissions = submissions
        self.progress = progress
        self.release_hour = release_hour
        self.zone = get_zone(timezone)
        self.clock = clock
        logger.info(f"LeaderboardService initialized: release={release_hour:02d}:00 {timezone}")

    # ============= RANKING =============

    def get_ranked_submissions(self, leaderboard_date: Union[str, date]) -> List[SubmissionRecord]:
        """
        Ungated ranking for one date.

        Raises:
            InvalidArgumentError: malformed date
            DependencyUnavailableError: the ledger could not be read
        """
        target = parse_date(leaderboard_date, "leaderboard date")
        records = self.submissions.list_for_date(target)
        return sorted(records, key=ranking_key)

    def get_user_rank(self, leaderboard_date: Union[str, date], user_id: str) -> Optional[int]:
        """1-based rank of the user's best entry on that date, None if absent"""
        for index, record in enumerate(self.get_ranked_submissions(leaderboard_date), start=1):
            if record.userId == user_id:
                return index
        return None

    # ============= RELEASE GATING =============

    def release_instant(self, leaderboard_date: date) -> datetime:
        return datetime.combine(leaderboard_date, time(hour=self.release_hour), tzinfo=self.zone)

    def latest_released_date(self, now: datetime) -> date:
        """Most recent date whose release instant is at or before now"""
        today = local_date(now, self.zone)
        return today if now >= self.release_instant(today) else yesterday(today)

    def get_daily_leaderboard(
        self,
        leaderboard_date: Union[str, date],
        now: Optional[datetime] = None
    ) -> DailyLeaderboardResponse:
        """
        Ranked, enriched entries for a day, subject to the release hour.

        Before release the previous day's entries are returned with
        isWaitingForRelease=True and the seconds left until release. A
        future date never reveals a board that is not released yet.
        """
        requested = parse_date(leaderboard_date, "leaderboard date")
        now = ensure_aware(now or self.clock())
        release_at = self.release_instant(requested)

        waiting = now < release_at
        shown = min(yesterday(requested), self.latest_released_date(now)) if waiting else requested
        seconds_left = math.ceil((release_at - now).total_seconds()) if waiting else 0

        records = self.get_ranked_submissions(shown)
        entries = self.build_entries(records)

        if entries:
            message = f"Displaying {len(entries)} entries for {format_date(shown)}."
        else:
            message = f"No submissions found for {format_date(shown)}."

        if waiting:
            logger.info(
                f"Leaderboard for {format_date(requested)} not released yet, "
                f"serving {format_date(shown)} ({seconds_left}s left)"
            )

        return DailyLeaderboardResponse(
            requestedDate=requested,
            leaderboardDate=shown,
            entries=entries,
            isWaitingForRelease=waiting,
            releaseAt=release_at,
            timeUntilReleaseSeconds=seconds_left,
            message=message,
        )

    # ============= ENRICHMENT =============

    def build_entries(self, records: List[SubmissionRecord]) -> List[LeaderboardEntry]:
        profiles = self._load_profiles([record.userId for record in records])
        return [
            self._to_entry(rank, record, profiles.get(record.userId))
            for rank, record in enumerate(records, start=1)
        ]

    def _load_profiles(self, user_ids: List[str]) -> Dict[str, UserProgress]:
        """Read each distinct submitter; a failed or missing read yields no profile"""
        profiles: Dict[str, UserProgress] = {}
        for user_id in dict.fromkeys(user_ids):
            try:
                progress = self.progress.read_user(user_id, consistent=False)
            except LOOKUP_ERRORS as e:
                logger.warning(f"Enrichment lookup failed for user {user_id}, using defaults: {e}")
                continue
            if progress is None:
                logger.info(f"No progress record for user {user_id}, using submission snapshot")
                continue
            profiles[user_id] = progress
        return profiles

    @staticmethod
    def _to_entry(rank: int, record: SubmissionRecord, profile: Optional[UserProgress]) -> LeaderboardEntry:
        entry = LeaderboardEntry(
            rank=rank,
            submissionId=record.submissionId,
            userId=record.userId,
            username=record.username,
            userPhotoUrl=record.userPhotoUrl,
            outfitImageUrl=record.outfitImageUrl,
            rating=record.rating,
            submittedAt=record.submittedAt,
            complimentOrCritique=record.complimentOrCritique,
            colorSuggestions=list(record.colorSuggestions),
            lookSuggestions=record.lookSuggestions,
        )
        if profile is None:
            return entry

        entry.username = profile.username or record.username
        entry.userPhotoUrl = profile.display_photo_url or record.userPhotoUrl
        entry.tiktokUrl = profile.tiktokUrl
        entry.instagramUrl = profile.instagramUrl
        entry.points = profile.points
        entry.currentStreak = profile.currentStreak
        return entry
