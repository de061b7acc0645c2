"""
Gamification engine facade

Wires settings, the DynamoDB client, repositories and services, and
exposes the operations consumed by outer request-handling code:

- create_user_progress / get_user_progress
- record_submission / get_user_profile_stats
- apply_submission_perks
- get_daily_leaderboard / get_weekly_leaderboard / get_current_week_start
- spend_points / purchase_streak_shield / has_active_feature
- award_profile_perks / process_referral
- list_badges
"""
import logging
import uuid
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import List, Optional, Union

from luku_engine.config import Settings, get_settings
from luku_engine.dynamo import DynamoDBClient
from luku_engine.errors import InvalidArgumentError, NotFoundError
from luku_engine.logic import badge_catalog
from luku_engine.logic.dates import Clock, ensure_aware, local_date, parse_date, round_half_up, utc_now
from luku_engine.logic.feature_service import FeatureService
from luku_engine.logic.leaderboard_service import LeaderboardService
from luku_engine.logic.perks_service import PerksService
from luku_engine.logic.profile_perks import ProfilePerksService
from luku_engine.logic.weekly_service import WeeklyLeaderboardService
from luku_engine.schemas import (
    FeatureId,
    FeatureStatus,
    ProfilePerksResponse,
    RatingResult,
    ReferralResponse,
    SpendPointsResponse,
    SubmissionPerksResponse,
    SubmissionRecord,
    UserProfileStats,
    UserProgress,
    UserProgressCreate,
)
from luku_engine.schemas_badges import BadgeDefinition
from luku_engine.schemas_leaderboard import DailyLeaderboardResponse, WeeklyLeaderboardResponse
from luku_engine.services.progress_repository import ProgressRepository
from luku_engine.services.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)


class GamificationEngine:
    """Entry point for every engine operation."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        db: Optional[DynamoDBClient] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or get_settings()
        self.db = db or DynamoDBClient(self.settings)
        self.clock = clock

        self.progress = ProgressRepository(self.db.user_progress_table)
        self.submissions = SubmissionRepository(
            self.db.submissions_table,
            user_index=self.settings.DYNAMODB_SUBMISSIONS_USER_INDEX,
        )

        transaction_options = {
            "max_attempts": self.settings.TRANSACTION_MAX_ATTEMPTS,
            "attempt_timeout": self.settings.TRANSACTION_ATTEMPT_TIMEOUT_SECONDS,
        }
        self.leaderboard = LeaderboardService(
            self.submissions,
            self.progress,
            release_hour=self.settings.LEADERBOARD_RELEASE_HOUR,
            timezone=self.settings.LEADERBOARD_TIMEZONE,
            clock=clock,
        )
        self.weekly = WeeklyLeaderboardService(
            self.submissions, timezone=self.settings.LEADERBOARD_TIMEZONE, clock=clock
        )
        self.features = FeatureService(
            self.progress,
            windows={
                FeatureId.STREAK_SHIELD: timedelta(hours=self.settings.STREAK_SHIELD_WINDOW_HOURS),
                FeatureId.AI_POWERUP: timedelta(hours=self.settings.AI_POWERUP_WINDOW_HOURS),
                FeatureId.PROFILE_BOOST: timedelta(hours=self.settings.PROFILE_BOOST_WINDOW_HOURS),
            },
            streak_shield_cost=self.settings.STREAK_SHIELD_COST,
            clock=clock,
            **transaction_options,
        )
        self.perks = PerksService(
            self.progress,
            leaderboard=self.leaderboard,
            clock=clock,
            shield_window=self.features.window(FeatureId.STREAK_SHIELD),
            **transaction_options,
        )
        self.profile_perks = ProfilePerksService(
            self.progress,
            points_per_referral=self.settings.POINTS_PER_REFERRAL,
            rockstar_threshold=self.settings.REFERRAL_ROCKSTAR_THRESHOLD,
            **transaction_options,
        )

    # ============= USER PROGRESS =============

    def create_user_progress(self, payload: UserProgressCreate) -> UserProgress:
        progress = UserProgress(
            userId=payload.userId,
            username=payload.username,
            photoUrl=payload.photoUrl,
            referredBy=payload.referredBy,
            points=self.settings.STARTING_POINTS,
        )
        return self.progress.create(progress)

    def get_user_progress(self, user_id: str) -> UserProgress:
        progress = self.progress.read_user(user_id)
        if progress is None:
            raise NotFoundError(f"User progress not found for {user_id}")
        return progress

    # ============= SUBMISSIONS =============

    def record_submission(
        self,
        user_id: str,
        rating: RatingResult,
        outfit_image_url: str,
        leaderboard_date: Optional[Union[str, date]] = None,
        submitted_at: Optional[datetime] = None,
        submission_id: Optional[str] = None,
    ) -> SubmissionRecord:
        """
        Append a rated outfit to the ledger.

        The caller guarantees at most one submission per user per date.
        Outfits the rating model flagged as not the user's own are rejected.
        """
        if not rating.isActualUserOutfit:
            reason = rating.validityCritique or "The photo does not appear to be an outfit worn by the user."
            raise InvalidArgumentError(f"Submission rejected: {reason}")

        submitted_at = ensure_aware(submitted_at or self.clock())
        if leaderboard_date is None:
            day = local_date(submitted_at, self.leaderboard.zone)
        else:
            day = parse_date(leaderboard_date, "leaderboard date")

        profile = self.get_user_progress(user_id)
        record = SubmissionRecord(
            submissionId=submission_id or uuid.uuid4().hex,
            userId=user_id,
            rating=rating.rating,
            leaderboardDate=day,
            submittedAt=submitted_at,
            username=profile.username,
            userPhotoUrl=profile.display_photo_url,
            outfitImageUrl=outfit_image_url,
            complimentOrCritique=rating.complimentOrCritique,
            colorSuggestions=rating.colorSuggestions,
            lookSuggestions=rating.lookSuggestions,
        )
        return self.submissions.append(record)

    def get_user_profile_stats(self, user_id: str) -> UserProfileStats:
        ratings = [record.rating for record in self.submissions.list_for_user(user_id)]
        if not ratings:
            return UserProfileStats(userId=user_id)
        return UserProfileStats(
            userId=user_id,
            totalSubmissions=len(ratings),
            averageRating=float(round_half_up(sum(ratings) / len(ratings), 1)),
            highestRating=max(ratings),
        )

    # ============= REWARDS =============

    def apply_submission_perks(
        self,
        user_id: str,
        rating: float,
        submission_date: Union[str, date],
        now: Optional[datetime] = None,
    ) -> SubmissionPerksResponse:
        return self.perks.apply_submission_perks(user_id, rating, submission_date, now=now)

    def award_profile_perks(self, user_id: str) -> ProfilePerksResponse:
        return self.profile_perks.award_profile_perks(user_id)

    def process_referral(self, new_user_id: str) -> ReferralResponse:
        return self.profile_perks.process_referral(new_user_id)

    def list_badges(self) -> List[BadgeDefinition]:
        return badge_catalog.list_badges()

    # ============= LEADERBOARDS =============

    def get_daily_leaderboard(
        self,
        leaderboard_date: Union[str, date],
        now: Optional[datetime] = None,
    ) -> DailyLeaderboardResponse:
        return self.leaderboard.get_daily_leaderboard(leaderboard_date, now=now)

    def get_weekly_leaderboard(self, week_start: Union[str, date]) -> WeeklyLeaderboardResponse:
        return self.weekly.get_weekly_leaderboard(week_start)

    def get_current_week_start(self, now: Optional[datetime] = None) -> str:
        return self.weekly.get_current_week_start(now)

    # ============= FEATURES =============

    def spend_points(
        self,
        user_id: str,
        cost: int,
        feature_id: Union[str, FeatureId],
        now: Optional[datetime] = None,
    ) -> SpendPointsResponse:
        return self.features.spend_points(user_id, cost, feature_id, now=now)

    def purchase_streak_shield(self, user_id: str, now: Optional[datetime] = None) -> SpendPointsResponse:
        return self.features.purchase_streak_shield(user_id, now=now)

    def has_active_feature(
        self,
        user_id: str,
        feature_id: Union[str, FeatureId],
        now: Optional[datetime] = None,
    ) -> FeatureStatus:
        return self.features.has_active_feature(user_id, feature_id, now=now)


@lru_cache()
def get_engine() -> GamificationEngine:
    """Returns cached engine instance (singleton)"""
    return GamificationEngine()
