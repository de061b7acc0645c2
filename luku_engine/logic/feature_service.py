"""Feature Service - spending points on time-limited features"""
from datetime import datetime, timedelta
from typing import Dict, Optional, Union
import logging

from luku_engine.errors import InsufficientPointsError, InvalidArgumentError, NotFoundError
from luku_engine.logic.dates import Clock, ensure_aware, utc_now
from luku_engine.logic.transaction import run_progress_transaction
from luku_engine.schemas import FeatureId, FeatureStatus, SpendPointsResponse, UserProgress
from luku_engine.services.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS = {
    FeatureId.STREAK_SHIELD: timedelta(hours=48),
    FeatureId.AI_POWERUP: timedelta(hours=24),
    FeatureId.PROFILE_BOOST: timedelta(hours=168),
}

ACTIVATION_MESSAGES = {
    FeatureId.STREAK_SHIELD: "Streak Shield activated! Your streak is protected for the next {hours} hours.",
    FeatureId.AI_POWERUP: "AI Power-Up activated! Enjoy enhanced style feedback for the next {hours} hours.",
    FeatureId.PROFILE_BOOST: "Profile Boost activated! Your profile is featured for the next {hours} hours.",
}


def parse_feature(feature_id: Union[str, FeatureId]) -> FeatureId:
    try:
        return FeatureId(feature_id)
    except ValueError as e:
        allowed = ", ".join(feature.value for feature in FeatureId)
        raise InvalidArgumentError(f"Unknown feature '{feature_id}'. Must be one of: {allowed}") from e


def feature_status(
    progress: UserProgress,
    feature: FeatureId,
    now: datetime,
    window: timedelta
) -> FeatureStatus:
    """Active iff now - activatedAt < window. Pure, no I/O."""
    activated_at = progress.featureActivations.get(feature.value)
    if activated_at is None:
        return FeatureStatus(featureId=feature, active=False)

    activated_at = ensure_aware(activated_at)
    expires_at = activated_at + window
    remaining = expires_at - ensure_aware(now)
    active = ensure_aware(now) - activated_at < window
    return FeatureStatus(
        featureId=feature,
        active=active,
        hoursRemaining=round(remaining.total_seconds() / 3600, 1) if active else 0.0,
        activatedAt=activated_at,
        expiresAt=expires_at,
    )


class FeatureService:
    """Point spends and feature activation checks for one user at a time."""

    def __init__(
        self,
        repository: ProgressRepository,
        windows: Optional[Dict[FeatureId, timedelta]] = None,
        streak_shield_cost: int = 10,
        clock: Clock = utc_now,
        max_attempts: int = 5,
        attempt_timeout: float = 10.0,
    ):
        self.repository = repository
        self.windows = dict(DEFAULT_WINDOWS)
        if windows:
            self.windows.update(windows)
        self.streak_shield_cost = streak_shield_cost
        self.clock = clock
        self.max_attempts = max_attempts
        self.attempt_timeout = attempt_timeout

    def window(self, feature: FeatureId) -> timedelta:
        return self.windows[feature]

    def spend_points(
        self,
        user_id: str,
        cost: int,
        feature_id: Union[str, FeatureId],
        now: Optional[datetime] = None
    ) -> SpendPointsResponse:
        """
        Deduct cost points and record the activation instant in one transaction.

        Raises:
            InvalidArgumentError: cost is not positive or the feature is unknown
            InsufficientPointsError: balance is lower than cost (nothing is written)
            NotFoundError: the user has no progress record
            ConflictError: retries exhausted
        """
        feature = parse_feature(feature_id)
        if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
            raise InvalidArgumentError(f"Cost must be a positive integer, got {cost!r}")
        activated_at = ensure_aware(now or self.clock())

        def mutate(progress: UserProgress) -> None:
            if progress.points < cost:
                logger.warning(
                    f"User {user_id} tried to spend {cost} points on {feature.value} with {progress.points}"
                )
                raise InsufficientPointsError(available=progress.points, required=cost)
            progress.points -= cost
            progress.featureActivations[feature.value] = activated_at

        result = run_progress_transaction(
            self.repository,
            user_id,
            mutate,
            max_attempts=self.max_attempts,
            attempt_timeout=self.attempt_timeout,
        )

        hours = int(self.window(feature).total_seconds() // 3600)
        logger.info(
            f"User {user_id} spent {cost} points on {feature.value}, "
            f"{result.progress.points} left (attempts={result.attempts})"
        )
        return SpendPointsResponse(
            success=True,
            message=ACTIVATION_MESSAGES[feature].format(hours=hours),
            featureId=feature,
            pointsSpent=cost,
            remainingPoints=result.progress.points,
            activatedAt=activated_at,
        )

    def purchase_streak_shield(self, user_id: str, now: Optional[datetime] = None) -> SpendPointsResponse:
        return self.spend_points(user_id, self.streak_shield_cost, FeatureId.STREAK_SHIELD, now=now)

    def has_active_feature(
        self,
        user_id: str,
        feature_id: Union[str, FeatureId],
        now: Optional[datetime] = None
    ) -> FeatureStatus:
        """Read-only check of whether the feature's window is still open"""
        feature = parse_feature(feature_id)
        progress = self.repository.read_user(user_id, consistent=False)
        if progress is None:
            raise NotFoundError(f"User progress not found for {user_id}")
        return feature_status(progress, feature, now or self.clock(), self.window(feature))
