"""
Perks Service - rewards for one outfit submission

Handles:
- First submission and perfect score badges
- Daily streak continuation, reset and streak shield consumption
- Weekend bonus and streak threshold badges
- Retroactive top-3 bonus from yesterday's ranking
- Cumulative point milestone badges

evaluate_submission_perks() is the pure decision step; it edits the
in-transaction copy of UserProgress in place. PerksService wraps it in
the optimistic transaction so all rewards for a submission land in one
write or not at all. Every rule is guarded by badge membership or date
equality, so evaluating the same submission twice awards nothing new.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from luku_engine.errors import InvalidArgumentError
from luku_engine.logic.badge_catalog import (
    STREAK_THRESHOLDS,
    TOP_3_RANK_POINTS,
    badge_reward,
    highest_milestone_reached,
)
from luku_engine.logic.dates import (
    Clock,
    calendar_days_between,
    ensure_aware,
    format_date,
    is_weekend,
    parse_date,
    utc_now,
    yesterday,
)
from luku_engine.logic.feature_service import DEFAULT_WINDOWS, feature_status
from luku_engine.logic.leaderboard_service import LOOKUP_ERRORS, LeaderboardService
from luku_engine.logic.transaction import run_progress_transaction
from luku_engine.schemas import (
    MAX_RATING,
    MIN_RATING,
    FeatureId,
    SubmissionPerksResponse,
    UserProgress,
)
from luku_engine.schemas_badges import BadgeId
from luku_engine.services.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)

STREAK_POINTS_PER_DAY = 1
WEEKEND_BONUS_POINTS = 1
SHIELD_FORGIVEN_GAP = 2

RankLookup = Callable[[date], Optional[int]]


@dataclass
class PerksOutcome:
    points_awarded: int = 0
    badges_awarded: List[BadgeId] = field(default_factory=list)
    shield_consumed: bool = False
    top3_rank: Optional[int] = None


# ============= RULES =============

def _grant(progress: UserProgress, outcome: PerksOutcome, points: int) -> None:
    progress.points += points
    outcome.points_awarded += points


def _grant_badge(progress: UserProgress, outcome: PerksOutcome, badge_id: BadgeId, with_reward: bool = True) -> bool:
    if not progress.add_badge(badge_id):
        return False
    outcome.badges_awarded.append(badge_id)
    if with_reward:
        _grant(progress, outcome, badge_reward(badge_id))
    return True


def apply_first_submission(progress: UserProgress, outcome: PerksOutcome) -> None:
    _grant_badge(progress, outcome, BadgeId.FIRST_SUBMISSION)


def apply_perfect_score(progress: UserProgress, outcome: PerksOutcome, rating: float) -> None:
    if rating == MAX_RATING:
        _grant_badge(progress, outcome, BadgeId.PERFECT_SCORE)


def next_streak(
    progress: UserProgress,
    submission_date: date,
    shield_active: bool
) -> Tuple[int, bool]:
    """
    Streak value after a first submission on submission_date.

    Returns:
        (new streak, whether the streak shield was used)
    """
    if progress.lastSubmissionDate is None:
        return 1, False

    gap = calendar_days_between(progress.lastSubmissionDate, submission_date)
    if gap == 1:
        return progress.currentStreak + 1, False
    if gap == SHIELD_FORGIVEN_GAP and shield_active:
        return progress.currentStreak + 1, True
    # gap > 1 without shield, or gap <= 0 from clock skew
    return 1, False


def apply_streak(
    progress: UserProgress,
    outcome: PerksOutcome,
    submission_date: date,
    now: datetime,
    shield_window: timedelta
) -> None:
    if progress.lastSubmissionDate == submission_date:
        return

    shield = feature_status(progress, FeatureId.STREAK_SHIELD, now, shield_window)
    streak, shield_used = next_streak(progress, submission_date, shield.active)
    if shield_used:
        del progress.featureActivations[FeatureId.STREAK_SHIELD.value]
        outcome.shield_consumed = True
        logger.info(f"Streak shield consumed for user {progress.userId} on {format_date(submission_date)}")

    progress.currentStreak = streak
    _grant(progress, outcome, STREAK_POINTS_PER_DAY)

    if is_weekend(submission_date):
        _grant(progress, outcome, WEEKEND_BONUS_POINTS)
        _grant_badge(progress, outcome, BadgeId.WEEKEND_WARRIOR)

    progress.lastSubmissionDate = submission_date

    for threshold, badge_id in STREAK_THRESHOLDS:
        if progress.currentStreak >= threshold:
            _grant_badge(progress, outcome, badge_id)


def apply_top3_bonus(
    progress: UserProgress,
    outcome: PerksOutcome,
    submission_date: date,
    rank_lookup: Optional[RankLookup]
) -> None:
    previous_day = yesterday(submission_date)
    if rank_lookup is None or progress.lastTop3BonusDate == previous_day:
        return

    try:
        rank = rank_lookup(previous_day)
    except LOOKUP_ERRORS as e:
        logger.warning(
            f"Top-3 lookup for {format_date(previous_day)} failed, skipping bonus for user {progress.userId}: {e}"
        )
        return

    bonus = TOP_3_RANK_POINTS.get(rank)
    if bonus is None:
        return

    _grant(progress, outcome, bonus)
    _grant_badge(progress, outcome, BadgeId.TOP_3_FINISHER, with_reward=False)
    progress.lastTop3BonusDate = previous_day
    outcome.top3_rank = rank


def apply_point_milestones(progress: UserProgress, outcome: PerksOutcome) -> None:
    """Grant the badge of the highest threshold reached, if not held yet"""
    milestone = highest_milestone_reached(progress.points)
    if milestone is not None:
        _grant_badge(progress, outcome, milestone.id)


def evaluate_submission_perks(
    progress: UserProgress,
    rating: float,
    submission_date: date,
    now: datetime,
    rank_lookup: Optional[RankLookup] = None,
    shield_window: timedelta = DEFAULT_WINDOWS[FeatureId.STREAK_SHIELD],
) -> PerksOutcome:
    """Run every reward rule in order against progress (mutated in place)"""
    outcome = PerksOutcome()
    apply_first_submission(progress, outcome)
    apply_perfect_score(progress, outcome, rating)
    apply_streak(progress, outcome, submission_date, now, shield_window)
    apply_top3_bonus(progress, outcome, submission_date, rank_lookup)
    apply_point_milestones(progress, outcome)
    return outcome


def validate_rating(rating: float) -> float:
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        raise InvalidArgumentError(f"Rating must be a number, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidArgumentError(f"Rating must be between {MIN_RATING:g} and {MAX_RATING:g}, got {rating}")
    return float(rating)


# ============= TRANSACTIONAL APPLY =============

class PerksService:
    """Applies submission rewards to UserProgress atomically."""

    def __init__(
        self,
        repository: ProgressRepository,
        leaderboard: Optional[LeaderboardService] = None,
        clock: Clock = utc_now,
        shield_window: timedelta = DEFAULT_WINDOWS[FeatureId.STREAK_SHIELD],
        max_attempts: int = 5,
        attempt_timeout: float = 10.0,
    ):
        self.repository = repository
        self.leaderboard = leaderboard
        self.clock = clock
        self.shield_window = shield_window
        self.max_attempts = max_attempts
        self.attempt_timeout = attempt_timeout

    def apply_submission_perks(
        self,
        user_id: str,
        rating: float,
        submission_date: Union[str, date],
        now: Optional[datetime] = None
    ) -> SubmissionPerksResponse:
        """
        Compute and commit every reward for one submission.

        Raises:
            InvalidArgumentError: malformed date or rating outside [0, 10]
            NotFoundError: the user has no progress record
            ConflictError: retries exhausted, nothing was written
        """
        rating = validate_rating(rating)
        day = parse_date(submission_date, "submission date")
        now = ensure_aware(now or self.clock())
        rank_lookup = self._memoized_rank_lookup(user_id)

        def mutate(progress: UserProgress) -> PerksOutcome:
            return evaluate_submission_perks(
                progress, rating, day, now,
                rank_lookup=rank_lookup,
                shield_window=self.shield_window,
            )

        result = run_progress_transaction(
            self.repository,
            user_id,
            mutate,
            max_attempts=self.max_attempts,
            attempt_timeout=self.attempt_timeout,
        )
        outcome = result.outcome

        logger.info(
            f"Perks for user {user_id} on {format_date(day)}: +{outcome.points_awarded} points, "
            f"badges={[badge.value for badge in outcome.badges_awarded]}, "
            f"streak={result.progress.currentStreak}, committed={result.committed}"
        )
        return SubmissionPerksResponse(
            userId=user_id,
            pointsAwarded=outcome.points_awarded,
            badgesAwarded=outcome.badges_awarded,
            newStreak=result.progress.currentStreak,
            totalPoints=result.progress.points,
            shieldConsumed=outcome.shield_consumed,
            top3Rank=outcome.top3_rank,
        )

    def _memoized_rank_lookup(self, user_id: str) -> Optional[RankLookup]:
        """Yesterday's rank is looked up at most once per call, even across retries"""
        if self.leaderboard is None:
            return None
        cache: Dict[date, Optional[int]] = {}

        def lookup(day: date) -> Optional[int]:
            if day not in cache:
                cache[day] = self.leaderboard.get_user_rank(day, user_id)
            return cache[day]

        return lookup
