"""Profile perks: social link points, PROFILE_PRO and referral rewards"""
import logging
from typing import List, Tuple

from luku_engine.errors import NotFoundError
from luku_engine.logic.badge_catalog import badge_reward
from luku_engine.logic.transaction import run_progress_transaction
from luku_engine.schemas import ProfilePerksResponse, ReferralResponse, UserProgress
from luku_engine.schemas_badges import BadgeId
from luku_engine.services.progress_repository import ProgressRepository

logger = logging.getLogger(__name__)

SOCIAL_LINK_POINTS = 1


def _has_value(value) -> bool:
    return bool(value and value.strip())


def evaluate_profile_perks(progress: UserProgress) -> Tuple[int, List[BadgeId]]:
    """Award first-link points and PROFILE_PRO based on the current profile fields"""
    points = 0
    badges: List[BadgeId] = []

    if _has_value(progress.tiktokUrl) and not progress.tiktokPointsAwarded:
        progress.tiktokPointsAwarded = True
        points += SOCIAL_LINK_POINTS
    if _has_value(progress.instagramUrl) and not progress.instagramPointsAwarded:
        progress.instagramPointsAwarded = True
        points += SOCIAL_LINK_POINTS

    complete = all(_has_value(v) for v in (progress.customPhotoUrl, progress.tiktokUrl, progress.instagramUrl))
    if complete and progress.add_badge(BadgeId.PROFILE_PRO):
        badges.append(BadgeId.PROFILE_PRO)
        points += badge_reward(BadgeId.PROFILE_PRO)

    progress.points += points
    return points, badges


class ProfilePerksService:
    """Rewards for completing a profile and inviting friends."""

    def __init__(
        self,
        repository: ProgressRepository,
        points_per_referral: int = 2,
        rockstar_threshold: int = 3,
        max_attempts: int = 5,
        attempt_timeout: float = 10.0,
    ):
        self.repository = repository
        self.points_per_referral = points_per_referral
        self.rockstar_threshold = rockstar_threshold
        self.max_attempts = max_attempts
        self.attempt_timeout = attempt_timeout

    def award_profile_perks(self, user_id: str) -> ProfilePerksResponse:
        result = run_progress_transaction(
            self.repository, user_id, evaluate_profile_perks,
            max_attempts=self.max_attempts, attempt_timeout=self.attempt_timeout,
        )
        points, badges = result.outcome
        if not points and not badges:
            return ProfilePerksResponse(
                userId=user_id,
                success=False,
                message="No new badges or points to award.",
                totalPoints=result.progress.points,
            )

        logger.info(f"Profile perks for user {user_id}: +{points} points, badges={[b.value for b in badges]}")
        return ProfilePerksResponse(
            userId=user_id,
            success=True,
            message=f"Awarded {points} points" + (f" and {len(badges)} badge(s)." if badges else "."),
            pointsAwarded=points,
            badgesAwarded=badges,
            totalPoints=result.progress.points,
        )

    def process_referral(self, new_user_id: str) -> ReferralResponse:
        """
        Reward the user who referred new_user_id.

        Each referred user pays out once; the referrer's rewarded list is
        the guard, so repeated calls are harmless.
        """
        new_user = self.repository.read_user(new_user_id, consistent=False)
        if new_user is None:
            raise NotFoundError(f"User progress not found for {new_user_id}")

        referrer_id = new_user.referredBy
        if not referrer_id:
            return ReferralResponse(newUserId=new_user_id, success=False, message="User was not referred.")
        if referrer_id == new_user_id:
            logger.warning(f"User {new_user_id} listed as their own referrer, ignoring")
            return ReferralResponse(
                newUserId=new_user_id, referrerId=referrer_id, success=False, message="Self-referral is not rewarded."
            )

        def mutate(referrer: UserProgress):
            if new_user_id in referrer.referrals:
                return 0, []
            referrer.referrals.append(new_user_id)
            points = self.points_per_referral
            badges = []
            if len(referrer.referrals) >= self.rockstar_threshold and referrer.add_badge(BadgeId.REFERRAL_ROCKSTAR):
                badges.append(BadgeId.REFERRAL_ROCKSTAR)
                points += badge_reward(BadgeId.REFERRAL_ROCKSTAR)
            referrer.points += points
            return points, badges

        try:
            result = run_progress_transaction(
                self.repository, referrer_id, mutate,
                max_attempts=self.max_attempts, attempt_timeout=self.attempt_timeout,
            )
        except NotFoundError:
            logger.warning(f"Referrer {referrer_id} of user {new_user_id} has no progress record")
            return ReferralResponse(
                newUserId=new_user_id, referrerId=referrer_id, success=False, message="Referrer not found."
            )

        points, badges = result.outcome
        if not result.committed:
            return ReferralResponse(
                newUserId=new_user_id, referrerId=referrer_id, success=False,
                message="Referral already rewarded.",
            )

        logger.info(f"Referral reward for {referrer_id} (referred {new_user_id}): +{points} points")
        return ReferralResponse(
            newUserId=new_user_id,
            referrerId=referrer_id,
            success=True,
            message=f"Referrer earned {points} points.",
            pointsAwarded=points,
            badgesAwarded=badges,
        )
