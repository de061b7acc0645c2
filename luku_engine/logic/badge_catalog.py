"""
Badge catalog

Static registry of every badge the engine can award. The perks evaluator
reads point rewards and milestone thresholds from here; presentation
layers read display names and descriptions.
"""
from typing import List, Optional

from luku_engine.schemas_badges import BadgeCategory, BadgeDefinition, BadgeId


BADGE_CATALOG = {
    BadgeId.FIRST_SUBMISSION: BadgeDefinition(
        id=BadgeId.FIRST_SUBMISSION,
        displayName="First Look",
        description="Submit your first outfit for rating",
        category=BadgeCategory.SUBMISSION,
        pointReward=3,
        icon="badges/first_submission.png",
    ),
    BadgeId.PERFECT_SCORE: BadgeDefinition(
        id=BadgeId.PERFECT_SCORE,
        displayName="Perfect 10",
        description="Get a perfect 10 rating on an outfit",
        category=BadgeCategory.SUBMISSION,
        pointReward=5,
        icon="badges/perfect_score.png",
    ),
    BadgeId.WEEKEND_WARRIOR: BadgeDefinition(
        id=BadgeId.WEEKEND_WARRIOR,
        displayName="Weekend Warrior",
        description="Submit an outfit on a Saturday or Sunday",
        category=BadgeCategory.STREAK,
        icon="badges/weekend_warrior.png",
    ),
    BadgeId.STREAK_STARTER_3: BadgeDefinition(
        id=BadgeId.STREAK_STARTER_3,
        displayName="Streak Starter",
        description="Submit outfits 3 days in a row",
        category=BadgeCategory.STREAK,
        pointReward=2,
        icon="badges/streak_3.png",
    ),
    BadgeId.STREAK_KEEPER_7: BadgeDefinition(
        id=BadgeId.STREAK_KEEPER_7,
        displayName="Streak Keeper",
        description="Submit outfits 7 days in a row",
        category=BadgeCategory.STREAK,
        pointReward=5,
        icon="badges/streak_7.png",
    ),
    BadgeId.TOP_3_FINISHER: BadgeDefinition(
        id=BadgeId.TOP_3_FINISHER,
        displayName="Podium Finish",
        description="Finish in the top 3 of a daily leaderboard",
        category=BadgeCategory.RANKING,
        icon="badges/top_3.png",
    ),
    BadgeId.STYLE_ROOKIE: BadgeDefinition(
        id=BadgeId.STYLE_ROOKIE,
        displayName="Style Rookie",
        description="Reach 15 points",
        category=BadgeCategory.MILESTONE,
        pointReward=1,
        pointsThreshold=15,
        icon="badges/style_rookie.png",
    ),
    BadgeId.CENTURY_CLUB: BadgeDefinition(
        id=BadgeId.CENTURY_CLUB,
        displayName="Century Club",
        description="Reach 100 points",
        category=BadgeCategory.MILESTONE,
        pointsThreshold=100,
        icon="badges/century_club.png",
    ),
    BadgeId.LEGEND_STATUS: BadgeDefinition(
        id=BadgeId.LEGEND_STATUS,
        displayName="Luku Legend",
        description="Reach 250 points",
        category=BadgeCategory.MILESTONE,
        pointsThreshold=250,
        icon="badges/legend_status.png",
    ),
    BadgeId.PROFILE_PRO: BadgeDefinition(
        id=BadgeId.PROFILE_PRO,
        displayName="Profile Pro",
        description="Add a custom photo and link both TikTok and Instagram",
        category=BadgeCategory.PROFILE,
        pointReward=5,
        icon="badges/profile_pro.png",
    ),
    BadgeId.REFERRAL_ROCKSTAR: BadgeDefinition(
        id=BadgeId.REFERRAL_ROCKSTAR,
        displayName="Referral Rockstar",
        description="Invite 3 friends who join Luku",
        category=BadgeCategory.PROFILE,
        pointReward=10,
        icon="badges/referral_rockstar.png",
    ),
}

# Rank on yesterday's leaderboard -> bonus points
TOP_3_RANK_POINTS = {1: 5, 2: 3, 3: 2}

STREAK_THRESHOLDS = (
    (3, BadgeId.STREAK_STARTER_3),
    (7, BadgeId.STREAK_KEEPER_7),
)


def get_badge(badge_id: BadgeId) -> BadgeDefinition:
    return BADGE_CATALOG[BadgeId(badge_id)]


def list_badges(category: Optional[BadgeCategory] = None) -> List[BadgeDefinition]:
    """All badges in catalog order, optionally filtered by category"""
    return [
        badge for badge in BADGE_CATALOG.values()
        if category is None or badge.category == category
    ]


def badge_reward(badge_id: BadgeId) -> int:
    """One-time points for a badge (0 when the reward is computed elsewhere)"""
    return get_badge(badge_id).pointReward or 0


def milestone_badges() -> List[BadgeDefinition]:
    """Milestone badges sorted by threshold, highest first"""
    return sorted(
        list_badges(BadgeCategory.MILESTONE),
        key=lambda badge: badge.pointsThreshold,
        reverse=True,
    )


def highest_milestone_reached(points: int) -> Optional[BadgeDefinition]:
    for badge in milestone_badges():
        if points >= badge.pointsThreshold:
            return badge
    return None
