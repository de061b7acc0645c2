"""
Badge Schemas (Pydantic)

BadgeId is a closed str enum so stored values stay plain strings while
guard checks and catalog lookups share one source of truth.
"""
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


class BadgeId(str, Enum):
    FIRST_SUBMISSION = "FIRST_SUBMISSION"
    PERFECT_SCORE = "PERFECT_SCORE"
    WEEKEND_WARRIOR = "WEEKEND_WARRIOR"
    STREAK_STARTER_3 = "STREAK_STARTER_3"
    STREAK_KEEPER_7 = "STREAK_KEEPER_7"
    TOP_3_FINISHER = "TOP_3_FINISHER"
    STYLE_ROOKIE = "STYLE_ROOKIE"
    CENTURY_CLUB = "CENTURY_CLUB"
    LEGEND_STATUS = "LEGEND_STATUS"
    PROFILE_PRO = "PROFILE_PRO"
    REFERRAL_ROCKSTAR = "REFERRAL_ROCKSTAR"


class BadgeCategory(str, Enum):
    SUBMISSION = "submission"
    STREAK = "streak"
    RANKING = "ranking"
    MILESTONE = "milestone"
    PROFILE = "profile"


class BadgeDefinition(BaseModel):
    """Static badge definition from the catalog"""
    id: BadgeId = Field(..., description="Badge identifier")
    displayName: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=200)
    category: BadgeCategory
    pointReward: Optional[int] = Field(
        default=None, ge=0,
        description="One-time points granted with the badge, None when the reward is computed elsewhere"
    )
    pointsThreshold: Optional[int] = Field(
        default=None, gt=0,
        description="Cumulative points needed for milestone badges"
    )
    icon: Optional[str] = None

    model_config = ConfigDict(frozen=True, use_enum_values=False)


class BadgeCatalogResponse(BaseModel):
    badges: List[BadgeDefinition]
    total: int
