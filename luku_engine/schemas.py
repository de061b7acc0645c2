"""
Pydantic schemas for the gamification engine

All schemas use Pydantic v2 syntax with ConfigDict and camelCase fields.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from luku_engine.schemas_badges import BadgeId


MIN_RATING = 0.0
MAX_RATING = 10.0


class FeatureId(str, Enum):
    """Features that can be bought with points"""
    STREAK_SHIELD = "streak_shield"
    AI_POWERUP = "ai_powerup"
    PROFILE_BOOST = "profile_boost"


# ============= USER PROGRESS =============

class UserProgress(BaseModel):
    """Points, badges, streak and purchases for one user"""
    userId: str = Field(..., min_length=1)
    username: Optional[str] = None
    photoUrl: Optional[str] = None
    customPhotoUrl: Optional[str] = None
    tiktokUrl: Optional[str] = None
    instagramUrl: Optional[str] = None

    points: int = Field(default=0, ge=0)
    badges: List[str] = Field(default_factory=list, description="Earned BadgeId values, never shrinks")
    currentStreak: int = Field(default=0, ge=0)
    lastSubmissionDate: Optional[date] = None
    lastTop3BonusDate: Optional[date] = None
    featureActivations: Dict[str, datetime] = Field(
        default_factory=dict,
        description="FeatureId -> instant of last purchase"
    )

    referredBy: Optional[str] = None
    referrals: List[str] = Field(default_factory=list, description="Referred users already rewarded")
    tiktokPointsAwarded: bool = False
    instagramPointsAwarded: bool = False

    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    def has_badge(self, badge_id: BadgeId) -> bool:
        return badge_id.value in self.badges

    def add_badge(self, badge_id: BadgeId) -> bool:
        """Add a badge if missing. Returns True when it was added."""
        if self.has_badge(badge_id):
            return False
        self.badges.append(badge_id.value)
        return True

    @property
    def display_photo_url(self) -> Optional[str]:
        return self.customPhotoUrl or self.photoUrl


class UserProgressCreate(BaseModel):
    """Schema for creating a user's progress record at account creation"""
    userId: str = Field(..., min_length=1, description="Unique user identifier (from the auth provider)")
    username: str = Field(..., min_length=1, max_length=50, description="Display username")
    photoUrl: Optional[str] = None
    referredBy: Optional[str] = Field(default=None, description="userId of the referring user")

    @field_validator('referredBy')
    @classmethod
    def validate_referred_by(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


# ============= SUBMISSIONS =============

class RatingResult(BaseModel):
    """Output of the external style rating model"""
    rating: float = Field(..., ge=MIN_RATING, le=MAX_RATING)
    isActualUserOutfit: bool = True
    validityCritique: Optional[str] = None
    complimentOrCritique: str = ""
    colorSuggestions: List[str] = Field(default_factory=list)
    lookSuggestions: str = ""


class SubmissionRecord(BaseModel):
    """Immutable outfit rating event for one user on one leaderboard date"""
    submissionId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)
    rating: float = Field(..., ge=MIN_RATING, le=MAX_RATING)
    leaderboardDate: date
    submittedAt: datetime
    username: Optional[str] = None
    userPhotoUrl: Optional[str] = None
    outfitImageUrl: Optional[str] = None
    complimentOrCritique: Optional[str] = None
    colorSuggestions: List[str] = Field(default_factory=list)
    lookSuggestions: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class UserProfileStats(BaseModel):
    userId: str
    totalSubmissions: int = 0
    averageRating: Optional[float] = None
    highestRating: Optional[float] = None


# ============= RESULTS =============

class SubmissionPerksResponse(BaseModel):
    """Rewards granted for one submission"""
    userId: str
    pointsAwarded: int = 0
    badgesAwarded: List[BadgeId] = Field(default_factory=list)
    newStreak: int = 0
    totalPoints: int = 0
    shieldConsumed: bool = False
    top3Rank: Optional[int] = Field(default=None, description="Yesterday's rank when a top-3 bonus was paid")


class SpendPointsResponse(BaseModel):
    success: bool
    message: str
    featureId: FeatureId
    pointsSpent: int
    remainingPoints: int
    activatedAt: datetime


class FeatureStatus(BaseModel):
    featureId: FeatureId
    active: bool
    hoursRemaining: float = 0.0
    activatedAt: Optional[datetime] = None
    expiresAt: Optional[datetime] = None


class ProfilePerksResponse(BaseModel):
    userId: str
    success: bool
    message: str
    pointsAwarded: int = 0
    badgesAwarded: List[BadgeId] = Field(default_factory=list)
    totalPoints: int = 0


class ReferralResponse(BaseModel):
    newUserId: str
    referrerId: Optional[str] = None
    success: bool
    message: str
    pointsAwarded: int = 0
    badgesAwarded: List[BadgeId] = Field(default_factory=list)
