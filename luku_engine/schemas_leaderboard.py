"""
Leaderboard Schemas (Pydantic)

Daily views are ranked by (rating desc, submittedAt asc); weekly views by
(totalPoints desc, bestRating desc). Neither is persisted.
"""
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    rank: int = Field(..., ge=1)
    submissionId: str
    userId: str
    username: Optional[str] = None
    userPhotoUrl: Optional[str] = None
    outfitImageUrl: Optional[str] = None
    rating: float
    submittedAt: datetime
    complimentOrCritique: Optional[str] = None
    colorSuggestions: List[str] = Field(default_factory=list)
    lookSuggestions: Optional[str] = None
    tiktokUrl: Optional[str] = None
    instagramUrl: Optional[str] = None
    points: int = 0
    currentStreak: int = 0


class DailyLeaderboardResponse(BaseModel):
    requestedDate: date
    leaderboardDate: date = Field(..., description="Day whose entries are shown")
    entries: List[LeaderboardEntry] = Field(default_factory=list)
    isWaitingForRelease: bool = False
    releaseAt: datetime
    timeUntilReleaseSeconds: int = Field(default=0, ge=0)
    message: str


class WeeklyLeaderboardEntry(BaseModel):
    rank: int = Field(..., ge=1)
    userId: str
    username: Optional[str] = None
    userPhotoUrl: Optional[str] = None
    totalSubmissions: int = Field(..., ge=1)
    avgRating: float
    bestRating: float
    totalPoints: int = Field(..., description="Week-scoped score, not the points balance")


class WeeklyLeaderboardResponse(BaseModel):
    weekStart: date
    weekEnd: date
    entries: List[WeeklyLeaderboardEntry] = Field(default_factory=list)
    message: str
