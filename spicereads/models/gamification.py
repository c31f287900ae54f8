"""
spicereads/models/gamification.py
Gamification domain models: streaks, activities, themed days, challenges, rewards.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StreakType(str, Enum):
    DAILY_READING = "daily_reading"
    SPICY_SCENES = "spicy_scenes"
    CONTENT_SHARING = "content_sharing"
    BOOK_CLUB = "book_club"


class ActivityType(str, Enum):
    """Known activity types. Activities may carry other types (scored with the fallback rule)."""

    READING_SESSION = "reading_session"
    SPICY_SCENE_MARKED = "spicy_scene_marked"
    CONTENT_SHARED = "content_shared"
    BOOK_COMPLETED = "book_completed"
    CLUB_PARTICIPATION = "club_participation"


RequirementType = Literal["reading_minutes", "spicy_scenes", "pages_read", "content_share", "book_club_participation"]
RewardKind = Literal["voice_clip", "book_recommendation", "club_access", "badge", "points"]
Rarity = Literal["common", "rare", "epic", "legendary"]
Difficulty = Literal["easy", "medium", "hard", "legendary"]
SurpriseContentType = Literal["voice_clip", "nsfw_recommendation", "exclusive_scene", "club_conversation"]


class Streak(BaseModel):
    """Consecutive-day counter for one (user, streak_type). Day-level, no time component."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    streak_type: StreakType
    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    last_activity_date: date


class Activity(BaseModel):
    """Immutable activity log entry; points are fixed at creation."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    activity_type: str
    activity_data: Dict[str, Any] = Field(default_factory=dict)
    points_earned: int = Field(ge=0)
    date: date


class SpecialMultipliers(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading_points: float = Field(ge=1.0)
    spicy_scene_points: float = Field(ge=1.0)
    sharing_points: float = Field(ge=1.0)


class ExclusiveContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    voice_clips: List[str] = Field(default_factory=list)
    book_recommendations: List[str] = Field(default_factory=list)
    club_topics: List[str] = Field(default_factory=list)


class ThemedDay(BaseModel):
    """Static day-of-week theme (Sunday = 0)."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    day_of_week: int = Field(ge=0, le=6)
    theme_color: str
    icon: str
    description: str
    special_multipliers: SpecialMultipliers
    exclusive_content: Optional[ExclusiveContent] = None


class ChallengeRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RequirementType
    target: int = Field(ge=0)
    current: int = Field(default=0, ge=0)


class ChallengeReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RewardKind
    value: Union[int, str]
    rarity: Rarity


class DailyChallenge(BaseModel):
    """
    A challenge in the set generated for one calendar date.

    The set is shared by every user; `current` counters are per user and
    merged in when the challenge is read for someone.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    date: date
    slug: str
    theme_id: str
    title: str
    description: str
    requirements: List[ChallengeRequirement]
    rewards: List[ChallengeReward]
    difficulty: Difficulty
    is_active: bool = True

    def with_progress(self, counters: Dict[int, int]) -> "DailyChallenge":
        """Return a copy whose requirement counters come from `counters` (index -> current)."""
        requirements = [
            req.model_copy(update={"current": counters.get(index, 0)})
            for index, req in enumerate(self.requirements)
        ]
        return self.model_copy(update={"requirements": requirements})


class UnlockRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    streak_days: int = Field(ge=0)
    activity_points: int = Field(ge=0)
    themed_day: Optional[str] = None


class SpicySurprise(BaseModel):
    """Reward definition from the static catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    content_type: SurpriseContentType
    content_url: Optional[str] = None
    content_data: Dict[str, Any] = Field(default_factory=dict)
    unlock_requirements: UnlockRequirements
    rarity: Rarity
    is_nsfw: bool


class UnlockedReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    definition_id: str
    reward_type: str
    reward_data: Dict[str, Any]
    is_claimed: bool = False
    unlocked_at: datetime
    claimed_at: Optional[datetime] = None


class StreakStats(BaseModel):
    """Derived read-model for dashboards; never stored."""

    model_config = ConfigDict(frozen=True)

    total_points: int = 0
    current_level: int = 1
    points_to_next_level: int = 1000
    active_streaks: List[Streak] = Field(default_factory=list)
    completed_challenges_today: int = 0
    total_challenges_completed: int = 0
    unlocked_rewards_count: int = 0
    favorite_themed_day: Optional[str] = None


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    total_points: int
    current_streak: int
    longest_streak: int
    rank: int
