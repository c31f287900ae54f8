"""
spicereads/features/gamification/service.py

Facade over the gamification engine. One instance per process, built with an
injected store and clock.

Recording an activity runs: record (points, activity row, streak) ->
challenge progress -> stats refresh -> reward re-evaluation. Only the first
step is all-or-nothing; the rest are best-effort and report errors on the
outcome.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from spicereads.core.clock import Clock, SystemClock
from spicereads.core.config import settings
from spicereads.core.errors import NotFoundError, PersistenceError, ValidationError
from spicereads.core.logging import log_event
from spicereads.features.activities.recorder import ActivityRecorder
from spicereads.features.challenges.generator import ChallengeGenerator
from spicereads.features.challenges.progress import ChallengeProgressTracker
from spicereads.features.gamification.store import get_gamification_store
from spicereads.features.leaderboard.service import LeaderboardService
from spicereads.features.rewards.unlocker import RewardCheck, RewardUnlocker
from spicereads.features.stats.aggregator import StatsAggregator, StatsResult
from spicereads.features.streaks.tracker import StreakTracker
from spicereads.features.themes import calendar
from spicereads.models.gamification import (
    Activity,
    ActivityType,
    DailyChallenge,
    LeaderboardEntry,
    SpicySurprise,
    Streak,
    StreakStats,
    ThemedDay,
    UnlockedReward,
)


@dataclass
class ActivityOutcome:
    activity: Activity
    challenges: List[DailyChallenge] = field(default_factory=list)
    stats: Optional[StreakStats] = None
    new_rewards: List[SpicySurprise] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class GamificationService:
    def __init__(
        self,
        store=None,
        clock: Optional[Clock] = None,
        *,
        max_streak_attempts: Optional[int] = None,
        leaderboard_limit: Optional[int] = None,
    ):
        self.store = store if store is not None else get_gamification_store()
        self.clock = clock or SystemClock()

        self.streaks = StreakTracker(self.store, self.clock, max_attempts=max_streak_attempts)
        self.recorder = ActivityRecorder(self.store, self.clock, self.streaks)
        self.generator = ChallengeGenerator(self.store, self.clock)
        self.progress = ChallengeProgressTracker(self.store, self.clock, self.generator)
        self.stats_aggregator = StatsAggregator(self.store, self.clock, self.progress)
        self.unlocker = RewardUnlocker(self.store, self.clock)
        self.leaderboards = LeaderboardService(self.store, self.clock, limit=leaderboard_limit)

    # Activities -------------------------------------------------------
    def record_activity(
        self,
        user_id: str,
        activity_type: str,
        activity_data: Optional[Mapping[str, Any]] = None,
    ) -> ActivityOutcome:
        """Record an activity, then refresh challenges, stats and rewards."""
        activity = self.recorder.record(user_id, activity_type, activity_data)
        outcome = ActivityOutcome(activity=activity)

        try:
            outcome.challenges = self.progress.advance_for_activity(user_id, activity)
        except PersistenceError as e:
            log_event(
                "warning",
                "challenges.progress_degraded",
                user_id=user_id,
                event_type=activity_type,
                error_code=e.code,
                extra={"error": e.message, "activity_id": activity.id},
            )
            outcome.errors.append(e.message)

        stats_result = self.stats_aggregator.aggregate(user_id)
        outcome.stats = stats_result.stats
        if stats_result.error:
            outcome.errors.append(stats_result.error)
        else:
            check = self.unlocker.check_and_unlock(user_id, stats_result.stats)
            outcome.new_rewards = check.unlocked
            if check.error:
                outcome.errors.append(check.error)
        return outcome

    def share_achievement(
        self, user_id: str, achievement_type: str, achievement_data: Optional[Mapping[str, Any]] = None
    ) -> ActivityOutcome:
        if not achievement_type:
            raise ValidationError("achievement_type is required")
        return self.record_activity(
            user_id,
            ActivityType.CONTENT_SHARED.value,
            {
                "achievement_type": achievement_type,
                "achievement_data": dict(achievement_data or {}),
                "platform": "internal",
            },
        )

    def recent_activities(self, user_id: str, limit: Optional[int] = None) -> List[Activity]:
        size = limit if limit is not None else settings.RECENT_ACTIVITY_LIMIT
        if size < 1:
            raise ValidationError("limit must be positive")
        return self.store.list_activities(user_id, limit=size)

    # Streaks / stats --------------------------------------------------
    def get_streaks(self, user_id: str) -> List[Streak]:
        return self.streaks.get_streaks(user_id)

    def get_stats(self, user_id: str) -> StatsResult:
        return self.stats_aggregator.aggregate(user_id)

    # Themes -----------------------------------------------------------
    def today_theme(self) -> ThemedDay:
        return calendar.theme_for_date(self.clock.today())

    def themes(self) -> List[ThemedDay]:
        return calendar.all_themes()

    def theme(self, theme_id: str) -> ThemedDay:
        theme = calendar.theme_by_id(theme_id)
        if theme is None:
            raise NotFoundError(f"Themed day {theme_id} not found")
        return theme

    # Challenges -------------------------------------------------------
    def todays_challenges(self, user_id: str) -> List[DailyChallenge]:
        return self.progress.challenges_for_user(user_id)

    # Rewards ----------------------------------------------------------
    def check_rewards(self, user_id: str) -> RewardCheck:
        stats_result = self.stats_aggregator.aggregate(user_id)
        if stats_result.error:
            return RewardCheck(error=stats_result.error)
        return self.unlocker.check_and_unlock(user_id, stats_result.stats)

    def rewards(self, user_id: str) -> List[UnlockedReward]:
        return self.unlocker.list_rewards(user_id)

    def claim_reward(self, user_id: str, reward_id: str) -> UnlockedReward:
        return self.unlocker.claim(user_id, reward_id)

    # Leaderboard ------------------------------------------------------
    def leaderboard(self, timeframe: str = "weekly", limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return self.leaderboards.leaderboard(timeframe, limit)


_service: Optional[GamificationService] = None


def get_gamification_service() -> GamificationService:
    global _service
    if _service is None:
        _service = GamificationService()
    return _service


def set_gamification_service(service: Optional[GamificationService]) -> None:
    """Replace (or clear, with None) the process-wide service. Used by tests."""
    global _service
    _service = service
