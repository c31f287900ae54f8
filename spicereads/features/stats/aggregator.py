from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from spicereads.core.config import settings
from spicereads.core.errors import PersistenceError
from spicereads.core.logging import log_event
from spicereads.features.challenges.progress import ChallengeProgressTracker
from spicereads.features.themes.calendar import THEMED_DAYS, theme_for_date
from spicereads.models.gamification import Activity, StreakStats

POINTS_PER_LEVEL = 1000


def level_for_points(total_points: int) -> Tuple[int, int]:
    """(current_level, points_to_next_level) for a point total."""
    level = total_points // POINTS_PER_LEVEL + 1
    return level, level * POINTS_PER_LEVEL - total_points


def favorite_themed_day(activities: List[Activity]) -> Optional[str]:
    """Theme id with the most points earned; ties go to the earlier theme in the week."""
    totals: Dict[str, int] = {}
    for activity in activities:
        theme_id = theme_for_date(activity.date).id
        totals[theme_id] = totals.get(theme_id, 0) + activity.points_earned

    favorite = None
    for theme in THEMED_DAYS:
        if theme.id in totals and (favorite is None or totals[theme.id] > totals[favorite]):
            favorite = theme.id
    return favorite


@dataclass
class StatsResult:
    """Stats read-model plus the error that degraded it, if any."""

    stats: StreakStats
    error: Optional[str] = None


class StatsAggregator:
    """
    Composes the dashboard read-model.

    On a store failure the last good stats for the user (or empty stats) are
    returned with `error` set. Last good stats are kept for at most
    `cache_size` users, least recently used evicted first.
    """

    def __init__(
        self,
        store,
        clock,
        progress: Optional[ChallengeProgressTracker] = None,
        cache_size: Optional[int] = None,
    ):
        self._store = store
        self._clock = clock
        self._progress = progress or ChallengeProgressTracker(store, clock)
        self._cache_size = cache_size if cache_size is not None else settings.STATS_CACHE_SIZE
        self._last_good: "OrderedDict[str, StreakStats]" = OrderedDict()
        self._lock = threading.Lock()

    def aggregate(self, user_id: str) -> StatsResult:
        today = self._clock.today()
        try:
            total_points = self._store.sum_points_for_date(user_id, today)
            level, to_next = level_for_points(total_points)
            stats = StreakStats(
                total_points=total_points,
                current_level=level,
                points_to_next_level=to_next,
                active_streaks=self._store.list_streaks(user_id),
                completed_challenges_today=self._progress.completed_count(user_id, today),
                total_challenges_completed=self._progress.total_completed(user_id),
                unlocked_rewards_count=len(self._store.get_unlocked_rewards(user_id)),
                favorite_themed_day=favorite_themed_day(self._store.list_activities(user_id)),
            )
        except PersistenceError as e:
            with self._lock:
                previous = self._last_good.get(user_id)
            log_event(
                "warning",
                "stats.aggregate_degraded",
                user_id=user_id,
                error_code=e.code,
                extra={"error": e.message, "served_previous": previous is not None},
            )
            return StatsResult(stats=previous or StreakStats(), error=e.message)

        self._remember(user_id, stats)
        return StatsResult(stats=stats)

    def cached_users(self) -> List[str]:
        """Users with last good stats, least recently refreshed first."""
        with self._lock:
            return list(self._last_good)

    def _remember(self, user_id: str, stats: StreakStats) -> None:
        if self._cache_size < 1:
            return
        with self._lock:
            self._last_good[user_id] = stats
            self._last_good.move_to_end(user_id)
            while len(self._last_good) > self._cache_size:
                self._last_good.popitem(last=False)
