from __future__ import annotations

from datetime import timedelta
from typing import Dict, List, Optional

from spicereads.core.config import settings
from spicereads.core.errors import ValidationError
from spicereads.models.gamification import LeaderboardEntry

# Window length in calendar days, ending today.
TIMEFRAME_DAYS: Dict[str, int] = {"daily": 1, "weekly": 7, "monthly": 30}


class LeaderboardService:
    """Ranks users by points earned in a trailing window."""

    def __init__(self, store, clock, limit: Optional[int] = None):
        self._store = store
        self._clock = clock
        self._limit = limit if limit is not None else settings.LEADERBOARD_LIMIT

    def leaderboard(self, timeframe: str = "weekly", limit: Optional[int] = None) -> List[LeaderboardEntry]:
        days = TIMEFRAME_DAYS.get(timeframe)
        if days is None:
            raise ValidationError(f"timeframe must be one of: {', '.join(TIMEFRAME_DAYS)}")
        size = limit if limit is not None else self._limit
        if size < 1:
            raise ValidationError("limit must be positive")

        end = self._clock.today()
        start = end - timedelta(days=days - 1)
        totals = self._store.points_by_user(start, end)

        ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[:size]
        entries: List[LeaderboardEntry] = []
        for position, (user_id, points) in enumerate(ranked, start=1):
            user_streaks = self._store.list_streaks(user_id)
            entries.append(
                LeaderboardEntry(
                    user_id=user_id,
                    total_points=points,
                    current_streak=max((s.current_streak for s in user_streaks), default=0),
                    longest_streak=max((s.longest_streak for s in user_streaks), default=0),
                    rank=position,
                )
            )
        return entries
