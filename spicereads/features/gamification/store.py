"""
spicereads/features/gamification/store.py

In-memory persistence for the gamification engine, plus store selection.

Every operation runs under one re-entrant lock, so each call is atomic.
`transaction()` snapshots the tables and restores them if the block raises,
giving the same all-or-nothing contract as the SQL store.
"""

import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
from uuid import uuid4

from spicereads.models.gamification import (
    Activity,
    DailyChallenge,
    Streak,
    StreakType,
    UnlockedReward,
)


class InMemoryGamificationStore:
    """
    Process-local store with the same interface as SqlGamificationStore.

    Used by default in development and tests.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._streaks: Dict[Tuple[str, str], Streak] = {}
        self._activities: List[Activity] = []
        self._challenges: Dict[str, DailyChallenge] = {}
        self._challenge_keys: Dict[Tuple[date, str], str] = {}
        self._progress: Dict[Tuple[str, str, int], int] = {}
        self._rewards: Dict[str, UnlockedReward] = {}
        self._reward_keys: Dict[Tuple[str, str], str] = {}

    # Transactions -----------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator["InMemoryGamificationStore"]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                raise

    def _snapshot(self) -> Dict[str, Any]:
        # Stored models are frozen, so shallow container copies are enough.
        return {
            "_streaks": dict(self._streaks),
            "_activities": list(self._activities),
            "_challenges": dict(self._challenges),
            "_challenge_keys": dict(self._challenge_keys),
            "_progress": dict(self._progress),
            "_rewards": dict(self._rewards),
            "_reward_keys": dict(self._reward_keys),
        }

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        for attr, value in snapshot.items():
            setattr(self, attr, value)

    # Streaks ----------------------------------------------------------
    def get_streak(self, user_id: str, streak_type: StreakType) -> Optional[Streak]:
        with self._lock:
            return self._streaks.get((user_id, StreakType(streak_type).value))

    def list_streaks(self, user_id: str) -> List[Streak]:
        with self._lock:
            return [s for (uid, _), s in sorted(self._streaks.items()) if uid == user_id]

    def insert_streak_if_absent(self, streak: Streak) -> bool:
        key = (streak.user_id, streak.streak_type.value)
        with self._lock:
            if key in self._streaks:
                return False
            self._streaks[key] = streak
            return True

    def compare_and_set_streak(self, expected: Streak, updated: Streak) -> bool:
        key = (expected.user_id, expected.streak_type.value)
        with self._lock:
            if self._streaks.get(key) != expected:
                return False
            self._streaks[key] = updated
            return True

    # Activities -------------------------------------------------------
    def insert_activity(
        self,
        *,
        user_id: str,
        activity_type: str,
        activity_data: Mapping[str, Any],
        points_earned: int,
        day: date,
    ) -> Activity:
        with self._lock:
            activity = Activity(
                id=len(self._activities) + 1,
                user_id=user_id,
                activity_type=activity_type,
                activity_data=dict(activity_data),
                points_earned=points_earned,
                date=day,
            )
            self._activities.append(activity)
            return activity

    def sum_points_for_date(self, user_id: str, day: date) -> int:
        with self._lock:
            return sum(a.points_earned for a in self._activities if a.user_id == user_id and a.date == day)

    def list_activities(self, user_id: str, *, limit: Optional[int] = None) -> List[Activity]:
        """Newest first."""
        with self._lock:
            rows = [a for a in reversed(self._activities) if a.user_id == user_id]
        return rows[:limit] if limit is not None else rows

    def points_by_user(self, start: date, end: date) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        with self._lock:
            for activity in self._activities:
                if start <= activity.date <= end:
                    totals[activity.user_id] = totals.get(activity.user_id, 0) + activity.points_earned
        return totals

    # Challenges -------------------------------------------------------
    def get_challenges_for_date(self, day: date) -> List[DailyChallenge]:
        with self._lock:
            ids = [cid for (d, _), cid in self._challenge_keys.items() if d == day]
            return [self._challenges[cid] for cid in ids]

    def get_challenges(self, challenge_ids: Iterable[str]) -> List[DailyChallenge]:
        with self._lock:
            return [self._challenges[cid] for cid in challenge_ids if cid in self._challenges]

    def insert_challenges(self, day: date, challenges: List[DailyChallenge]) -> List[DailyChallenge]:
        """Insert a day's set unless one exists; always returns the stored set."""
        with self._lock:
            if not any(d == day for d, _ in self._challenge_keys):
                for challenge in challenges:
                    self._challenges[challenge.id] = challenge
                    self._challenge_keys[(day, challenge.slug)] = challenge.id
            return self.get_challenges_for_date(day)

    def get_requirement_progress(self, user_id: str, challenge_ids: Optional[Iterable[str]] = None) -> Dict[str, Dict[int, int]]:
        wanted = set(challenge_ids) if challenge_ids is not None else None
        progress: Dict[str, Dict[int, int]] = {}
        with self._lock:
            for (uid, cid, index), current in self._progress.items():
                if uid != user_id or (wanted is not None and cid not in wanted):
                    continue
                progress.setdefault(cid, {})[index] = current
        return progress

    def advance_requirement(self, user_id: str, challenge_id: str, requirement_index: int, amount: int) -> int:
        key = (user_id, challenge_id, requirement_index)
        with self._lock:
            self._progress[key] = self._progress.get(key, 0) + max(0, amount)
            return self._progress[key]

    # Rewards ----------------------------------------------------------
    def get_unlocked_rewards(self, user_id: str) -> List[UnlockedReward]:
        with self._lock:
            rows = [r for r in self._rewards.values() if r.user_id == user_id]
        return sorted(rows, key=lambda r: r.unlocked_at)

    def get_unlocked_reward(self, user_id: str, reward_id: str) -> Optional[UnlockedReward]:
        with self._lock:
            reward = self._rewards.get(reward_id)
        if reward is None or reward.user_id != user_id:
            return None
        return reward

    def insert_unlocked_reward_if_absent(
        self,
        *,
        user_id: str,
        definition_id: str,
        reward_type: str,
        reward_data: Mapping[str, Any],
        unlocked_at: datetime,
    ) -> Optional[UnlockedReward]:
        """Return the new reward, or None when this definition was already unlocked."""
        with self._lock:
            if (user_id, definition_id) in self._reward_keys:
                return None
            reward = UnlockedReward(
                id=str(uuid4()),
                user_id=user_id,
                definition_id=definition_id,
                reward_type=reward_type,
                reward_data=dict(reward_data),
                unlocked_at=unlocked_at,
            )
            self._rewards[reward.id] = reward
            self._reward_keys[(user_id, definition_id)] = reward.id
            return reward

    def update_unlocked_reward(
        self, user_id: str, reward_id: str, *, is_claimed: bool, claimed_at: Optional[datetime]
    ) -> Optional[UnlockedReward]:
        with self._lock:
            reward = self.get_unlocked_reward(user_id, reward_id)
            if reward is None:
                return None
            updated = reward.model_copy(update={"is_claimed": is_claimed, "claimed_at": claimed_at})
            self._rewards[reward_id] = updated
            return updated


# ============================================================================
# Store selection
# ============================================================================

def get_gamification_store():
    """
    Get the appropriate store implementation.

    - SQL store if DATABASE_URL is configured and reachable
    - Falls back to in-memory otherwise
    """
    import logging

    from spicereads.core.database import get_database_url

    logger = logging.getLogger("spicereads")

    if get_database_url():
        try:
            from spicereads.core.database import check_connection, create_all_tables
            from spicereads.features.gamification.store_sql import SqlGamificationStore

            if check_connection():
                create_all_tables()
                return SqlGamificationStore()
            logger.warning("[store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[store] failed to initialize SQL store: {e}; falling back to in-memory")

    return InMemoryGamificationStore()
