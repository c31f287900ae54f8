from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from spicereads.core.errors import NotFoundError, PersistenceError
from spicereads.core.logging import log_event
from spicereads.features.rewards.catalog import SPICY_SURPRISES, available_surprises, surprise_by_id
from spicereads.features.themes.calendar import theme_for_date
from spicereads.models.gamification import SpicySurprise, StreakStats, UnlockedReward


@dataclass
class RewardCheck:
    """Outcome of one unlock pass. `error` is set when the pass degraded."""

    unlocked: List[SpicySurprise] = field(default_factory=list)
    error: Optional[str] = None


class RewardUnlocker:
    """Unlocks catalog rewards exactly once per (user, definition)."""

    def __init__(self, store, clock, catalog: Optional[List[SpicySurprise]] = None):
        self._store = store
        self._clock = clock
        self._catalog = SPICY_SURPRISES if catalog is None else catalog

    def eligible(self, stats: StreakStats) -> List[SpicySurprise]:
        max_streak = max((s.current_streak for s in stats.active_streaks), default=0)
        theme = theme_for_date(self._clock.today())
        return available_surprises(max_streak, stats.total_points, theme.id, catalog=self._catalog)

    def check_and_unlock(self, user_id: str, stats: StreakStats) -> RewardCheck:
        """
        Unlock every newly eligible definition.

        Returns only the definitions unlocked by this call; a repeat call with
        unchanged stats returns nothing. Store failures are reported on the
        result instead of raised.
        """
        result = RewardCheck()
        try:
            for surprise in self.eligible(stats):
                reward = self._store.insert_unlocked_reward_if_absent(
                    user_id=user_id,
                    definition_id=surprise.id,
                    reward_type=surprise.content_type,
                    reward_data={**surprise.content_data, "surprise_id": surprise.id},
                    unlocked_at=self._clock.now(),
                )
                if reward is None:
                    continue
                result.unlocked.append(surprise)
                log_event(
                    "info",
                    "reward.unlocked",
                    user_id=user_id,
                    event_type=surprise.content_type,
                    extra={"definition_id": surprise.id, "rarity": surprise.rarity, "reward_id": reward.id},
                )
        except PersistenceError as e:
            log_event(
                "warning",
                "reward.check_degraded",
                user_id=user_id,
                error_code=e.code,
                extra={"error": e.message, "unlocked_before_failure": len(result.unlocked)},
            )
            result.error = e.message
        return result

    def list_rewards(self, user_id: str) -> List[UnlockedReward]:
        return self._store.get_unlocked_rewards(user_id)

    def claim(self, user_id: str, reward_id: str) -> UnlockedReward:
        """Mark a reward claimed. Claiming twice returns the already-claimed reward."""
        reward = self._store.get_unlocked_reward(user_id, reward_id)
        if reward is None:
            raise NotFoundError(f"Reward {reward_id} not found")
        if reward.is_claimed:
            return reward

        updated = self._store.update_unlocked_reward(user_id, reward_id, is_claimed=True, claimed_at=self._clock.now())
        if updated is None:
            raise NotFoundError(f"Reward {reward_id} not found")
        definition = surprise_by_id(updated.definition_id, self._catalog)
        log_event(
            "info",
            "reward.claimed",
            user_id=user_id,
            event_type=updated.reward_type,
            extra={
                "reward_id": reward_id,
                "definition_id": updated.definition_id,
                "rarity": definition.rarity if definition else None,
            },
        )
        return updated
