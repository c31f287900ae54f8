"""
Per-user streak counters, one per streak type.

Transitions are driven by whole calendar days between the stored
last_activity_date and today:
- no row          -> created at 1
- same day        -> unchanged
- next day        -> continued (+1, longest follows)
- gap of 2+ days  -> reset to 1, longest kept
- today < last    -> backdated, nothing mutated
"""

from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from spicereads.core.config import settings
from spicereads.core.errors import ConfigurationError, ConflictError
from spicereads.core.logging import log_event
from spicereads.models.gamification import ActivityType, Streak, StreakType

StreakTransition = Literal["created", "continued", "reset", "unchanged", "backdated"]

ACTIVITY_STREAK_TYPES: Dict[str, StreakType] = {
    ActivityType.READING_SESSION.value: StreakType.DAILY_READING,
    ActivityType.SPICY_SCENE_MARKED.value: StreakType.SPICY_SCENES,
    ActivityType.CONTENT_SHARED.value: StreakType.CONTENT_SHARING,
    ActivityType.CLUB_PARTICIPATION.value: StreakType.BOOK_CLUB,
}


def streak_type_for_activity(activity_type: str) -> Optional[StreakType]:
    """Streak advanced by an activity type; None for book_completed and unknown types."""
    return ACTIVITY_STREAK_TYPES.get(activity_type)


def next_streak(
    existing: Optional[Streak],
    *,
    user_id: str,
    streak_type: StreakType,
    today: date,
) -> Tuple[Streak, StreakTransition]:
    """Pure transition: the streak after an activity on `today`."""
    if existing is None:
        created = Streak(
            user_id=user_id,
            streak_type=streak_type,
            current_streak=1,
            longest_streak=1,
            last_activity_date=today,
        )
        return created, "created"

    days_diff = (today - existing.last_activity_date).days
    if days_diff < 0:
        return existing, "backdated"
    if days_diff == 0:
        return existing, "unchanged"
    if days_diff == 1:
        current = existing.current_streak + 1
        continued = existing.model_copy(
            update={
                "current_streak": current,
                "longest_streak": max(existing.longest_streak, current),
                "last_activity_date": today,
            }
        )
        return continued, "continued"

    reset = existing.model_copy(update={"current_streak": 1, "last_activity_date": today})
    return reset, "reset"


class StreakTracker:
    """Applies streak transitions with compare-and-set so concurrent recordings never lose an increment."""

    def __init__(self, store, clock, max_attempts: Optional[int] = None):
        self._store = store
        self._clock = clock
        self._max_attempts = max_attempts if max_attempts is not None else settings.STREAK_UPDATE_MAX_ATTEMPTS
        if self._max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")

    def get_streaks(self, user_id: str) -> List[Streak]:
        return self._store.list_streaks(user_id)

    def update(
        self,
        user_id: str,
        streak_type: StreakType,
        *,
        today: Optional[date] = None,
        store=None,
    ) -> Tuple[Streak, StreakTransition]:
        """
        Advance the (user, streak_type) counter for an activity today.

        Args:
            store: transaction-bound store to write through (defaults to the tracker's store)

        Raises:
            ConflictError: every compare-and-set attempt lost to a concurrent writer
        """
        target = store or self._store
        day = today or self._clock.today()
        streak_type = StreakType(streak_type)

        for attempt in range(1, self._max_attempts + 1):
            existing = target.get_streak(user_id, streak_type)
            updated, transition = next_streak(existing, user_id=user_id, streak_type=streak_type, today=day)

            if transition in ("unchanged", "backdated"):
                return existing, transition

            if existing is None:
                written = target.insert_streak_if_absent(updated)
            else:
                written = target.compare_and_set_streak(existing, updated)

            if written:
                log_event(
                    "info",
                    "streak.updated",
                    user_id=user_id,
                    event_type=streak_type.value,
                    extra={
                        "transition": transition,
                        "current_streak": updated.current_streak,
                        "longest_streak": updated.longest_streak,
                        "attempt": attempt,
                    },
                )
                return updated, transition

        log_event(
            "warning",
            "streak.update_conflict",
            user_id=user_id,
            event_type=streak_type.value,
            error_code=ConflictError.code,
            extra={"attempts": self._max_attempts},
        )
        raise ConflictError(f"Concurrent updates to {streak_type.value} streak; try again")
