"""
Activity recording: points, the activity row and its streak update.

The activity insert and the streak update share one store transaction, so a
failed recording leaves neither behind and never awards partial points.
"""

from typing import Any, Mapping, Optional

from spicereads.core.errors import ValidationError
from spicereads.core.logging import log_event
from spicereads.features.challenges.progress import requirement_increments
from spicereads.features.points.calculator import compute_points
from spicereads.features.streaks.tracker import StreakTracker, streak_type_for_activity
from spicereads.features.themes.calendar import theme_for_date
from spicereads.models.gamification import Activity


class ActivityRecorder:
    def __init__(self, store, clock, streak_tracker: Optional[StreakTracker] = None):
        self._store = store
        self._clock = clock
        self._streaks = streak_tracker or StreakTracker(store, clock)

    def record(
        self,
        user_id: str,
        activity_type: str,
        activity_data: Optional[Mapping[str, Any]] = None,
    ) -> Activity:
        """
        Record one activity for today and advance the mapped streak.

        Points and challenge increments are computed (and the payload validated)
        before anything is written.

        Raises:
            ValidationError: empty user/activity type or malformed payload
            PersistenceError: the store failed; nothing was recorded
            ConflictError: the streak update kept losing to concurrent writers
        """
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required")
        if not activity_type or not activity_type.strip():
            raise ValidationError("activity_type is required")

        data = dict(activity_data or {})
        today = self._clock.today()
        theme = theme_for_date(today)
        points = compute_points(activity_type, data, theme)
        requirement_increments(activity_type, data)
        streak_type = streak_type_for_activity(activity_type)

        transition = None
        with self._store.transaction() as tx:
            activity = tx.insert_activity(
                user_id=user_id,
                activity_type=activity_type,
                activity_data=data,
                points_earned=points,
                day=today,
            )
            if streak_type is not None:
                _, transition = self._streaks.update(user_id, streak_type, today=today, store=tx)

        log_event(
            "info",
            "activity.recorded",
            user_id=user_id,
            event_type=activity_type,
            extra={
                "activity_id": activity.id,
                "points_earned": points,
                "theme_id": theme.id,
                "streak_type": streak_type.value if streak_type else None,
                "streak_transition": transition,
            },
        )
        return activity
