"""
Point policy for a single activity.

final = floor(base * multiplier). Truncation happens once, after the
multiplier, exactly as the product is computed in floating point.
"""

import math
from numbers import Real
from typing import Any, Dict, Mapping, Optional

from spicereads.core.errors import ValidationError
from spicereads.models.gamification import ActivityType, ThemedDay

# Flat base points per activity type (reading sessions are per-minute).
FLAT_POINTS: Dict[str, int] = {
    ActivityType.SPICY_SCENE_MARKED.value: 25,
    ActivityType.CONTENT_SHARED.value: 15,
    ActivityType.BOOK_COMPLETED.value: 100,
    ActivityType.CLUB_PARTICIPATION.value: 30,
}
READING_POINTS_PER_MINUTE = 2
# Placeholder rule for activity types the engine does not know yet.
UNKNOWN_ACTIVITY_POINTS = 10

# Upper bounds for one session.
MAX_SESSION_MINUTES = 24 * 60
MAX_SESSION_PAGES = 5000
FIELD_LIMITS: Dict[str, float] = {"minutes": MAX_SESSION_MINUTES, "pages": MAX_SESSION_PAGES}


def numeric_field(activity_data: Optional[Mapping[str, Any]], key: str) -> float:
    """
    Read a numeric payload field. Missing/None -> 0; numeric strings are accepted.

    Fields listed in FIELD_LIMITS are capped at their limit.

    Raises:
        ValidationError: the value is present but not a number, or above its limit
    """
    value = (activity_data or {}).get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ValidationError(f"activity_data.{key} must be a number")
    if isinstance(value, Real):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise ValidationError(f"activity_data.{key} must be a number") from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"activity_data.{key} must be a finite number")
    limit = FIELD_LIMITS.get(key)
    if limit is not None and number > limit:
        raise ValidationError(f"activity_data.{key} must be at most {limit}")
    return number


def base_points(activity_type: str, activity_data: Optional[Mapping[str, Any]] = None) -> int:
    """Base points before any themed-day multiplier."""
    if activity_type == ActivityType.READING_SESSION.value:
        minutes = numeric_field(activity_data, "minutes")
        if minutes <= 0:
            return 0
        return math.floor(minutes * READING_POINTS_PER_MINUTE)
    return FLAT_POINTS.get(activity_type, UNKNOWN_ACTIVITY_POINTS)


def multiplier_for(activity_type: str, theme: ThemedDay) -> float:
    multipliers = theme.special_multipliers
    if activity_type == ActivityType.READING_SESSION.value:
        return multipliers.reading_points
    if activity_type == ActivityType.SPICY_SCENE_MARKED.value:
        return multipliers.spicy_scene_points
    if activity_type == ActivityType.CONTENT_SHARED.value:
        return multipliers.sharing_points
    return 1.0


def apply_multiplier(points: int, multiplier: float) -> int:
    return math.floor(points * multiplier)


def compute_points(activity_type: str, activity_data: Optional[Mapping[str, Any]], theme: ThemedDay) -> int:
    """Points awarded for one activity on the day `theme` is active."""
    return apply_multiplier(base_points(activity_type, activity_data), multiplier_for(activity_type, theme))
