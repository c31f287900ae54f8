"""
Challenge progress: evaluation and per-user requirement counters.

progress_percent is a weighted aggregate (sum(current) / sum(target)), while
is_completed demands every requirement independently, so a challenge can sit
near 100% and still be incomplete.
"""

import math
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from spicereads.core.logging import log_event
from spicereads.features.challenges.generator import ChallengeGenerator
from spicereads.features.points.calculator import numeric_field
from spicereads.models.gamification import Activity, ActivityType, DailyChallenge


def progress_percent(challenge: DailyChallenge) -> float:
    """Aggregate completion in [0, 100]."""
    total_target = sum(req.target for req in challenge.requirements)
    if total_target <= 0:
        return 100.0
    total_current = sum(req.current for req in challenge.requirements)
    return min(100.0, total_current / total_target * 100)


def is_completed(challenge: DailyChallenge) -> bool:
    return all(req.current >= req.target for req in challenge.requirements)


def requirement_increments(activity_type: str, activity_data: Optional[Mapping[str, Any]]) -> Dict[str, int]:
    """Requirement type -> amount an activity contributes. Only positive amounts are returned."""
    increments: Dict[str, int] = {}
    if activity_type == ActivityType.READING_SESSION.value:
        increments["reading_minutes"] = math.floor(numeric_field(activity_data, "minutes"))
        increments["pages_read"] = math.floor(numeric_field(activity_data, "pages"))
    elif activity_type == ActivityType.SPICY_SCENE_MARKED.value:
        increments["spicy_scenes"] = 1
    elif activity_type == ActivityType.CONTENT_SHARED.value:
        increments["content_share"] = 1
    elif activity_type == ActivityType.CLUB_PARTICIPATION.value:
        increments["book_club_participation"] = 1
    return {kind: amount for kind, amount in increments.items() if amount > 0}


class ChallengeProgressTracker:
    """Merges per-user counters into the shared daily challenge set and advances them."""

    def __init__(self, store, clock, generator: Optional[ChallengeGenerator] = None):
        self._store = store
        self._clock = clock
        self._generator = generator or ChallengeGenerator(store, clock)

    def challenges_for_user(self, user_id: str, day: Optional[date] = None) -> List[DailyChallenge]:
        """The day's challenges (generated if missing) with this user's counters."""
        challenges = self._generator.generate_for_date(day or self._clock.today())
        return self._merge(user_id, challenges)

    def advance_for_activity(self, user_id: str, activity: Activity) -> List[DailyChallenge]:
        """Advance matching requirements of the activity's day; returns the updated challenges."""
        increments = requirement_increments(activity.activity_type, activity.activity_data)
        challenges = self._generator.generate_for_date(activity.date)
        if not increments:
            return self._merge(user_id, challenges)

        advanced = 0
        for challenge in challenges:
            if not challenge.is_active:
                continue
            for index, req in enumerate(challenge.requirements):
                amount = increments.get(req.type)
                if amount:
                    self._store.advance_requirement(user_id, challenge.id, index, amount)
                    advanced += 1

        if advanced:
            log_event(
                "info",
                "challenges.progressed",
                user_id=user_id,
                event_type=activity.activity_type,
                extra={"requirements_advanced": advanced, "date": activity.date.isoformat()},
            )
        return self._merge(user_id, challenges)

    def completed_count(self, user_id: str, day: date) -> int:
        """Completed challenges on `day`; read-only, nothing is generated."""
        challenges = self._merge(user_id, self._store.get_challenges_for_date(day))
        return sum(1 for challenge in challenges if is_completed(challenge))

    def total_completed(self, user_id: str) -> int:
        """Completed challenges across all dates the user has progress on."""
        progress = self._store.get_requirement_progress(user_id)
        challenges = self._store.get_challenges(progress.keys())
        return sum(1 for challenge in challenges if is_completed(challenge.with_progress(progress[challenge.id])))

    def _merge(self, user_id: str, challenges: List[DailyChallenge]) -> List[DailyChallenge]:
        if not challenges:
            return []
        progress = self._store.get_requirement_progress(user_id, [c.id for c in challenges])
        return [challenge.with_progress(progress.get(challenge.id, {})) for challenge in challenges]
