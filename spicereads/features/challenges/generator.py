from __future__ import annotations

import hashlib
from datetime import date
from typing import List

from spicereads.core.logging import log_event
from spicereads.features.themes.calendar import is_highest_intensity, theme_for_date
from spicereads.models.gamification import (
    ChallengeRequirement,
    ChallengeReward,
    DailyChallenge,
    ThemedDay,
)

MARATHON_SLUG = "reading_marathon"
SPICE_HUNTER_SLUG = "spice_hunter"
GO_FERAL_SLUG = "go_feral"


def challenge_id(day: date, slug: str) -> str:
    """Stable id for the challenge `slug` on `day`."""
    digest = hashlib.sha256(f"{day.isoformat()}:{slug}".encode("utf-8")).hexdigest()
    return digest[:32]


def _reading_marathon(day: date, theme: ThemedDay) -> DailyChallenge:
    intense = is_highest_intensity(theme)
    minutes = 60 if intense else 45
    return DailyChallenge(
        id=challenge_id(day, MARATHON_SLUG),
        date=day,
        slug=MARATHON_SLUG,
        theme_id=theme.id,
        title=f"{theme.name} Reading Marathon",
        description=f"Read for {minutes} minutes to embrace today's theme",
        requirements=[ChallengeRequirement(type="reading_minutes", target=minutes)],
        rewards=[
            ChallengeReward(type="points", value=150 if intense else 100, rarity="common"),
            ChallengeReward(type="voice_clip", value=f"{theme.id}_completion", rarity="rare"),
        ],
        difficulty="medium",
    )


def _spice_hunter(day: date, theme: ThemedDay) -> DailyChallenge:
    return DailyChallenge(
        id=challenge_id(day, SPICE_HUNTER_SLUG),
        date=day,
        slug=SPICE_HUNTER_SLUG,
        theme_id=theme.id,
        title="Spice Hunter",
        description="Mark 3 spicy scenes to unlock exclusive content",
        requirements=[ChallengeRequirement(type="spicy_scenes", target=3)],
        rewards=[ChallengeReward(type="book_recommendation", value="personalized_spicy", rarity="rare")],
        difficulty="easy",
    )


def _go_feral(day: date, theme: ThemedDay) -> DailyChallenge:
    return DailyChallenge(
        id=challenge_id(day, GO_FERAL_SLUG),
        date=day,
        slug=GO_FERAL_SLUG,
        theme_id=theme.id,
        title="Go Completely Feral",
        description="Complete all daily activities to unlock legendary Feral Friday content",
        requirements=[
            ChallengeRequirement(type="reading_minutes", target=90),
            ChallengeRequirement(type="spicy_scenes", target=5),
            ChallengeRequirement(type="content_share", target=1),
        ],
        rewards=[
            ChallengeReward(type="voice_clip", value="feral_friday_legendary", rarity="legendary"),
            ChallengeReward(type="club_access", value="feral_friday_exclusive", rarity="epic"),
        ],
        difficulty="legendary",
    )


def build_challenges(day: date, theme: ThemedDay) -> List[DailyChallenge]:
    """Template set for one date. Pure."""
    challenges = [_reading_marathon(day, theme), _spice_hunter(day, theme)]
    if is_highest_intensity(theme):
        challenges.append(_go_feral(day, theme))
    return challenges


class ChallengeGenerator:
    """Generates the shared challenge set once per calendar date."""

    def __init__(self, store, clock):
        self._store = store
        self._clock = clock

    def generate_for_today(self) -> List[DailyChallenge]:
        return self.generate_for_date(self._clock.today())

    def generate_for_date(self, day: date) -> List[DailyChallenge]:
        """Return the set for `day`, creating it on first request (idempotent)."""
        existing = self._store.get_challenges_for_date(day)
        if existing:
            return existing

        theme = theme_for_date(day)
        stored = self._store.insert_challenges(day, build_challenges(day, theme))
        log_event(
            "info",
            "challenges.generated",
            event_type="daily_challenges",
            extra={"date": day.isoformat(), "theme_id": theme.id, "count": len(stored)},
        )
        return stored
