"""
Themed-day calendar.

Seven static themes keyed by day of week (Sunday = 0). Each theme scales
activity points and flags exclusive content for that day.
"""

from datetime import date
from typing import Dict, List, Optional

from spicereads.core.errors import ConfigurationError
from spicereads.models.gamification import ExclusiveContent, SpecialMultipliers, ThemedDay

# Theme whose challenge set is the most demanding.
HIGHEST_INTENSITY_THEME_ID = "feral_friday"


THEMED_DAYS: List[ThemedDay] = [
    ThemedDay(
        id="sinful_sunday",
        name="Sinful Sunday",
        day_of_week=0,
        theme_color="#7C3AED",
        icon="😈",
        description="Indulge in your darkest desires with extra spicy content",
        special_multipliers=SpecialMultipliers(reading_points=1.5, spicy_scene_points=2.0, sharing_points=1.3),
        exclusive_content=ExclusiveContent(
            voice_clips=["sinful_sunday_greeting", "dark_romance_praise"],
            book_recommendations=["dark_romance", "taboo_romance"],
            club_topics=["Forbidden Desires Discussion", "Dark Romance Book Club"],
        ),
    ),
    ThemedDay(
        id="manic_monday",
        name="Manic Monday",
        day_of_week=1,
        theme_color="#EF4444",
        icon="🔥",
        description="Start your week with intense passion and energy",
        special_multipliers=SpecialMultipliers(reading_points=1.3, spicy_scene_points=1.5, sharing_points=1.2),
        exclusive_content=ExclusiveContent(
            voice_clips=["monday_motivation", "intense_passion_praise"],
            book_recommendations=["enemies_to_lovers", "workplace_romance"],
            club_topics=["Monday Motivation Reads", "Intense Romance Discussion"],
        ),
    ),
    ThemedDay(
        id="tempting_tuesday",
        name="Tempting Tuesday",
        day_of_week=2,
        theme_color="#F59E0B",
        icon="😏",
        description="Give in to temptation with seductive stories",
        special_multipliers=SpecialMultipliers(reading_points=1.2, spicy_scene_points=1.8, sharing_points=1.4),
        exclusive_content=ExclusiveContent(
            voice_clips=["tempting_tuesday_tease", "seductive_praise"],
            book_recommendations=["billionaire_romance", "seduction_stories"],
            club_topics=["Temptation Tales", "Seductive Heroes Discussion"],
        ),
    ),
    ThemedDay(
        id="wild_wednesday",
        name="Wild Wednesday",
        day_of_week=3,
        theme_color="#10B981",
        icon="🌿",
        description="Explore wild fantasies and untamed desires",
        special_multipliers=SpecialMultipliers(reading_points=1.4, spicy_scene_points=1.7, sharing_points=1.5),
        exclusive_content=ExclusiveContent(
            voice_clips=["wild_wednesday_roar", "fantasy_praise"],
            book_recommendations=["paranormal_romance", "shifter_romance"],
            club_topics=["Wild Fantasy Reads", "Paranormal Romance Club"],
        ),
    ),
    ThemedDay(
        id="thirsty_thursday",
        name="Thirsty Thursday",
        day_of_week=4,
        theme_color="#3B82F6",
        icon="💧",
        description="Quench your thirst for steamy romance",
        special_multipliers=SpecialMultipliers(reading_points=1.6, spicy_scene_points=2.2, sharing_points=1.3),
        exclusive_content=ExclusiveContent(
            voice_clips=["thirsty_thursday_quench", "steamy_praise"],
            book_recommendations=["steamy_romance", "erotic_fiction"],
            club_topics=["Thirsty Reads Club", "Steamy Romance Discussion"],
        ),
    ),
    ThemedDay(
        id="feral_friday",
        name="Feral Friday",
        day_of_week=5,
        theme_color="#DB2777",
        icon="🐺",
        description="Unleash your feral side with the wildest content",
        special_multipliers=SpecialMultipliers(reading_points=2.0, spicy_scene_points=3.0, sharing_points=2.0),
        exclusive_content=ExclusiveContent(
            voice_clips=["feral_friday_howl", "primal_praise", "weekend_ready"],
            book_recommendations=["monster_romance", "primal_romance", "alpha_romance"],
            club_topics=["Feral Friday Feast", "Monster Romance Club", "Alpha Appreciation"],
        ),
    ),
    ThemedDay(
        id="sultry_saturday",
        name="Sultry Saturday",
        day_of_week=6,
        theme_color="#8B5CF6",
        icon="🌙",
        description="End your week with sultry, sophisticated passion",
        special_multipliers=SpecialMultipliers(reading_points=1.7, spicy_scene_points=2.1, sharing_points=1.6),
        exclusive_content=ExclusiveContent(
            voice_clips=["sultry_saturday_whisper", "sophisticated_praise"],
            book_recommendations=["historical_romance", "sophisticated_erotica"],
            club_topics=["Sultry Saturday Soirée", "Historical Romance Club"],
        ),
    ),
]

_BY_DAY_OF_WEEK: Dict[int, ThemedDay] = {theme.day_of_week: theme for theme in THEMED_DAYS}
_BY_ID: Dict[str, ThemedDay] = {theme.id: theme for theme in THEMED_DAYS}


def day_of_week(day: date) -> int:
    """Sunday-based day of week (Sunday = 0 ... Saturday = 6)."""
    return (day.weekday() + 1) % 7


def theme_for_date(day: date) -> ThemedDay:
    """Return the theme active on `day`."""
    dow = day_of_week(day)
    try:
        return _BY_DAY_OF_WEEK[dow]
    except KeyError:
        raise ConfigurationError(f"No themed day configured for day_of_week={dow}") from None


def theme_by_id(theme_id: str) -> Optional[ThemedDay]:
    return _BY_ID.get(theme_id)


def all_themes() -> List[ThemedDay]:
    return list(THEMED_DAYS)


def is_highest_intensity(theme: ThemedDay) -> bool:
    return theme.id == HIGHEST_INTENSITY_THEME_ID
