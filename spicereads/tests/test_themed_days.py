from datetime import date, timedelta

import pytest

from spicereads.features.themes.calendar import (
    HIGHEST_INTENSITY_THEME_ID,
    THEMED_DAYS,
    all_themes,
    day_of_week,
    is_highest_intensity,
    theme_by_id,
    theme_for_date,
)


def test_week_has_one_theme_per_day():
    assert len(THEMED_DAYS) == 7
    assert sorted(t.day_of_week for t in THEMED_DAYS) == list(range(7))
    assert len({t.id for t in THEMED_DAYS}) == 7


def test_day_of_week_is_sunday_based():
    sunday = date(2024, 1, 7)
    assert day_of_week(sunday) == 0
    assert day_of_week(sunday + timedelta(days=5)) == 5
    assert day_of_week(sunday + timedelta(days=6)) == 6


@pytest.mark.parametrize(
    "day, theme_id",
    [
        (date(2024, 1, 7), "sinful_sunday"),
        (date(2024, 1, 8), "manic_monday"),
        (date(2024, 1, 9), "tempting_tuesday"),
        (date(2024, 1, 10), "wild_wednesday"),
        (date(2024, 1, 11), "thirsty_thursday"),
        (date(2024, 1, 12), "feral_friday"),
        (date(2024, 1, 13), "sultry_saturday"),
    ],
)
def test_theme_for_date(day, theme_id):
    assert theme_for_date(day).id == theme_id


def test_theme_for_date_is_total_over_a_year():
    start = date(2024, 1, 1)
    for offset in range(366):
        theme = theme_for_date(start + timedelta(days=offset))
        assert theme.day_of_week == day_of_week(start + timedelta(days=offset))


def test_multipliers_never_below_one():
    for theme in THEMED_DAYS:
        m = theme.special_multipliers
        assert min(m.reading_points, m.spicy_scene_points, m.sharing_points) >= 1.0


def test_feral_friday_is_highest_intensity():
    feral = theme_by_id(HIGHEST_INTENSITY_THEME_ID)
    assert feral is not None
    assert feral.name == "Feral Friday"
    assert feral.special_multipliers.reading_points == 2.0
    assert is_highest_intensity(feral)
    assert not any(is_highest_intensity(t) for t in THEMED_DAYS if t.id != feral.id)


def test_theme_lookups():
    assert theme_by_id("nope") is None
    themes = all_themes()
    themes.clear()
    assert len(all_themes()) == 7
