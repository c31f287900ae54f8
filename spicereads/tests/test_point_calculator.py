import pytest

from spicereads.core.errors import ValidationError
from spicereads.features.points.calculator import (
    MAX_SESSION_PAGES,
    UNKNOWN_ACTIVITY_POINTS,
    apply_multiplier,
    base_points,
    compute_points,
    multiplier_for,
    numeric_field,
)
from spicereads.features.themes.calendar import theme_by_id
from spicereads.models.gamification import SpecialMultipliers


def _theme(theme_id):
    return theme_by_id(theme_id)


class TestBasePoints:
    def test_reading_is_two_per_minute(self):
        assert base_points("reading_session", {"minutes": 30}) == 60

    @pytest.mark.parametrize("minutes", [0, -5, None])
    def test_non_positive_or_missing_minutes_score_zero(self, minutes):
        assert base_points("reading_session", {"minutes": minutes}) == 0
        assert base_points("reading_session", {}) == 0

    def test_fractional_minutes_truncate(self):
        assert base_points("reading_session", {"minutes": 12.5}) == 25
        assert base_points("reading_session", {"minutes": 10.2}) == 20

    def test_numeric_string_minutes_accepted(self):
        assert base_points("reading_session", {"minutes": "15"}) == 30

    @pytest.mark.parametrize("minutes", ["abc", True, float("nan"), [10]])
    def test_invalid_minutes_rejected(self, minutes):
        with pytest.raises(ValidationError):
            base_points("reading_session", {"minutes": minutes})

    @pytest.mark.parametrize("minutes", [1e308, 1e12, "1441"])
    def test_minutes_above_one_day_rejected(self, minutes):
        with pytest.raises(ValidationError):
            base_points("reading_session", {"minutes": minutes})

    def test_pages_capped(self):
        assert numeric_field({"pages": MAX_SESSION_PAGES}, "pages") == MAX_SESSION_PAGES
        with pytest.raises(ValidationError):
            numeric_field({"pages": MAX_SESSION_PAGES + 1}, "pages")

    @pytest.mark.parametrize(
        "activity_type, points",
        [
            ("spicy_scene_marked", 25),
            ("content_shared", 15),
            ("book_completed", 100),
            ("club_participation", 30),
        ],
    )
    def test_flat_points(self, activity_type, points):
        assert base_points(activity_type, {}) == points

    def test_unknown_type_gets_placeholder_points(self):
        assert base_points("audiobook_listened", {"minutes": 90}) == UNKNOWN_ACTIVITY_POINTS == 10


class TestMultipliers:
    def test_multiplier_selection(self):
        sunday = _theme("sinful_sunday")
        assert multiplier_for("reading_session", sunday) == 1.5
        assert multiplier_for("spicy_scene_marked", sunday) == 2.0
        assert multiplier_for("content_shared", sunday) == 1.3
        assert multiplier_for("book_completed", sunday) == 1.0
        assert multiplier_for("club_participation", sunday) == 1.0
        assert multiplier_for("something_new", sunday) == 1.0

    def test_apply_multiplier_truncates(self):
        assert apply_multiplier(25, 1.7) == 42
        assert apply_multiplier(15, 1.3) == 19
        assert apply_multiplier(14, 1.3) == 18


class TestComputePoints:
    def test_reading_on_feral_friday(self):
        assert compute_points("reading_session", {"minutes": 30}, _theme("feral_friday")) == 120

    def test_spicy_scene_with_unit_multiplier(self):
        plain = _theme("manic_monday").model_copy(
            update={"special_multipliers": SpecialMultipliers(reading_points=1.0, spicy_scene_points=1.0, sharing_points=1.0)}
        )
        assert compute_points("spicy_scene_marked", {}, plain) == 25

    def test_reading_on_sinful_sunday(self):
        assert compute_points("reading_session", {"minutes": 45}, _theme("sinful_sunday")) == 135

    def test_spicy_scene_on_wild_wednesday_truncates(self):
        assert compute_points("spicy_scene_marked", {}, _theme("wild_wednesday")) == 42

    def test_book_completed_ignores_theme(self):
        assert compute_points("book_completed", {}, _theme("feral_friday")) == 100

    def test_truncation_never_exceeds_real_product(self):
        for theme_id in ("manic_monday", "tempting_tuesday", "thirsty_thursday", "sultry_saturday"):
            theme = _theme(theme_id)
            for minutes in range(0, 121, 7):
                points = compute_points("reading_session", {"minutes": minutes}, theme)
                assert points <= minutes * 2 * theme.special_multipliers.reading_points
