from datetime import date

import pytest

from spicereads.core.clock import FixedClock
from spicereads.core.errors import PersistenceError, ValidationError
from spicereads.features.gamification.service import GamificationService
from spicereads.features.gamification.store import InMemoryGamificationStore
from spicereads.features.stats.aggregator import StatsAggregator, favorite_themed_day, level_for_points
from spicereads.models.gamification import Activity

MONDAY = date(2024, 1, 8)


@pytest.mark.parametrize(
    "points, level, to_next",
    [(0, 1, 1000), (999, 1, 1), (1000, 2, 1000), (2500, 3, 500), (10001, 11, 999)],
)
def test_level_formula(points, level, to_next):
    assert level_for_points(points) == (level, to_next)


def test_empty_user_stats():
    aggregator = StatsAggregator(InMemoryGamificationStore(), FixedClock(MONDAY))
    result = aggregator.aggregate("nobody")
    assert result.error is None
    stats = result.stats
    assert stats.total_points == 0
    assert stats.current_level == 1
    assert stats.points_to_next_level == 1000
    assert stats.active_streaks == []
    assert stats.completed_challenges_today == 0
    assert stats.unlocked_rewards_count == 0
    assert stats.favorite_themed_day is None


def test_stats_compose_todays_state():
    clock = FixedClock(MONDAY)
    service = GamificationService(store=InMemoryGamificationStore(), clock=clock)
    service.record_activity("u1", "book_completed")
    clock.advance(1)
    service.record_activity("u1", "reading_session", {"minutes": 45})
    service.record_activity("u1", "spicy_scene_marked")

    stats = service.get_stats("u1").stats
    # Tuesday: floor(90 * 1.2) + floor(25 * 1.8)
    assert stats.total_points == 108 + 45
    assert stats.current_level == 1
    assert {s.streak_type.value for s in stats.active_streaks} == {"daily_reading", "spicy_scenes"}
    assert stats.completed_challenges_today == 1
    assert stats.total_challenges_completed == 1
    assert stats.favorite_themed_day == "tempting_tuesday"
    assert stats.unlocked_rewards_count >= 1


def test_favorite_theme_ties_go_to_earlier_day():
    activities = [
        Activity(id=1, user_id="u1", activity_type="book_completed", points_earned=100, date=date(2024, 1, 12)),
        Activity(id=2, user_id="u1", activity_type="book_completed", points_earned=100, date=date(2024, 1, 8)),
    ]
    assert favorite_themed_day(activities) == "manic_monday"
    assert favorite_themed_day([]) is None


class FlakyStore(InMemoryGamificationStore):
    def __init__(self):
        super().__init__()
        self.fail = False

    def sum_points_for_date(self, user_id, day):
        if self.fail:
            raise PersistenceError("Database operation failed: OperationalError")
        return super().sum_points_for_date(user_id, day)


def test_failure_serves_previous_stats():
    store = FlakyStore()
    clock = FixedClock(MONDAY)
    service = GamificationService(store=store, clock=clock)
    service.record_activity("u1", "book_completed")

    good = service.get_stats("u1")
    assert good.stats.total_points == 100

    store.fail = True
    degraded = service.get_stats("u1")
    assert degraded.error
    assert degraded.stats == good.stats


def test_failure_without_history_serves_empty_stats():
    store = FlakyStore()
    store.fail = True
    result = StatsAggregator(store, FixedClock(MONDAY)).aggregate("u1")
    assert result.error
    assert result.stats.total_points == 0
    assert result.stats.current_level == 1


def test_last_good_cache_is_bounded():
    aggregator = StatsAggregator(InMemoryGamificationStore(), FixedClock(MONDAY), cache_size=2)
    for user_id in ("u1", "u2", "u3"):
        aggregator.aggregate(user_id)
    assert aggregator.cached_users() == ["u2", "u3"]

    aggregator.aggregate("u2")
    aggregator.aggregate("u4")
    assert aggregator.cached_users() == ["u2", "u4"]


def test_evicted_user_degrades_to_empty_stats():
    store = FlakyStore()
    clock = FixedClock(MONDAY)
    service = GamificationService(store=store, clock=clock)
    service.stats_aggregator = StatsAggregator(store, clock, service.progress, cache_size=1)
    service.record_activity("u1", "book_completed")
    service.record_activity("u2", "book_completed")

    store.fail = True
    result = service.get_stats("u1")
    assert result.error
    assert result.stats.total_points == 0


def test_recent_activities_zero_limit_rejected():
    service = GamificationService(store=InMemoryGamificationStore(), clock=FixedClock(MONDAY))
    with pytest.raises(ValidationError):
        service.recent_activities("u1", limit=0)
