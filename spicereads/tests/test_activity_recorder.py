from datetime import date

import pytest

from spicereads.core.clock import FixedClock
from spicereads.core.errors import PersistenceError, ValidationError
from spicereads.features.activities.recorder import ActivityRecorder
from spicereads.features.gamification.service import GamificationService
from spicereads.features.gamification.store import InMemoryGamificationStore
from spicereads.features.streaks.tracker import StreakTracker
from spicereads.models.gamification import StreakType

SUNDAY = date(2024, 1, 7)


def _recorder(store=None, day=SUNDAY):
    store = store or InMemoryGamificationStore()
    clock = FixedClock(day)
    return ActivityRecorder(store, clock, StreakTracker(store, clock)), clock, store


class BrokenStreakStore(InMemoryGamificationStore):
    """Activity inserts work; streak reads fail like a dropped connection."""

    def get_streak(self, user_id, streak_type):
        raise PersistenceError("Database operation failed: OperationalError")


class BrokenActivityStore(InMemoryGamificationStore):
    def insert_activity(self, **kwargs):
        raise PersistenceError("Database operation failed: OperationalError")


def test_reading_scenario_across_days():
    recorder, clock, store = _recorder()

    first = recorder.record("u1", "reading_session", {"minutes": 45})
    assert first.points_earned == 135
    assert first.date == SUNDAY
    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 1

    clock.advance(1)
    recorder.record("u1", "reading_session", {"minutes": 45})
    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 2

    clock.advance(3)
    recorder.record("u1", "reading_session", {"minutes": 45})
    streak = store.get_streak("u1", StreakType.DAILY_READING)
    assert streak.current_streak == 1
    assert streak.longest_streak == 2


def test_one_activity_row_per_call():
    recorder, _, store = _recorder()
    recorder.record("u1", "spicy_scene_marked")
    recorder.record("u1", "spicy_scene_marked")
    activities = store.list_activities("u1")
    assert len(activities) == 2
    assert [a.points_earned for a in activities] == [50, 50]
    assert store.get_streak("u1", StreakType.SPICY_SCENES).current_streak == 1


def test_book_completed_records_without_streak():
    recorder, _, store = _recorder()
    activity = recorder.record("u1", "book_completed", {"book_id": "b1"})
    assert activity.points_earned == 100
    assert activity.activity_data == {"book_id": "b1"}
    assert store.list_streaks("u1") == []


def test_unknown_activity_type_recorded_with_placeholder_points():
    recorder, _, store = _recorder()
    activity = recorder.record("u1", "audiobook_listened", {"minutes": 20})
    assert activity.points_earned == 10
    assert store.list_streaks("u1") == []


def test_invalid_payload_persists_nothing():
    recorder, _, store = _recorder()
    with pytest.raises(ValidationError):
        recorder.record("u1", "reading_session", {"minutes": "a while"})
    assert store.list_activities("u1") == []
    assert store.list_streaks("u1") == []


@pytest.mark.parametrize("user_id, activity_type", [("", "reading_session"), ("u1", ""), ("  ", "book_completed")])
def test_missing_identifiers_rejected(user_id, activity_type):
    recorder, _, _ = _recorder()
    with pytest.raises(ValidationError):
        recorder.record(user_id, activity_type, {})


def test_streak_failure_rolls_back_activity():
    recorder, _, store = _recorder(store=BrokenStreakStore())
    with pytest.raises(PersistenceError):
        recorder.record("u1", "reading_session", {"minutes": 30})
    assert store.list_activities("u1") == []
    assert store.sum_points_for_date("u1", SUNDAY) == 0


def test_activity_failure_skips_streak_update():
    recorder, _, store = _recorder(store=BrokenActivityStore())
    with pytest.raises(PersistenceError):
        recorder.record("u1", "reading_session", {"minutes": 30})
    assert store.list_streaks("u1") == []


def test_points_fixed_at_creation():
    recorder, clock, store = _recorder()
    recorder.record("u1", "reading_session", {"minutes": 10})
    clock.advance(5)  # feral_friday: higher multiplier
    recorder.record("u1", "reading_session", {"minutes": 10})
    points = sorted(a.points_earned for a in store.list_activities("u1"))
    assert points == [30, 40]


@pytest.mark.parametrize(
    "data",
    [
        {"minutes": 30, "pages": "many"},
        {"minutes": 30, "pages": 10**9},
        {"minutes": 1e308},
        {"minutes": 24 * 60 + 1},
    ],
)
def test_rejected_payload_persists_nothing(data):
    recorder, _, store = _recorder()
    with pytest.raises(ValidationError):
        recorder.record("u1", "reading_session", data)
    assert store.list_activities("u1") == []
    assert store.list_streaks("u1") == []


def test_service_rejects_bad_pages_before_recording():
    store = InMemoryGamificationStore()
    service = GamificationService(store=store, clock=FixedClock(SUNDAY))
    with pytest.raises(ValidationError):
        service.record_activity("u1", "reading_session", {"minutes": 30, "pages": "many"})
    assert store.list_activities("u1") == []
    assert store.list_streaks("u1") == []

    outcome = service.record_activity("u1", "reading_session", {"minutes": 30, "pages": 12})
    assert outcome.activity.points_earned == 90
    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 1


def test_full_day_session_accepted():
    recorder, _, _ = _recorder()
    activity = recorder.record("u1", "reading_session", {"minutes": 24 * 60})
    # Sunday reading multiplier is 1.5
    assert activity.points_earned == 4320
