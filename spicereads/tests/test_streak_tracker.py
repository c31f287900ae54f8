from datetime import date, timedelta

import pytest

from spicereads.core.clock import FixedClock
from spicereads.core.errors import ConfigurationError, ConflictError
from spicereads.features.gamification.store import InMemoryGamificationStore
from spicereads.features.streaks.tracker import StreakTracker, next_streak, streak_type_for_activity
from spicereads.models.gamification import Streak, StreakType

DAY_ONE = date(2024, 1, 7)


def _tracker(day=DAY_ONE, store=None, **kwargs):
    clock = FixedClock(day)
    store = store or InMemoryGamificationStore()
    return StreakTracker(store, clock, **kwargs), clock, store


def _streak(current, longest, last):
    return Streak(
        user_id="u1",
        streak_type=StreakType.DAILY_READING,
        current_streak=current,
        longest_streak=longest,
        last_activity_date=last,
    )


class TestTransitions:
    def test_first_activity_creates_streak(self):
        streak, transition = next_streak(None, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE)
        assert transition == "created"
        assert (streak.current_streak, streak.longest_streak, streak.last_activity_date) == (1, 1, DAY_ONE)

    def test_next_day_continues(self):
        existing = _streak(4, 6, DAY_ONE)
        streak, transition = next_streak(existing, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE + timedelta(days=1))
        assert transition == "continued"
        assert streak.current_streak == 5
        assert streak.longest_streak == 6

    def test_continue_raises_longest(self):
        existing = _streak(6, 6, DAY_ONE)
        streak, _ = next_streak(existing, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE + timedelta(days=1))
        assert streak.longest_streak == 7

    def test_same_day_is_noop(self):
        existing = _streak(3, 3, DAY_ONE)
        streak, transition = next_streak(existing, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE)
        assert transition == "unchanged"
        assert streak == existing

    def test_gap_resets_but_keeps_longest(self):
        existing = _streak(3, 5, DAY_ONE)
        streak, transition = next_streak(existing, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE + timedelta(days=3))
        assert transition == "reset"
        assert streak.current_streak == 1
        assert streak.longest_streak == 5
        assert streak.last_activity_date == DAY_ONE + timedelta(days=3)

    def test_backdated_activity_is_noop(self):
        existing = _streak(3, 5, DAY_ONE)
        streak, transition = next_streak(existing, user_id="u1", streak_type=StreakType.DAILY_READING, today=DAY_ONE - timedelta(days=1))
        assert transition == "backdated"
        assert streak == existing


def test_streak_continuity_over_days():
    tracker, clock, store = _tracker()
    tracker.update("u1", StreakType.DAILY_READING)
    clock.advance(1)
    streak, _ = tracker.update("u1", StreakType.DAILY_READING)
    assert streak.current_streak == 2

    # Second activity on the same day does not double count
    streak, transition = tracker.update("u1", StreakType.DAILY_READING)
    assert transition == "unchanged"
    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 2

    clock.advance(3)
    streak, transition = tracker.update("u1", StreakType.DAILY_READING)
    assert transition == "reset"
    assert streak.current_streak == 1
    assert streak.longest_streak == 2


def test_longest_is_max_of_history():
    tracker, clock, store = _tracker()
    history = []
    for gap in (1, 1, 1, 5, 1, 1, 2, 1):
        streak, _ = tracker.update("u1", StreakType.SPICY_SCENES)
        history.append(streak.current_streak)
        assert streak.longest_streak == max(history)
        assert streak.longest_streak >= streak.current_streak
        clock.advance(gap)


def test_backdated_update_does_not_mutate():
    tracker, clock, store = _tracker()
    tracker.update("u1", StreakType.DAILY_READING)
    clock.advance(-2)
    before = store.get_streak("u1", StreakType.DAILY_READING)
    streak, transition = tracker.update("u1", StreakType.DAILY_READING)
    assert transition == "backdated"
    assert store.get_streak("u1", StreakType.DAILY_READING) == before


def test_streak_types_are_independent():
    tracker, clock, store = _tracker()
    tracker.update("u1", StreakType.DAILY_READING)
    clock.advance(1)
    tracker.update("u1", StreakType.DAILY_READING)
    tracker.update("u1", StreakType.BOOK_CLUB)

    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 2
    assert store.get_streak("u1", StreakType.BOOK_CLUB).current_streak == 1
    assert store.get_streak("u2", StreakType.DAILY_READING) is None


def test_activity_streak_mapping():
    assert streak_type_for_activity("reading_session") is StreakType.DAILY_READING
    assert streak_type_for_activity("spicy_scene_marked") is StreakType.SPICY_SCENES
    assert streak_type_for_activity("content_shared") is StreakType.CONTENT_SHARING
    assert streak_type_for_activity("club_participation") is StreakType.BOOK_CLUB
    assert streak_type_for_activity("book_completed") is None
    assert streak_type_for_activity("unknown") is None


class LosingCasStore(InMemoryGamificationStore):
    """Loses the first `losses` compare-and-set attempts, as if another writer got there first."""

    def __init__(self, losses):
        super().__init__()
        self.losses = losses
        self.cas_calls = 0

    def compare_and_set_streak(self, expected, updated):
        self.cas_calls += 1
        if self.losses > 0:
            self.losses -= 1
            return False
        return super().compare_and_set_streak(expected, updated)


class LosingInsertStore(InMemoryGamificationStore):
    """A concurrent writer creates the row between our read and our insert."""

    def insert_streak_if_absent(self, streak):
        super().insert_streak_if_absent(streak)
        return False


def test_cas_retries_until_write_lands():
    store = LosingCasStore(losses=2)
    tracker, clock, _ = _tracker(store=store)
    tracker.update("u1", StreakType.DAILY_READING)
    clock.advance(1)

    streak, transition = tracker.update("u1", StreakType.DAILY_READING)
    assert transition == "continued"
    assert streak.current_streak == 2
    assert store.cas_calls == 3


def test_exhausted_retries_raise_conflict():
    store = LosingCasStore(losses=10)
    tracker, clock, _ = _tracker(store=store, max_attempts=3)
    tracker.update("u1", StreakType.DAILY_READING)
    clock.advance(1)

    with pytest.raises(ConflictError):
        tracker.update("u1", StreakType.DAILY_READING)
    assert store.cas_calls == 3
    assert store.get_streak("u1", StreakType.DAILY_READING).current_streak == 1


def test_lost_insert_race_reads_winner():
    tracker, _, store = _tracker(store=LosingInsertStore())
    streak, transition = tracker.update("u1", StreakType.DAILY_READING)
    assert transition == "unchanged"
    assert streak.current_streak == 1
    assert store.list_streaks("u1") == [streak]


def test_zero_attempts_is_a_wiring_error():
    with pytest.raises(ConfigurationError):
        StreakTracker(InMemoryGamificationStore(), FixedClock(DAY_ONE), max_attempts=0)
