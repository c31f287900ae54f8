"""
spicereads/features/gamification/store_sql.py

SQLAlchemy-backed persistence for the gamification engine.

Maintains the same interface as InMemoryGamificationStore. Concurrency-sensitive
writes are single statements:
- streak creation and reward unlocking: INSERT ... ON CONFLICT DO NOTHING
- streak transitions: conditional UPDATE (compare-and-set)
- requirement counters: INSERT ... ON CONFLICT DO UPDATE SET current = current + n
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from spicereads.core.database import (
    challenge_progress,
    daily_challenges,
    get_session_factory,
    streaks,
    unlocked_rewards,
    user_activities,
)
from spicereads.core.errors import ConfigurationError, PersistenceError
from spicereads.models.gamification import (
    Activity,
    DailyChallenge,
    Streak,
    StreakType,
    UnlockedReward,
)


def _upsert_insert(session: Session, table):
    """Dialect-specific INSERT that supports ON CONFLICT clauses."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ConfigurationError(f"Unsupported database dialect: {dialect}")
    return insert(table)


def _row_to_streak(row) -> Streak:
    return Streak(
        user_id=row.user_id,
        streak_type=StreakType(row.streak_type),
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_activity_date=row.last_activity_date,
    )


def _row_to_activity(row) -> Activity:
    return Activity(
        id=row.id,
        user_id=row.user_id,
        activity_type=row.activity_type,
        activity_data=dict(row.activity_data or {}),
        points_earned=row.points_earned,
        date=row.date,
    )


def _row_to_challenge(row) -> DailyChallenge:
    return DailyChallenge(
        id=row.id,
        date=row.date,
        slug=row.slug,
        theme_id=row.theme_id,
        title=row.title,
        description=row.description,
        requirements=list(row.requirements or []),
        rewards=list(row.rewards or []),
        difficulty=row.difficulty,
        is_active=row.is_active,
    )


def _row_to_reward(row) -> UnlockedReward:
    return UnlockedReward(
        id=row.id,
        user_id=row.user_id,
        definition_id=row.definition_id,
        reward_type=row.reward_type,
        reward_data=dict(row.reward_data or {}),
        is_claimed=row.is_claimed,
        unlocked_at=row.unlocked_at,
        claimed_at=row.claimed_at,
    )


class SqlGamificationStore:
    """
    SQL-backed store.

    Each method runs in its own session unless called on the store yielded by
    `transaction()`, in which case all calls share one session and commit together.
    """

    def __init__(self, engine=None, *, _session: Optional[Session] = None):
        self._engine = engine
        self._session = _session
        self._factory = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine is not None else None

    def _session_factory(self):
        return self._factory or get_session_factory()

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return

        session = self._session_factory()()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Database operation failed: {e.__class__.__name__}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator["SqlGamificationStore"]:
        if self._session is not None:
            yield self
            return
        with self._scope() as session:
            yield SqlGamificationStore(self._engine, _session=session)

    # Streaks ----------------------------------------------------------
    def get_streak(self, user_id: str, streak_type: StreakType) -> Optional[Streak]:
        with self._scope() as session:
            row = session.execute(
                select(streaks).where(
                    streaks.c.user_id == user_id,
                    streaks.c.streak_type == StreakType(streak_type).value,
                )
            ).first()
            return _row_to_streak(row) if row else None

    def list_streaks(self, user_id: str) -> List[Streak]:
        with self._scope() as session:
            rows = session.execute(
                select(streaks).where(streaks.c.user_id == user_id).order_by(streaks.c.streak_type)
            ).all()
            return [_row_to_streak(row) for row in rows]

    def insert_streak_if_absent(self, streak: Streak) -> bool:
        with self._scope() as session:
            stmt = _upsert_insert(session, streaks).values(
                user_id=streak.user_id,
                streak_type=streak.streak_type.value,
                current_streak=streak.current_streak,
                longest_streak=streak.longest_streak,
                last_activity_date=streak.last_activity_date,
            ).on_conflict_do_nothing(index_elements=["user_id", "streak_type"])
            return session.execute(stmt).rowcount == 1

    def compare_and_set_streak(self, expected: Streak, updated: Streak) -> bool:
        with self._scope() as session:
            result = session.execute(
                update(streaks)
                .where(
                    streaks.c.user_id == expected.user_id,
                    streaks.c.streak_type == expected.streak_type.value,
                    streaks.c.current_streak == expected.current_streak,
                    streaks.c.longest_streak == expected.longest_streak,
                    streaks.c.last_activity_date == expected.last_activity_date,
                )
                .values(
                    current_streak=updated.current_streak,
                    longest_streak=updated.longest_streak,
                    last_activity_date=updated.last_activity_date,
                )
            )
            return result.rowcount == 1

    # Activities -------------------------------------------------------
    def insert_activity(
        self,
        *,
        user_id: str,
        activity_type: str,
        activity_data: Mapping[str, Any],
        points_earned: int,
        day: date,
    ) -> Activity:
        with self._scope() as session:
            result = session.execute(
                user_activities.insert().values(
                    user_id=user_id,
                    activity_type=activity_type,
                    activity_data=dict(activity_data),
                    points_earned=points_earned,
                    date=day,
                )
            )
            return Activity(
                id=result.inserted_primary_key[0],
                user_id=user_id,
                activity_type=activity_type,
                activity_data=dict(activity_data),
                points_earned=points_earned,
                date=day,
            )

    def sum_points_for_date(self, user_id: str, day: date) -> int:
        with self._scope() as session:
            total = session.execute(
                select(func.coalesce(func.sum(user_activities.c.points_earned), 0)).where(
                    user_activities.c.user_id == user_id,
                    user_activities.c.date == day,
                )
            ).scalar_one()
            return int(total)

    def list_activities(self, user_id: str, *, limit: Optional[int] = None) -> List[Activity]:
        """Newest first."""
        with self._scope() as session:
            query = (
                select(user_activities)
                .where(user_activities.c.user_id == user_id)
                .order_by(user_activities.c.id.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [_row_to_activity(row) for row in session.execute(query).all()]

    def points_by_user(self, start: date, end: date) -> Dict[str, int]:
        with self._scope() as session:
            rows = session.execute(
                select(user_activities.c.user_id, func.sum(user_activities.c.points_earned))
                .where(user_activities.c.date >= start, user_activities.c.date <= end)
                .group_by(user_activities.c.user_id)
            ).all()
            return {user_id: int(total or 0) for user_id, total in rows}

    # Challenges -------------------------------------------------------
    def get_challenges_for_date(self, day: date) -> List[DailyChallenge]:
        with self._scope() as session:
            rows = session.execute(
                select(daily_challenges)
                .where(daily_challenges.c.date == day)
                .order_by(daily_challenges.c.position)
            ).all()
            return [_row_to_challenge(row) for row in rows]

    def get_challenges(self, challenge_ids: Iterable[str]) -> List[DailyChallenge]:
        ids = list(challenge_ids)
        if not ids:
            return []
        with self._scope() as session:
            rows = session.execute(
                select(daily_challenges)
                .where(daily_challenges.c.id.in_(ids))
                .order_by(daily_challenges.c.date, daily_challenges.c.position)
            ).all()
            return [_row_to_challenge(row) for row in rows]

    def insert_challenges(self, day: date, challenges: List[DailyChallenge]) -> List[DailyChallenge]:
        """Insert a day's set; rows that already exist for (date, slug) are kept as they are."""
        if challenges:
            with self._scope() as session:
                rows = [
                    {
                        "id": challenge.id,
                        "date": day,
                        "slug": challenge.slug,
                        "position": position,
                        "theme_id": challenge.theme_id,
                        "title": challenge.title,
                        "description": challenge.description,
                        "requirements": [req.model_dump(mode="json") for req in challenge.requirements],
                        "rewards": [reward.model_dump(mode="json") for reward in challenge.rewards],
                        "difficulty": challenge.difficulty,
                        "is_active": challenge.is_active,
                    }
                    for position, challenge in enumerate(challenges)
                ]
                stmt = _upsert_insert(session, daily_challenges).values(rows).on_conflict_do_nothing(
                    index_elements=["date", "slug"]
                )
                session.execute(stmt)
        return self.get_challenges_for_date(day)

    def get_requirement_progress(self, user_id: str, challenge_ids: Optional[Iterable[str]] = None) -> Dict[str, Dict[int, int]]:
        with self._scope() as session:
            query = select(challenge_progress).where(challenge_progress.c.user_id == user_id)
            if challenge_ids is not None:
                query = query.where(challenge_progress.c.challenge_id.in_(list(challenge_ids)))
            progress: Dict[str, Dict[int, int]] = {}
            for row in session.execute(query).all():
                progress.setdefault(row.challenge_id, {})[row.requirement_index] = row.current
            return progress

    def advance_requirement(self, user_id: str, challenge_id: str, requirement_index: int, amount: int) -> int:
        with self._scope() as session:
            stmt = _upsert_insert(session, challenge_progress).values(
                user_id=user_id,
                challenge_id=challenge_id,
                requirement_index=requirement_index,
                current=max(0, amount),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "challenge_id", "requirement_index"],
                set_={"current": challenge_progress.c.current + stmt.excluded.current},
            )
            session.execute(stmt)
            return session.execute(
                select(challenge_progress.c.current).where(
                    challenge_progress.c.user_id == user_id,
                    challenge_progress.c.challenge_id == challenge_id,
                    challenge_progress.c.requirement_index == requirement_index,
                )
            ).scalar_one()

    # Rewards ----------------------------------------------------------
    def get_unlocked_rewards(self, user_id: str) -> List[UnlockedReward]:
        with self._scope() as session:
            rows = session.execute(
                select(unlocked_rewards)
                .where(unlocked_rewards.c.user_id == user_id)
                .order_by(unlocked_rewards.c.unlocked_at, unlocked_rewards.c.id)
            ).all()
            return [_row_to_reward(row) for row in rows]

    def get_unlocked_reward(self, user_id: str, reward_id: str) -> Optional[UnlockedReward]:
        with self._scope() as session:
            row = session.execute(
                select(unlocked_rewards).where(
                    unlocked_rewards.c.id == reward_id,
                    unlocked_rewards.c.user_id == user_id,
                )
            ).first()
            return _row_to_reward(row) if row else None

    def insert_unlocked_reward_if_absent(
        self,
        *,
        user_id: str,
        definition_id: str,
        reward_type: str,
        reward_data: Mapping[str, Any],
        unlocked_at: datetime,
    ) -> Optional[UnlockedReward]:
        """Return the new reward, or None when this definition was already unlocked."""
        reward = UnlockedReward(
            id=str(uuid4()),
            user_id=user_id,
            definition_id=definition_id,
            reward_type=reward_type,
            reward_data=dict(reward_data),
            unlocked_at=unlocked_at,
        )
        with self._scope() as session:
            stmt = _upsert_insert(session, unlocked_rewards).values(
                id=reward.id,
                user_id=user_id,
                definition_id=definition_id,
                reward_type=reward_type,
                reward_data=reward.reward_data,
                is_claimed=False,
                unlocked_at=unlocked_at,
            ).on_conflict_do_nothing(index_elements=["user_id", "definition_id"])
            inserted = session.execute(stmt).rowcount == 1
        return reward if inserted else None

    def update_unlocked_reward(
        self, user_id: str, reward_id: str, *, is_claimed: bool, claimed_at: Optional[datetime]
    ) -> Optional[UnlockedReward]:
        with self._scope() as session:
            result = session.execute(
                update(unlocked_rewards)
                .where(unlocked_rewards.c.id == reward_id, unlocked_rewards.c.user_id == user_id)
                .values(is_claimed=is_claimed, claimed_at=claimed_at)
            )
            if result.rowcount == 0:
                return None
        return self.get_unlocked_reward(user_id, reward_id)
