"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support
- Table definitions for the gamification engine
"""
from typing import Optional
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, Date, DateTime, Boolean, JSON, Text, Index, ForeignKey, UniqueConstraint, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from spicereads.core.config import settings

logger = logging.getLogger("spicereads")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def build_engine(url: str):
    """
    Create an engine for `url`.

    SQLite gets a single shared connection (in-memory databases only exist
    per connection); everything else gets the pooled configuration.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        echo=False,  # Set to True for SQL query logging
    )


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def create_all_tables(engine=None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine=None):
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine or get_engine())


def check_connection(engine=None) -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        eng = engine or get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# One streak row per (user, streak_type)
streaks = Table(
    'reading_streaks',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('streak_type', String(50), nullable=False),
    Column('current_streak', Integer, nullable=False, server_default='0'),
    Column('longest_streak', Integer, nullable=False, server_default='0'),
    Column('last_activity_date', Date, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Unique constraint: creation is insert-if-absent on this key
    UniqueConstraint('user_id', 'streak_type', name='uq_reading_streaks_user_type'),
)

# Append-only activity log
user_activities = Table(
    'user_activities',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('activity_type', String(50), nullable=False),
    Column('activity_data', JSON, nullable=False),
    Column('points_earned', Integer, nullable=False),
    Column('date', Date, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Composite index for sum_points_for_date and recent activity: (user_id, date)
    Index('idx_user_activities_user_date', 'user_id', 'date'),
    # Index for leaderboard windows
    Index('idx_user_activities_date', 'date'),
)

# Challenge sets, global per calendar date
daily_challenges = Table(
    'daily_challenges',
    metadata,
    Column('id', String(32), primary_key=True),
    Column('date', Date, nullable=False),
    Column('slug', String(50), nullable=False),
    Column('position', Integer, nullable=False),
    Column('theme_id', String(50), nullable=False),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=False),
    Column('requirements', JSON, nullable=False),
    Column('rewards', JSON, nullable=False),
    Column('difficulty', String(20), nullable=False),
    Column('is_active', Boolean, nullable=False, server_default='true'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Unique constraint: concurrent generation for the same day cannot duplicate a set
    UniqueConstraint('date', 'slug', name='uq_daily_challenges_date_slug'),
    Index('idx_daily_challenges_date_position', 'date', 'position'),
)

# Per-user requirement counters for a challenge
challenge_progress = Table(
    'challenge_progress',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('challenge_id', String(32), ForeignKey('daily_challenges.id'), nullable=False),
    Column('requirement_index', Integer, nullable=False),
    Column('current', Integer, nullable=False, server_default='0'),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    UniqueConstraint('user_id', 'challenge_id', 'requirement_index', name='uq_challenge_progress_user_req'),
    Index('idx_challenge_progress_user', 'user_id'),
)

# Rewards unlocked once per (user, reward definition)
unlocked_rewards = Table(
    'unlocked_rewards',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(100), nullable=False),
    Column('definition_id', String(100), nullable=False),
    Column('reward_type', String(50), nullable=False),
    Column('reward_data', JSON, nullable=False),
    Column('is_claimed', Boolean, nullable=False, server_default='false'),
    Column('unlocked_at', DateTime(timezone=True), nullable=False),
    Column('claimed_at', DateTime(timezone=True), nullable=True),
    # Unique constraint: the idempotence boundary for reward unlocking
    UniqueConstraint('user_id', 'definition_id', name='uq_unlocked_rewards_user_definition'),
    Index('idx_unlocked_rewards_user_unlocked', 'user_id', 'unlocked_at'),
)
