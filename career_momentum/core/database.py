"""
PostgreSQL access for the progress store.

SQLAlchemy Core only: tables are declared on a shared MetaData, the engine
is built lazily from DATABASE_URL (TEST_DATABASE_URL wins when set), and
writes go through get_db_session(), which commits on success and rolls back
on any exception.
"""
import logging
import os
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import JSON, Column, Date, DateTime, Float, Index, Integer, MetaData, String, Table, Text, UniqueConstraint, create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import func

from career_momentum.core.config import settings

logger = logging.getLogger("career_momentum")

metadata = MetaData()

ENGINE_OPTIONS = {
    "poolclass": QueuePool,
    "pool_size": 10,
    "max_overflow": 20,
    "pool_timeout": 30,
    "pool_recycle": 3600,
    "pool_pre_ping": True,
}

_engine = None
_session_factory = None


def get_database_url() -> Optional[str]:
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or settings.DATABASE_URL


# plain PostgreSQL schemes map to psycopg2, the declared driver
DRIVER_SCHEMES = ("postgresql://", "postgres://")


def engine_url(url: str) -> str:
    """Pin plain PostgreSQL URLs to the psycopg2 driver; explicit drivers are kept."""
    for scheme in DRIVER_SCHEMES:
        if url.startswith(scheme):
            return "postgresql+psycopg2://" + url[len(scheme):]
    return url


def init_engine(database_url: Optional[str] = None):
    """(Re)build the engine and session factory; raises ValueError without a URL."""
    global _engine, _session_factory

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured; the in-memory progress store needs no engine")

    _engine = create_engine(engine_url(url), **ENGINE_OPTIONS)
    _session_factory = sessionmaker(bind=_engine, autoflush=False)
    return _engine


def get_engine():
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    if _session_factory is None:
        init_engine()
    return _session_factory


@contextmanager
def get_db_session():
    """Transaction scope: `with get_db_session() as session: session.execute(...)`."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """Idempotent: existing tables are left alone."""
    metadata.create_all(bind=get_engine())


def check_connection() -> bool:
    """True when `SELECT 1` succeeds; failures are logged, never raised."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
    return True


# Weekly aggregates: one row per (user, ISO week starting Monday)
weekly_progress = Table(
    'weekly_progress',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('week_start', Date, nullable=False),
    Column('applications_count', Integer, nullable=False, server_default='0'),
    Column('jobs_viewed', Integer, nullable=False, server_default='0'),
    Column('jobs_saved', Integer, nullable=False, server_default='0'),
    Column('resume_updates', Integer, nullable=False, server_default='0'),
    Column('skill_progress_updates', Integer, nullable=False, server_default='0'),
    Column('networking_activities', Integer, nullable=False, server_default='0'),
    Column('interview_count', Integer, nullable=False, server_default='0'),
    Column('momentum_score', Integer, nullable=False, server_default='0'),
    Column('goal_progress_percentage', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Conflict target for the current-week upsert
    UniqueConstraint('user_id', 'week_start', name='uq_weekly_progress_user_week'),
    Index('idx_weekly_progress_user_week', 'user_id', 'week_start'),
)

# User goals (system-seeded or user-defined); status-transitioned, never deleted
career_milestones = Table(
    'career_milestones',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('milestone_type', String(50), nullable=False),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=True),
    Column('target_value', Float, nullable=False),
    Column('current_value', Float, nullable=False, server_default='0'),
    Column('target_date', Date, nullable=False),
    Column('status', String(20), nullable=False, server_default='active'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_career_milestones_user_target', 'user_id', 'target_date'),
)

# Append-only activity log
user_activities = Table(
    'user_activities',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('activity_type', String(100), nullable=False),
    Column('activity_data', JSON, nullable=False),
    Column('points_earned', Integer, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_user_activities_user_created', 'user_id', 'created_at'),
)

# Peer cohort averages (read-only to the engine)
career_benchmarks = Table(
    'career_benchmarks',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('career_stage', String(50), nullable=False),
    Column('target_role', String(255), nullable=False),
    Column('avg_applications_per_week', Float, nullable=False),
    Column('avg_response_rate', Float, nullable=False),
    Column('avg_interview_rate', Float, nullable=False),
    Column('sample_size', Integer, nullable=True),
    UniqueConstraint('career_stage', 'target_role', name='uq_career_benchmarks_stage_role'),
)

# Raw job-board interactions, read only for first-time week derivation
job_interactions = Table(
    'job_interactions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('job_id', String(100), nullable=True),
    Column('interaction_type', String(50), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_job_interactions_user_created', 'user_id', 'created_at'),
)
