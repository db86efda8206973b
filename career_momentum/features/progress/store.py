"""
career_momentum/features/progress/store.py

Storage collaborator for the progress engine.

ProgressStore is the narrow contract the orchestrator consumes. Two
implementations share it:
- InMemoryProgressStore (this module): development and tests
- PostgresProgressStore (store_pg.py): durable storage

get_progress_store() picks PostgreSQL whenever DATABASE_URL is configured;
the in-memory store is only used when no database is configured.
"""

import logging
import threading
from datetime import date, datetime, timezone
from itertools import count
from typing import Any, Dict, List, Optional, Protocol, Tuple

from career_momentum.models.progress import (
    BenchmarkCohort,
    CareerMilestone,
    RawInteraction,
    UserActivity,
    WeeklyProgress,
)

logger = logging.getLogger("career_momentum")


class ProgressStore(Protocol):
    """
    Storage contract (shape, not transport).

    Implementations must make upsert_weekly_progress a single conditional
    write keyed on (user_id, week_start), so concurrent first-time derivations
    converge to one row.
    """

    def get_weekly_progress(self, user_id: str, week_start: date) -> Optional[WeeklyProgress]:
        ...

    def list_weekly_progress(self, user_id: str, limit: int) -> List[WeeklyProgress]:
        """Most recent first (week_start descending)."""
        ...

    def upsert_weekly_progress(self, row: WeeklyProgress) -> WeeklyProgress:
        ...

    def list_milestones(self, user_id: str) -> List[CareerMilestone]:
        """Ordered by target_date ascending."""
        ...

    def insert_milestones(self, milestones: List[CareerMilestone]) -> List[CareerMilestone]:
        ...

    def update_milestone(
        self, milestone_id: str, user_id: str, changes: Dict[str, Any]
    ) -> Optional[CareerMilestone]:
        """None when the milestone does not exist or is not owned by user_id."""
        ...

    def insert_activity(
        self, user_id: str, activity_type: str, activity_data: Dict[str, Any], points: int
    ) -> UserActivity:
        ...

    def list_recent_activities(self, user_id: str, limit: int) -> List[UserActivity]:
        """Newest first."""
        ...

    def get_benchmark_cohort(self, career_stage: str, target_role: str) -> Optional[BenchmarkCohort]:
        ...

    def list_raw_interactions(
        self, user_id: str, since: datetime, until: Optional[datetime] = None
    ) -> List[RawInteraction]:
        """Interactions with since <= created_at < until (unbounded when until is None)."""
        ...


class InMemoryProgressStore:
    """
    Process-local ProgressStore.

    A single lock guards every write so the weekly upsert behaves like the
    database's ON CONFLICT write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._weeks: Dict[Tuple[str, date], WeeklyProgress] = {}
        self._milestones: Dict[str, CareerMilestone] = {}
        self._activities: List[UserActivity] = []
        self._cohorts: Dict[Tuple[str, str], BenchmarkCohort] = {}
        self._interactions: List[RawInteraction] = []
        self._activity_ids = count(1)

    # Weekly progress ---------------------------------------------------
    def get_weekly_progress(self, user_id: str, week_start: date) -> Optional[WeeklyProgress]:
        return self._weeks.get((user_id, week_start))

    def list_weekly_progress(self, user_id: str, limit: int) -> List[WeeklyProgress]:
        rows = [row for (uid, _), row in self._weeks.items() if uid == user_id]
        rows.sort(key=lambda row: row.week_start, reverse=True)
        return rows[:limit]

    def upsert_weekly_progress(self, row: WeeklyProgress) -> WeeklyProgress:
        key = (row.user_id, row.week_start)
        with self._lock:
            existing = self._weeks.get(key)
            created_at = existing.created_at if existing else (row.created_at or datetime.now(timezone.utc))
            stored = row.model_copy(update={"created_at": created_at})
            self._weeks[key] = stored
            return stored

    # Milestones --------------------------------------------------------
    def list_milestones(self, user_id: str) -> List[CareerMilestone]:
        rows = [m for m in self._milestones.values() if m.user_id == user_id]
        rows.sort(key=lambda m: m.target_date)
        return rows

    def insert_milestones(self, milestones: List[CareerMilestone]) -> List[CareerMilestone]:
        now = datetime.now(timezone.utc)
        stored = []
        with self._lock:
            for milestone in milestones:
                row = milestone.model_copy(update={"created_at": now, "updated_at": now})
                self._milestones[row.id] = row
                stored.append(row)
        return stored

    def update_milestone(
        self, milestone_id: str, user_id: str, changes: Dict[str, Any]
    ) -> Optional[CareerMilestone]:
        with self._lock:
            current = self._milestones.get(milestone_id)
            if current is None or current.user_id != user_id:
                return None
            updated = current.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)}
            )
            self._milestones[milestone_id] = updated
            return updated

    # Activities --------------------------------------------------------
    def insert_activity(
        self, user_id: str, activity_type: str, activity_data: Dict[str, Any], points: int
    ) -> UserActivity:
        with self._lock:
            activity = UserActivity(
                id=next(self._activity_ids),
                user_id=user_id,
                activity_type=activity_type,
                activity_data=dict(activity_data),
                points_earned=points,
                created_at=datetime.now(timezone.utc),
            )
            self._activities.append(activity)
            return activity

    def list_recent_activities(self, user_id: str, limit: int) -> List[UserActivity]:
        rows = [a for a in self._activities if a.user_id == user_id]
        rows.sort(key=lambda a: (a.created_at, a.id or 0), reverse=True)
        return rows[:limit]

    # Benchmarks & raw interactions --------------------------------------
    def get_benchmark_cohort(self, career_stage: str, target_role: str) -> Optional[BenchmarkCohort]:
        return self._cohorts.get((career_stage, target_role))

    def add_benchmark_cohort(self, cohort: BenchmarkCohort) -> None:
        self._cohorts[(cohort.career_stage, cohort.target_role)] = cohort

    def list_raw_interactions(
        self, user_id: str, since: datetime, until: Optional[datetime] = None
    ) -> List[RawInteraction]:
        return [
            i for i in self._interactions
            if i.user_id == user_id
            and i.created_at >= since
            and (until is None or i.created_at < until)
        ]

    def add_raw_interaction(self, interaction: RawInteraction) -> None:
        self._interactions.append(interaction)


def get_progress_store() -> ProgressStore:
    """
    Get the appropriate store implementation.

    - PostgreSQL if DATABASE_URL is configured, reachable or not; an outage
      surfaces per request as progress_unavailable
    - In-memory otherwise
    """
    from career_momentum.core.database import get_database_url

    if get_database_url():
        from career_momentum.features.progress.store_pg import PostgresProgressStore

        logger.info("progress_store.selected store=postgres")
        return PostgresProgressStore()

    logger.info("progress_store.selected store=memory")
    return InMemoryProgressStore()


# Global store instance (lazy initialization)
_store_instance: Optional[ProgressStore] = None


def get_store() -> ProgressStore:
    """Singleton store used by the HTTP layer."""
    global _store_instance
    if _store_instance is None:
        _store_instance = get_progress_store()
    return _store_instance


def reset_store() -> None:
    """FOR TESTING ONLY - forces re-initialization on next get_store() call."""
    global _store_instance
    _store_instance = None
