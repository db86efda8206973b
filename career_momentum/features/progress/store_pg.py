"""
career_momentum/features/progress/store_pg.py

PostgreSQL-backed ProgressStore.

Maintains the same contract as InMemoryProgressStore:
- Weekly upsert is one INSERT ... ON CONFLICT (user_id, week_start) statement
- Activities are append-only
- Milestone updates are scoped to the owning user
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from career_momentum.core.database import (
    career_benchmarks,
    career_milestones,
    get_db_session,
    job_interactions,
    user_activities,
    weekly_progress,
)
from career_momentum.models.progress import (
    BenchmarkCohort,
    CareerMilestone,
    RawInteraction,
    UserActivity,
    WeeklyProgress,
)

_COUNTER_COLUMNS = (
    "applications_count",
    "jobs_viewed",
    "jobs_saved",
    "resume_updates",
    "skill_progress_updates",
    "networking_activities",
    "interview_count",
    "momentum_score",
    "goal_progress_percentage",
)


def _week_from_row(row) -> WeeklyProgress:
    return WeeklyProgress(
        user_id=row.user_id,
        week_start=row.week_start,
        applications_count=row.applications_count,
        jobs_viewed=row.jobs_viewed,
        jobs_saved=row.jobs_saved,
        resume_updates=row.resume_updates,
        skill_progress_updates=row.skill_progress_updates,
        networking_activities=row.networking_activities,
        interview_count=row.interview_count,
        momentum_score=row.momentum_score,
        goal_progress_percentage=row.goal_progress_percentage,
        created_at=row.created_at,
    )


def _milestone_from_row(row) -> CareerMilestone:
    return CareerMilestone(
        id=row.id,
        user_id=row.user_id,
        milestone_type=row.milestone_type,
        title=row.title,
        description=row.description,
        target_value=row.target_value,
        current_value=row.current_value,
        target_date=row.target_date,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _activity_from_row(row) -> UserActivity:
    return UserActivity(
        id=row.id,
        user_id=row.user_id,
        activity_type=row.activity_type,
        activity_data=dict(row.activity_data) if row.activity_data else {},
        points_earned=row.points_earned,
        created_at=row.created_at,
    )


class PostgresProgressStore:
    """PostgreSQL-backed progress store."""

    def get_weekly_progress(self, user_id: str, week_start: date) -> Optional[WeeklyProgress]:
        with get_db_session() as session:
            row = session.execute(
                select(weekly_progress).where(
                    and_(
                        weekly_progress.c.user_id == user_id,
                        weekly_progress.c.week_start == week_start,
                    )
                )
            ).first()
            return _week_from_row(row) if row else None

    def list_weekly_progress(self, user_id: str, limit: int) -> List[WeeklyProgress]:
        with get_db_session() as session:
            rows = session.execute(
                select(weekly_progress)
                .where(weekly_progress.c.user_id == user_id)
                .order_by(weekly_progress.c.week_start.desc())
                .limit(limit)
            ).all()
            return [_week_from_row(row) for row in rows]

    def upsert_weekly_progress(self, row: WeeklyProgress) -> WeeklyProgress:
        values = {column: getattr(row, column) for column in _COUNTER_COLUMNS}
        stmt = pg_insert(weekly_progress).values(
            user_id=row.user_id,
            week_start=row.week_start,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_weekly_progress_user_week",
            set_={column: stmt.excluded[column] for column in _COUNTER_COLUMNS},
        ).returning(*weekly_progress.c)

        with get_db_session() as session:
            stored = session.execute(stmt).first()
            return _week_from_row(stored)

    def list_milestones(self, user_id: str) -> List[CareerMilestone]:
        with get_db_session() as session:
            rows = session.execute(
                select(career_milestones)
                .where(career_milestones.c.user_id == user_id)
                .order_by(career_milestones.c.target_date, career_milestones.c.id)
            ).all()
            return [_milestone_from_row(row) for row in rows]

    def insert_milestones(self, milestones: List[CareerMilestone]) -> List[CareerMilestone]:
        if not milestones:
            return []
        now = datetime.now(timezone.utc)
        with get_db_session() as session:
            rows = session.execute(
                insert(career_milestones).returning(*career_milestones.c),
                [
                    {
                        "id": m.id,
                        "user_id": m.user_id,
                        "milestone_type": m.milestone_type.value,
                        "title": m.title,
                        "description": m.description,
                        "target_value": m.target_value,
                        "current_value": m.current_value,
                        "target_date": m.target_date,
                        "status": m.status.value,
                        "created_at": now,
                        "updated_at": now,
                    }
                    for m in milestones
                ],
            ).all()
            return [_milestone_from_row(row) for row in rows]

    def update_milestone(
        self, milestone_id: str, user_id: str, changes: Dict[str, Any]
    ) -> Optional[CareerMilestone]:
        values = {
            key: value.value if hasattr(value, "value") else value
            for key, value in changes.items()
        }
        values["updated_at"] = datetime.now(timezone.utc)
        with get_db_session() as session:
            row = session.execute(
                update(career_milestones)
                .where(
                    and_(
                        career_milestones.c.id == milestone_id,
                        career_milestones.c.user_id == user_id,
                    )
                )
                .values(**values)
                .returning(*career_milestones.c)
            ).first()
            return _milestone_from_row(row) if row else None

    def insert_activity(
        self, user_id: str, activity_type: str, activity_data: Dict[str, Any], points: int
    ) -> UserActivity:
        with get_db_session() as session:
            row = session.execute(
                insert(user_activities)
                .values(
                    user_id=user_id,
                    activity_type=activity_type,
                    activity_data=activity_data,
                    points_earned=points,
                    created_at=datetime.now(timezone.utc),
                )
                .returning(*user_activities.c)
            ).first()
            return _activity_from_row(row)

    def list_recent_activities(self, user_id: str, limit: int) -> List[UserActivity]:
        with get_db_session() as session:
            rows = session.execute(
                select(user_activities)
                .where(user_activities.c.user_id == user_id)
                .order_by(user_activities.c.created_at.desc(), user_activities.c.id.desc())
                .limit(limit)
            ).all()
            return [_activity_from_row(row) for row in rows]

    def get_benchmark_cohort(self, career_stage: str, target_role: str) -> Optional[BenchmarkCohort]:
        with get_db_session() as session:
            row = session.execute(
                select(career_benchmarks).where(
                    and_(
                        career_benchmarks.c.career_stage == career_stage,
                        career_benchmarks.c.target_role == target_role,
                    )
                )
            ).first()
            if not row:
                return None
            return BenchmarkCohort(
                career_stage=row.career_stage,
                target_role=row.target_role,
                avg_applications_per_week=row.avg_applications_per_week,
                avg_response_rate=row.avg_response_rate,
                avg_interview_rate=row.avg_interview_rate,
                sample_size=row.sample_size,
            )

    def list_raw_interactions(
        self, user_id: str, since: datetime, until: Optional[datetime] = None
    ) -> List[RawInteraction]:
        conditions = [
            job_interactions.c.user_id == user_id,
            job_interactions.c.created_at >= since,
        ]
        if until is not None:
            conditions.append(job_interactions.c.created_at < until)
        with get_db_session() as session:
            rows = session.execute(
                select(job_interactions)
                .where(and_(*conditions))
                .order_by(job_interactions.c.created_at, job_interactions.c.id)
            ).all()
            return [
                RawInteraction(
                    user_id=row.user_id,
                    interaction_type=row.interaction_type,
                    created_at=row.created_at,
                    job_id=row.job_id,
                )
                for row in rows
            ]

    def clear_user(self, user_id: str) -> None:
        """FOR TESTING ONLY."""
        with get_db_session() as session:
            for table in (weekly_progress, career_milestones, user_activities, job_interactions):
                session.execute(table.delete().where(table.c.user_id == user_id))
