"""
Progress Service

Orchestrates one progress summary per request:
LoadOrDeriveCurrentWeek -> LoadHistory -> LoadMilestones ->
LoadRecentActivities -> LoadBenchmarkCohort -> Compute -> Assemble.

Weekly insights reuse the same load-or-derive step for the current week.

All arithmetic lives in the pure components; this module only sequences
storage reads/writes and maps storage failures onto DependencyError.
"""

from collections import Counter
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from career_momentum.core.config import Settings, settings as default_settings
from career_momentum.core.errors import AppError, DependencyError, NotFoundError, ValidationError
from career_momentum.core.logging import log_event
from career_momentum.features.activities.points import (
    points_for,
    validate_activity_data,
    validate_activity_type,
)
from career_momentum.features.benchmarks.comparator import compare_to_benchmark
from career_momentum.features.insights.models import WeeklyInsight
from career_momentum.features.insights.service import generate_recommendations
from career_momentum.features.insights.weekly import generate_weekly_insights
from career_momentum.features.milestones.evaluator import (
    compute_goal_progress,
    default_milestones,
    next_priority_milestones,
)
from career_momentum.features.momentum.scoring_engine import compute_momentum_score
from career_momentum.features.momentum.trends import momentum_trend, weekly_streak
from career_momentum.features.progress.store import ProgressStore
from career_momentum.models.progress import (
    CareerMilestone,
    CareerProfile,
    MilestoneUpdate,
    ProgressSummary,
    RawInteraction,
    UserActivity,
    WeeklyCounters,
    WeeklyProgress,
)

# Raw job-board interaction type -> weekly counter
INTERACTION_COUNTERS: Dict[str, str] = {
    "applied": "applications_count",
    "viewed": "jobs_viewed",
    "saved": "jobs_saved",
    "resume_updated": "resume_updates",
    "skill_progress": "skill_progress_updates",
    "networking": "networking_activities",
    "interview": "interview_count",
}

MILESTONE_UPDATED_ACTIVITY = "milestone_updated"
GOAL_SET_ACTIVITY = "goal_set"

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def derive_counters(interactions: List[RawInteraction]) -> WeeklyCounters:
    """Tally raw interactions into weekly counters. Unknown types are ignored."""
    tally = Counter(
        INTERACTION_COUNTERS[i.interaction_type]
        for i in interactions
        if i.interaction_type in INTERACTION_COUNTERS
    )
    return WeeklyCounters(**tally)


def merge_current_week(
    current: WeeklyProgress, history: List[WeeklyProgress], limit: int
) -> List[WeeklyProgress]:
    """History (most recent first) with the current week in place of any stale copy."""
    older = [week for week in history if week.week_start != current.week_start]
    merged = [current] + sorted(older, key=lambda week: week.week_start, reverse=True)
    return merged[:limit]


class ProgressService:
    """Progress summary orchestrator bound to an explicit store handle."""

    def __init__(
        self,
        store: ProgressStore,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.clock = clock or _utc_now
        self.settings = settings or default_settings
        self.tz = ZoneInfo(self.settings.PROGRESS_TIMEZONE)

    # ============ Week window ============

    def current_week_start(self, now: Optional[datetime] = None) -> date:
        """Monday of the week containing `now`, in the configured timezone."""
        local = (now or self.clock()).astimezone(self.tz)
        return local.date() - timedelta(days=local.weekday())

    def _week_start_instant(self, week_start: date) -> datetime:
        return datetime.combine(week_start, time.min, tzinfo=self.tz)

    def week_window(self, week_start: date, now: datetime):
        """[Monday 00:00 local, min(now, next Monday 00:00 local))."""
        next_week = self._week_start_instant(week_start + timedelta(days=7))
        return self._week_start_instant(week_start), min(now, next_week)

    @contextmanager
    def _storage_guard(
        self, operation: str, user_id: str, message: str, week_start: Optional[date] = None
    ) -> Iterator[None]:
        """Map any non-AppError raised by the store onto DependencyError."""
        try:
            yield
        except AppError:
            raise
        except Exception:
            log_event(
                "error",
                f"progress.{operation}_failed",
                user_id=user_id,
                week_start=week_start.isoformat() if week_start else None,
                error_code=DependencyError.code,
                exc_info=True,
            )
            raise DependencyError(message)

    # ============ Summary ============

    def get_summary(self, profile: CareerProfile, now: Optional[datetime] = None) -> ProgressSummary:
        """
        Assemble the full progress summary for one user.

        Raises:
            DependencyError: any storage failure; no partial summary is returned
        """
        now = now or self.clock()
        week_start = self.current_week_start(now)
        with self._storage_guard("summary", profile.user_id, "Unable to compute progress", week_start):
            return self._assemble_summary(profile, now, week_start)

    def _assemble_summary(
        self, profile: CareerProfile, now: datetime, week_start: date
    ) -> ProgressSummary:
        user_id = profile.user_id

        milestones = self.store.list_milestones(user_id)
        current_week = self._load_week(user_id, week_start, milestones, now)

        history_limit = self.settings.PROGRESS_HISTORY_WEEKS
        history = merge_current_week(
            current_week,
            self.store.list_weekly_progress(user_id, history_limit),
            history_limit,
        )
        recent_activities = self.store.list_recent_activities(
            user_id, self.settings.PROGRESS_RECENT_ACTIVITY_LIMIT
        )

        cohort = None
        if profile.career_stage and profile.target_role:
            cohort = self.store.get_benchmark_cohort(profile.career_stage, profile.target_role)

        summary = ProgressSummary(
            current_week=current_week,
            milestones=milestones,
            recent_activities=recent_activities,
            benchmark_comparison=compare_to_benchmark(current_week, cohort),
            weekly_streak=weekly_streak(history),
            momentum_trend=momentum_trend(history),
            next_milestones=next_priority_milestones(milestones, today=now.astimezone(self.tz).date()),
        )
        return summary.model_copy(update={"ai_recommendations": generate_recommendations(summary)})

    def _load_week(
        self, user_id: str, week_start: date, milestones: List[CareerMilestone], now: datetime
    ) -> WeeklyProgress:
        stored = self.store.get_weekly_progress(user_id, week_start)
        if stored is not None:
            return stored
        return self._derive_current_week(user_id, week_start, milestones, now)

    def _derive_current_week(
        self, user_id: str, week_start: date, milestones: List[CareerMilestone], now: datetime
    ) -> WeeklyProgress:
        since, until = self.week_window(week_start, now)
        interactions = self.store.list_raw_interactions(user_id, since=since, until=until)
        counters = derive_counters(interactions)
        derived = WeeklyProgress(
            user_id=user_id,
            week_start=week_start,
            **counters.model_dump(),
            momentum_score=compute_momentum_score(counters),
            goal_progress_percentage=compute_goal_progress(milestones),
        )
        stored = self.store.upsert_weekly_progress(derived)
        log_event(
            "info",
            "progress.week_derived",
            user_id=user_id,
            week_start=week_start.isoformat(),
            extra={
                "interactions": len(interactions),
                "momentum_score": stored.momentum_score,
            },
        )
        return stored

    # ============ Insights ============

    def generate_insights(
        self, profile: CareerProfile, now: Optional[datetime] = None
    ) -> List[WeeklyInsight]:
        """Weekly insights for the current week against the stored previous week."""
        now = now or self.clock()
        user_id = profile.user_id
        week_start = self.current_week_start(now)
        with self._storage_guard("insights", user_id, "Unable to generate insights", week_start):
            milestones = self.store.list_milestones(user_id)
            current_week = self._load_week(user_id, week_start, milestones, now)
            previous_week = self.store.get_weekly_progress(user_id, week_start - timedelta(days=7))

        insights = generate_weekly_insights(
            current_week,
            previous_week,
            milestones,
            today=now.astimezone(self.tz).date(),
        )
        log_event(
            "info",
            "progress.insights_generated",
            user_id=user_id,
            week_start=week_start.isoformat(),
            extra={"tokens": ",".join(i.token.value for i in insights)},
        )
        return insights

    # ============ Mutations ============

    def update_milestone(
        self, user_id: str, milestone_id: Optional[str], updates: Optional[Dict[str, Any]]
    ) -> CareerMilestone:
        """Apply a partial update to a milestone owned by user_id."""
        if not milestone_id:
            raise ValidationError("Missing milestone_id")
        if not updates:
            raise ValidationError("Missing milestone_updates")

        try:
            changes = MilestoneUpdate.model_validate(updates).changes()
        except PydanticValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            raise ValidationError(f"Invalid milestone_updates: {', '.join(fields)}")

        with self._storage_guard("milestone_update", user_id, "Unable to update milestone"):
            updated = self.store.update_milestone(milestone_id, user_id, changes)
            if updated is None:
                raise NotFoundError("Milestone not found")
            self._record_activity(
                user_id,
                MILESTONE_UPDATED_ACTIVITY,
                {"milestone_id": milestone_id, "fields": sorted(changes)},
            )

        log_event(
            "info",
            "progress.milestone_updated",
            user_id=user_id,
            extra={"milestone_id": milestone_id, "fields": ",".join(sorted(changes))},
        )
        return updated

    def track_activity(
        self, user_id: str, activity_type: Optional[str], activity_data: Optional[Any] = None
    ) -> UserActivity:
        """Record one activity with points fixed at insertion time."""
        activity_type = validate_activity_type(activity_type)
        data = validate_activity_data(activity_data, self.settings.ACTIVITY_DATA_MAX_BYTES)
        with self._storage_guard("activity", user_id, "Unable to record activity"):
            return self._record_activity(user_id, activity_type, data)

    def seed_default_milestones(
        self, profile: CareerProfile, today: Optional[date] = None
    ) -> List[CareerMilestone]:
        """Insert onboarding milestones and record a goal_set activity for each."""
        today = today or self.clock().astimezone(self.tz).date()
        with self._storage_guard("milestone_seed", profile.user_id, "Unable to create milestones"):
            stored = self.store.insert_milestones(default_milestones(profile, today))
            for milestone in stored:
                self._record_activity(
                    profile.user_id,
                    GOAL_SET_ACTIVITY,
                    {"milestone_id": milestone.id, "milestone_type": milestone.milestone_type.value},
                )
        log_event(
            "info",
            "progress.milestones_seeded",
            user_id=profile.user_id,
            extra={"count": len(stored)},
        )
        return stored

    def _record_activity(
        self, user_id: str, activity_type: str, activity_data: Dict[str, Any]
    ) -> UserActivity:
        return self.store.insert_activity(
            user_id, activity_type, activity_data, points_for(activity_type)
        )
