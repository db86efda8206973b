"""
career_momentum/models/progress.py
Progress domain models: weekly aggregates, milestones, activities, benchmarks.

Weekly rows are keyed by (user_id, week_start); week_start is always a Monday.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


MomentumTrend = Literal["improving", "stable", "declining"]


class MilestoneType(str, Enum):
    APPLICATION_GOAL = "application_goal"
    NETWORKING = "networking"
    SKILL_DEVELOPMENT = "skill_development"
    INTERVIEW_PREP = "interview_prep"


class MilestoneStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ABANDONED = "abandoned"


class WeeklyCounters(BaseModel):
    """Raw engagement counters for one week."""

    applications_count: int = Field(default=0, ge=0)
    jobs_viewed: int = Field(default=0, ge=0)
    jobs_saved: int = Field(default=0, ge=0)
    resume_updates: int = Field(default=0, ge=0)
    skill_progress_updates: int = Field(default=0, ge=0)
    networking_activities: int = Field(default=0, ge=0)
    interview_count: int = Field(default=0, ge=0)


class WeeklyProgress(WeeklyCounters):
    """Stored weekly aggregate. Past weeks are immutable history."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    week_start: date = Field(description="Monday of the ISO week")
    momentum_score: int = Field(default=0, ge=0, le=100)
    goal_progress_percentage: int = Field(default=0, ge=0, le=100)
    created_at: Optional[datetime] = None


class CareerMilestone(BaseModel):
    """A user goal with a numeric current/target value and a lifecycle status."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    milestone_type: MilestoneType
    title: str
    description: Optional[str] = None
    target_value: float = Field(ge=0)
    current_value: float = Field(default=0, ge=0)
    target_date: date
    status: MilestoneStatus = MilestoneStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MilestoneUpdate(BaseModel):
    """Partial update applied by the owner. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    target_value: Optional[float] = Field(default=None, gt=0)
    current_value: Optional[float] = Field(default=None, ge=0)
    target_date: Optional[date] = None
    status: Optional[MilestoneStatus] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent. Only description may be cleared."""
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k == "description"}


class UserActivity(BaseModel):
    """Append-only audit entry. activity_data is opaque to the engine."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    user_id: str
    activity_type: str = Field(min_length=1)
    activity_data: Dict[str, Any] = Field(default_factory=dict)
    points_earned: int = Field(ge=0)
    created_at: datetime


class RawInteraction(BaseModel):
    """Job-board interaction used to derive the current week's counters."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    interaction_type: str
    created_at: datetime
    job_id: Optional[str] = None


class BenchmarkCohort(BaseModel):
    """Peer-average reference row keyed by (career_stage, target_role)."""

    model_config = ConfigDict(frozen=True)

    career_stage: str
    target_role: str
    avg_applications_per_week: float = Field(ge=0)
    avg_response_rate: float = Field(ge=0)
    avg_interview_rate: float = Field(ge=0)
    sample_size: Optional[int] = None


class PerformanceMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    applications_per_week: float
    response_rate: float
    interview_rate: float


class PerformanceDelta(BaseModel):
    """Percentage deltas, yours vs. peer."""

    model_config = ConfigDict(frozen=True)

    applications: float
    response_rate: float
    interview_rate: float


class BenchmarkComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    your_performance: PerformanceMetrics
    peer_average: PerformanceMetrics
    performance_delta: PerformanceDelta
    is_fallback: bool = Field(default=False, description="No cohort matched; fixed below-average peer used")
    placeholder_metrics: List[str] = Field(
        default_factory=list,
        description="Delta fields populated from constants rather than interaction data",
    )


class CareerProfile(BaseModel):
    """Identity attributes supplied by the auth collaborator."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    career_stage: Optional[str] = None
    target_role: Optional[str] = None
    timeline: Optional[str] = None
    primary_goal: Optional[str] = None


class ProgressSummary(BaseModel):
    """Read-model assembled per request; never persisted."""

    model_config = ConfigDict(frozen=True)

    current_week: WeeklyProgress
    milestones: List[CareerMilestone]
    recent_activities: List[UserActivity]
    benchmark_comparison: BenchmarkComparison
    weekly_streak: int = Field(ge=0)
    momentum_trend: MomentumTrend
    next_milestones: List[CareerMilestone]
    ai_recommendations: List[str] = Field(default_factory=list, max_length=4)
