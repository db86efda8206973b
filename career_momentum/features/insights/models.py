"""
Recommendation engine - data models
"""

from enum import Enum
from typing import Callable, Dict

from pydantic import BaseModel, ConfigDict, Field

from career_momentum.models.progress import ProgressSummary


class RecommendationToken(str, Enum):
    """Parameterizable recommendation identifiers, in no particular order."""
    INCREASE_APPLICATION_RATE = "increase_application_rate"
    ADD_NETWORKING_ACTIVITIES = "add_networking_activities"
    TRACK_SKILL_DEVELOPMENT = "track_skill_development"
    REFRESH_RESUME = "refresh_resume"
    REENGAGE_SCHEDULE_SEARCH_TIME = "reengage_schedule_search_time"
    MAINTAIN_MOMENTUM_FOCUS_QUALITY = "maintain_momentum_focus_quality"
    SET_DAILY_APPLICATION_GOAL = "set_daily_application_goal"


class RecommendationRule(BaseModel):
    """
    One priority slot. Each alternative is a (predicate, token) pair; the
    first alternative whose predicate holds contributes its token.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    alternatives: tuple[tuple[Callable[[ProgressSummary], bool], RecommendationToken], ...]

    def evaluate(self, summary: ProgressSummary) -> RecommendationToken | None:
        for predicate, token in self.alternatives:
            if predicate(summary):
                return token
        return None


class WeeklyInsightToken(str, Enum):
    """Observations about one week, compared with the week before it."""
    NO_APPLICATIONS = "no_applications"
    BELOW_RECOMMENDED_RATE = "below_recommended_rate"
    HIGH_APPLICATION_VOLUME = "high_application_volume"
    STRONG_MOMENTUM_GAIN = "strong_momentum_gain"
    MOMENTUM_DECLINED = "momentum_declined"
    OVERDUE_MILESTONES = "overdue_milestones"
    VIEWS_NOT_CONVERTING = "views_not_converting"
    RESEARCH_MORE_OPPORTUNITIES = "research_more_opportunities"


class WeeklyInsight(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: WeeklyInsightToken
    params: Dict[str, int] = Field(default_factory=dict)
