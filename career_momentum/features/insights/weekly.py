"""
Weekly insights

Observations about a single week: application volume, momentum change
against the previous week, overdue milestones and how often viewed jobs
turn into applications. Every group contributes at most one insight, in
the order listed below.
"""

from datetime import date
from fractions import Fraction
from typing import List, Optional, Sequence

from career_momentum.features.insights.models import WeeklyInsight, WeeklyInsightToken
from career_momentum.models.progress import CareerMilestone, MilestoneStatus, WeeklyProgress

RECOMMENDED_MIN_APPLICATIONS = 3
HIGH_APPLICATION_VOLUME = 10
MOMENTUM_SWING = 10
VIEWS_PER_APPLICATION_HIGH = 20
VIEWS_PER_APPLICATION_LOW = 5


def _application_volume(week: WeeklyProgress) -> Optional[WeeklyInsight]:
    applications = week.applications_count
    if applications == 0:
        return WeeklyInsight(token=WeeklyInsightToken.NO_APPLICATIONS)
    if applications < RECOMMENDED_MIN_APPLICATIONS:
        return WeeklyInsight(
            token=WeeklyInsightToken.BELOW_RECOMMENDED_RATE,
            params={"applications": applications},
        )
    if applications > HIGH_APPLICATION_VOLUME:
        return WeeklyInsight(
            token=WeeklyInsightToken.HIGH_APPLICATION_VOLUME,
            params={"applications": applications},
        )
    return None


def _momentum_change(week: WeeklyProgress, previous: Optional[WeeklyProgress]) -> Optional[WeeklyInsight]:
    if previous is None:
        return None
    change = week.momentum_score - previous.momentum_score
    if change > MOMENTUM_SWING:
        return WeeklyInsight(token=WeeklyInsightToken.STRONG_MOMENTUM_GAIN, params={"momentum_change": change})
    if change < -MOMENTUM_SWING:
        return WeeklyInsight(token=WeeklyInsightToken.MOMENTUM_DECLINED, params={"momentum_change": change})
    return None


def _overdue(milestones: Sequence[CareerMilestone], today: date) -> Optional[WeeklyInsight]:
    overdue = sum(
        1 for m in milestones
        if m.status == MilestoneStatus.ACTIVE and m.target_date < today
    )
    if overdue:
        return WeeklyInsight(token=WeeklyInsightToken.OVERDUE_MILESTONES, params={"overdue_count": overdue})
    return None


def _view_conversion(week: WeeklyProgress) -> Optional[WeeklyInsight]:
    applications = week.applications_count
    # no applications: every view counts against conversion
    ratio = Fraction(week.jobs_viewed, applications) if applications else Fraction(week.jobs_viewed)
    if ratio > VIEWS_PER_APPLICATION_HIGH:
        return WeeklyInsight(token=WeeklyInsightToken.VIEWS_NOT_CONVERTING)
    if ratio < VIEWS_PER_APPLICATION_LOW and applications > 0:
        return WeeklyInsight(token=WeeklyInsightToken.RESEARCH_MORE_OPPORTUNITIES)
    return None


def generate_weekly_insights(
    week: WeeklyProgress,
    previous: Optional[WeeklyProgress],
    milestones: Sequence[CareerMilestone],
    today: date,
) -> List[WeeklyInsight]:
    """
    Insights for `week`.

    `previous` is the stored row for the week before, if any; a milestone is
    overdue when it is still active and its target_date is before `today`.
    """
    candidates = (
        _application_volume(week),
        _momentum_change(week, previous),
        _overdue(milestones, today),
        _view_conversion(week),
    )
    return [insight for insight in candidates if insight is not None]
