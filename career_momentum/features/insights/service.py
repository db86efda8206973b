"""
Recommendation engine - computation service

Rules are evaluated in a fixed order; each contributes at most one token.
The order is the priority ranking: when more than MAX_RECOMMENDATIONS fire,
the earliest ones survive.
"""

from typing import List

from career_momentum.features.insights.models import RecommendationRule, RecommendationToken
from career_momentum.models.progress import ProgressSummary

MAX_RECOMMENDATIONS = 4

LOW_APPLICATIONS_THRESHOLD = 2
BENCHMARK_GAP_THRESHOLD = -20


def _low_applications(summary: ProgressSummary) -> bool:
    return summary.current_week.applications_count < LOW_APPLICATIONS_THRESHOLD


def _no_networking(summary: ProgressSummary) -> bool:
    return summary.current_week.networking_activities == 0


def _no_skill_updates(summary: ProgressSummary) -> bool:
    return summary.current_week.skill_progress_updates == 0


def _stale_resume(summary: ProgressSummary) -> bool:
    week = summary.current_week
    return week.resume_updates == 0 and week.applications_count > 0


def _declining(summary: ProgressSummary) -> bool:
    return summary.momentum_trend == "declining"


def _improving(summary: ProgressSummary) -> bool:
    return summary.momentum_trend == "improving"


def _behind_peers(summary: ProgressSummary) -> bool:
    return summary.benchmark_comparison.performance_delta.applications < BENCHMARK_GAP_THRESHOLD


RECOMMENDATION_RULES: List[RecommendationRule] = [
    RecommendationRule(
        name="application_rate",
        alternatives=((_low_applications, RecommendationToken.INCREASE_APPLICATION_RATE),),
    ),
    RecommendationRule(
        name="networking",
        alternatives=((_no_networking, RecommendationToken.ADD_NETWORKING_ACTIVITIES),),
    ),
    RecommendationRule(
        name="skill_development",
        alternatives=((_no_skill_updates, RecommendationToken.TRACK_SKILL_DEVELOPMENT),),
    ),
    RecommendationRule(
        name="resume",
        alternatives=((_stale_resume, RecommendationToken.REFRESH_RESUME),),
    ),
    RecommendationRule(
        name="trend",
        alternatives=(
            (_declining, RecommendationToken.REENGAGE_SCHEDULE_SEARCH_TIME),
            (_improving, RecommendationToken.MAINTAIN_MOMENTUM_FOCUS_QUALITY),
        ),
    ),
    RecommendationRule(
        name="benchmark_gap",
        alternatives=((_behind_peers, RecommendationToken.SET_DAILY_APPLICATION_GOAL),),
    ),
]


def generate_recommendations(summary: ProgressSummary) -> List[str]:
    """
    Ranked recommendation tokens for a summary, at most MAX_RECOMMENDATIONS.

    The summary's own ai_recommendations field is ignored.
    """
    recommendations: List[str] = []
    for rule in RECOMMENDATION_RULES:
        token = rule.evaluate(summary)
        if token is not None:
            recommendations.append(token.value)
    return recommendations[:MAX_RECOMMENDATIONS]
