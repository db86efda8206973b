"""English rendering for recommendation tokens."""

from typing import Dict, List, Optional

from career_momentum.features.insights.models import RecommendationToken, WeeklyInsight, WeeklyInsightToken

MESSAGES_EN: Dict[RecommendationToken, str] = {
    RecommendationToken.INCREASE_APPLICATION_RATE:
        "Increase your application rate to {min_applications}-{max_applications} quality applications per week",
    RecommendationToken.ADD_NETWORKING_ACTIVITIES:
        "Add networking activities - reach out to 2-3 professionals in your target companies this week",
    RecommendationToken.TRACK_SKILL_DEVELOPMENT:
        "Track your skill development progress - update completed courses or certifications",
    RecommendationToken.REFRESH_RESUME:
        "Consider refreshing your resume - successful job seekers update their resume monthly",
    RecommendationToken.REENGAGE_SCHEDULE_SEARCH_TIME:
        "Your job search momentum is declining - schedule dedicated job search blocks in your calendar",
    RecommendationToken.MAINTAIN_MOMENTUM_FOCUS_QUALITY:
        "Great momentum! Now focus on application quality over quantity",
    RecommendationToken.SET_DAILY_APPLICATION_GOAL:
        "Your application rate is {gap_percent}%+ below peers - consider setting a daily application goal",
}

DEFAULT_PARAMS = {
    "min_applications": 3,
    "max_applications": 5,
    "gap_percent": 20,
}


def render(token: str, params: Optional[Dict[str, object]] = None) -> str:
    """Render one token; unknown tokens are returned unchanged."""
    try:
        template = MESSAGES_EN[RecommendationToken(token)]
    except ValueError:
        return token
    return template.format(**{**DEFAULT_PARAMS, **(params or {})})


def render_all(tokens: List[str]) -> List[str]:
    return [render(token) for token in tokens]


INSIGHT_MESSAGES_EN: Dict[WeeklyInsightToken, str] = {
    WeeklyInsightToken.NO_APPLICATIONS:
        "No applications sent this week - this is your biggest opportunity for improvement",
    WeeklyInsightToken.BELOW_RECOMMENDED_RATE:
        "Your application rate is below the recommended {min_applications}-{max_applications} per week for active job seekers",
    WeeklyInsightToken.HIGH_APPLICATION_VOLUME:
        "High application volume - make sure you're targeting quality opportunities",
    WeeklyInsightToken.STRONG_MOMENTUM_GAIN:
        "Strong momentum gain (+{momentum_points} points) - keep this pace!",
    WeeklyInsightToken.MOMENTUM_DECLINED:
        "Momentum declined by {momentum_points} points - time to re-engage",
    WeeklyInsightToken.OVERDUE_MILESTONES:
        "{overdue_count} milestone(s) are overdue - consider adjusting timelines",
    WeeklyInsightToken.VIEWS_NOT_CONVERTING:
        "You're viewing many jobs but not applying - focus on converting views to applications",
    WeeklyInsightToken.RESEARCH_MORE_OPPORTUNITIES:
        "Good application rate, but consider researching more opportunities",
}


def render_insight(insight: WeeklyInsight) -> str:
    params: Dict[str, object] = {**DEFAULT_PARAMS, **insight.params}
    if "momentum_change" in insight.params:
        params["momentum_points"] = abs(insight.params["momentum_change"])
    return INSIGHT_MESSAGES_EN[insight.token].format(**params)
