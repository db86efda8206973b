"""
Trend & streak analysis over stored weekly history.

Both functions sort their input by week_start (most recent first) and never
mutate the caller's list.
"""

from typing import List, Sequence

from career_momentum.models.progress import MomentumTrend, WeeklyProgress

# A week counts toward a streak only strictly above this score
STREAK_THRESHOLD = 20

# Minimum weeks before a direction is reported
TREND_MIN_WEEKS = 3
TREND_DELTA = 15


def _most_recent_first(history: Sequence[WeeklyProgress]) -> List[WeeklyProgress]:
    return sorted(history, key=lambda week: week.week_start, reverse=True)


def weekly_streak(history: Sequence[WeeklyProgress]) -> int:
    """Consecutive most-recent weeks with momentum above the threshold."""
    streak = 0
    for week in _most_recent_first(history):
        if week.momentum_score > STREAK_THRESHOLD:
            streak += 1
        else:
            break
    return streak


def momentum_trend(history: Sequence[WeeklyProgress]) -> MomentumTrend:
    """
    Classify direction from the three most recent weeks.

    The average of the two newest scores is compared against the single
    oldest of the three.

    Returns:
        "improving", "stable", or "declining"
    """
    if len(history) < TREND_MIN_WEEKS:
        # Insufficient history: no clear trend
        return "stable"

    scores = [week.momentum_score for week in _most_recent_first(history)[:TREND_MIN_WEEKS]]
    avg_recent = (scores[0] + scores[1]) / 2
    change = avg_recent - scores[2]

    if change > TREND_DELTA:
        return "improving"
    if change < -TREND_DELTA:
        return "declining"
    return "stable"
