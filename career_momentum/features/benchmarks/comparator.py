"""
Benchmark Comparator

Compares a user's current week against a peer cohort. Callers always receive
a renderable comparison: when no cohort row matches, a fixed "below average
peer" comparison is returned instead of None.

Response-rate and interview-rate deltas are not yet derived from interaction
data. They carry the placeholder constants below and are listed in
`placeholder_metrics` so consumers can tell them apart from computed values.
"""

from typing import Optional

from career_momentum.models.progress import (
    BenchmarkCohort,
    BenchmarkComparison,
    PerformanceDelta,
    PerformanceMetrics,
    WeeklyProgress,
)

FALLBACK_PEER_APPLICATIONS_PER_WEEK = 5.0
FALLBACK_PEER_RESPONSE_RATE = 15.0
FALLBACK_PEER_INTERVIEW_RATE = 8.0

FALLBACK_APPLICATIONS_DELTA = -20.0
PLACEHOLDER_RESPONSE_RATE_DELTA = -15.0
PLACEHOLDER_INTERVIEW_RATE_DELTA = -8.0

PLACEHOLDER_METRICS = ["response_rate", "interview_rate"]


def _your_performance(current_week: WeeklyProgress) -> PerformanceMetrics:
    # Rates need response/interview outcomes, which interactions do not carry yet
    return PerformanceMetrics(
        applications_per_week=float(current_week.applications_count),
        response_rate=0.0,
        interview_rate=0.0,
    )


def applications_delta(yours: float, peer: float) -> float:
    """Percentage difference vs. peer; a zero peer average yields 0."""
    if peer <= 0:
        return 0.0
    return (yours - peer) / peer * 100


def fallback_comparison(current_week: WeeklyProgress) -> BenchmarkComparison:
    return BenchmarkComparison(
        your_performance=_your_performance(current_week),
        peer_average=PerformanceMetrics(
            applications_per_week=FALLBACK_PEER_APPLICATIONS_PER_WEEK,
            response_rate=FALLBACK_PEER_RESPONSE_RATE,
            interview_rate=FALLBACK_PEER_INTERVIEW_RATE,
        ),
        performance_delta=PerformanceDelta(
            applications=FALLBACK_APPLICATIONS_DELTA,
            response_rate=PLACEHOLDER_RESPONSE_RATE_DELTA,
            interview_rate=PLACEHOLDER_INTERVIEW_RATE_DELTA,
        ),
        is_fallback=True,
        placeholder_metrics=["applications", *PLACEHOLDER_METRICS],
    )


def compare_to_benchmark(
    current_week: WeeklyProgress,
    cohort: Optional[BenchmarkCohort],
) -> BenchmarkComparison:
    """
    Compare the current week against a peer cohort.

    Args:
        current_week: The user's current WeeklyProgress
        cohort: Matching BenchmarkCohort, or None when no cohort exists

    Returns:
        BenchmarkComparison (never None)
    """
    if cohort is None:
        return fallback_comparison(current_week)

    yours = _your_performance(current_week)
    return BenchmarkComparison(
        your_performance=yours,
        peer_average=PerformanceMetrics(
            applications_per_week=cohort.avg_applications_per_week,
            response_rate=cohort.avg_response_rate,
            interview_rate=cohort.avg_interview_rate,
        ),
        performance_delta=PerformanceDelta(
            applications=applications_delta(yours.applications_per_week, cohort.avg_applications_per_week),
            response_rate=PLACEHOLDER_RESPONSE_RATE_DELTA,
            interview_rate=PLACEHOLDER_INTERVIEW_RATE_DELTA,
        ),
        is_fallback=False,
        placeholder_metrics=list(PLACEHOLDER_METRICS),
    )
