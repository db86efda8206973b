"""
Momentum Scoring Engine

Pure, deterministic computation of a week's momentum from activity counters.
No external calls, no randomness, no side effects.

Scoring philosophy:
- Each counter is normalized against a fixed weekly cap: min(value / cap, 1)
- Normalized values are weighted (weights sum to 100)
- Final score is round-half-up(weighted sum / total weight * 100), 0..100

Counters above their cap saturate; one very busy metric cannot carry the week.
"""

from fractions import Fraction
from math import floor
from typing import Dict, Mapping, Union

from career_momentum.models.progress import WeeklyCounters


Counters = Union[WeeklyCounters, Mapping[str, int]]


def round_half_up(value: Fraction) -> int:
    """Round to nearest integer, halves away from zero for non-negative values."""
    return floor(value + Fraction(1, 2))


class MomentumScoringEngine:
    """Pure deterministic momentum scoring."""

    # Weekly caps: value at which a metric is fully saturated
    CAPS: Dict[str, int] = {
        "applications_count": 10,
        "jobs_saved": 20,
        "jobs_viewed": 50,
        "resume_updates": 2,
        "skill_progress_updates": 5,
        "networking_activities": 5,
    }

    # Relative importance; sums to 100
    WEIGHTS: Dict[str, int] = {
        "applications_count": 30,
        "resume_updates": 20,
        "jobs_saved": 15,
        "skill_progress_updates": 15,
        "jobs_viewed": 10,
        "networking_activities": 10,
    }

    @staticmethod
    def compute_momentum_score(counters: Counters) -> int:
        """
        Compute the 0..100 momentum score for one week.

        Args:
            counters: WeeklyCounters (or a mapping with the same keys); missing
                keys count as 0. interview_count is carried but not scored.

        Returns:
            Integer score in 0..100
        """
        values = MomentumScoringEngine._as_mapping(counters)

        total_score = Fraction(0)
        total_weight = 0
        for metric, weight in MomentumScoringEngine.WEIGHTS.items():
            total_score += MomentumScoringEngine._normalize(metric, values.get(metric, 0) or 0) * weight
            total_weight += weight

        return round_half_up(total_score / total_weight * 100)

    @staticmethod
    def _normalize(metric: str, value: int) -> Fraction:
        cap = MomentumScoringEngine.CAPS[metric]
        return min(Fraction(value) / cap, Fraction(1))

    @staticmethod
    def _as_mapping(counters: Counters) -> Mapping[str, int]:
        if isinstance(counters, WeeklyCounters):
            return counters.model_dump()
        return counters


def compute_momentum_score(counters: Counters) -> int:
    return MomentumScoringEngine.compute_momentum_score(counters)
