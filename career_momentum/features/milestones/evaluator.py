"""
Goal/milestone progress evaluation.

Only active milestones are compared; paused, completed and abandoned ones are
ignored. Overdue milestones stay active until the caller transitions them.
"""

from datetime import date, timedelta
from fractions import Fraction
from typing import List, Optional, Sequence
from uuid import uuid4

from career_momentum.features.momentum.scoring_engine import round_half_up
from career_momentum.models.progress import (
    CareerMilestone,
    CareerProfile,
    MilestoneStatus,
    MilestoneType,
)

PRIORITY_LIMIT = 3

# Weekly application pace by job-search timeline
WEEKLY_APPLICATIONS_BY_TIMELINE = {
    "immediate": 8,
    "short": 5,
    "medium": 3,
    "long": 2,
}
DEFAULT_WEEKLY_APPLICATIONS = 3


def _active(milestones: Sequence[CareerMilestone]) -> List[CareerMilestone]:
    return [m for m in milestones if m.status == MilestoneStatus.ACTIVE]


def _completion(milestone: CareerMilestone) -> Fraction:
    if milestone.target_value <= 0:
        return Fraction(1)
    ratio = Fraction(milestone.current_value) / Fraction(milestone.target_value)
    return min(ratio, Fraction(1))


def compute_goal_progress(milestones: Sequence[CareerMilestone]) -> int:
    """
    Mean completion across active milestones, as a 0..100 percentage.

    No active milestones (an empty list included) counts as fully done.
    """
    active = _active(milestones)
    if not active:
        return 100

    total = sum((_completion(m) for m in active), Fraction(0))
    return round_half_up(total / len(active) * 100)


def next_priority_milestones(
    milestones: Sequence[CareerMilestone],
    today: Optional[date] = None,
    limit: int = PRIORITY_LIMIT,
) -> List[CareerMilestone]:
    """
    Most urgent active milestones.

    Overdue milestones (target_date before today) always sort ahead of
    upcoming ones; each group is ordered by target_date ascending.
    """
    today = today or date.today()
    ordered = sorted(
        _active(milestones),
        key=lambda m: (m.target_date >= today, m.target_date),
    )
    return ordered[:limit]


def default_milestones(profile: CareerProfile, today: date) -> List[CareerMilestone]:
    """
    Onboarding milestones seeded from the user's career objectives.

    Deterministic apart from the generated ids.
    """
    weekly_applications = WEEKLY_APPLICATIONS_BY_TIMELINE.get(
        profile.timeline or "", DEFAULT_WEEKLY_APPLICATIONS
    )
    monthly_applications = weekly_applications * 4
    in_30_days = today + timedelta(days=30)

    seeded = [
        CareerMilestone(
            id=str(uuid4()),
            user_id=profile.user_id,
            milestone_type=MilestoneType.APPLICATION_GOAL,
            title="Monthly Application Target",
            description=f"Apply to {monthly_applications} relevant positions this month",
            target_value=monthly_applications,
            current_value=0,
            target_date=in_30_days,
            status=MilestoneStatus.ACTIVE,
        ),
        CareerMilestone(
            id=str(uuid4()),
            user_id=profile.user_id,
            milestone_type=MilestoneType.NETWORKING,
            title="Monthly Networking Goal",
            description="Connect with professionals in your target industry",
            target_value=8,
            current_value=0,
            target_date=in_30_days,
            status=MilestoneStatus.ACTIVE,
        ),
    ]

    if profile.career_stage == "student" or profile.primary_goal == "career_change":
        seeded.append(
            CareerMilestone(
                id=str(uuid4()),
                user_id=profile.user_id,
                milestone_type=MilestoneType.SKILL_DEVELOPMENT,
                title="Skill Development Progress",
                description="Complete learning modules or courses",
                target_value=4,
                current_value=0,
                target_date=today + timedelta(days=60),
                status=MilestoneStatus.ACTIVE,
            )
        )

    return seeded
