"""Career progress API: summary, milestones, activity tracking.

POST /api/career-progress                     action-dispatched endpoint
POST /api/career-progress/milestones/defaults seed onboarding milestones
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from career_momentum.core.auth import get_current_profile
from career_momentum.core.errors import ValidationError
from career_momentum.core.logging import get_request_id
from career_momentum.features.insights.messages import render_all, render_insight
from career_momentum.features.progress.service import ProgressService
from career_momentum.features.progress.store import get_store
from career_momentum.models.progress import CareerProfile

router = APIRouter(prefix="/api/career-progress", tags=["career-progress"])

ACTIONS = ("get_summary", "update_milestone", "track_activity", "generate_insights")


class ProgressActionRequest(BaseModel):
    action: Optional[str] = None
    milestone_id: Optional[str] = None
    milestone_updates: Optional[Dict[str, Any]] = None
    activity_type: Optional[str] = None
    activity_data: Optional[Any] = None


def get_progress_service() -> ProgressService:
    return ProgressService(get_store())


def _rid(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or get_request_id()


@router.post("")
async def career_progress(
    body: ProgressActionRequest,
    request: Request,
    profile: CareerProfile = Depends(get_current_profile),
    service: ProgressService = Depends(get_progress_service),
):
    """
    Dispatch on `action`:
    - get_summary: full ProgressSummary plus rendered recommendation messages
    - update_milestone: partial update of an owned milestone
    - track_activity: record one activity with fixed points; success only
    - generate_insights: weekly insights for the current week
    """
    rid = _rid(request)
    if body.action not in ACTIONS:
        raise ValidationError("Invalid action", request_id=rid)

    if body.action == "get_summary":
        summary = service.get_summary(profile)
        return {
            "success": True,
            "data": summary.model_dump(mode="json"),
            "recommendation_messages": render_all(summary.ai_recommendations),
            "request_id": rid,
        }

    if body.action == "update_milestone":
        milestone = service.update_milestone(profile.user_id, body.milestone_id, body.milestone_updates)
        return {"success": True, "milestone": milestone.model_dump(mode="json"), "request_id": rid}

    if body.action == "track_activity":
        service.track_activity(profile.user_id, body.activity_type, body.activity_data)
        return {"success": True, "request_id": rid}

    insights = service.generate_insights(profile)
    return {
        "success": True,
        "message": "Insights generated",
        "insights": [
            {**insight.model_dump(mode="json"), "message": render_insight(insight)}
            for insight in insights
        ],
        "request_id": rid,
    }


@router.post("/milestones/defaults")
async def seed_default_milestones(
    request: Request,
    profile: CareerProfile = Depends(get_current_profile),
    service: ProgressService = Depends(get_progress_service),
):
    """Create the onboarding milestone set for the caller's profile."""
    milestones = service.seed_default_milestones(profile)
    return {
        "success": True,
        "milestones": [m.model_dump(mode="json") for m in milestones],
        "request_id": _rid(request),
    }
