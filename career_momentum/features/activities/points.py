"""
Activity points and payload bounds.

Points are fixed at insertion time from a static type -> points table.
activity_data stays an opaque key/value blob; it is only size-checked here
and never interpreted by scoring.
"""

import json
from typing import Any, Dict, Optional

from career_momentum.core.config import settings
from career_momentum.core.errors import ValidationError

ACTIVITY_POINTS: Dict[str, int] = {
    "resume_updated": 10,
    "job_applied": 15,
    "job_saved": 5,
    "job_viewed": 2,
    "skill_learned": 20,
    "profile_updated": 8,
    "goal_set": 25,
    "milestone_completed": 50,
    "networking_activity": 12,
}
DEFAULT_ACTIVITY_POINTS = 5

MAX_ACTIVITY_TYPE_LENGTH = 100


def points_for(activity_type: str) -> int:
    return ACTIVITY_POINTS.get(activity_type, DEFAULT_ACTIVITY_POINTS)


def validate_activity_type(activity_type: Optional[str]) -> str:
    if not activity_type or not activity_type.strip():
        raise ValidationError("Missing activity_type")
    activity_type = activity_type.strip()
    if len(activity_type) > MAX_ACTIVITY_TYPE_LENGTH:
        raise ValidationError(f"activity_type exceeds {MAX_ACTIVITY_TYPE_LENGTH} characters")
    return activity_type


def validate_activity_data(activity_data: Optional[Any], max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """Normalize to a dict and enforce the serialized size bound."""
    if activity_data is None:
        return {}
    if not isinstance(activity_data, dict):
        raise ValidationError("activity_data must be an object")

    limit = max_bytes if max_bytes is not None else settings.ACTIVITY_DATA_MAX_BYTES
    try:
        encoded = json.dumps(activity_data, default=str).encode("utf-8")
    except (TypeError, ValueError):
        raise ValidationError("activity_data must be JSON-serializable")
    if len(encoded) > limit:
        raise ValidationError(f"activity_data exceeds {limit} bytes")
    return activity_data
