"""
Health and readiness endpoints.

/healthz is dependency-free; /readyz probes the database and the tables the
progress engine reads and writes.
"""

import logging
from typing import List

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from career_momentum.core.database import get_database_url, get_engine

logger = logging.getLogger("career_momentum")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "weekly_progress",
    "career_milestones",
    "user_activities",
    "career_benchmarks",
    "job_interactions",
]


def _missing_tables() -> List[str]:
    """Connect, then list required tables the database does not have."""
    engine = get_engine()
    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")
    inspector = inspect(engine)
    return [table for table in REQUIRED_TABLES if not inspector.has_table(table)]


def _not_ready(detail: str) -> JSONResponse:
    return JSONResponse(status_code=503, content={"status": "error", "detail": detail})


@router.get("/healthz")
def healthz():
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Ready when the configured store can serve requests."""
    if not get_database_url():
        return {"status": "ok", "store": "memory"}

    try:
        missing = _missing_tables()
    except Exception as e:
        logger.error(f"readyz: database probe failed: {e}")
        return _not_ready("database unreachable")

    if missing:
        logger.warning(f"readyz: missing tables {missing}")
        return _not_ready(f"missing tables: {', '.join(missing)}")
    return {"status": "ok", "store": "postgres"}
