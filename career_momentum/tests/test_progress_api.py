"""Tests for POST /api/career-progress and the onboarding seed endpoint."""

import time

import jwt
import pytest
from fastapi.testclient import TestClient

from career_momentum.core import database
from career_momentum.core.config import settings
from career_momentum.features.progress.store import get_store, reset_store
from career_momentum.features.progress.store_pg import PostgresProgressStore
from career_momentum.main import app
from career_momentum.models.progress import BenchmarkCohort

client = TestClient(app)

ENDPOINT = "/api/career-progress"
TEST_SECRET = "test-secret-key-for-career-progress-0001"


def headers(user_id="api_user", **extra):
    return {"X-User-Id": user_id, **extra}


def make_token(sub="jwt_user", exp_offset=3600, **claims):
    now = int(time.time())
    payload = {"sub": sub, "iat": now, "exp": now + exp_offset, **claims}
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


class TestAuth:

    def test_missing_identity_is_401(self):
        resp = client.post(ENDPOINT, json={"action": "get_summary"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_bearer_token_identity(self, monkeypatch):
        monkeypatch.setattr(settings, "CLERK_SECRET_KEY", TEST_SECRET)
        token = make_token(sub="jwt_user", career_stage="entry", target_role="analyst")
        get_store().add_benchmark_cohort(BenchmarkCohort(
            career_stage="entry",
            target_role="analyst",
            avg_applications_per_week=2.0,
            avg_response_rate=10.0,
            avg_interview_rate=4.0,
        ))

        resp = client.post(ENDPOINT, json={"action": "get_summary"}, headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["current_week"]["user_id"] == "jwt_user"
        assert data["benchmark_comparison"]["is_fallback"] is False

    def test_expired_token_is_401(self, monkeypatch):
        monkeypatch.setattr(settings, "CLERK_SECRET_KEY", TEST_SECRET)
        token = make_token(exp_offset=-60)

        resp = client.post(ENDPOINT, json={"action": "get_summary"}, headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Token expired"

    def test_invalid_token_does_not_fall_back_to_header(self, monkeypatch):
        monkeypatch.setattr(settings, "CLERK_SECRET_KEY", TEST_SECRET)
        resp = client.post(
            ENDPOINT,
            json={"action": "get_summary"},
            headers={"Authorization": "Bearer not-a-jwt", "X-User-Id": "api_user"},
        )
        assert resp.status_code == 401


class TestGetSummary:

    def test_summary_shape(self):
        resp = client.post(ENDPOINT, json={"action": "get_summary"}, headers=headers())

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert set(data) >= {
            "current_week",
            "milestones",
            "recent_activities",
            "benchmark_comparison",
            "weekly_streak",
            "momentum_trend",
            "next_milestones",
            "ai_recommendations",
        }
        assert 0 <= data["current_week"]["momentum_score"] <= 100
        assert len(body["recommendation_messages"]) == len(data["ai_recommendations"])

    def test_summary_is_idempotent(self):
        first = client.post(ENDPOINT, json={"action": "get_summary"}, headers=headers()).json()
        second = client.post(ENDPOINT, json={"action": "get_summary"}, headers=headers()).json()
        assert first["data"] == second["data"]


class TestValidation:

    def test_invalid_action_is_400(self):
        resp = client.post(ENDPOINT, json={"action": "explode"}, headers=headers())
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "validation_error"
        assert body["error"]["message"] == "Invalid action"

    def test_missing_action_is_400(self):
        resp = client.post(ENDPOINT, json={}, headers=headers())
        assert resp.status_code == 400

    def test_track_activity_requires_type(self):
        resp = client.post(ENDPOINT, json={"action": "track_activity"}, headers=headers())
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_update_milestone_requires_id(self):
        resp = client.post(
            ENDPOINT,
            json={"action": "update_milestone", "milestone_updates": {"current_value": 3}},
            headers=headers(),
        )
        assert resp.status_code == 400

    def test_malformed_body_is_400(self):
        resp = client.post(ENDPOINT, json={"action": "track_activity", "milestone_updates": "nope"}, headers=headers())
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


class TestMutations:

    def test_track_activity(self):
        resp = client.post(
            ENDPOINT,
            json={"action": "track_activity", "activity_type": "job_applied", "activity_data": {"job_id": "j1"}},
            headers=headers(),
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "request_id": resp.headers["x-request-id"]}

        summary = client.post(ENDPOINT, json={"action": "get_summary"}, headers=headers()).json()
        activities = summary["data"]["recent_activities"]
        assert activities[0]["activity_type"] == "job_applied"
        assert activities[0]["activity_data"] == {"job_id": "j1"}
        assert activities[0]["points_earned"] == 15

    def test_seed_then_update_milestone(self):
        seeded = client.post(f"{ENDPOINT}/milestones/defaults", headers=headers(user_id="seed_user"))
        assert seeded.status_code == 200
        milestone_id = seeded.json()["milestones"][0]["id"]

        resp = client.post(
            ENDPOINT,
            json={
                "action": "update_milestone",
                "milestone_id": milestone_id,
                "milestone_updates": {"current_value": 4, "title": "Apply more"},
            },
            headers=headers(user_id="seed_user"),
        )

        assert resp.status_code == 200
        milestone = resp.json()["milestone"]
        assert milestone["current_value"] == 4
        assert milestone["title"] == "Apply more"

    def test_update_other_users_milestone_is_404(self):
        seeded = client.post(f"{ENDPOINT}/milestones/defaults", headers=headers(user_id="owner"))
        milestone_id = seeded.json()["milestones"][0]["id"]

        resp = client.post(
            ENDPOINT,
            json={
                "action": "update_milestone",
                "milestone_id": milestone_id,
                "milestone_updates": {"current_value": 4},
            },
            headers=headers(user_id="intruder"),
        )

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_generate_insights_returns_weekly_insights(self):
        resp = client.post(ENDPOINT, json={"action": "generate_insights"}, headers=headers(user_id="quiet_user"))

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Insights generated"
        assert body["insights"] == [{
            "token": "no_applications",
            "params": {},
            "message": "No applications sent this week - this is your biggest opportunity for improvement",
        }]


class TestUnreachableDatabase:

    @pytest.fixture(autouse=True)
    def unreachable_database(self, monkeypatch):
        monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@127.0.0.1:1/nodb")
        monkeypatch.setattr(database, "_engine", None)
        monkeypatch.setattr(database, "_session_factory", None)
        reset_store()

    def test_summary_fails_with_progress_unavailable(self):
        resp = client.post(ENDPOINT, json={"action": "get_summary"}, headers=headers())

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "progress_unavailable"

    def test_track_activity_does_not_report_success(self):
        resp = client.post(
            ENDPOINT,
            json={"action": "track_activity", "activity_type": "job_applied"},
            headers=headers(),
        )

        assert resp.status_code == 500
        assert "success" not in resp.json()
        assert resp.json()["error"]["code"] == "progress_unavailable"

    def test_store_and_readiness_agree(self):
        assert isinstance(get_store(), PostgresProgressStore)
        assert client.get("/readyz").status_code == 503


def test_seed_uses_profile_headers():
    resp = client.post(
        f"{ENDPOINT}/milestones/defaults",
        headers=headers(user_id="student_user", **{"X-Career-Stage": "student"}),
    )
    assert resp.status_code == 200
    types = [m["milestone_type"] for m in resp.json()["milestones"]]
    assert types == ["application_goal", "networking", "skill_development"]
