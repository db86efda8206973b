"""
Progress Service Guardrail Tests

Verify:
1. Derivation: first summary of the week builds counters from raw interactions
2. Idempotence: repeated summaries return identical results and one row
3. Concurrency: simultaneous first-time summaries leave a single row
4. Failures: any storage error surfaces as DependencyError, no partial summary
5. Mutations: milestone updates, activity tracking, onboarding seeds
"""

import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from career_momentum.core.config import Settings
from career_momentum.core.errors import DependencyError, NotFoundError, ValidationError
from career_momentum.features.progress.service import (
    ProgressService,
    derive_counters,
    merge_current_week,
)
from career_momentum.features.progress.store import InMemoryProgressStore
from career_momentum.models.progress import (
    BenchmarkCohort,
    CareerMilestone,
    CareerProfile,
    MilestoneStatus,
    MilestoneType,
    RawInteraction,
    WeeklyProgress,
)

NOW = datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)  # Wednesday
MONDAY = date(2025, 3, 10)
USER = "user_abc"


def make_service(store, **overrides):
    settings = Settings(**{"PROGRESS_TIMEZONE": "UTC", **overrides})
    return ProgressService(store, clock=lambda: NOW, settings=settings)


def interaction(kind, when=NOW - timedelta(hours=1), user_id=USER):
    return RawInteraction(user_id=user_id, interaction_type=kind, created_at=when)


def milestone(mid, current, target, target_date=MONDAY + timedelta(days=20), status=MilestoneStatus.ACTIVE):
    return CareerMilestone(
        id=mid,
        user_id=USER,
        milestone_type=MilestoneType.APPLICATION_GOAL,
        title=mid,
        target_value=target,
        current_value=current,
        target_date=target_date,
        status=status,
    )


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def profile():
    return CareerProfile(user_id=USER)


class TestWeekWindow:

    def test_week_starts_monday_utc(self, store):
        assert make_service(store).current_week_start(NOW) == MONDAY

    def test_monday_midnight_belongs_to_new_week(self, store):
        service = make_service(store)
        assert service.current_week_start(datetime(2025, 3, 17, 0, 0, tzinfo=timezone.utc)) == date(2025, 3, 17)

    def test_configured_timezone_shifts_boundary(self, store):
        # Sunday 23:30 UTC is already Monday in Tokyo
        service = make_service(store, PROGRESS_TIMEZONE="Asia/Tokyo")
        assert service.current_week_start(datetime(2025, 3, 16, 23, 30, tzinfo=timezone.utc)) == date(2025, 3, 17)


class TestDerivation:

    def test_counters_from_interactions(self):
        counters = derive_counters([
            interaction("applied"),
            interaction("applied"),
            interaction("viewed"),
            interaction("networking"),
            interaction("interview"),
            interaction("unknown_kind"),
        ])
        assert counters.applications_count == 2
        assert counters.jobs_viewed == 1
        assert counters.networking_activities == 1
        assert counters.interview_count == 1
        assert counters.jobs_saved == 0

    def test_first_summary_derives_and_persists_week(self, store, profile):
        store.add_raw_interaction(interaction("applied"))
        store.add_raw_interaction(interaction("applied"))
        store.add_raw_interaction(interaction("resume_updated"))
        # Last week's activity is outside the window
        store.add_raw_interaction(interaction("applied", when=NOW - timedelta(days=7)))
        store.insert_milestones([milestone("m1", 5, 10)])

        summary = make_service(store).get_summary(profile)

        week = summary.current_week
        assert week.week_start == MONDAY
        assert week.applications_count == 2
        assert week.resume_updates == 1
        # 2/10*30 + 1/2*20 = 16
        assert week.momentum_score == 16
        assert week.goal_progress_percentage == 50
        assert store.get_weekly_progress(USER, MONDAY) == week

    def test_existing_week_is_not_recomputed(self, store, profile):
        stored = WeeklyProgress(user_id=USER, week_start=MONDAY, applications_count=9, momentum_score=27)
        store.upsert_weekly_progress(stored)
        store.add_raw_interaction(interaction("applied"))

        summary = make_service(store).get_summary(profile)

        assert summary.current_week.applications_count == 9
        assert summary.current_week.momentum_score == 27

    def test_interactions_after_now_are_not_counted(self, store, profile):
        store.add_raw_interaction(interaction("applied", when=NOW - timedelta(hours=1)))
        store.add_raw_interaction(interaction("applied", when=NOW + timedelta(days=1)))

        summary = make_service(store).get_summary(profile, now=NOW)

        assert summary.current_week.applications_count == 1

    def test_past_week_is_derived_from_its_own_window_only(self, store, profile):
        last_week = NOW - timedelta(days=7)
        store.add_raw_interaction(interaction("applied", when=last_week - timedelta(hours=2)))
        store.add_raw_interaction(interaction("applied", when=NOW - timedelta(hours=1)))
        store.add_raw_interaction(interaction("viewed", when=NOW))

        summary = make_service(store).get_summary(profile, now=last_week)

        assert summary.current_week.week_start == MONDAY - timedelta(days=7)
        assert summary.current_week.applications_count == 1
        assert summary.current_week.jobs_viewed == 0

    def test_window_ends_at_next_monday(self, store):
        service = make_service(store)
        since, until = service.week_window(MONDAY, NOW + timedelta(days=30))

        assert since == datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert until == datetime(2025, 3, 17, tzinfo=timezone.utc)
        assert service.week_window(MONDAY, NOW)[1] == NOW


class TestSummary:

    def test_new_user_gets_renderable_summary(self, store, profile):
        summary = make_service(store).get_summary(profile)

        assert summary.current_week.momentum_score == 0
        assert summary.current_week.goal_progress_percentage == 100
        assert summary.milestones == []
        assert summary.recent_activities == []
        assert summary.weekly_streak == 0
        assert summary.momentum_trend == "stable"
        assert summary.benchmark_comparison.is_fallback is True
        assert 1 <= len(summary.ai_recommendations) <= 4

    def test_repeated_summaries_are_identical(self, store, profile):
        store.add_raw_interaction(interaction("applied"))
        service = make_service(store)

        first = service.get_summary(profile)
        second = service.get_summary(profile)

        assert first == second
        assert len(store.list_weekly_progress(USER, 10)) == 1

    def test_history_drives_streak_and_trend(self, store, profile):
        for weeks_back, score in [(1, 70), (2, 40)]:
            store.upsert_weekly_progress(
                WeeklyProgress(user_id=USER, week_start=MONDAY - timedelta(weeks=weeks_back), momentum_score=score)
            )
        store.upsert_weekly_progress(WeeklyProgress(user_id=USER, week_start=MONDAY, momentum_score=80))

        summary = make_service(store).get_summary(profile)

        assert summary.weekly_streak == 3
        assert summary.momentum_trend == "improving"

    def test_cohort_used_when_profile_matches(self, store):
        store.add_benchmark_cohort(BenchmarkCohort(
            career_stage="entry",
            target_role="analyst",
            avg_applications_per_week=4.0,
            avg_response_rate=10.0,
            avg_interview_rate=3.0,
        ))
        profile = CareerProfile(user_id=USER, career_stage="entry", target_role="analyst")

        summary = make_service(store).get_summary(profile)

        assert summary.benchmark_comparison.is_fallback is False
        assert summary.benchmark_comparison.performance_delta.applications == -100.0

    def test_next_milestones_put_overdue_first(self, store, profile):
        store.insert_milestones([
            milestone("later", 0, 5, target_date=MONDAY + timedelta(days=30)),
            milestone("overdue", 0, 5, target_date=MONDAY - timedelta(days=3)),
            milestone("paused", 0, 5, target_date=MONDAY - timedelta(days=9), status=MilestoneStatus.PAUSED),
        ])
        summary = make_service(store).get_summary(profile)

        assert [m.id for m in summary.next_milestones] == ["overdue", "later"]
        assert len(summary.milestones) == 3

    def test_recent_activities_limited(self, store, profile):
        service = make_service(store)
        for i in range(12):
            service.track_activity(USER, "job_viewed", {"n": i})

        summary = service.get_summary(profile)

        assert len(summary.recent_activities) == 10

    def test_merge_replaces_stale_current_week(self):
        stale = WeeklyProgress(user_id=USER, week_start=MONDAY, momentum_score=5)
        fresh = stale.model_copy(update={"momentum_score": 50})
        older = WeeklyProgress(user_id=USER, week_start=MONDAY - timedelta(weeks=1), momentum_score=30)

        merged = merge_current_week(fresh, [stale, older], limit=4)

        assert [w.momentum_score for w in merged] == [50, 30]


class TestConcurrency:

    def test_concurrent_first_summaries_leave_one_row(self, store, profile):
        store.add_raw_interaction(interaction("applied"))
        service = make_service(store)
        results = []
        errors = []

        def worker():
            try:
                results.append(service.get_summary(profile))
            except Exception as exc:  # surfaced via assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store.list_weekly_progress(USER, 10)) == 1
        assert {r.current_week.applications_count for r in results} == {1}


class _BrokenStore(InMemoryProgressStore):
    def __init__(self, failing_method):
        super().__init__()

        def fail(*args, **kwargs):
            raise ConnectionError("database went away")

        setattr(self, failing_method, fail)


class TestStorageFailures:

    @pytest.mark.parametrize("method", [
        "get_weekly_progress",
        "list_weekly_progress",
        "upsert_weekly_progress",
        "list_milestones",
        "list_recent_activities",
        "list_raw_interactions",
    ])
    def test_any_read_or_write_failure_aborts_summary(self, method, profile):
        service = make_service(_BrokenStore(method))

        with pytest.raises(DependencyError) as exc_info:
            service.get_summary(profile)

        assert exc_info.value.code == "progress_unavailable"
        assert exc_info.value.message == "Unable to compute progress"

    def test_cohort_failure_aborts_summary(self):
        service = make_service(_BrokenStore("get_benchmark_cohort"))
        profile = CareerProfile(user_id=USER, career_stage="entry", target_role="analyst")

        with pytest.raises(DependencyError):
            service.get_summary(profile)

    def test_activity_write_failure_is_dependency_error(self):
        with pytest.raises(DependencyError) as exc_info:
            make_service(_BrokenStore("insert_activity")).track_activity(USER, "job_applied")
        assert exc_info.value.message == "Unable to record activity"

    def test_milestone_write_failure_is_dependency_error(self):
        store = _BrokenStore("update_milestone")
        store.insert_milestones([milestone("m1", 2, 10)])

        with pytest.raises(DependencyError):
            make_service(store).update_milestone(USER, "m1", {"current_value": 3})
        assert store.list_recent_activities(USER, 10) == []

    def test_insights_read_failure_is_dependency_error(self, profile):
        with pytest.raises(DependencyError):
            make_service(_BrokenStore("list_milestones")).generate_insights(profile)


class TestMilestoneUpdates:

    def test_update_round_trip(self, store):
        store.insert_milestones([milestone("m1", 2, 10)])
        service = make_service(store)

        updated = service.update_milestone(USER, "m1", {"current_value": 7, "status": "completed"})

        assert updated.current_value == 7
        assert updated.status == MilestoneStatus.COMPLETED
        stored = store.list_milestones(USER)[0]
        assert stored.current_value == 7
        assert stored.status == MilestoneStatus.COMPLETED
        assert store.list_recent_activities(USER, 10)[0].activity_type == "milestone_updated"

    def test_missing_id_is_validation_error(self, store):
        with pytest.raises(ValidationError):
            make_service(store).update_milestone(USER, None, {"current_value": 1})

    def test_empty_updates_is_validation_error(self, store):
        with pytest.raises(ValidationError):
            make_service(store).update_milestone(USER, "m1", {})

    def test_unknown_field_rejected(self, store):
        store.insert_milestones([milestone("m1", 2, 10)])
        with pytest.raises(ValidationError):
            make_service(store).update_milestone(USER, "m1", {"user_id": "someone_else"})

    def test_negative_value_rejected(self, store):
        store.insert_milestones([milestone("m1", 2, 10)])
        with pytest.raises(ValidationError):
            make_service(store).update_milestone(USER, "m1", {"current_value": -1})

    def test_other_users_milestone_not_found(self, store):
        store.insert_milestones([milestone("m1", 2, 10)])
        with pytest.raises(NotFoundError):
            make_service(store).update_milestone("intruder", "m1", {"current_value": 9})
        assert store.list_milestones(USER)[0].current_value == 2

    def test_unknown_milestone_not_found(self, store):
        with pytest.raises(NotFoundError):
            make_service(store).update_milestone(USER, "nope", {"current_value": 1})

    def test_completion_changes_next_summary_goal_progress(self, store, profile):
        store.insert_milestones([milestone("m1", 0, 10), milestone("m2", 0, 10)])
        service = make_service(store)
        service.update_milestone(USER, "m1", {"current_value": 10})

        # Next week's derivation picks up the new goal progress
        next_week = NOW + timedelta(days=7)
        summary = service.get_summary(profile, now=next_week)

        assert summary.current_week.goal_progress_percentage == 50


class TestActivityTracking:

    @pytest.mark.parametrize("activity_type,points", [
        ("resume_updated", 10),
        ("job_applied", 15),
        ("milestone_completed", 50),
        ("networking_activity", 12),
        ("something_new", 5),
    ])
    def test_points_fixed_by_type(self, store, activity_type, points):
        activity = make_service(store).track_activity(USER, activity_type, {"source": "test"})
        assert activity.points_earned == points
        assert activity.activity_data == {"source": "test"}

    def test_missing_type_rejected(self, store):
        with pytest.raises(ValidationError):
            make_service(store).track_activity(USER, None)
        assert store.list_recent_activities(USER, 10) == []

    def test_oversized_data_rejected(self, store):
        service = make_service(store, ACTIVITY_DATA_MAX_BYTES=64)
        with pytest.raises(ValidationError):
            service.track_activity(USER, "job_viewed", {"blob": "x" * 100})

    def test_non_object_data_rejected(self, store):
        with pytest.raises(ValidationError):
            make_service(store).track_activity(USER, "job_viewed", ["not", "a", "dict"])

    def test_activity_does_not_change_current_week(self, store, profile):
        service = make_service(store)
        before = service.get_summary(profile).current_week
        service.track_activity(USER, "job_applied")
        assert service.get_summary(profile).current_week == before


class TestSeeding:

    def test_seed_inserts_defaults_and_goal_set_activities(self, store):
        profile = CareerProfile(user_id=USER, career_stage="student", timeline="short")
        seeded = make_service(store).seed_default_milestones(profile)

        assert len(seeded) == 3
        assert seeded[0].target_value == 20
        assert seeded[0].target_date == NOW.date() + timedelta(days=30)
        assert len(store.list_milestones(USER)) == 3
        activities = store.list_recent_activities(USER, 10)
        assert [a.activity_type for a in activities] == ["goal_set"] * 3
        assert all(a.points_earned == 25 for a in activities)

class TestInsights:

    def test_compares_current_week_with_previous(self, store, profile):
        store.upsert_weekly_progress(
            WeeklyProgress(user_id=USER, week_start=MONDAY - timedelta(days=7), momentum_score=40)
        )
        store.upsert_weekly_progress(
            WeeklyProgress(user_id=USER, week_start=MONDAY, applications_count=4, jobs_viewed=30, momentum_score=20)
        )
        store.insert_milestones([milestone("late", 1, 10, target_date=MONDAY - timedelta(days=1))])

        insights = make_service(store).generate_insights(profile)

        assert [(i.token.value, i.params) for i in insights] == [
            ("momentum_declined", {"momentum_change": -20}),
            ("overdue_milestones", {"overdue_count": 1}),
        ]

    def test_derives_current_week_when_missing(self, store, profile):
        insights = make_service(store).generate_insights(profile)

        assert [i.token.value for i in insights] == ["no_applications"]
        assert store.get_weekly_progress(USER, MONDAY) is not None
