"""Tests for Analytics Service HTTP handler.

Repositories are MagicMocks so the endpoints run without a database.
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from journey.shared.database import NotFoundError
from journey.shared.models import (
    AccommodationLog,
    CheckInEntry,
    CouldDoAlone,
    LoginActivity,
    Reflection,
    Role,
    Subject,
    program_tasks,
)
from journey.shared.utils import configure_pii_salt
from journey.services.analytics_service.handler import (
    app,
    AnalyticsHandler,
    AnalyticsConfig,
    set_handler,
)

NOW = datetime(2026, 3, 10, 9, 0)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def client():
    """Flask test client."""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def make_entries(anxiety, completed=None, week=1, start=NOW):
    completed = completed or [True] * len(anxiety)
    return [
        CheckInEntry(
            id=i + 1,
            subject_id=1,
            task_id=week,
            week_number=week,
            completed=c,
            anxiety_level=a,
            guilt_level=5,
            activity_description="Walked to the park",
            completed_at=start - timedelta(days=i),
        )
        for i, (a, c) in enumerate(zip(anxiety, completed))
    ]


@pytest.fixture
def repos():
    """Mock repositories with one subject in week 1."""
    subjects = MagicMock()
    subjects.get_by_id.return_value = Subject(id=1, name="Kristine", current_week=1)
    subjects.find_by_role.return_value = [Subject(id=1, name="Kristine", current_week=1)]

    entries = MagicMock()
    entries.find_by_subject.return_value = make_entries([3, 4, 3, 7, 8, 6])

    accommodations = MagicMock()
    accommodations.find_by_subject.return_value = [
        AccommodationLog(
            id=1,
            subject_id=1,
            logged_at=NOW,
            time_of_day="07:30",
            what_did="Packed his lunch",
            could_have_done_alone=CouldDoAlone.YES,
            felt_during="Tired",
        ),
    ]

    reflections = MagicMock()
    reflections.find_by_subject.return_value = [
        Reflection(id=1, subject_id=1, week_number=1, answer_1="Mornings", created_at=NOW),
    ]

    tasks = MagicMock()
    tasks.find_all.return_value = program_tasks()

    logins = MagicMock()
    logins.find_by_subject.return_value = [
        LoginActivity(id=2, subject_id=1, logged_in_at=NOW),
        LoginActivity(id=1, subject_id=1, logged_in_at=NOW - timedelta(days=2)),
    ]
    logins.find_last.return_value = LoginActivity(id=2, subject_id=1, logged_in_at=NOW)

    return {
        "subjects": subjects,
        "entries": entries,
        "accommodations": accommodations,
        "reflections": reflections,
        "tasks": tasks,
        "logins": logins,
    }


@pytest.fixture
def connection_manager():
    cm = MagicMock()
    cm.health_check.return_value = {"status": "connected", "healthy": True}
    return cm


@pytest.fixture
def handler(repos, connection_manager):
    """Fresh handler for each test."""
    h = AnalyticsHandler(
        config=AnalyticsConfig(),
        connection_manager=connection_manager,
        **repos,
    )
    set_handler(h)
    return h


class TestHealthEndpoints:
    """Tests for /health and /ready."""

    def test_health_returns_200(self, client, handler):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["service"] == "analytics-service"

    def test_ready_when_database_healthy(self, client, handler):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ready"

    def test_not_ready_when_database_unhealthy(self, client, handler, connection_manager):
        connection_manager.health_check.return_value = {"status": "error", "healthy": False}

        response = client.get("/ready")

        assert response.status_code == 503


class TestPhaseEndpoint:
    """Tests for /phase."""

    def test_returns_phase_and_plan(self, client, handler):
        response = client.get("/phase?week=3")

        assert response.status_code == 200
        data = response.get_json()
        assert data["phase"]["name"] == "The 15-Minute Exit"
        assert data["plan"]["week_number"] == 3
        assert len(data["plan"]["reflection_questions"]) == 3
        assert data["program"][0] == "Week 1-2: Accommodation Awareness"
        assert data["program"][-1] == "Week 9+: Reclaiming Your Space"

    def test_weeks_beyond_program_use_terminal_phase(self, client, handler):
        data = client.get("/phase?week=12").get_json()

        assert data["phase"]["name"] == "Reclaiming Your Space"
        assert data["plan"]["week_number"] == 9

    @pytest.mark.parametrize("query", ["", "?week=", "?week=abc"])
    def test_invalid_week_returns_400(self, client, handler, query):
        assert client.get(f"/phase{query}").status_code == 400


class TestProgressEndpoint:
    """Tests for /progress."""

    def test_requires_subject_id(self, client, handler):
        response = client.get("/progress")

        assert response.status_code == 400
        assert "subject_id is required" in response.get_json()["error"]

    def test_unknown_subject_returns_404(self, client, handler, repos):
        repos["subjects"].get_by_id.side_effect = NotFoundError("subjects row 9 not found")

        assert client.get("/progress?subject_id=9").status_code == 404

    def test_repository_failure_returns_500(self, client, handler, repos):
        repos["entries"].find_by_subject.side_effect = RuntimeError("connection reset")

        response = client.get("/progress?subject_id=1")

        assert response.status_code == 500
        assert response.get_json()["error"] == "Internal error"

    def test_progress_payload(self, client, handler):
        response = client.get("/progress?subject_id=1")

        assert response.status_code == 200
        data = response.get_json()
        assert data["current_week"] == 1
        assert data["phase"]["name"] == "Accommodation Awareness"
        assert data["entry_count"] == 6
        assert data["average_anxiety"] == 5.2
        assert data["trend"]["anxiety"]["direction"] == "improving"
        assert data["completion"]["rate_percent"] == 100
        assert data["completion_by_week"]["1"]["completed_count"] == 6
        assert data["milestones"] == [1]
        assert data["streak"] == 6
        assert data["accommodations"]["by_time_of_day"]["Morning"] == 1
        assert data["accommodations"]["could_do_alone_percent"] == 100
        assert data["chart"][0]["anxiety"] == 6

    def test_progress_with_no_records(self, client, handler, repos):
        repos["entries"].find_by_subject.return_value = []
        repos["accommodations"].find_by_subject.return_value = []

        data = client.get("/progress?subject_id=1").get_json()

        assert data["average_anxiety"] is None
        assert data["trend"]["anxiety"]["computable"] is False
        assert data["completion"] == {"completed_count": 0, "total_count": 0, "rate_percent": 0}
        assert data["milestones"] == []
        assert data["accommodations"]["total"] == 0


class TestAdminEndpoints:
    """Tests for the admin dashboard endpoints."""

    def test_list_subjects(self, client, handler, repos):
        data = client.get("/admin/subjects").get_json()

        repos["subjects"].find_by_role.assert_called_once_with(Role.USER)
        assert data["subjects"][0]["name"] == "Kristine"

    def test_activity(self, client, handler):
        data = client.get("/admin/activity?subject_id=1").get_json()

        assert len(data["entries"]) == 6
        assert len(data["accommodations"]) == 1
        assert data["reflections"][0]["answer_1"] == "Mornings"
        assert len(data["login_activity"]) == 2

    def test_logins(self, client, handler):
        data = client.get("/admin/logins?subject_id=1").get_json()

        assert data["login_count"] == 2
        assert data["last_login"] == NOW.isoformat() + "Z"
        assert data["days_since_last_login"] >= 0

    def test_logins_when_never_logged_in(self, handler, repos):
        repos["logins"].find_by_subject.return_value = []

        data = handler.get_login_tracking(1, now=NOW)

        assert data["last_login"] is None
        assert data["days_since_last_login"] is None

    def test_logins_unknown_subject(self, client, handler, repos):
        repos["subjects"].get_by_id.side_effect = NotFoundError("subjects row 9 not found")

        response = client.get("/admin/logins?subject_id=9")

        assert response.status_code == 404
        repos["logins"].find_by_subject.assert_not_called()

    def test_red_flags_use_current_week_entries(self, handler, repos):
        repos["subjects"].get_by_id.return_value = Subject(id=1, name="Kristine", current_week=3)
        repos["entries"].find_by_subject.return_value = make_entries(
            [8, 9, 7], [True, False, False], week=3,
        )
        repos["logins"].find_last.return_value = LoginActivity(
            subject_id=1, logged_in_at=NOW - timedelta(days=4),
        )

        data = handler.get_red_flags(1, now=NOW)

        repos["entries"].find_by_subject.assert_called_once_with(1, 3)
        assert data["week_number"] == 3
        assert data["red_flags"] == [
            "No login for 4 days",
            "Low completion rate: 1 days this week",
            "High anxiety levels: average 8.0/10",
        ]

    def test_red_flags_endpoint(self, client, handler, repos):
        repos["logins"].find_last.return_value = LoginActivity(
            subject_id=1, logged_in_at=datetime.utcnow(),
        )
        repos["entries"].find_by_subject.return_value = make_entries([2, 2, 2])

        response = client.get("/admin/red-flags?subject_id=1")

        assert response.status_code == 200
        assert response.get_json()["red_flags"] == []

    def test_red_flags_unknown_subject(self, client, handler, repos):
        repos["subjects"].get_by_id.side_effect = NotFoundError("subjects row 5 not found")

        assert client.get("/admin/red-flags?subject_id=5").status_code == 404

    def test_export(self, client, handler):
        response = client.get("/admin/export?subject_id=1")

        assert response.status_code == 200
        data = response.get_json()
        assert data["export_date"].endswith("Z")
        assert data["subject"] == "Kristine"
        assert data["entries"][0] == {
            "date": "2026-03-10",
            "week": 1,
            "completed": True,
            "anxiety": 3,
            "guilt": 5,
            "activity": "Walked to the park",
            "observation": None,
        }
        assert data["accommodations"][0]["could_have_done_alone"] == "yes"
        assert data["reflections"][0]["week"] == 1

    def test_invalid_subject_id(self, client, handler):
        assert client.get("/admin/export?subject_id=abc").status_code == 400


class TestAnalyticsConfig:
    """Tests for AnalyticsConfig."""

    def test_defaults(self):
        config = AnalyticsConfig()

        assert config.trend_window == 3
        assert config.red_flag_rules.inactivity_days == 3
        assert config.red_flag_rules.min_completions == 2

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TREND_WINDOW", "5")
        monkeypatch.setenv("INACTIVITY_DAYS", "4")

        config = AnalyticsConfig.from_env()

        assert config.trend_window == 5
        assert config.inactivity_days == 4

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            AnalyticsConfig(trend_window=0)
