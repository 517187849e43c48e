"""Analytics Service HTTP Handler - Progress view and admin dashboard API.

All numbers are computed on request from stored records; nothing is cached.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check (database connectivity)
- GET /phase - Phase and plan for a week
- GET /progress - Progress overview for a subject
- GET /admin/subjects - Subjects doing the program
- GET /admin/activity - Raw activity for a subject
- GET /admin/logins - Login history for a subject
- GET /admin/red-flags - Red flags for a subject's current week
- GET /admin/export - JSON export of a subject's records
"""
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify

from journey.shared.database import ConnectionManager, NotFoundError, get_connection_manager
from journey.shared.models import Role, program_overview, resolve_phase, week_plan
from journey.shared.utils import configure_pii_salt, hash_pii, parse_int
from journey.services.tracking_service.accommodation_repository import AccommodationRepository
from journey.services.tracking_service.entry_repository import EntryRepository
from journey.services.tracking_service.login_repository import LoginActivityRepository
from journey.services.tracking_service.reflection_repository import ReflectionRepository
from journey.services.tracking_service.subject_repository import SubjectRepository
from journey.services.tracking_service.task_repository import TaskRepository
from .accommodation_patterns import analyze_accommodations
from .completion import (
    average,
    completion_by_week,
    completion_streak,
    summarize_completion,
    weekly_stats,
    weeks_meeting_goal,
)
from .red_flags import RedFlagRules, days_since, evaluate_red_flags
from .trends import DEFAULT_WINDOW, calculate_trend

logger = logging.getLogger(__name__)

app = Flask(__name__)


@dataclass(frozen=True)
class AnalyticsConfig:
    """Configuration for analytics service."""
    trend_window: int = DEFAULT_WINDOW
    inactivity_days: int = 3
    min_completions: int = 2
    anxiety_sample: int = 3
    anxiety_threshold: float = 7.0

    def __post_init__(self):
        if self.trend_window < 1:
            raise ValueError(f"trend_window must be >= 1, got {self.trend_window}")

    @classmethod
    def from_env(cls) -> "AnalyticsConfig":
        """Create config from environment variables.

        Environment variables:
            TREND_WINDOW: Entries per trend window (default 3)
            INACTIVITY_DAYS: Days without login before flagging (default 3)
            MIN_WEEKLY_COMPLETIONS: Completed days below which to flag (default 2)
            ANXIETY_FLAG_THRESHOLD: Mean anxiety above which to flag (default 7)
        """
        return cls(
            trend_window=int(os.getenv("TREND_WINDOW", str(DEFAULT_WINDOW))),
            inactivity_days=int(os.getenv("INACTIVITY_DAYS", "3")),
            min_completions=int(os.getenv("MIN_WEEKLY_COMPLETIONS", "2")),
            anxiety_threshold=float(os.getenv("ANXIETY_FLAG_THRESHOLD", "7.0")),
        )

    @property
    def red_flag_rules(self) -> RedFlagRules:
        return RedFlagRules(
            inactivity_days=self.inactivity_days,
            min_completions=self.min_completions,
            anxiety_sample=self.anxiety_sample,
            anxiety_threshold=self.anxiety_threshold,
        )


def _rounded(value: Optional[float], digits: int = 1) -> Optional[float]:
    return None if value is None else round(value, digits)


def _date_only(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


class AnalyticsHandler:
    """Handler for progress and admin dashboard endpoints."""

    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        connection_manager: Optional[ConnectionManager] = None,
        subjects: Optional[SubjectRepository] = None,
        entries: Optional[EntryRepository] = None,
        accommodations: Optional[AccommodationRepository] = None,
        reflections: Optional[ReflectionRepository] = None,
        tasks: Optional[TaskRepository] = None,
        logins: Optional[LoginActivityRepository] = None,
    ):
        """Initialize handler with dependencies.

        Repositories not injected are built on the shared connection manager.
        """
        self.config = config or AnalyticsConfig()
        self.connection_manager = connection_manager or get_connection_manager()

        cm = self.connection_manager
        self.subjects = subjects or SubjectRepository(cm)
        self.entries = entries or EntryRepository(cm)
        self.accommodations = accommodations or AccommodationRepository(cm)
        self.reflections = reflections or ReflectionRepository(cm)
        self.tasks = tasks or TaskRepository(cm)
        self.logins = logins or LoginActivityRepository(cm)

        logger.info(
            "ANALYTICS_HANDLER_INITIALIZED",
            extra={
                "trend_window": self.config.trend_window,
                "inactivity_days": self.config.inactivity_days,
            }
        )

    def get_phase(self, week_number: int) -> Dict[str, Any]:
        """Phase and weekly plan for a week number, with the program outline."""
        return {
            "week_number": week_number,
            "phase": resolve_phase(week_number).to_dict(),
            "plan": week_plan(week_number).to_dict(),
            "program": program_overview(),
        }

    def get_progress(self, subject_id: int) -> Dict[str, Any]:
        """Progress overview: averages, trend, completion, milestones.

        Raises:
            NotFoundError: If the subject does not exist
        """
        subject = self.subjects.get_by_id(subject_id)
        entries = self.entries.find_by_subject(subject_id)
        logs = self.accommodations.find_by_subject(subject_id)
        tasks = self.tasks.find_all()

        by_week = completion_by_week(entries)
        trend = calculate_trend(entries, window=self.config.trend_window)

        logger.info(
            "PROGRESS_COMPUTED",
            extra={
                "subject_id_hash": hash_pii(subject_id),
                "entry_count": len(entries),
                "accommodation_count": len(logs),
                "anxiety_trend": trend.anxiety.direction.value,
            }
        )

        return {
            "subject_id": subject.id,
            "current_week": subject.current_week,
            "phase": resolve_phase(subject.current_week).to_dict(),
            "entry_count": len(entries),
            "average_anxiety": _rounded(average([e.anxiety_level for e in entries])),
            "average_guilt": _rounded(average([e.guilt_level for e in entries])),
            "trend": trend.to_dict(),
            "completion": summarize_completion(entries).to_dict(),
            "completion_by_week": {
                str(week): summary.to_dict() for week, summary in by_week.items()
            },
            "current_week_stats": weekly_stats(entries, subject.current_week).to_dict(),
            "milestones": weeks_meeting_goal(by_week, tasks),
            "streak": completion_streak(entries),
            "accommodations": analyze_accommodations(logs).to_dict(),
            "chart": [
                {
                    "date": _date_only(e.completed_at),
                    "week_number": e.week_number,
                    "anxiety": e.anxiety_level,
                    "guilt": e.guilt_level,
                }
                for e in reversed(entries)
            ],
        }

    def list_subjects(self) -> Dict[str, Any]:
        """Subjects doing the program (role user)."""
        subjects = self.subjects.find_by_role(Role.USER)
        return {"subjects": [s.to_dict() for s in subjects]}

    def get_user_activity(self, subject_id: int) -> Dict[str, Any]:
        """Everything recorded for a subject, newest first."""
        self.subjects.get_by_id(subject_id)

        return {
            "subject_id": subject_id,
            "entries": [e.to_dict() for e in self.entries.find_by_subject(subject_id)],
            "accommodations": [a.to_dict() for a in self.accommodations.find_by_subject(subject_id)],
            "reflections": [r.to_dict() for r in self.reflections.find_by_subject(subject_id)],
            "login_activity": [login.to_dict() for login in self.logins.find_by_subject(subject_id)],
        }

    def get_login_tracking(
        self,
        subject_id: int,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Login history with days since the last login."""
        self.subjects.get_by_id(subject_id)

        now = now or datetime.utcnow()
        logins = self.logins.find_by_subject(subject_id)
        last = logins[0].logged_in_at if logins else None

        return {
            "subject_id": subject_id,
            "login_count": len(logins),
            "last_login": last.isoformat() + "Z" if last else None,
            "days_since_last_login": days_since(last, now) if last else None,
            "logins": [login.to_dict() for login in logins],
        }

    def get_red_flags(
        self,
        subject_id: int,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Red flags for the subject's current week.

        Raises:
            NotFoundError: If the subject does not exist
        """
        subject = self.subjects.get_by_id(subject_id)
        last_login = self.logins.find_last(subject_id)
        week_entries = self.entries.find_by_subject(subject_id, subject.current_week)

        flags = evaluate_red_flags(
            last_login.logged_in_at if last_login else None,
            week_entries,
            now=now,
            rules=self.config.red_flag_rules,
        )

        if flags:
            logger.warning(
                "RED_FLAGS_RAISED",
                extra={
                    "subject_id_hash": hash_pii(subject_id),
                    "week_number": subject.current_week,
                    "flag_count": len(flags),
                }
            )

        return {
            "subject_id": subject_id,
            "week_number": subject.current_week,
            "red_flags": flags,
        }

    def export_data(self, subject_id: int) -> Dict[str, Any]:
        """Portable JSON export of a subject's check-ins, accommodations
        and reflections.
        """
        subject = self.subjects.get_by_id(subject_id)
        entries = self.entries.find_by_subject(subject_id)
        logs = self.accommodations.find_by_subject(subject_id)
        reflections = self.reflections.find_by_subject(subject_id)

        logger.info(
            "DATA_EXPORTED",
            extra={
                "subject_id_hash": hash_pii(subject_id),
                "entry_count": len(entries),
                "accommodation_count": len(logs),
                "reflection_count": len(reflections),
            }
        )

        return {
            "export_date": datetime.utcnow().isoformat() + "Z",
            "subject": subject.name,
            "entries": [
                {
                    "date": _date_only(e.completed_at),
                    "week": e.week_number,
                    "completed": e.completed,
                    "anxiety": e.anxiety_level,
                    "guilt": e.guilt_level,
                    "activity": e.activity_description,
                    "observation": e.observation,
                }
                for e in entries
            ],
            "accommodations": [
                {
                    "date": _date_only(a.logged_at),
                    "time": a.time_of_day,
                    "what": a.what_did,
                    "could_have_done_alone": a.could_have_done_alone.value,
                    "feeling": a.felt_during,
                }
                for a in logs
            ],
            "reflections": [
                {
                    "week": r.week_number,
                    "answer_1": r.answer_1,
                    "answer_2": r.answer_2,
                    "answer_3": r.answer_3,
                }
                for r in reflections
            ],
        }


# Global handler instance
_handler: Optional[AnalyticsHandler] = None


def get_handler() -> AnalyticsHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = AnalyticsHandler(config=AnalyticsConfig.from_env())
    return _handler


def set_handler(handler: AnalyticsHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


def _subject_query(method: str, event: str):
    """Call handler ``method`` with the subject_id query param and map
    errors to status codes."""
    try:
        subject_id = parse_int(request.args.get("subject_id"), "subject_id")
        action = getattr(get_handler(), method)
        return jsonify(action(subject_id)), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.error(
            event,
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return jsonify({"error": "Internal error"}), 500


# Flask routes
@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "analytics-service"})


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    db_health = get_handler().connection_manager.health_check()
    if not db_health.get("healthy"):
        return jsonify({
            "status": "not_ready",
            "service": "analytics-service",
            "database": db_health,
        }), 503
    return jsonify({"status": "ready", "service": "analytics-service"})


@app.route("/phase", methods=["GET"])
def phase():
    """Phase and plan for a week.

    Query params:
        week: Required - Week number (any integer)
    """
    try:
        week_number = parse_int(request.args.get("week"), "week")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(get_handler().get_phase(week_number))


@app.route("/progress", methods=["GET"])
def progress():
    """Progress overview.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _subject_query("get_progress", "PROGRESS_ERROR")


@app.route("/admin/subjects", methods=["GET"])
def admin_subjects():
    """Subjects doing the program."""
    try:
        return jsonify(get_handler().list_subjects())
    except Exception as e:
        logger.error(
            "LIST_SUBJECTS_ERROR",
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return jsonify({"error": "Internal error"}), 500


@app.route("/admin/activity", methods=["GET"])
def admin_activity():
    """Raw activity for a subject.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _subject_query("get_user_activity", "USER_ACTIVITY_ERROR")


@app.route("/admin/logins", methods=["GET"])
def admin_logins():
    """Login history for a subject.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _subject_query("get_login_tracking", "LOGIN_TRACKING_ERROR")


@app.route("/admin/red-flags", methods=["GET"])
def admin_red_flags():
    """Red flags for a subject's current week.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _subject_query("get_red_flags", "RED_FLAGS_ERROR")


@app.route("/admin/export", methods=["GET"])
def admin_export():
    """JSON export of a subject's records.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _subject_query("export_data", "EXPORT_ERROR")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt(os.environ["PII_HASH_SALT"])
    port = int(os.getenv("PORT", "8011"))
    app.run(host="0.0.0.0", port=port, debug=False)
