"""Tracking Service HTTP Handler - Records what the subject does each day.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check (database connectivity)
- POST /entries - Record a daily check-in (also records login activity)
- GET /entries - Check-ins for a subject, optionally one week
- GET /entries/range - Check-ins between two timestamps
- POST /accommodations - Log an accommodation
- GET /accommodations - Accommodation log, optionally a date range
- PUT /reflections - Save the week's reflection (overwrites)
- GET /reflections - Reflections, or one week with its questions
- GET /tasks, GET /tasks/<week>, POST /tasks/seed - Weekly tasks
- GET|PUT /subjects/<id>/week - Current week pointer
- POST /subjects/<id>/logins - Record a login
- POST /journal, GET /journal, DELETE /journal/<id> - Journal entries
"""
import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from flask import Flask, request, jsonify

from journey.shared.database import (
    ConnectionManager,
    DuplicateError,
    NotFoundError,
    get_connection_manager,
)
from journey.shared.models import (
    AccommodationLog,
    CheckInEntry,
    CouldDoAlone,
    JournalEntry,
    LoginActivity,
    Reflection,
    resolve_phase,
    week_plan,
)
from journey.shared.utils import configure_pii_salt, hash_pii, parse_datetime, parse_int
from .accommodation_repository import AccommodationRepository
from .entry_repository import EntryRepository
from .journal_repository import JournalRepository
from .login_repository import LoginActivityRepository
from .reflection_repository import ReflectionRepository
from .subject_repository import SubjectRepository
from .task_repository import TaskRepository

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _optional_text(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


def _required_text(data: Dict[str, Any], name: str) -> str:
    value = _optional_text(data, name)
    if value is None:
        raise ValueError(f"{name} is required")
    return value


class TrackingHandler:
    """Handler for check-in, accommodation, reflection, task and journal
    endpoints."""

    def __init__(
        self,
        connection_manager: Optional[ConnectionManager] = None,
        subjects: Optional[SubjectRepository] = None,
        entries: Optional[EntryRepository] = None,
        accommodations: Optional[AccommodationRepository] = None,
        reflections: Optional[ReflectionRepository] = None,
        tasks: Optional[TaskRepository] = None,
        logins: Optional[LoginActivityRepository] = None,
        journal: Optional[JournalRepository] = None,
    ):
        """Initialize handler with dependencies.

        Repositories not injected are built on the shared connection manager.
        """
        self.connection_manager = connection_manager or get_connection_manager()

        cm = self.connection_manager
        self.subjects = subjects or SubjectRepository(cm)
        self.entries = entries or EntryRepository(cm)
        self.accommodations = accommodations or AccommodationRepository(cm)
        self.reflections = reflections or ReflectionRepository(cm)
        self.tasks = tasks or TaskRepository(cm)
        self.logins = logins or LoginActivityRepository(cm)
        self.journal = journal or JournalRepository(cm)

        logger.info("TRACKING_HANDLER_INITIALIZED")

    # Check-ins

    def create_entry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Store a daily check-in and record the visit as login activity.

        Raises:
            ValueError: If a field is missing or out of range
        """
        subject_id = parse_int(data.get("subject_id"), "subject_id")
        completed = data.get("completed")
        if not isinstance(completed, bool):
            raise ValueError("completed must be a boolean")

        entry = CheckInEntry(
            subject_id=subject_id,
            task_id=parse_int(data.get("task_id"), "task_id"),
            week_number=parse_int(data.get("week_number"), "week_number"),
            completed=completed,
            anxiety_level=parse_int(data.get("anxiety_level"), "anxiety_level"),
            guilt_level=parse_int(data.get("guilt_level"), "guilt_level"),
            activity_description=_optional_text(data, "activity_description"),
            observation=_optional_text(data, "observation"),
        )
        saved = self.entries.create(entry)
        self._log_visit(subject_id)

        logger.info(
            "ENTRY_CREATED",
            extra={
                "entry_id": saved.id,
                "subject_id_hash": hash_pii(subject_id),
                "week_number": saved.week_number,
                "completed": saved.completed,
            }
        )
        return saved.to_dict()

    def list_entries(self, subject_id: int, week_number: Optional[int] = None) -> Dict[str, Any]:
        entries = self.entries.find_by_subject(subject_id, week_number)
        return {
            "subject_id": subject_id,
            "week_number": week_number,
            "entries": [e.to_dict() for e in entries],
        }

    def list_entries_in_range(
        self,
        subject_id: int,
        start: datetime,
        end: datetime,
    ) -> Dict[str, Any]:
        if start > end:
            raise ValueError("start must not be after end")

        entries = self.entries.find_by_date_range(subject_id, start, end)
        return {
            "subject_id": subject_id,
            "start": start.isoformat() + "Z",
            "end": end.isoformat() + "Z",
            "entries": [e.to_dict() for e in entries],
        }

    # Accommodation log

    def create_accommodation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        subject_id = parse_int(data.get("subject_id"), "subject_id")
        logged_at = (
            parse_datetime(data["logged_at"], "logged_at")
            if data.get("logged_at") is not None else datetime.utcnow()
        )

        answer = _required_text(data, "could_have_done_alone")
        try:
            could_do_alone = CouldDoAlone(answer.lower())
        except ValueError:
            raise ValueError("could_have_done_alone must be yes, no or maybe") from None

        log = AccommodationLog(
            subject_id=subject_id,
            logged_at=logged_at,
            time_of_day=_required_text(data, "time_of_day"),
            what_did=_required_text(data, "what_did"),
            could_have_done_alone=could_do_alone,
            felt_during=_required_text(data, "felt_during"),
        )
        saved = self.accommodations.create(log)

        logger.info(
            "ACCOMMODATION_LOGGED",
            extra={
                "accommodation_id": saved.id,
                "subject_id_hash": hash_pii(subject_id),
                "could_have_done_alone": could_do_alone.value,
            }
        )
        return saved.to_dict()

    def list_accommodations(
        self,
        subject_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        if (start is None) != (end is None):
            raise ValueError("start and end must be given together")

        if start is None:
            logs = self.accommodations.find_by_subject(subject_id)
        else:
            if start > end:
                raise ValueError("start must not be after end")
            logs = self.accommodations.find_by_date_range(subject_id, start, end)

        return {
            "subject_id": subject_id,
            "accommodations": [a.to_dict() for a in logs],
        }

    # Reflections

    def save_reflection(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Save the week's reflection, overwriting an earlier one."""
        reflection = Reflection(
            subject_id=parse_int(data.get("subject_id"), "subject_id"),
            week_number=parse_int(data.get("week_number"), "week_number"),
            answer_1=_optional_text(data, "answer_1"),
            answer_2=_optional_text(data, "answer_2"),
            answer_3=_optional_text(data, "answer_3"),
        )
        return self.reflections.upsert(reflection).to_dict()

    def list_reflections(self, subject_id: int, week_number: Optional[int] = None) -> Dict[str, Any]:
        """All reflections, or one week's reflection with its questions."""
        if week_number is None:
            reflections = self.reflections.find_by_subject(subject_id)
            return {
                "subject_id": subject_id,
                "reflections": [r.to_dict() for r in reflections],
            }

        reflection = self.reflections.find_by_week(subject_id, week_number)
        return {
            "subject_id": subject_id,
            "week_number": week_number,
            "questions": list(week_plan(week_number).reflection_questions),
            "reflection": reflection.to_dict() if reflection else None,
        }

    # Tasks

    def list_tasks(self) -> Dict[str, Any]:
        return {"tasks": [t.to_dict() for t in self.tasks.find_all()]}

    def get_task(self, week_number: int) -> Dict[str, Any]:
        task = self.tasks.find_by_week(week_number)
        if task is None:
            raise NotFoundError(f"No task for week {week_number}")
        return task.to_dict()

    def seed_tasks(self) -> Dict[str, Any]:
        return {"inserted": self.tasks.seed()}

    def prepare_database(self) -> Dict[str, Any]:
        """Create missing tables, then seed the program tasks."""
        self.connection_manager.apply_schema()
        inserted = self.tasks.seed()

        logger.info("DATABASE_PREPARED", extra={"tasks_inserted": inserted})
        return {"tasks_inserted": inserted}

    # Subjects

    def get_current_week(self, subject_id: int) -> Dict[str, Any]:
        subject = self.subjects.get_by_id(subject_id)
        return {
            "subject_id": subject_id,
            "current_week": subject.current_week,
            "phase": resolve_phase(subject.current_week).name,
        }

    def set_current_week(self, subject_id: int, week_number: int) -> Dict[str, Any]:
        """Move the week pointer. Any week >= 1 is accepted, in any direction."""
        self.subjects.update_current_week(subject_id, week_number)
        return {
            "subject_id": subject_id,
            "current_week": week_number,
            "phase": resolve_phase(week_number).name,
        }

    def _log_visit(self, subject_id: int) -> LoginActivity:
        login = self.logins.log_login(subject_id)
        self.subjects.touch_signed_in(subject_id, login.logged_in_at)
        return login

    def record_login(self, subject_id: int) -> Dict[str, Any]:
        self.subjects.get_by_id(subject_id)
        login = self._log_visit(subject_id)

        logger.info("LOGIN_RECORDED", extra={"subject_id_hash": hash_pii(subject_id)})
        return login.to_dict()

    # Journal

    def create_journal_entry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        entry = JournalEntry(
            subject_id=parse_int(data.get("subject_id"), "subject_id"),
            content=_required_text(data, "content"),
            mood=_optional_text(data, "mood"),
        )
        saved = self.journal.create(entry)

        logger.info(
            "JOURNAL_ENTRY_CREATED",
            extra={
                "journal_entry_id": saved.id,
                "subject_id_hash": hash_pii(saved.subject_id),
                "content_length": len(saved.content),
            }
        )
        return saved.to_dict()

    def list_journal(self, subject_id: int) -> Dict[str, Any]:
        entries = self.journal.find_by_subject(subject_id)
        return {
            "subject_id": subject_id,
            "entries": [e.to_dict() for e in entries],
        }

    def delete_journal_entry(self, subject_id: int, entry_id: int) -> Dict[str, Any]:
        """Delete one of the subject's own journal entries.

        Raises:
            NotFoundError: If the entry does not exist
            PermissionError: If the entry belongs to another subject
        """
        entry = self.journal.get_by_id(entry_id)
        if entry.subject_id != subject_id:
            logger.warning(
                "JOURNAL_DELETE_FORBIDDEN",
                extra={"journal_entry_id": entry_id, "subject_id_hash": hash_pii(subject_id)}
            )
            raise PermissionError("You can only delete your own journal entries")

        self.journal.delete(entry_id)
        logger.info("JOURNAL_ENTRY_DELETED", extra={"journal_entry_id": entry_id})
        return {"success": True, "id": entry_id}


# Global handler instance
_handler: Optional[TrackingHandler] = None


def get_handler() -> TrackingHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = TrackingHandler()
    return _handler


def set_handler(handler: TrackingHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


def _respond(action: Callable[[], Dict[str, Any]], event: str, status: int = 200):
    """Run ``action`` and map errors to status codes."""
    try:
        return jsonify(action()), status
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except PermissionError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DuplicateError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        logger.error(
            event,
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return jsonify({"error": "Internal error"}), 500


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise ValueError("Request body required")
    return data


def _subject_id_arg() -> int:
    return parse_int(request.args.get("subject_id"), "subject_id")


def _optional_int_arg(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return parse_int(value, name)


# Flask routes
@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "tracking-service"})


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    db_health = get_handler().connection_manager.health_check()
    if not db_health.get("healthy"):
        return jsonify({
            "status": "not_ready",
            "service": "tracking-service",
            "database": db_health,
        }), 503
    return jsonify({"status": "ready", "service": "tracking-service"})


@app.route("/entries", methods=["POST"])
def create_entry():
    """Record a daily check-in.

    Request Body:
        {
            "subject_id": 1,
            "task_id": 3,
            "week_number": 3,
            "completed": true,
            "anxiety_level": 6,
            "guilt_level": 4,
            "activity_description": "Coffee with Anne",
            "observation": "He made his own lunch"
        }
    """
    return _respond(lambda: get_handler().create_entry(_body()), "CREATE_ENTRY_ERROR", 201)


@app.route("/entries", methods=["GET"])
def list_entries():
    """Check-ins, newest first.

    Query params:
        subject_id: Required - Subject identifier
        week: Optional - Restrict to one week
    """
    return _respond(
        lambda: get_handler().list_entries(_subject_id_arg(), _optional_int_arg("week")),
        "LIST_ENTRIES_ERROR",
    )


@app.route("/entries/range", methods=["GET"])
def list_entries_in_range():
    """Check-ins between two ISO-8601 timestamps (inclusive).

    Query params:
        subject_id: Required - Subject identifier
        start: Required - Range start
        end: Required - Range end
    """
    return _respond(
        lambda: get_handler().list_entries_in_range(
            _subject_id_arg(),
            parse_datetime(request.args.get("start"), "start"),
            parse_datetime(request.args.get("end"), "end"),
        ),
        "LIST_ENTRIES_ERROR",
    )


@app.route("/accommodations", methods=["POST"])
def create_accommodation():
    """Log an accommodation.

    Request Body:
        {
            "subject_id": 1,
            "logged_at": "2026-03-02T20:00:00Z",
            "time_of_day": "07:30",
            "what_did": "Made his breakfast",
            "could_have_done_alone": "yes",
            "felt_during": "Rushed"
        }
    """
    return _respond(
        lambda: get_handler().create_accommodation(_body()),
        "CREATE_ACCOMMODATION_ERROR",
        201,
    )


@app.route("/accommodations", methods=["GET"])
def list_accommodations():
    """Accommodation log, newest first.

    Query params:
        subject_id: Required - Subject identifier
        start, end: Optional - ISO-8601 range, both or neither
    """
    def action():
        start = request.args.get("start")
        end = request.args.get("end")
        return get_handler().list_accommodations(
            _subject_id_arg(),
            parse_datetime(start, "start") if start else None,
            parse_datetime(end, "end") if end else None,
        )

    return _respond(action, "LIST_ACCOMMODATIONS_ERROR")


@app.route("/reflections", methods=["PUT"])
def save_reflection():
    """Save the week's reflection. Saving again overwrites the answers.

    Request Body:
        {"subject_id": 1, "week_number": 2, "answer_1": "...", "answer_2": "...", "answer_3": "..."}
    """
    return _respond(lambda: get_handler().save_reflection(_body()), "SAVE_REFLECTION_ERROR")


@app.route("/reflections", methods=["GET"])
def list_reflections():
    """Reflections, latest week first.

    Query params:
        subject_id: Required - Subject identifier
        week: Optional - One week's reflection with its questions
    """
    return _respond(
        lambda: get_handler().list_reflections(_subject_id_arg(), _optional_int_arg("week")),
        "LIST_REFLECTIONS_ERROR",
    )


@app.route("/tasks", methods=["GET"])
def list_tasks():
    """All weekly tasks."""
    return _respond(lambda: get_handler().list_tasks(), "LIST_TASKS_ERROR")


@app.route("/tasks/<int:week_number>", methods=["GET"])
def get_task(week_number: int):
    """Task for one week."""
    return _respond(lambda: get_handler().get_task(week_number), "GET_TASK_ERROR")


@app.route("/tasks/seed", methods=["POST"])
def seed_tasks():
    """Insert the program's tasks if none exist."""
    return _respond(lambda: get_handler().seed_tasks(), "SEED_TASKS_ERROR")


@app.route("/subjects/<int:subject_id>/week", methods=["GET"])
def get_current_week(subject_id: int):
    """Current week pointer."""
    return _respond(lambda: get_handler().get_current_week(subject_id), "GET_WEEK_ERROR")


@app.route("/subjects/<int:subject_id>/week", methods=["PUT"])
def set_current_week(subject_id: int):
    """Move the week pointer.

    Request Body:
        {"week_number": 4}
    """
    return _respond(
        lambda: get_handler().set_current_week(
            subject_id, parse_int(_body().get("week_number"), "week_number"),
        ),
        "SET_WEEK_ERROR",
    )


@app.route("/subjects/<int:subject_id>/logins", methods=["POST"])
def record_login(subject_id: int):
    """Record a login for the subject."""
    return _respond(lambda: get_handler().record_login(subject_id), "RECORD_LOGIN_ERROR", 201)


@app.route("/journal", methods=["POST"])
def create_journal_entry():
    """Write a journal entry.

    Request Body:
        {"subject_id": 1, "content": "...", "mood": "hopeful"}
    """
    return _respond(
        lambda: get_handler().create_journal_entry(_body()),
        "CREATE_JOURNAL_ERROR",
        201,
    )


@app.route("/journal", methods=["GET"])
def list_journal():
    """Journal entries, newest first.

    Query params:
        subject_id: Required - Subject identifier
    """
    return _respond(lambda: get_handler().list_journal(_subject_id_arg()), "LIST_JOURNAL_ERROR")


@app.route("/journal/<int:entry_id>", methods=["DELETE"])
def delete_journal_entry(entry_id: int):
    """Delete one of the subject's own journal entries.

    Query params:
        subject_id: Required - Subject making the request
    """
    return _respond(
        lambda: get_handler().delete_journal_entry(_subject_id_arg(), entry_id),
        "DELETE_JOURNAL_ERROR",
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt(os.environ["PII_HASH_SALT"])
    get_handler().prepare_database()
    port = int(os.getenv("PORT", "8010"))
    app.run(host="0.0.0.0", port=port, debug=False)
