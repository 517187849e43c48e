"""Companion Service HTTP Handler - AI messages grounded in stored progress.

Requests carry ids only; every number the model sees is read from the
database here, never taken from the client.

Endpoints:
- GET /health - Health check (includes LLM availability)
- GET /ready - Readiness check (database connectivity)
- POST /affirmation - Affirmation for today
- POST /weekly-summary - Summary of one week
- POST /checkin-feedback - Feedback on a stored check-in
- POST /chat - Chat reply
- POST /journal-response - Reply to a journal entry (stored on the entry)
"""
import asyncio
import logging
import os
from typing import Any, Callable, Dict, List, Optional

from flask import Flask, request, jsonify

from journey.shared.database import ConnectionManager, NotFoundError, get_connection_manager
from journey.shared.models.records import MAX_LEVEL, MIN_LEVEL
from journey.shared.utils import configure_pii_salt, hash_pii, parse_int
from journey.services.tracking_service.accommodation_repository import AccommodationRepository
from journey.services.tracking_service.entry_repository import EntryRepository
from journey.services.tracking_service.journal_repository import JournalRepository
from journey.services.tracking_service.reflection_repository import ReflectionRepository
from journey.services.tracking_service.subject_repository import SubjectRepository
from .base_llm import CHAT_ROLES
from .companion import CompanionConfig, CompanionService
from .context_builder import DAYS_PER_WEEK

logger = logging.getLogger(__name__)

app = Flask(__name__)

MAX_CHAT_MESSAGE = 2000
MAX_HISTORY_ITEMS = 20
MAX_HISTORY_CONTENT = 5000


def _optional_int(data: Dict[str, Any], name: str, low: int, high: int) -> Optional[int]:
    value = data.get(name)
    if value is None:
        return None
    number = parse_int(value, name)
    if not low <= number <= high:
        raise ValueError(f"{name} must be {low}-{high}, got {number}")
    return number


def _chat_message(data: Dict[str, Any]) -> str:
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise ValueError("message is required")
    if len(message) > MAX_CHAT_MESSAGE:
        raise ValueError(f"message must be at most {MAX_CHAT_MESSAGE} characters")
    return message


def _chat_history(data: Dict[str, Any]) -> List[Dict[str, str]]:
    history = data.get("history") or []
    if not isinstance(history, list):
        raise ValueError("history must be a list")
    if len(history) > MAX_HISTORY_ITEMS:
        raise ValueError(f"history must have at most {MAX_HISTORY_ITEMS} messages")

    turns = []
    for turn in history:
        if not isinstance(turn, dict) or turn.get("role") not in CHAT_ROLES:
            raise ValueError(f"history roles must be one of {', '.join(CHAT_ROLES)}")
        content = turn.get("content")
        if not isinstance(content, str) or len(content) > MAX_HISTORY_CONTENT:
            raise ValueError(
                f"history content must be a string of at most {MAX_HISTORY_CONTENT} characters"
            )
        turns.append({"role": turn["role"], "content": content})
    return turns


class CompanionHandler:
    """Handler for companion endpoints."""

    def __init__(
        self,
        service: Optional[CompanionService] = None,
        connection_manager: Optional[ConnectionManager] = None,
        subjects: Optional[SubjectRepository] = None,
        entries: Optional[EntryRepository] = None,
        accommodations: Optional[AccommodationRepository] = None,
        reflections: Optional[ReflectionRepository] = None,
        journal: Optional[JournalRepository] = None,
    ):
        self.service = service or CompanionService(config=CompanionConfig.from_env())
        self.connection_manager = connection_manager or get_connection_manager()

        cm = self.connection_manager
        self.subjects = subjects or SubjectRepository(cm)
        self.entries = entries or EntryRepository(cm)
        self.accommodations = accommodations or AccommodationRepository(cm)
        self.reflections = reflections or ReflectionRepository(cm)
        self.journal = journal or JournalRepository(cm)

        logger.info(
            "COMPANION_HANDLER_INITIALIZED",
            extra={"llm_available": self.service.llm_available}
        )

    def _owned(self, record, subject_id: int, kind: str):
        if record.subject_id != subject_id:
            logger.warning(
                "COMPANION_ACCESS_FORBIDDEN",
                extra={"kind": kind, "record_id": record.id, "subject_id_hash": hash_pii(subject_id)}
            )
            raise PermissionError(f"You can only use your own {kind}")
        return record

    async def affirmation(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Affirmation for the subject's current week.

        Raises:
            ValueError: If an optional level is out of range
            NotFoundError: If the subject does not exist
        """
        subject = self.subjects.get_by_id(parse_int(data.get("subject_id"), "subject_id"))
        recent_anxiety = _optional_int(data, "recent_anxiety", MIN_LEVEL, MAX_LEVEL)
        recent_guilt = _optional_int(data, "recent_guilt", MIN_LEVEL, MAX_LEVEL)
        completed_days = _optional_int(data, "completed_days", 0, DAYS_PER_WEEK)

        reply = await self.service.affirmation(
            subject,
            self.entries.find_by_subject(subject.id),
            self.accommodations.find_by_subject(subject.id),
            recent_anxiety=recent_anxiety,
            recent_guilt=recent_guilt,
            completed_days=completed_days,
        )
        return {"affirmation": reply.text, "source": reply.source.value}

    async def weekly_summary(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Summary of a week, defaulting to the subject's current week."""
        subject = self.subjects.get_by_id(parse_int(data.get("subject_id"), "subject_id"))
        week_number = parse_int(data.get("week_number"), "week_number", default=subject.current_week)
        if week_number < 1:
            raise ValueError(f"week_number must be >= 1, got {week_number}")

        reply = await self.service.weekly_summary(
            subject,
            week_number,
            self.entries.find_by_subject(subject.id, week_number),
            self.reflections.find_by_week(subject.id, week_number),
        )
        return {"week_number": week_number, "summary": reply.text, "source": reply.source.value}

    async def checkin_feedback(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Feedback on a stored check-in.

        Raises:
            NotFoundError: If the subject or entry does not exist
            PermissionError: If the entry belongs to another subject
        """
        subject = self.subjects.get_by_id(parse_int(data.get("subject_id"), "subject_id"))
        entry = self._owned(
            self.entries.get_by_id(parse_int(data.get("entry_id"), "entry_id")),
            subject.id,
            "check-ins",
        )
        earlier = [
            e for e in self.entries.find_by_subject(subject.id)
            if e.id != entry.id and e.completed_at <= entry.completed_at
        ]

        reply = await self.service.checkin_feedback(subject, entry, earlier)
        return {"entry_id": entry.id, "feedback": reply.text, "source": reply.source.value}

    async def chat(self, data: Dict[str, Any]) -> Dict[str, Any]:
        subject = self.subjects.get_by_id(parse_int(data.get("subject_id"), "subject_id"))
        message = _chat_message(data)
        history = _chat_history(data)

        reply = await self.service.chat(
            subject,
            message,
            history,
            self.entries.find_by_subject(subject.id),
            self.accommodations.find_by_subject(subject.id),
            self.journal.find_by_subject(subject.id),
        )
        return {"response": reply.text, "source": reply.source.value}

    async def journal_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Reply to a journal entry and store the reply on it.

        Raises:
            NotFoundError: If the subject or entry does not exist
            PermissionError: If the entry belongs to another subject
        """
        subject = self.subjects.get_by_id(parse_int(data.get("subject_id"), "subject_id"))
        entry = self._owned(
            self.journal.get_by_id(parse_int(data.get("entry_id"), "entry_id")),
            subject.id,
            "journal entries",
        )

        reply = await self.service.journal_response(subject, entry)
        self.journal.update_ai_response(entry.id, reply.text)

        logger.info(
            "JOURNAL_RESPONSE_STORED",
            extra={
                "journal_entry_id": entry.id,
                "source": reply.source.value,
                "content_length": len(entry.content),
            }
        )
        return {"id": entry.id, "ai_response": reply.text, "source": reply.source.value}


# Global handler instance
_handler: Optional[CompanionHandler] = None


def get_handler() -> CompanionHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = CompanionHandler()
    return _handler


def set_handler(handler: CompanionHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


def _respond(method: str, event: str):
    """Run the async handler ``method`` on the JSON body and map errors to
    status codes."""
    try:
        data = request.get_json(silent=True)
        if not data or not isinstance(data, dict):
            raise ValueError("Request body required")
        action: Callable = getattr(get_handler(), method)
        return jsonify(asyncio.run(action(data))), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except PermissionError as e:
        return jsonify({"error": str(e)}), 403
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
    service = get_handler().service
    return jsonify({
        "status": "healthy",
        "service": "companion-service",
        "llm_enabled": service.config.enable_llm,
        "llm_available": service.llm_available,
    })


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    db_health = get_handler().connection_manager.health_check()
    if not db_health.get("healthy"):
        return jsonify({
            "status": "not_ready",
            "service": "companion-service",
            "database": db_health,
        }), 503
    return jsonify({"status": "ready", "service": "companion-service"})


@app.route("/affirmation", methods=["POST"])
def affirmation():
    """Affirmation for today.

    Request Body:
        {"subject_id": 1, "recent_anxiety": 6, "recent_guilt": 4, "completed_days": 3}
    """
    return _respond("affirmation", "AFFIRMATION_ERROR")


@app.route("/weekly-summary", methods=["POST"])
def weekly_summary():
    """Summary of a week.

    Request Body:
        {"subject_id": 1, "week_number": 3}
    """
    return _respond("weekly_summary", "WEEKLY_SUMMARY_ERROR")


@app.route("/checkin-feedback", methods=["POST"])
def checkin_feedback():
    """Feedback on a stored check-in.

    Request Body:
        {"subject_id": 1, "entry_id": 42}
    """
    return _respond("checkin_feedback", "CHECKIN_FEEDBACK_ERROR")


@app.route("/chat", methods=["POST"])
def chat():
    """Chat reply.

    Request Body:
        {"subject_id": 1, "message": "...", "history": [{"role": "user", "content": "..."}]}
    """
    return _respond("chat", "CHAT_ERROR")


@app.route("/journal-response", methods=["POST"])
def journal_response():
    """Reply to a journal entry.

    Request Body:
        {"subject_id": 1, "entry_id": 7}
    """
    return _respond("journal_response", "JOURNAL_RESPONSE_ERROR")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt(os.environ["PII_HASH_SALT"])
    port = int(os.getenv("PORT", "8012"))
    app.run(host="0.0.0.0", port=port, debug=False)
