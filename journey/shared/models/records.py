"""Tracked records and reference data.

Records are immutable once built. Invariants are checked on construction so a
record that exists in memory is always within its documented ranges.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

MIN_LEVEL = 0
MAX_LEVEL = 10
MAX_WEEK = 52
MAX_NOTE_LENGTH = 5000
MAX_ACCOMMODATION_TEXT = 2000
MAX_TIME_OF_DAY_LENGTH = 10
MAX_JOURNAL_LENGTH = 10000
MAX_MOOD_LENGTH = 50


class Role(Enum):
    """Household member role."""
    USER = "user"       # The subject doing the program
    ADMIN = "admin"     # Monitoring view only


class CouldDoAlone(Enum):
    """Whether the dependent could have done the accommodated act unaided."""
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


def iso_timestamp(value: Optional[datetime]) -> Optional[str]:
    """UTC timestamp as ISO-8601 with a Z suffix."""
    if value is None:
        return None
    return value.isoformat() + "Z"


def _check_week(week_number: int, upper: Optional[int] = MAX_WEEK) -> None:
    if week_number < 1:
        raise ValueError(f"Week number must be >= 1, got {week_number}")
    if upper is not None and week_number > upper:
        raise ValueError(f"Week number must be 1-{upper}, got {week_number}")


def _check_length(name: str, value: Optional[str], maximum: int, required: bool = False) -> None:
    if value is None:
        if required:
            raise ValueError(f"{name} is required")
        return
    if required and not value.strip():
        raise ValueError(f"{name} must not be empty")
    if len(value) > maximum:
        raise ValueError(f"{name} must be at most {maximum} characters, got {len(value)}")


@dataclass(frozen=True)
class Subject:
    """A household member. Only the subject with role USER does check-ins."""
    id: int
    name: str
    role: Role = Role.USER
    current_week: int = 1
    last_signed_in: Optional[datetime] = None

    def __post_init__(self):
        _check_week(self.current_week, upper=None)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "current_week": self.current_week,
            "last_signed_in": iso_timestamp(self.last_signed_in),
        }


@dataclass(frozen=True)
class Task:
    """Weekly task in the program. Read-only reference data."""
    week_number: int
    name: str
    description: str
    goal_days: int

    def __post_init__(self):
        _check_week(self.week_number)
        if self.goal_days < 0:
            raise ValueError(f"Goal days must be >= 0, got {self.goal_days}")

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "name": self.name,
            "description": self.description,
            "goal_days": self.goal_days,
        }


@dataclass(frozen=True)
class CheckInEntry:
    """Daily check-in. Created once per day, never modified."""
    subject_id: int
    task_id: int
    week_number: int
    completed: bool
    anxiety_level: int
    guilt_level: int
    activity_description: Optional[str] = None
    observation: Optional[str] = None
    completed_at: datetime = field(default_factory=datetime.utcnow)
    id: Optional[int] = None

    def __post_init__(self):
        _check_week(self.week_number)
        for name, level in (("Anxiety level", self.anxiety_level), ("Guilt level", self.guilt_level)):
            if not MIN_LEVEL <= level <= MAX_LEVEL:
                raise ValueError(f"{name} must be {MIN_LEVEL}-{MAX_LEVEL}, got {level}")
        _check_length("Activity description", self.activity_description, MAX_NOTE_LENGTH)
        _check_length("Observation", self.observation, MAX_NOTE_LENGTH)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "task_id": self.task_id,
            "week_number": self.week_number,
            "completed": self.completed,
            "anxiety_level": self.anxiety_level,
            "guilt_level": self.guilt_level,
            "activity_description": self.activity_description,
            "observation": self.observation,
            "completed_at": iso_timestamp(self.completed_at),
        }


@dataclass(frozen=True)
class AccommodationLog:
    """Something done for the dependent that they might have done alone."""
    subject_id: int
    logged_at: datetime
    time_of_day: str                # "HH:MM" as entered
    what_did: str
    could_have_done_alone: CouldDoAlone
    felt_during: str
    id: Optional[int] = None

    def __post_init__(self):
        _check_length("Time of day", self.time_of_day, MAX_TIME_OF_DAY_LENGTH)
        _check_length("What was done", self.what_did, MAX_ACCOMMODATION_TEXT, required=True)
        _check_length("Feeling", self.felt_during, MAX_ACCOMMODATION_TEXT, required=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "logged_at": iso_timestamp(self.logged_at),
            "time_of_day": self.time_of_day,
            "what_did": self.what_did,
            "could_have_done_alone": self.could_have_done_alone.value,
            "felt_during": self.felt_during,
        }


@dataclass(frozen=True)
class Reflection:
    """Weekly reflection. One per (subject, week); later saves overwrite."""
    subject_id: int
    week_number: int
    answer_1: Optional[str] = None
    answer_2: Optional[str] = None
    answer_3: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    id: Optional[int] = None

    def __post_init__(self):
        _check_week(self.week_number)
        for answer in self.answers:
            _check_length("Reflection answer", answer, MAX_NOTE_LENGTH)

    @property
    def answers(self):
        return (self.answer_1, self.answer_2, self.answer_3)

    @property
    def given_answers(self):
        """Non-empty answers in question order."""
        return [a for a in self.answers if a]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "week_number": self.week_number,
            "answer_1": self.answer_1,
            "answer_2": self.answer_2,
            "answer_3": self.answer_3,
            "created_at": iso_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class LoginActivity:
    subject_id: int
    logged_in_at: datetime
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "logged_in_at": iso_timestamp(self.logged_in_at),
        }


@dataclass(frozen=True)
class JournalEntry:
    """Free-form journal entry with an optional AI response."""
    subject_id: int
    content: str
    mood: Optional[str] = None
    ai_response: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    id: Optional[int] = None

    def __post_init__(self):
        _check_length("Journal content", self.content, MAX_JOURNAL_LENGTH, required=True)
        _check_length("Mood", self.mood, MAX_MOOD_LENGTH)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "content": self.content,
            "mood": self.mood,
            "ai_response": self.ai_response,
            "created_at": iso_timestamp(self.created_at),
        }
