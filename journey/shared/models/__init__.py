"""Domain models for Journey: tracked records and the program table."""
from .records import (
    Role,
    CouldDoAlone,
    Subject,
    Task,
    CheckInEntry,
    AccommodationLog,
    Reflection,
    LoginActivity,
    JournalEntry,
)
from .program import (
    Phase,
    WeekPlan,
    PHASES,
    PROGRAM_WEEKS,
    LAST_PROGRAM_WEEK,
    resolve_phase,
    week_plan,
    program_tasks,
    program_overview,
)

__all__ = [
    "Role",
    "CouldDoAlone",
    "Subject",
    "Task",
    "CheckInEntry",
    "AccommodationLog",
    "Reflection",
    "LoginActivity",
    "JournalEntry",
    "Phase",
    "WeekPlan",
    "PHASES",
    "PROGRAM_WEEKS",
    "LAST_PROGRAM_WEEK",
    "resolve_phase",
    "week_plan",
    "program_tasks",
    "program_overview",
]
