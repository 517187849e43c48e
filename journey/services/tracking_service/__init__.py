"""Tracking Service: Daily check-ins and the records around them.

Owns the repositories every other service reads from:
- Check-in entries and the accommodation log
- Weekly reflections (one per week, saving again overwrites)
- Weekly tasks seeded from the program table
- Subjects, their current week pointer and login activity
- Journal entries

Endpoints:
- POST/GET /entries, GET /entries/range
- POST/GET /accommodations
- PUT/GET /reflections
- GET /tasks, GET /tasks/<week>, POST /tasks/seed
- GET/PUT /subjects/<id>/week, POST /subjects/<id>/logins
- POST/GET /journal, DELETE /journal/<id>
"""

from .entry_repository import EntryRepository
from .accommodation_repository import AccommodationRepository
from .reflection_repository import ReflectionRepository
from .task_repository import TaskRepository
from .subject_repository import SubjectRepository
from .login_repository import LoginActivityRepository
from .journal_repository import JournalRepository
from .handler import TrackingHandler, app

__all__ = [
    "EntryRepository",
    "AccommodationRepository",
    "ReflectionRepository",
    "TaskRepository",
    "SubjectRepository",
    "LoginActivityRepository",
    "JournalRepository",
    "TrackingHandler",
    "app",
]
