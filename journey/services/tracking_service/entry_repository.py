"""Check-in entry repository.

Every read returns entries newest first (completed_at descending), the order
the trend and red-flag calculations expect.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from journey.shared.database import BaseRepository, ConnectionManager
from journey.shared.models import CheckInEntry

logger = logging.getLogger(__name__)


class EntryRepository(BaseRepository[CheckInEntry]):
    """Daily check-in entries."""

    columns = (
        "id",
        "subject_id",
        "task_id",
        "week_number",
        "completed",
        "anxiety_level",
        "guilt_level",
        "activity_description",
        "observation",
        "completed_at",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "entries")

    def _row_to_entity(self, row: tuple) -> CheckInEntry:
        return CheckInEntry(
            id=row[0],
            subject_id=row[1],
            task_id=row[2],
            week_number=row[3],
            completed=bool(row[4]),
            anxiety_level=row[5],
            guilt_level=row[6],
            activity_description=row[7],
            observation=row[8],
            completed_at=row[9],
        )

    def _entity_to_params(self, entity: CheckInEntry) -> Dict[str, Any]:
        return {
            "subject_id": entity.subject_id,
            "task_id": entity.task_id,
            "week_number": entity.week_number,
            "completed": entity.completed,
            "anxiety_level": entity.anxiety_level,
            "guilt_level": entity.guilt_level,
            "activity_description": entity.activity_description,
            "observation": entity.observation,
            "completed_at": entity.completed_at,
        }

    def create(self, entry: CheckInEntry) -> CheckInEntry:
        return self.insert(entry)

    def find_by_subject(
        self,
        subject_id: int,
        week_number: Optional[int] = None,
    ) -> List[CheckInEntry]:
        """Entries for a subject, optionally restricted to one week."""
        query = f"SELECT {self.select_list} FROM {self.table_name} WHERE subject_id = %s"
        params: List[Any] = [subject_id]

        if week_number is not None:
            query += " AND week_number = %s"
            params.append(week_number)

        query += " ORDER BY completed_at DESC"
        return self._fetch_all(query, params)

    def find_by_date_range(
        self,
        subject_id: int,
        start: datetime,
        end: datetime,
    ) -> List[CheckInEntry]:
        """Entries with start <= completed_at <= end."""
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s AND completed_at >= %s AND completed_at <= %s
            ORDER BY completed_at DESC
            """,
            (subject_id, start, end)
        )
