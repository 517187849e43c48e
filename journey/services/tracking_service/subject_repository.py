"""Subject repository: household members and their current week pointer."""
import logging
from datetime import datetime
from typing import Any, Dict, List

from journey.shared.database import BaseRepository, ConnectionManager, NotFoundError
from journey.shared.models import Role, Subject

logger = logging.getLogger(__name__)


class SubjectRepository(BaseRepository[Subject]):

    columns = ("id", "name", "role", "current_week", "last_signed_in")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "subjects")

    def _row_to_entity(self, row: tuple) -> Subject:
        return Subject(
            id=row[0],
            name=row[1],
            role=Role(row[2]),
            current_week=row[3],
            last_signed_in=row[4],
        )

    def _entity_to_params(self, entity: Subject) -> Dict[str, Any]:
        return {
            "name": entity.name,
            "role": entity.role.value,
            "current_week": entity.current_week,
            "last_signed_in": entity.last_signed_in,
        }

    def find_by_role(self, role: Role) -> List[Subject]:
        return self._fetch_all(
            f"SELECT {self.select_list} FROM {self.table_name} WHERE role = %s ORDER BY id",
            (role.value,)
        )

    def update_current_week(self, subject_id: int, week_number: int) -> None:
        """Move the week pointer. Any week >= 1 is accepted.

        Raises:
            ValueError: If week_number < 1
            NotFoundError: If the subject does not exist
        """
        if week_number < 1:
            raise ValueError(f"Week number must be >= 1, got {week_number}")

        updated = self._write(
            f"UPDATE {self.table_name} SET current_week = %s WHERE id = %s",
            (week_number, subject_id)
        )
        if updated == 0:
            raise NotFoundError(f"Subject {subject_id} not found")

        logger.info("CURRENT_WEEK_UPDATED", extra={"week_number": week_number})

    def touch_signed_in(self, subject_id: int, when: datetime) -> None:
        self._write(
            f"UPDATE {self.table_name} SET last_signed_in = %s WHERE id = %s",
            (when, subject_id)
        )
