"""Accommodation log repository. Reads are newest first (logged_at)."""
import logging
from datetime import datetime
from typing import Any, Dict, List

from journey.shared.database import BaseRepository, ConnectionManager
from journey.shared.models import AccommodationLog, CouldDoAlone

logger = logging.getLogger(__name__)


class AccommodationRepository(BaseRepository[AccommodationLog]):

    columns = (
        "id",
        "subject_id",
        "logged_at",
        "time_of_day",
        "what_did",
        "could_have_done_alone",
        "felt_during",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "accommodations")

    def _row_to_entity(self, row: tuple) -> AccommodationLog:
        return AccommodationLog(
            id=row[0],
            subject_id=row[1],
            logged_at=row[2],
            time_of_day=row[3],
            what_did=row[4],
            could_have_done_alone=CouldDoAlone(row[5]),
            felt_during=row[6],
        )

    def _entity_to_params(self, entity: AccommodationLog) -> Dict[str, Any]:
        return {
            "subject_id": entity.subject_id,
            "logged_at": entity.logged_at,
            "time_of_day": entity.time_of_day,
            "what_did": entity.what_did,
            "could_have_done_alone": entity.could_have_done_alone.value,
            "felt_during": entity.felt_during,
        }

    def create(self, log: AccommodationLog) -> AccommodationLog:
        return self.insert(log)

    def find_by_subject(self, subject_id: int) -> List[AccommodationLog]:
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s
            ORDER BY logged_at DESC
            """,
            (subject_id,)
        )

    def find_by_date_range(
        self,
        subject_id: int,
        start: datetime,
        end: datetime,
    ) -> List[AccommodationLog]:
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s AND logged_at >= %s AND logged_at <= %s
            ORDER BY logged_at DESC
            """,
            (subject_id, start, end)
        )
