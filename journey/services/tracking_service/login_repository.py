"""Login activity, used by the admin dashboard to spot disengagement."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from journey.shared.database import BaseRepository, ConnectionManager
from journey.shared.models import LoginActivity

logger = logging.getLogger(__name__)


class LoginActivityRepository(BaseRepository[LoginActivity]):

    columns = ("id", "subject_id", "logged_in_at")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "login_activity")

    def _row_to_entity(self, row: tuple) -> LoginActivity:
        return LoginActivity(id=row[0], subject_id=row[1], logged_in_at=row[2])

    def _entity_to_params(self, entity: LoginActivity) -> Dict[str, Any]:
        return {"subject_id": entity.subject_id, "logged_in_at": entity.logged_in_at}

    def log_login(self, subject_id: int, when: Optional[datetime] = None) -> LoginActivity:
        return self.insert(LoginActivity(
            subject_id=subject_id,
            logged_in_at=when or datetime.utcnow(),
        ))

    def find_by_subject(self, subject_id: int) -> List[LoginActivity]:
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s
            ORDER BY logged_in_at DESC
            """,
            (subject_id,)
        )

    def find_last(self, subject_id: int) -> Optional[LoginActivity]:
        return self._fetch_one(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s
            ORDER BY logged_in_at DESC
            LIMIT 1
            """,
            (subject_id,)
        )
