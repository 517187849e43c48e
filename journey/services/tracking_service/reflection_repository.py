"""Weekly reflection repository.

One reflection per (subject, week). Saving again for the same week overwrites
the earlier answers.
"""
import logging
from typing import Any, Dict, List, Optional

from journey.shared.database import BaseRepository, ConnectionManager
from journey.shared.models import Reflection

logger = logging.getLogger(__name__)


class ReflectionRepository(BaseRepository[Reflection]):

    columns = (
        "id",
        "subject_id",
        "week_number",
        "answer_1",
        "answer_2",
        "answer_3",
        "created_at",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "reflections")

    def _row_to_entity(self, row: tuple) -> Reflection:
        return Reflection(
            id=row[0],
            subject_id=row[1],
            week_number=row[2],
            answer_1=row[3],
            answer_2=row[4],
            answer_3=row[5],
            created_at=row[6],
        )

    def _entity_to_params(self, entity: Reflection) -> Dict[str, Any]:
        return {
            "subject_id": entity.subject_id,
            "week_number": entity.week_number,
            "answer_1": entity.answer_1,
            "answer_2": entity.answer_2,
            "answer_3": entity.answer_3,
            "created_at": entity.created_at,
        }

    def upsert(self, reflection: Reflection) -> Reflection:
        """Insert the week's reflection or overwrite the existing one."""
        params = self._entity_to_params(reflection)
        columns = list(params.keys())
        placeholders = ", ".join(["%s"] * len(columns))
        update_clause = ", ".join(
            f"{col} = EXCLUDED.{col}"
            for col in columns
            if col not in ("subject_id", "week_number")
        )

        query = f"""
            INSERT INTO {self.table_name} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT (subject_id, week_number) DO UPDATE SET {update_clause}
            RETURNING {self.select_list}
        """
        saved = self._write(query, list(params.values()), returning=True)

        logger.info(
            "REFLECTION_SAVED",
            extra={
                "reflection_id": saved.id,
                "week_number": saved.week_number,
                "answer_count": len(saved.given_answers),
            }
        )
        return saved

    def find_by_subject(self, subject_id: int) -> List[Reflection]:
        """All reflections, latest week first."""
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s
            ORDER BY week_number DESC
            """,
            (subject_id,)
        )

    def find_by_week(self, subject_id: int, week_number: int) -> Optional[Reflection]:
        return self._fetch_one(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s AND week_number = %s
            LIMIT 1
            """,
            (subject_id, week_number)
        )
