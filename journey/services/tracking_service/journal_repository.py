"""Journal entry repository."""
import logging
from typing import Any, Dict, List

from journey.shared.database import BaseRepository, ConnectionManager, NotFoundError
from journey.shared.models import JournalEntry

logger = logging.getLogger(__name__)


class JournalRepository(BaseRepository[JournalEntry]):

    columns = ("id", "subject_id", "content", "mood", "ai_response", "created_at")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "journal_entries")

    def _row_to_entity(self, row: tuple) -> JournalEntry:
        return JournalEntry(
            id=row[0],
            subject_id=row[1],
            content=row[2],
            mood=row[3],
            ai_response=row[4],
            created_at=row[5],
        )

    def _entity_to_params(self, entity: JournalEntry) -> Dict[str, Any]:
        return {
            "subject_id": entity.subject_id,
            "content": entity.content,
            "mood": entity.mood,
            "ai_response": entity.ai_response,
            "created_at": entity.created_at,
        }

    def create(self, entry: JournalEntry) -> JournalEntry:
        return self.insert(entry)

    def find_by_subject(self, subject_id: int) -> List[JournalEntry]:
        return self._fetch_all(
            f"""
            SELECT {self.select_list} FROM {self.table_name}
            WHERE subject_id = %s
            ORDER BY created_at DESC
            """,
            (subject_id,)
        )

    def update_ai_response(self, entry_id: int, ai_response: str) -> None:
        updated = self._write(
            f"UPDATE {self.table_name} SET ai_response = %s WHERE id = %s",
            (ai_response, entry_id)
        )
        if updated == 0:
            raise NotFoundError(f"Journal entry {entry_id} not found")
