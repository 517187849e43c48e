"""Task reference data, seeded from the program table."""
import logging
from typing import Any, Dict, List, Optional

from journey.shared.database import BaseRepository, ConnectionManager
from journey.shared.models import Task, program_tasks

logger = logging.getLogger(__name__)


class TaskRepository(BaseRepository[Task]):

    columns = ("week_number", "task_name", "task_description", "goal_days")

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "tasks")

    def _row_to_entity(self, row: tuple) -> Task:
        return Task(
            week_number=row[0],
            name=row[1],
            description=row[2],
            goal_days=row[3],
        )

    def _entity_to_params(self, entity: Task) -> Dict[str, Any]:
        return {
            "week_number": entity.week_number,
            "task_name": entity.name,
            "task_description": entity.description,
            "goal_days": entity.goal_days,
        }

    def find_all(self) -> List[Task]:
        return self._fetch_all(
            f"SELECT {self.select_list} FROM {self.table_name} ORDER BY week_number"
        )

    def find_by_week(self, week_number: int) -> Optional[Task]:
        return self._fetch_one(
            f"SELECT {self.select_list} FROM {self.table_name} WHERE week_number = %s LIMIT 1",
            (week_number,)
        )

    def seed(self) -> int:
        """Insert the program's tasks if the table is empty.

        Returns:
            Number of tasks inserted (0 when already seeded)
        """
        if self.count() > 0:
            logger.info("TASKS_ALREADY_SEEDED", extra={"table_name": self.table_name})
            return 0

        tasks = program_tasks()
        for task in tasks:
            self.insert(task)

        logger.info("TASKS_SEEDED", extra={"task_count": len(tasks)})
        return len(tasks)
