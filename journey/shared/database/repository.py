"""Base repository for PostgreSQL-backed records.

Subclasses declare their table, column order and row mapping; the base class
owns cursor handling, commits, and translation of driver errors.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from psycopg2 import errors as pg_errors

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in database."""
    pass


class DuplicateError(RepositoryError):
    """Entity violates a uniqueness constraint."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Common query plumbing for one table.

    Rows are read with an explicit column list (``columns``) so that
    ``_row_to_entity`` can rely on positional order.
    """

    columns: Tuple[str, ...] = ()

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert a row (in ``columns`` order) to an entity."""
        pass

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Convert an entity to insertable column values (no id)."""
        pass

    @property
    def select_list(self) -> str:
        return ", ".join(self.columns)

    def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[T]:
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, tuple(params))
                rows = cur.fetchall()
        return [self._row_to_entity(row) for row in rows]

    def _fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[T]:
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, tuple(params))
                row = cur.fetchone()
        if row is None:
            return None
        return self._row_to_entity(row)

    def _write(self, query: str, params: Sequence[Any] = (), returning: bool = False) -> Any:
        """Run a write statement and commit.

        Returns the mapped RETURNING row when ``returning`` is set, otherwise
        the affected row count.

        Raises:
            DuplicateError: On a unique constraint violation
        """
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, tuple(params))
                    result = cur.fetchone() if returning else cur.rowcount
                    conn.commit()
        except pg_errors.UniqueViolation as e:
            logger.warning(
                "REPOSITORY_DUPLICATE",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise DuplicateError(f"Duplicate row in {self.table_name}") from e

        if not returning:
            return result
        if result is None:
            raise RepositoryError(f"Insert into {self.table_name} returned no row")
        return self._row_to_entity(result)

    def insert(self, entity: T) -> T:
        """Insert an entity and return it with its generated id."""
        params = self._entity_to_params(entity)
        columns = list(params.keys())
        placeholders = ", ".join(["%s"] * len(columns))

        query = f"""
            INSERT INTO {self.table_name} ({", ".join(columns)})
            VALUES ({placeholders})
            RETURNING {self.select_list}
        """
        return self._write(query, list(params.values()), returning=True)

    def find_by_id(self, entity_id: int) -> Optional[T]:
        return self._fetch_one(
            f"SELECT {self.select_list} FROM {self.table_name} WHERE id = %s",
            (entity_id,)
        )

    def get_by_id(self, entity_id: int) -> T:
        """Like find_by_id but raises NotFoundError."""
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.table_name} row {entity_id} not found")
        return entity

    def delete(self, entity_id: int) -> bool:
        """Delete by id. Returns False when nothing matched."""
        deleted = self._write(
            f"DELETE FROM {self.table_name} WHERE id = %s",
            (entity_id,)
        )
        return deleted > 0

    def count(self) -> int:
        with self.connection_manager.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) FROM {self.table_name}")
                row = cur.fetchone()
        return row[0] if row else 0
