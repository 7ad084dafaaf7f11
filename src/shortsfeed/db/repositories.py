"""Generic repository base for the shortsfeed Postgres tables."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import ClassVar, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.extras import RealDictCursor, execute_values

from shortsfeed.db import ConnectionFactory
from shortsfeed.models.base import ShortsBaseModel

ModelT = TypeVar("ModelT", bound=ShortsBaseModel)
Row = Dict[str, object]


class RepositoryError(RuntimeError):
    """Base exception raised for repository layer failures."""


class RecordNotFoundError(RepositoryError):
    """Raised when a query that must return a row returns none."""


class BaseRepository(Generic[ModelT]):
    """Table-bound helper: bulk upsert on a natural key plus filtered selects and counts.

    Subclasses declare ``table_name``, ``model_type``, the ``insert_fields`` written on upsert,
    the ``conflict_field`` natural key, and optionally an ``auto_timestamp_field`` refreshed
    with ``NOW()`` whenever an existing row is overwritten.
    """

    table_name: ClassVar[str]
    model_type: ClassVar[Type[ModelT]]
    insert_fields: ClassVar[Sequence[str]]
    conflict_field: ClassVar[Optional[str]] = None
    auto_timestamp_field: ClassVar[Optional[str]] = None

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def upsert_many(self, models: Sequence[ModelT]) -> int:
        """Write ``models`` in one statement, overwriting rows that share the conflict key.

        Every insert field except the key takes the incoming value; nothing is merged. Within
        one call the last model for a key wins. An empty sequence never opens a connection.
        """

        if not models:
            return 0
        if not self.conflict_field:
            raise RepositoryError(f"{type(self).__name__} does not declare a conflict field.")

        rows = [self._row_tuple(model) for model in self._last_per_key(models)]
        with self._connection() as connection:
            with connection.cursor() as cursor:
                execute_values(cursor, self._upsert_statement(), rows, page_size=len(rows))
        return len(rows)

    def fetch_all(
        self,
        where_clause: Optional[str] = None,
        params: Optional[Mapping[str, object]] = None,
        *,
        order_by: Optional[str] = None,
    ) -> List[ModelT]:
        """Return matching records as models, optionally ordered."""

        query = self._select("*", where_clause)
        if order_by:
            query = f"{query} ORDER BY {order_by}"
        return [self.model_type.model_validate(row) for row in self._fetch_many(query, params or {})]

    def count(self, where_clause: Optional[str] = None, params: Optional[Mapping[str, object]] = None) -> int:
        row = self._fetch_one(self._select("COUNT(*) AS total", where_clause), params or {})
        return int(row["total"])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _select(self, columns: str, where_clause: Optional[str]) -> str:
        query = f"SELECT {columns} FROM {self.table_name}"
        if where_clause:
            query = f"{query} WHERE {where_clause}"
        return query

    def _upsert_statement(self) -> str:
        assignments = [
            f"{column} = EXCLUDED.{column}" for column in self.insert_fields if column != self.conflict_field
        ]
        if self.auto_timestamp_field:
            assignments.append(f"{self.auto_timestamp_field} = NOW()")
        return (
            f"INSERT INTO {self.table_name} ({', '.join(self.insert_fields)}) VALUES %s "
            f"ON CONFLICT ({self.conflict_field}) DO UPDATE SET {', '.join(assignments)}"
        )

    def _last_per_key(self, models: Sequence[ModelT]) -> List[ModelT]:
        # ON CONFLICT cannot touch the same key twice in one statement.
        by_key: Dict[object, ModelT] = {}
        for model in models:
            by_key[getattr(model, self.conflict_field)] = model
        return list(by_key.values())

    def _row_tuple(self, model: ModelT) -> Tuple[object, ...]:
        values = model.model_dump(mode="python", include=set(self.insert_fields))
        return tuple(values.get(column) for column in self.insert_fields)

    def _fetch_one(self, query: str, params: Mapping[str, object]) -> Row:
        with self._connection() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(f"No records returned for query: {query!r}")
        return dict(row)

    def _fetch_many(self, query: str, params: Mapping[str, object]) -> List[Row]:
        with self._connection() as connection:
            with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]

    def _connection(self) -> AbstractContextManager[PsycopgConnection]:
        return self._connection_factory()


__all__ = [
    "BaseRepository",
    "RecordNotFoundError",
    "RepositoryError",
]
