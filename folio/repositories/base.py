"""
Base Repository - Folio Pipeline Engine
folio/repositories/base.py

Shared Snowflake access for the run store and the portfolio repositories.
One connection per operation; connector errors are translated into the
repository exception family so callers never import the connector.
"""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterable, Optional, Sequence

import snowflake.connector
from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, InterfaceError, ProgrammingError

from folio.core.exceptions import (
    DatabaseConnectionException,
    DuplicateEntityException,
    ForeignKeyViolationException,
    RepositoryException,
)
from folio.services.snowflake import get_snowflake_connection


def translate_error(e: DatabaseError) -> RepositoryException:
    """Map a connector error onto the repository exception family."""
    if isinstance(e, ProgrammingError):
        text = str(e).upper()
        if "UNIQUE" in text or "DUPLICATE" in text:
            return DuplicateEntityException(str(e))
        if "FOREIGN KEY" in text:
            return ForeignKeyViolationException(str(e))
        return RepositoryException(f"Query error: {e}")
    return RepositoryException(f"Database error: {e}")


class BaseRepository:
    """Connection handling, statement execution and row/VARIANT conversion."""

    @contextmanager
    def get_connection(self) -> Generator[snowflake.connector.SnowflakeConnection, None, None]:
        conn = None
        try:
            conn = get_snowflake_connection()
            yield conn
        except InterfaceError as e:
            raise DatabaseConnectionException(f"Failed to connect to Snowflake: {e}")
        finally:
            if conn:
                conn.close()

    @contextmanager
    def get_cursor(self) -> Generator[Any, None, None]:
        """Dict cursor on a fresh connection; rows come back keyed by column name."""
        with self.get_connection() as conn:
            cursor = conn.cursor(DictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
    ) -> Optional[Any]:
        """
        Run one statement.

        Returns the first row with fetch_one, all rows with fetch_all, and the
        affected row count otherwise. Guarded status UPDATEs rely on that count.
        """
        with self.get_cursor() as cursor:
            try:
                cursor.execute(sql, params or ())
                if commit:
                    cursor.connection.commit()
                if fetch_one:
                    return cursor.fetchone()
                if fetch_all:
                    return cursor.fetchall()
                return cursor.rowcount
            except DatabaseError as e:
                raise translate_error(e) from e

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        """Run one statement per parameter row on a single connection, one commit."""
        rows = [tuple(r) for r in rows]
        if not rows:
            return 0
        with self.get_cursor() as cursor:
            try:
                cursor.executemany(sql, rows)
                cursor.connection.commit()
            except DatabaseError as e:
                raise translate_error(e) from e
        return len(rows)

    def normalize_timestamp(self, dt: Optional[datetime]) -> Optional[datetime]:
        """Snowflake TIMESTAMP_NTZ comes back naive; treat it as UTC."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def row_to_dict(self, row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Lowercase the uppercase column keys of a DictCursor row."""
        if row is None:
            return {}
        return {k.lower(): v for k, v in row.items()}

    def to_variant(self, value: Any) -> Optional[str]:
        """Serialize a value for a PARSE_JSON(%s) placeholder."""
        if value is None:
            return None
        return json.dumps(value, default=str)

    def from_variant(self, value: Any) -> Any:
        """VARIANT columns come back as JSON text."""
        if value is None or not isinstance(value, str):
            return value
        return json.loads(value)
