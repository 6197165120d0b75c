"""
Base Repository - Accelerator Evaluation Platform
evaluation_platform/repositories/base.py

Base repository class with Snowflake connection management and common utilities.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional

import snowflake.connector
from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, InterfaceError, ProgrammingError

from evaluation_platform.core.exceptions import (
    DatabaseConnectionException,
    RepositoryException,
)
from evaluation_platform.services.snowflake import get_snowflake_connection

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with Snowflake connection management."""

    @contextmanager
    def get_connection(
        self, autocommit: bool = True
    ) -> Generator[snowflake.connector.SnowflakeConnection, None, None]:
        """Context manager for Snowflake connections."""
        conn = None
        try:
            conn = get_snowflake_connection(autocommit=autocommit)
        except (InterfaceError, DatabaseError) as e:
            raise DatabaseConnectionException(f"Failed to connect to Snowflake: {e}")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[snowflake.connector.SnowflakeConnection, None, None]:
        """One connection, autocommit off: commit on success, roll back on error."""
        with self.get_connection(autocommit=False) as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                logger.warning("Rolling back Snowflake transaction")
                conn.rollback()
                raise

    def execute_query(
        self,
        conn: snowflake.connector.SnowflakeConnection,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
    ) -> Optional[Any]:
        """
        Execute a SQL statement on an open connection with error handling.

        Args:
            conn: Connection owned by the caller's transaction
            sql: SQL query string
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows

        Returns:
            Query results or the affected row count
        """
        cursor = conn.cursor(DictCursor)
        try:
            cursor.execute(sql, params or ())
            if fetch_one:
                return cursor.fetchone()
            elif fetch_all:
                return cursor.fetchall()
            return cursor.rowcount
        except ProgrammingError as e:
            raise RepositoryException(f"Query error: {e}")
        except DatabaseError as e:
            raise RepositoryException(f"Database error: {e}")
        finally:
            cursor.close()

    def normalize_timestamp(self, dt: Optional[datetime]) -> Optional[datetime]:
        """Ensure timestamp is UTC-aware."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def row_to_dict(self, row: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Convert Snowflake row (uppercase keys) to lowercase dict."""
        if row is None:
            return {}
        return {k.lower(): v for k, v in row.items()}

    def rows_to_dicts(self, rows: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        return [self.row_to_dict(r) for r in rows or []]

    def to_json(self, value: Any) -> str:
        """Serialize a payload for a JSON column; Decimals become floats."""
        def default(o):
            if isinstance(o, Decimal):
                return float(o)
            raise TypeError(f"{type(o).__name__} is not JSON serializable")

        return json.dumps(value, default=default)
