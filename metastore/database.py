"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from common.logging_config import get_logger
from metastore.exceptions import StorageError

logger = get_logger(__name__)


class Database:
    """
    Owns the SQLite file backing the repositories.

    Created once at process start and handed to every repository and
    service that needs a connection.
    """

    def __init__(self, path: str, timeout: float = 30.0):
        self.path = path
        self.timeout = timeout

    def init_schema(self) -> None:
        """
        Create tables and indexes if they don't exist.
        """
        db_path = Path(self.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        with self.connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS file_metadata (
                    file_id TEXT PRIMARY KEY,
                    path TEXT NOT NULL,
                    checksum TEXT NOT NULL,
                    creation_timestamp TEXT NOT NULL,
                    last_modified_timestamp TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    owner_group TEXT NOT NULL,
                    current_version_number INTEGER NOT NULL CHECK (current_version_number >= 1)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS versions (
                    version_id TEXT PRIMARY KEY,
                    file_id TEXT NOT NULL,
                    version_number INTEGER NOT NULL CHECK (version_number >= 1),
                    timestamp TEXT NOT NULL,
                    checksum TEXT NOT NULL,
                    additional_details TEXT,
                    UNIQUE(file_id, version_number)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS conflict_resolutions (
                    id TEXT PRIMARY KEY,
                    file_id TEXT NOT NULL,
                    conflicting_version_ids TEXT NOT NULL,
                    resolution_strategy TEXT NOT NULL,
                    resolution_timestamp TEXT NOT NULL,
                    resolved INTEGER NOT NULL DEFAULT 0,
                    state TEXT NOT NULL,
                    resulting_version_id TEXT,
                    detail TEXT
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_versions_file_id ON versions(file_id)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_conflicts_file_id ON conflict_resolutions(file_id)
            """)

            conn.commit()

        logger.info(f"Database schema ready [path={self.path}]")

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections. The caller commits.
        """
        try:
            conn = sqlite3.connect(self.path, timeout=self.timeout)
        except sqlite3.Error as e:
            logger.error(f"Failed to open database [path={self.path}]: {e}", exc_info=True)
            raise StorageError(f"Failed to open database: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """
    Convert a sqlite3.Row to a plain dict, passing None through.
    """
    if row is None:
        return None
    return dict(row)


def get_row_value(row: sqlite3.Row, column: str, default: Any = None) -> Any:
    """
    Read a column from a row, returning default for missing or NULL columns.
    """
    if column not in row.keys():
        return default
    value = row[column]
    return default if value is None else value
