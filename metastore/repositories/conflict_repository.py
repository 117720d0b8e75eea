"""Conflict resolution repository for database operations."""

import json
import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from metastore.exceptions import StorageError
from metastore.repositories.base import ConflictRepository, SqliteRepository
from metastore.types import ConflictResolution, ConflictState, ResolutionStrategy
from metastore.utils import from_iso, to_iso

logger = get_logger(__name__)

_SELECT_COLUMNS = """
    id, file_id, conflicting_version_ids, resolution_strategy, resolution_timestamp,
    resolved, state, resulting_version_id, detail
"""


def _row_to_resolution(row: sqlite3.Row) -> ConflictResolution:
    return ConflictResolution(
        id=row["id"],
        file_id=row["file_id"],
        conflicting_version_ids=json.loads(row["conflicting_version_ids"]),
        resolution_strategy=ResolutionStrategy(row["resolution_strategy"]),
        resolution_timestamp=from_iso(row["resolution_timestamp"]),
        resolved=bool(row["resolved"]),
        state=ConflictState(row["state"]),
        resulting_version_id=row["resulting_version_id"],
        detail=row["detail"],
    )


class SqliteConflictRepository(SqliteRepository, ConflictRepository):
    def save(self, resolution: ConflictResolution, conn=None) -> ConflictResolution:
        logger.debug(f"Saving conflict resolution [id={resolution.id}] [file_id={resolution.file_id}]")
        try:
            with self._use_connection(conn) as c:
                c.execute(
                    f"""
                    INSERT OR REPLACE INTO conflict_resolutions ({_SELECT_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        resolution.id,
                        resolution.file_id,
                        json.dumps(resolution.conflicting_version_ids),
                        resolution.resolution_strategy.value,
                        to_iso(resolution.resolution_timestamp),
                        1 if resolution.resolved else 0,
                        resolution.state.value,
                        resolution.resulting_version_id,
                        resolution.detail,
                    )
                )
        except sqlite3.Error as e:
            logger.error(f"Failed to save conflict resolution [id={resolution.id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to save conflict resolution for file {resolution.file_id}") from e

        return resolution

    def find_by_id(self, resolution_id: str, conn=None) -> Optional[ConflictResolution]:
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                cursor.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM conflict_resolutions WHERE id = ?",
                    (resolution_id,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to load conflict resolution [id={resolution_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to load conflict resolution {resolution_id}") from e

        return _row_to_resolution(row) if row is not None else None

    def find_by_file_id(self, file_id: str, conn=None) -> List[ConflictResolution]:
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                cursor.execute(
                    f"""
                    SELECT {_SELECT_COLUMNS} FROM conflict_resolutions
                    WHERE file_id = ? ORDER BY resolution_timestamp, id
                    """,
                    (file_id,)
                )
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to load conflict resolutions [file_id={file_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to load conflict resolutions for file {file_id}") from e

        return [_row_to_resolution(row) for row in rows]
