"""Version history repository for database operations."""

import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from metastore.exceptions import DuplicateVersionError, StorageError
from metastore.repositories.base import SqliteRepository, VersionRepository
from metastore.types import VersionRecord
from metastore.utils import from_iso, to_iso

logger = get_logger(__name__)

_SELECT_COLUMNS = "version_id, file_id, version_number, timestamp, checksum, additional_details"


def _row_to_version(row: sqlite3.Row) -> VersionRecord:
    return VersionRecord(
        version_id=row["version_id"],
        file_id=row["file_id"],
        version_number=row["version_number"],
        timestamp=from_iso(row["timestamp"]),
        checksum=row["checksum"],
        additional_details=row["additional_details"],
    )


class SqliteVersionRepository(SqliteRepository, VersionRepository):
    def save(self, version: VersionRecord, conn=None) -> VersionRecord:
        logger.debug(
            f"Appending version {version.version_number} [file_id={version.file_id}] [version_id={version.version_id}]"
        )
        try:
            with self._use_connection(conn) as c:
                c.execute(
                    f"INSERT INTO versions ({_SELECT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        version.version_id,
                        version.file_id,
                        version.version_number,
                        to_iso(version.timestamp),
                        version.checksum,
                        version.additional_details,
                    )
                )
        except sqlite3.IntegrityError as e:
            logger.warning(
                f"Rejected duplicate version {version.version_number} [file_id={version.file_id}]: {e}"
            )
            raise DuplicateVersionError(
                f"Version {version.version_number} already exists for file {version.file_id}"
            ) from e
        except sqlite3.Error as e:
            logger.error(f"Failed to append version [file_id={version.file_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to append version for file {version.file_id}") from e

        return version

    def find_by_id(self, version_id: str, conn=None) -> Optional[VersionRecord]:
        row = self._fetch_one(
            f"SELECT {_SELECT_COLUMNS} FROM versions WHERE version_id = ?",
            (version_id,),
            conn,
        )
        return _row_to_version(row) if row is not None else None

    def find_by_file_id(self, file_id: str, conn=None) -> List[VersionRecord]:
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                cursor.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM versions WHERE file_id = ? ORDER BY version_number",
                    (file_id,)
                )
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to load versions [file_id={file_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to load versions for file {file_id}") from e

        return [_row_to_version(row) for row in rows]

    def find_by_file_and_number(self, file_id: str, version_number: int, conn=None) -> Optional[VersionRecord]:
        row = self._fetch_one(
            f"SELECT {_SELECT_COLUMNS} FROM versions WHERE file_id = ? AND version_number = ?",
            (file_id, version_number),
            conn,
        )
        return _row_to_version(row) if row is not None else None

    def _fetch_one(self, query: str, params: tuple, conn=None) -> Optional[sqlite3.Row]:
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                cursor.execute(query, params)
                return cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Version query failed {params}: {e}", exc_info=True)
            raise StorageError("Failed to load version") from e
