"""File metadata repository for database operations."""

import sqlite3
from typing import Optional

from common.logging_config import get_logger
from metastore.exceptions import ConflictError, StorageError
from metastore.repositories.base import MetadataRepository, SqliteRepository
from metastore.types import FileMetadata, Ownership
from metastore.utils import from_iso, to_iso

logger = get_logger(__name__)


def _row_to_metadata(row: sqlite3.Row) -> FileMetadata:
    return FileMetadata(
        file_id=row["file_id"],
        path=row["path"],
        checksum=row["checksum"],
        creation_timestamp=from_iso(row["creation_timestamp"]),
        last_modified_timestamp=from_iso(row["last_modified_timestamp"]),
        ownership=Ownership(owner=row["owner"], group=row["owner_group"]),
        current_version_number=row["current_version_number"],
    )


class SqliteMetadataRepository(SqliteRepository, MetadataRepository):
    def save(self, metadata: FileMetadata, conn=None) -> FileMetadata:
        logger.debug(
            f"Saving metadata [file_id={metadata.file_id}] [version={metadata.current_version_number}]"
        )
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                # creation_timestamp is written once and never overwritten
                cursor.execute(
                    """
                    INSERT INTO file_metadata (
                        file_id, path, checksum, creation_timestamp, last_modified_timestamp,
                        owner, owner_group, current_version_number
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(file_id) DO UPDATE SET
                        path = excluded.path,
                        checksum = excluded.checksum,
                        last_modified_timestamp = excluded.last_modified_timestamp,
                        owner = excluded.owner,
                        owner_group = excluded.owner_group,
                        current_version_number = excluded.current_version_number
                    WHERE excluded.current_version_number > file_metadata.current_version_number
                    """,
                    (
                        metadata.file_id,
                        metadata.path,
                        metadata.checksum,
                        to_iso(metadata.creation_timestamp),
                        to_iso(metadata.last_modified_timestamp),
                        metadata.ownership.owner,
                        metadata.ownership.group,
                        metadata.current_version_number,
                    )
                )

                if cursor.rowcount == 0:
                    raise ConflictError(
                        f"Stale metadata write for file {metadata.file_id}: "
                        f"version {metadata.current_version_number} is not newer than the stored version"
                    )
        except sqlite3.Error as e:
            logger.error(f"Failed to save metadata [file_id={metadata.file_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to save metadata for file {metadata.file_id}") from e

        return metadata

    def find_by_id(self, file_id: str, conn=None) -> Optional[FileMetadata]:
        try:
            with self._use_connection(conn) as c:
                cursor = c.cursor()
                cursor.execute(
                    """
                    SELECT file_id, path, checksum, creation_timestamp, last_modified_timestamp,
                           owner, owner_group, current_version_number
                    FROM file_metadata WHERE file_id = ?
                    """,
                    (file_id,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to load metadata [file_id={file_id}]: {e}", exc_info=True)
            raise StorageError(f"Failed to load metadata for file {file_id}") from e

        if row is None:
            return None

        return _row_to_metadata(row)
