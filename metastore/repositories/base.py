"""Repository ports consumed by the domain services.

Every operation accepts an optional ``conn`` transaction handle. When given,
the operation joins the caller's transaction and the caller commits; when
omitted, the repository runs and commits on its own connection.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Generator, List, Optional

from metastore.database import Database
from metastore.types import ConflictResolution, FileMetadata, VersionRecord


class MetadataRepository(ABC):
    @abstractmethod
    def save(self, metadata: FileMetadata, conn=None) -> FileMetadata:
        """
        Insert or update the current record for metadata.file_id.

        Raises:
            ConflictError: If the stored record already has an equal or higher version
            StorageError: On store failure
        """

    @abstractmethod
    def find_by_id(self, file_id: str, conn=None) -> Optional[FileMetadata]:
        """Return the current record, or None when the file is unknown."""

    def invalidate(self, file_id: str) -> None:
        """Drop any cached copy of file_id. No-op for uncached stores."""


class VersionRepository(ABC):
    @abstractmethod
    def save(self, version: VersionRecord, conn=None) -> VersionRecord:
        """
        Append a version record.

        Raises:
            DuplicateVersionError: If (file_id, version_number) or version_id already exists
            StorageError: On store failure
        """

    @abstractmethod
    def find_by_id(self, version_id: str, conn=None) -> Optional[VersionRecord]:
        pass

    @abstractmethod
    def find_by_file_id(self, file_id: str, conn=None) -> List[VersionRecord]:
        """Return all versions of file_id ordered by version number."""

    @abstractmethod
    def find_by_file_and_number(self, file_id: str, version_number: int, conn=None) -> Optional[VersionRecord]:
        pass


class ConflictRepository(ABC):
    @abstractmethod
    def save(self, resolution: ConflictResolution, conn=None) -> ConflictResolution:
        pass

    @abstractmethod
    def find_by_id(self, resolution_id: str, conn=None) -> Optional[ConflictResolution]:
        pass

    @abstractmethod
    def find_by_file_id(self, file_id: str, conn=None) -> List[ConflictResolution]:
        pass


class SqliteRepository:
    """
    Shared connection handling for the SQLite adapters.
    """

    def __init__(self, db: Database):
        self.db = db

    @contextmanager
    def _use_connection(self, conn=None) -> Generator:
        if conn is not None:
            yield conn
            return

        with self.db.connection() as own_conn:
            try:
                yield own_conn
                own_conn.commit()
            except Exception:
                own_conn.rollback()
                raise
