"""Repository layer for data access."""

from metastore.repositories.base import ConflictRepository, MetadataRepository, VersionRepository
from metastore.repositories.conflict_repository import SqliteConflictRepository
from metastore.repositories.metadata_repository import SqliteMetadataRepository
from metastore.repositories.version_repository import SqliteVersionRepository

__all__ = [
    "MetadataRepository",
    "VersionRepository",
    "ConflictRepository",
    "SqliteMetadataRepository",
    "SqliteVersionRepository",
    "SqliteConflictRepository",
]
