"""Pydantic schemas for API requests and responses."""

from metastore.schemas.common import ErrorResponse
from metastore.schemas.conflicts import ConflictResolutionRequest, ConflictResolutionResponse
from metastore.schemas.metadata import (
    FileMetadataRequest,
    FileMetadataResponse,
    MetadataChangeResponse,
    OwnershipSchema,
    VersionHistoryResponse,
    VersionRecordResponse,
)

__all__ = [
    "ErrorResponse",
    "OwnershipSchema",
    "FileMetadataRequest",
    "FileMetadataResponse",
    "MetadataChangeResponse",
    "VersionRecordResponse",
    "VersionHistoryResponse",
    "ConflictResolutionRequest",
    "ConflictResolutionResponse",
]
