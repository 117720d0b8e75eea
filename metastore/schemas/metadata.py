"""Pydantic schemas for metadata and version endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from metastore.types import FileMetadata, MetadataChangeRequest, MetadataStatus, Ownership, VersionRecord


class OwnershipSchema(BaseModel):
    """Owner and group of a file."""
    owner: str
    group: str


class FileMetadataRequest(BaseModel):
    """
    Request model for creating or updating file metadata.

    Field contents are validated by the domain layer so that every
    malformed value maps to the same VALIDATION_ERROR response.
    """
    file_id: str
    path: str
    checksum: str
    ownership: OwnershipSchema
    current_version_number: Optional[int] = None
    creation_timestamp: Optional[datetime] = None
    last_modified_timestamp: Optional[datetime] = None
    details: Optional[str] = None

    def to_domain(self) -> MetadataChangeRequest:
        return MetadataChangeRequest(
            file_id=self.file_id,
            path=self.path,
            checksum=self.checksum,
            ownership=Ownership(owner=self.ownership.owner, group=self.ownership.group),
            version_number=self.current_version_number,
            creation_timestamp=self.creation_timestamp,
            last_modified_timestamp=self.last_modified_timestamp,
            details=self.details,
        )


class FileMetadataResponse(BaseModel):
    """Response model for file metadata."""
    file_id: str
    path: str
    checksum: str
    ownership: OwnershipSchema
    creation_timestamp: datetime
    last_modified_timestamp: datetime
    current_version_number: int

    @classmethod
    def from_domain(cls, metadata: FileMetadata) -> "FileMetadataResponse":
        return cls(
            file_id=metadata.file_id,
            path=metadata.path,
            checksum=metadata.checksum,
            ownership=OwnershipSchema(owner=metadata.ownership.owner, group=metadata.ownership.group),
            creation_timestamp=metadata.creation_timestamp,
            last_modified_timestamp=metadata.last_modified_timestamp,
            current_version_number=metadata.current_version_number,
        )


class VersionRecordResponse(BaseModel):
    """Response model for one version history entry."""
    version_id: str
    file_id: str
    version_number: int
    timestamp: datetime
    checksum: str
    additional_details: Optional[str] = None

    @classmethod
    def from_domain(cls, version: VersionRecord) -> "VersionRecordResponse":
        return cls(
            version_id=version.version_id,
            file_id=version.file_id,
            version_number=version.version_number,
            timestamp=version.timestamp,
            checksum=version.checksum,
            additional_details=version.additional_details,
        )


class MetadataChangeResponse(BaseModel):
    """Response model for create/update of metadata."""
    file_id: str
    status: MetadataStatus
    content_changed: bool
    metadata: FileMetadataResponse
    version: VersionRecordResponse


class VersionHistoryResponse(BaseModel):
    """Response model for a file's version history."""
    file_id: str
    versions: List[VersionRecordResponse]
