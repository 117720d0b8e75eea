"""Metadata service: lifecycle rules for a file's current metadata record."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from common.constants import MIN_VERSION_NUMBER
from common.logging_config import get_logger
from metastore.exceptions import NotFoundError, ValidationError
from metastore.repositories.base import MetadataRepository
from metastore.types import Checksum, FileMetadata, MetadataChangeRequest, MetadataStatus, Ownership
from metastore.utils import require_not_blank, utc_now, validate_path

logger = get_logger(__name__)


@dataclass(frozen=True)
class MetadataChange:
    """
    Outcome of applying a change request.

    Attributes:
        metadata: The record as persisted
        status: CREATED for a first write, UPDATED otherwise
        content_changed: False when an update carried the stored checksum
        previous: The record before the update, None on create
    """
    metadata: FileMetadata
    status: MetadataStatus
    content_changed: bool
    previous: Optional[FileMetadata] = None


class MetadataService:
    def __init__(self, metadata_repo: MetadataRepository, clock: Callable[[], datetime] = utc_now):
        self.metadata_repo = metadata_repo
        self._clock = clock

    def validate(self, request: Optional[MetadataChangeRequest]) -> None:
        """
        Check a change request's shape.

        Raises:
            ValidationError: On a missing request, blank identifiers, malformed
                ownership, an invalid path or a version number below 1
        """
        if request is None:
            raise ValidationError("Metadata cannot be null")

        require_not_blank(request.file_id, "fileID")
        require_not_blank(request.path, "path")
        require_not_blank(request.checksum, "checksum")
        Checksum(request.checksum)

        if not isinstance(request.ownership, Ownership):
            raise ValidationError("Ownership details are required")

        validate_path(request.path)

        version = request.version_number
        if version is not None:
            if isinstance(version, bool) or not isinstance(version, int):
                raise ValidationError(f"Version number must be an integer, got {version!r}")
            if version < MIN_VERSION_NUMBER:
                raise ValidationError("Version number must be at least 1")

    def apply(self, request: MetadataChangeRequest, conn=None) -> MetadataChange:
        """
        Validate a request and create or update the file's record.

        A first write creates version 1. Later writes preserve the creation
        timestamp and move to exactly one version past the stored one; a
        caller-supplied version number that disagrees is corrected rather
        than rejected.
        """
        logger.debug(f"Processing metadata change [file_id={getattr(request, 'file_id', None)}]")
        self.validate(request)

        if request.creation_timestamp is not None or request.last_modified_timestamp is not None:
            logger.debug(f"Ignoring caller-supplied timestamps [file_id={request.file_id}]")

        existing = self.metadata_repo.find_by_id(request.file_id, conn=conn)
        now = self._clock()

        if existing is None:
            if request.version_number is not None and request.version_number > MIN_VERSION_NUMBER:
                raise ValidationError(
                    f"Version number {request.version_number} is not valid for a new file; expected 1"
                )

            metadata = FileMetadata(
                file_id=request.file_id,
                path=request.path,
                checksum=request.checksum,
                creation_timestamp=now,
                last_modified_timestamp=now,
                ownership=request.ownership,
                current_version_number=MIN_VERSION_NUMBER,
            )
            saved = self.metadata_repo.save(metadata, conn=conn)
            logger.info(f"Metadata created [file_id={saved.file_id}] [version={saved.current_version_number}]")
            return MetadataChange(metadata=saved, status=MetadataStatus.CREATED, content_changed=True)

        next_version = existing.current_version_number + 1
        if request.version_number is not None and request.version_number != next_version:
            logger.info(
                f"Correcting version number {request.version_number} to {next_version} [file_id={request.file_id}]"
            )

        content_changed = not Checksum(request.checksum).matches(existing.checksum)
        if content_changed:
            logger.info(
                f"Checksum changed [file_id={request.file_id}] old={existing.checksum} new={request.checksum}"
            )
        else:
            logger.info(f"No-op content change, checksum unchanged [file_id={request.file_id}]")

        metadata = FileMetadata(
            file_id=existing.file_id,
            path=request.path,
            checksum=request.checksum,
            creation_timestamp=existing.creation_timestamp,
            last_modified_timestamp=max(now, existing.last_modified_timestamp),
            ownership=request.ownership,
            current_version_number=next_version,
        )
        saved = self.metadata_repo.save(metadata, conn=conn)
        logger.info(f"Metadata updated [file_id={saved.file_id}] [version={saved.current_version_number}]")

        return MetadataChange(
            metadata=saved,
            status=MetadataStatus.UPDATED,
            content_changed=content_changed,
            previous=existing,
        )

    def create_or_update(self, request: MetadataChangeRequest, conn=None) -> FileMetadata:
        """
        Write the metadata record only; no version is appended.

        Callers recording a file change go through TrackingService.record_change,
        which pairs this write with its version in one transaction.
        """
        return self.apply(request, conn=conn).metadata

    def find(self, file_id: str, conn=None) -> Optional[FileMetadata]:
        return self.metadata_repo.find_by_id(file_id, conn=conn)

    def exists(self, file_id: str) -> bool:
        return self.find(file_id) is not None

    def get(self, file_id: str) -> FileMetadata:
        logger.debug(f"Retrieving metadata [file_id={file_id}]")
        metadata = self.find(file_id)
        if metadata is None:
            logger.warning(f"Metadata not found [file_id={file_id}]")
            raise NotFoundError(f"Metadata not found for fileID: {file_id}")
        return metadata
