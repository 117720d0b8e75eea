"""Tracking service: records a metadata change and its version as one unit of work."""

from dataclasses import dataclass
from typing import List, Optional

from common.constants import (
    EVENT_CONTENT_UNCHANGED,
    EVENT_METADATA_CREATED,
    EVENT_METADATA_UPDATED,
    EVENT_VERSION_CREATED,
)
from common.logging_config import get_logger
from metastore.database import Database
from metastore.notifications import NotificationSink, notify_safely
from metastore.schemas.metadata import FileMetadataResponse, VersionRecordResponse
from metastore.services.metadata_service import MetadataService
from metastore.services.version_service import VersionService
from metastore.types import FileMetadata, MetadataChangeRequest, MetadataStatus, VersionRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrackedChange:
    metadata: FileMetadata
    version: VersionRecord
    status: MetadataStatus
    content_changed: bool


class TrackingService:
    def __init__(
        self,
        db: Database,
        metadata_service: MetadataService,
        version_service: VersionService,
        notifier: Optional[NotificationSink] = None,
    ):
        self.db = db
        self.metadata_service = metadata_service
        self.version_service = version_service
        self.notifier = notifier

    def record_change(self, request: MetadataChangeRequest) -> TrackedChange:
        """
        Create or update a file's metadata and append the matching version.

        Both writes commit together; if either fails neither is kept.
        """
        with self.db.connection() as conn:
            try:
                change = self.metadata_service.apply(request, conn=conn)
                version = self.version_service.create_version(
                    file_id=change.metadata.file_id,
                    checksum=change.metadata.checksum,
                    details=request.details,
                    expected_version_number=change.metadata.current_version_number,
                    conn=conn,
                )
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(
                    f"Failed to record metadata change [file_id={getattr(request, 'file_id', None)}]: {e}"
                )
                raise

        # a reader may have repopulated the cache from the pre-commit state
        self.metadata_service.metadata_repo.invalidate(change.metadata.file_id)

        tracked = TrackedChange(
            metadata=change.metadata,
            version=version,
            status=change.status,
            content_changed=change.content_changed,
        )
        self._emit_events(tracked)
        return tracked

    def get_metadata(self, file_id: str) -> FileMetadata:
        return self.metadata_service.get(file_id)

    def get_history(self, file_id: str) -> List[VersionRecord]:
        return self.version_service.get_history(file_id)

    def _emit_events(self, tracked: TrackedChange) -> None:
        metadata_payload = FileMetadataResponse.from_domain(tracked.metadata).model_dump(mode="json")
        event = EVENT_METADATA_CREATED if tracked.status == MetadataStatus.CREATED else EVENT_METADATA_UPDATED
        notify_safely(self.notifier, event, metadata_payload)

        if not tracked.content_changed:
            notify_safely(self.notifier, EVENT_CONTENT_UNCHANGED, {
                "file_id": tracked.metadata.file_id,
                "checksum": tracked.metadata.checksum,
                "version_number": tracked.metadata.current_version_number,
            })

        notify_safely(
            self.notifier,
            EVENT_VERSION_CREATED,
            VersionRecordResponse.from_domain(tracked.version).model_dump(mode="json"),
        )
