"""Service layer for business logic."""

from metastore.services.metadata_service import MetadataChange, MetadataService
from metastore.services.tracking_service import TrackedChange, TrackingService
from metastore.services.version_service import VersionService

__all__ = [
    "MetadataChange",
    "MetadataService",
    "VersionService",
    "TrackedChange",
    "TrackingService",
]
