"""Metadata and version history API routes."""

from fastapi import APIRouter, Depends, Response, status

from metastore.factory import Services
from metastore.routes.dependencies import get_services
from metastore.schemas.metadata import (
    FileMetadataRequest,
    FileMetadataResponse,
    MetadataChangeResponse,
    VersionHistoryResponse,
    VersionRecordResponse,
)
from metastore.types import MetadataStatus

router = APIRouter(prefix="/api/metadata", tags=["Metadata"])
versions_router = APIRouter(prefix="/api/versions", tags=["Versions"])


@router.post("", response_model=MetadataChangeResponse)
def create_or_update_metadata(
    request: FileMetadataRequest,
    response: Response,
    services: Services = Depends(get_services),
):
    """
    Create or update file metadata and append a version.

    Returns:
        - status: CREATED (201) or UPDATED (200)
        - content_changed: false when the checksum matched the stored one
        - metadata: the saved record
        - version: the version appended for this write

    Raises:
        - 400: Invalid request data
        - 409: Lost against a concurrent writer
        - 500: Internal server error
    """
    tracked = services.tracking_service.record_change(request.to_domain())

    if tracked.status == MetadataStatus.CREATED:
        response.status_code = status.HTTP_201_CREATED

    return MetadataChangeResponse(
        file_id=tracked.metadata.file_id,
        status=tracked.status,
        content_changed=tracked.content_changed,
        metadata=FileMetadataResponse.from_domain(tracked.metadata),
        version=VersionRecordResponse.from_domain(tracked.version),
    )


@router.get("/{file_id}", response_model=FileMetadataResponse)
def retrieve_metadata(file_id: str, services: Services = Depends(get_services)):
    """
    Retrieve the current metadata of a file.

    Raises:
        - 404: File metadata not found
    """
    return FileMetadataResponse.from_domain(services.metadata_service.get(file_id))


@router.get("/{file_id}/versions", response_model=VersionHistoryResponse)
def retrieve_version_history(file_id: str, services: Services = Depends(get_services)):
    """
    Retrieve a file's version history in ascending order. Unknown files have an empty history.
    """
    versions = services.version_service.get_history(file_id)
    return VersionHistoryResponse(
        file_id=file_id,
        versions=[VersionRecordResponse.from_domain(v) for v in versions],
    )


@versions_router.get("/{version_id}", response_model=VersionRecordResponse)
def retrieve_version(version_id: str, services: Services = Depends(get_services)):
    """
    Retrieve a single version record.

    Raises:
        - 404: Version not found
    """
    return VersionRecordResponse.from_domain(services.version_service.get_version(version_id))
