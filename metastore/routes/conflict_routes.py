"""Conflict resolution API routes."""

from typing import List

from fastapi import APIRouter, Depends

from metastore.factory import Services
from metastore.routes.dependencies import get_services
from metastore.schemas.conflicts import ConflictResolutionRequest, ConflictResolutionResponse

router = APIRouter(tags=["Conflicts"])


@router.post("/api/metadata/{file_id}/conflict", response_model=ConflictResolutionResponse)
def resolve_conflict(
    file_id: str,
    request: ConflictResolutionRequest,
    services: Services = Depends(get_services),
):
    """
    Resolve a conflict between versions of a file.

    Parameters:
        - conflicting_version_ids: At least two distinct version IDs of this file
        - resolution_strategy: LAST_MODIFIED, FIRST_MODIFIED, FORCE_LATEST_VERSION,
          KEEP_BOTH, MANUAL_MERGE or MERGE

    Returns:
        The resolution record. MANUAL_MERGE returns resolved=false with
        state AWAITING_MANUAL.

    Raises:
        - 400: Invalid strategy, too few versions or unmet strategy precondition
        - 404: Version not found
        - 500: Internal server error
    """
    resolution = services.conflict_resolver.resolve_conflict(
        file_id,
        request.conflicting_version_ids,
        request.resolution_strategy,
    )
    return ConflictResolutionResponse.from_domain(resolution)


@router.get("/api/metadata/{file_id}/conflicts", response_model=List[ConflictResolutionResponse])
def list_conflicts(file_id: str, services: Services = Depends(get_services)):
    return [
        ConflictResolutionResponse.from_domain(resolution)
        for resolution in services.conflict_resolver.list_resolutions(file_id)
    ]


@router.get("/api/conflicts/{resolution_id}", response_model=ConflictResolutionResponse)
def retrieve_conflict(resolution_id: str, services: Services = Depends(get_services)):
    return ConflictResolutionResponse.from_domain(services.conflict_resolver.get_resolution(resolution_id))
