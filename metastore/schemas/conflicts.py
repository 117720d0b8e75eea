"""Pydantic schemas for conflict resolution endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from metastore.types import ConflictResolution, ConflictState, ResolutionStrategy


class ConflictResolutionRequest(BaseModel):
    """Request model for resolving a version conflict."""
    conflicting_version_ids: List[str]
    resolution_strategy: str


class ConflictResolutionResponse(BaseModel):
    """Response model for a conflict resolution record."""
    id: str
    file_id: str
    conflicting_version_ids: List[str]
    resolution_strategy: ResolutionStrategy
    resolution_timestamp: datetime
    resolved: bool
    state: ConflictState
    awaiting_manual: bool
    resulting_version_id: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def from_domain(cls, resolution: ConflictResolution) -> "ConflictResolutionResponse":
        return cls(
            id=resolution.id,
            file_id=resolution.file_id,
            conflicting_version_ids=list(resolution.conflicting_version_ids),
            resolution_strategy=resolution.resolution_strategy,
            resolution_timestamp=resolution.resolution_timestamp,
            resolved=resolution.resolved,
            state=resolution.state,
            awaiting_manual=resolution.awaiting_manual,
            resulting_version_id=resolution.resulting_version_id,
            detail=resolution.detail,
        )
