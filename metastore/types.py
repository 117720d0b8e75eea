"""Domain value types and entities for versioned file metadata."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from common.constants import MIN_VERSION_NUMBER, OWNERSHIP_PATTERN
from metastore.exceptions import ConflictError, ValidationError
from metastore.utils import generate_uuid, is_blank

_OWNERSHIP_RE = re.compile(OWNERSHIP_PATTERN)


class ResolutionStrategy(str, Enum):
    """
    Named rule used to pick (or defer) a winner among conflicting versions.
    """
    LAST_MODIFIED = "LAST_MODIFIED"
    FIRST_MODIFIED = "FIRST_MODIFIED"
    FORCE_LATEST_VERSION = "FORCE_LATEST_VERSION"
    KEEP_BOTH = "KEEP_BOTH"
    MANUAL_MERGE = "MANUAL_MERGE"
    MERGE = "MERGE"

    @classmethod
    def parse(cls, value: Union["ResolutionStrategy", str, None]) -> "ResolutionStrategy":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValidationError(f"Unsupported resolution strategy: {value}")


class ConflictState(str, Enum):
    CREATED = "CREATED"
    VALIDATED = "VALIDATED"
    RESOLVED = "RESOLVED"
    AWAITING_MANUAL = "AWAITING_MANUAL"


class MetadataStatus(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"


def _require_aware(value: Any, field_name: str) -> None:
    if not isinstance(value, datetime) or value.tzinfo is None:
        raise ValidationError(f"{field_name} must be a timezone-aware datetime")


@dataclass(frozen=True)
class Checksum:
    """
    Content hash of a file. Opaque apart from being non-blank.
    """
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or is_blank(self.value):
            raise ValidationError("Checksum is required")

    def matches(self, other: Union["Checksum", str, None]) -> bool:
        if other is None:
            return False
        other_value = other.value if isinstance(other, Checksum) else other
        return self.value == other_value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Ownership:
    """
    Owner and group identity of a file.
    """
    owner: str
    group: str

    def __post_init__(self):
        for field_name in ("owner", "group"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not _OWNERSHIP_RE.fullmatch(value):
                raise ValidationError(
                    f"Ownership {field_name} must match {OWNERSHIP_PATTERN}, got {value!r}"
                )

    def to_dict(self) -> Dict[str, str]:
        return {"owner": self.owner, "group": self.group}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ownership":
        if not isinstance(data, dict):
            raise ValidationError("Ownership details are required")
        return cls(owner=data.get("owner"), group=data.get("group"))


@dataclass(frozen=True)
class VersionInfo:
    """
    Version number, instant and checksum of one point in a file's history.
    """
    version_number: int
    timestamp: datetime
    checksum: str

    def __post_init__(self):
        if not isinstance(self.version_number, int) or self.version_number < MIN_VERSION_NUMBER:
            raise ValidationError("Version number must be at least 1")
        _require_aware(self.timestamp, "Version timestamp")
        Checksum(self.checksum)

    def has_same_content(self, other: Optional["VersionInfo"]) -> bool:
        if other is None:
            return False
        return self.checksum == other.checksum


@dataclass(frozen=True)
class FileMetadata:
    """
    Current state of one file's metadata.
    """
    file_id: str
    path: str
    checksum: str
    creation_timestamp: datetime
    last_modified_timestamp: datetime
    ownership: Ownership
    current_version_number: int

    def __post_init__(self):
        if self.current_version_number < MIN_VERSION_NUMBER:
            raise ValidationError("Version number must be at least 1")
        if self.last_modified_timestamp < self.creation_timestamp:
            raise ValidationError(
                f"Last modified timestamp precedes creation timestamp [file_id={self.file_id}]"
            )


@dataclass(frozen=True)
class VersionRecord:
    """
    Immutable snapshot of a file at one version number.
    """
    version_id: str
    file_id: str
    version_number: int
    timestamp: datetime
    checksum: str
    additional_details: Optional[str] = None

    @property
    def info(self) -> VersionInfo:
        return VersionInfo(
            version_number=self.version_number,
            timestamp=self.timestamp,
            checksum=self.checksum,
        )


@dataclass
class ConflictResolution:
    """
    Audit record of how a set of conflicting versions was settled.

    State machine: CREATED -> VALIDATED -> RESOLVED | AWAITING_MANUAL.
    Nothing leaves RESOLVED.
    """
    id: str
    file_id: str
    conflicting_version_ids: List[str]
    resolution_strategy: ResolutionStrategy
    resolution_timestamp: datetime
    resolved: bool = False
    state: ConflictState = ConflictState.CREATED
    resulting_version_id: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def create_new(
        cls,
        file_id: str,
        conflicting_version_ids: List[str],
        strategy: ResolutionStrategy,
        now: datetime,
    ) -> "ConflictResolution":
        return cls(
            id=generate_uuid(),
            file_id=file_id,
            conflicting_version_ids=list(conflicting_version_ids),
            resolution_strategy=strategy,
            resolution_timestamp=now,
        )

    @property
    def awaiting_manual(self) -> bool:
        return self.state == ConflictState.AWAITING_MANUAL

    def _transition(self, allowed_from: ConflictState, target: ConflictState) -> None:
        if self.state != allowed_from:
            raise ConflictError(
                f"Cannot move conflict {self.id} from {self.state.value} to {target.value}"
            )
        self.state = target

    def mark_validated(self) -> None:
        self._transition(ConflictState.CREATED, ConflictState.VALIDATED)

    def mark_resolved(
        self,
        now: datetime,
        resulting_version_id: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        self._transition(ConflictState.VALIDATED, ConflictState.RESOLVED)
        self.resolved = True
        self.resolution_timestamp = now
        self.resulting_version_id = resulting_version_id
        self.detail = detail

    def mark_awaiting_manual(self, now: datetime, detail: Optional[str] = None) -> None:
        self._transition(ConflictState.VALIDATED, ConflictState.AWAITING_MANUAL)
        self.resolved = False
        self.resolution_timestamp = now
        self.detail = detail


@dataclass(frozen=True)
class MetadataChangeRequest:
    """
    Inbound create/update request for a file's metadata.

    Caller-supplied timestamps are carried for completeness; the service
    assigns its own.
    """
    file_id: str
    path: str
    checksum: str
    ownership: Optional[Ownership]
    version_number: Optional[int] = None
    creation_timestamp: Optional[datetime] = None
    last_modified_timestamp: Optional[datetime] = None
    details: Optional[str] = field(default=None, compare=False)
