"""Conflict resolution between competing versions of the same file."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Union

from common.constants import (
    EVENT_CONFLICT_AWAITING_MANUAL,
    EVENT_CONFLICT_RESOLVED,
    MANUAL_MERGE_VERSION_COUNT,
    MIN_CONFLICTING_VERSIONS,
)
from common.logging_config import get_logger
from metastore.database import Database
from metastore.exceptions import NotFoundError, StrategyPreconditionError, ValidationError
from metastore.notifications import NotificationSink, notify_safely
from metastore.repositories.base import ConflictRepository, VersionRepository
from metastore.schemas.conflicts import ConflictResolutionResponse
from metastore.services.metadata_service import MetadataService
from metastore.services.version_service import VersionService
from metastore.types import (
    ConflictResolution,
    ConflictState,
    MetadataChangeRequest,
    ResolutionStrategy,
    VersionRecord,
)
from metastore.utils import is_blank, require_not_blank, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class Decision:
    """
    What a strategy decided for a set of versions.

    Attributes:
        outcome: RESOLVED, or AWAITING_MANUAL when no automatic decision is made
        winner: The selected version; for MERGE, the version whose checksum is carried forward
        reason: Human-readable explanation stored on the resolution record
    """
    outcome: ConflictState
    winner: Optional[VersionRecord]
    reason: str


def _pick(versions: List[VersionRecord], key: Callable[[VersionRecord], Any], highest: bool) -> VersionRecord:
    """
    Select the version with the highest (or lowest) key.
    Ties go to the lexicographically smallest version ID.
    """
    keys = [key(v) for v in versions]
    target = max(keys) if highest else min(keys)
    return min((v for v in versions if key(v) == target), key=lambda v: v.version_id)


def _require_count(strategy: ResolutionStrategy, count: int, minimum: int, exact: bool = False) -> None:
    if exact and count != minimum:
        raise StrategyPreconditionError(
            f"{strategy.value} requires exactly {minimum} versions, got {count}"
        )
    if count < minimum:
        raise StrategyPreconditionError(
            f"{strategy.value} requires at least {minimum} versions, got {count}"
        )


class ConflictResolver:
    """
    Settles conflicts between versions of one file according to a named strategy
    and records the outcome.
    """

    def __init__(
        self,
        db: Database,
        version_repo: VersionRepository,
        conflict_repo: ConflictRepository,
        metadata_service: MetadataService,
        version_service: VersionService,
        notifier: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.version_repo = version_repo
        self.conflict_repo = conflict_repo
        self.metadata_service = metadata_service
        self.version_service = version_service
        self.notifier = notifier
        self._clock = clock

    @staticmethod
    def decide(strategy: ResolutionStrategy, versions: List[VersionRecord]) -> Decision:
        """
        Apply a strategy to already validated versions.

        Raises:
            StrategyPreconditionError: If the strategy's version count requirement is not met
        """
        count = len(versions)

        if strategy == ResolutionStrategy.LAST_MODIFIED:
            _require_count(strategy, count, 1)
            winner = _pick(versions, lambda v: v.timestamp, highest=True)
            return Decision(ConflictState.RESOLVED, winner, f"Selected most recently modified version {winner.version_id}")

        if strategy == ResolutionStrategy.FIRST_MODIFIED:
            _require_count(strategy, count, 1)
            winner = _pick(versions, lambda v: v.timestamp, highest=False)
            return Decision(ConflictState.RESOLVED, winner, f"Selected earliest modified version {winner.version_id}")

        if strategy == ResolutionStrategy.FORCE_LATEST_VERSION:
            _require_count(strategy, count, 1)
            winner = _pick(versions, lambda v: v.version_number, highest=True)
            return Decision(
                ConflictState.RESOLVED,
                winner,
                f"Forced version {winner.version_id} with highest version number {winner.version_number}",
            )

        if strategy == ResolutionStrategy.KEEP_BOTH:
            _require_count(strategy, count, MIN_CONFLICTING_VERSIONS)
            kept = ", ".join(sorted(v.version_id for v in versions))
            return Decision(ConflictState.RESOLVED, None, f"Kept all versions: {kept}")

        if strategy == ResolutionStrategy.MANUAL_MERGE:
            _require_count(strategy, count, MANUAL_MERGE_VERSION_COUNT, exact=True)
            pending = ", ".join(sorted(v.version_id for v in versions))
            return Decision(ConflictState.AWAITING_MANUAL, None, f"Manual merge required for versions: {pending}")

        if strategy == ResolutionStrategy.MERGE:
            _require_count(strategy, count, MIN_CONFLICTING_VERSIONS)
            source = _pick(versions, lambda v: v.timestamp, highest=True)
            return Decision(ConflictState.RESOLVED, source, f"Merged using checksum of version {source.version_id}")

        raise ValidationError(f"Unsupported resolution strategy: {strategy}")

    def resolve_conflict(
        self,
        file_id: str,
        conflicting_version_ids: Iterable[str],
        strategy: Union[ResolutionStrategy, str],
    ) -> ConflictResolution:
        """
        Validate a reported conflict, apply the strategy and persist the outcome.

        MANUAL_MERGE is not an error: the returned record is unresolved and
        in the AWAITING_MANUAL state.

        Raises:
            ValidationError: Unknown strategy, fewer than two distinct IDs, or a
                version belonging to another file
            StrategyPreconditionError: Strategy precondition not met
            NotFoundError: A referenced version does not exist
            StorageError: The store failed
        """
        strategy = ResolutionStrategy.parse(strategy)
        require_not_blank(file_id, "fileID")
        version_ids = self._distinct_ids(conflicting_version_ids)
        logger.debug(f"Resolving conflict [file_id={file_id}] strategy={strategy.value} versions={version_ids}")

        with self.db.connection() as conn:
            try:
                versions = [self._load_version(version_id, file_id, conn) for version_id in version_ids]

                resolution = ConflictResolution.create_new(file_id, version_ids, strategy, self._clock())
                resolution.mark_validated()

                decision = self.decide(strategy, versions)

                if decision.outcome == ConflictState.AWAITING_MANUAL:
                    resolution.mark_awaiting_manual(self._clock(), detail=decision.reason)
                else:
                    resulting_version_id = decision.winner.version_id if decision.winner else None
                    if strategy == ResolutionStrategy.MERGE:
                        merged = self._merge(file_id, versions, decision.winner, conn)
                        resulting_version_id = merged.version_id
                    resolution.mark_resolved(
                        self._clock(),
                        resulting_version_id=resulting_version_id,
                        detail=decision.reason,
                    )

                self.conflict_repo.save(resolution, conn=conn)
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.warning(f"Conflict resolution failed [file_id={file_id}] strategy={strategy.value}: {e}")
                raise

        if strategy == ResolutionStrategy.MERGE:
            self.metadata_service.metadata_repo.invalidate(file_id)

        if resolution.awaiting_manual:
            logger.info(f"Conflict awaiting manual decision [file_id={file_id}] [id={resolution.id}]")
            event = EVENT_CONFLICT_AWAITING_MANUAL
        else:
            logger.info(
                f"Conflict resolved [file_id={file_id}] strategy={strategy.value} "
                f"winner={resolution.resulting_version_id} [id={resolution.id}]"
            )
            event = EVENT_CONFLICT_RESOLVED

        notify_safely(self.notifier, event, ConflictResolutionResponse.from_domain(resolution).model_dump(mode="json"))
        return resolution

    def get_resolution(self, resolution_id: str) -> ConflictResolution:
        resolution = self.conflict_repo.find_by_id(resolution_id)
        if resolution is None:
            raise NotFoundError(f"Conflict resolution {resolution_id} not found")
        return resolution

    def list_resolutions(self, file_id: str) -> List[ConflictResolution]:
        return self.conflict_repo.find_by_file_id(file_id)

    @staticmethod
    def _distinct_ids(conflicting_version_ids: Optional[Iterable[str]]) -> List[str]:
        if conflicting_version_ids is None or isinstance(conflicting_version_ids, str):
            raise ValidationError("Conflicting version IDs must be a list")

        ids = list(conflicting_version_ids)
        if any(is_blank(version_id) for version_id in ids):
            raise ValidationError("Conflicting version IDs must not be blank")

        distinct = list(dict.fromkeys(ids))
        if len(distinct) < MIN_CONFLICTING_VERSIONS:
            raise ValidationError(
                f"At least {MIN_CONFLICTING_VERSIONS} distinct conflicting version IDs are required, got {len(distinct)}"
            )
        return distinct

    def _load_version(self, version_id: str, file_id: str, conn) -> VersionRecord:
        version = self.version_repo.find_by_id(version_id, conn=conn)
        if version is None:
            raise NotFoundError(f"Version not found: {version_id}")
        if version.file_id != file_id:
            raise ValidationError(f"Version {version_id} belongs to file {version.file_id}, not {file_id}")
        return version

    def _merge(self, file_id: str, versions: List[VersionRecord], source: VersionRecord, conn) -> VersionRecord:
        """
        Append a synthesized version carrying the source's checksum, numbered
        one past the highest conflicting version, and advance the metadata to it.
        """
        target = max(v.version_number for v in versions) + 1

        current = self.metadata_service.find(file_id, conn=conn)
        if current is None:
            raise NotFoundError(f"Metadata not found for fileID: {file_id}")

        if current.current_version_number + 1 != target:
            raise StrategyPreconditionError(
                f"MERGE requires the conflicting versions to include the latest version "
                f"{current.current_version_number} of file {file_id}"
            )

        self.metadata_service.apply(
            MetadataChangeRequest(
                file_id=file_id,
                path=current.path,
                checksum=source.checksum,
                ownership=current.ownership,
                version_number=target,
            ),
            conn=conn,
        )

        merged_from = ", ".join(str(v.version_number) for v in sorted(versions, key=lambda v: v.version_number))
        return self.version_service.create_version(
            file_id=file_id,
            checksum=source.checksum,
            details=f"Merged from versions {merged_from}",
            expected_version_number=target,
            conn=conn,
        )
