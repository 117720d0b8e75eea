"""Version service: append-only history of each file."""

from datetime import datetime
from typing import Callable, List, Optional

from common.logging_config import get_logger
from metastore.exceptions import DuplicateVersionError, NotFoundError, ValidationError
from metastore.repositories.base import MetadataRepository, VersionRepository
from metastore.types import Checksum, VersionInfo, VersionRecord
from metastore.utils import generate_uuid, require_not_blank, utc_now

logger = get_logger(__name__)


class VersionService:
    def __init__(
        self,
        version_repo: VersionRepository,
        metadata_repo: Optional[MetadataRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.version_repo = version_repo
        self.metadata_repo = metadata_repo
        self._clock = clock

    def create_version(
        self,
        file_id: str,
        checksum: str,
        details: Optional[str] = None,
        expected_version_number: Optional[int] = None,
        conn=None,
    ) -> VersionRecord:
        """
        Append the next version of a file.

        Args:
            file_id: File the version belongs to
            checksum: Content hash at this version
            details: Optional caller annotation, kept ahead of the generated notes
            expected_version_number: When given, the number the caller believes
                comes next; a mismatch is rejected
            conn: Optional transaction to join

        Returns:
            The persisted VersionRecord

        Raises:
            ValidationError: On blank input or a non-sequential expected number
            DuplicateVersionError: If the next number is already taken
        """
        require_not_blank(file_id, "fileID")
        new_checksum = Checksum(checksum)

        existing = self.version_repo.find_by_file_id(file_id, conn=conn)
        previous = max(existing, key=lambda v: v.version_number, default=None)
        next_number = (previous.version_number if previous else 0) + 1
        logger.debug(f"Creating version {next_number} [file_id={file_id}]")

        if expected_version_number is not None and expected_version_number != next_number:
            raise ValidationError(
                f"Version number must be sequential. Expected {next_number}, got {expected_version_number}"
            )

        if self.version_repo.find_by_file_and_number(file_id, next_number, conn=conn) is not None:
            raise DuplicateVersionError(f"Version {next_number} already exists for file {file_id}")

        info = VersionInfo(version_number=next_number, timestamp=self._clock(), checksum=new_checksum.value)

        notes = [details] if details else []
        if previous is not None:
            notes.append(
                f"Previous version: {previous.version_number}, Previous checksum: {previous.checksum}"
            )
            if info.has_same_content(previous.info):
                logger.warning(
                    f"New version {next_number} has same checksum as previous version "
                    f"{previous.version_number} [file_id={file_id}]"
                )
                notes.append("Same checksum as previous version")

        version = VersionRecord(
            version_id=generate_uuid(),
            file_id=file_id,
            version_number=info.version_number,
            timestamp=info.timestamp,
            checksum=info.checksum,
            additional_details="; ".join(notes) if notes else None,
        )

        saved = self.version_repo.save(version, conn=conn)
        logger.info(f"Created version {saved.version_number} [file_id={file_id}] [version_id={saved.version_id}]")
        return saved

    def get_history(self, file_id: str) -> List[VersionRecord]:
        """
        Return every version of a file in ascending version order.

        An unknown file has an empty history.
        """
        logger.debug(f"Retrieving version history [file_id={file_id}]")
        versions = sorted(self.version_repo.find_by_file_id(file_id), key=lambda v: v.version_number)

        if not versions and self.metadata_repo is not None:
            if self.metadata_repo.find_by_id(file_id) is not None:
                logger.warning(f"Data integrity: metadata exists but version history is empty [file_id={file_id}]")

        logger.info(f"Retrieved {len(versions)} versions [file_id={file_id}]")
        return versions

    def get_latest(self, file_id: str, conn=None) -> Optional[VersionRecord]:
        versions = self.version_repo.find_by_file_id(file_id, conn=conn)
        return max(versions, key=lambda v: v.version_number, default=None)

    def get_version(self, version_id: str) -> VersionRecord:
        logger.debug(f"Retrieving version [version_id={version_id}]")
        version = self.version_repo.find_by_id(version_id)
        if version is None:
            raise NotFoundError(f"Version {version_id} not found")
        return version
