"""Builds the service graph from settings. Called once at process start."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from common.logging_config import get_logger
from metastore.cache import CachedMetadataRepository, InMemoryMetadataCache, MetadataCache
from metastore.config import Settings
from metastore.conflict_resolver import ConflictResolver
from metastore.database import Database
from metastore.notifications import HttpNotificationSink, LoggingNotificationSink, NotificationSink
from metastore.repositories import SqliteConflictRepository, SqliteMetadataRepository, SqliteVersionRepository
from metastore.services import MetadataService, TrackingService, VersionService
from metastore.utils import utc_now

logger = get_logger(__name__)


@dataclass
class Services:
    db: Database
    cache: MetadataCache
    notifier: NotificationSink
    metadata_service: MetadataService
    version_service: VersionService
    tracking_service: TrackingService
    conflict_resolver: ConflictResolver

    def close(self) -> None:
        self.notifier.close()


def build_notifier(settings: Settings) -> NotificationSink:
    if settings.monitoring_url:
        return HttpNotificationSink(
            base_url=settings.monitoring_url,
            api_key=settings.monitoring_api_key,
            timeout=settings.notify_timeout_seconds,
        )
    return LoggingNotificationSink()


def build_services(
    settings: Settings,
    notifier: Optional[NotificationSink] = None,
    cache: Optional[MetadataCache] = None,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """
    Create the database, repositories and services and initialize the schema.
    """
    db = Database(settings.database_path)
    db.init_schema()

    if cache is None:
        cache = InMemoryMetadataCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
    if notifier is None:
        notifier = build_notifier(settings)

    metadata_repo = CachedMetadataRepository(SqliteMetadataRepository(db), cache)
    version_repo = SqliteVersionRepository(db)
    conflict_repo = SqliteConflictRepository(db)

    metadata_service = MetadataService(metadata_repo, clock=clock)
    version_service = VersionService(version_repo, metadata_repo=metadata_repo, clock=clock)

    tracking_service = TrackingService(
        db=db,
        metadata_service=metadata_service,
        version_service=version_service,
        notifier=notifier,
    )
    conflict_resolver = ConflictResolver(
        db=db,
        version_repo=version_repo,
        conflict_repo=conflict_repo,
        metadata_service=metadata_service,
        version_service=version_service,
        notifier=notifier,
        clock=clock,
    )

    logger.info(f"Services initialized [database={settings.database_path}] [notifier={type(notifier).__name__}]")

    return Services(
        db=db,
        cache=cache,
        notifier=notifier,
        metadata_service=metadata_service,
        version_service=version_service,
        tracking_service=tracking_service,
        conflict_resolver=conflict_resolver,
    )
