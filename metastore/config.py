"""Configuration settings for the metadata service."""

import os
from dataclasses import dataclass
from typing import Optional

from common.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_NOTIFY_TIMEOUT_SECONDS,
    DEFAULT_PORT,
)


DATABASE_PATH = os.environ.get("METASTORE_DATABASE_PATH", "/app/data/metadata.db")

METASTORE_HOST = os.environ.get("METASTORE_HOST", "0.0.0.0")

METASTORE_PORT = int(os.environ.get("METASTORE_PORT", str(DEFAULT_PORT)))

CACHE_TTL_SECONDS = int(os.environ.get("METASTORE_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS)))

CACHE_MAX_ENTRIES = int(os.environ.get("METASTORE_CACHE_MAX_ENTRIES", str(DEFAULT_CACHE_MAX_ENTRIES)))

MONITORING_URL = os.environ.get("METASTORE_MONITORING_URL") or None

MONITORING_API_KEY = os.environ.get("METASTORE_MONITORING_API_KEY") or None

NOTIFY_TIMEOUT_SECONDS = float(
    os.environ.get("METASTORE_NOTIFY_TIMEOUT_SECONDS", str(DEFAULT_NOTIFY_TIMEOUT_SECONDS))
)


@dataclass(frozen=True)
class Settings:
    """
    Snapshot of the configuration consumed when wiring the service graph.
    """
    database_path: str = DATABASE_PATH
    cache_ttl_seconds: int = CACHE_TTL_SECONDS
    cache_max_entries: int = CACHE_MAX_ENTRIES
    monitoring_url: Optional[str] = MONITORING_URL
    monitoring_api_key: Optional[str] = MONITORING_API_KEY
    notify_timeout_seconds: float = NOTIFY_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_path=os.environ.get("METASTORE_DATABASE_PATH", DATABASE_PATH),
            cache_ttl_seconds=int(os.environ.get("METASTORE_CACHE_TTL_SECONDS", str(CACHE_TTL_SECONDS))),
            cache_max_entries=int(os.environ.get("METASTORE_CACHE_MAX_ENTRIES", str(CACHE_MAX_ENTRIES))),
            monitoring_url=os.environ.get("METASTORE_MONITORING_URL") or MONITORING_URL,
            monitoring_api_key=os.environ.get("METASTORE_MONITORING_API_KEY") or MONITORING_API_KEY,
            notify_timeout_seconds=float(
                os.environ.get("METASTORE_NOTIFY_TIMEOUT_SECONDS", str(NOTIFY_TIMEOUT_SECONDS))
            ),
        )
