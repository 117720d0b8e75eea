"""Project-wide constants (validation patterns, defaults, event names)."""

SERVICE_NAME: str = "metastore"

DEFAULT_PORT: int = 8000

OWNERSHIP_PATTERN: str = r"^[A-Za-z0-9_-]{3,50}$"

MIN_VERSION_NUMBER: int = 1
MIN_CONFLICTING_VERSIONS: int = 2
MANUAL_MERGE_VERSION_COUNT: int = 2

DEFAULT_CACHE_TTL_SECONDS: int = 3600
DEFAULT_CACHE_MAX_ENTRIES: int = 10_000
CACHE_KEY_PREFIX: str = "metadata:"

DEFAULT_NOTIFY_TIMEOUT_SECONDS: float = 2.0

EVENT_METADATA_CREATED: str = "metadata.created"
EVENT_METADATA_UPDATED: str = "metadata.updated"
EVENT_CONTENT_UNCHANGED: str = "metadata.content_unchanged"
EVENT_VERSION_CREATED: str = "version.created"
EVENT_CONFLICT_RESOLVED: str = "conflict.resolved"
EVENT_CONFLICT_AWAITING_MANUAL: str = "conflict.awaiting_manual"
