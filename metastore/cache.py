"""
Read-through cache for file metadata.

Reads consult the cache first and fall back to the authoritative repository
on a miss, repopulating the entry. Writes invalidate the entry for the
affected file. Cache failures are logged and never reach the caller.

Each file has a generation counter that invalidation bumps. A fill carries
the generation read before the store lookup and is dropped if a write
invalidated the entry in between.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Dict, Optional, Tuple

from common.constants import CACHE_KEY_PREFIX, DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL_SECONDS
from common.logging_config import get_logger
from metastore.repositories.base import MetadataRepository
from metastore.types import FileMetadata

logger = get_logger(__name__)


class MetadataCache(ABC):
    @abstractmethod
    def get(self, file_id: str) -> Optional[FileMetadata]:
        pass

    @abstractmethod
    def set(self, file_id: str, metadata: FileMetadata, generation: Optional[int] = None) -> None:
        """
        Store metadata. When generation is given and no longer current,
        the write is ignored.
        """

    @abstractmethod
    def generation(self, file_id: str) -> int:
        pass

    @abstractmethod
    def invalidate(self, file_id: str) -> None:
        pass


class InMemoryMetadataCache(MetadataCache):
    """
    Thread-safe in-process TTL cache.

    Entries expire after ttl_seconds; when max_entries is reached the
    least recently used entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: "OrderedDict[str, Tuple[float, FileMetadata]]" = OrderedDict()
        self._generations: Dict[str, int] = {}

        logger.info(f"Metadata cache initialized [ttl={ttl_seconds}s] [max_entries={max_entries}]")

    @staticmethod
    def _key(file_id: str) -> str:
        return f"{CACHE_KEY_PREFIX}{file_id}"

    def get(self, file_id: str) -> Optional[FileMetadata]:
        key = self._key(file_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss [file_id={file_id}]")
                return None

            expires_at, metadata = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired [file_id={file_id}]")
                return None

            self._entries.move_to_end(key)
            logger.debug(f"Cache hit [file_id={file_id}]")
            return metadata

    def set(self, file_id: str, metadata: FileMetadata, generation: Optional[int] = None) -> None:
        key = self._key(file_id)
        with self._lock:
            if generation is not None and generation != self._generations.get(key, 0):
                logger.debug(f"Dropped stale cache fill [file_id={file_id}] [generation={generation}]")
                return

            self._entries[key] = (self._clock() + self._ttl_seconds, metadata)
            self._entries.move_to_end(key)

            while len(self._entries) > self._max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry [key={evicted_key}]")

    def generation(self, file_id: str) -> int:
        with self._lock:
            return self._generations.get(self._key(file_id), 0)

    def invalidate(self, file_id: str) -> None:
        key = self._key(file_id)
        with self._lock:
            removed = self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

        if removed is not None:
            logger.debug(f"Cache invalidated [file_id={file_id}]")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CachedMetadataRepository(MetadataRepository):
    """
    MetadataRepository decorator adding read-through caching.

    Reads that join a caller's transaction (conn given) bypass the cache
    and go to the authoritative store.
    """

    def __init__(self, repository: MetadataRepository, cache: MetadataCache):
        self.repository = repository
        self.cache = cache

    def save(self, metadata: FileMetadata, conn=None) -> FileMetadata:
        saved = self.repository.save(metadata, conn=conn)
        self.invalidate(metadata.file_id)
        return saved

    def find_by_id(self, file_id: str, conn=None) -> Optional[FileMetadata]:
        if conn is not None:
            return self.repository.find_by_id(file_id, conn=conn)

        cached = self._cache_get(file_id)
        if cached is not None:
            return cached

        generation = self._cache_generation(file_id)
        found = self.repository.find_by_id(file_id)
        if found is not None and generation is not None:
            self._cache_set(file_id, found, generation)
        return found

    def invalidate(self, file_id: str) -> None:
        try:
            self.cache.invalidate(file_id)
        except Exception as e:
            logger.warning(f"Failed to invalidate cache [file_id={file_id}]: {e}")

    def _cache_get(self, file_id: str) -> Optional[FileMetadata]:
        try:
            return self.cache.get(file_id)
        except Exception as e:
            logger.warning(f"Cache read failed, falling back to store [file_id={file_id}]: {e}")
            return None

    def _cache_generation(self, file_id: str) -> Optional[int]:
        try:
            return self.cache.generation(file_id)
        except Exception as e:
            logger.warning(f"Cache generation read failed, skipping fill [file_id={file_id}]: {e}")
            return None

    def _cache_set(self, file_id: str, metadata: FileMetadata, generation: int) -> None:
        try:
            self.cache.set(file_id, metadata, generation=generation)
        except Exception as e:
            logger.warning(f"Failed to populate cache [file_id={file_id}]: {e}")
