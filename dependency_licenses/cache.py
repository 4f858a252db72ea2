"""
Shared cache for license and README file contents.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class LicenseFileContent:
    content: str
    checksum: Optional[str] = None


@dataclass
class _CacheEntry:
    future: Future = field(default_factory=Future)
    checksum: Optional[str] = None
    read_time: float = field(default_factory=time.monotonic)


class LicenseFileCache:
    """Reads each path at most once and shares the result with every caller.

    Synchronous callers, asyncio callers and other threads all wait on the same
    in-flight read. Checksums are SHA-256 of the decoded content and are only
    computed on request.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _claim(self, path: PathLike) -> Tuple[str, _CacheEntry, bool]:
        key = os.fspath(path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._hits += 1
                logger.debug("Cache hit: license file %s", key)
                return key, entry, False
            self._misses += 1
            entry = _CacheEntry()
            self._entries[key] = entry
            return key, entry, True

    def _read_file(self, path: str) -> str:
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as handle:
            return handle.read()

    def _fill(self, key: str, entry: _CacheEntry) -> None:
        try:
            content = self._read_file(key)
        except Exception as exc:  # delivered to every waiter through the future
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            logger.debug("Failed to read %s: %s", key, exc)
            entry.future.set_exception(exc)
            return
        entry.future.set_result(content)

    def _content(self, entry: _CacheEntry, content: str, need_checksum: bool) -> LicenseFileContent:
        if need_checksum and entry.checksum is None:
            entry.checksum = hashlib.sha256(content.encode("utf-8")).hexdigest()
        return LicenseFileContent(content, entry.checksum)

    def read(self, path: PathLike, need_checksum: bool = False) -> LicenseFileContent:
        key, entry, owner = self._claim(path)
        if owner:
            self._fill(key, entry)
        content = entry.future.result()
        return self._content(entry, content, need_checksum)

    async def read_async(self, path: PathLike, need_checksum: bool = False) -> LicenseFileContent:
        key, entry, owner = self._claim(path)
        if owner:
            loop = asyncio.get_running_loop()
            loop.run_in_executor(None, self._fill, key, entry)
        content = await asyncio.wrap_future(entry.future)
        return self._content(entry, content, need_checksum)

    def exists(self, path: PathLike) -> bool:
        key = os.fspath(path)
        with self._lock:
            if key in self._entries:
                return True
        return os.path.isfile(key)

    async def exists_async(self, path: PathLike) -> bool:
        key = os.fspath(path)
        with self._lock:
            if key in self._entries:
                return True
        return await asyncio.to_thread(os.path.isfile, key)

    def cleanup(self, max_age: float = 3600.0) -> int:
        """Evict entries older than ``max_age`` seconds. Returns the number evicted."""
        cutoff = time.monotonic() - max_age
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.read_time < cutoff]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Evicted %d license file cache entries", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, float]:
        with self._lock:
            total = self._hits + self._misses
            pending = sum(1 for entry in self._entries.values() if not entry.future.done())
            return {
                "hits": self._hits,
                "misses": self._misses,
                "total_reads": total,
                "hit_rate": self._hits / total if total else 0.0,
                "cache_size": len(self._entries),
                "pending": pending,
            }

    def __len__(self) -> int:
        return len(self._entries)


license_file_cache = LicenseFileCache()
