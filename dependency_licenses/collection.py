"""
Memory-conscious package store used by the streaming strategy.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .cache import LicenseFileCache, license_file_cache
from .models import InstalledPackageNode, PackageRecord

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 100

Resolver = Callable[[InstalledPackageNode], PackageRecord]


class LazyPackage:
    """Holds a node and materializes its record on first access."""

    __slots__ = ("node", "_resolve", "_record")

    def __init__(self, node: InstalledPackageNode, resolve: Resolver) -> None:
        self.node = node
        self._resolve = resolve
        self._record: Optional[PackageRecord] = None

    @property
    def key(self) -> str:
        return f"{self.node.name}@{self.node.version}"

    @property
    def is_materialized(self) -> bool:
        return self._record is not None

    def record(self) -> PackageRecord:
        if self._record is None:
            self._record = self._resolve(self.node)
        return self._record

    def clear_cache(self) -> None:
        self._record = None

    def memory_stats(self) -> Dict[str, Any]:
        size = 0
        if self._record is not None:
            size = len(json.dumps(self._record.to_dict(), default=str)) * 2
        return {"key": self.key, "materialized": self._record is not None, "estimated_bytes": size}


class PackageCollection:
    """Keyed store of lazy packages with pooled streaming output.

    Dicts yielded by ``stream`` are reused once the consumer advances the
    iterator; copy anything that must outlive the iteration step.
    """

    def __init__(self, cache: Optional[LicenseFileCache] = None) -> None:
        self.cache = cache if cache is not None else license_file_cache
        self._packages: Dict[str, LazyPackage] = {}
        self._processed: Dict[str, PackageRecord] = {}
        self._pool: List[Dict[str, Any]] = []
        self._lookups = 0
        self._memo_hits = 0

    def add(self, package: LazyPackage) -> bool:
        """Add a package; returns False when the key is already present."""
        if package.key in self._packages:
            return False
        self._packages[package.key] = package
        return True

    def add_node(self, node: InstalledPackageNode, resolve: Resolver) -> bool:
        return self.add(LazyPackage(node, resolve))

    def has(self, name: str, version: str) -> bool:
        return f"{name}@{version}" in self._packages

    def get(self, name: str, version: str) -> Optional[PackageRecord]:
        return self._get(f"{name}@{version}")

    def _get(self, key: str) -> Optional[PackageRecord]:
        self._lookups += 1
        if key in self._processed:
            self._memo_hits += 1
            return self._processed[key]
        package = self._packages.get(key)
        if package is None:
            return None
        record = package.record()
        self._processed[key] = record
        return record

    def keys(self) -> List[str]:
        return sorted(self._packages)

    def _acquire(self) -> Dict[str, Any]:
        return self._pool.pop() if self._pool else {}

    def _release(self, item: Dict[str, Any]) -> None:
        item.clear()
        if len(self._pool) < MAX_POOL_SIZE:
            self._pool.append(item)

    def stream_records(self) -> Iterator[Tuple[str, PackageRecord]]:
        """Yield ``(key, record)`` pairs in key order, resolving each on demand."""
        for key in self.keys():
            record = self._get(key)
            if record is not None:
                yield key, record

    def stream(self) -> Iterator[Dict[str, Any]]:
        """Yield one pooled dict per package in key order.

        Each dict carries ``name``, ``version`` and the record's output fields.
        """
        for key, record in self.stream_records():
            package = self._packages[key]
            item = self._acquire()
            item["name"] = package.node.name
            item["version"] = package.node.version
            item.update(record.to_dict())
            try:
                yield item
            finally:
                self._release(item)

    def stream_filtered(self, predicate: Callable[[Dict[str, Any]], bool]) -> Iterator[Dict[str, Any]]:
        for item in self.stream():
            if predicate(item):
                yield item

    def stream_batches(self, batch_size: int = 50) -> Iterator[List[Dict[str, Any]]]:
        """Yield lists of cloned package dicts."""
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        batch: List[Dict[str, Any]] = []
        for item in self.stream():
            batch.append(dict(item))
            if len(batch) >= batch_size:
                yield batch
                batch = []
        if batch:
            yield batch

    def get_all(self) -> Dict[str, PackageRecord]:
        return {key: self._get(key) for key in self.keys()}

    def cleanup(self) -> None:
        """Drop memoized records and the object pool; packages stay registered."""
        logger.debug("Releasing %d memoized records and %d pooled objects", len(self._processed), len(self._pool))
        for package in self._packages.values():
            package.clear_cache()
        self._processed.clear()
        self._pool.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_packages": len(self._packages),
            "memory_usage": self._memory_usage(),
            "cache_hit_rate": self._memo_hits / self._lookups if self._lookups else 0.0,
            "pooled_objects": len(self._pool),
            "license_cache_hit_rate": self.cache.get_stats()["hit_rate"],
        }

    def _memory_usage(self) -> int:
        return sum(package.memory_stats()["estimated_bytes"] for package in self._packages.values())

    def get_memory_info(self) -> Dict[str, Any]:
        materialized = sum(1 for package in self._packages.values() if package.is_materialized)
        usage = self._memory_usage()
        return {
            "packages": len(self._packages),
            "materialized": materialized,
            "processed": len(self._processed),
            "estimated_bytes": usage,
            "average_bytes": usage / materialized if materialized else 0.0,
        }

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, key: str) -> bool:
        return key in self._packages
