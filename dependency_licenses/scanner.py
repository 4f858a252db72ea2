"""
Parallel discovery of installed packages under ``node_modules``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from tqdm import tqdm

from .errors import PackageScanError
from .models import InstalledPackageNode

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 50


@dataclass
class ScanResult:
    root: InstalledPackageNode
    packages: List[InstalledPackageNode] = field(default_factory=list)
    timing: Dict[str, float] = field(default_factory=dict)


def _read_manifest(directory: str) -> Optional[Dict[str, Any]]:
    try:
        with open(os.path.join(directory, "package.json"), "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.debug("Skipping %s: %s", directory, exc)
        return None
    return data if isinstance(data, dict) else None


def find_package_dirs(root_path: str) -> List[str]:
    """List package directories under ``root_path/node_modules``, nested ones included."""
    found: List[str] = []
    visited: Set[str] = set()
    pending = deque([os.path.join(root_path, "node_modules")])
    while pending:
        modules_dir = pending.popleft()
        real = os.path.realpath(modules_dir)
        if real in visited:
            continue
        visited.add(real)
        try:
            with os.scandir(modules_dir) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if entry.name.startswith("@"):
                # Scope directories hold packages, not a package themselves.
                pending.append(entry.path)
                continue
            found.append(entry.path)
            nested = os.path.join(entry.path, "node_modules")
            if os.path.isdir(nested):
                pending.append(nested)
    return found


class ParallelDirectoryScanner:
    """Builds a flattened dependency tree from disk using a bounded worker pool.

    Workers pull directory paths from a shared cursor and parse one manifest at
    a time on a thread, so at most ``concurrency`` reads are in flight.
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY, mode: str = "all", show_progress: bool = False) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.mode = mode
        self.show_progress = show_progress

    async def _read_all(self, directories: List[str]) -> List[Optional[Dict[str, Any]]]:
        results: List[Optional[Dict[str, Any]]] = [None] * len(directories)
        cursor = 0
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="manifest-reader")
        progress = tqdm(total=len(directories), desc="Reading manifests", unit="pkg", disable=not self.show_progress)

        async def worker() -> None:
            nonlocal cursor
            while cursor < len(directories):
                index = cursor
                cursor += 1
                results[index] = await loop.run_in_executor(executor, _read_manifest, directories[index])
                progress.update(1)

        try:
            workers = [worker() for _ in range(min(self.concurrency, len(directories)))]
            await asyncio.gather(*workers)
        finally:
            progress.close()
            executor.shutdown(wait=True)
        return results

    async def scan(self, root_path: str) -> ScanResult:
        started = time.perf_counter()
        root_path = os.path.abspath(root_path)
        root_manifest_path = os.path.join(root_path, "package.json")
        try:
            with open(root_manifest_path, "r", encoding="utf-8") as handle:
                root_manifest = json.load(handle)
        except (OSError, ValueError) as exc:
            raise PackageScanError(f"Cannot read root package.json: {exc}") from exc
        if not isinstance(root_manifest, dict):
            raise PackageScanError(f"Cannot read root package.json: {root_manifest_path} is not an object")

        production = set(root_manifest.get("dependencies") or {})
        production.update(root_manifest.get("peerDependencies") or {})
        development = set(root_manifest.get("devDependencies") or {})

        directories = await asyncio.to_thread(find_package_dirs, root_path)
        walked = time.perf_counter()

        manifests = await self._read_all(directories)
        read = time.perf_counter()

        packages: List[InstalledPackageNode] = []
        dependencies: Dict[str, InstalledPackageNode] = {}
        seen: Set[str] = set()
        for directory, manifest in zip(directories, manifests):
            if manifest is None or not manifest.get("name"):
                continue
            name = manifest["name"]
            is_production = name in production
            is_development = name in development
            is_direct = is_production or is_development
            if self.mode == "production" and is_direct and not is_production:
                continue
            if self.mode == "development" and is_direct and not is_development:
                continue

            node = InstalledPackageNode.from_manifest(
                manifest, directory, extraneous=not is_direct
            )
            if node.key is None or node.key in seen:
                continue
            seen.add(node.key)
            packages.append(node)
            dependencies[node.key if node.name in dependencies else node.name] = node

        root = InstalledPackageNode.from_manifest(root_manifest, root_path, root=True, dependencies=dependencies)
        finished = time.perf_counter()
        timing = {
            "walk": walked - started,
            "read": read - walked,
            "total": finished - started,
        }
        logger.debug(
            "Scanned %d packages in %.3fs (walk %.3fs, read %.3fs)",
            len(packages),
            timing["total"],
            timing["walk"],
            timing["read"],
        )
        return ScanResult(root=root, packages=packages, timing=timing)

    def scan_sync(self, root_path: str) -> ScanResult:
        return asyncio.run(self.scan(root_path))
