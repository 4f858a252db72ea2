"""
Package tree sources: on-disk scanning and pre-expanded tree files.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from .errors import PackageScanError
from .interfaces import PackageTreeSource
from .models import InstalledPackageNode
from .scanner import DEFAULT_CONCURRENCY, ParallelDirectoryScanner

logger = logging.getLogger(__name__)


class ScannerSource(PackageTreeSource):
    """Build the tree by scanning ``node_modules`` with the parallel scanner."""

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY, mode: str = "all", show_progress: bool = False) -> None:
        self.scanner = ParallelDirectoryScanner(concurrency=concurrency, mode=mode, show_progress=show_progress)

    def read_tree(self, start: str) -> InstalledPackageNode:
        result = self.scanner.scan_sync(start)
        logger.info("Found %d installed packages under %s", len(result.packages), start)
        return result.root


class TreeFileSource(PackageTreeSource):
    """Load a tree written as JSON by an external package-graph reader.

    Relative ``path`` entries are resolved against ``start``.
    """

    def __init__(self, tree_file: str) -> None:
        self.tree_file = tree_file

    def read_tree(self, start: Optional[str] = None) -> InstalledPackageNode:
        try:
            with open(self.tree_file, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise PackageScanError(f"Cannot read dependency tree {self.tree_file}: {exc}") from exc
        if not isinstance(data, dict):
            raise PackageScanError(f"Dependency tree {self.tree_file} must be a JSON object")
        if start:
            _absolutize_paths(data, os.path.abspath(start))
        return InstalledPackageNode.from_tree(data)


def _absolutize_paths(data: dict, start: str) -> None:
    pending = [data]
    while pending:
        item = pending.pop()
        path = item.get("path")
        if isinstance(path, str) and path and not os.path.isabs(path):
            item["path"] = os.path.join(start, path)
        elif "path" not in item and item is data:
            item["path"] = start
        for child in (item.get("dependencies") or {}).values():
            if isinstance(child, dict):
                pending.append(child)
