"""
License check orchestration: tree source, walker, pipeline and policy.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .cache import LicenseFileCache, license_file_cache
from .clarifications import ClarificationResolver
from .collection import PackageCollection
from .errors import LicenseCheckError, NoPackagesFoundError
from .interfaces import PackageTreeSource
from .models import FilterConfiguration, PackageRecord
from .pipeline import FilteringPipeline
from .scanner import DEFAULT_CONCURRENCY
from .sources import ScannerSource, TreeFileSource
from .walker import DependencyTreeWalker

logger = logging.getLogger(__name__)

STRATEGIES = ("eager", "streaming")
SOURCES = ("scanner", "tree")


@dataclass(frozen=True)
class CheckOptions:
    """Settings for one license check run."""

    start: str = "."
    mode: str = "all"
    depth: Optional[int] = None
    source: str = "scanner"
    tree_file: Optional[str] = None
    strategy: str = "eager"
    clarifications_file: Optional[str] = None
    clarifications_match_all: bool = False
    custom_format: Union[str, Mapping[str, Any], None] = None
    relative_license_path: bool = False
    unknown: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    show_progress: bool = False
    filters: FilterConfiguration = field(default_factory=FilterConfiguration)

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unsupported strategy: {self.strategy}")
        if self.source not in SOURCES:
            raise ValueError(f"Unsupported source: {self.source}")
        if self.source == "tree" and not self.tree_file:
            raise ValueError("The tree source requires a tree_file")
        if self.clarifications_match_all and not self.clarifications_file:
            raise ValueError("clarifications_match_all requires a clarifications_file")


@dataclass
class CheckResult:
    packages: Dict[str, PackageRecord] = field(default_factory=dict)
    error: Optional[LicenseCheckError] = None
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: record.to_dict() for key, record in self.packages.items()}


def load_custom_format(custom_format: Union[str, Mapping[str, Any], None]) -> Optional[Dict[str, Any]]:
    if custom_format is None:
        return None
    if isinstance(custom_format, Mapping):
        return dict(custom_format)
    with open(custom_format, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Custom format {custom_format} must be a JSON object")
    return data


class LicenseChecker:
    """Runs the whole check for one project directory."""

    def __init__(
        self,
        options: CheckOptions,
        cache: Optional[LicenseFileCache] = None,
        source: Optional[PackageTreeSource] = None,
    ) -> None:
        self.options = options
        self.cache = cache if cache is not None else license_file_cache
        self.source = source if source is not None else self._default_source()
        if options.clarifications_file:
            self.clarifications = ClarificationResolver.from_file(options.clarifications_file)
        else:
            self.clarifications = ClarificationResolver()
        start = os.path.abspath(options.start)
        self.walker = DependencyTreeWalker(
            clarifications=self.clarifications,
            cache=self.cache,
            custom_format=load_custom_format(options.custom_format),
            base_path=start if options.relative_license_path else None,
            unknown=options.unknown,
        )
        filters = options.filters
        if filters.relative_module_path and not filters.start_path:
            filters = dataclasses.replace(filters, start_path=start)
        self.pipeline = FilteringPipeline(filters)

    def _default_source(self) -> PackageTreeSource:
        if self.options.source == "tree":
            return TreeFileSource(self.options.tree_file)
        return ScannerSource(
            concurrency=self.options.concurrency,
            mode=self.options.mode,
            show_progress=self.options.show_progress,
        )

    def _walk_mode(self) -> str:
        # The scanner has already applied the mode to its flattened tree.
        return "all" if isinstance(self.source, ScannerSource) else self.options.mode

    def _process_eager(self, root) -> Dict[str, PackageRecord]:
        records = self.walker.resolve(root, self.options.depth, self._walk_mode())
        packages: Dict[str, PackageRecord] = {}
        for key in sorted(records):
            processed = self.pipeline.process(key, records[key])
            if processed is not None:
                packages[key] = processed
        return packages

    def _process_streaming(self, root) -> Tuple[Dict[str, PackageRecord], Dict[str, Any]]:
        collection = PackageCollection(self.cache)
        self.walker.collect(root, collection, self.options.depth, self._walk_mode())
        packages: Dict[str, PackageRecord] = {}
        for key, record in collection.stream_records():
            processed = self.pipeline.process(key, record)
            if processed is not None:
                packages[key] = processed
        stats = collection.get_stats()
        collection.cleanup()
        return packages, stats

    def run(self) -> CheckResult:
        """Run the check.

        Returns:
            A ``CheckResult``. An empty result carries ``NoPackagesFoundError``;
            other ``LicenseCheckError`` failures propagate.
        """
        start = os.path.abspath(self.options.start)
        root = self.source.read_tree(start)

        stats: Dict[str, Any] = {}
        if self.options.strategy == "streaming":
            packages, stats["collection"] = self._process_streaming(root)
        else:
            packages = self._process_eager(root)

        if self.options.clarifications_match_all:
            self.clarifications.assert_all_used()

        stats["pipeline"] = self.pipeline.get_stats()
        stats["license_files"] = self.cache.get_stats()
        logger.debug("Pipeline stats: %s", stats["pipeline"])
        logger.debug("License file cache stats: %s", stats["license_files"])

        result = CheckResult(packages=packages, stats=stats)
        if not packages:
            result.error = NoPackagesFoundError(start)
        return result


def check_licenses(
    options: CheckOptions,
    cache: Optional[LicenseFileCache] = None,
    source: Optional[PackageTreeSource] = None,
) -> Tuple[Optional[LicenseCheckError], Dict[str, PackageRecord]]:
    """Run a check and return ``(error, packages)`` instead of raising."""
    try:
        result = LicenseChecker(options, cache=cache, source=source).run()
    except LicenseCheckError as exc:
        return exc, {}
    return result.error, result.packages
