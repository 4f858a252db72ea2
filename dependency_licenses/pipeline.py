"""
Single-pass filtering and transformation of resolved package records.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any, Dict, Optional

from .errors import FailOnLicenseError, OnlyAllowLicenseError
from .models import UNKNOWN, UNLICENSED, FilterConfiguration, PackageRecord
from .spdx import SpdxMatcher, composed_license, default_matcher

logger = logging.getLogger(__name__)

_BOLD_RED = "\x1b[1m\x1b[31m"
_RESET = "\x1b[39m\x1b[22m"


def colorize_text(text: str) -> str:
    return f"{_BOLD_RED}{text}{_RESET}"


def _package_matches(key: str, term: str) -> bool:
    """Match ``name@version`` against a bare name or a ``name@version`` prefix."""
    prefix = term if term.rfind("@") > 0 else f"{term}@"
    return key.startswith(prefix)


class FilteringPipeline:
    """Applies every filter and transformation to a record in one pass."""

    def __init__(self, config: FilterConfiguration, matcher: Optional[SpdxMatcher] = None) -> None:
        self.config = config
        self.matcher = matcher or default_matcher
        self._processed = 0
        self._passed = 0

    def process(self, key: str, record: PackageRecord) -> Optional[PackageRecord]:
        """Filter and transform one record.

        Args:
            key: The package key (``name@version``).
            record: The resolved record.

        Returns:
            The transformed record, or None when a filter rejects it.

        Raises:
            FailOnLicenseError: the license matches a fail-on term.
            OnlyAllowLicenseError: the license matches none of the only-allow terms.
        """
        self._processed += 1
        if not self._passes_filters(key, record):
            return None

        record = self._transform(record)
        self._check_policy(key, record)
        self._passed += 1
        return record

    def _passes_filters(self, key: str, record: PackageRecord) -> bool:
        config = self.config
        licenses = record.licenses

        if licenses:
            if config.exclude_licenses and self.matcher.matches(licenses, config.exclude_licenses):
                return False
            if config.include_licenses and not self.matcher.matches(licenses, config.include_licenses):
                return False

        if config.include_packages and not any(_package_matches(key, term) for term in config.include_packages):
            return False
        if config.exclude_packages and any(_package_matches(key, term) for term in config.exclude_packages):
            return False
        if config.exclude_packages_starting_with and any(
            key.startswith(prefix) for prefix in config.exclude_packages_starting_with
        ):
            return False

        if config.exclude_private_packages and record.private:
            return False

        if config.only_unknown:
            if not isinstance(licenses, str) or ("*" not in licenses and UNKNOWN not in licenses):
                return False

        return True

    def _transform(self, record: PackageRecord) -> PackageRecord:
        config = self.config
        changes: Dict[str, Any] = {}
        licenses = record.licenses

        if record.private:
            changes["licenses"] = colorize_text(UNLICENSED) if config.colorize else UNLICENSED
        elif not licenses:
            changes["licenses"] = colorize_text(UNKNOWN) if config.colorize else UNKNOWN
        elif (config.only_unknown or config.unknown) and isinstance(licenses, str) and "*" in licenses:
            changes["licenses"] = colorize_text(UNKNOWN) if config.colorize else UNKNOWN

        if config.relative_module_path and record.path and config.start_path:
            changes["path"] = os.path.relpath(record.path, config.start_path)

        return dataclasses.replace(record, **changes) if changes else record

    def _check_policy(self, key: str, record: PackageRecord) -> None:
        config = self.config
        if not config.fail_on and not config.only_allow:
            return
        composed = composed_license(record.licenses)
        if config.fail_on:
            term = self.matcher.contains_any(composed, config.fail_on)
            if term is not None:
                logger.debug("Package %s matched fail-on term %s", key, term)
                raise FailOnLicenseError(key, composed)
        if config.only_allow and self.matcher.contains_any(composed, config.only_allow) is None:
            raise OnlyAllowLicenseError(key, composed)

    def get_stats(self) -> Dict[str, float]:
        return {
            "processed": self._processed,
            "filtered": self._passed,
            "rejection_rate": (self._processed - self._passed) / self._processed if self._processed else 0.0,
        }

    def reset(self) -> None:
        self._processed = 0
        self._passed = 0
