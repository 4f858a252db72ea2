"""
User-supplied license clarifications keyed by package name and semver range.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import semantic_version

from .errors import UnusedClarificationsError
from .models import Clarification

logger = logging.getLogger(__name__)


def npm_satisfies(version: str, semver_range: str) -> bool:
    """True when ``version`` satisfies the npm ``semver_range``; invalid input never matches."""
    try:
        parsed = semantic_version.Version(version.lstrip("v="))
        spec = semantic_version.NpmSpec(semver_range)
    except ValueError:
        return False
    return spec.match(parsed)


class ClarificationResolver:
    """Finds the clarification that applies to an installed package."""

    def __init__(self, clarifications: Optional[List[Clarification]] = None) -> None:
        self._by_name: Dict[str, List[Clarification]] = {}
        for clarification in clarifications or []:
            self._by_name.setdefault(clarification.name, []).append(clarification)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ClarificationResolver:
        clarifications = []
        for key, entry in data.items():
            split = key.rfind("@")
            if split <= 0:
                logger.warning("Ignoring clarification %r: expected name@range", key)
                continue
            if not isinstance(entry, Mapping):
                logger.warning("Ignoring clarification %r: entry is not an object", key)
                continue
            clarifications.append(Clarification.from_entry(key[:split], key[split + 1 :], entry))
        return cls(clarifications)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> ClarificationResolver:
        with open(path, "r", encoding="utf-8") as handle:
            return cls.from_mapping(json.load(handle))

    def find(self, name: Optional[str], version: Optional[str]) -> Optional[Clarification]:
        if not name or not version:
            return None
        for clarification in self._by_name.get(name, []):
            if clarification.semver_range == version or npm_satisfies(version, clarification.semver_range):
                clarification.used = True
                return clarification
        return None

    def all(self) -> List[Clarification]:
        return [item for items in self._by_name.values() for item in items]

    def unused(self) -> List[str]:
        return [item.label for item in self.all() if not item.used]

    def assert_all_used(self) -> None:
        unused = self.unused()
        if unused:
            raise UnusedClarificationsError(unused)

    def __len__(self) -> int:
        return len(self.all())
