"""
Interfaces for package tree sources and license file readers.
"""

from __future__ import annotations

from typing import Protocol

from .cache import LicenseFileContent
from .models import InstalledPackageNode


class PackageTreeSource(Protocol):
    """Produce the installed package tree rooted at a project directory."""

    def read_tree(self, start: str) -> InstalledPackageNode:
        ...


class LicenseFileReader(Protocol):
    """Read license and README files, optionally with a checksum."""

    def read(self, path: str, need_checksum: bool = False) -> LicenseFileContent:
        ...

    def exists(self, path: str) -> bool:
        ...
