"""
Dependency tree traversal and per-package license resolution.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from .cache import license_file_cache
from .clarifications import ClarificationResolver
from .classifier import classify
from .errors import ChecksumMismatchError, MissingChecksumError
from .interfaces import LicenseFileReader
from .license_files import (
    clip_license_text,
    extract_copyright,
    find_license_files,
    find_notice_files,
    normalize_repository_url,
)
from .models import RECORD_KEYS, UNKNOWN, InstalledPackageNode, LicenseField, PackageRecord

logger = logging.getLogger(__name__)

MODES = ("all", "production", "development")

_NO_README = "no readme data found"


def _is_unknown(licenses: Any) -> bool:
    if isinstance(licenses, (str, list)):
        return UNKNOWN in licenses
    return licenses is None


class DependencyTreeWalker:
    """Resolves every package of an installed tree into a ``PackageRecord``.

    Traversal uses an explicit stack so deep trees never hit the recursion
    limit, and a visited set on ``name@version`` so cyclic graphs terminate.
    """

    def __init__(
        self,
        clarifications: Optional[ClarificationResolver] = None,
        cache: Optional[LicenseFileReader] = None,
        custom_format: Optional[Mapping[str, Any]] = None,
        base_path: Optional[str] = None,
        unknown: bool = False,
    ) -> None:
        self.clarifications = clarifications if clarifications is not None else ClarificationResolver()
        self.cache = cache if cache is not None else license_file_cache
        self.custom_format = dict(custom_format) if custom_format else None
        self.base_path = base_path
        self.unknown = unknown

    def _must_include(self, key: str) -> bool:
        return not self.custom_format or self.custom_format.get(key) is not False

    def iter_nodes(
        self,
        root: InstalledPackageNode,
        depth_limit: Optional[int] = None,
        mode: str = "all",
    ) -> Iterator[InstalledPackageNode]:
        """Yield nodes in pre-order, once per ``name@version``.

        A child deeper than ``depth_limit`` is yielded but not expanded.
        """
        if mode not in MODES:
            raise ValueError(f"Unsupported mode: {mode}")
        seen_keys = set()
        seen_nodes = set()
        stack: List[Tuple[InstalledPackageNode, int]] = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            key = node.key
            if key is not None:
                if key in seen_keys:
                    continue
                seen_keys.add(key)
            else:
                if id(node) in seen_nodes:
                    continue
                seen_nodes.add(id(node))

            if mode == "production" and node.extraneous:
                continue
            if mode == "development" and not node.extraneous and not node.root:
                continue

            yield node

            if depth_limit is not None and depth > depth_limit:
                continue
            children = list(node.dependencies.values())
            for child in reversed(children):
                stack.append((child, depth + 1))

    def resolve(
        self,
        root: InstalledPackageNode,
        depth_limit: Optional[int] = None,
        mode: str = "all",
    ) -> Dict[str, PackageRecord]:
        records: Dict[str, PackageRecord] = {}
        for node in self.iter_nodes(root, depth_limit, mode):
            if node.key is None:
                continue
            records[node.key] = self.resolve_node(node)
        return records

    def collect(self, root: InstalledPackageNode, collection, depth_limit: Optional[int] = None, mode: str = "all") -> None:
        """Register nodes with a ``PackageCollection``; records resolve on first read."""
        for node in self.iter_nodes(root, depth_limit, mode):
            if node.key is None:
                continue
            collection.add_node(node, self.resolve_node)

    def _readme(self, module_path: Optional[str], node: InstalledPackageNode) -> Optional[str]:
        if node.readme and _NO_README not in node.readme:
            return node.readme
        if not module_path:
            return None
        readme_path = os.path.join(module_path, "README.md")
        if not self.cache.exists(readme_path):
            return None
        try:
            return self.cache.read(readme_path).content
        except OSError as exc:
            logger.debug("Could not read %s: %s", readme_path, exc)
            return None

    def _list_dir(self, module_path: Optional[str]) -> List[str]:
        if not module_path:
            return []
        try:
            return sorted(os.listdir(module_path))
        except OSError as exc:
            logger.debug("Could not list %s: %s", module_path, exc)
            return []

    def resolve_node(self, node: InstalledPackageNode) -> PackageRecord:
        """Resolve one package, applying any matching clarification.

        Raises:
            ChecksumMismatchError: a clarification checksum does not match the license file.
            MissingChecksumError: a clarification checksum could not be verified.
        """
        key = node.key or node.name or "<unnamed>"
        clarification = self.clarifications.find(node.name, node.version)

        def clarified(name: str, fallback: Any = None) -> Any:
            value = clarification.get(name) if clarification else None
            return fallback if value is None else value

        record: Dict[str, Any] = {"licenses": UNKNOWN}
        extra: Dict[str, Any] = {}

        if node.private:
            record["private"] = True

        if self._must_include("repository"):
            repository = normalize_repository_url(clarified("repository", node.repository))
            if repository:
                record["repository"] = repository

        if self._must_include("url"):
            web_url = node.url.get("web") if isinstance(node.url, dict) else None
            url = clarified("url", web_url)
            if isinstance(url, str) and url:
                record["url"] = url

        author = node.author or {}
        if self._must_include("publisher"):
            publisher = clarified("publisher", author.get("name"))
            if publisher:
                record["publisher"] = publisher
        if self._must_include("email"):
            email = clarified("email", author.get("email"))
            if email:
                record["email"] = email
        if self._must_include("url") and "url" not in record:
            author_url = clarified("url", author.get("url"))
            if author_url:
                record["url"] = author_url

        if self.unknown and node.path:
            record["dependency_path"] = node.path

        module_path = clarified("path", node.path)
        if self._must_include("path") and isinstance(module_path, str) and module_path:
            record["path"] = module_path

        declared = LicenseField.from_raw(clarification.licenses) if clarification else None
        declared = declared or node.license
        if declared is not None:
            record["licenses"] = declared.value
        else:
            readme = self._readme(module_path, node)
            guessed = classify(readme) if readme else None
            if guessed:
                record["licenses"] = guessed

        filenames = self._list_dir(module_path)
        if clarification and clarification.license_file:
            license_candidates = [clarification.license_file]
        else:
            license_candidates = find_license_files(filenames)

        checksum_verified = not (clarification and clarification.checksum)
        for index, filename in enumerate(license_candidates):
            license_path = os.path.join(module_path or "", filename)
            if not self.cache.exists(license_path):
                continue
            try:
                if _is_unknown(record["licenses"]):
                    guessed = classify(self.cache.read(license_path).content)
                    record["licenses"] = guessed or UNKNOWN
                if index != 0:
                    continue

                if not checksum_verified:
                    checksum = self.cache.read(license_path, need_checksum=True).checksum
                    if checksum != clarification.checksum:
                        raise ChecksumMismatchError(key, license_path)
                    checksum_verified = True

                if self._must_include("licenseFile"):
                    if clarification and clarification.license_file:
                        record["license_file"] = clarification.license_file
                    elif self.base_path:
                        record["license_file"] = os.path.relpath(license_path, self.base_path)
                    else:
                        record["license_file"] = license_path

                if self.custom_format and self._must_include("licenseText"):
                    text = clarified("licenseText")
                    if text is None:
                        text = self.cache.read(license_path).content.strip()
                    record["license_text"] = clip_license_text(
                        text, clarified("licenseStart"), clarified("licenseEnd")
                    )

                if self.custom_format and self._must_include("copyright"):
                    copyright = clarified("copyright")
                    if copyright is None:
                        copyright = extract_copyright(self.cache.read(license_path).content)
                    if copyright:
                        record["copyright"] = copyright
            except OSError as exc:
                logger.debug("Could not read license file %s: %s", license_path, exc)

        if not checksum_verified:
            raise MissingChecksumError(key)

        if self._must_include("noticeFile"):
            for filename in find_notice_files(filenames):
                notice_path = os.path.join(module_path, filename)
                if os.path.isfile(notice_path):
                    if self.base_path:
                        notice_path = os.path.relpath(notice_path, self.base_path)
                    record["notice_file"] = notice_path
                    break

        if self.custom_format:
            self._fill_custom_format(node, record, extra, clarified)

        return PackageRecord(extra=extra, **record)

    def _fill_custom_format(
        self,
        node: InstalledPackageNode,
        record: Dict[str, Any],
        extra: Dict[str, Any],
        clarified: Callable[[str, Any], Any],
    ) -> None:
        """Give every custom-format key still unset its clarified, manifest or default value."""
        for name, default in self.custom_format.items():
            attribute = _ATTRIBUTES.get(name)
            if default is False or attribute == "private":
                continue
            if attribute is not None and record.get(attribute) is not None:
                continue
            manifest_value = node.manifest.get(name)
            fallback = manifest_value if isinstance(manifest_value, str) else default
            value = clarified(name, fallback)
            if attribute is None:
                extra[name] = value
            else:
                record[attribute] = value


_ATTRIBUTES = {output: attribute for attribute, output in RECORD_KEYS.items()}
