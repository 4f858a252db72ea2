"""
Core data models for dependency license resolution.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

UNKNOWN = "UNKNOWN"
UNLICENSED = "UNLICENSED"

LicenseValue = Union[str, List[str]]

_AUTHOR_PATTERN = re.compile(r"^\s*([^<(]*?)\s*(?:<([^>]*)>)?\s*(?:\(([^)]*)\))?\s*$")


@dataclass(frozen=True)
class LicenseField:
    """Normalized declared license: one or more identifiers."""

    identifiers: Tuple[str, ...]

    @classmethod
    def from_raw(cls, raw: Any) -> Optional[LicenseField]:
        """Normalize a manifest ``license``/``licenses`` value.

        Accepts a string, a ``{"type": ...}`` / ``{"name": ...}`` object, or a
        list of either. Returns None when nothing is declared.
        """
        if raw is None:
            return None
        if isinstance(raw, str):
            return cls((raw,)) if raw else None
        if isinstance(raw, Mapping):
            return cls((_license_entry(raw),))
        if isinstance(raw, (list, tuple)):
            if not raw:
                return None
            return cls(tuple(_license_entry(item) for item in raw))
        return cls((UNKNOWN,))

    @property
    def value(self) -> LicenseValue:
        if len(self.identifiers) == 1:
            return self.identifiers[0]
        return list(self.identifiers)


def _license_entry(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        for key in ("type", "name"):
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    return UNKNOWN


def parse_author(raw: Any) -> Optional[Dict[str, str]]:
    """Normalize an npm ``author`` field into a ``name/email/url`` dict."""
    if isinstance(raw, Mapping):
        author = {key: raw[key] for key in ("name", "email", "url") if isinstance(raw.get(key), str)}
        return author or None
    if isinstance(raw, str) and raw.strip():
        match = _AUTHOR_PATTERN.match(raw)
        if not match:
            return {"name": raw.strip()}
        name, email, url = match.groups()
        author = {}
        if name:
            author["name"] = name
        if email:
            author["email"] = email
        if url:
            author["url"] = url
        return author or None
    return None


@dataclass(frozen=True)
class InstalledPackageNode:
    """One installed package in the dependency tree."""

    name: Optional[str]
    version: Optional[str]
    path: Optional[str] = None
    private: bool = False
    license: Optional[LicenseField] = None
    repository: Any = None
    author: Optional[Dict[str, str]] = None
    homepage: Optional[str] = None
    url: Any = None
    readme: Optional[str] = None
    extraneous: bool = False
    root: bool = False
    dependencies: Dict[str, InstalledPackageNode] = field(default_factory=dict)
    manifest: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> Optional[str]:
        if not self.name or not self.version:
            return None
        return f"{self.name}@{self.version}"

    @classmethod
    def from_manifest(
        cls,
        manifest: Mapping[str, Any],
        path: Optional[str] = None,
        *,
        extraneous: bool = False,
        root: bool = False,
        dependencies: Optional[Dict[str, InstalledPackageNode]] = None,
    ) -> InstalledPackageNode:
        license_raw = manifest.get("license")
        if license_raw is None or license_raw == "":
            license_raw = manifest.get("licenses")
        readme = manifest.get("readme")
        return cls(
            name=manifest.get("name") or None,
            version=manifest.get("version") or None,
            path=path,
            private=bool(manifest.get("private", False)),
            license=LicenseField.from_raw(license_raw),
            repository=manifest.get("repository"),
            author=parse_author(manifest.get("author")),
            homepage=manifest.get("homepage") if isinstance(manifest.get("homepage"), str) else None,
            url=manifest.get("url"),
            readme=readme if isinstance(readme, str) else None,
            extraneous=extraneous,
            root=root,
            dependencies=dict(dependencies or {}),
            manifest=dict(manifest),
        )

    @classmethod
    def from_tree(cls, data: Mapping[str, Any], name: Optional[str] = None, *, root: bool = True) -> InstalledPackageNode:
        """Build a node from a pre-expanded tree as written by a package-graph reader.

        Children given as bare version strings carry no metadata and are skipped.
        Nodes are built children first from an explicit stack, so nesting depth is
        not bounded by the recursion limit.
        """
        frames = []
        pending = [(data, name, root, None)]
        while pending:
            item, item_name, is_root, parent = pending.pop()
            children: Dict[str, Any] = {}
            for child_name, child in (item.get("dependencies") or {}).items():
                if not isinstance(child, Mapping):
                    continue
                # Placeholder keeps the declared child order.
                children[child_name] = None
                pending.append((child, child_name, False, children))
            frames.append((item, item_name, is_root, parent, children))

        node = None
        for item, item_name, is_root, parent, children in reversed(frames):
            manifest = dict(item)
            manifest.pop("dependencies", None)
            if item_name and not manifest.get("name"):
                manifest["name"] = item_name
            node = cls.from_manifest(
                manifest,
                item.get("path"),
                extraneous=bool(item.get("extraneous", False)),
                root=is_root,
                dependencies=children,
            )
            if parent is not None:
                parent[item_name] = node
        return node


@dataclass
class Clarification:
    """A user-supplied override for packages matching a name and semver range."""

    name: str
    semver_range: str
    licenses: Any = None
    license_file: Optional[str] = None
    license_text: Optional[str] = None
    license_start: Optional[str] = None
    license_end: Optional[str] = None
    copyright: Optional[str] = None
    repository: Optional[str] = None
    url: Optional[str] = None
    publisher: Optional[str] = None
    email: Optional[str] = None
    path: Optional[str] = None
    checksum: Optional[str] = None
    custom: Dict[str, Any] = field(default_factory=dict)
    used: bool = False

    _KEYS = {
        "licenses": "licenses",
        "licenseFile": "license_file",
        "licenseText": "license_text",
        "licenseStart": "license_start",
        "licenseEnd": "license_end",
        "copyright": "copyright",
        "repository": "repository",
        "url": "url",
        "publisher": "publisher",
        "email": "email",
        "path": "path",
        "checksum": "checksum",
    }

    @classmethod
    def from_entry(cls, name: str, semver_range: str, entry: Mapping[str, Any]) -> Clarification:
        known = {}
        custom = {}
        for key, value in entry.items():
            if key in cls._KEYS:
                known[cls._KEYS[key]] = value
            else:
                custom[key] = value
        return cls(name=name, semver_range=semver_range, custom=custom, **known)

    @property
    def label(self) -> str:
        return f"{self.name}@{self.semver_range}"

    def get(self, key: str) -> Any:
        """Look up an override by its output (camelCase) key."""
        if key in self._KEYS:
            return getattr(self, self._KEYS[key])
        return self.custom.get(key)


RECORD_KEYS = {
    "licenses": "licenses",
    "license_file": "licenseFile",
    "license_text": "licenseText",
    "copyright": "copyright",
    "notice_file": "noticeFile",
    "repository": "repository",
    "publisher": "publisher",
    "email": "email",
    "url": "url",
    "path": "path",
    "dependency_path": "dependencyPath",
    "private": "private",
}


@dataclass(frozen=True)
class PackageRecord:
    """Resolved output row for one ``name@version``."""

    licenses: Optional[LicenseValue] = UNKNOWN
    license_file: Optional[str] = None
    license_text: Optional[str] = None
    copyright: Optional[str] = None
    notice_file: Optional[str] = None
    repository: Optional[str] = None
    publisher: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None
    path: Optional[str] = None
    dependency_path: Optional[str] = None
    private: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Output form with camelCase keys; unset fields are omitted."""
        data: Dict[str, Any] = {}
        for item in fields(self):
            if item.name == "extra":
                continue
            value = getattr(self, item.name)
            if value is None or (item.name == "private" and not value):
                continue
            data[RECORD_KEYS[item.name]] = list(value) if isinstance(value, list) else value
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PackageRecord:
        by_output_key = {output: attr for attr, output in RECORD_KEYS.items()}
        known: Dict[str, Any] = {"licenses": None}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key in by_output_key:
                known[by_output_key[key]] = list(value) if isinstance(value, list) else value
            elif key not in ("name", "version"):
                extra[key] = value
        return cls(extra=extra, **known)


@dataclass(frozen=True)
class FilterConfiguration:
    """Filter and policy settings applied by the filtering pipeline."""

    exclude_licenses: Tuple[str, ...] = ()
    include_licenses: Tuple[str, ...] = ()
    include_packages: Tuple[str, ...] = ()
    exclude_packages: Tuple[str, ...] = ()
    exclude_packages_starting_with: Tuple[str, ...] = ()
    exclude_private_packages: bool = False
    only_unknown: bool = False
    unknown: bool = False
    fail_on: Tuple[str, ...] = ()
    only_allow: Tuple[str, ...] = ()
    colorize: bool = False
    relative_module_path: bool = False
    start_path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.fail_on and self.only_allow:
            raise ValueError("fail_on and only_allow cannot be used together")
