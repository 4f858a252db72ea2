"""
Helpers for locating license files and extracting text from them.
"""

from __future__ import annotations

import os
import re
from typing import Iterable, List, Optional

_LICENSE_FILE_PATTERNS = (
    re.compile(r"^LICENSE$"),
    re.compile(r"^LICENCE$"),
    re.compile(r"^LICENSE-\w+$"),
    re.compile(r"^MIT-LICENSE$"),
    re.compile(r"^COPYING$"),
    re.compile(r"^README$"),
)

_COPYRIGHT_BOILERPLATE = ("opyright notice", "opyright and related rights")

_GIT_URL_REWRITES = (
    ("git+ssh://git@", "git://"),
    ("git+https://github.com", "https://github.com"),
    ("git://github.com", "https://github.com"),
    ("git@github.com:", "https://github.com/"),
)


def _stem(filename: str) -> str:
    return os.path.splitext(os.path.basename(filename))[0].upper()


def find_license_files(filenames: Iterable[str]) -> List[str]:
    """Pick license candidates from a directory listing, in precedence order.

    At most one file is taken per pattern; matching ignores case and extension.
    """
    names = list(filenames)
    found: List[str] = []
    for pattern in _LICENSE_FILE_PATTERNS:
        for filename in names:
            if filename not in found and pattern.match(_stem(filename)):
                found.append(filename)
                break
    return found


def find_notice_files(filenames: Iterable[str]) -> List[str]:
    return [filename for filename in filenames if _stem(filename) == "NOTICE"]


def extract_copyright(text: str) -> Optional[str]:
    """Return the first copyright paragraph, with ``*`` appended when there are more."""
    blocks = text.replace("\r\n", "\n").split("\n\n")
    matches: List[str] = []
    for block in blocks:
        tail = block[1:]
        if tail.startswith("opyright") and not tail.startswith(_COPYRIGHT_BOILERPLATE):
            if matches and block == matches[0]:
                continue
            matches.append(block)
    if not matches:
        return None
    copyright = matches[0].replace("\n", ". ").strip()
    if len(matches) > 1:
        copyright += "*"
    return copyright


def clip_license_text(text: str, start: Optional[str] = None, end: Optional[str] = None) -> str:
    """Clip ``text`` to the span from the ``start`` marker up to the ``end`` marker.

    A missing or unmatched start keeps the beginning; a missing or unmatched end keeps the rest.
    """
    begin = text.find(start) if start else 0
    if begin < 0:
        begin = 0
    stop = text.find(end, begin) if end else -1
    if stop < 0:
        return text[begin:]
    return text[begin:stop]


def normalize_repository_url(repository) -> Optional[str]:
    """Rewrite git repository references into browsable https URLs."""
    if isinstance(repository, dict):
        repository = repository.get("url")
    if not isinstance(repository, str) or not repository:
        return None
    url = repository
    for prefix, replacement in _GIT_URL_REWRITES:
        url = url.replace(prefix, replacement)
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url
