"""
Best-effort license detection from free text (README and license files).
"""

from __future__ import annotations

import re
from typing import Any, Optional

from .spdx import is_valid_expression

_LICENSE_URL = re.compile(
    r"(?:\blicen[cs]e\s*:|\bsee\s+licen[cs]e\s+at)\s*(https?://[-a-zA-Z0-9/.:_%?#=&~+]*)",
    re.IGNORECASE,
)
_FILE_REFERENCE = re.compile(r"\bSEE LICEN[CS]E IN\s+(\S.*)", re.IGNORECASE)
_BARE_URL = re.compile(r"\s*https?://\S*\s*")

_ISC_LICENSE = re.compile(r"The ISC License")
_MIT_LICENSE = re.compile(r"ermission is hereby granted, free of charge, to any")
_BSD_LICENSE = re.compile(r"edistribution and use in source and binary forms, with or withou")
_BSD_SOURCE_CODE_LICENSE = re.compile(
    r"edistribution and use of this software in source and binary forms, with or withou"
)
_WTFPL_LICENSE = re.compile(r"DO WHAT THE FUCK YOU WANT TO PUBLIC LICENSE")
_GPL = re.compile(r"\bGNU GENERAL PUBLIC LICENSE\s*Version ([^,]*)", re.IGNORECASE)
_LGPL = re.compile(r"(?:LESSER|LIBRARY) GENERAL PUBLIC LICENSE\s*Version ([^,]*)", re.IGNORECASE)
_APACHE_VERSION = re.compile(r"\bApache License\s*Version ([^,\s]*)", re.IGNORECASE)
_APACHE = re.compile(r"\bApache License\b")
_MIT = re.compile(r"\bMIT\b")
_BSD = re.compile(r"\bBSD\b")
_ISC = re.compile(r"\bISC\b")
_WTFPL = re.compile(r"\bWTFPL\b")
_CC0_1_0 = re.compile(
    r"The\s+person\s+who\s+associated\s+a\s+work\s+with\s+this\s+deed\s+has\s+dedicated\s+the\s+"
    r"work\s+to\s+the\s+public\s+domain\s+by\s+waiving\s+all\s+of\s+his\s+or\s+her\s+rights\s+to\s+"
    r"the\s+work\s+worldwide\s+under\s+copyright\s+law",
    re.IGNORECASE,
)
_PUBLIC_DOMAIN = re.compile(r"public[-_ ]*domain", re.IGNORECASE)

_PHRASES = (
    (_ISC_LICENSE, "ISC*"),
    (_MIT_LICENSE, "MIT*"),
    (_BSD_LICENSE, "BSD*"),
    (_BSD_SOURCE_CODE_LICENSE, "BSD-Source-Code*"),
    (_WTFPL_LICENSE, "WTFPL*"),
)

_WORDS = (
    (_MIT, "MIT*"),
    (_BSD, "BSD*"),
    (_ISC, "ISC*"),
    (_WTFPL, "WTFPL*"),
    (_CC0_1_0, "CC0-1.0*"),
)


def _versioned(prefix: str, version: str) -> str:
    version = version.strip().split()[0] if version.strip() else ""
    if version.isdigit():
        version = f"{version}.0"
    return f"{prefix}-{version}*"


def classify(text: Any = None) -> Optional[str]:
    """Guess a license identifier from free text.

    Args:
        text: README or license file content. ``None`` is treated as undefined.

    Returns:
        The SPDX expression unchanged when ``text`` is one, ``Custom: <ref>`` for
        URL and file references, a guessed identifier suffixed with ``*``,
        ``Public Domain``, or None when nothing is recognized.
    """
    if text is None:
        text = "undefined"
    if not isinstance(text, str):
        raise TypeError(f"license text must be a string, got {type(text).__name__}")

    if text.replace("\n", "") == "undefined":
        return "Undefined"

    # Whole documents are never a single expression; skip the parser for them.
    expression = text.strip()
    if expression and "\n" not in expression and is_valid_expression(expression):
        return expression

    match = _LICENSE_URL.search(text)
    if match:
        return f"Custom: {match.group(1)}"

    match = _FILE_REFERENCE.search(text)
    if match:
        return f"Custom: {match.group(1).strip()}"

    if _BARE_URL.fullmatch(text):
        return None

    for pattern, identifier in _PHRASES:
        if pattern.search(text):
            return identifier

    match = _GPL.search(text)
    if match:
        return _versioned("GPL", match.group(1))

    match = _LGPL.search(text)
    if match:
        return _versioned("LGPL", match.group(1))

    match = _APACHE_VERSION.search(text)
    if match:
        return _versioned("Apache", match.group(1))

    if _APACHE.search(text):
        return "Apache*"

    for pattern, identifier in _WORDS:
        if pattern.search(text):
            return identifier

    if _PUBLIC_DOMAIN.search(text):
        return "Public Domain"

    return None
