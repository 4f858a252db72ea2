"""
SPDX expression validity and satisfaction checks.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Optional, Sequence, Union

from license_expression import ExpressionError, get_spdx_licensing

from .models import UNKNOWN

BSD_EXPANSION = "(0BSD OR BSD-2-Clause OR BSD-3-Clause OR BSD-4-Clause)"

_REFERENCE_PREFIXES = ("LicenseRef-", "DocumentRef-")
_OR_LATER = re.compile(r"(?<=[A-Za-z0-9.])\+(?=\s|\)|$)")

_licensing = get_spdx_licensing()


@lru_cache(maxsize=4096)
def _parse(expression: str):
    """Parse an SPDX expression, returning None when it is not valid."""
    if not expression or not expression.strip():
        return None
    for candidate in (expression, _OR_LATER.sub("", expression)):
        try:
            parsed = _licensing.parse(candidate)
        except (ExpressionError, ValueError, TypeError):
            continue
        if parsed is None:
            continue
        unknown = [
            key
            for key in _licensing.unknown_license_keys(parsed)
            if not key.startswith(_REFERENCE_PREFIXES)
        ]
        if not unknown:
            return parsed
    return None


def is_valid_expression(expression: str) -> bool:
    """True when ``expression`` is a syntactically valid SPDX expression."""
    return _parse(expression) is not None


def expand_bsd(term: str) -> str:
    return BSD_EXPANSION if term == "BSD" else term


def composed_license(licenses: Union[str, Sequence[str], None]) -> str:
    if licenses is None:
        return ""
    if isinstance(licenses, str):
        return licenses
    return ", ".join(licenses)


def _symbol_key(symbol) -> str:
    license_symbol = getattr(symbol, "license_symbol", None)
    exception_symbol = getattr(symbol, "exception_symbol", None)
    if license_symbol is not None and exception_symbol is not None:
        return f"{license_symbol.key} WITH {exception_symbol.key}"
    return symbol.key


def _conjunctions(node) -> List[FrozenSet[str]]:
    """Disjunctive normal form of a parsed expression as sets of symbol keys."""
    if isinstance(node, _licensing.OR):
        result: List[FrozenSet[str]] = []
        for arg in node.args:
            result.extend(_conjunctions(arg))
        return result
    if isinstance(node, _licensing.AND):
        result = [frozenset()]
        for arg in node.args:
            result = [left | right for left in result for right in _conjunctions(arg)]
        return result
    return [frozenset((_symbol_key(node),))]


def _flatten(node) -> FrozenSet[str]:
    keys: FrozenSet[str] = frozenset()
    for clause in _conjunctions(node):
        keys |= clause
    return keys


class SpdxMatcher:
    """Decides whether resolved licenses satisfy include/exclude lists."""

    def satisfies(self, expression: str, allowed: Sequence[str]) -> bool:
        """True when some AND-clause of ``expression`` uses only ``allowed`` licenses."""
        parsed = _parse(expression)
        if parsed is None:
            return False
        allowed_keys: FrozenSet[str] = frozenset()
        for term in allowed:
            term_parsed = _parse(term)
            if term_parsed is not None:
                allowed_keys |= _flatten(term_parsed)
        return any(clause <= allowed_keys for clause in _conjunctions(parsed))

    def matches(self, resolved: Union[str, Sequence[str], None], comparison: Iterable[str]) -> bool:
        if resolved is None:
            return False
        licenses = [resolved] if isinstance(resolved, str) else list(resolved)
        terms = [expand_bsd(term) for term in comparison]
        valid_terms = [term for term in terms if is_valid_expression(term)]
        invalid_terms = [term for term in terms if not is_valid_expression(term)]

        for license in licenses:
            if UNKNOWN in license:
                return True
            candidate = license[:-1] if license.endswith("*") else license
            candidate = expand_bsd(candidate)
            if candidate in invalid_terms:
                return True
            if valid_terms and self.satisfies(candidate, valid_terms):
                return True
        return False

    @staticmethod
    def contains_any(composed: str, terms: Iterable[str]) -> Optional[str]:
        """Return the first term found as a substring of ``composed``."""
        for term in terms:
            if term and term in composed:
                return term
        return None


default_matcher = SpdxMatcher()
