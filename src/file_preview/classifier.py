# SPDX-License-Identifier: AGPL-3.0-or-later
"""MIME eligibility checks for preview generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from . import mime_types

__all__ = [
    "DEFAULT_PATTERNS",
    "ExactMatcher",
    "MimeClassifier",
    "MimeMatcher",
    "PrefixMatcher",
    "parse_pattern",
]

DEFAULT_PATTERNS: Tuple[str, ...] = (
    "image/*",
    mime_types.PDF,
    mime_types.DOCX,
)

# ``(.*)`` is the regex-flavoured wildcard accepted for older pattern lists
_WILDCARDS = ("(.*)", "*")


@dataclass(frozen=True)
class ExactMatcher:
    value: str

    def matches(self, mime: str) -> bool:
        return mime == self.value


@dataclass(frozen=True)
class PrefixMatcher:
    """Matches any MIME that starts with ``prefix`` (the wildcard tail may be empty)."""

    prefix: str

    def matches(self, mime: str) -> bool:
        return mime.startswith(self.prefix)


MimeMatcher = ExactMatcher | PrefixMatcher


def parse_pattern(pattern: str) -> MimeMatcher:
    """Translate ``pattern`` into a matcher.

    ``image/*`` and ``image/(.*)`` become a :class:`PrefixMatcher` on
    ``image/``; anything without a wildcard is matched literally. Wildcards are
    only understood at the end of a pattern.
    """

    value = pattern.strip().lower()
    if not value:
        raise ValueError("MIME pattern must not be empty")
    for wildcard in _WILDCARDS:
        if value.endswith(wildcard):
            prefix = value[: -len(wildcard)]
            if "*" in prefix:
                break
            return PrefixMatcher(prefix)
    if "*" in value:
        raise ValueError(f"Wildcards are only supported at the end of a MIME pattern: {pattern!r}")
    return ExactMatcher(value)


class MimeClassifier:
    """Ordered list of eligibility patterns; the first match wins."""

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        self._entries: List[Tuple[str, MimeMatcher]] = []
        for pattern in DEFAULT_PATTERNS if patterns is None else patterns:
            self.allow(pattern)

    def allow(self, pattern: str) -> None:
        """Append *pattern* to the eligibility list (duplicates are kept)."""

        self._entries.append((pattern, parse_pattern(pattern)))

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple(pattern for pattern, _ in self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self._entries)

    def is_eligible(self, mime: Optional[str]) -> bool:
        value = mime_types.normalize_mime(mime)
        if not value:
            return False
        return any(matcher.matches(value) for _, matcher in self._entries)
