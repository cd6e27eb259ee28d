"""Include/exclude filters over dotted Java package names.

Pattern syntax: dotted segments, where ``*`` matches exactly one segment and
``**`` matches any number of segments. Every pattern selects a package
subtree, so ``com.acme`` matches ``com.acme`` and ``com.acme.orders.api``.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Sequence, Tuple

from spring_twin.errors import ConfigurationError

_SEGMENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@lru_cache(maxsize=512)
def parse_pattern(pattern: str) -> Tuple[str, ...]:
    text = (pattern or "").strip()
    if not text:
        raise ConfigurationError("Package pattern must not be empty")
    segments = text.split(".")
    for segment in segments:
        if segment in ("*", "**"):
            continue
        if not _SEGMENT_RE.match(segment):
            raise ConfigurationError(
                f"Invalid package pattern '{pattern}': bad segment '{segment}'",
                details={"pattern": pattern},
            )
    if segments[-1] != "**":
        segments.append("**")
    return tuple(segments)


def _match(pattern: Sequence[str], package: Sequence[str]) -> bool:
    if not pattern:
        return not package
    head = pattern[0]
    if head == "**":
        return any(_match(pattern[1:], package[i:]) for i in range(len(package) + 1))
    if not package:
        return False
    if head == "*" or head == package[0]:
        return _match(pattern[1:], package[1:])
    return False


def pattern_matches(pattern: str, package_name: str) -> bool:
    package = tuple(part for part in package_name.split(".") if part)
    return _match(parse_pattern(pattern), package)


class PackageFilter:
    """Empty include selects everything; exclude is applied last and wins."""

    def __init__(
        self,
        include_packages: Iterable[str] | None = None,
        exclude_packages: Iterable[str] | None = None,
    ) -> None:
        self.include_packages: List[str] = [p.strip() for p in include_packages or []]
        self.exclude_packages: List[str] = [p.strip() for p in exclude_packages or []]
        for pattern in self.include_packages + self.exclude_packages:
            parse_pattern(pattern)

    def includes(self, package_name: str) -> bool:
        if self.include_packages and not any(
            pattern_matches(pattern, package_name) for pattern in self.include_packages
        ):
            return False
        return not any(pattern_matches(pattern, package_name) for pattern in self.exclude_packages)

    def __repr__(self) -> str:
        return f"PackageFilter(include={self.include_packages!r}, exclude={self.exclude_packages!r})"


__all__ = ["PackageFilter", "parse_pattern", "pattern_matches"]
