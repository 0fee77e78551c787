"""
Version parsing and comparison helpers.

Compiler versions come in many shapes ('13.2.0', '15.0.0-ubuntu1', '19.38.33135',
'v0.11.0'). parse_version() reads the leading numeric part tolerantly with
packaging; anything without a numeric prefix is treated as unparsable and
sorts after every parsable version.
"""

import functools
import re
from dataclasses import dataclass
from typing import Optional

from packaging.version import InvalidVersion, Version

_NUMERIC_PREFIX = re.compile(r"^[vV]?(\d+(?:\.\d+)*)")


def parse_version(text: str) -> Optional[Version]:
    """
    Parse a compiler version string tolerantly.

    Example:
        >>> parse_version("13.2.0")
        <Version('13.2.0')>
        >>> parse_version("15.0.0-ubuntu1")
        <Version('15.0.0')>
        >>> parse_version("trunk") is None
        True
    """
    if not text:
        return None
    match = _NUMERIC_PREFIX.match(text.strip())
    if not match:
        return None
    try:
        return Version(match.group(1))
    except InvalidVersion:
        return None


def compare_versions(a: str, b: str) -> int:
    """
    Three-way comparison of two version strings.

    Parsable versions compare semantically and rank above unparsable ones;
    two unparsable versions compare as plain strings.

    Returns:
        -1, 0 or 1
    """
    va, vb = parse_version(a), parse_version(b)
    if va is not None and vb is not None:
        return (va > vb) - (va < vb)
    if va is not None:
        return 1
    if vb is not None:
        return -1
    return (a > b) - (a < b)


# Sort key ordering versions newest-first with unparsable versions last:
#   sorted(["9.4.0", "trunk", "13.2.0"], key=newest_first_key)
#   -> ['13.2.0', '9.4.0', 'trunk']
newest_first_key = functools.cmp_to_key(lambda a, b: compare_versions(b, a))


@dataclass(frozen=True, order=True)
class VersionQuad:
    """
    Four-component numeric version (major.minor.patch.build).

    Used for MSVC toolsets, Windows SDKs and UCRT versions, which do not
    follow semantic versioning.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    build: int = 0

    @classmethod
    def parse(cls, text: str) -> "VersionQuad":
        """
        Parse 1 to 4 dot-separated integers; missing parts are read as 0.

        Raises:
            ValueError: If text is not a valid version quad
        """
        parts = text.strip().split(".") if text else []
        if not 1 <= len(parts) <= 4 or not all(p.isdigit() for p in parts):
            raise ValueError(f"invalid version quad: {text!r}")
        return cls(*(int(p) for p in parts))

    @classmethod
    def try_parse(cls, text: str) -> Optional["VersionQuad"]:
        try:
            return cls.parse(text)
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.build}"


def compare_quads(a: str, b: str) -> int:
    """Three-way comparison of version quads; unparsable values rank lowest."""
    qa, qb = VersionQuad.try_parse(a), VersionQuad.try_parse(b)
    if qa is not None and qb is not None:
        return (qa > qb) - (qa < qb)
    if qa is not None:
        return 1
    if qb is not None:
        return -1
    return (a > b) - (a < b)


__all__ = [
    "parse_version",
    "compare_versions",
    "newest_first_key",
    "VersionQuad",
    "compare_quads",
]
