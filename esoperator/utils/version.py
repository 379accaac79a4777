"""
Elasticsearch version parsing.

Versions look like ``7.2.0`` or ``7.2.0-SNAPSHOT``. The parsed value drives the
default image tag, the version label and version-specific settings.
"""

import re
from dataclasses import dataclass
from typing import Tuple

from ..errors import VersionParseError

_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z][0-9A-Za-z.-]*))?$")


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    label: str = ""

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.label}" if self.label else base

    @property
    def numbers(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def is_same_or_after(self, other: "Version") -> bool:
        """Compare numeric parts only, labels are ignored."""
        return self.numbers >= other.numbers


def parse_version(value: str) -> Version:
    """
    Parse a version string.

    Raises:
        VersionParseError: If the string is not MAJOR.MINOR.PATCH[-LABEL]
    """
    if not isinstance(value, str):
        raise VersionParseError(f"Version must be a string, got {type(value).__name__}")

    match = _VERSION_PATTERN.match(value.strip())
    if not match:
        raise VersionParseError(f"Unable to parse version '{value}'")

    major, minor, patch, label = match.groups()
    return Version(int(major), int(minor), int(patch), label or "")
