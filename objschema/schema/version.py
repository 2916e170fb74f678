"""Schema document version handling.

A document declares ``version`` either as ``"major.minor.revision"`` or as a
numeric list. Compatibility rules:

1. The major version must match the supported major version exactly.
2. The document minor version must be the same or older than the supported one.
3. The revision does not matter.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..exceptions import VersionError

_VERSION_RE = re.compile(r"^\s*(\d+)\s*\.\s*(\d+)\s*(?:\.\s*(\d+)\s*)?$")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """A parsed document version (major, minor, revision)."""

    major: int
    minor: int
    revision: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.revision}"


SUPPORTED_VERSION = SemanticVersion(1, 0, 0)


def parse_version(raw: Any) -> SemanticVersion:
    """Parse a version string or a 2/3 element numeric list.

    Raises:
        VersionError: If the value cannot be parsed.
    """
    if isinstance(raw, str):
        m = _VERSION_RE.match(raw)
        if m is None:
            raise VersionError(f"Invalid version string '{raw}'", reason="invalid version")
        return SemanticVersion(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))

    if isinstance(raw, (list, tuple)) and 2 <= len(raw) <= 3:
        if all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in raw):
            return SemanticVersion(*raw)

    raise VersionError(f"Invalid version {raw!r}", reason="invalid version")


def is_valid_version(raw: Any, supported: SemanticVersion = SUPPORTED_VERSION) -> bool:
    """Check whether a document version is compatible with ``supported``."""
    try:
        version = parse_version(raw)
    except VersionError:
        return False

    return version.major == supported.major and version.minor <= supported.minor


def check_version(raw: Any, supported: SemanticVersion = SUPPORTED_VERSION) -> SemanticVersion:
    """Parse and validate a document version.

    Raises:
        VersionError: If the version is missing, invalid or not supported.
    """
    if raw is None:
        raise VersionError(
            "Schema document not supported, version information is missing",
            reason="missing version",
        )

    version = parse_version(raw)
    if not is_valid_version(raw, supported):
        raise VersionError(
            f"Schema document version {version} is not supported (supported: {supported})",
            reason="unsupported version",
        )
    return version
