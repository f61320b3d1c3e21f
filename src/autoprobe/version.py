"""Toolchain version model.

A version is the ``MAJOR.MINOR.PATCH`` triple reported by the compiler. Any
pre-release or build metadata after the triple (``-nightly``, ``-beta.3``,
``+build``) is dropped; the release channel is tracked separately by
:class:`autoprobe.channel.Channel`.
"""

import re
from dataclasses import dataclass

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")


class VersionParseError(ValueError):
    """Raised when text does not start with a MAJOR.MINOR.PATCH triple."""

    pass


@dataclass(frozen=True, order=True)
class Version:
    """Immutable compiler version, ordered lexicographically by component."""

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch"):
            if getattr(self, name) < 0:
                raise ValueError(f"Version component {name} must be non-negative")

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse a version string such as ``1.70.0`` or ``1.71.0-nightly``.

        Args:
            text: Version text, surrounding whitespace is ignored

        Returns:
            Parsed Version

        Raises:
            VersionParseError: If text is not a version triple
        """
        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise VersionParseError(f"Invalid version string: {text!r}")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major, minor, patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"
