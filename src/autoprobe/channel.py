"""Release channel model.

Channels are ordered from most to least restrictive:
STABLE < BETA < NIGHTLY < DEV.
"""

from enum import Enum
from typing import Optional


class Channel(Enum):
    """Release channel of a toolchain."""

    STABLE = "stable"
    BETA = "beta"
    NIGHTLY = "nightly"
    DEV = "dev"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Channel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Channel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Channel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Channel):
            return NotImplemented
        return self.rank >= other.rank

    def at_least(self, required: "Channel") -> bool:
        """Check whether this channel is at least as permissive as ``required``.

        A BETA query succeeds on BETA, NIGHTLY and DEV toolchains.
        """
        return self.rank >= required.rank

    @classmethod
    def parse(cls, token: Optional[str]) -> "Channel":
        """Classify a version suffix token.

        Args:
            token: The text after the first ``-`` of the release string
                (e.g. ``"nightly"``, ``"beta.2"``), or None if there was none

        Returns:
            STABLE for no token or ``"stable"``, BETA for ``"beta"`` with an
            optional ``.N`` suffix, NIGHTLY for ``"nightly"``, DEV otherwise
        """
        if not token:
            return cls.STABLE
        name = token.strip().split(".", 1)[0].lower()
        if name in ("", "stable"):
            return cls.STABLE
        if name == "beta":
            return cls.BETA
        if name == "nightly":
            return cls.NIGHTLY
        return cls.DEV


_RANKS = {
    Channel.STABLE: 0,
    Channel.BETA: 1,
    Channel.NIGHTLY: 2,
    Channel.DEV: 3,
}
