"""Toolchain inspection.

Runs ``rustc --version --verbose`` once and extracts the version, the
release channel and the host triple. Typical output:

    rustc 1.71.0-nightly (8b4b20836 2023-05-22)
    binary: rustc
    commit-hash: 8b4b20836b832e91aa605a2faf5e2a55190202c8
    commit-date: 2023-05-22
    host: x86_64-unknown-linux-gnu
    release: 1.71.0-nightly
    LLVM version: 16.0.4
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .channel import Channel
from .errors import ConfigurationError
from .services import CommandRunner
from .version import Version, VersionParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainInfo:
    """What the compiler reports about itself."""

    version: Version
    channel: Channel
    host: Optional[str]
    raw: str


def _field(output: str, name: str) -> Optional[str]:
    prefix = f"{name}:"
    for line in output.splitlines():
        if line.startswith(prefix):
            return line[len(prefix) :].strip()
    return None


def parse_version_output(output: str) -> ToolchainInfo:
    """Parse the text printed by ``rustc --version --verbose``.

    The ``release:`` line is preferred. Without it the second word of the
    first line (``rustc 1.70.0 (...)``) is used.

    Raises:
        VersionParseError: If no version can be found
    """
    release = _field(output, "release")
    if release is None:
        words = output.strip().split()
        if len(words) < 2:
            raise VersionParseError(f"Unrecognized version output: {output.strip()!r}")
        release = words[1]

    version = Version.parse(release)
    _, _, suffix = release.partition("-")
    return ToolchainInfo(
        version=version,
        channel=Channel.parse(suffix or None),
        host=_field(output, "host"),
        raw=output,
    )


class ToolchainInspector:
    """Queries a compiler binary for its version and channel."""

    def __init__(self, rustc: str, runner: CommandRunner):
        """Initialize the inspector.

        Args:
            rustc: Compiler binary name or path
            runner: Process runner used to invoke the compiler
        """
        self.rustc = rustc
        self.runner = runner

    def inspect(self) -> ToolchainInfo:
        """Invoke the compiler and parse its self-description.

        Returns:
            ToolchainInfo for the compiler

        Raises:
            ConfigurationError: If the compiler cannot be run, exits with an
                error, or reports a version that cannot be parsed
        """
        try:
            result = self.runner.run([self.rustc, "--version", "--verbose"])
        except OSError as e:
            raise ConfigurationError(f"Failed to run {self.rustc}: {e}") from e

        if not result.success:
            detail = result.stderr.strip() or result.stdout.strip()
            raise ConfigurationError(f"{self.rustc} --version exited with code {result.returncode}: {detail}")

        try:
            info = parse_version_output(result.stdout)
        except VersionParseError as e:
            raise ConfigurationError(f"Could not determine version of {self.rustc}: {e}") from e

        logger.info(f"Found {self.rustc} {info.version} ({info.channel}) on host {info.host or 'unknown'}")
        return info
