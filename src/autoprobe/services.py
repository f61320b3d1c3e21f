"""Process and filesystem services used by the probe engine.

All process spawning and file I/O performed by autoprobe goes through the
two protocols defined here. The engine's decision logic (snippet synthesis,
caching, outcome interpretation) can then be exercised with fakes that
return scripted exit codes.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (no console window per compile)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a finished process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class CommandRunner(Protocol):
    """Runs a command to completion and captures its output."""

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> ProcessResult:
        """Run ``args`` in ``cwd``.

        Args:
            args: Program followed by its arguments.
            cwd: Working directory, or None for the current directory.

        Returns:
            ProcessResult with the exit status and captured output.

        Raises:
            OSError: If the program cannot be started at all.
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Minimal filesystem operations needed for probe artifacts."""

    def make_dirs(self, path: Path) -> None:
        """Create ``path`` and its parents; an existing directory is not an error."""
        ...

    def exists(self, path: Path) -> bool: ...

    def is_dir(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, text: str) -> None: ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.run.

    Every call gets the platform creation flags and ``stdin=DEVNULL``, since
    a compiler run never reads from the terminal. Keeps a count of
    invocations so callers can report how many compiler runs a configuration
    pass needed. No timeout is applied.
    """

    def __init__(self, env: Optional[dict[str, str]] = None):
        """Initialize the runner.

        Args:
            env: Environment for child processes (None inherits os.environ)
        """
        self.env = env
        self.invocations = 0
        self._lock = threading.Lock()

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> ProcessResult:
        with self._lock:
            self.invocations += 1

        logger.debug(f"Running: {' '.join(str(a) for a in args)}")
        kwargs: dict[str, Any] = {}
        creationflags = get_subprocess_creation_flags()
        if creationflags:
            kwargs["creationflags"] = creationflags

        result = subprocess.run(
            [str(a) for a in args],
            cwd=cwd,
            env=self.env,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            **kwargs,
        )
        if result.returncode != 0:
            logger.debug(f"Exited with code {result.returncode}: {args[0]}")
        return ProcessResult(result.returncode, result.stdout or "", result.stderr or "")


class LocalFileSystem:
    """FileSystem implementation over pathlib."""

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, text: str) -> None:
        """Write ``text`` to ``path`` atomically.

        Uses a temp file + rename so that a concurrent reader never sees a
        partially written file.
        """
        temp_file = path.with_name(f"{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            with open(temp_file, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            temp_file.replace(path)
        except OSError:
            try:
                temp_file.unlink()
            except FileNotFoundError:
                pass
            raise

