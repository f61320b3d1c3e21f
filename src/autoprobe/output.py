"""
Console output for the autoprobe CLI.

All output is prefixed with elapsed time in MM:SS.cc format and written to
stderr, because stdout of a build script is reserved for ``cargo:``
directives.

Example output:
    00:00.04 autoprobe v0.1.0
    00:00.09 Toolchain: rustc 1.70.0 (stable)
    00:00.09       Host: x86_64-unknown-linux-gnu
    00:00.31 [path] std::ops::ControlFlow: yes

Usage:
    from autoprobe.output import log, log_detail, init_timer

    init_timer()
    log("Toolchain: rustc 1.70.0 (stable)")
    log_detail("Host: x86_64-unknown-linux-gnu")
"""

import sys
import time
from typing import Optional, TextIO

# Global state for the timer
_start_time: Optional[float] = None
_output_stream: Optional[TextIO] = None
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Called automatically on first log if not called explicitly.

    Args:
        output_stream: Optional output stream (defaults to sys.stderr)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, verbose_only messages are printed too.
    """
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """
    Get elapsed time since timer initialization.

    Returns:
        Elapsed time in seconds
    """
    global _start_time
    if _start_time is None:
        init_timer(_output_stream)
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """
    Format the current elapsed time as MM:SS.cc.

    Returns:
        Formatted timestamp string
    """
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    # Resolve sys.stderr lazily so pytest's capsys sees the output.
    stream = _output_stream if _output_stream is not None else sys.stderr
    stream.write(f"{format_timestamp()} {message}\n")
    stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log a detail message (indented).

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


def log_probe(kind: str, payload: str, outcome: bool) -> None:
    """
    Log a single probe outcome.

    Format: [kind] payload: yes|no
    """
    _print(f"[{kind}] {payload}: {'yes' if outcome else 'no'}")


def log_summary(probes: int, compilations: int) -> None:
    _print(f"{probes} probe(s), {compilations} compiler invocation(s) in {get_elapsed():.2f}s")


def log_error(message: str) -> None:
    _print(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _print(f"WARNING: {message}")
