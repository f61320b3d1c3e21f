"""Scratch directory resolution for probe artifacts.

Probe sources and the metadata the compiler emits for them live in a
``probe-artifacts`` directory directly inside the build script's output
directory, never in the build tree root where Cargo keeps its own outputs.

Cargo lays out its target directory in two ways:

    target/debug/build/pkg-HASH/out                         (host build)
    target/x86_64-unknown-linux-gnu/debug/build/pkg-HASH/out (--target given)

:func:`dir_contains_target` tells the two apart; the locator uses it to
decide whether RUSTFLAGS apply to the probes.
"""

from pathlib import Path, PurePath
from typing import Optional, Union

from .errors import ResourceError
from .services import FileSystem

DEFAULT_TARGET_DIR_NAME = "target"
SCRATCH_DIR_NAME = "probe-artifacts"

PathLike = Union[str, PurePath]


def _segments(path: PathLike) -> tuple[str, ...]:
    # Normalize separators so Windows-style paths split the same way.
    return tuple(part for part in str(path).replace("\\", "/").split("/") if part)


def dir_contains_target(
    target: Optional[str],
    out_dir: PathLike,
    target_dir: Optional[PathLike] = None,
) -> bool:
    """Check whether ``out_dir`` sits inside a target-specific build tree.

    Args:
        target: Target triple, or None for a host-only build
        out_dir: The build script's output directory
        target_dir: Override for the build tree root (CARGO_TARGET_DIR),
            defaults to ``"target"``

    Returns:
        True if the segments of ``out_dir`` contain the root segment(s)
        immediately followed by a segment equal to ``target``
    """
    if not target:
        return False

    root = _segments(target_dir) if target_dir else (DEFAULT_TARGET_DIR_NAME,)
    if not root:
        return False

    needle = root + (target,)
    haystack = _segments(out_dir)
    width = len(needle)
    return any(haystack[i : i + width] == needle for i in range(len(haystack) - width + 1))


def resolve_scratch_dir(out_dir: PathLike) -> Path:
    """Compute the scratch directory for probe artifacts.

    The result is ``out_dir/probe-artifacts`` whether or not ``out_dir`` sits
    in a target-partitioned tree, and also for host-only builds.
    """
    return Path(out_dir) / SCRATCH_DIR_NAME


def ensure_scratch_dir(fs: FileSystem, out_dir: PathLike) -> Path:
    """Resolve and create the scratch directory.

    Creation is idempotent; an existing directory is reused.

    Raises:
        ResourceError: If ``out_dir`` is not an existing directory or the
            scratch directory cannot be created
    """
    out_dir = Path(out_dir)
    if not fs.is_dir(out_dir):
        raise ResourceError(f"Output path is not a writable directory: {out_dir}")

    scratch = resolve_scratch_dir(out_dir)
    try:
        fs.make_dirs(scratch)
    except OSError as e:
        raise ResourceError(f"Failed to create scratch directory {scratch}: {e}") from e
    return scratch
