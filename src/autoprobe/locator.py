"""Toolchain location from the Cargo build-script environment.

Cargo exports these variables to every build script:

    RUSTC                     compiler to use (default: "rustc")
    RUSTC_WRAPPER             optional wrapper prepended to compiler calls
    OUT_DIR                   output directory of this build script
    TARGET / HOST             target and host triples
    CARGO_TARGET_DIR          custom target directory, if configured
    CARGO_ENCODED_RUSTFLAGS   compiler flags, separated by 0x1f
    RUSTFLAGS                 legacy space-separated compiler flags
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .directories import dir_contains_target
from .errors import ConfigurationError

ENCODED_FLAGS_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class ToolchainLocation:
    """Where the compiler lives and how it should be invoked.

    Attributes:
        rustc: Compiler binary name or path
        out_dir: Output directory that will hold the scratch directory
        target: Target triple passed as ``--target``, or None
        host: Host triple as reported by the build system, or None
        rustc_wrapper: Optional wrapper binary (e.g. sccache)
        target_dir: CARGO_TARGET_DIR override, or None
        rustflags: Extra compiler flags for every probe
    """

    rustc: str
    out_dir: Path
    target: Optional[str] = None
    host: Optional[str] = None
    rustc_wrapper: Optional[str] = None
    target_dir: Optional[str] = None
    rustflags: tuple[str, ...] = field(default_factory=tuple)


def _non_empty(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    return value if value else None


def rustflags_from_env(
    environ: Mapping[str, str],
    target: Optional[str],
    out_dir: Path,
) -> tuple[str, ...]:
    """Determine the compiler flags that apply to probes.

    CARGO_ENCODED_RUSTFLAGS is authoritative when present. Without it,
    RUSTFLAGS apply only when cross-compiling or when the output directory
    is inside a target-specific tree, because Cargo does not pass RUSTFLAGS
    to host-side build scripts when ``--target`` is given.
    """
    encoded = environ.get("CARGO_ENCODED_RUSTFLAGS")
    if encoded is not None:
        if not encoded:
            return ()
        return tuple(encoded.split(ENCODED_FLAGS_SEPARATOR))

    host = environ.get("HOST")
    if target != host or dir_contains_target(target, out_dir, environ.get("CARGO_TARGET_DIR")):
        flags = environ.get("RUSTFLAGS")
        if flags:
            return tuple(part for part in (p.strip() for p in flags.split(" ")) if part)
    return ()


def locate_from_env(
    environ: Optional[Mapping[str, str]] = None,
    out_dir: Optional[Path] = None,
) -> ToolchainLocation:
    """Build a ToolchainLocation from environment variables.

    Args:
        environ: Environment to read (defaults to os.environ)
        out_dir: Explicit output directory, overriding OUT_DIR

    Returns:
        ToolchainLocation for the current build script

    Raises:
        ConfigurationError: If no output directory is available
    """
    if environ is None:
        environ = os.environ

    if out_dir is None:
        env_out_dir = _non_empty(environ, "OUT_DIR")
        if env_out_dir is None:
            raise ConfigurationError("OUT_DIR is not set; run from a build script or pass an output directory")
        out_dir = Path(env_out_dir)

    target = _non_empty(environ, "TARGET")
    return ToolchainLocation(
        rustc=_non_empty(environ, "RUSTC") or "rustc",
        out_dir=out_dir,
        target=target,
        host=_non_empty(environ, "HOST"),
        rustc_wrapper=_non_empty(environ, "RUSTC_WRAPPER"),
        target_dir=_non_empty(environ, "CARGO_TARGET_DIR"),
        rustflags=rustflags_from_env(environ, target, out_dir),
    )
