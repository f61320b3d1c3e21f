"""Fixtures for unit tests: a scripted stand-in for rustc.

FakeRustc implements the CommandRunner protocol. It answers
``--version --verbose`` with a canned description and "compiles" probe
sources by applying simple rules to their text:

- ``#![feature(...)]`` lines fail on stable/beta and for unknown features;
- without ``#![no_std]`` the crate fails if std is unavailable;
- with ``#![no_std]`` any use of ``std::`` fails;
- constructs listed in ``gated`` require a minimum version and optionally
  an enabled feature;
- ``extern crate NAME`` succeeds only for known sysroot crates;
- a trait in ``DYN_INCOMPATIBLE`` used behind a reference (``&Trait`` or
  ``&dyn Trait``) fails with E0038, as rustc rejects such trait objects in
  signatures even though the type itself resolves.
"""

import re
from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from autoprobe.channel import Channel
from autoprobe.engine import ProbeEngine
from autoprobe.locator import ToolchainLocation
from autoprobe.services import ProcessResult
from autoprobe.version import Version

HOST = "x86_64-unknown-linux-gnu"

# construct substring -> (introduced in, required feature)
DEFAULT_GATED: dict[str, tuple[Version, Optional[str]]] = {
    "iter::Sum": (Version(1, 12, 0), None),
    "i128": (Version(1, 26, 0), None),
    "dyn ": (Version(1, 27, 0), None),
    "trim_start": (Version(1, 30, 0), None),
    "ops::ControlFlow": (Version(1, 55, 0), None),
    "iter::Step": (Version(1, 0, 0), "step_trait"),
}

SYSROOT_CRATES: dict[str, Version] = {
    "core": Version(1, 0, 0),
    "std": Version(1, 0, 0),
    "alloc": Version(1, 36, 0),
    "proc_macro": Version(1, 15, 0),
}

NIGHTLY_FEATURES = frozenset({"rust1", "step_trait"})

# Traits that cannot be made into trait objects (they require Sized).
DYN_INCOMPATIBLE = ("iter::Sum",)


class FakeRustc:
    """Scripted compiler; records every invocation."""

    def __init__(
        self,
        release: str = "1.70.0",
        host: str = HOST,
        std_available: bool = True,
        gated: Optional[dict[str, tuple[Version, Optional[str]]]] = None,
    ):
        self.release = release
        self.host = host
        self.std_available = std_available
        self.gated = dict(DEFAULT_GATED if gated is None else gated)
        self.version = Version.parse(release)
        self.channel = Channel.parse(release.partition("-")[2] or None)
        self.calls: list[list[str]] = []
        self.compile_calls: list[list[str]] = []
        self.version_output: Optional[str] = None
        self.version_returncode = 0
        self.missing = False
        self.crash_on: Optional[str] = None

    def version_text(self) -> str:
        if self.version_output is not None:
            return self.version_output
        return (
            f"rustc {self.release} (90c541806 2023-05-31)\n"
            "binary: rustc\n"
            "commit-hash: 90c541806f23a127002de5b4038be731ba1458ca\n"
            "commit-date: 2023-05-31\n"
            f"host: {self.host}\n"
            f"release: {self.release}\n"
            "LLVM version: 16.0.2\n"
        )

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> ProcessResult:
        args = [str(a) for a in args]
        self.calls.append(args)
        if self.missing:
            raise FileNotFoundError(2, "No such file or directory", args[0])
        if "--version" in args:
            return ProcessResult(self.version_returncode, self.version_text(), "")

        self.compile_calls.append(args)
        source = Path(args[-1]).read_text(encoding="utf-8")
        if self.crash_on is not None and self.crash_on in source:
            return ProcessResult(101, "", "error: internal compiler error")
        if self.accepts(source):
            return ProcessResult(0, "", "")
        return ProcessResult(1, "", "error: could not compile")

    def accepts(self, source: str) -> bool:
        lines = source.splitlines()
        attrs = [line for line in lines if line.startswith("#![")]
        body = "\n".join(line for line in lines if not line.startswith("#!["))
        no_std = "#![no_std]" in attrs
        features = {line[len("#![feature(") : -2] for line in attrs if line.startswith("#![feature(")}

        if features and self.channel < Channel.NIGHTLY:
            return False
        if features - NIGHTLY_FEATURES:
            return False
        if not no_std and not self.std_available:
            return False
        if no_std and ("std::" in body or "Vec<" in body):
            return False

        if body.startswith("extern crate "):
            name = body[len("extern crate ") :].split()[0]
            introduced = SYSROOT_CRATES.get(name)
            if introduced is None or self.version < introduced:
                return False
            if name == "std" and not self.std_available:
                return False

        for trait in DYN_INCOMPATIBLE:
            if re.search(r"&\s*(?:dyn\s+)?[\w:]*" + re.escape(trait), body):
                return False

        for construct, (introduced, feature) in self.gated.items():
            if construct in body:
                if self.version < introduced:
                    return False
                if feature is not None and feature not in features:
                    return False
        return True


@pytest.fixture
def make_rustc() -> Callable[..., FakeRustc]:
    """Factory for FakeRustc instances."""
    return FakeRustc


@pytest.fixture
def rustc() -> FakeRustc:
    return FakeRustc()


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    path = tmp_path / "target" / "debug" / "build" / "demo-0123456789abcdef" / "out"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_engine(out_dir: Path) -> Callable[..., ProbeEngine]:
    """Factory building a ProbeEngine over a FakeRustc."""

    def _make(fake: Optional[FakeRustc] = None, no_std: Optional[bool] = None, **location_kwargs) -> ProbeEngine:
        fake = fake if fake is not None else FakeRustc()
        location = ToolchainLocation(rustc="rustc", out_dir=location_kwargs.pop("out_dir", out_dir), **location_kwargs)
        return ProbeEngine.from_location(location, runner=fake, no_std=no_std)

    return _make
