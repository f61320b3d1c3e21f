"""Probe engine.

The engine answers yes/no questions about an installed Rust toolchain by
compiling tiny synthetic crates:

    engine = ProbeEngine.from_env()
    if engine.probe_path("std::ops::ControlFlow"):
        ...
    if engine.probe_rustc_version(1, 65):
        ...

Protocol for every probe:
    1. Render the snippet (header with ``#![no_std]`` / ``#![feature]`` lines
       plus a body for the probe kind).
    2. Return the cached outcome if the exact snippet text was seen before.
    3. Write the snippet to ``probe_<hash>.rs`` in the scratch directory.
    4. Run the compiler with ``--emit=metadata`` (type-check only).
    5. Exit status 0 means the construct is supported; any other status, or
       a compiler that fails to start, means it is not.
    6. Cache and return the outcome.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

from .cache import ProbeCache
from .channel import Channel
from .directories import ensure_scratch_dir
from .errors import ResourceError
from .features import FeatureFlagManager
from .locator import ToolchainLocation, locate_from_env
from .services import CommandRunner, FileSystem, LocalFileSystem, SubprocessRunner
from .snippets import ProbeKind, render_body, render_snippet, snippet_digest
from .toolchain import ToolchainInspector
from .version import Version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeConfig:
    """Everything fixed about a toolchain once it has been inspected.

    Only ``features`` may change after construction, through
    :meth:`ProbeEngine.enable_feature` and :meth:`ProbeEngine.disable_feature`.
    """

    rustc: str
    version: Version
    channel: Channel
    scratch_dir: Path
    host: Optional[str] = None
    target: Optional[str] = None
    no_std: bool = False
    rustc_wrapper: Optional[str] = None
    rustflags: tuple[str, ...] = ()
    features: FeatureFlagManager = field(default_factory=FeatureFlagManager, compare=False, repr=False)


@dataclass(frozen=True)
class ProbeRecord:
    """One answered probe, in the order it was asked."""

    kind: ProbeKind
    payload: str
    features: tuple[str, ...]
    outcome: bool


class ProbeEngine:
    """Compiles probe snippets against one toolchain and caches the outcomes."""

    def __init__(
        self,
        config: ProbeConfig,
        runner: CommandRunner,
        fs: Optional[FileSystem] = None,
        cache: Optional[ProbeCache] = None,
    ):
        """Initialize the engine from an already inspected toolchain.

        Most callers want :meth:`from_location` or :meth:`from_env`, which run
        the toolchain inspection and prepare the scratch directory.

        Args:
            config: Toolchain configuration
            runner: Process runner used to invoke the compiler
            fs: Filesystem for probe artifacts (defaults to the local one)
            cache: Outcome cache (a fresh one by default)
        """
        self._config = config
        self.runner = runner
        self.fs = fs if fs is not None else LocalFileSystem()
        self.cache = cache if cache is not None else ProbeCache()
        self.compilations = 0
        self._history: list[ProbeRecord] = []
        self._pending: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_location(
        cls,
        location: ToolchainLocation,
        runner: Optional[CommandRunner] = None,
        fs: Optional[FileSystem] = None,
        no_std: Optional[bool] = None,
    ) -> "ProbeEngine":
        """Inspect the toolchain at ``location`` and build an engine for it.

        Args:
            location: Compiler, output directory and target information
            runner: Process runner (defaults to a SubprocessRunner)
            fs: Filesystem (defaults to LocalFileSystem)
            no_std: Force no-std mode on or off; None detects it by probing
                whether an empty crate builds against ``std``

        Raises:
            ConfigurationError: If the compiler cannot be run or identified
            ResourceError: If the scratch directory cannot be created
        """
        runner = runner if runner is not None else SubprocessRunner()
        fs = fs if fs is not None else LocalFileSystem()

        info = ToolchainInspector(location.rustc, runner).inspect()
        scratch_dir = ensure_scratch_dir(fs, location.out_dir)

        config = ProbeConfig(
            rustc=location.rustc,
            version=info.version,
            channel=info.channel,
            scratch_dir=scratch_dir,
            host=info.host or location.host,
            target=location.target,
            no_std=bool(no_std),
            rustc_wrapper=location.rustc_wrapper,
            rustflags=location.rustflags,
        )
        engine = cls(config, runner, fs)
        if no_std is None:
            engine._detect_no_std()
        return engine

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        runner: Optional[CommandRunner] = None,
        fs: Optional[FileSystem] = None,
    ) -> "ProbeEngine":
        """Build an engine from the Cargo build-script environment."""
        return cls.from_location(locate_from_env(environ), runner=runner, fs=fs)

    def _detect_no_std(self) -> None:
        # An empty crate fails against std only when std is unavailable for
        # the target, so fall back to no_std; if that fails too, assume std.
        if self._check(render_snippet("", no_std=False)):
            return
        self._config = replace(self._config, no_std=True)
        if self._check(render_snippet("", no_std=True)):
            logger.info("std is not available for this target; probing with #![no_std]")
            return
        self._config = replace(self._config, no_std=False)
        logger.warning("autoprobe could not probe for `std`")

    # -- configuration -------------------------------------------------

    @property
    def config(self) -> ProbeConfig:
        return self._config

    @property
    def version(self) -> Version:
        return self._config.version

    @property
    def channel(self) -> Channel:
        return self._config.channel

    @property
    def no_std(self) -> bool:
        return self._config.no_std

    @property
    def scratch_dir(self) -> Path:
        return self._config.scratch_dir

    @property
    def features(self) -> FeatureFlagManager:
        return self._config.features

    def enable_feature(self, name: str) -> None:
        """Add ``#![feature(name)]`` to every subsequent probe.

        Feature attributes are only accepted by nightly and dev compilers;
        on stable and beta, probes carrying them simply report False.
        """
        self._config.features.enable(name)

    def disable_feature(self, name: str) -> None:
        self._config.features.disable(name)

    def root_path(self, path: str) -> str:
        """Prefix ``path`` with ``core`` in no-std mode and ``std`` otherwise."""
        root = "core" if self._config.no_std else "std"
        return f"{root}::{path}"

    # -- version and channel queries -----------------------------------

    def probe_rustc_version(self, major: int, minor: int) -> bool:
        """Check whether the compiler version is at least ``major.minor``."""
        return self._config.version >= Version(major, minor, 0)

    def probe_rustc_channel(self, channel: Channel) -> bool:
        """Check whether the compiler channel is at least ``channel``."""
        return self._config.channel.at_least(channel)

    def is_channel(self, channel: Channel) -> bool:
        return self._config.channel == channel

    # -- probes ----------------------------------------------------------

    def probe(self, kind: ProbeKind, payload: str) -> bool:
        """Compile a probe of ``kind`` embedding ``payload``.

        Returns:
            True if the snippet compiled, False otherwise
        """
        features = self._config.features.snapshot()
        snippet = render_snippet(render_body(kind, payload), self._config.no_std, features)
        outcome = self._check(snippet)
        with self._lock:
            self._history.append(ProbeRecord(kind, payload, features, outcome))
        return outcome

    def probe_path(self, path: str) -> bool:
        """Check whether ``path`` (e.g. ``std::ops::Add``) names an item."""
        return self.probe(ProbeKind.PATH, path)

    def probe_trait(self, bound: str) -> bool:
        """Check whether ``bound`` (e.g. ``std::ops::Add<i32>``) is a usable trait bound."""
        return self.probe(ProbeKind.TRAIT, bound)

    def probe_type(self, ty: str) -> bool:
        """Check whether ``ty`` (e.g. ``i128``, ``dyn AsRef<str>``) is a valid type."""
        return self.probe(ProbeKind.TYPE, ty)

    def probe_expression(self, expr: str) -> bool:
        """Check whether ``expr`` type-checks inside a function body."""
        return self.probe(ProbeKind.EXPRESSION, expr)

    def probe_constant(self, expr: str) -> bool:
        """Check whether ``expr`` can be evaluated in a constant context."""
        return self.probe(ProbeKind.CONSTANT, expr)

    def probe_sysroot_crate(self, name: str) -> bool:
        """Check whether the sysroot crate ``name`` (e.g. ``alloc``) can be linked."""
        return self.probe(ProbeKind.SYSROOT_CRATE, name)

    def probe_feature(self, name: str) -> bool:
        """Check whether the unstable feature ``name`` can be enabled."""
        return self.probe(ProbeKind.FEATURE, name)

    def probe_raw(self, code: str) -> bool:
        """Check whether ``code`` compiles as a library crate."""
        return self.probe(ProbeKind.RAW, code)

    def history(self) -> list[ProbeRecord]:
        """Return every probe answered so far, including cache hits."""
        with self._lock:
            return list(self._history)

    # -- compilation -------------------------------------------------------

    def _check(self, snippet: str) -> bool:
        """Return the outcome for ``snippet``, compiling it at most once.

        Threads asking for a snippet that another thread is compiling wait
        for that compilation instead of starting their own.
        """
        while True:
            cached = self.cache.get(snippet)
            if cached is not None:
                logger.debug(f"Probe cache hit ({len(self.cache)} entries)")
                return cached
            with self._lock:
                pending = self._pending.get(snippet)
                if pending is None and snippet not in self.cache:
                    pending = self._pending[snippet] = threading.Event()
                    break
            if pending is not None:
                pending.wait()

        # The outcome is cached before the pending marker is removed, so a
        # thread that finds neither has to compile.
        try:
            outcome = self.cache.put(snippet, self._compile(snippet))
        finally:
            with self._lock:
                del self._pending[snippet]
            pending.set()
        return outcome

    def _materialize(self, snippet: str, digest: str) -> Path:
        source = self._config.scratch_dir / f"probe_{digest}.rs"
        try:
            if self.fs.exists(source) and self.fs.read_text(source) == snippet:
                return source
            self.fs.write_text(source, snippet)
        except OSError as e:
            raise ResourceError(f"Failed to write probe source {source}: {e}") from e
        return source

    def compile_command(self, source: Path, crate_name: str) -> list[str]:
        """Build the compiler command line for one probe source file."""
        config = self._config
        args: list[str] = []
        if config.rustc_wrapper:
            args.append(config.rustc_wrapper)
        args += [
            config.rustc,
            "--crate-name",
            crate_name,
            "--crate-type=lib",
            "--emit=metadata",
            "--out-dir",
            str(config.scratch_dir),
        ]
        if config.target:
            args += ["--target", config.target]
        args += list(config.rustflags)
        args.append(str(source))
        return args

    def _compile(self, snippet: str) -> bool:
        digest = snippet_digest(snippet)
        source = self._materialize(snippet, digest)
        args = self.compile_command(source, f"probe_{digest}")

        with self._lock:
            self.compilations += 1

        try:
            result = self.runner.run(args, cwd=self._config.scratch_dir)
        except OSError as e:
            logger.warning(f"Failed to run {self._config.rustc} for probe {digest}: {e}")
            return False

        logger.debug(f"Probe {digest}: {'ok' if result.success else f'failed ({result.returncode})'}")
        return result.success
