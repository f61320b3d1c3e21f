"""
Command-line interface for autoprobe.

This module provides the `autoprobe` CLI tool for probing a Rust toolchain
outside of (or from within) a Cargo build script.
"""

import argparse
import logging
import os
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from autoprobe import __version__
from autoprobe.emit import DirectiveEmitter
from autoprobe.engine import ProbeEngine
from autoprobe.errors import AutoprobeError
from autoprobe.locator import locate_from_env
from autoprobe.output import (
    init_timer,
    log,
    log_detail,
    log_error,
    log_header,
    log_probe,
    log_summary,
    set_verbose,
)
from autoprobe.snippets import ProbeKind


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool) -> None:
    """Send library log records to stderr; DEBUG when verbose, WARNING otherwise."""
    logger = logging.getLogger("autoprobe")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(handler)


class ReportFormatError(AutoprobeError):
    """Raised when a report file line cannot be parsed."""

    pass


@dataclass
class CommonArgs:
    """Toolchain selection shared by all commands."""

    rustc: Optional[str] = None
    out_dir: Optional[Path] = None
    target: Optional[str] = None
    no_std: Optional[bool] = None
    verbose: bool = False


@dataclass
class CheckArgs:
    """Arguments for the check command."""

    kind: ProbeKind
    payload: str
    features: list[str] = field(default_factory=list)
    emit: Optional[str] = None


@dataclass
class ReportArgs:
    """Arguments for the report command."""

    probe_file: Path
    features: list[str] = field(default_factory=list)


def create_engine(common: CommonArgs, out_dir: Path) -> ProbeEngine:
    """Locate the toolchain from the environment, apply overrides, and inspect it."""
    environ = dict(os.environ)
    if common.rustc:
        environ["RUSTC"] = common.rustc
    if common.target:
        environ["TARGET"] = common.target
    location = locate_from_env(environ, out_dir=out_dir)
    return ProbeEngine.from_location(location, no_std=common.no_std)


def info_command(engine: ProbeEngine) -> int:
    """Print what is known about the toolchain.

    Examples:
        autoprobe info
        autoprobe --rustc ~/.cargo/bin/rustc info
    """
    config = engine.config
    log(f"Toolchain: {config.rustc} {config.version} ({config.channel})")
    log_detail(f"Host: {config.host or 'unknown'}")
    log_detail(f"Target: {config.target or 'host'}")
    log_detail(f"no_std: {'yes' if config.no_std else 'no'}")
    log_detail(f"Scratch: {config.scratch_dir}")
    if config.rustc_wrapper:
        log_detail(f"Wrapper: {config.rustc_wrapper}")
    if config.rustflags:
        log_detail(f"Flags: {' '.join(config.rustflags)}")
    return 0


def check_command(engine: ProbeEngine, args: CheckArgs) -> int:
    """Run one probe and exit 0 if it compiled.

    Examples:
        autoprobe check path std::ops::ControlFlow
        autoprobe check expression '"test".trim_start()'
        autoprobe check trait std::iter::Step --feature step_trait
        autoprobe check type i128 --emit has_i128
    """
    for name in args.features:
        engine.enable_feature(name)

    outcome = engine.probe(args.kind, args.payload)
    log_probe(str(args.kind), args.payload, outcome)

    if args.emit:
        emitter = DirectiveEmitter(engine)
        emitter.emit_possibility(args.emit)
        if outcome:
            emitter.emit(args.emit)
    return 0 if outcome else 1


def parse_probe_file(path: Path) -> list[tuple[ProbeKind, str]]:
    """Read ``KIND PAYLOAD`` lines, skipping blanks and ``#`` comments."""
    probes: list[tuple[ProbeKind, str]] = []
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReportFormatError(f"Cannot read probe file {path}: {e}") from e
    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(maxsplit=1)
        if len(parts) != 2:
            raise ReportFormatError(f"{path}:{line_num}: expected 'KIND PAYLOAD'")
        try:
            kind = ProbeKind(parts[0])
        except ValueError:
            raise ReportFormatError(f"{path}:{line_num}: unknown probe kind {parts[0]!r}") from None
        probes.append((kind, parts[1]))
    return probes


def report_command(engine: ProbeEngine, args: ReportArgs, console: Optional[Console] = None) -> int:
    """Run every probe listed in a file and print a table of results.

    Examples:
        autoprobe report probes.txt
    """
    probes = parse_probe_file(args.probe_file)
    for name in args.features:
        engine.enable_feature(name)

    table = Table(title=f"rustc {engine.version} ({engine.channel})", expand=False)
    table.add_column("Kind", style="bold", no_wrap=True)
    table.add_column("Construct")
    table.add_column("Result", no_wrap=True)

    for kind, payload in probes:
        outcome = engine.probe(kind, payload)
        result = Text("✓ yes", style="green") if outcome else Text("✗ no", style="red")
        table.add_row(str(kind), payload, result)

    console = console if console is not None else Console(stderr=True)
    console.print(table)
    log_summary(len(probes), engine.compilations)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoprobe",
        description="Probe a Rust toolchain for supported language and library features",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--rustc",
        default=None,
        help="Compiler to probe (default: $RUSTC or 'rustc')",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Directory for probe artifacts (default: $OUT_DIR or a temporary directory)",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target triple (default: $TARGET)",
    )
    std_group = parser.add_mutually_exclusive_group()
    std_group.add_argument(
        "--no-std",
        dest="no_std",
        action="store_const",
        const=True,
        default=None,
        help="Probe with #![no_std]",
    )
    std_group.add_argument(
        "--std",
        dest="no_std",
        action="store_const",
        const=False,
        help="Probe against std without auto-detection",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("info", help="Show toolchain version, channel and target")

    check_parser = subparsers.add_parser("check", help="Run a single probe")
    check_parser.add_argument(
        "kind",
        choices=[kind.value for kind in ProbeKind],
        help="Kind of construct to probe",
    )
    check_parser.add_argument("payload", help="Construct to embed in the probe")
    check_parser.add_argument(
        "-f",
        "--feature",
        action="append",
        default=[],
        help="Enable an unstable feature for the probe (repeatable)",
    )
    check_parser.add_argument(
        "--emit",
        default=None,
        help="Print a cargo:rustc-cfg directive with this name on success",
    )

    report_parser = subparsers.add_parser("report", help="Run probes listed in a file")
    report_parser.add_argument("probe_file", type=Path, help="File with one 'KIND PAYLOAD' per line")
    report_parser.add_argument(
        "-f",
        "--feature",
        action="append",
        default=[],
        help="Enable an unstable feature for all probes (repeatable)",
    )
    return parser


def _run(parsed_args: argparse.Namespace, common: CommonArgs, out_dir: Path) -> int:
    engine = create_engine(common, out_dir)
    if parsed_args.command == "info":
        return info_command(engine)
    if parsed_args.command == "check":
        return check_command(
            engine,
            CheckArgs(
                kind=ProbeKind(parsed_args.kind),
                payload=parsed_args.payload,
                features=parsed_args.feature,
                emit=parsed_args.emit,
            ),
        )
    return report_command(engine, ReportArgs(probe_file=parsed_args.probe_file, features=parsed_args.feature))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the autoprobe CLI."""
    parser = build_parser()
    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        return 0

    init_timer()
    set_verbose(parsed_args.verbose)
    setup_logging(parsed_args.verbose)
    log_header("autoprobe", __version__)

    common = CommonArgs(
        rustc=parsed_args.rustc,
        out_dir=parsed_args.out_dir,
        target=parsed_args.target,
        no_std=parsed_args.no_std,
        verbose=parsed_args.verbose,
    )

    try:
        out_dir = common.out_dir or (Path(os.environ["OUT_DIR"]) if os.environ.get("OUT_DIR") else None)
        if out_dir is not None:
            return _run(parsed_args, common, out_dir)
        with tempfile.TemporaryDirectory(prefix="autoprobe-") as temp_dir:
            log(f"Using temporary output directory {temp_dir}", verbose_only=True)
            return _run(parsed_args, common, Path(temp_dir))
    except AutoprobeError as e:
        log_error(str(e))
        return 1
    except KeyboardInterrupt:
        log_error("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
