"""Tests for the autoprobe command-line interface."""

from pathlib import Path
from unittest.mock import patch

import pytest

from autoprobe import __version__
from autoprobe.cli import CommonArgs, ReportFormatError, create_engine, main, parse_probe_file
from autoprobe.channel import Channel
from autoprobe.engine import ProbeEngine
from autoprobe.errors import ConfigurationError
from autoprobe.locator import ToolchainLocation
from autoprobe.snippets import ProbeKind
from autoprobe.version import Version


@pytest.fixture(autouse=True)
def no_cargo_out_dir(monkeypatch):
    """Keep an OUT_DIR from an enclosing cargo build out of these tests."""
    monkeypatch.delenv("OUT_DIR", raising=False)


@pytest.fixture
def fake_engine(monkeypatch, rustc):
    """Route create_engine to a ProbeEngine over FakeRustc and record its inputs."""
    calls = []

    def _create(common, out_dir):
        calls.append((common, out_dir))
        location = ToolchainLocation(rustc=common.rustc or "rustc", out_dir=out_dir, target=common.target)
        return ProbeEngine.from_location(location, runner=rustc, no_std=common.no_std)

    monkeypatch.setattr("autoprobe.cli.create_engine", _create)
    return calls


class TestCLIBasics:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: autoprobe" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_unknown_kind_rejected(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "macro", "println"])
        assert exc_info.value.code == 2


class TestInfoCommand:
    def test_info(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "info"]) == 0
        err = capsys.readouterr().err
        assert f"autoprobe v{__version__}" in err
        assert "Toolchain: rustc 1.70.0 (stable)" in err
        assert "Host: x86_64-unknown-linux-gnu" in err
        assert "no_std: no" in err

    def test_out_dir_from_environment(self, fake_engine, tmp_path, monkeypatch):
        monkeypatch.setenv("OUT_DIR", str(tmp_path))
        assert main(["info"]) == 0
        assert fake_engine[0][1] == tmp_path

    def test_temporary_out_dir(self, fake_engine):
        assert main(["info"]) == 0
        out_dir = fake_engine[0][1]
        assert out_dir.name.startswith("autoprobe-")
        assert not out_dir.exists()

    def test_std_flags(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "--no-std", "info"]) == 0
        assert fake_engine[0][0].no_std is True
        assert "no_std: yes" in capsys.readouterr().err

        assert main(["--out-dir", str(tmp_path), "--std", "info"]) == 0
        assert fake_engine[1][0].no_std is False

    def test_configuration_error(self, monkeypatch, tmp_path, capsys):
        def _fail(common, out_dir):
            raise ConfigurationError("Failed to run rustc: not found")

        monkeypatch.setattr("autoprobe.cli.create_engine", _fail)
        assert main(["--out-dir", str(tmp_path), "info"]) == 1
        assert "ERROR: Failed to run rustc: not found" in capsys.readouterr().err


class TestCheckCommand:
    def test_success(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "check", "path", "std::ops::Add"]) == 0
        captured = capsys.readouterr()
        assert "[path] std::ops::Add: yes" in captured.err
        assert captured.out == ""

    def test_failure(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "check", "sysroot_crate", "doesnt_exist"]) == 1
        assert "[sysroot_crate] doesnt_exist: no" in capsys.readouterr().err

    def test_emit(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "check", "type", "i128", "--emit", "has_i128"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "cargo:rustc-check-cfg=cfg(has_i128)",
            "cargo:rustc-cfg=has_i128",
        ]

    def test_emit_on_failure_only_declares(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "check", "feature", "rust1", "--emit", "nightly"]) == 1
        assert capsys.readouterr().out.splitlines() == ["cargo:rustc-check-cfg=cfg(nightly)"]

    def test_feature_flags(self, fake_engine, rustc, tmp_path, capsys):
        rustc.release = "1.71.0-nightly"
        rustc.version = Version(1, 71, 0)
        rustc.channel = Channel.NIGHTLY
        args = ["--out-dir", str(tmp_path), "check", "trait", "std::iter::Step", "-f", "step_trait"]
        assert main(args) == 0
        assert "#![feature(step_trait)]" in Path(rustc.compile_calls[-1][-1]).read_text(encoding="utf-8")


class TestReportCommand:
    @pytest.fixture
    def probe_file(self, tmp_path):
        path = tmp_path / "probes.txt"
        path.write_text(
            "# toolchain features used by this crate\n"
            "path std::ops::ControlFlow\n"
            "\n"
            "type i128\n"
            "sysroot_crate doesnt_exist\n",
            encoding="utf-8",
        )
        return path

    def test_report(self, fake_engine, probe_file, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "report", str(probe_file)]) == 0
        err = capsys.readouterr().err
        assert "std::ops::ControlFlow" in err
        assert "doesnt_exist" in err
        assert "3 probe(s)" in err

    def test_report_bad_kind(self, fake_engine, tmp_path, capsys):
        path = tmp_path / "probes.txt"
        path.write_text("macro println\n", encoding="utf-8")
        assert main(["--out-dir", str(tmp_path), "report", str(path)]) == 1
        assert "unknown probe kind 'macro'" in capsys.readouterr().err

    def test_report_missing_file(self, fake_engine, tmp_path, capsys):
        assert main(["--out-dir", str(tmp_path), "report", str(tmp_path / "nope.txt")]) == 1
        assert "Cannot read probe file" in capsys.readouterr().err


class TestParseProbeFile:
    def test_skips_comments_and_blanks(self, tmp_path):
        path = tmp_path / "probes.txt"
        path.write_text("# header\n\nexpression \"test\".trim_start()\n  trait std::ops::Add<i32>  \n", encoding="utf-8")
        assert parse_probe_file(path) == [
            (ProbeKind.EXPRESSION, '"test".trim_start()'),
            (ProbeKind.TRAIT, "std::ops::Add<i32>"),
        ]

    def test_missing_payload(self, tmp_path):
        path = tmp_path / "probes.txt"
        path.write_text("path\n", encoding="utf-8")
        with pytest.raises(ReportFormatError, match=r"probes\.txt:1"):
            parse_probe_file(path)


class TestCreateEngine:
    def test_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RUSTC", "/usr/bin/rustc")
        monkeypatch.setenv("HOST", "x86_64-unknown-linux-gnu")
        monkeypatch.setenv("RUSTFLAGS", "-O")
        monkeypatch.delenv("CARGO_ENCODED_RUSTFLAGS", raising=False)
        monkeypatch.delenv("TARGET", raising=False)

        with patch("autoprobe.cli.ProbeEngine.from_location") as mock_from_location:
            create_engine(CommonArgs(rustc="rustc-nightly", target="thumbv7em-none-eabihf", no_std=True), tmp_path)

        location = mock_from_location.call_args[0][0]
        assert location.rustc == "rustc-nightly"
        assert location.target == "thumbv7em-none-eabihf"
        assert location.out_dir == tmp_path
        assert location.rustflags == ("-O",)
        assert mock_from_location.call_args[1]["no_std"] is True
