"""Build directive emission.

Turns probe outcomes into ``cargo:`` directives printed on stdout, which
Cargo reads back from the build script:

    cargo:rustc-check-cfg=cfg(has_std_ops_ControlFlow)
    cargo:rustc-cfg=has_std_ops_ControlFlow
"""

import sys
from typing import Optional, TextIO

from .engine import ProbeEngine


def mangle(text: str) -> str:
    """Replace every character that is not an ASCII letter or digit with ``_``."""
    return "".join(c if c.isascii() and c.isalnum() else "_" for c in text)


class DirectiveEmitter:
    """Writes ``cargo:rustc-cfg`` directives for successful probes."""

    def __init__(self, engine: ProbeEngine, stream: Optional[TextIO] = None):
        self.engine = engine
        self.stream = stream if stream is not None else sys.stdout
        self._emitted: list[str] = []
        self._declared: set[str] = set()

    @property
    def emitted(self) -> list[str]:
        return list(self._emitted)

    def _write(self, line: str) -> None:
        self.stream.write(f"{line}\n")
        self.stream.flush()

    def emit_possibility(self, cfg: str) -> None:
        """Declare ``cfg`` as an expected name for the ``unexpected_cfgs`` lint."""
        if cfg in self._declared:
            return
        self._declared.add(cfg)
        self._write(f"cargo:rustc-check-cfg=cfg({cfg})")

    def emit(self, cfg: str) -> None:
        """Unconditionally enable ``cfg`` for the crate being built."""
        self._write(f"cargo:rustc-cfg={cfg}")
        self._emitted.append(cfg)

    def _emit_if(self, outcome: bool, cfg: str) -> bool:
        self.emit_possibility(cfg)
        if outcome:
            self.emit(cfg)
        return outcome

    def emit_rustc_version(self, major: int, minor: int) -> bool:
        """Emit ``rustc_MAJOR_MINOR`` if the compiler is at least that version."""
        return self._emit_if(self.engine.probe_rustc_version(major, minor), f"rustc_{major}_{minor}")

    def emit_has_path(self, path: str) -> bool:
        return self.emit_path_cfg(path, f"has_{mangle(path)}")

    def emit_path_cfg(self, path: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_path(path), cfg)

    def emit_has_trait(self, bound: str) -> bool:
        return self.emit_trait_cfg(bound, f"has_{mangle(bound)}")

    def emit_trait_cfg(self, bound: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_trait(bound), cfg)

    def emit_has_type(self, ty: str) -> bool:
        return self.emit_type_cfg(ty, f"has_{mangle(ty)}")

    def emit_type_cfg(self, ty: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_type(ty), cfg)

    def emit_expression_cfg(self, expr: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_expression(expr), cfg)

    def emit_constant_cfg(self, expr: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_constant(expr), cfg)

    def emit_sysroot_crate(self, name: str) -> bool:
        """Emit ``has_NAME`` if the sysroot crate ``name`` is available."""
        return self._emit_if(self.engine.probe_sysroot_crate(name), f"has_{mangle(name)}")

    def emit_feature_cfg(self, name: str, cfg: str) -> bool:
        return self._emit_if(self.engine.probe_feature(name), cfg)

    def rerun_if_env_changed(self, var: str) -> None:
        self._write(f"cargo:rerun-if-env-changed={var}")

    def rerun_if_changed(self, path: str) -> None:
        """Ask cargo to rerun the build script when ``path`` changes."""
        self._write(f"cargo:rerun-if-changed={path}")
