"""Synthesis of probe snippets.

Every probe is a tiny library crate. The body depends on the kind of
construct being tested; the header carries crate-level attributes that
apply to all probes of an engine.
"""

import hashlib
from enum import Enum
from typing import Iterable


class ProbeKind(Enum):
    """Kinds of construct a probe can test."""

    PATH = "path"
    TRAIT = "trait"
    TYPE = "type"
    EXPRESSION = "expression"
    CONSTANT = "constant"
    SYSROOT_CRATE = "sysroot_crate"
    FEATURE = "feature"
    RAW = "raw"

    def __str__(self) -> str:
        return self.value


_TEMPLATES = {
    ProbeKind.PATH: "pub use {};",
    ProbeKind.TRAIT: "pub trait Probe: {} + Sized {{}}",
    # An alias only requires the type to resolve; unsized and dyn-incompatible types pass.
    ProbeKind.TYPE: "pub type Probe = {};",
    ProbeKind.EXPRESSION: "pub fn probe() {{ let _ = {}; }}",
    ProbeKind.CONSTANT: "pub const PROBE: () = ((), {}).0;",
    ProbeKind.SYSROOT_CRATE: "extern crate {} as probe;",
    ProbeKind.FEATURE: "#![feature({})]",
    ProbeKind.RAW: "{}",
}


def render_body(kind: ProbeKind, payload: str) -> str:
    """Embed ``payload`` into the template for ``kind``."""
    return _TEMPLATES[kind].format(payload)


def render_header(no_std: bool, features: Iterable[str]) -> str:
    """Render crate attributes: ``#![no_std]`` first, then features in order."""
    lines = []
    if no_std:
        lines.append("#![no_std]\n")
    lines.extend(f"#![feature({name})]\n" for name in features)
    return "".join(lines)


def render_snippet(body: str, no_std: bool = False, features: Iterable[str] = ()) -> str:
    """Assemble the complete source text of a probe."""
    text = render_header(no_std, features) + body
    if not text.endswith("\n"):
        text += "\n"
    return text


def snippet_digest(snippet: str) -> str:
    """Short content hash used to name a probe's source file and crate."""
    return hashlib.sha256(snippet.encode("utf-8")).hexdigest()[:16]
