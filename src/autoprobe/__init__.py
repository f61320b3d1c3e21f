"""autoprobe - probe a Rust toolchain for supported features at build time."""

__version__ = "0.1.0"

from autoprobe.cache import ProbeCache
from autoprobe.channel import Channel
from autoprobe.directories import dir_contains_target, ensure_scratch_dir, resolve_scratch_dir
from autoprobe.emit import DirectiveEmitter
from autoprobe.engine import ProbeConfig, ProbeEngine, ProbeRecord
from autoprobe.errors import AutoprobeError, ConfigurationError, ResourceError
from autoprobe.features import FeatureFlagManager
from autoprobe.locator import ToolchainLocation, locate_from_env
from autoprobe.snippets import ProbeKind
from autoprobe.toolchain import ToolchainInfo, ToolchainInspector
from autoprobe.version import Version, VersionParseError

__all__ = [
    "AutoprobeError",
    "Channel",
    "ConfigurationError",
    "DirectiveEmitter",
    "FeatureFlagManager",
    "ProbeCache",
    "ProbeConfig",
    "ProbeEngine",
    "ProbeKind",
    "ProbeRecord",
    "ResourceError",
    "ToolchainInfo",
    "ToolchainInspector",
    "ToolchainLocation",
    "Version",
    "VersionParseError",
    "dir_contains_target",
    "ensure_scratch_dir",
    "locate_from_env",
    "resolve_scratch_dir",
]
