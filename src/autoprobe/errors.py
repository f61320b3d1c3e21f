"""Exception types for autoprobe.

Probe outcomes are never raised; a construct the toolchain rejects is simply
reported as ``False``. Only conditions that prevent probing altogether
surface as exceptions.
"""


class AutoprobeError(Exception):
    """Base class for all autoprobe errors."""

    pass


class ConfigurationError(AutoprobeError):
    """Raised when the toolchain cannot be invoked or identified.

    Examples: the compiler binary is missing, ``rustc --version`` exits with
    a failure, or its reported version cannot be parsed.
    """

    pass


class ResourceError(AutoprobeError):
    """Raised when the scratch directory or a probe artifact cannot be written."""

    pass
