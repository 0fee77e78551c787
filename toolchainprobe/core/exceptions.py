"""
Centralized exception hierarchy for toolchainprobe.

Probe failures are raised by the low-level probing helpers and caught per
candidate by the discovery code, so a single broken compiler never aborts a
scan. Malformed input and inconsistent environments propagate to the caller.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ToolchainProbeError(Exception):
    """Base exception for all toolchainprobe errors."""

    pass


# ============================================================================
# Malformed Input
# ============================================================================


class InvalidTargetError(ToolchainProbeError, ValueError):
    """Raised when a target triplet cannot be parsed or validated."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"invalid target {target!r}: {reason}")


class ConfigureParseError(ToolchainProbeError):
    """Raised when a GCC 'Configured with:' line cannot be parsed."""

    pass


# ============================================================================
# Probe Failures
# ============================================================================


class CompilerProbeError(ToolchainProbeError):
    """Raised when a compiler invocation fails or produces unusable output."""

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(f"{command}: {message}")


class ArchitectureNotSupportedError(CompilerProbeError):
    """Raised when an MSVC installation cannot target the requested architecture."""

    pass


class DiscoveryToolMissingError(ToolchainProbeError):
    """Raised when a helper needed for discovery (vswhere, vcvarsall) is missing."""

    pass


# ============================================================================
# Environment Configuration
# ============================================================================


class EnvironmentConfigError(ToolchainProbeError):
    """Base exception for CC/CXX environment configuration errors."""

    pass


class InconsistentEnvironmentError(EnvironmentConfigError):
    """Raised when CC and CXX point at different compiler families."""

    pass


class UnsupportedCompilerError(EnvironmentConfigError):
    """Raised when the configured compiler does not answer any known probe."""

    pass


# ============================================================================
# Settings
# ============================================================================


class ConfigError(ToolchainProbeError):
    """Raised when a discovery configuration file or override is invalid."""

    pass
