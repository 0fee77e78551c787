"""
Core functionality for toolchainprobe.

This package contains the foundational modules that the probers depend on:
exceptions, subprocess probing, filesystem scanning and host detection.
"""

from .exceptions import (
    ToolchainProbeError,
    InvalidTargetError,
    ConfigureParseError,
    CompilerProbeError,
    ArchitectureNotSupportedError,
    DiscoveryToolMissingError,
    EnvironmentConfigError,
    InconsistentEnvironmentError,
    UnsupportedCompilerError,
    ConfigError,
)

from .process import (
    DEFAULT_TIMEOUT,
    run_probe,
)

from .filesystem import (
    find_executable,
    search_files_and_symlinks,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    host_target,
    clear_platform_cache,
)

__all__ = [
    # Exceptions
    "ToolchainProbeError",
    "InvalidTargetError",
    "ConfigureParseError",
    "CompilerProbeError",
    "ArchitectureNotSupportedError",
    "DiscoveryToolMissingError",
    "EnvironmentConfigError",
    "InconsistentEnvironmentError",
    "UnsupportedCompilerError",
    "ConfigError",
    # Process
    "DEFAULT_TIMEOUT",
    "run_probe",
    # Filesystem
    "find_executable",
    "search_files_and_symlinks",
    # Platform
    "PlatformInfo",
    "detect_platform",
    "host_target",
    "clear_platform_cache",
]
