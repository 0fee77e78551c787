"""
toolchainprobe - C/C++ compiler toolchain discovery.

Finds installed MSVC, GCC and Clang-family compilers, describes them with a
uniform model and assembles toolchains for build file generators.

Usage:
    import toolchainprobe

    chains = toolchainprobe.discover_toolchains(want_cxx=True)
    native = toolchainprobe.choose_native(chains)
"""

__version__ = "0.1.0"

from .core.exceptions import (  # noqa: E402
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
from .core.platform import detect_platform, host_target  # noqa: E402
from .toolchain.triplet import Target, Full, parse_target, parse_full  # noqa: E402
from .toolchain.tool import Tool, ToolPath, Toolset  # noqa: E402
from .toolchain.chain import Chain  # noqa: E402
from .toolchain.discovery import (  # noqa: E402
    discover_installations,
    discover_toolchains,
    find,
    natives,
    choose,
    choose_native,
)
from .cc.builder import Builder, from_env  # noqa: E402
from .cc.flags import BuildConfig, FlagSet, Flags  # noqa: E402
from .config import DiscoveryConfig, load_config  # noqa: E402

__all__ = [
    "__version__",
    # Errors
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
    # Host
    "detect_platform",
    "host_target",
    # Model
    "Target",
    "Full",
    "parse_target",
    "parse_full",
    "Tool",
    "ToolPath",
    "Toolset",
    "Chain",
    # Discovery
    "discover_installations",
    "discover_toolchains",
    "find",
    "natives",
    "choose",
    "choose_native",
    # Builder
    "Builder",
    "from_env",
    "BuildConfig",
    "FlagSet",
    "Flags",
    # Configuration
    "DiscoveryConfig",
    "load_config",
]
