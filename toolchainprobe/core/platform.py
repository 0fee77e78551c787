"""
Host platform detection for toolchainprobe.

Detects the operating system and CPU architecture of the running host and
expresses them in the normalized target vocabulary, so discovered toolchains
can be filtered down to the ones producing native code.

Usage:
    from toolchainprobe.core.platform import detect_platform, host_target

    info = detect_platform()
    print(f"Running on {info.platform_string()}")

    native = host_target()      # Target(arch='x64', os='linux', ...)
"""

import functools
import platform
import sys
from dataclasses import dataclass

from ..toolchain.triplet import Target, normalize_arch


@dataclass
class PlatformInfo:
    """
    Host platform information.

    Attributes:
        os: Normalized OS ('windows', 'linux', 'darwin', 'freebsd', ...)
        arch: Normalized architecture ('x64', 'x32', 'arm64', 'arm', ...)
        os_version: OS version string (e.g., '10.0.19041', '6.5.0-14-generic')
        machine: Raw machine string reported by the interpreter
    """

    os: str
    arch: str
    os_version: str
    machine: str

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'darwin-arm64').

        Example:
            >>> info = PlatformInfo('linux', 'x64', '6.5', 'x86_64')
            >>> info.platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    def target(self) -> Target:
        """Host as a wildcard Target (arch and OS set, ABI and libc left open)."""
        return Target(arch=self.arch, os=self.os)

    def __str__(self) -> str:
        return f"{self.os}-{self.arch} v{self.os_version}"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.
    """
    machine = platform.machine()
    return PlatformInfo(
        os=_detect_os(),
        arch=_detect_architecture(machine),
        os_version=platform.release() or platform.version(),
        machine=machine,
    )


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name in triplet vocabulary
    """
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "cygwin":
        return "cygwin"

    system = platform.system().lower()
    if system == "linux":
        if hasattr(sys, "getandroidapilevel"):
            return "android"
        return "linux"
    if system.startswith("msys") or system.startswith("mingw"):
        return "windows"
    if system in ("sunos", "solaris"):
        return "solaris"
    return system or "unknown"


def _detect_architecture(machine: str) -> str:
    machine = machine.lower()
    if not machine:
        return "unknown"
    if machine.startswith("armv") or machine == "arm":
        return "arm"
    return normalize_arch(machine)


def host_target() -> Target:
    """Get the host Target used for native toolchain filtering."""
    return detect_platform().target()


def vcvars_host_arch() -> str:
    """
    Get the host architecture name as vcvarsall.bat expects it.

    Returns:
        'amd64', 'arm64' or 'x86'
    """
    arch = detect_platform().arch
    if arch == "x64":
        return "amd64"
    if arch == "arm64":
        return "arm64"
    return "x86"


def is_windows_host() -> bool:
    return detect_platform().os == "windows"


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to detect_platform() to re-detect.
    Useful for testing.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "host_target",
    "vcvars_host_arch",
    "is_windows_host",
    "clear_platform_cache",
]
