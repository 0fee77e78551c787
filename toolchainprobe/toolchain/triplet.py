"""
Target triplet parsing and normalization.

Compilers report their target as a hyphen-separated triplet such as
``x86_64-linux-gnu``, ``aarch64-apple-darwin23.1.0`` or ``x86_64-w64-mingw32``.
This module maps those strings onto a small normalized vocabulary
(arch, os, abi, libc) that can be compared across toolchain families.

Usage:
    from toolchainprobe.toolchain.triplet import parse_full, Target

    full = parse_full("x86_64-linux-gnu")
    print(full.arch, full.os, full.abi, full.libc)   # x64 linux elf glibc

    wanted = Target(arch="x64", os="linux")
    wanted.match(full)                               # True
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Tuple

from ..core.exceptions import InvalidTargetError

UNKNOWN = "unknown"

_ARCH_NORM = {
    "x64": "x64",
    "amd64": "x64",
    "x86_64": "x64",
    "x32": "x32",
    "86": "x32",
    "x86": "x32",
    "386": "x32",
    "i386": "x32",
    "486": "x32",
    "i486": "x32",
    "586": "x32",
    "i586": "x32",
    "686": "x32",
    "i686": "x32",
    "arm": "arm",
    "arm32": "arm",
    "arm64": "arm64",
    "aarch64": "arm64",
    "ia64": "ia64",
    "powerpc": "powerpc",
    "powerpcle": "powerpcle",
    "s390": "s390",
    "s390x": "s390x",
    "sparc": "sparc",
    "sparc64": "sparc64",
    "sparcv9": "sparc64",
    "c6x": "c6x",
    "tilegx": "tilegx",
    "tilegxbe": "tilegxbe",
    "tilepro": "tilepro",
}

# Architecture families accepted verbatim (riscv64, mipsel, armv7a, wasm32, ...)
_ARCH_PREFIXES = (
    "aarch64",
    "amdgcn",
    "arc",
    "arm",
    "avr",
    "blackfin",
    "cr16",
    "cris",
    "epiphany",
    "h8300",
    "ia64",
    "iq2000",
    "lm32",
    "loongarch",
    "m32c",
    "m32r",
    "m68k",
    "microblaze",
    "mips",
    "moxie",
    "msp430",
    "nds32le",
    "nds32be",
    "nvptx",
    "or1k",
    "powerpc",
    "ppc",
    "rl78",
    "riscv32",
    "riscv64",
    "rx",
    "thumb",
    "wasm32",
    "wasm64",
    "xtensa",
    "visium",
)

_OS_MAP = {
    "mingw32": "windows",
    "mingw": "windows",
    "mingw64": "windows",
    "w64": "windows",
    "msvc": "windows",
    "windows": "windows",
    "win32": "windows",
    "linux": "linux",
    "darwin": "darwin",
    "macos": "darwin",
    "freebsd": "freebsd",
    "netbsd": "netbsd",
    "openbsd": "openbsd",
    "dragonfly": "dragonfly",
    "solaris": "solaris",
    "sunos": "solaris",
    "illumos": "solaris",
    "aix": "aix",
    "hpux": "hpux",
    "ios": "ios",
    "uclinux": "uclinux",
    "none": "none",
    "baremetal": "none",
    "cygwin": "cygwin",
    "msys": "msys",
    "vxworks": "vxworks",
    "vxworksae": "vxworks",
    "haiku": "haiku",
    "android": "android",
    "emscripten": "emscripten",
    "wasi": "wasi",
}

_ABI_MAP = {
    "eabi": "eabi",
    "eabisim": "eabisim",
    "mingw32": "pe",
    "mingw": "pe",
    "mingw64": "pe",
    "w64": "pe",
    "msvc": "pe",
    "windows": "pe",
    "cygwin": "pe",
    "msys": "pe",
    "elf": "elf",
    "netbsd": "elf",
    "openbsd": "elf",
    "freebsd": "elf",
    "aix": "elf",
    "gnueabi": "elf",
    "gnueabihf": "elf",
}

_LIBC_MAP = {
    "mingw32": "mingw",
    "mingw": "mingw",
    "mingw64": "mingw",
    "w64": "mingw",
    "musl": "musl",
    "gnu": "glibc",
    "msys": "glibc",
    "cygwin": "glibc",
    "glibc": "glibc",
    "msvcrt": "msvcrt",
    "msvc": "msvcrt",
}

# libc tokens that only qualify the Windows runtime and are not kept as vendors
_WINDOWS_RUNTIME_TOKENS = frozenset({"msvc", "mingw", "mingw32", "mingw64", "w64"})


# ============================================================================
# Component parsers
# ============================================================================


def parse_arch(arch: str) -> Tuple[str, bool]:
    """
    Parse and normalize an architecture token.

    Returns:
        (normalized, recognized). Unrecognized tokens are returned lowercased.

    Example:
        >>> parse_arch("x86_64")
        ('x64', True)
        >>> parse_arch("riscv64")
        ('riscv64', True)
    """
    arch = arch.lower()
    if arch in _ARCH_NORM:
        return _ARCH_NORM[arch], True
    for prefix in _ARCH_PREFIXES:
        if arch.startswith(prefix):
            return arch, True
    return arch, False


def parse_os(os_name: str) -> Tuple[str, bool]:
    """
    Parse and normalize an operating system token.

    Versioned names such as ``darwin23.1.0`` or ``freebsd14`` are matched by
    prefix.
    """
    os_name = os_name.lower()
    if os_name in _OS_MAP:
        return _OS_MAP[os_name], True
    for prefix, normalized in _OS_MAP.items():
        if os_name.startswith(prefix):
            return normalized, True
    return os_name, False


def parse_abi(abi: str) -> Tuple[str, bool]:
    """Parse and normalize an ABI / object format token."""
    abi = abi.lower()
    if abi in _ABI_MAP:
        return _ABI_MAP[abi], True
    if abi.startswith(("linux", "uclinux", "solaris")):
        return "elf", True
    if abi.startswith("darwin"):
        return "macho", True
    return abi, False


def parse_libc(libc: str) -> Tuple[str, bool]:
    """Parse and normalize a C runtime token."""
    libc = libc.lower()
    if libc in _LIBC_MAP:
        return _LIBC_MAP[libc], True
    return libc, False


def normalize_arch(arch: str) -> str:
    return parse_arch(arch)[0]


def normalize_os(os_name: str) -> str:
    return parse_os(os_name)[0]


def normalize_abi(abi: str) -> str:
    return parse_abi(abi)[0]


def normalize_libc(libc: str) -> str:
    return parse_libc(libc)[0]


# ============================================================================
# Target model
# ============================================================================


@dataclass(frozen=True)
class Target:
    """
    Normalized compiler target.

    Empty fields act as wildcards in match(); "unknown" means the field was
    parsed but not recognized.

    Attributes:
        arch: CPU architecture ('x64', 'x32', 'arm64', 'riscv64', ...)
        os: Operating system ('linux', 'windows', 'darwin', 'none', ...)
        abi: Object format / ABI ('elf', 'pe', 'macho', 'eabi', ...)
        libc: C runtime ('glibc', 'musl', 'mingw', 'msvcrt', ...)
    """

    arch: str = ""
    os: str = ""
    abi: str = ""
    libc: str = ""

    @classmethod
    def from_parts(
        cls, arch: str = "", os: str = "", abi: str = "", libc: str = ""
    ) -> "Target":
        """Create a Target, normalizing each non-empty component."""
        return cls(
            arch=normalize_arch(arch) if arch else "",
            os=normalize_os(os) if os else "",
            abi=normalize_abi(abi) if abi else "",
            libc=normalize_libc(libc) if libc else "",
        )

    def target(self) -> "Target":
        """Return the plain Target part (drops Full's extra fields)."""
        return Target(arch=self.arch, os=self.os, abi=self.abi, libc=self.libc)

    def match(self, other: "Target") -> bool:
        """
        Check whether two targets are compatible.

        A field takes part in the comparison only when it is set on both
        sides, so Target(arch="x64") matches any x64 target.
        """
        for mine, theirs in (
            (self.arch, other.arch),
            (self.os, other.os),
            (self.abi, other.abi),
            (self.libc, other.libc),
        ):
            if mine and theirs and mine != theirs:
                return False
        return True

    def is_valid(self) -> bool:
        return self.os != UNKNOWN and self.arch != UNKNOWN

    def validate(self) -> None:
        """
        Raises:
            InvalidTargetError: If the architecture or OS is unknown
        """
        if self.arch == UNKNOWN:
            raise InvalidTargetError(str(self), "unknown architecture")
        if self.os == UNKNOWN:
            raise InvalidTargetError(str(self), "unknown operating system")

    def is_darwin(self) -> bool:
        return self.os in ("darwin", "ios")

    def is_linux(self) -> bool:
        return self.os in ("linux", "android", "uclinux")

    def is_bsd(self) -> bool:
        return self.os in ("freebsd", "netbsd", "openbsd", "dragonfly")

    def is_solaris(self) -> bool:
        return self.os == "solaris"

    def is_unix(self) -> bool:
        return (
            self.is_linux()
            or self.is_darwin()
            or self.is_bsd()
            or self.is_solaris()
            or self.os in ("aix", "hpux")
        )

    def is_posix(self) -> bool:
        return self.is_unix() or self.os in ("cygwin", "msys")

    def is_embedded(self) -> bool:
        return self.os in ("none", "vxworks")

    def is_wasm(self) -> bool:
        return self.os in ("emscripten", "wasi")

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for name in ("arch", "os", "abi", "libc"):
            value = getattr(self, name)
            if value:
                data[name] = value
        return data

    def __str__(self) -> str:
        parts = [
            p
            for p in (self.arch, self.os, self.abi, self.libc)
            if p and p != UNKNOWN
        ]
        return "-".join(parts)


@dataclass(frozen=True)
class Full(Target):
    """
    A parsed target triplet.

    Attributes:
        original: The triplet string exactly as reported by the compiler
        vendors: Segments that were not classified (e.g. 'pc', 'apple', 'gnu')
    """

    original: str = ""
    vendors: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.original:
            data["original"] = self.original
        if self.vendors:
            data["vendors"] = list(self.vendors)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Full":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["vendors"] = tuple(values.get("vendors") or ())
        return cls(**values)


# ============================================================================
# Triplet parsing
# ============================================================================


def parse_target(triplet: str) -> Tuple[Target, List[str]]:
    """
    Parse a target triplet into a normalized Target and leftover vendor segments.

    Each category is located independently by scanning all segments and
    taking the first one its table recognizes. The C runtime is searched
    among the raw segments as well, so 'x86_64-linux-gnu' yields
    libc='glibc' while keeping 'gnu' as a vendor segment.

    Args:
        triplet: Triplet string (e.g. 'x86_64-pc-windows-msvc')

    Returns:
        (target, vendors)

    Raises:
        InvalidTargetError: If the triplet is empty

    Example:
        >>> t, vendors = parse_target("aarch64-linux-gnu")
        >>> (t.arch, t.os, t.abi, t.libc, vendors)
        ('arm64', 'linux', 'elf', 'glibc', ['gnu'])
    """
    if not triplet:
        raise InvalidTargetError(triplet, "empty target string")

    segments = triplet.split("-")
    consumed = set()

    arch = UNKNOWN
    for i, seg in enumerate(segments):
        value, ok = parse_arch(seg)
        if ok:
            arch = value
            consumed.add(i)
            break

    os_name = UNKNOWN
    os_index = None
    for i, seg in enumerate(segments):
        value, ok = parse_os(seg)
        if ok and os_name in (UNKNOWN, "none"):
            if os_index is not None:
                consumed.discard(os_index)
            os_name = value
            os_index = i
            consumed.add(i)

    abi = UNKNOWN
    for i, seg in enumerate(segments):
        value, ok = parse_abi(seg)
        if ok:
            abi = value
            consumed.add(i)
            break

    vendors = [seg for i, seg in enumerate(segments) if i not in consumed]

    libc = UNKNOWN
    for seg in segments:
        value, ok = parse_libc(seg)
        if ok:
            libc = value
            if seg.lower() in _WINDOWS_RUNTIME_TOKENS:
                vendors = [v for v in vendors if v.lower() not in _WINDOWS_RUNTIME_TOKENS]
            break

    return Target(arch=arch, os=os_name, abi=abi, libc=libc), vendors


def parse_full(triplet: str) -> Full:
    """
    Parse a triplet string into a Full record.

    Raises:
        InvalidTargetError: If the triplet is empty
    """
    target, vendors = parse_target(triplet)
    return Full(
        arch=target.arch,
        os=target.os,
        abi=target.abi,
        libc=target.libc,
        original=triplet,
        vendors=tuple(vendors),
    )


def parse_full_lenient(triplet: str) -> Full:
    """Parse a triplet reported by a compiler, keeping only the original on failure."""
    try:
        return parse_full(triplet)
    except InvalidTargetError:
        return Full(original=triplet)


__all__ = [
    "UNKNOWN",
    "Target",
    "Full",
    "parse_arch",
    "parse_os",
    "parse_abi",
    "parse_libc",
    "normalize_arch",
    "normalize_os",
    "normalize_abi",
    "normalize_libc",
    "parse_target",
    "parse_full",
    "parse_full_lenient",
]
