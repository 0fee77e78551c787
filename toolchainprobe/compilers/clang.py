"""
Clang-family discovery.

Handles the LLVM-based front-ends that share clang's '-v' output format:
vanilla Clang, Apple Clang, Emscripten, Intel oneAPI, TI Clang, ARM
Compiler and zig's 'zig cc' mode. The implementation is recognized from
the first line of '-v' output.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple

from ..core.exceptions import CompilerProbeError
from ..core.filesystem import IS_WINDOWS, dir_exists, to_slash
from ..core.process import DEFAULT_TIMEOUT, run_probe, split_lines
from ..toolchain.chain import Chain
from ..toolchain.executable import Executable
from ..toolchain.tool import Tool, ToolPath
from ..toolchain.triplet import Full, parse_full, parse_full_lenient
from ..toolchain.version import newest_first_key
from .base import CandidateGroup, CompilerProber
from .gcc import get_system_includes

logger = logging.getLogger(__name__)


class Implementation(Enum):
    """LLVM-based compiler variants."""

    CLANG = "clang"
    APPLE_CLANG = "apple-clang"
    EMSCRIPTEN = "emscripten"
    INTEL_CLANG = "intel-clang"
    TI_CLANG = "ti-clang"
    ARM_CLANG = "arm-clang"
    ZIG_CLANG = "zig-clang"

    def __str__(self) -> str:
        return self.value


# Banner patterns, tried in order against the first line of '-v' output.
# Emscripten and Apple come before the generic pattern, which would also
# match their banners.
BANNER_PATTERNS: List[Tuple[Pattern, Implementation]] = [
    (
        re.compile(r"^emcc \(Emscripten gcc/clang-like replacement.*\) ([\d.]+)"),
        Implementation.EMSCRIPTEN,
    ),
    (re.compile(r"^Apple (?:clang|LLVM) version ([\d.]+)"), Implementation.APPLE_CLANG),
    (re.compile(r"^Intel[^\n]+oneAPI[^\n]+ ([\d.]+)"), Implementation.INTEL_CLANG),
    (re.compile(r"^TI .* Clang ([\d.]+)"), Implementation.TI_CLANG),
    (re.compile(r"^armclang version ([\d.]+)"), Implementation.ARM_CLANG),
    (re.compile(r"^(?:.*clang) version ([\d.]+)"), Implementation.CLANG),
]

# Only used for zig binaries, since it also matches plain clang banners
ZIG_PATTERN = re.compile(r"^(?:Homebrew )?clang version ([\d.]+)")

CLANG_FILENAME = re.compile(r"^clang(?:-\d+(?:\.\d+)*)?(?:\.exe)?$")
EMCC_FILENAME = re.compile(r"^em(?:cc|\+\+)(?:\.exe)?$")
ZIG_FILENAME = re.compile(r"^zig(?:\.exe)?$")

_TARGET = re.compile(r"^Target:\s+(.*)$", re.MULTILINE)
_THREAD_MODEL = re.compile(r"^Thread model:\s+(.*)$", re.MULTILINE)
_INSTALLED_DIR = re.compile(r"^InstalledDir:\s+(.*)$", re.MULTILINE)

EMSCRIPTEN_TARGET = "wasm32-emscripten"

TOOL_NAMES: Dict[str, Tool] = {
    "clang": Tool.C_COMPILER,
    "clang++": Tool.CXX_COMPILER,
    "ar": Tool.ARCHIVER,
    "llvm-ar": Tool.ARCHIVER,
    "as": Tool.ASM_COMPILER,
    "llvm-as": Tool.ASM_COMPILER,
    "lld": Tool.LINKER,
    "objcopy": Tool.OBJCOPY,
    "llvm-objcopy": Tool.OBJCOPY,
    "objdump": Tool.OBJDUMP,
    "llvm-objdump": Tool.OBJDUMP,
    "ranlib": Tool.RANLIB,
    "llvm-ranlib": Tool.RANLIB,
    "windres": Tool.RESOURCE_COMPILER,
    "llvm-windres": Tool.RESOURCE_COMPILER,
    "llvm-rc": Tool.RESOURCE_COMPILER,
    "strip": Tool.STRIP,
    "llvm-strip": Tool.STRIP,
}

EMSCRIPTEN_TOOL_NAMES: Dict[str, Tool] = {
    "emcc": Tool.C_COMPILER,
    "em++": Tool.CXX_COMPILER,
    "emar": Tool.ARCHIVER,
    "emranlib": Tool.RANLIB,
}

# zig dispatches every role through a subcommand
ZIG_SUBCOMMANDS: List[Tuple[Tool, str]] = [
    (Tool.C_COMPILER, "cc"),
    (Tool.CXX_COMPILER, "c++"),
    (Tool.ARCHIVER, "ar"),
    (Tool.RESOURCE_COMPILER, "rc"),
    (Tool.RANLIB, "ranlib"),
    (Tool.OBJCOPY, "objcopy"),
    (Tool.OBJDUMP, "objdump"),
]


# ============================================================================
# Installation model
# ============================================================================


@dataclass
class ClangVersionInfo:
    """Information extracted from a clang-family driver."""

    implementation: Implementation = Implementation.CLANG
    version: str = ""
    full_version: str = ""
    target: Full = field(default_factory=Full)
    thread_model: str = ""
    installed_dir: str = ""
    cc_include_dirs: List[str] = field(default_factory=list)
    cxx_include_dirs: List[str] = field(default_factory=list)

    def signature(self) -> str:
        return (
            self.implementation.value
            + self.full_version
            + self.version
            + self.target.original
            + self.thread_model
            + "|".join(self.cc_include_dirs)
            + "#"
            + "|".join(self.cxx_include_dirs)
        )


@dataclass
class ClangInstallation(ClangVersionInfo):
    """A clang-family installation with all the paths it is reachable through."""

    c_compiler: Executable = field(default_factory=Executable)

    @classmethod
    def from_info(cls, info: ClangVersionInfo) -> "ClangInstallation":
        return cls(
            implementation=info.implementation,
            version=info.version,
            full_version=info.full_version,
            target=info.target,
            thread_model=info.thread_model,
            installed_dir=info.installed_dir,
            cc_include_dirs=list(info.cc_include_dirs),
            cxx_include_dirs=list(info.cxx_include_dirs),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compiler": "clang",
            "implementation": self.implementation.value,
            "version": self.version,
            "full-version": self.full_version,
            "target": self.target.to_dict(),
            "thread-model": self.thread_model,
            "installed-dir": self.installed_dir,
            "cc-include-dirs": list(self.cc_include_dirs),
            "cxx-include-dirs": list(self.cxx_include_dirs),
            "c-compiler": self.c_compiler.to_dict(),
        }

    def summary(self) -> str:
        lines = [
            f"{self.implementation.value} {self.version}",
            f"- full version: '{self.full_version}'",
            f"- primary target: {self.target.original}",
            f"  - os: {self.target.os}",
            f"  - arch: {self.target.arch}",
            f"  - abi: {self.target.abi}",
            f"  - libc: {self.target.libc}",
            f"- thread model: {self.thread_model}",
            f"- CC primary path: '{self.c_compiler.primary_path}'",
        ]
        if self.c_compiler.subcommands:
            lines.append(f"- CC subcommands: {' '.join(self.c_compiler.subcommands)}")
        for path in self.c_compiler.other_paths:
            lines.append(f"- CC alternative path: '{path}'")
        for path in self.c_compiler.symlinks:
            lines.append(f"- CC symlink path: '{path}'")
        lines.append(f"- installed dir: {self.installed_dir}")
        return "\n".join(lines)


# ============================================================================
# Probing
# ============================================================================


def _first_line(output: str) -> str:
    for line in split_lines(output):
        if line.strip():
            return line.strip()
    return ""


def parse_version_output(
    output: str, implementation: Implementation, pattern: Pattern
) -> ClangVersionInfo:
    """
    Parse '-v' output of a clang-family driver.

    Raises:
        CompilerProbeError: If the banner does not match pattern
    """
    banner = _first_line(output)
    match = pattern.search(banner)
    if not match:
        raise CompilerProbeError(banner or "<empty>", "invalid version output")

    info = ClangVersionInfo(
        implementation=implementation,
        version=match.group(1).split("-", 1)[0],
        full_version=match.group(0).strip(),
    )

    if implementation == Implementation.EMSCRIPTEN:
        info.target = parse_full(EMSCRIPTEN_TARGET)
    else:
        m = _TARGET.search(output)
        if m:
            info.target = parse_full_lenient(m.group(1).strip())

    m = _THREAD_MODEL.search(output)
    if m:
        info.thread_model = m.group(1).strip()
    m = _INSTALLED_DIR.search(output)
    if m:
        info.installed_dir = to_slash(m.group(1).strip())
    return info


def detect_implementation(banner: str) -> Optional[Tuple[Implementation, Pattern]]:
    """Find the implementation whose pattern matches a '-v' banner line."""
    for pattern, implementation in BANNER_PATTERNS:
        if pattern.search(banner):
            return implementation, pattern
    return None


def query_version_with_pattern(
    tool: ToolPath,
    implementation: Implementation,
    pattern: Pattern,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> ClangVersionInfo:
    """
    Probe a driver as a specific implementation.

    Raises:
        CompilerProbeError: If the driver fails or the banner does not match
    """
    command = tool.command_line()
    output = run_probe([*command, "-v"], timeout=timeout)
    info = parse_version_output(output, implementation, pattern)
    _probe_includes(info, command, timeout)
    return info


def query_version(
    tool: ToolPath, timeout: Optional[float] = DEFAULT_TIMEOUT
) -> ClangVersionInfo:
    """
    Probe a clang-family driver, recognizing its implementation.

    Raises:
        CompilerProbeError: If the driver fails or is not a known implementation
    """
    command = tool.command_line()
    output = run_probe([*command, "-v"], timeout=timeout)
    detected = detect_implementation(_first_line(output))
    if detected is None:
        raise CompilerProbeError(str(tool), "unknown clang implementation")
    implementation, pattern = detected
    info = parse_version_output(output, implementation, pattern)
    _probe_includes(info, command, timeout)
    return info


def _probe_includes(
    info: ClangVersionInfo, command: List[str], timeout: Optional[float]
) -> None:
    for lang, attr in (("c", "cc_include_dirs"), ("c++", "cxx_include_dirs")):
        try:
            setattr(info, attr, get_system_includes(command, lang, timeout))
        except CompilerProbeError as e:
            logger.debug(f"Include probe for {lang} failed: {e}")


def accept_filename(name: str) -> bool:
    return bool(
        CLANG_FILENAME.match(name)
        or EMCC_FILENAME.match(name)
        or ZIG_FILENAME.match(name)
    )


def is_zig(path: str) -> bool:
    return bool(ZIG_FILENAME.match(to_slash(path).rsplit("/", 1)[-1]))


# ============================================================================
# Prober
# ============================================================================


class ClangProber(CompilerProber):
    """Discovers clang-family installations and assembles their toolchains."""

    name = "clang"
    infix = "clang"
    tool_names = TOOL_NAMES

    def search_paths(self) -> List[str]:
        """PATH, LLVM_ROOT/bin and, on Windows, the default LLVM install dirs."""
        paths = super().search_paths()
        roots = [os.environ.get("LLVM_ROOT", "")]
        if IS_WINDOWS:
            roots.append(os.path.join(os.environ.get("ProgramFiles(x86)", ""), "LLVM"))
            roots.append(os.path.join(os.environ.get("ProgramFiles", ""), "LLVM"))
        for root in roots:
            if root and dir_exists(root):
                paths.append(os.path.join(root, "bin"))
        return paths

    def probe(self, path: str) -> ClangVersionInfo:
        if is_zig(path):
            return query_version_with_pattern(
                ToolPath(path, ("cc",)),
                Implementation.ZIG_CLANG,
                ZIG_PATTERN,
                self.timeout,
            )
        return query_version(ToolPath(path), self.timeout)

    @staticmethod
    def _family(implementation: Implementation) -> Tuple[str, Dict[str, Tool]]:
        """Scoring infix and tool names for an implementation."""
        if implementation == Implementation.EMSCRIPTEN:
            return "emcc", EMSCRIPTEN_TOOL_NAMES
        if implementation == Implementation.ZIG_CLANG:
            return "zig", {}
        return "clang", TOOL_NAMES

    def discover_installations(self) -> List[ClangInstallation]:
        """
        Find clang-family installations.

        Returns:
            Installations sorted newest version first
        """
        self.notify("discovering LLVM-based compiler installations")

        files = self.scan(accept_filename)
        if not files:
            return []

        groups = self.group_candidates(
            files, self.probe, lambda info: info.signature()
        )
        installations = [self._installation(group) for group in groups]
        installations.sort(key=lambda i: newest_first_key(i.version))

        self.notify(f"found {len(installations)} LLVM-based compiler installation(s)")
        logger.info(f"Found {len(installations)} clang-family installation(s)")
        return installations

    def _installation(self, group: CandidateGroup) -> ClangInstallation:
        inst = ClangInstallation.from_info(group.info)
        inst.c_compiler.other_paths = list(group.files)
        inst.c_compiler.symlinks = list(group.symlinks)
        infix, names = self._family(inst.implementation)
        inst.c_compiler.choose_primary_c_compiler_path(
            inst.target.original, infix, inst.version, names
        )
        if inst.implementation == Implementation.ZIG_CLANG:
            inst.c_compiler.subcommands = ["cc"]
        return inst

    def discover_toolchains(self, want_cxx: bool = False) -> List[Chain]:
        """
        Assemble a Chain for every clang-family installation.

        Clang drivers compile C++ when no dedicated C++ driver is found, so
        want_cxx never drops a clang chain.
        """
        return [self.assemble(inst) for inst in self.discover_installations()]

    def assemble(self, inst: ClangInstallation) -> Chain:
        primary = inst.c_compiler.primary_path
        self.notify(
            f"scanning {inst.implementation.value} {inst.full_version} "
            f"targeting {inst.target.original} at {primary}"
        )
        chain = Chain(
            compiler="clang",
            implementation=inst.implementation.value,
            version=inst.version,
            full_version=inst.full_version,
            target=inst.target,
            thread_model=inst.thread_model,
            installed_dir=inst.installed_dir,
            cc_include_dirs=list(inst.cc_include_dirs),
            cxx_include_dirs=list(inst.cxx_include_dirs),
        )

        if inst.implementation == Implementation.ZIG_CLANG:
            for tool, subcommand in ZIG_SUBCOMMANDS:
                chain.tools[tool] = ToolPath(primary, (subcommand,))
        else:
            infix, names = self._family(inst.implementation)
            chain.tools = self.assemble_tools(primary, infix=infix, tool_names=names)
            chain.tools[Tool.C_COMPILER] = ToolPath(primary)

        if Tool.CXX_COMPILER not in chain.tools:
            chain.tools[Tool.CXX_COMPILER] = chain.tools[Tool.C_COMPILER]

        chain.set_environment(self.compiler_environment(chain))
        return chain


def discover_installations(feedback=None, **kwargs) -> List[ClangInstallation]:
    return ClangProber(feedback=feedback, **kwargs).discover_installations()


def discover_toolchains(want_cxx: bool = False, feedback=None, **kwargs) -> List[Chain]:
    return ClangProber(feedback=feedback, **kwargs).discover_toolchains(want_cxx)


__all__ = [
    "Implementation",
    "BANNER_PATTERNS",
    "ZIG_PATTERN",
    "TOOL_NAMES",
    "ClangVersionInfo",
    "ClangInstallation",
    "ClangProber",
    "parse_version_output",
    "detect_implementation",
    "query_version",
    "query_version_with_pattern",
    "accept_filename",
    "discover_installations",
    "discover_toolchains",
]
