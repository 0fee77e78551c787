"""
GCC discovery.

Finds gcc executables on PATH (plain, versioned and cross-prefixed names such
as gcc-13 or arm-none-eabi-gcc), probes them for version, target, thread
model and system include directories, and assembles toolchains from the
binutils installed next to them.

Usage:
    from toolchainprobe.compilers.gcc import GccProber

    prober = GccProber(feedback=print)
    for inst in prober.discover_installations():
        print(inst.summary())
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core.exceptions import CompilerProbeError, ConfigureParseError
from ..core.filesystem import file_exists, find_executable, fix_wsl_path, to_slash
from ..core.process import C_LOCALE, DEFAULT_TIMEOUT, run_probe, split_lines
from ..toolchain.chain import Chain
from ..toolchain.executable import Executable
from ..toolchain.tool import Tool, ToolPath
from ..toolchain.triplet import Full, parse_full_lenient
from ..toolchain.version import compare_versions, newest_first_key
from .base import CandidateGroup, CompilerProber, installed_dir_of

logger = logging.getLogger(__name__)

# (<prefix>-)*gcc(-<version>)?(.exe)?
GCC_FILENAME = re.compile(r"^((?:\w+-)*)gcc(?:-\d+(?:\.\d+)*)?(?:\.exe)?$")

_VERSION_LINE = re.compile(r"gcc version (\S+)")
_TARGET = re.compile(r"^Target:\s+(.*)$", re.MULTILINE)
_THREAD_MODEL = re.compile(r"^Thread model:\s+(.*)$", re.MULTILINE)
_CONFIGURED_WITH = "Configured with: "
_TOOLCHAIN_PREFIX = re.compile(r"^(.*-)gcc")

INCLUDE_SEARCH_START = "#include <...> search starts here:"
INCLUDE_SEARCH_END = "End of search list."

# Lookup order matters: the first existing name wins a role
TOOL_NAMES: Dict[str, Tool] = {
    "gcc": Tool.C_COMPILER,
    "g++": Tool.CXX_COMPILER,
    "c++": Tool.CXX_COMPILER,
    "ar": Tool.ARCHIVER,
    "gcc-ar": Tool.ARCHIVER,
    "as": Tool.ASM_COMPILER,
    "ld": Tool.LINKER,
    "objcopy": Tool.OBJCOPY,
    "objdump": Tool.OBJDUMP,
    "ranlib": Tool.RANLIB,
    "gcc-ranlib": Tool.RANLIB,
    "windres": Tool.RESOURCE_COMPILER,
    "strip": Tool.STRIP,
}


# ============================================================================
# Probing
# ============================================================================


def parse_configure_flags(line: str) -> Dict[str, str]:
    """
    Parse the flags of a 'Configured with:' line into a dictionary.

    Values may be single-quoted; quoted values are returned verbatim without
    the quotes. Flags without a value map to an empty string.

    Args:
        line: Flag string, with or without the 'Configured with: ' prefix

    Returns:
        Mapping of flag name (without leading dashes) to value

    Raises:
        ConfigureParseError: If a quoted value is not terminated

    Example:
        >>> parse_configure_flags("--enable-languages=c,c++ --with-pkgversion='Rev1, built'")
        {'enable-languages': 'c,c++', 'with-pkgversion': 'Rev1, built'}
    """
    if line.startswith(_CONFIGURED_WITH):
        line = line[len(_CONFIGURED_WITH) :]

    flags: Dict[str, str] = {}
    i, n = 0, len(line)
    while i < n:
        if not line.startswith("--", i):
            i += 1
            continue
        i += 2
        start = i
        while i < n and (line[i].isalnum() or line[i] in "-_"):
            i += 1
        key = line[start:i]
        value = ""
        if i < n and line[i] == "=":
            i += 1
            if i < n and line[i] == "'":
                end = line.find("'", i + 1)
                if end < 0:
                    raise ConfigureParseError(
                        f"unterminated string literal for --{key} at offset {i}"
                    )
                value = line[i + 1 : end]
                i = end + 1
            else:
                start = i
                while i < n and not line[i].isspace():
                    i += 1
                value = line[start:i]
        if key:
            flags[key] = value
    return flags


def get_system_includes(
    command: Sequence[str], lang: str, timeout: Optional[float] = DEFAULT_TIMEOUT
) -> List[str]:
    """
    Get the system include search directories of a GCC-compatible driver.

    Runs '<command> -x<lang> -E -v -' with the C locale set for the child
    process, and collects the lines between the '#include <...>' banner and
    'End of search list.'.

    Args:
        command: Driver command line (path plus optional subcommands)
        lang: 'c' or 'c++'
        timeout: Seconds before the probe is abandoned

    Raises:
        CompilerProbeError: If the driver fails to run
    """
    output = run_probe(
        [*command, f"-x{lang}", "-E", "-v", "-"], env=C_LOCALE, timeout=timeout
    )

    includes = []
    collecting = False
    for line in split_lines(output):
        if INCLUDE_SEARCH_START in line:
            collecting = True
            continue
        if INCLUDE_SEARCH_END in line:
            break
        if collecting:
            path = line.strip()
            if path:
                includes.append(fix_wsl_path(path))
    return includes


def _version_from_macros(exe: str, timeout: Optional[float]) -> Optional[str]:
    """
    Read the version from the __GNUC__ predefined macros.

    Returns None when the macro probe is unavailable.

    Raises:
        CompilerProbeError: If the driver is a clang front-end
    """
    try:
        output = run_probe(
            [exe, "-dM", "-E", "-"], merge_stderr=False, timeout=timeout
        )
    except CompilerProbeError as e:
        logger.debug(f"Macro probe failed, falling back to -v: {e}")
        return None

    macros = {}
    for line in split_lines(output):
        fields = line.split()
        if len(fields) >= 3 and fields[0] == "#define":
            macros[fields[1]] = fields[2]

    if "__clang__" in macros:
        raise CompilerProbeError(exe, "clang front-end, not gcc")
    major = macros.get("__GNUC__")
    if not major:
        return None
    minor = macros.get("__GNUC_MINOR__", "0")
    patch = macros.get("__GNUC_PATCHLEVEL__", "0")
    return f"{major}.{minor}.{patch}"


def query_version(exe: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> "GccVersionInfo":
    """
    Probe a gcc executable.

    The version comes from the predefined macros when available, otherwise
    from the 'gcc version' line of '-v' output. Target, thread model and
    enabled languages are read from '-v' output; include directories from
    the preprocessor search list.

    Raises:
        CompilerProbeError: If the executable does not behave like gcc
    """
    version = _version_from_macros(exe, timeout)
    output = run_probe([exe, "-v"], timeout=timeout)
    lines = [line for line in split_lines(output) if line.strip()]
    if not lines:
        raise CompilerProbeError(exe, "empty version output")

    full_version = ""
    for line in lines:
        if line.strip().startswith("gcc version "):
            full_version = line.strip()

    if version is None:
        match = _VERSION_LINE.search(lines[-1])
        if not match:
            raise CompilerProbeError(exe, "invalid version output")
        version = match.group(1)
        full_version = lines[-1].strip()

    info = GccVersionInfo(version=version, full_version=full_version)

    match = _TARGET.search(output)
    if match:
        info.target = parse_full_lenient(match.group(1).strip())
    match = _THREAD_MODEL.search(output)
    if match:
        info.thread_model = match.group(1).strip()

    for line in lines:
        if line.startswith(_CONFIGURED_WITH):
            try:
                flags = parse_configure_flags(line)
            except ConfigureParseError as e:
                logger.debug(f"{exe}: {e}")
                continue
            languages = flags.get("enable-languages", "")
            info.languages = [lang for lang in languages.split(",") if lang]

    for lang, attr in (("c", "cc_include_dirs"), ("c++", "cxx_include_dirs")):
        try:
            setattr(info, attr, get_system_includes([exe], lang, timeout))
        except CompilerProbeError as e:
            logger.debug(f"Include probe for {lang} failed: {e}")

    return info


def detect_toolchain_prefix(path: str) -> str:
    """
    Extract the cross toolchain prefix from a gcc path.

    Example:
        >>> detect_toolchain_prefix("/usr/bin/x86_64-w64-mingw32-gcc")
        'x86_64-w64-mingw32-'
        >>> detect_toolchain_prefix("/usr/bin/gcc-13")
        ''
    """
    base = to_slash(path).rsplit("/", 1)[-1]
    match = _TOOLCHAIN_PREFIX.match(base)
    if not match:
        return ""
    prefix = match.group(1)
    if prefix.startswith("llvm-"):
        prefix = prefix[len("llvm-") :]
    return prefix


def accept_filename(name: str) -> bool:
    """Check whether a file name looks like a gcc driver (gfortran excluded)."""
    if "gcc" not in name:
        return False
    match = GCC_FILENAME.match(name)
    if not match:
        return False
    return "gfortran" not in match.group(1).split("-")


# ============================================================================
# Installation model
# ============================================================================


@dataclass
class GccVersionInfo:
    """Information extracted from a gcc executable."""

    version: str = ""
    full_version: str = ""
    target: Full = field(default_factory=Full)
    thread_model: str = ""
    cc_include_dirs: List[str] = field(default_factory=list)
    cxx_include_dirs: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    toolchain_prefix: str = ""

    def signature(self) -> str:
        return (
            self.version
            + self.target.original
            + self.thread_model
            + "|".join(self.cc_include_dirs)
            + "#"
            + "|".join(self.cxx_include_dirs)
        )


@dataclass
class GccInstallation(GccVersionInfo):
    """A gcc installation with all the paths it is reachable through."""

    c_compiler: Executable = field(default_factory=Executable)

    @classmethod
    def from_info(cls, info: GccVersionInfo) -> "GccInstallation":
        return cls(
            version=info.version,
            full_version=info.full_version,
            target=info.target,
            thread_model=info.thread_model,
            cc_include_dirs=list(info.cc_include_dirs),
            cxx_include_dirs=list(info.cxx_include_dirs),
            languages=list(info.languages),
            toolchain_prefix=info.toolchain_prefix,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "compiler": "gcc",
            "version": self.version,
            "full-version": self.full_version,
            "target": self.target.to_dict(),
            "thread-model": self.thread_model,
            "cc-include-dirs": list(self.cc_include_dirs),
            "cxx-include-dirs": list(self.cxx_include_dirs),
        }
        if self.languages:
            data["languages"] = list(self.languages)
        if self.toolchain_prefix:
            data["toolchain-prefix"] = self.toolchain_prefix
        data["c-compiler"] = self.c_compiler.to_dict()
        return data

    def summary(self) -> str:
        lines = [f"gcc {self.version}"]
        if self.toolchain_prefix:
            lines.append(f"- toolchain prefix: '{self.toolchain_prefix}'")
        lines.append(f"- target: {self.target.original}")
        lines.append(f"  - os: {self.target.os}")
        lines.append(f"  - arch: {self.target.arch}")
        lines.append(f"  - abi: {self.target.abi}")
        lines.append(f"  - libc: {self.target.libc}")
        lines.append(f"- thread model: {self.thread_model}")
        lines.append(f"- CC primary path: '{self.c_compiler.primary_path}'")
        for path in self.c_compiler.other_paths:
            lines.append(f"- CC alternative path: '{path}'")
        for path in self.c_compiler.symlinks:
            lines.append(f"- CC symlink path: '{path}'")
        return "\n".join(lines)


def compare(c1: Chain, c2: Chain) -> int:
    """
    Order two GCC-style chains.

    Compares version, then target, then full version, then the C++
    compiler path. Parsable versions rank above unparsable ones.

    Returns:
        -1, 0 or 1
    """
    result = compare_versions(c1.version, c2.version)
    if result:
        return result
    for a, b in (
        (c1.target.original, c2.target.original),
        (c1.full_version, c2.full_version),
        (_tool_str(c1, Tool.CXX_COMPILER), _tool_str(c2, Tool.CXX_COMPILER)),
    ):
        if a != b:
            return -1 if a < b else 1
    return 0


def _tool_str(chain: Chain, tool: Tool) -> str:
    path = chain.tools.get(tool)
    return str(path) if path else ""


# ============================================================================
# Prober
# ============================================================================


class GccProber(CompilerProber):
    """Discovers GCC installations and assembles their toolchains."""

    name = "gcc"
    infix = "gcc"
    tool_names = TOOL_NAMES

    def probe(self, path: str) -> GccVersionInfo:
        info = query_version(path, self.timeout)
        info.toolchain_prefix = detect_toolchain_prefix(path)
        return info

    def _from_env(self) -> Optional[GccInstallation]:
        cc = os.environ.get("CC", "")
        if not cc:
            return None
        if os.path.dirname(cc):
            path = to_slash(cc) if file_exists(cc) else None
        else:
            path = find_executable(cc)
        if not path:
            logger.debug(f"CC={cc} does not resolve to an executable")
            return None

        self.notify(f"checking compiler from environment: {path}")
        try:
            info = self.probe(path)
        except CompilerProbeError as e:
            logger.debug(f"CC={cc} is not a usable gcc: {e}")
            return None

        inst = GccInstallation.from_info(info)
        inst.c_compiler.other_paths = [path]
        return self._choose_primary(inst)

    def discover_installations(self) -> List[GccInstallation]:
        """
        Find GCC installations.

        A CC environment variable naming a working gcc short-circuits the
        PATH scan.

        Returns:
            Installations sorted newest version first
        """
        self.notify("discovering gcc installations")

        inst = self._from_env()
        if inst is not None:
            return [inst]

        files = self.scan(accept_filename)
        if not files:
            return []

        groups = self.group_candidates(
            files, self.probe, lambda info: info.signature()
        )
        installations = [self._installation(group) for group in groups]
        installations.sort(key=lambda i: newest_first_key(i.version))

        self.notify(f"found {len(installations)} gcc installation(s)")
        logger.info(f"Found {len(installations)} gcc installation(s)")
        return installations

    def _installation(self, group: CandidateGroup) -> GccInstallation:
        inst = GccInstallation.from_info(group.info)
        inst.c_compiler.other_paths = list(group.files)
        inst.c_compiler.symlinks = list(group.symlinks)
        return self._choose_primary(inst)

    def _choose_primary(self, inst: GccInstallation) -> GccInstallation:
        inst.c_compiler.choose_primary_c_compiler_path(
            inst.target.original, self.infix, inst.version, self.tool_names
        )
        # the group info came from the first path, not necessarily the primary
        inst.toolchain_prefix = detect_toolchain_prefix(inst.c_compiler.primary_path)
        return inst

    def discover_toolchains(self, want_cxx: bool = False) -> List[Chain]:
        """
        Assemble a Chain for every GCC installation.

        Args:
            want_cxx: Drop installations without a C++ compiler
        """
        chains = []
        for inst in self.discover_installations():
            chain = self.assemble(inst)
            if want_cxx and Tool.CXX_COMPILER not in chain.tools:
                self.notify(
                    f"skipping gcc {inst.version} at "
                    f"{inst.c_compiler.primary_path}: no C++ compiler"
                )
                continue
            chains.append(chain)
        return chains

    def assemble(self, inst: GccInstallation) -> Chain:
        primary = inst.c_compiler.primary_path
        self.notify(
            f"scanning gcc {inst.full_version} targeting "
            f"{inst.target.original} at {primary}"
        )
        chain = Chain(
            compiler="gcc",
            implementation="gcc",
            version=inst.version,
            full_version=inst.full_version,
            target=inst.target,
            thread_model=inst.thread_model,
            installed_dir=installed_dir_of(primary),
            cc_include_dirs=list(inst.cc_include_dirs),
            cxx_include_dirs=list(inst.cxx_include_dirs),
        )
        chain.tools = self.assemble_tools(primary, inst.toolchain_prefix)
        chain.tools[Tool.C_COMPILER] = ToolPath(primary)
        chain.set_environment(self.compiler_environment(chain))
        return chain


def discover_installations(feedback=None, **kwargs) -> List[GccInstallation]:
    return GccProber(feedback=feedback, **kwargs).discover_installations()


def discover_toolchains(want_cxx: bool = False, feedback=None, **kwargs) -> List[Chain]:
    return GccProber(feedback=feedback, **kwargs).discover_toolchains(want_cxx)


__all__ = [
    "TOOL_NAMES",
    "GCC_FILENAME",
    "GccVersionInfo",
    "GccInstallation",
    "GccProber",
    "parse_configure_flags",
    "get_system_includes",
    "query_version",
    "detect_toolchain_prefix",
    "accept_filename",
    "compare",
    "discover_installations",
    "discover_toolchains",
]
