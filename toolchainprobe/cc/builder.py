"""
Builder configuration.

A Builder is the compiler description handed to build file generators. It
can be derived from a discovered Chain, or from the CC/CXX environment
variables the way make-style builds are configured.
"""

import logging
import os
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..compilers import clang, gcc, msvc
from ..core.exceptions import (
    CompilerProbeError,
    EnvironmentConfigError,
    InconsistentEnvironmentError,
    UnsupportedCompilerError,
)
from ..core.filesystem import file_exists, to_slash
from ..core.process import DEFAULT_TIMEOUT
from ..toolchain.chain import Chain
from ..toolchain.executable import collect_tools
from ..toolchain.tool import Tool, ToolPath, Toolset
from .flags import BuildConfig, Flags

logger = logging.getLogger(__name__)

# Environment variables naming a tool directly
_TOOL_VARS = [(Tool.ARCHIVER, "AR"), (Tool.ASM_COMPILER, "AS")]

_FLAG_VARS = [("cflags", "CFLAGS"), ("cxxflags", "CXXFLAGS"), ("ldflags", "LDFLAGS")]


@dataclass
class Builder:
    """Compiler description for build file generators."""

    compiler: str = ""
    version: str = ""
    full_version: str = ""
    tools: Toolset = field(default_factory=Toolset)
    cc_include_dirs: List[str] = field(default_factory=list)
    cxx_include_dirs: List[str] = field(default_factory=list)
    library_dirs: List[str] = field(default_factory=list)
    environment: List[str] = field(default_factory=list)
    cflags: Flags = field(default_factory=Flags)
    cxxflags: Flags = field(default_factory=Flags)
    ldflags: Flags = field(default_factory=Flags)

    @classmethod
    def from_chain(cls, chain: Chain) -> "Builder":
        return cls(
            compiler=chain.compiler,
            version=chain.version,
            full_version=chain.full_version,
            tools=Toolset(chain.tools),
            cc_include_dirs=list(chain.cc_include_dirs),
            cxx_include_dirs=list(chain.cxx_include_dirs),
            library_dirs=list(chain.library_dirs),
            environment=list(chain.environment),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "compiler": self.compiler,
            "version": self.version,
        }
        if self.full_version:
            data["full-version"] = self.full_version
        data["tools"] = self.tools.to_dict()
        for key, value in (
            ("cc-include-dirs", self.cc_include_dirs),
            ("cxx-include-dirs", self.cxx_include_dirs),
            ("library-dirs", self.library_dirs),
            ("environment", self.environment),
        ):
            if value:
                data[key] = list(value)
        for key, flags in (("cflags", self.cflags), ("cxxflags", self.cxxflags), ("ldflags", self.ldflags)):
            if flags:
                data[key] = flags.to_dict()
        return data

    def summary(self) -> str:
        lines = [f"compiler: {self.compiler} {self.version}"]
        if self.full_version:
            lines.append(f"- full version: '{self.full_version}'")
        for tool, path in self.tools.ordered():
            lines.append(f"- {tool.long_name}: '{path}'")
        return "\n".join(lines)


# ============================================================================
# Environment-based configuration
# ============================================================================


def executable_stem(path: str) -> str:
    """Lower-case base name without a trailing .exe."""
    name = os.path.basename(to_slash(path)).lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name


def _family_of(path: str, cxx: bool) -> Tuple[str, str]:
    """Return (compiler family, infix) implied by a compiler file name."""
    stem = executable_stem(path)
    if stem == "cl":
        return "msvc", "cl"
    if "clang" in stem:
        return "clang", "clang++" if cxx and "clang++" in stem else "clang"
    gnu_infix = "g++" if cxx else "gcc"
    if gnu_infix in stem:
        return "gcc", gnu_infix
    return "", ""


def _absolute_compiler(name: str, value: str) -> str:
    path = os.path.abspath(value)
    if not file_exists(path):
        raise EnvironmentConfigError(f"invalid {name} path: {value}")
    return to_slash(path)


def _probe(family: str, path: str, timeout: Optional[float]) -> Optional[Tuple[str, str, List[str], List[str]]]:
    """Return (version, full version, C includes, C++ includes) or None."""
    try:
        if family == "gcc":
            info = gcc.query_version(path, timeout)
        elif family == "clang":
            info = clang.query_version(ToolPath(path), timeout)
        else:
            version, _ = msvc.query_version(path, timeout)
            return version, "", [], []
    except CompilerProbeError as e:
        logger.debug(f"{path} is not {family}: {e}")
        return None
    return info.version, info.full_version, info.cc_include_dirs, info.cxx_include_dirs


def from_env(
    environ: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> Builder:
    """
    Configure a Builder from CC, CXX and related environment variables.

    The family is guessed from the compiler file names, then confirmed by
    probing (GCC, then Clang, then MSVC). For GCC and Clang, missing tools
    are taken from AR/AS or looked up next to the compiler. CFLAGS, CXXFLAGS
    and LDFLAGS become the 'all' configuration flags.

    Raises:
        EnvironmentConfigError: If CC and CXX are both unset, or a path is invalid
        InconsistentEnvironmentError: If CC and CXX name different families
        UnsupportedCompilerError: If no supported compiler answers the probe
    """
    environ = os.environ if environ is None else environ
    cc = environ.get("CC", "")
    cxx = environ.get("CXX", "")
    if not cc and not cxx:
        raise EnvironmentConfigError("missing CC/CXX environment vars")

    builder = Builder()
    families = set()
    cc_infix = cxx_infix = ""

    if cc:
        cc = _absolute_compiler("CC", cc)
        builder.tools[Tool.C_COMPILER] = cc
        family, cc_infix = _family_of(cc, cxx=False)
        if family:
            families.add(family)
    if cxx:
        cxx = _absolute_compiler("CXX", cxx)
        builder.tools[Tool.CXX_COMPILER] = cxx
        family, cxx_infix = _family_of(cxx, cxx=True)
        if family:
            families.add(family)

    if len(families) > 1:
        raise InconsistentEnvironmentError(
            f"inconsistent compiler types detected: {', '.join(sorted(families))}"
        )

    guessed = families.pop() if families else ""
    probed = cxx or cc
    for family in ("gcc", "clang", "msvc"):
        if guessed and family != guessed:
            continue
        result = _probe(family, probed, timeout)
        if result is None:
            continue
        builder.compiler = family
        (
            builder.version,
            builder.full_version,
            builder.cc_include_dirs,
            builder.cxx_include_dirs,
        ) = result
        break

    if not builder.compiler:
        raise UnsupportedCompilerError(f"unsupported compiler type: {probed}")
    logger.info(f"Configured {builder.compiler} {builder.version} from environment")

    if builder.compiler != "msvc":
        _fill_tools(builder, environ, cc, cc_infix, cxx, cxx_infix)

    for attr, var in _FLAG_VARS:
        value = environ.get(var, "")
        if value:
            getattr(builder, attr).add(BuildConfig.ALL, *shlex.split(value))

    return builder


def _fill_tools(
    builder: Builder,
    environ: Mapping[str, str],
    cc: str,
    cc_infix: str,
    cxx: str,
    cxx_infix: str,
) -> None:
    for tool, var in _TOOL_VARS:
        value = environ.get(var, "")
        if value and tool not in builder.tools:
            builder.tools[tool] = value

    if cxx and cxx_infix:
        base, infix = cxx, cxx_infix
    else:
        base, infix = cc, cc_infix
    if not infix:
        return

    names = gcc.TOOL_NAMES if builder.compiler == "gcc" else clang.TOOL_NAMES
    builder.tools.merge_missing(collect_tools(base, infix, names))


__all__ = ["Builder", "executable_stem", "from_env"]
