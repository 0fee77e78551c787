"""
Shared machinery for the compiler probers.

Every compiler family follows the same pipeline:

1. scan search directories for candidate executables,
2. probe each candidate and compute a signature from the probe result,
3. collapse candidates with identical signatures into one installation and
   pick its primary path,
4. sort installations newest first,
5. assemble a Chain per installation.

CompilerProber implements the parts of that pipeline that do not depend on
the family; subclasses supply the probing and the chain assembly.
"""

import logging
import os
import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

from ..core.exceptions import CompilerProbeError
from ..core.filesystem import (
    file_exists,
    find_executable,
    fix_wsl_path,
    join_path_list,
    search_files_and_symlinks,
    split_path_list,
    to_slash,
)
from ..core.process import DEFAULT_TIMEOUT
from ..toolchain.chain import Chain
from ..toolchain.executable import collect_tools, find_tools, split_at_infix
from ..toolchain.tool import Tool, Toolset

logger = logging.getLogger(__name__)

Feedback = Optional[Callable[[str], None]]
InfoT = TypeVar("InfoT")

# Trailing version postfix of a tool name: '-13', '-17.0.6', '-13.exe'
_VERSION_POSTFIX = re.compile(r"^-\d+(?:\.\d+)*")

# Compilers are never borrowed from an unrelated PATH entry
_COMPILER_ROLES = (Tool.C_COMPILER, Tool.CXX_COMPILER)


@dataclass
class CandidateGroup(Generic[InfoT]):
    """Candidate paths that probed to the same signature."""

    info: InfoT
    files: List[str] = field(default_factory=list)
    symlinks: List[str] = field(default_factory=list)


class CompilerProber(ABC):
    """
    Base class for compiler family probers.

    Attributes:
        name: Compiler family name as reported in Chain.compiler
        infix: Family token in executable names, used for sibling tool lookup
        tool_names: Known tool file names for the family, in lookup order
    """

    name: str = ""
    infix: str = ""
    tool_names: Mapping[str, Tool] = {}

    def __init__(
        self,
        feedback: Feedback = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        extra_search_paths: Optional[List[str]] = None,
    ):
        """
        Args:
            feedback: Optional progress narration sink
            timeout: Seconds allowed for every compiler invocation
            extra_search_paths: Directories scanned in addition to PATH
        """
        self.feedback = feedback
        self.timeout = timeout
        self.extra_search_paths = list(extra_search_paths or [])

    def notify(self, message: str) -> None:
        """Report progress to the log and to the feedback sink."""
        logger.debug(message)
        if self.feedback is not None:
            self.feedback(message)

    # ------------------------------------------------------------------
    # Discovery pipeline
    # ------------------------------------------------------------------

    def search_paths(self) -> List[str]:
        """Directories to scan: PATH followed by any extra search paths."""
        return split_path_list(os.environ.get("PATH", "")) + self.extra_search_paths

    def scan(self, accept: Callable[[str], bool]) -> Dict[str, List[str]]:
        return search_files_and_symlinks(self.search_paths(), accept)

    def group_candidates(
        self,
        files: Mapping[str, List[str]],
        probe: Callable[[str], InfoT],
        signature: Callable[[InfoT], str],
    ) -> List[CandidateGroup]:
        """
        Probe every candidate and group them by signature.

        Candidates whose probe raises CompilerProbeError are skipped. Group
        order follows the first occurrence of each signature in sorted path
        order.
        """
        groups: Dict[str, CandidateGroup] = {}
        for path in sorted(files):
            try:
                info = probe(path)
            except CompilerProbeError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue

            key = signature(info)
            group = groups.get(key)
            if group is None:
                group = CandidateGroup(info=info)
                groups[key] = group

            fn = fix_wsl_path(to_slash(path))
            if fn not in group.files:
                group.files.append(fn)
            for link in files[path]:
                link = fix_wsl_path(to_slash(link))
                if link not in group.symlinks:
                    group.symlinks.append(link)

        return list(groups.values())

    @abstractmethod
    def discover_installations(self) -> List[Any]:
        """Find installations of this compiler family."""

    @abstractmethod
    def discover_toolchains(self, want_cxx: bool = False) -> List[Chain]:
        """Find installations and assemble a Chain for each."""

    # ------------------------------------------------------------------
    # Chain assembly
    # ------------------------------------------------------------------

    def assemble_tools(
        self,
        primary_path: str,
        toolchain_prefix: str = "",
        infix: Optional[str] = None,
        tool_names: Optional[Mapping[str, Tool]] = None,
    ) -> Toolset:
        """
        Derive sibling tool paths from the primary compiler path.

        Tools are first looked up by substituting each known tool name for
        the family infix. Missing binutils roles are retried without the
        version postfix in the same directory, then looked up on PATH as
        '<toolchain_prefix><name>'. Compiler roles are only ever taken from
        the exact substitution.

        Args:
            primary_path: Primary compiler path
            toolchain_prefix: Cross prefix such as 'arm-none-eabi-'
            infix: Overrides the family infix
            tool_names: Overrides the family tool names
        """
        infix = infix or self.infix
        names = tool_names or self.tool_names
        binutils = {n: t for n, t in names.items() if t not in _COMPILER_ROLES}

        tools = collect_tools(primary_path, infix, names)

        parts = split_at_infix(primary_path, infix)
        if parts is not None:
            prefix, postfix = parts
            match = _VERSION_POSTFIX.match(postfix)
            if match:
                unversioned = postfix[match.end() :]
                tools.merge_missing(find_tools(prefix, unversioned, binutils))

        for name, tool in binutils.items():
            if tool in tools:
                continue
            found = find_executable(toolchain_prefix + name)
            if found:
                tools[tool] = found

        return tools

    @staticmethod
    def compiler_environment(chain: Chain) -> Dict[str, str]:
        """CC/CXX and include path variables for a GCC-style chain."""
        env = {}
        cc = chain.tools.get(Tool.C_COMPILER)
        if cc:
            env["CC"] = cc.path
        cxx = chain.tools.get(Tool.CXX_COMPILER)
        if cxx:
            env["CXX"] = cxx.path
        env["C_INCLUDE_PATH"] = join_path_list(chain.cc_include_dirs)
        env["CPLUS_INCLUDE_PATH"] = join_path_list(chain.cxx_include_dirs)
        return env


def installed_dir_of(path: str) -> str:
    return posixpath.dirname(to_slash(path))


def first_existing(directories: List[str], filename: str) -> str:
    """Return the first directory/filename that exists, as a forward-slash path."""
    for directory in directories:
        if not directory:
            continue
        candidate = os.path.join(directory, filename)
        if file_exists(candidate):
            return to_slash(candidate)
    return ""


__all__ = [
    "Feedback",
    "CandidateGroup",
    "CompilerProber",
    "installed_dir_of",
    "first_existing",
]
