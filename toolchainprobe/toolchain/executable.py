"""
Executable resolution and primary-path scoring.

A compiler is usually reachable through several paths: the real binary,
versioned aliases (gcc-13), cross-named aliases (x86_64-linux-gnu-gcc) and
symlinks such as cc. Once probing has shown that a group of paths behave
identically, choose_primary_c_compiler_path() picks the one to report and
demotes the others to alternates.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.filesystem import file_exists, to_slash
from .tool import Tool, ToolPath, Toolset

logger = logging.getLogger(__name__)

ExistsFunc = Callable[[str], bool]

SIBLING_TOOL_WEIGHT = 128000


# ============================================================================
# Sibling tool lookup
# ============================================================================


def find_tools(
    path_prefix: str,
    path_postfix: str,
    toolnames: Mapping[str, Tool],
    exists: ExistsFunc = file_exists,
) -> Toolset:
    """
    Probe path_prefix + name + path_postfix for every known tool name.

    For each role the first name (in toolnames order) that exists wins.
    """
    tools = Toolset()
    for name, tool in toolnames.items():
        if tool in tools:
            continue
        candidate = path_prefix + name + path_postfix
        if exists(candidate):
            tools[tool] = ToolPath(to_slash(candidate))
    return tools


def split_at_infix(path: str, infix: str) -> Optional[Tuple[str, str]]:
    """
    Split a path around the last occurrence of infix in its base name.

    Returns:
        (prefix, postfix), or None if the base name does not contain infix

    Example:
        >>> split_at_infix("/usr/bin/x86_64-linux-gnu-gcc-13", "gcc")
        ('/usr/bin/x86_64-linux-gnu-', '-13')
    """
    path = to_slash(path)
    directory, base = posixpath.split(path)
    i = base.rfind(infix)
    if not infix or i < 0:
        return None
    prefix = posixpath.join(directory, base[:i]) if directory else base[:i]
    return prefix, base[i + len(infix) :]


def collect_tools(
    path: str,
    infix: str,
    toolnames: Mapping[str, Tool],
    exists: ExistsFunc = file_exists,
) -> Toolset:
    """
    Find the tools installed next to a compiler.

    The compiler's base name is split at the last occurrence of infix and
    each known tool name is substituted in its place.

    Example:
        /usr/bin/arm-none-eabi-gcc-12 with infix 'gcc' probes
        /usr/bin/arm-none-eabi-ar-12, /usr/bin/arm-none-eabi-g++-12, ...
    """
    parts = split_at_infix(path, infix)
    if parts is None:
        return Toolset()
    prefix, postfix = parts
    return find_tools(prefix, postfix, toolnames, exists)


# ============================================================================
# Scoring
# ============================================================================


@dataclass
class _Candidate:
    target: str
    cc: str
    version: str
    directory: str
    base: str
    name: str
    exists: ExistsFunc

    def starts_with_target(self) -> bool:
        return bool(self.target) and self.name.startswith(self.target)

    def ends_with_version(self) -> bool:
        return bool(self.version) and self.name.endswith(self.version)

    def contains_version(self) -> bool:
        return bool(self.version) and self.version in self.name

    def has_cxx_sibling(self) -> bool:
        if self.cc != "gcc" or "gcc" not in self.base:
            return False
        for cxx in ("g++", "c++"):
            sibling = posixpath.join(self.directory, self.base.replace("gcc", cxx, 1))
            if self.exists(sibling):
                return True
        return False


# Ordered (weight, predicate) rules; all matching rules are summed
_SCORE_RULES: List[Tuple[int, Callable[[_Candidate], bool]]] = [
    (64000, lambda c: c.has_cxx_sibling()),
    (32000, lambda c: c.starts_with_target()),
    (-16000, lambda c: c.starts_with_target() and c.ends_with_version()),
    (8000, lambda c: not c.starts_with_target() and c.ends_with_version()),
    (
        4000,
        lambda c: not c.starts_with_target()
        and not c.ends_with_version()
        and c.contains_version(),
    ),
    (2000, lambda c: bool(c.target) and c.target in c.directory),
    (1000, lambda c: bool(c.version) and c.version in c.directory),
]


def c_compiler_score(
    target: str,
    cc: str,
    version: str,
    path: str,
    toolnames: Mapping[str, Tool],
    exists: ExistsFunc = file_exists,
) -> int:
    """
    Score a candidate path for a C compiler.

    The score starts at the path length and adds 128000 for every sibling
    tool found next to the candidate, followed by the rule bonuses in
    _SCORE_RULES. Higher is better.

    Args:
        target: Target triplet as reported by the compiler
        cc: Family infix ('gcc', 'clang')
        version: Compiler version string
        path: Candidate path
        toolnames: Tool file names known for the family
        exists: File existence check (injectable for testing)

    Returns:
        Score of the candidate
    """
    path = to_slash(path)
    directory, base = posixpath.split(path)
    name = base.lower()
    if name.endswith(".exe"):
        name = name[:-4]

    candidate = _Candidate(
        target=target,
        cc=cc,
        version=version,
        directory=directory,
        base=base,
        name=name,
        exists=exists,
    )

    score = len(path)
    score += len(collect_tools(path, cc, toolnames, exists)) * SIBLING_TOOL_WEIGHT
    for weight, predicate in _SCORE_RULES:
        if predicate(candidate):
            score += weight
    return score


def find_best(candidates: Iterable[str], scorer: Callable[[str], int]) -> str:
    """
    Return the highest-scoring candidate.

    Ties resolve to the lexicographically smallest candidate. Returns an
    empty string when there are no candidates.
    """
    best = ""
    best_score = None
    for candidate in sorted(set(candidates)):
        score = scorer(candidate)
        if best_score is None or score > best_score:
            best, best_score = candidate, score
    return best


# ============================================================================
# Executable
# ============================================================================


@dataclass
class Executable:
    """
    A compiler reachable through one or more equivalent paths.

    Attributes:
        primary_path: The path reported for the compiler
        subcommands: Tokens inserted after the path (e.g. ['cc'] for zig)
        other_paths: Equivalent regular files
        symlinks: Symbolic links that resolve to the same compiler
    """

    primary_path: str = ""
    subcommands: List[str] = field(default_factory=list)
    other_paths: List[str] = field(default_factory=list)
    symlinks: List[str] = field(default_factory=list)

    def tool_path(self) -> ToolPath:
        return ToolPath(self.primary_path, tuple(self.subcommands))

    def all_paths(self) -> List[str]:
        paths = [self.primary_path] if self.primary_path else []
        for p in self.other_paths + self.symlinks:
            if p not in paths:
                paths.append(p)
        return paths

    def choose_primary_c_compiler_path(
        self,
        target: str,
        cc: str,
        version: str,
        toolnames: Mapping[str, Tool],
        exists: ExistsFunc = file_exists,
    ) -> None:
        """
        Choose the primary path among other_paths and symlinks.

        With a single distinct candidate no scoring takes place. The chosen
        path never remains in other_paths or symlinks, and both lists end
        up sorted.
        """
        other_paths = {to_slash(p) for p in self.other_paths}
        symlinks = {to_slash(p) for p in self.symlinks}
        paths = other_paths | symlinks

        if len(paths) < 2:
            if paths:
                self.primary_path = paths.pop()
                self.other_paths = []
                self.symlinks = []
            return

        self.primary_path = find_best(
            paths,
            lambda fn: c_compiler_score(target, cc, version, fn, toolnames, exists),
        )
        logger.debug(f"Primary path for {cc} {version}: {self.primary_path}")

        other_paths.discard(self.primary_path)
        symlinks.discard(self.primary_path)
        self.other_paths = sorted(other_paths)
        self.symlinks = sorted(symlinks)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"primary-path": self.primary_path}
        if self.subcommands:
            data["subcommands"] = list(self.subcommands)
        if self.other_paths:
            data["alternative-paths"] = list(self.other_paths)
        if self.symlinks:
            data["symlinks"] = list(self.symlinks)
        return data


__all__ = [
    "Executable",
    "c_compiler_score",
    "collect_tools",
    "find_tools",
    "find_best",
    "split_at_infix",
]
