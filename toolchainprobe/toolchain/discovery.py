"""
Discovery orchestration.

Runs the compiler family probers selected by a type filter, merges their
results and selects a preferred toolchain among the discovered ones.

Usage:
    from toolchainprobe.toolchain.discovery import discover_toolchains, choose_native

    chains = discover_toolchains(want_cxx=True, types=["gcc", "clang"])
    best = choose_native(chains)
    if best:
        print(best.summary())
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..compilers import clang, gcc, msvc
from ..compilers.base import CompilerProber, Feedback
from ..config import DEFAULT_PREFERENCE, DiscoveryConfig
from ..core.exceptions import ToolchainProbeError
from ..core.platform import host_target
from .chain import Chain
from .tool import Tool
from .triplet import Target

logger = logging.getLogger(__name__)

# (prober class, accepted type names); order is the discovery order
PROBERS: List[Tuple[type, Tuple[str, ...]]] = [
    (msvc.MsvcProber, ("msvc",)),
    (gcc.GccProber, ("gcc", "gnu")),
    (clang.ClangProber, ("clang", "llvm")),
]

COMPARATORS: Dict[str, Callable[[Chain, Chain], int]] = {
    "gcc": gcc.compare,
    "clang": gcc.compare,
    "msvc": msvc.compare,
}


def type_selected(names: Sequence[str], types: Optional[Sequence[str]]) -> bool:
    """
    Check a family against the type allow-list.

    An empty list, or a list holding a single empty string, selects every
    family. Matching is case-sensitive.
    """
    if not types or (len(types) == 1 and types[0] == ""):
        return True
    return any(name in types for name in names)


def _selected_probers(
    types: Optional[Sequence[str]], feedback: Feedback, config: DiscoveryConfig
) -> List[CompilerProber]:
    return [
        cls(
            feedback=feedback,
            timeout=config.timeout,
            extra_search_paths=config.extra_search_paths,
        )
        for cls, names in PROBERS
        if type_selected(names, types)
    ]


def _run(prober: CompilerProber, action: Callable[[CompilerProber], List[Any]]) -> List[Any]:
    try:
        return action(prober)
    except (ToolchainProbeError, OSError) as e:
        logger.warning(f"{prober.name} discovery failed: {e}")
        prober.notify(f"{prober.name} discovery failed: {e}")
        return []


def discover_installations(
    types: Optional[Sequence[str]] = None,
    feedback: Feedback = None,
    config: Optional[DiscoveryConfig] = None,
) -> List[Any]:
    """
    Discover installations of every selected compiler family.

    Args:
        types: Type allow-list ('msvc', 'gcc'/'gnu', 'clang'/'llvm');
            defaults to config.types
        feedback: Optional progress narration sink
        config: Discovery settings

    Returns:
        GccInstallation, ClangInstallation and MsvcInstallation records
    """
    config = config or DiscoveryConfig()
    if types is None:
        types = config.types

    installations: List[Any] = []
    for prober in _selected_probers(types, feedback, config):
        installations.extend(_run(prober, lambda p: p.discover_installations()))
    logger.info(f"Discovered {len(installations)} installation(s)")
    return installations


def discover_toolchains(
    want_cxx: Optional[bool] = None,
    types: Optional[Sequence[str]] = None,
    feedback: Feedback = None,
    config: Optional[DiscoveryConfig] = None,
) -> List[Chain]:
    """
    Discover toolchains of every selected compiler family.

    Args:
        want_cxx: Only keep toolchains with a C++ compiler; defaults to
            config.want_cxx
        types: Type allow-list; defaults to config.types
        feedback: Optional progress narration sink
        config: Discovery settings
    """
    config = config or DiscoveryConfig()
    if want_cxx is None:
        want_cxx = config.want_cxx
    if types is None:
        types = config.types

    chains: List[Chain] = []
    for prober in _selected_probers(types, feedback, config):
        chains.extend(_run(prober, lambda p: p.discover_toolchains(want_cxx)))
    logger.info(f"Discovered {len(chains)} toolchain(s)")
    return chains


# ============================================================================
# Selection
# ============================================================================


def find(target: Target, chains: Sequence[Chain]) -> List[Chain]:
    """Return the chains whose target matches."""
    return [chain for chain in chains if chain.target.match(target)]


def natives(chains: Sequence[Chain], host: Optional[Target] = None) -> List[Chain]:
    """Return the chains producing code for the host (or the given) platform."""
    return find(host or host_target(), chains)


def _fallback_key(chain: Chain) -> Tuple[str, str, str, str]:
    cc = chain.tools.get(Tool.C_COMPILER)
    return (
        chain.compiler,
        chain.target.original,
        chain.full_version,
        cc.path if cc else "",
    )


def _choose_among(
    chains: Sequence[Chain], preference: Optional[Sequence[str]]
) -> Optional[Chain]:
    if not chains:
        return None

    for compiler in preference or DEFAULT_PREFERENCE:
        selected = [chain for chain in chains if chain.compiler == compiler]
        if not selected:
            continue
        comparator = COMPARATORS.get(compiler, gcc.compare)
        return max(selected, key=functools.cmp_to_key(comparator))

    return sorted(chains, key=_fallback_key)[0]


def choose(
    chains: Sequence[Chain],
    target: Target,
    preference: Optional[Sequence[str]] = None,
) -> Optional[Chain]:
    """
    Choose the preferred toolchain for a target.

    Families are tried in preference order (default gcc, clang, msvc); the
    highest-ranked chain of the first family with a match wins. Without a
    preferred match, the first chain in (compiler, target, full version,
    C compiler path) order is returned.

    Returns:
        The chosen Chain, or None if no chain matches the target
    """
    return _choose_among(find(target, chains), preference)


def choose_native(
    chains: Sequence[Chain],
    preference: Optional[Sequence[str]] = None,
    host: Optional[Target] = None,
) -> Optional[Chain]:
    """Choose the preferred toolchain producing code for the host."""
    return _choose_among(natives(chains, host), preference)


__all__ = [
    "PROBERS",
    "COMPARATORS",
    "type_selected",
    "discover_installations",
    "discover_toolchains",
    "find",
    "natives",
    "choose",
    "choose_native",
]
