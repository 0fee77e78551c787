"""
Toolchain model.

Target triplets, tool identities, executable resolution, versions and the
Chain record. Discovery lives in toolchainprobe.toolchain.discovery and is
imported from there.
"""

from .triplet import (
    Target,
    Full,
    parse_target,
    parse_full,
    parse_full_lenient,
)
from .tool import Tool, ToolPath, Toolset
from .executable import Executable, collect_tools, find_tools, split_at_infix
from .version import VersionQuad, compare_versions, parse_version
from .chain import Chain

__all__ = [
    "Target",
    "Full",
    "parse_target",
    "parse_full",
    "parse_full_lenient",
    "Tool",
    "ToolPath",
    "Toolset",
    "Executable",
    "collect_tools",
    "find_tools",
    "split_at_infix",
    "VersionQuad",
    "compare_versions",
    "parse_version",
    "Chain",
]
