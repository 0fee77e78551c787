"""
Tool identity model.

A toolchain is a set of executables, each playing one role (C compiler,
archiver, linker, ...). Tool enumerates those roles, ToolPath points at the
executable for a role and Toolset maps roles to paths with a stable
serialization order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple, Union


class Tool(Enum):
    """
    Functional role of an executable inside a toolchain.

    Definition order is the canonical serialization order.
    """

    CXX_COMPILER = "c++"
    C_COMPILER = "c"
    ASM_COMPILER = "as"
    RESOURCE_COMPILER = "rc"
    ARCHIVER = "ar"
    DLL_LINKER = "dll"
    EXE_LINKER = "exe"
    LINKER = "ld"
    OBJCOPY = "objcopy"
    OBJDUMP = "objdump"
    RANLIB = "ranlib"
    STRIP = "strip"
    MANIFEST_TOOL = "mt"

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]

    @classmethod
    def from_string(cls, text: str) -> "Tool":
        """
        Convert a tool specifier to a Tool.

        Accepts the canonical short names plus the aliases
        cpp, cxx, cc, lib, so and runlib.

        Raises:
            ValueError: If the specifier is empty or unknown
        """
        if not text:
            raise ValueError("empty tool specifier")
        tool = _ALIASES.get(text)
        if tool is None:
            raise ValueError(f"unknown tool specifier '{text}'")
        return tool

    def __str__(self) -> str:
        return self.value


_LONG_NAMES = {
    Tool.CXX_COMPILER: "C++ Compiler",
    Tool.C_COMPILER: "C Compiler",
    Tool.ASM_COMPILER: "Assembler",
    Tool.RESOURCE_COMPILER: "Resource Compiler",
    Tool.ARCHIVER: "Archiver",
    Tool.DLL_LINKER: "DLL/SO Linker",
    Tool.EXE_LINKER: "Executable Linker",
    Tool.LINKER: "Linker",
    Tool.OBJCOPY: "objcopy",
    Tool.OBJDUMP: "objdump",
    Tool.RANLIB: "ranlib",
    Tool.STRIP: "strip",
    Tool.MANIFEST_TOOL: "Manifest Tool",
}

_ALIASES = {tool.value: tool for tool in Tool}
_ALIASES.update(
    {
        "cpp": Tool.CXX_COMPILER,
        "cxx": Tool.CXX_COMPILER,
        "cc": Tool.C_COMPILER,
        "lib": Tool.ARCHIVER,
        "so": Tool.DLL_LINKER,
        "runlib": Tool.RANLIB,
    }
)


@dataclass(frozen=True)
class ToolPath:
    """
    Path to a tool executable.

    Attributes:
        path: Forward-slash path to the executable
        subcommands: Tokens inserted after the path when invoking the tool
            (e.g. ('cc',) for 'zig cc')
    """

    path: str
    subcommands: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.subcommands, tuple):
            object.__setattr__(self, "subcommands", tuple(self.subcommands))

    def command_line(self) -> List[str]:
        return [self.path, *self.subcommands]

    def to_value(self) -> Union[str, List[str]]:
        """Serialize as a plain string, or a list when subcommands are present."""
        if not self.subcommands:
            return self.path
        return self.command_line()

    @classmethod
    def from_value(cls, value: Union[str, Iterable[str], "ToolPath"]) -> "ToolPath":
        """
        Inverse of to_value().

        Raises:
            ValueError: If value is an empty list
        """
        if isinstance(value, ToolPath):
            return value
        if isinstance(value, str):
            return cls(value)
        items = [str(v) for v in value]
        if not items:
            raise ValueError("empty tool path")
        return cls(items[0], tuple(items[1:]))

    def __bool__(self) -> bool:
        return bool(self.path)

    def __str__(self) -> str:
        return " ".join(self.command_line())


class Toolset(dict):
    """
    Mapping from Tool to ToolPath.

    Plain strings and lists are coerced to ToolPath on insertion, and string
    keys are accepted through Tool.from_string(). Serialization always uses
    the Tool definition order, regardless of insertion order.

    Example:
        >>> tools = Toolset()
        >>> tools[Tool.ARCHIVER] = "/usr/bin/ar"
        >>> tools[Tool.C_COMPILER] = "/usr/bin/gcc"
        >>> list(tools.to_dict())
        ['c', 'ar']
    """

    def __init__(self, *args, **kwargs):
        super().__init__()
        self.update(*args, **kwargs)

    @staticmethod
    def _key(key) -> Tool:
        if isinstance(key, Tool):
            return key
        return Tool.from_string(str(key))

    def __setitem__(self, key, value):
        super().__setitem__(self._key(key), ToolPath.from_value(value))

    def update(self, *args, **kwargs):
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def setdefault(self, key, default=None):
        key = self._key(key)
        if key not in self:
            self[key] = default
        return self[key]

    def ordered(self) -> List[Tuple[Tool, ToolPath]]:
        return [(tool, self[tool]) for tool in Tool if tool in self]

    def to_dict(self) -> Dict[str, Any]:
        return {tool.value: path.to_value() for tool, path in self.ordered()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Toolset":
        """
        Raises:
            ValueError: If a key is not a known tool specifier
        """
        tools = cls()
        for key, value in (data or {}).items():
            tools[Tool.from_string(key)] = value
        return tools

    def merge_missing(self, other: "Toolset") -> None:
        """Copy roles from other that this set does not have yet."""
        for tool, path in other.items():
            if tool not in self:
                self[tool] = path


__all__ = ["Tool", "ToolPath", "Toolset"]
