"""
Chain: a fully assembled toolchain.

A Chain is produced for each discovered installation (and, for MSVC, for each
supported target architecture). It carries everything a build file generator
needs: tool paths, include and library directories and the environment
variables to export.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .tool import Tool, ToolPath, Toolset
from .triplet import Full

# (attribute, serialized key); order is the serialization order
_FIELD_KEYS = [
    ("compiler", "compiler"),
    ("implementation", "implementation"),
    ("version", "version"),
    ("full_version", "full-version"),
    ("target", "target"),
    ("thread_model", "thread-model"),
    ("installed_dir", "installed-dir"),
    ("msvc_id", "msvc-id"),
    ("msvc_arch", "msvc-arch"),
    ("msvc_version", "msvc-version"),
    ("windows_sdk_version", "windows-sdk"),
    ("ucrt_version", "ucrt"),
    ("toolset_version", "toolset-version"),
    ("tools", "tools"),
    ("cc_include_dirs", "cc-include-dirs"),
    ("cxx_include_dirs", "cxx-include-dirs"),
    ("library_dirs", "library-dirs"),
    ("environment", "environment"),
]


@dataclass
class Chain:
    """
    Toolchain ready for use.

    The msvc_* fields, windows_sdk_version, ucrt_version and toolset_version
    are only populated for MSVC chains.
    """

    compiler: str
    implementation: str = ""
    version: str = ""
    full_version: str = ""
    target: Full = field(default_factory=Full)
    thread_model: str = ""
    installed_dir: str = ""
    msvc_id: str = ""
    msvc_arch: str = ""
    msvc_version: str = ""
    windows_sdk_version: str = ""
    ucrt_version: str = ""
    toolset_version: str = ""
    tools: Toolset = field(default_factory=Toolset)
    cc_include_dirs: List[str] = field(default_factory=list)
    cxx_include_dirs: List[str] = field(default_factory=list)
    library_dirs: List[str] = field(default_factory=list)
    environment: List[str] = field(default_factory=list)

    def tool(self, tool: Tool) -> Optional[ToolPath]:
        return self.tools.get(tool)

    def set_environment(self, variables: Dict[str, str]) -> None:
        """Replace the environment with sorted NAME=VALUE entries."""
        self.environment = sorted(f"{k}={v}" for k, v in variables.items())

    def environment_dict(self) -> Dict[str, str]:
        env = {}
        for entry in self.environment:
            name, _, value = entry.partition("=")
            env[name] = value
        return env

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to a JSON/YAML friendly dictionary.

        Empty optional fields are omitted; 'compiler' and 'tools' are
        always present.
        """
        data: Dict[str, Any] = {}
        for attr, key in _FIELD_KEYS:
            value = getattr(self, attr)
            if attr == "target":
                value = value.to_dict()
            elif attr == "tools":
                data[key] = value.to_dict()
                continue
            elif isinstance(value, list):
                value = list(value)
            if value or attr == "compiler":
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chain":
        values: Dict[str, Any] = {}
        for attr, key in _FIELD_KEYS:
            if key not in data:
                continue
            value = data[key]
            if attr == "target":
                value = Full.from_dict(value or {})
            elif attr == "tools":
                value = Toolset.from_dict(value or {})
            elif isinstance(value, list):
                value = list(value)
            values[attr] = value
        values.setdefault("compiler", "")
        return cls(**values)

    def summary(self) -> str:
        """
        Human-readable multi-line summary.

        Example:
            gcc 13.2.0 targeting 'x86_64-linux-gnu'
              - C path: '/usr/bin/gcc-13'
              - C++ path: '/usr/bin/g++-13'
        """
        target = self.target.original or str(self.target)
        if self.msvc_arch:
            target += "." + self.msvc_arch
        version = self.version
        if self.msvc_version:
            version = f"{self.msvc_version} ({self.version})"
        name = self.compiler
        if self.implementation and self.implementation != self.compiler:
            name = f"{self.compiler} ({self.implementation})"

        lines = [f"{name} {version} targeting '{target}'"]
        cc = self.tools.get(Tool.C_COMPILER)
        cxx = self.tools.get(Tool.CXX_COMPILER)
        if cc is not None and cc == cxx:
            lines.append(f"  - path: '{cc}'")
        else:
            if cc:
                lines.append(f"  - C path: '{cc}'")
            if cxx:
                lines.append(f"  - C++ path: '{cxx}'")
        return "\n".join(lines)


__all__ = ["Chain"]
