"""
Compiler and linker flags grouped by build configuration.

Usage:
    flags = Flags()
    flags.add(BuildConfig.ALL, "-Wall")
    flags.add(BuildConfig.DEBUG, "-g", "-O0")
    flags.for_config(BuildConfig.DEBUG)   # ['-Wall', '-g', '-O0']
"""

from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Union


class BuildConfig(Enum):
    """Build configuration a flag applies to; ALL applies to every one."""

    ALL = "all"
    DEBUG = "debug"
    RELEASE = "release"
    MIN_SIZE_REL = "minsizerel"
    REL_WITH_DEB_INFO = "relwithdebinfo"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, name: Union[str, "BuildConfig"]) -> "BuildConfig":
        """
        Parse a configuration name (case-insensitive).

        Raises:
            ValueError: If the name is not a known configuration
        """
        if isinstance(name, BuildConfig):
            return name
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(f"unknown flag config '{name}'")


class FlagSet:
    """Flags in insertion order, without duplicates."""

    def __init__(self, flags: Optional[Iterable[str]] = None):
        self._flags: Dict[str, None] = {}
        if flags:
            self.add(*flags)

    def add(self, *flags: str) -> None:
        for flag in flags:
            self._flags.setdefault(flag, None)

    def insert(self, other: Iterable[str]) -> None:
        self.add(*other)

    def to_list(self) -> List[str]:
        return list(self._flags)

    def __contains__(self, flag: object) -> bool:
        return flag in self._flags

    def __iter__(self) -> Iterator[str]:
        return iter(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FlagSet):
            return self.to_list() == other.to_list()
        return NotImplemented

    def __repr__(self) -> str:
        return f"FlagSet({self.to_list()!r})"


class Flags:
    """Mapping from BuildConfig to FlagSet."""

    def __init__(self):
        self._sets: Dict[BuildConfig, FlagSet] = {}

    def add(self, config: Union[str, BuildConfig], *flags: str) -> None:
        if not flags:
            return
        config = BuildConfig.from_string(config)
        self._sets.setdefault(config, FlagSet()).add(*flags)

    def get(self, config: Union[str, BuildConfig]) -> FlagSet:
        """Flags registered for exactly this configuration."""
        return self._sets.get(BuildConfig.from_string(config), FlagSet())

    def for_config(self, config: Union[str, BuildConfig]) -> List[str]:
        """Flags for a configuration: the ALL flags followed by its own."""
        config = BuildConfig.from_string(config)
        merged = FlagSet(self.get(BuildConfig.ALL))
        if config is not BuildConfig.ALL:
            merged.insert(self.get(config))
        return merged.to_list()

    def configs(self) -> List[BuildConfig]:
        return [c for c in BuildConfig if c in self._sets]

    def to_dict(self) -> Dict[str, List[str]]:
        return {str(c): self._sets[c].to_list() for c in self.configs()}

    @classmethod
    def from_dict(cls, data: Dict[str, Iterable[str]]) -> "Flags":
        flags = cls()
        for name, values in (data or {}).items():
            flags.add(name, *values)
        return flags

    def __bool__(self) -> bool:
        return any(self._sets.values())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Flags):
            return self.to_dict() == other.to_dict()
        return NotImplemented

    def __repr__(self) -> str:
        return f"Flags({self.to_dict()!r})"


__all__ = ["BuildConfig", "FlagSet", "Flags"]
