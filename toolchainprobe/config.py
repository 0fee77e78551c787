"""YAML configuration for toolchainprobe.

A discovery run can be tuned with a toolchainprobe.yaml file:

    types: [gcc, clang]
    preference: [clang, gcc, msvc]
    want_cxx: true
    timeout: 20
    extra_search_paths:
      - /opt/cross/bin

TOOLCHAINPROBE_TIMEOUT and TOOLCHAINPROBE_TYPES override the file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .core.exceptions import ConfigError
from .core.process import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "toolchainprobe.yaml"
DEFAULT_PREFERENCE = ["gcc", "clang", "msvc"]

# Accepted compiler type names (the filter is case-sensitive)
KNOWN_TYPES = ("msvc", "gcc", "gnu", "clang", "llvm")

ENV_TIMEOUT = "TOOLCHAINPROBE_TIMEOUT"
ENV_TYPES = "TOOLCHAINPROBE_TYPES"


@dataclass
class DiscoveryConfig:
    """Discovery settings."""

    types: List[str] = field(default_factory=list)  # empty means all families
    preference: List[str] = field(default_factory=lambda: list(DEFAULT_PREFERENCE))
    want_cxx: bool = False
    timeout: Optional[float] = DEFAULT_TIMEOUT
    extra_search_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": list(self.types),
            "preference": list(self.preference),
            "want_cxx": self.want_cxx,
            "timeout": self.timeout,
            "extra_search_paths": list(self.extra_search_paths),
        }


def _string_list(data: Mapping[str, Any], key: str) -> Optional[List[str]]:
    if key not in data or data[key] is None:
        return None
    value = data[key]
    if isinstance(value, str):
        value = [v.strip() for v in value.split(",")]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return value


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Invalid timeout: {value!r}")
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid timeout: {value!r}")
    if timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {timeout}")
    return timeout


def _validate_types(types: List[str]) -> List[str]:
    unknown = [t for t in types if t and t not in KNOWN_TYPES]
    if unknown:
        raise ConfigError(
            f"Unknown compiler type(s): {', '.join(unknown)} "
            f"(expected one of {', '.join(KNOWN_TYPES)})"
        )
    return types


def config_from_dict(data: Optional[Mapping[str, Any]]) -> DiscoveryConfig:
    """
    Build a DiscoveryConfig from parsed YAML data.

    Raises:
        ConfigError: If a value has the wrong type or an unknown compiler type
    """
    config = DiscoveryConfig()
    if not data:
        return config
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping")

    types = _string_list(data, "types")
    if types is not None:
        config.types = _validate_types(types)

    preference = _string_list(data, "preference")
    if preference is not None:
        config.preference = _validate_types(preference)

    if "want_cxx" in data:
        if not isinstance(data["want_cxx"], bool):
            raise ConfigError("'want_cxx' must be true or false")
        config.want_cxx = data["want_cxx"]

    if "timeout" in data:
        config.timeout = _parse_timeout(data["timeout"])

    paths = _string_list(data, "extra_search_paths")
    if paths is not None:
        config.extra_search_paths = paths

    return config


def apply_env_overrides(
    config: DiscoveryConfig, environ: Optional[Mapping[str, str]] = None
) -> DiscoveryConfig:
    """
    Apply TOOLCHAINPROBE_TIMEOUT / TOOLCHAINPROBE_TYPES overrides in place.

    Raises:
        ConfigError: If an override has an invalid value
    """
    environ = os.environ if environ is None else environ

    timeout = environ.get(ENV_TIMEOUT)
    if timeout:
        config.timeout = _parse_timeout(timeout)
        logger.debug(f"Timeout overridden from {ENV_TIMEOUT}: {config.timeout}")

    types = environ.get(ENV_TYPES)
    if types:
        config.types = _validate_types([t.strip() for t in types.split(",") if t.strip()])
        logger.debug(f"Types overridden from {ENV_TYPES}: {config.types}")

    return config


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    required: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> DiscoveryConfig:
    """
    Load discovery settings from YAML and the environment.

    Args:
        config_file: Path to the YAML file (default: ./toolchainprobe.yaml)
        required: If True, a missing file is an error
        environ: Environment used for overrides (default: os.environ)

    Returns:
        Discovery configuration (defaults if the file doesn't exist and
        is not required)

    Raises:
        ConfigError: If the file is required but missing, the YAML is
            invalid, or a value is invalid

    Example:
        >>> config = load_config("toolchainprobe.yaml")
        >>> config.preference
        ['gcc', 'clang', 'msvc']
    """
    path = Path(config_file) if config_file else Path.cwd() / DEFAULT_CONFIG_FILE

    if not path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {path}")
        logger.debug(f"Config file not found (optional): {path}")
        data = None
    else:
        logger.debug(f"Loading configuration from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML: {e}")
            raise ConfigError(f"Invalid YAML in {path}: {e}")

    return apply_env_overrides(config_from_dict(data), environ)


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_PREFERENCE",
    "KNOWN_TYPES",
    "DiscoveryConfig",
    "config_from_dict",
    "apply_env_overrides",
    "load_config",
]
