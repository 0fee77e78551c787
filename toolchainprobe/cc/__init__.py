"""
Builder configuration for build file generators.
"""

from .flags import BuildConfig, FlagSet, Flags
from .builder import Builder, from_env

__all__ = ["BuildConfig", "FlagSet", "Flags", "Builder", "from_env"]
