"""
Pytest configuration and shared fixtures for toolchainprobe tests.
"""

import stat
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

# Import test fixtures to make them available to all tests
# ruff: noqa: F401
from tests.fixtures.compilers import (
    fake_gcc_probe,
    fake_clang_probe,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test (resolved, so symlink targets compare equal)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def make_executable() -> Callable[..., Path]:
    """Factory creating executable files, optionally as a symlink to another file."""

    def _make(directory: Path, name: str, link_to: str = "") -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        if link_to:
            path.symlink_to(directory / link_to)
        else:
            path.write_text("#!/bin/sh\nexit 0\n")
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def isolated_path(temp_dir: Path, monkeypatch) -> Path:
    """Point PATH at an empty bin directory and clear compiler variables."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir))
    for var in ("CC", "CXX", "AR", "AS", "LLVM_ROOT", "CFLAGS", "CXXFLAGS", "LDFLAGS"):
        monkeypatch.delenv(var, raising=False)
    return bin_dir


@pytest.fixture(autouse=True)
def clean_probe_environment(monkeypatch):
    """Keep TOOLCHAINPROBE_* overrides from the developer's shell out of tests."""
    monkeypatch.delenv("TOOLCHAINPROBE_TIMEOUT", raising=False)
    monkeypatch.delenv("TOOLCHAINPROBE_TYPES", raising=False)


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset module-level caches between tests."""
    from toolchainprobe.core import platform

    platform.detect_platform.cache_clear()
    yield
    platform.detect_platform.cache_clear()

