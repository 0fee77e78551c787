"""
Filesystem helpers for compiler discovery.

Provides PATH-style directory scanning that groups symbolic links with the
files they point to, plus small path normalization utilities shared by the
compiler probers.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"


# ============================================================================
# Path Utilities
# ============================================================================


def to_slash(path: Union[str, Path]) -> str:
    """
    Convert a path to its forward-slash form.

    Example:
        >>> to_slash("C:\\\\LLVM\\\\bin\\\\clang.exe")
        'C:/LLVM/bin/clang.exe'
    """
    return str(path).replace("\\", "/")


def fix_wsl_path(path: str) -> str:
    """
    Rewrite a WSL mount path (/mnt/c/...) to its Windows form (C:/...).

    Example:
        >>> fix_wsl_path("/mnt/c/msys64/mingw64/bin/gcc.exe")
        'C:/msys64/mingw64/bin/gcc.exe'
    """
    if path.startswith("/mnt/") and len(path) > 5:
        drive = path[5]
        rest = path[6:]
        if drive.isalpha() and (not rest or rest.startswith("/")):
            return f"{drive.upper()}:{rest or '/'}"
    return path


def file_exists(path: Union[str, Path]) -> bool:
    """Return True if path names an existing regular file (following links)."""
    try:
        return Path(path).is_file()
    except OSError:
        return False


def dir_exists(path: Union[str, Path, None]) -> bool:
    """Return True if path names an existing directory."""
    if not path:
        return False
    try:
        return Path(path).is_dir()
    except OSError:
        return False


def split_path_list(value: Optional[str], sep: str = os.pathsep) -> List[str]:
    """Split a PATH-style list, dropping empty entries."""
    if not value:
        return []
    return [p for p in value.split(sep) if p.strip()]


def join_path_list(paths: Iterable[str], sep: str = os.pathsep) -> str:
    """Join paths into a PATH-style list."""
    return sep.join(p for p in paths if p)


def is_executable(path: Path) -> bool:
    """Check if a file looks executable on the current platform."""
    if IS_WINDOWS:
        return path.suffix.lower() in (".exe", ".bat", ".cmd")
    return os.access(path, os.X_OK)


def find_executable(
    name: str, search_paths: Optional[List[str]] = None
) -> Optional[str]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., 'ar', 'x86_64-w64-mingw32-ar')
        search_paths: Optional list of directories to search

    Returns:
        Forward-slash path to the executable if found, None otherwise
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        search_paths = split_path_list(os.environ.get("PATH", ""))

    for directory in search_paths:
        for ext in extensions:
            exe_path = Path(directory) / f"{name}{ext}"
            if exe_path.is_file() and is_executable(exe_path):
                return to_slash(exe_path)

    return None


# ============================================================================
# Directory Scanning
# ============================================================================


def search_files_and_symlinks(
    directories: Iterable[Union[str, Path]],
    accept: Callable[[str], bool],
) -> Dict[str, List[str]]:
    """
    Scan directories for executables whose file name is accepted.

    Symbolic links are resolved and grouped under the file they point to,
    so that /usr/bin/cc -> gcc-13 and /usr/bin/gcc -> gcc-13 end up as two
    symlinks of a single real executable.

    Args:
        directories: Directories to scan (non-existent entries are skipped)
        accept: Predicate applied to each entry's file name

    Returns:
        Mapping of real executable path -> list of symlink paths pointing at it
    """
    found: Dict[str, List[str]] = {}
    seen_dirs = set()

    for directory in directories:
        if not directory:
            continue
        dir_path = Path(directory)
        try:
            key = os.path.normcase(str(dir_path.resolve()))
        except OSError:
            continue
        if key in seen_dirs or not dir_path.is_dir():
            continue
        seen_dirs.add(key)

        try:
            entries = sorted(dir_path.iterdir())
        except OSError as e:
            logger.debug(f"Error iterating {dir_path}: {e}")
            continue

        for entry in entries:
            if not accept(entry.name):
                continue
            try:
                if entry.is_symlink():
                    real = entry.resolve()
                    if not real.is_file() or not is_executable(real):
                        continue
                    links = found.setdefault(str(real), [])
                    if str(entry) not in links:
                        links.append(str(entry))
                elif entry.is_file() and is_executable(entry):
                    found.setdefault(str(entry), [])
            except OSError as e:
                logger.debug(f"Skipping {entry}: {e}")

    return found


__all__ = [
    "IS_WINDOWS",
    "to_slash",
    "fix_wsl_path",
    "file_exists",
    "dir_exists",
    "split_path_list",
    "join_path_list",
    "is_executable",
    "find_executable",
    "search_files_and_symlinks",
]
