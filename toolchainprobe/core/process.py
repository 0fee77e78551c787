"""
Subprocess probing helpers.

Every compiler invocation made during discovery goes through run_probe(),
which applies a timeout, feeds stdin and lets callers override environment
variables for the child process only.
"""

import logging
import os
import subprocess
import sys
from typing import Dict, List, Optional, Sequence

from .exceptions import CompilerProbeError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Forces untranslated compiler banners ("#include <...> search starts here:")
C_LOCALE = {"LANG": "C", "LC_ALL": "C"}


def _creation_flags() -> int:
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def child_environment(overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Build the environment block for a child process.

    Args:
        overrides: Variables to set on top of the current environment

    Returns:
        A new dictionary; os.environ itself is never modified
    """
    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def run_probe(
    args: Sequence[str],
    *,
    stdin: Optional[str] = "",
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    merge_stderr: bool = True,
    check: bool = True,
) -> str:
    """
    Run a read-only probe command and return its text output.

    Args:
        args: Command line, executable first
        stdin: Text fed to the process (empty by default, None for DEVNULL)
        env: Environment overrides applied to the child process only
        timeout: Seconds before the process is killed
        merge_stderr: Capture stderr into the returned text
        check: Raise if the process exits with a non-zero status

    Returns:
        Decoded output of the process

    Raises:
        CompilerProbeError: If the process cannot be started, times out,
            or (with check=True) exits with a non-zero status
    """
    cmd: List[str] = [str(a) for a in args]
    command = " ".join(cmd)

    kwargs = {}
    flags = _creation_flags()
    if flags:
        kwargs["creationflags"] = flags
    if stdin is None:
        kwargs["stdin"] = subprocess.DEVNULL
    else:
        kwargs["input"] = stdin

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=child_environment(env) if env else None,
            check=False,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"Timeout after {timeout}s: {command}")
        raise CompilerProbeError(command, f"timed out after {timeout}s")
    except OSError as e:
        logger.debug(f"Failed to run {command}: {e}")
        raise CompilerProbeError(command, str(e)) from e

    if check and result.returncode != 0:
        logger.debug(f"{command} returned {result.returncode}")
        raise CompilerProbeError(command, f"exit status {result.returncode}")

    return result.stdout or ""


def split_lines(output: str) -> List[str]:
    """Split process output into lines with CR and trailing blanks removed."""
    lines = [line.rstrip("\r") for line in output.split("\n")]
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


__all__ = [
    "DEFAULT_TIMEOUT",
    "C_LOCALE",
    "child_environment",
    "run_probe",
    "split_lines",
]
