"""
Unit tests for subprocess probing.
"""

import os
import subprocess
from unittest.mock import Mock, patch

import pytest

from toolchainprobe.core.exceptions import CompilerProbeError
from toolchainprobe.core.process import C_LOCALE, child_environment, run_probe, split_lines


def completed(stdout="", returncode=0):
    return Mock(stdout=stdout, returncode=returncode)


class TestRunProbe:
    """Tests for run_probe()."""

    @patch("subprocess.run")
    def test_returns_output(self, mock_run):
        """Test the captured output is returned."""
        mock_run.return_value = completed("gcc version 13.2.0\n")

        assert run_probe(["gcc", "-v"]) == "gcc version 13.2.0\n"

        args, kwargs = mock_run.call_args
        assert args[0] == ["gcc", "-v"]
        assert kwargs["input"] == ""
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["env"] is None
        assert kwargs["timeout"] == 30.0

    @patch("subprocess.run")
    def test_stdin_devnull(self, mock_run):
        """Test stdin=None connects the child to DEVNULL."""
        mock_run.return_value = completed()

        run_probe(["cmd", "/C", "probe.bat"], stdin=None)

        kwargs = mock_run.call_args.kwargs
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert "input" not in kwargs

    @patch("subprocess.run")
    def test_separate_stderr(self, mock_run):
        """Test stderr is kept out of the output on request."""
        mock_run.return_value = completed()

        run_probe(["gcc", "-dM", "-E", "-"], merge_stderr=False)

        assert mock_run.call_args.kwargs["stderr"] == subprocess.PIPE

    @patch("subprocess.run")
    def test_env_overrides_merge(self, mock_run, monkeypatch):
        """Test overrides are applied on top of the current environment."""
        monkeypatch.setenv("TOOLCHAINPROBE_SENTINEL", "1")
        mock_run.return_value = completed()

        run_probe(["gcc", "-xc", "-E", "-v", "-"], env=C_LOCALE)

        env = mock_run.call_args.kwargs["env"]
        assert env["LC_ALL"] == "C"
        assert env["TOOLCHAINPROBE_SENTINEL"] == "1"

    @patch("subprocess.run")
    def test_nonzero_exit(self, mock_run):
        """Test a failing command raises."""
        mock_run.return_value = completed("error", returncode=2)

        with pytest.raises(CompilerProbeError, match="exit status 2"):
            run_probe(["gcc", "--bogus"])

    @patch("subprocess.run")
    def test_nonzero_exit_unchecked(self, mock_run):
        """Test check=False returns the output of a failing command."""
        mock_run.return_value = completed("usage: cl", returncode=2)

        assert run_probe(["cl"], check=False) == "usage: cl"

    @patch("subprocess.run")
    def test_timeout(self, mock_run):
        """Test a hanging command raises after the timeout."""
        mock_run.side_effect = subprocess.TimeoutExpired(["gcc"], 5)

        with pytest.raises(CompilerProbeError, match="timed out"):
            run_probe(["gcc", "-v"], timeout=5)

    @patch("subprocess.run")
    def test_missing_executable(self, mock_run):
        """Test a command that cannot start raises."""
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'gcc'")

        with pytest.raises(CompilerProbeError) as exc_info:
            run_probe(["gcc", "-v"])

        assert exc_info.value.command == "gcc -v"


class TestHelpers:
    """Tests for environment and output helpers."""

    def test_child_environment_copies(self, monkeypatch):
        """Test os.environ is never modified."""
        monkeypatch.delenv("LC_ALL", raising=False)

        env = child_environment({"LC_ALL": "C"})

        assert env["LC_ALL"] == "C"
        assert "LC_ALL" not in os.environ

    def test_split_lines(self):
        """Test CR and trailing blank lines are removed."""
        assert split_lines("a\r\n\r\nb\r\n\r\n  \n") == ["a", "", "b"]
        assert split_lines("") == []
