"""
Tests for toolchainprobe.compilers.clang module.
"""

import os
import sys
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from tests.fixtures.compilers import (
    APPLE_CLANG_VERBOSE,
    CLANG_C_INCLUDES,
    CLANG_VERBOSE,
    EMCC_VERBOSE,
    INTEL_VERBOSE,
    ZIG_VERBOSE,
    make_probe,
)
from toolchainprobe.compilers import clang
from toolchainprobe.compilers.clang import Implementation
from toolchainprobe.core.exceptions import CompilerProbeError
from toolchainprobe.toolchain.tool import Tool, ToolPath

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses symlinks and chmod")


@contextmanager
def fake_probe(probe):
    """Route both the '-v' probe and the include probes through probe."""
    with patch("toolchainprobe.compilers.clang.run_probe", side_effect=probe), patch(
        "toolchainprobe.compilers.gcc.run_probe", side_effect=probe
    ):
        yield


def first_line(output):
    return output.splitlines()[0]


class TestDetectImplementation:
    """Tests for banner recognition."""

    @pytest.mark.parametrize(
        "output,expected",
        [
            (CLANG_VERBOSE, Implementation.CLANG),
            (APPLE_CLANG_VERBOSE, Implementation.APPLE_CLANG),
            (EMCC_VERBOSE, Implementation.EMSCRIPTEN),
            (INTEL_VERBOSE, Implementation.INTEL_CLANG),
            ("armclang version 6.21 (build number 17)", Implementation.ARM_CLANG),
        ],
    )
    def test_known_banners(self, output, expected):
        """Test each implementation is recognized from its banner."""
        implementation, _ = clang.detect_implementation(first_line(output))
        assert implementation == expected

    def test_unknown_banner(self):
        """Test gcc banners are not recognized."""
        assert clang.detect_implementation("gcc version 13.2.0 (GCC)") is None


class TestParseVersionOutput:
    """Tests for parse_version_output()."""

    def parse(self, output):
        implementation, pattern = clang.detect_implementation(first_line(output))
        return clang.parse_version_output(output, implementation, pattern)

    def test_ubuntu_clang(self):
        """Test version, target and installed dir of Ubuntu clang."""
        info = self.parse(CLANG_VERBOSE)

        assert info.version == "18.1.3"
        assert info.full_version == "Ubuntu clang version 18.1.3"
        assert info.target.original == "x86_64-pc-linux-gnu"
        assert info.thread_model == "posix"
        assert info.installed_dir == "/usr/bin"

    def test_apple_clang(self):
        """Test Apple clang targets darwin."""
        info = self.parse(APPLE_CLANG_VERBOSE)

        assert info.implementation == Implementation.APPLE_CLANG
        assert info.version == "15.0.0"
        assert info.target.os == "darwin"
        assert info.target.arch == "arm64"

    def test_emscripten_target(self):
        """Test emscripten always targets wasm32-emscripten."""
        info = self.parse(EMCC_VERBOSE)

        assert info.version == "3.1.56"
        assert info.target.original == "wasm32-emscripten"
        assert info.target.is_wasm()

    def test_intel_version(self):
        """Test the oneAPI release number is used as version."""
        assert self.parse(INTEL_VERBOSE).version == "2024.0.0"

    def test_mismatched_banner(self):
        """Test output not matching the pattern raises."""
        with pytest.raises(CompilerProbeError):
            clang.parse_version_output("", Implementation.CLANG, clang.ZIG_PATTERN)


class TestAcceptFilename:
    """Tests for accept_filename()."""

    def test_accepted(self):
        """Test driver names that are scanned."""
        for name in ("clang", "clang-18", "clang.exe", "emcc", "em++", "zig", "zig.exe"):
            assert clang.accept_filename(name), name

    def test_rejected(self):
        """Test helper binaries are not scanned."""
        for name in ("clang++", "clang-format", "clang-tidy", "clangd", "zigfmt"):
            assert not clang.accept_filename(name), name


class TestQueryVersion:
    """Tests for probing drivers."""

    def test_query_version_probes_includes(self):
        """Test include directories come from the preprocessor search list."""
        probe = make_probe(CLANG_VERBOSE, c_includes=CLANG_C_INCLUDES)
        with fake_probe(probe):
            info = clang.query_version(ToolPath("/usr/bin/clang"))

        assert info.cc_include_dirs[0] == "/usr/lib/llvm-18/lib/clang/18/include"

    def test_unknown_implementation(self):
        """Test unknown drivers are rejected."""
        probe = make_probe("gcc version 13.2.0 (GCC)\n")
        with fake_probe(probe):
            with pytest.raises(CompilerProbeError, match="unknown clang implementation"):
                clang.query_version(ToolPath("/usr/bin/clang"))

    def test_zig_uses_cc_subcommand(self):
        """Test zig is probed through 'zig cc'."""
        calls = []
        probe = make_probe(ZIG_VERBOSE, c_includes=CLANG_C_INCLUDES, calls=calls)
        with fake_probe(probe):
            info = clang.ClangProber().probe("/opt/zig/zig")

        assert info.implementation == Implementation.ZIG_CLANG
        assert info.version == "17.0.6"
        assert calls[0] == ["/opt/zig/zig", "cc", "-v"]
        assert calls[1] == ["/opt/zig/zig", "cc", "-xc", "-E", "-v", "-"]


class TestSearchPaths:
    """Tests for ClangProber.search_paths()."""

    def test_llvm_root(self, isolated_path, monkeypatch):
        """Test LLVM_ROOT/bin is appended to the search paths."""
        root = isolated_path.parent / "llvm"
        root.mkdir()
        monkeypatch.setenv("LLVM_ROOT", str(root))

        paths = clang.ClangProber().search_paths()

        assert paths[0] == str(isolated_path)
        assert os.path.join(str(root), "bin") in paths

    def test_missing_llvm_root_ignored(self, isolated_path, monkeypatch):
        """Test a non-existent LLVM_ROOT is ignored."""
        monkeypatch.setenv("LLVM_ROOT", str(isolated_path.parent / "missing"))

        assert clang.ClangProber().search_paths() == [str(isolated_path)]


@posix_only
class TestClangProber:
    """Tests for ClangProber against a fake PATH."""

    def test_llvm_toolchain(self, isolated_path, make_executable, fake_clang_probe):
        """Test a versioned clang install with its C++ driver and llvm-ar."""
        b = isolated_path.as_posix()
        make_executable(isolated_path, "clang-18")
        make_executable(isolated_path, "clang++-18")
        make_executable(isolated_path, "llvm-ar-18")
        make_executable(isolated_path, "clang", link_to="clang-18")

        with fake_probe(fake_clang_probe):
            chains = clang.ClangProber().discover_toolchains()

        assert len(chains) == 1
        chain = chains[0]
        assert chain.compiler == "clang"
        assert chain.implementation == "clang"
        assert chain.version == "18.1.3"
        assert chain.tools[Tool.C_COMPILER].path == f"{b}/clang-18"
        assert chain.tools[Tool.CXX_COMPILER].path == f"{b}/clang++-18"
        assert chain.tools[Tool.ARCHIVER].path == f"{b}/llvm-ar-18"
        assert chain.environment_dict()["CC"] == f"{b}/clang-18"

    def test_installation_paths(self, isolated_path, make_executable, fake_clang_probe):
        """Test symlinks are grouped under the primary path."""
        b = isolated_path.as_posix()
        make_executable(isolated_path, "clang-18")
        make_executable(isolated_path, "clang", link_to="clang-18")

        with fake_probe(fake_clang_probe):
            installations = clang.ClangProber().discover_installations()

        assert len(installations) == 1
        assert installations[0].c_compiler.primary_path == f"{b}/clang-18"
        assert installations[0].c_compiler.symlinks == [f"{b}/clang"]

    def test_cxx_falls_back_to_c_driver(self, isolated_path, make_executable, fake_clang_probe):
        """Test the C driver doubles as C++ compiler, even when C++ is wanted."""
        make_executable(isolated_path, "clang")

        with fake_probe(fake_clang_probe):
            chains = clang.ClangProber().discover_toolchains(want_cxx=True)

        assert len(chains) == 1
        assert chains[0].tools[Tool.CXX_COMPILER] == chains[0].tools[Tool.C_COMPILER]

    def test_emscripten_toolchain(self, isolated_path, make_executable):
        """Test emcc gets em++ and emar as siblings."""
        b = isolated_path.as_posix()
        for name in ("emcc", "em++", "emar"):
            make_executable(isolated_path, name)

        with fake_probe(make_probe(EMCC_VERBOSE, c_includes=CLANG_C_INCLUDES)):
            installations = clang.ClangProber().discover_installations()
            chains = clang.ClangProber().discover_toolchains()

        assert installations[0].c_compiler.primary_path == f"{b}/emcc"
        assert installations[0].c_compiler.other_paths == [f"{b}/em++"]
        chain = chains[0]
        assert chain.implementation == "emscripten"
        assert chain.target.original == "wasm32-emscripten"
        assert chain.tools[Tool.CXX_COMPILER].path == f"{b}/em++"
        assert chain.tools[Tool.ARCHIVER].path == f"{b}/emar"

    def test_zig_toolchain(self, isolated_path, make_executable):
        """Test every zig role is a subcommand of the zig binary."""
        zig = make_executable(isolated_path, "zig").as_posix()

        with fake_probe(make_probe(ZIG_VERBOSE, c_includes=CLANG_C_INCLUDES)):
            installations = clang.ClangProber().discover_installations()
            chains = clang.ClangProber().discover_toolchains()

        assert installations[0].c_compiler.subcommands == ["cc"]
        chain = chains[0]
        assert chain.implementation == "zig-clang"
        assert chain.tools[Tool.C_COMPILER] == ToolPath(zig, ("cc",))
        assert chain.tools[Tool.CXX_COMPILER] == ToolPath(zig, ("c++",))
        assert chain.tools[Tool.ARCHIVER] == ToolPath(zig, ("ar",))
        assert chain.environment_dict()["CC"] == zig
