"""
Tests for toolchainprobe.compilers.gcc module.
"""

import sys
from unittest.mock import patch

import pytest

from tests.fixtures.compilers import (
    GCC_MACROS,
    GCC_VERBOSE,
    CLANG_MACROS,
    MINGW_VERBOSE,
    make_probe,
)
from toolchainprobe.compilers import gcc
from toolchainprobe.core.exceptions import CompilerProbeError, ConfigureParseError
from toolchainprobe.toolchain.chain import Chain
from toolchainprobe.toolchain.tool import Tool, Toolset
from toolchainprobe.toolchain.triplet import parse_full

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses symlinks and chmod")


class TestParseConfigureFlags:
    """Tests for parse_configure_flags()."""

    def test_quoted_and_plain_values(self):
        """Test plain, quoted and value-less flags."""
        line = (
            "Configured with: ../configure --enable-languages=c,c++ "
            "--with-arch=x86-64 --with-pkgversion='Rev1, built' --disable-nls"
        )

        flags = gcc.parse_configure_flags(line)

        assert flags == {
            "enable-languages": "c,c++",
            "with-arch": "x86-64",
            "with-pkgversion": "Rev1, built",
            "disable-nls": "",
        }

    def test_without_prefix(self):
        """Test the 'Configured with:' prefix is optional."""
        assert gcc.parse_configure_flags("--prefix=/usr") == {"prefix": "/usr"}

    def test_unterminated_quote(self):
        """Test an unterminated quoted value raises."""
        with pytest.raises(ConfigureParseError, match="with-pkgversion"):
            gcc.parse_configure_flags("--with-pkgversion='Rev1, built")


class TestQueryVersion:
    """Tests for query_version()."""

    def test_ubuntu_gcc(self, fake_gcc_probe):
        """Test parsing a full probe of Ubuntu gcc 13."""
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            info = gcc.query_version("/usr/bin/gcc-13")

        assert info.version == "13.2.0"
        assert info.full_version == "gcc version 13.2.0 (Ubuntu 13.2.0-23ubuntu4)"
        assert info.target.original == "x86_64-linux-gnu"
        assert info.target.arch == "x64"
        assert info.target.libc == "glibc"
        assert info.thread_model == "posix"
        assert info.languages == ["c", "ada", "c++", "go", "d", "fortran"]
        assert info.cc_include_dirs == [
            "/usr/lib/gcc/x86_64-linux-gnu/13/include",
            "/usr/local/include",
            "/usr/include",
        ]
        assert info.cxx_include_dirs[0] == "/usr/include/c++/13"

    def test_probe_order(self):
        """Test the probes run in order and the include probes use the C locale."""
        calls = []
        probe = make_probe(GCC_VERBOSE, GCC_MACROS, calls=calls)
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe) as mock:
            gcc.query_version("gcc")

        assert calls == [
            ["gcc", "-dM", "-E", "-"],
            ["gcc", "-v"],
            ["gcc", "-xc", "-E", "-v", "-"],
            ["gcc", "-xc++", "-E", "-v", "-"],
        ]
        assert mock.call_args_list[0].kwargs["merge_stderr"] is False
        assert mock.call_args_list[2].kwargs["env"]["LC_ALL"] == "C"

    def test_version_line_fallback(self):
        """Test the last '-v' line is used when the macro probe fails."""
        probe = make_probe(MINGW_VERBOSE, macros=None)
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe):
            info = gcc.query_version("x86_64-w64-mingw32-gcc")

        assert info.version == "13-win32"
        assert info.full_version == "gcc version 13-win32 (GCC)"
        assert info.target.os == "windows"
        assert info.target.libc == "mingw"
        assert info.thread_model == "win32"

    def test_rejects_clang(self):
        """Test a clang front-end named gcc is rejected."""
        probe = make_probe(GCC_VERBOSE, CLANG_MACROS)
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe):
            with pytest.raises(CompilerProbeError, match="clang"):
                gcc.query_version("/usr/bin/gcc")

    def test_invalid_version_output(self):
        """Test output without a gcc version line is rejected."""
        probe = make_probe("Usage: tool [options]\n", macros=None)
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe):
            with pytest.raises(CompilerProbeError):
                gcc.query_version("/usr/bin/not-gcc")

    def test_include_probe_failure_is_tolerated(self):
        """Test a failing include probe leaves the include lists empty."""

        def probe(args, **kwargs):
            if "-dM" in args:
                return GCC_MACROS
            if args[-1] == "-v":
                return GCC_VERBOSE
            raise CompilerProbeError(" ".join(args), "exit status 1")

        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe):
            info = gcc.query_version("gcc")

        assert info.version == "13.2.0"
        assert info.cc_include_dirs == []
        assert info.cxx_include_dirs == []


class TestNames:
    """Tests for file name helpers."""

    def test_detect_toolchain_prefix(self):
        """Test cross prefixes are extracted from gcc paths."""
        assert gcc.detect_toolchain_prefix("/usr/bin/x86_64-w64-mingw32-gcc") == "x86_64-w64-mingw32-"
        assert gcc.detect_toolchain_prefix("/opt/arm/bin/arm-none-eabi-gcc-13") == "arm-none-eabi-"
        assert gcc.detect_toolchain_prefix("C:\\msys64\\mingw64\\bin\\gcc.exe") == ""
        assert gcc.detect_toolchain_prefix("/usr/bin/gcc-13") == ""

    def test_accept_filename(self):
        """Test which file names are considered gcc drivers."""
        assert gcc.accept_filename("gcc")
        assert gcc.accept_filename("gcc-13")
        assert gcc.accept_filename("gcc.exe")
        assert gcc.accept_filename("arm-none-eabi-gcc-12.2")
        assert not gcc.accept_filename("gcc-ar")
        assert not gcc.accept_filename("g++")
        assert not gcc.accept_filename("x86_64-linux-gnu-gfortran-gcc")


class TestCompare:
    """Tests for compare()."""

    def chain(self, version, triplet="x86_64-linux-gnu", cxx="/usr/bin/g++"):
        return Chain(
            compiler="gcc",
            version=version,
            full_version=f"gcc version {version}",
            target=parse_full(triplet),
            tools=Toolset({Tool.CXX_COMPILER: cxx}),
        )

    def test_version_first(self):
        """Test the version decides first."""
        assert gcc.compare(self.chain("13.2.0"), self.chain("12.3.0")) == 1
        assert gcc.compare(self.chain("9.4.0"), self.chain("12.3.0")) == -1

    def test_tie_breakers(self):
        """Test target and C++ path break version ties."""
        assert gcc.compare(
            self.chain("13.2.0", "aarch64-linux-gnu"), self.chain("13.2.0")
        ) == -1
        assert gcc.compare(
            self.chain("13.2.0", cxx="/usr/bin/g++-13"), self.chain("13.2.0")
        ) == 1
        assert gcc.compare(self.chain("13.2.0"), self.chain("13.2.0")) == 0


@posix_only
class TestGccProber:
    """Tests for GccProber against a fake PATH."""

    @pytest.fixture
    def ubuntu_bin(self, isolated_path, make_executable):
        make_executable(isolated_path, "gcc-13")
        make_executable(isolated_path, "g++-13")
        make_executable(isolated_path, "ar")
        make_executable(isolated_path, "x86_64-linux-gnu-gcc")
        make_executable(isolated_path, "gcc", link_to="gcc-13")
        make_executable(isolated_path, "x86_64-linux-gnu-gcc-13", link_to="gcc-13")
        return isolated_path

    def test_groups_identical_installations(self, ubuntu_bin, fake_gcc_probe):
        """Test paths probing identically collapse into one installation."""
        b = ubuntu_bin.as_posix()
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            installations = gcc.GccProber().discover_installations()

        assert len(installations) == 1
        inst = installations[0]
        assert inst.c_compiler.primary_path == f"{b}/gcc-13"
        assert inst.c_compiler.other_paths == [f"{b}/x86_64-linux-gnu-gcc"]
        assert inst.c_compiler.symlinks == [f"{b}/gcc", f"{b}/x86_64-linux-gnu-gcc-13"]
        assert inst.version == "13.2.0"

    def test_prefix_follows_primary_path(self, isolated_path, make_executable, fake_gcc_probe):
        """Test the toolchain prefix is taken from the chosen primary compiler."""
        b = isolated_path.as_posix()
        make_executable(isolated_path, "gcc")
        make_executable(isolated_path, "x86_64-linux-gnu-gcc")
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            installations = gcc.GccProber().discover_installations()

        assert len(installations) == 1
        inst = installations[0]
        assert inst.c_compiler.primary_path == f"{b}/x86_64-linux-gnu-gcc"
        assert inst.toolchain_prefix == "x86_64-linux-gnu-"
        assert inst.to_dict()["toolchain-prefix"] == "x86_64-linux-gnu-"

    def test_assembles_toolchain(self, ubuntu_bin, fake_gcc_probe):
        """Test the chain picks up the C++ compiler and binutils."""
        b = ubuntu_bin.as_posix()
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            chains = gcc.GccProber().discover_toolchains(want_cxx=True)

        assert len(chains) == 1
        chain = chains[0]
        assert chain.compiler == "gcc"
        assert chain.implementation == "gcc"
        assert chain.installed_dir == b
        assert chain.tools[Tool.C_COMPILER].path == f"{b}/gcc-13"
        assert chain.tools[Tool.CXX_COMPILER].path == f"{b}/g++-13"
        assert chain.tools[Tool.ARCHIVER].path == f"{b}/ar"
        env = chain.environment_dict()
        assert env["CC"] == f"{b}/gcc-13"
        assert env["CXX"] == f"{b}/g++-13"
        assert "C_INCLUDE_PATH" in env

    def test_want_cxx_drops_c_only(self, isolated_path, make_executable, fake_gcc_probe):
        """Test installations without g++ are dropped when C++ is wanted."""
        make_executable(isolated_path, "gcc")
        messages = []
        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            prober = gcc.GccProber(feedback=messages.append)
            assert prober.discover_toolchains(want_cxx=True) == []
            chains = prober.discover_toolchains(want_cxx=False)

        assert len(chains) == 1
        assert Tool.CXX_COMPILER not in chains[0].tools
        assert any("no C++ compiler" in m for m in messages)

    def test_skips_failing_candidates(self, isolated_path, make_executable):
        """Test candidates that fail to probe are ignored."""
        make_executable(isolated_path, "gcc")

        def probe(args, **kwargs):
            raise CompilerProbeError(str(args[0]), "exit status 1")

        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=probe):
            assert gcc.GccProber().discover_installations() == []

    def test_cc_override(self, isolated_path, make_executable, fake_gcc_probe, monkeypatch):
        """Test CC short-circuits the PATH scan."""
        make_executable(isolated_path, "gcc")
        cc = make_executable(isolated_path.parent / "opt", "gcc-13")
        monkeypatch.setenv("CC", str(cc))

        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            installations = gcc.GccProber().discover_installations()

        assert [i.c_compiler.primary_path for i in installations] == [cc.as_posix()]

    def test_extra_search_paths(self, isolated_path, make_executable, fake_gcc_probe):
        """Test extra search paths are scanned after PATH."""
        extra = make_executable(isolated_path.parent / "cross", "arm-none-eabi-gcc").parent

        with patch("toolchainprobe.compilers.gcc.run_probe", side_effect=fake_gcc_probe):
            installations = gcc.GccProber(extra_search_paths=[str(extra)]).discover_installations()

        assert len(installations) == 1
        assert installations[0].toolchain_prefix == "arm-none-eabi-"
