"""
Tests for toolchainprobe.toolchain.chain module.
"""

import json

import yaml

from toolchainprobe.toolchain.chain import Chain
from toolchainprobe.toolchain.tool import Tool, ToolPath, Toolset
from toolchainprobe.toolchain.triplet import parse_full


def gcc_chain():
    chain = Chain(
        compiler="gcc",
        implementation="gcc",
        version="13.2.0",
        full_version="gcc version 13.2.0 (Ubuntu 13.2.0-23ubuntu4)",
        target=parse_full("x86_64-linux-gnu"),
        thread_model="posix",
        installed_dir="/usr/bin",
        tools=Toolset(
            {
                Tool.ARCHIVER: "/usr/bin/gcc-ar-13",
                Tool.C_COMPILER: "/usr/bin/gcc-13",
                Tool.CXX_COMPILER: "/usr/bin/g++-13",
            }
        ),
        cc_include_dirs=["/usr/include"],
    )
    chain.set_environment({"CXX": "/usr/bin/g++-13", "CC": "/usr/bin/gcc-13"})
    return chain


class TestChain:
    """Tests for the Chain record."""

    def test_environment_sorted(self):
        """Test environment entries are stored sorted as NAME=VALUE."""
        chain = gcc_chain()

        assert chain.environment == ["CC=/usr/bin/gcc-13", "CXX=/usr/bin/g++-13"]
        assert chain.environment_dict()["CXX"] == "/usr/bin/g++-13"

    def test_to_dict_keys(self):
        """Test kebab-case keys and omission of empty fields."""
        data = gcc_chain().to_dict()

        assert list(data) == [
            "compiler",
            "implementation",
            "version",
            "full-version",
            "target",
            "thread-model",
            "installed-dir",
            "tools",
            "cc-include-dirs",
            "environment",
        ]
        assert "msvc-id" not in data
        assert list(data["tools"]) == ["c++", "c", "ar"]

    def test_minimal_chain_keeps_compiler_and_tools(self):
        """Test required keys survive even when empty."""
        assert Chain(compiler="clang").to_dict() == {"compiler": "clang", "tools": {}}

    def test_json_round_trip(self):
        """Test a chain survives JSON encoding."""
        chain = gcc_chain()

        decoded = Chain.from_dict(json.loads(json.dumps(chain.to_dict())))

        assert decoded == chain

    def test_yaml_round_trip_with_subcommands(self):
        """Test subcommand tool paths survive YAML encoding."""
        chain = Chain(compiler="clang", implementation="zig-clang", version="17.0.6")
        chain.tools[Tool.C_COMPILER] = ToolPath("/opt/zig/zig", ("cc",))

        text = yaml.safe_dump(chain.to_dict(), sort_keys=False)
        decoded = Chain.from_dict(yaml.safe_load(text))

        assert decoded.tools[Tool.C_COMPILER] == ToolPath("/opt/zig/zig", ("cc",))

    def test_summary(self):
        """Test the human-readable summary."""
        summary = gcc_chain().summary()

        assert summary.splitlines() == [
            "gcc 13.2.0 targeting 'x86_64-linux-gnu'",
            "  - C path: '/usr/bin/gcc-13'",
            "  - C++ path: '/usr/bin/g++-13'",
        ]

    def test_summary_msvc(self):
        """Test MSVC summaries show the architecture and VS version."""
        chain = Chain(
            compiler="msvc",
            version="17.9.34607.119",
            target=parse_full("x86_64-pc-windows-msvc"),
            msvc_arch="amd64",
            msvc_version="17.0",
            tools=Toolset({Tool.C_COMPILER: "C:/VC/cl.exe", Tool.CXX_COMPILER: "C:/VC/cl.exe"}),
        )

        assert chain.summary().splitlines() == [
            "msvc 17.0 (17.9.34607.119) targeting 'x86_64-pc-windows-msvc.amd64'",
            "  - path: 'C:/VC/cl.exe'",
        ]
