"""
Captured compiler output and fake probe runners.

The fakes stand in for core.process.run_probe: they look at the command line
and return the output a real compiler would print.
"""

from typing import Callable, Dict, List, Optional

import pytest

from toolchainprobe.core.exceptions import CompilerProbeError

GCC_VERBOSE = """Using built-in specs.
COLLECT_GCC=gcc-13
COLLECT_LTO_WRAPPER=/usr/libexec/gcc/x86_64-linux-gnu/13/lto-wrapper
OFFLOAD_TARGET_NAMES=nvptx-none:amdgcn-amdhsa
Target: x86_64-linux-gnu
Configured with: ../src/configure -v --with-pkgversion='Ubuntu 13.2.0-23ubuntu4' --enable-languages=c,ada,c++,go,d,fortran --prefix=/usr --enable-shared
Thread model: posix
Supported LTO compression algorithms: zlib zstd
gcc version 13.2.0 (Ubuntu 13.2.0-23ubuntu4)
"""

GCC_MACROS = """#define __STDC__ 1
#define __GNUC__ 13
#define __GNUC_MINOR__ 2
#define __GNUC_PATCHLEVEL__ 0
#define __x86_64__ 1
"""

GCC_C_INCLUDES = """ignoring nonexistent directory "/usr/local/include/x86_64-linux-gnu"
#include "..." search starts here:
#include <...> search starts here:
 /usr/lib/gcc/x86_64-linux-gnu/13/include
 /usr/local/include
 /usr/include
End of search list.
"""

GCC_CXX_INCLUDES = """#include "..." search starts here:
#include <...> search starts here:
 /usr/include/c++/13
 /usr/lib/gcc/x86_64-linux-gnu/13/include
 /usr/include
End of search list.
"""

MINGW_VERBOSE = """Using built-in specs.
COLLECT_GCC=x86_64-w64-mingw32-gcc
Target: x86_64-w64-mingw32
Configured with: ../../src/configure --build=x86_64-linux-gnu --enable-languages=c,c++,fortran,objc,obj-c++ --enable-threads=win32
Thread model: win32
gcc version 13-win32 (GCC)
"""

CLANG_VERBOSE = """Ubuntu clang version 18.1.3 (1ubuntu1)
Target: x86_64-pc-linux-gnu
Thread model: posix
InstalledDir: /usr/bin
Found candidate GCC installation: /usr/bin/../lib/gcc/x86_64-linux-gnu/13
"""

CLANG_MACROS = """#define __clang__ 1
#define __GNUC__ 4
#define __GNUC_MINOR__ 2
#define __GNUC_PATCHLEVEL__ 1
"""

APPLE_CLANG_VERBOSE = """Apple clang version 15.0.0 (clang-1500.3.9.4)
Target: arm64-apple-darwin23.4.0
Thread model: posix
InstalledDir: /Library/Developer/CommandLineTools/usr/bin
"""

EMCC_VERBOSE = """emcc (Emscripten gcc/clang-like replacement + linker emulating GNU ld) 3.1.56 (cf90417346b78455089e64eb909d71d091ecc055)
clang version 19.0.0git (https:/github.com/llvm/llvm-project 34ba90745fa55777436a2429a51a3799c83c6d4c)
Target: wasm32-unknown-emscripten
Thread model: posix
InstalledDir: /opt/emsdk/upstream/bin
"""

ZIG_VERBOSE = """clang version 17.0.6 (https://github.com/ziglang/zig-bootstrap 1dda86241204c4649f668d46b6a37feed707c7b4)
Target: x86_64-unknown-linux-gnu
Thread model: posix
InstalledDir: /opt/zig
"""

INTEL_VERBOSE = """Intel(R) oneAPI DPC++/C++ Compiler 2024.0.0 (2024.0.0.20231017)
Target: x86_64-unknown-linux-gnu
Thread model: posix
InstalledDir: /opt/intel/oneapi/compiler/2024.0/bin/compiler
"""

CLANG_C_INCLUDES = """#include "..." search starts here:
#include <...> search starts here:
 /usr/lib/llvm-18/lib/clang/18/include
 /usr/local/include
 /usr/include
End of search list.
"""

MSVC_BANNER = """Microsoft (R) C/C++ Optimizing Compiler Version 19.38.33135 for x64
Copyright (C) Microsoft Corporation.  All rights reserved.

usage: cl [ option... ] filename... [ /link linkoption... ]
"""


def make_probe(
    verbose: str,
    macros: Optional[str] = None,
    c_includes: str = GCC_C_INCLUDES,
    cxx_includes: str = GCC_CXX_INCLUDES,
    calls: Optional[List[List[str]]] = None,
) -> Callable[..., str]:
    """
    Build a fake run_probe answering gcc-style probes.

    Args:
        verbose: Output of '<cc> -v'
        macros: Output of '<cc> -dM -E -'; None makes the macro probe fail
        c_includes: Output of '<cc> -xc -E -v -'
        cxx_includes: Output of '<cc> -xc++ -E -v -'
        calls: Optional list receiving every command line
    """

    def run_probe(args, **kwargs):
        args = [str(a) for a in args]
        if calls is not None:
            calls.append(args)
        if "-dM" in args:
            if macros is None:
                raise CompilerProbeError(" ".join(args), "exit status 1")
            return macros
        if "-xc" in args:
            return c_includes
        if "-xc++" in args:
            return cxx_includes
        if args[-1] == "-v":
            return verbose
        raise CompilerProbeError(" ".join(args), "unexpected probe")

    return run_probe


@pytest.fixture
def fake_gcc_probe() -> Callable[..., str]:
    """run_probe replacement answering like Ubuntu gcc 13."""
    return make_probe(GCC_VERBOSE, GCC_MACROS)


@pytest.fixture
def fake_clang_probe() -> Callable[..., str]:
    """run_probe replacement answering like Ubuntu clang 18."""
    return make_probe(CLANG_VERBOSE, CLANG_MACROS, c_includes=CLANG_C_INCLUDES)


def outputs_by_path(outputs: Dict[str, Callable[..., str]]) -> Callable[..., str]:
    """Dispatch to a per-executable fake based on the first argument."""

    def run_probe(args, **kwargs):
        for name, probe in outputs.items():
            if str(args[0]).endswith(name):
                return probe(args, **kwargs)
        raise CompilerProbeError(str(args[0]), "not a compiler")

    return run_probe
