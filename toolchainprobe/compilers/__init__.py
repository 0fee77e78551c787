"""
Compiler family probers.

Each module discovers installations of one family and assembles Chains:

- gcc: GNU compilers, including cross and mingw toolchains
- clang: clang, Apple clang, Emscripten, Intel, TI, ARM and zig cc
- msvc: Visual Studio (Windows hosts only)
"""

from . import base, gcc, clang, msvc

__all__ = ["base", "gcc", "clang", "msvc"]
