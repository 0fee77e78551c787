"""
Entry point for running the toolchainprobe CLI as a module.

Usage: python -m toolchainprobe.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
