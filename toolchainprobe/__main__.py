"""
Usage: python -m toolchainprobe [command] [options]
"""

from toolchainprobe.cli.parser import main

if __name__ == "__main__":
    main()
