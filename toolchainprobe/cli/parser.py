"""
toolchainprobe CLI argument parser.

This module implements the command-line interface for toolchainprobe using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from toolchainprobe import __version__
from toolchainprobe.cli.utils import FORMATS

logger = logging.getLogger(__name__)


class CLI:
    """toolchainprobe command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="toolchainprobe",
            description="toolchainprobe - C/C++ compiler toolchain discovery",
            epilog='Use "toolchainprobe COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"toolchainprobe {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./toolchainprobe.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_discover_command(subparsers)
        self._add_test_env_command(subparsers)

        return parser

    @staticmethod
    def _add_output_options(parser):
        parser.add_argument(
            "--format",
            "-f",
            choices=FORMATS,
            default="summary",
            metavar="FORMAT",
            help="Output format (summary|json|yaml) [default: summary]",
        )
        parser.add_argument(
            "--output",
            "-o",
            type=Path,
            metavar="PATH",
            help="Write output to the specified file",
        )

    def _add_discover_command(self, subparsers):
        """Add 'discover' subcommand."""
        parser = subparsers.add_parser(
            "discover",
            help="Discover compiler toolchains",
            description="Discover installed C/C++ compiler toolchains",
        )
        parser.add_argument(
            "--type",
            "-t",
            action="append",
            metavar="TYPES",
            help="Comma separated toolchain types (msvc|gcc|clang), can be repeated",
        )
        parser.add_argument(
            "--native",
            "-n",
            action="store_true",
            help="Do not return cross compiling toolchains",
        )
        parser.add_argument(
            "--target",
            metavar="TRIPLET",
            help="Only return toolchains producing code for TRIPLET",
        )
        parser.add_argument(
            "--best",
            "-b",
            action="store_true",
            help="Return only the preferred toolchain (for --target, or the host)",
        )
        parser.add_argument(
            "--installations",
            "-i",
            action="store_true",
            help="Show compiler installations instead of toolchains",
        )
        parser.add_argument(
            "--cxx",
            action="store_true",
            help="Only return toolchains with a C++ compiler",
        )
        self._add_output_options(parser)

    def _add_test_env_command(self, subparsers):
        """Add 'test-env' subcommand."""
        parser = subparsers.add_parser(
            "test-env",
            help="Show the compiler configured by CC/CXX",
            description="Configure a builder from the CC and CXX environment variables",
        )
        self._add_output_options(parser)

    def parse_args(self, args: Optional[List[str]] = None):
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "discover": "toolchainprobe.cli.commands.discover",
            "test-env": "toolchainprobe.cli.commands.test_env",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
