"""
Discover command: list the compiler toolchains or installations on this host.
"""

import logging

from toolchainprobe.cli.utils import render, split_types, stderr_feedback, write_output
from toolchainprobe.config import load_config
from toolchainprobe.toolchain import discovery
from toolchainprobe.toolchain.triplet import parse_target

logger = logging.getLogger(__name__)


def _select(chains, args, config):
    target = parse_target(args.target)[0] if args.target else None
    if target is not None:
        chains = discovery.find(target, chains)
    elif args.native:
        chains = discovery.natives(chains)

    if not args.best:
        return chains

    if target is None:
        chosen = discovery.choose_native(chains, config.preference)
    else:
        chosen = discovery.choose(chains, target, config.preference)
    if chosen is None:
        logger.debug(f"No toolchain matches preference {config.preference}")
        return []
    return [chosen]


def run(args) -> int:
    """
    Run the discover command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = load_config(args.config, required=args.config is not None)
    types = split_types(args.type)
    feedback = stderr_feedback if args.verbose else None
    logger.debug(f"Discovery settings: {config.to_dict()}")

    if args.installations:
        items = discovery.discover_installations(
            types=types, feedback=feedback, config=config
        )
        empty = "no installations found"
    else:
        want_cxx = True if args.cxx else None
        items = discovery.discover_toolchains(
            want_cxx=want_cxx, types=types, feedback=feedback, config=config
        )
        items = _select(items, args, config)
        empty = "no compilers found"

    text = render(items, args.format, lambda item: item.summary(), empty)
    write_output(text, args.output)
    return 0
