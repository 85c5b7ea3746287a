# Copyright 2022-2025 Broadcom.
# SPDX-License-Identifier: Apache-2.0
"""
The entrypoint into torstatic.
"""
from __future__ import annotations

import logging
import os
import sys
from argparse import ArgumentParser, Namespace
from typing import Optional, Sequence

from .common import ROOT_ENV, Config, TorStaticException, UsageError, __version__
from .dispatch import USAGE, execute, parse_command

log = logging.getLogger(__name__)


def setup_cli() -> ArgumentParser:
    """
    Build the argparser.

    :return: The fully setup argument parser
    :rtype: ``argparse.ArgumentParser``
    """
    argparser = ArgumentParser(
        prog="torstatic",
        description="Build tor and its dependencies as static libraries",
        epilog=USAGE,
    )
    argparser.add_argument("--version", action="version", version=__version__)
    argparser.add_argument(
        "--verbose",
        default=False,
        action="store_true",
        help="Whether to show command output",
    )
    argparser.add_argument(
        "--root",
        default=os.environ.get(ROOT_ENV, "."),
        help=(
            "The directory holding the openssl, libevent, zlib, xz and tor "
            f"folders, can also be set with {ROOT_ENV} [default: %(default)s]"
        ),
    )
    argparser.add_argument(
        "--log-level",
        default="info",
        choices=(
            "error",
            "warning",
            "info",
            "debug",
        ),
        help="Log level determines how verbose the logs will be.",
    )
    argparser.add_argument(
        "command",
        nargs="*",
        help="build-all, build-<folder>, clean-all, or clean-<folder>",
    )
    return argparser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Run the torstatic cli.
    """
    parser = setup_cli()
    args: Namespace = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.getLevelName(args.log_level.upper()),
        format="%(asctime)s %(message)s",
    )
    if len(args.command) != 1:
        parser.error(f"Missing command. {USAGE}")
    config = Config(root=args.root, verbose=args.verbose)
    try:
        execute(parse_command(args.command[0]), config)
    except UsageError as exc:
        parser.error(str(exc))
    except TorStaticException as exc:
        log.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
