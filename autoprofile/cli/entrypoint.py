"""Command-line entrypoint.

    autoprofile start               run the daemon
    autoprofile status              print the current decision as JSON
    autoprofile override <state>    force a state until the next AC change
    autoprofile override --clear    drop the forced state
    autoprofile waybar              status-bar JSON for the active profile
    autoprofile cycle               switch to the next profile (status-bar click)
"""

from __future__ import annotations

import argparse
import logging
from typing import Iterable

from .. import __version__
from ..core.config import load_policy, log_file_path
from ..core.logging_utils import configure_logging
from ..core.utils.exceptions import ConfigError
from . import commands

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autoprofile", description="Adaptive power profile daemon")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("start", help="Run the daemon in the foreground")
    sub.add_parser("status", help="Print the current decision as one-line JSON")

    p_override = sub.add_parser("override", help="Force a state until the AC state changes")
    p_override.add_argument("state", nargs="?", help="One of the configured states")
    p_override.add_argument("--clear", action="store_true", help="Remove the current override")

    sub.add_parser("waybar", help="Print waybar JSON for the active profile")
    sub.add_parser("cycle", help="Switch to the next profile and keep it as the override")

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(log_file_path() if args.command == "start" else None)

    try:
        policy = load_policy()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return commands.EXIT_FAILURE

    if args.command == "start":
        return commands.cmd_start(policy)
    if args.command == "status":
        return commands.cmd_status(policy)
    if args.command == "override":
        return commands.cmd_override(policy, args.state, clear=bool(args.clear))
    if args.command == "waybar":
        return commands.cmd_waybar(policy)
    if args.command == "cycle":
        return commands.cmd_cycle(policy)

    parser.error(f"unknown command {args.command!r}")
    return commands.EXIT_USAGE
