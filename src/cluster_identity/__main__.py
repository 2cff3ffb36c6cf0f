"""
Cluster identity CLI entry point.

Create and inspect the identity file of a cluster peer.

Usage::

    python -m cluster_identity init --path ./identity.json
    python -m cluster_identity show --path ./identity.json
    CLUSTER_PEERNAME=node-1 python -m cluster_identity validate --path ./identity.json

Commands:
    init       Generate a new identity and save it
    show       Print peer id, peername and whether a cluster secret is set
    validate   Exit with status 0 if the identity (with overrides) is valid

Environment variables CLUSTER_ID, CLUSTER_PEERNAME, CLUSTER_PRIVATEKEY and
CLUSTER_SECRET override the matching fields of a loaded identity.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cluster_identity.config import DEFAULT_IDENTITY_FILE
from cluster_identity.exceptions import IdentityError
from cluster_identity.identity import Identity

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)

        timestamp = self.formatTime(record, self.datefmt)
        colored_time = f"{self.CYAN}{timestamp}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"

        return f"{colored_time} {levelname} {name}: {record.getMessage()}"


_HANDLER_NAME = "cluster_identity.cli"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """
    Route log records to stderr, colored unless no_color is set.

    Calling this again replaces the handler installed by the previous call,
    so running main() several times in one process logs each record once.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    for old in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(old)
        old.close()
    root.setLevel(level)
    root.addHandler(handler)


def _load(path: Path, apply_env: bool = True) -> Identity:
    identity = Identity()
    if apply_env:
        identity.load_json_file_and_env(path)
    else:
        identity.load_json_from_file(path)

    # A hand-edited file can pair an id with someone else's key.
    # The identity is still usable, but peers will reject the handshake.
    if not identity.id.matches_public_key(identity.public_key()):
        logger.warning("Peer ID %s was not derived from the private key", identity.id)

    return identity


def cmd_init(path: Path, force: bool) -> int:
    """Generate and save a new identity."""
    if path.exists() and not force:
        logger.error("Identity file %s already exists (use --force to overwrite)", path)
        return 1

    identity = Identity.generate()
    identity.save_json(path)

    logger.info("Generated identity for peer %s", identity.id)
    print(identity.id)
    return 0


def cmd_show(path: Path, apply_env: bool) -> int:
    """Print the public parts of an identity."""
    identity = _load(path, apply_env)

    print(f"id:       {identity.id}")
    print(f"peername: {identity.peername}")
    print(f"secret:   {'set' if identity.secret else 'none (unprotected network)'}")
    return 0


def cmd_validate(path: Path) -> int:
    """Load an identity with overrides; loading validates it."""
    identity = _load(path)
    logger.info("Identity for peer %s is valid", identity.id)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cluster-identity",
        description="Cluster peer identity tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Generate a new identity")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing identity file",
    )

    show_parser = subparsers.add_parser("show", help="Print identity details")
    show_parser.add_argument(
        "--no-env",
        action="store_true",
        help="Ignore CLUSTER_* environment overrides",
    )

    validate_parser = subparsers.add_parser("validate", help="Check an identity file")

    for sub in (init_parser, show_parser, validate_parser):
        sub.add_argument(
            "--path",
            type=Path,
            default=Path(DEFAULT_IDENTITY_FILE),
            help=f"Identity file (default: {DEFAULT_IDENTITY_FILE})",
        )

    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.no_color)

    try:
        match args.command:
            case "init":
                return cmd_init(args.path, args.force)
            case "show":
                return cmd_show(args.path, not args.no_env)
            case _:
                return cmd_validate(args.path)
    except IdentityError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
