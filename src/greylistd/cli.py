"""greylistd CLI entry point.

Usage:
    greylistd serve [-c FILE]
    greylistd send [-s SOCKET] update 192.0.2.1 alice@example.org bob@example.net
"""
import argparse
import logging
import sys

from greylistd.client import DEFAULT_SOCKET_PATH, send_command
from greylistd.config import DEFAULT_CONFIG_PATH
from greylistd.errors import GreylistdError

_VERBOSITY = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def _add_serve_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "serve",
        help="Run the greylisting daemon in the foreground.",
    )
    p.add_argument(
        "-c", "--config", default=DEFAULT_CONFIG_PATH, metavar="FILE",
        help=f"Configuration file (default: {DEFAULT_CONFIG_PATH})",
    )


def _add_send_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "send",
        help="Send one command to a running daemon and print the reply.",
    )
    p.add_argument(
        "-s", "--socket", default=DEFAULT_SOCKET_PATH, metavar="PATH",
        help=f"Daemon socket (default: {DEFAULT_SOCKET_PATH})",
    )
    p.add_argument(
        "--timeout", type=float, default=5.0,
        help="Seconds to wait for the reply (default: 5)",
    )
    p.add_argument(
        "words", nargs=argparse.REMAINDER,
        help="Command and arguments, e.g. 'check --white 192.0.2.1 bob@example.net'",
    )


def _run_serve(args: argparse.Namespace) -> int:
    from greylistd.daemon import serve_forever

    try:
        serve_forever(args.config)
    except (GreylistdError, OSError) as err:
        print(f"greylistd: {err}", file=sys.stderr)
        return 1
    return 0


def _run_send(args: argparse.Namespace) -> int:
    if not args.words:
        print("greylistd: no command given", file=sys.stderr)
        return 2
    try:
        reply = send_command(args.socket, " ".join(args.words), timeout=args.timeout)
    except OSError as err:
        print(f"greylistd: cannot talk to {args.socket}: {err}", file=sys.stderr)
        return 1
    sys.stdout.write(reply if reply.endswith("\n") else reply + "\n")
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="greylistd",
        description="Greylisting policy daemon for mail transfer agents.",
    )
    parser.add_argument(
        "-v", dest="verbosity", action="count", default=0,
        help="Increase verbosity by one step",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_serve_parser(subparsers)
    _add_send_parser(subparsers)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=_VERBOSITY.get(args.verbosity, logging.DEBUG),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "serve":
        sys.exit(_run_serve(args))
    if args.command == "send":
        sys.exit(_run_send(args))
