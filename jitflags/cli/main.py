# jitflags/cli/main.py
import argparse
import logging
import sys
from typing import List

from . import check, list_flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jitflags",
        description="JIT compiler flag constraint checker",
        allow_abbrev=False,
    )
    try:
        from jitflags import __version__ as _VER
    except ImportError:
        _VER = "unknown"
    parser.add_argument("--version", action="version", version=f"jitflags {_VER}")
    parser.add_argument("--debug", action="store_true", help=argparse.SUPPRESS)
    subparsers = parser.add_subparsers(dest="command")

    check.register(subparsers)
    list_flags.register(subparsers)

    return parser


def main(argv: List[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    ns = parser.parse_args(argv)
    if not hasattr(ns, "func"):
        parser.print_help(sys.stderr)
        return 2
    if ns.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    return ns.func(ns)


if __name__ == "__main__":
    raise SystemExit(main())
