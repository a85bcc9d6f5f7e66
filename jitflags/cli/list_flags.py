"""CLI subcommand: list-flags - registered compiler flags in evaluation order."""

from __future__ import annotations

import argparse

from ..compiler_flags import compiler_resolver
from ..engine.platform import platform_for
from ..errors import JitFlagsError, format_error
from ._exit import OK, USER_ERR
from ._io import eprint_once, print_json, print_table

_HELP = "List registered compiler flags, kinds, defaults and dependencies"


def register(subparsers: argparse._SubParsersAction) -> None:
    sp = subparsers.add_parser("list-flags", help=_HELP, description=_HELP)
    sp.add_argument("--platform", default="x86_64", help="architecture family (default: x86_64)")
    sp.add_argument("--no-c2", action="store_true", help="model a build without the optimizing compiler")
    sp.add_argument("--json", action="store_true", help="print as JSON")
    sp.set_defaults(command="list-flags", func=_run)


def _run(ns: argparse.Namespace) -> int:
    try:
        resolver = compiler_resolver(platform_for(ns.platform, has_c2=not ns.no_c2))
    except JitFlagsError as e:
        eprint_once(format_error(e))
        return USER_ERR

    rows = []
    for name in resolver.order:
        spec = resolver.spec(name)
        rows.append(
            {
                "name": name,
                "kind": spec.kind,
                "default": spec.default,
                "depends_on": list(spec.depends_on),
                "rule": spec.rule.describe() if spec.rule is not None else "",
            }
        )
    if ns.json:
        print_json(rows)
    else:
        print_table(rows, headers=["name", "kind", "default", "depends_on", "rule"])
    return OK
