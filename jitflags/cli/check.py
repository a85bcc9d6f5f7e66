"""CLI subcommand: check - resolve the compiler flags named in a settings file."""

from __future__ import annotations

import argparse
import os
from pathlib import Path

from ..compiler_flags import compiler_resolver
from ..engine.diagnostics import CollectingSink, JsonlSink, MultiSink
from ..engine.platform import platform_for
from ..engine.types import AUTO_REPAIR, STRICT
from ..errors import JitFlagsError, format_error
from ..io.config import load_settings
from ._config import discover_config_path, maybe_log_selected
from ._exit import OK, USER_ERR, VIOLATION
from ._io import eprint_once, print_json, set_verbosity

_HELP = "Check (and optionally repair) compiler flags from a settings file"


def register(subparsers: argparse._SubParsersAction) -> None:
    sp = subparsers.add_parser("check", help=_HELP, description=_HELP)
    sp.add_argument("path", nargs="?", help="settings file or directory (default: discovered)")
    mode = sp.add_mutually_exclusive_group()
    mode.add_argument("--repair", dest="mode", action="store_const", const=AUTO_REPAIR,
                      help="clamp invalid values instead of rejecting them")
    mode.add_argument("--strict", dest="mode", action="store_const", const=STRICT,
                      help="reject on the first violation (default)")
    sp.add_argument("--platform", help="architecture family (overrides the settings file)")
    sp.add_argument("--json", action="store_true", help="print the pass result as JSON")
    sp.add_argument("--quiet", action="store_true", help="suppress diagnostics on stderr")
    sp.add_argument("--verbose", action="store_true", help="show repairs, normalizations and the settings source")
    sp.add_argument("--log-jsonl", action="store_true",
                    help="append diagnostics to diagnostics.jsonl under the logs directory")
    sp.set_defaults(command="check", func=_run)


def _run(ns: argparse.Namespace) -> int:
    set_verbosity(ns.verbose, ns.quiet)

    selected, source = discover_config_path(ns.path, Path.cwd(), os.environ)
    maybe_log_selected(selected, source, verbose=ns.verbose and not ns.quiet)
    if source == "explicit-missing":
        eprint_once(f"Config error: {selected} does not exist")
        return USER_ERR

    try:
        settings = load_settings(str(selected) if selected is not None else None)
        if ns.platform:
            platform_for(ns.platform)
            settings.platform = ns.platform
        if ns.mode:
            settings.mode = ns.mode
        resolver = compiler_resolver(settings.platform_obj(), settings.compiler)
        store = resolver.new_store(settings.flags)
    except JitFlagsError as e:
        eprint_once(format_error(e))
        return USER_ERR

    collected = CollectingSink()
    sink = MultiSink([collected, JsonlSink()]) if ns.log_jsonl else collected
    result = resolver.resolve(
        store, settings.mode, sink=sink, verbose=settings.verbose or ns.verbose
    )

    for severity, message in collected.records:
        eprint_once(f"{severity}: {message}")

    if ns.json:
        print_json(
            {
                "ok": result.ok,
                "mode": result.mode,
                "failed": result.failed,
                "message": result.message,
                "changes": [c.to_dict() for c in result.changes],
                "flags": store.snapshot(),
            }
        )
    elif result.ok:
        print(f"ok ({result.mode}): {len(result.changes)} change(s)")
    else:
        print(f"FAILED ({result.mode}) at {result.failed}: {result.message}")
        for name, violation in result.violations():
            print(f"  {name}: {violation.message}")
    return OK if result.ok else VIOLATION
