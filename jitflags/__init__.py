"""jitflags: constraint checking and repair for JIT compiler tuning flags.

Only `jitflags` and `jitflags.errors` are public import roots. Everything else is internal.
This module also resolves `__version__` deterministically across installs.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version
from typing import Any as _Any

from . import errors as errors  # noqa: F401


def _version_from_resource() -> str | None:
    try:
        from importlib.resources import files

        return files(__package__).joinpath("VERSION").read_text(encoding="utf-8").strip()
    except (OSError, ModuleNotFoundError):
        return None


def _version_from_metadata() -> str | None:
    try:
        return _pkg_version("jitflags")
    except PackageNotFoundError:
        return None


__version__ = _version_from_resource() or _version_from_metadata() or "0+unknown"


_LAZY = {
    "Resolver": ("jitflags.engine.resolver", "Resolver"),
    "PassResult": ("jitflags.engine.resolver", "PassResult"),
    "ParameterStore": ("jitflags.engine.store", "ParameterStore"),
    "ParamSpec": ("jitflags.engine.types", "ParamSpec"),
    "STRICT": ("jitflags.engine.types", "STRICT"),
    "AUTO_REPAIR": ("jitflags.engine.types", "AUTO_REPAIR"),
    "Platform": ("jitflags.engine.platform", "Platform"),
    "CompilerConfig": ("jitflags.engine.platform", "CompilerConfig"),
    "platform_for": ("jitflags.engine.platform", "platform_for"),
    "build_compiler_specs": ("jitflags.compiler_flags", "build_compiler_specs"),
    "compiler_resolver": ("jitflags.compiler_flags", "compiler_resolver"),
    "load_settings": ("jitflags.io.config", "load_settings"),
}


def __getattr__(name: str) -> _Any:  # PEP 562 lazy exports to avoid import-time cycles
    target = _LAZY.get(name)
    if target is None:
        raise AttributeError(f"module 'jitflags' has no attribute {name!r}")
    from importlib import import_module

    value = getattr(import_module(target[0]), target[1])
    globals()[name] = value
    return value


__all__ = sorted(["__version__", "errors", *_LAZY])
