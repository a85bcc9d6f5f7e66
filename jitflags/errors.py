from __future__ import annotations

"""Typed error taxonomy (public).

Only `jitflags` and `jitflags.errors` are public import roots. Everything else is internal.
Constraint outcomes are values (see `jitflags.engine.types`), not exceptions; the classes
below cover setup, settings and CLI failures, plus `ConstraintError` for callers that
prefer a raised strict-mode failure.
"""

__all__ = [
    "JitFlagsError",
    "ConfigError",
    "RegistrationError",
    "ResolutionError",
    "ConstraintError",
    "CLIError",
    "format_error",
]


class JitFlagsError(Exception):
    """Base class for all typed, operator-facing errors in jitflags."""
    pass


class ConfigError(JitFlagsError):
    """Settings invalid: unknown keys or flags, wrong value type or width, unknown platform."""
    pass


class RegistrationError(JitFlagsError):
    """Parameter registration invalid: duplicate name, missing dependency, cycle."""
    pass


class ResolutionError(JitFlagsError):
    """A rule read a parameter it did not declare as a dependency."""
    pass


class ConstraintError(JitFlagsError):
    """A resolution pass ended with a violation.

    Carries the first failing parameter name and its diagnostic.
    """

    def __init__(self, name: str, detail: str):
        self.name = name
        self.detail = detail
        super().__init__(f"{name}: {detail}")


class CLIError(JitFlagsError):
    """Generic CLI failure wrapper for unexpected errors in CLI code paths."""
    pass


def format_error(e: BaseException) -> str:
    """Return a short, uniform operator-facing message like 'ConfigError: detail'."""
    name = e.__class__.__name__
    msg = str(e).strip()
    return f"{name}: {msg}" if msg else name


# Keep star-export order deterministic for tests and tooling
__all__ = sorted(__all__)
