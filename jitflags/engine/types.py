from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

import numpy as np

# ---- Modes & kinds ----

Mode = Literal["strict", "auto_repair"]
STRICT: Mode = "strict"
AUTO_REPAIR: Mode = "auto_repair"
MODES = (STRICT, AUTO_REPAIR)

ParamKind = Literal["int", "uint", "intx", "uintx", "bool", "ccstrlist"]

ViolationKind = Literal[
    "OUT_OF_RANGE",
    "NOT_POWER_OF_TWO",
    "NOT_MULTIPLE_OF",
    "DEPENDENCY_INVALID",
    "UNRECOGNIZED_TOKEN",
    "DIGIT_OUT_OF_RANGE",
    "TOO_MANY_DIGITS",
]
NORMALIZED_KIND = "NORMALIZED"

Severity = Literal["info", "error"]

# Integer kinds map onto fixed machine widths.
_WIDTHS = {
    "int": np.int32,
    "uint": np.uint32,
    "intx": np.int64,
    "uintx": np.uint64,
}

INT_MAX = int(np.iinfo(np.int32).max)
MAX_INTX = int(np.iinfo(np.int64).max)


def integer_limits(kind: str) -> Tuple[int, int]:
    """Return the inclusive (min, max) representable by an integer kind."""
    info = np.iinfo(_WIDTHS[kind])
    return int(info.min), int(info.max)


def is_integer_kind(kind: str) -> bool:
    return kind in _WIDTHS


def check_value(kind: str, value: Any) -> Optional[str]:
    """Return a reason string when `value` does not fit `kind`, else None."""
    if kind == "bool":
        return None if isinstance(value, bool) else f"expected bool, got {type(value).__name__}"
    if kind == "ccstrlist":
        return None if isinstance(value, str) else f"expected string, got {type(value).__name__}"
    if kind not in _WIDTHS:
        return f"unknown kind {kind!r}"
    # bool is an int subclass; a flag typed as integer never accepts it
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        return f"expected {kind}, got {type(value).__name__}"
    lo, hi = integer_limits(kind)
    if not (lo <= int(value) <= hi):
        return f"{int(value)} does not fit {kind} [{lo}, {hi}]"
    return None


# ---- Outcomes ----


@dataclass(frozen=True)
class Accept:
    pass


ACCEPT = Accept()


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    position: Optional[int] = None  # digit position for packed values


@dataclass(frozen=True)
class Repaired:
    value: Any
    kind: ViolationKind
    message: str  # what was wrong with the original value


@dataclass(frozen=True)
class Normalized:
    """Consistency rewrite applied regardless of mode.

    `changes` maps parameter name -> new value (empty when nothing changed).
    `message` is None when the rewrite should stay silent.
    """

    changes: Mapping[str, Any] = field(default_factory=dict)
    message: Optional[str] = None


Outcome = Union[Accept, Violation, Repaired, Normalized]


@dataclass(frozen=True)
class ParamSpec:
    """Static registration of one parameter.

    `depends_on` lists parameters the rule reads; `governs` lists partners a
    normalization rule may rewrite alongside this parameter.
    """

    name: str
    kind: ParamKind
    default: Any
    rule: Any = None  # engine.rules.Rule, or None for input-only parameters
    depends_on: Tuple[str, ...] = ()
    governs: Tuple[str, ...] = ()
    manageable: bool = False
    doc: str = ""


def outcome_label(outcome: Outcome) -> str:
    if isinstance(outcome, Violation):
        return "violation"
    if isinstance(outcome, Repaired):
        return "repaired"
    if isinstance(outcome, Normalized):
        return "normalized" if outcome.changes else "accept"
    return "accept"


def outcome_to_dict(outcome: Outcome) -> Dict[str, Any]:
    """Plain-dict view for JSON output and JSONL records."""
    d: Dict[str, Any] = {"outcome": outcome_label(outcome)}
    if isinstance(outcome, Violation):
        d["kind"] = outcome.kind
        d["message"] = outcome.message
        if outcome.position is not None:
            d["position"] = outcome.position
    elif isinstance(outcome, Repaired):
        d["kind"] = outcome.kind
        d["message"] = outcome.message
        d["value"] = outcome.value
    elif isinstance(outcome, Normalized) and outcome.changes:
        d["kind"] = NORMALIZED_KIND
        d["changes"] = dict(outcome.changes)
        if outcome.message:
            d["message"] = outcome.message
    return d


__all__ = [
    "Mode",
    "STRICT",
    "AUTO_REPAIR",
    "MODES",
    "ParamKind",
    "ViolationKind",
    "NORMALIZED_KIND",
    "Severity",
    "INT_MAX",
    "MAX_INTX",
    "integer_limits",
    "is_integer_kind",
    "check_value",
    "Accept",
    "ACCEPT",
    "Violation",
    "Repaired",
    "Normalized",
    "Outcome",
    "ParamSpec",
    "outcome_label",
    "outcome_to_dict",
]
