# -----------------------------------------------------------------------------
# Constraint rules.
#
# A rule is a pure function of (value, ctx, mode) -> Outcome:
#   • `ctx` is a RuleContext: read-only, scoped to the parameter's declared
#     dependencies, plus the platform and compiler configuration.
#   • strict mode reports Violation; auto_repair mode reports Repaired with a
#     value that the same rule accepts under strict mode.
#   • Rules marked repairable=False report Violation in both modes.
#   • Normalization rules return Normalized in both modes and never fail.
#
# Rules never write to the store; the resolver applies their results.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Tuple, Union

from ..errors import ResolutionError
from .codec import DigitPack
from .numeric import is_power_of_2, round_down_power_of_2, trunc_rem
from .store import StoreLike
from .types import (
    ACCEPT,
    AUTO_REPAIR,
    STRICT,
    Mode,
    Normalized,
    Outcome,
    Repaired,
    Violation,
    ViolationKind,
)

__all__ = [
    "RuleContext",
    "Rule",
    "BoundedRange",
    "MultipleOf",
    "PowerOfTwo",
    "AtMost",
    "AtLeast",
    "Chain",
    "DigitPacked",
    "PairedToggle",
    "ResetToDefaultWhen",
]

Bound = Union[int, Callable[["RuleContext"], Optional[int]], None]
Label = Union[str, Callable[["RuleContext"], str], None]


class RuleContext:
    """Read-only view handed to a rule while it evaluates one parameter."""

    def __init__(self, name: str, store: StoreLike, allowed: Iterable[str], platform: Any, compiler: Any):
        self.name = name
        self._store = store
        self._allowed = frozenset(allowed) | {name}
        self.platform = platform
        self.compiler = compiler

    def _check(self, dep: str) -> None:
        if dep not in self._allowed:
            raise ResolutionError(
                f"{self.name}: rule read {dep!r}, which is not a declared dependency"
            )

    def get(self, dep: str) -> Any:
        self._check(dep)
        return self._store.get(dep)

    def is_default(self, dep: str) -> bool:
        self._check(dep)
        return self._store.is_default(dep)


def _resolve(b: Any, ctx: RuleContext) -> Any:
    return b(ctx) if callable(b) else b


class Rule:
    repairable: bool = True

    def reads(self) -> Tuple[str, ...]:
        """Parameters this rule reads besides its own; each must be a declared dependency."""
        return ()

    def governs(self) -> Tuple[str, ...]:
        """Partners a normalization rule may rewrite."""
        return ()

    def describe(self) -> str:
        return type(self).__name__

    def evaluate(self, value: Any, ctx: RuleContext, mode: Mode) -> Outcome:
        raise NotImplementedError

    def _reject(
        self,
        mode: Mode,
        kind: ViolationKind,
        message: str,
        fixed: Any,
        position: Optional[int] = None,
    ) -> Outcome:
        if mode == AUTO_REPAIR and self.repairable:
            return Repaired(fixed, kind, message)
        return Violation(kind, message, position)


# ------------------------------- Numeric ------------------------------------


class BoundedRange(Rule):
    """lo <= value <= hi; either bound may be None (open) or derived from ctx."""

    def __init__(
        self,
        lo: Bound = None,
        hi: Bound = None,
        *,
        repairable: bool = True,
        reads: Tuple[str, ...] = (),
        lo_label: Label = None,
        hi_label: Label = None,
        note: Label = None,
    ):
        self.lo = lo
        self.hi = hi
        self.repairable = repairable
        self._reads = tuple(reads)
        self.lo_label = lo_label
        self.hi_label = hi_label
        self.note = note

    def reads(self) -> Tuple[str, ...]:
        return self._reads

    def describe(self) -> str:
        lo = "?" if callable(self.lo) else self.lo
        hi = "?" if callable(self.hi) else self.hi
        return f"range[{'-inf' if lo is None else lo}, {'+inf' if hi is None else hi}]"

    def bounds(self, ctx: RuleContext) -> Tuple[Optional[int], Optional[int]]:
        return _resolve(self.lo, ctx), _resolve(self.hi, ctx)

    def _message(self, ctx: RuleContext, value: int, lo: Optional[int], hi: Optional[int], below: bool) -> str:
        name = ctx.name
        lo_label = _resolve(self.lo_label, ctx)
        hi_label = _resolve(self.hi_label, ctx)
        if below and lo_label:
            msg = f"{name} ({value}) must be at least {lo_label} ({lo})"
        elif not below and hi_label:
            msg = f"{name} ({value}) must be at most {hi_label} ({hi})"
        elif lo is not None and hi is not None:
            msg = f"{name} ({value}) must be between {lo} and {hi}"
        elif lo is not None:
            msg = f"{name} ({value}) must be at least {lo}"
        else:
            msg = f"{name} ({value}) must be at most {hi}"
        note = _resolve(self.note, ctx)
        return f"{msg} {note}" if note else msg

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        lo, hi = self.bounds(ctx)
        if lo is not None and value < lo:
            return self._reject(mode, "OUT_OF_RANGE", self._message(ctx, value, lo, hi, True), lo)
        if hi is not None and value > hi:
            return self._reject(mode, "OUT_OF_RANGE", self._message(ctx, value, lo, hi, False), hi)
        return ACCEPT


class MultipleOf(Rule):
    """value % n == 0, optionally only when `when(ctx)` holds. Repair never yields 0."""

    def __init__(
        self,
        n: Bound,
        *,
        when: Optional[Callable[[RuleContext], bool]] = None,
        repairable: bool = True,
        reads: Tuple[str, ...] = (),
        what: str = "",
    ):
        self.n = n
        self.when = when
        self.repairable = repairable
        self._reads = tuple(reads)
        self.what = what

    def reads(self) -> Tuple[str, ...]:
        return self._reads

    def describe(self) -> str:
        n = "?" if callable(self.n) else self.n
        return f"multiple_of({n})" + (" when ..." if self.when else "")

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        if self.when is not None and not self.when(ctx):
            return ACCEPT
        n = int(_resolve(self.n, ctx))
        rem = trunc_rem(value, n)
        if rem == 0:
            return ACCEPT
        fixed = value - rem
        if fixed == 0:
            fixed = n
        what = f" ({self.what})" if self.what else ""
        return self._reject(
            mode, "NOT_MULTIPLE_OF", f"{ctx.name} ({value}) must be a multiple of {n}{what}", fixed
        )


def _next_power_of_2(x: int) -> int:
    return 1 if x <= 1 else 1 << (x - 1).bit_length()


class PowerOfTwo(Rule):
    """
    value is a power of two (or zero when allowed), within [minimum, maximum].

    Repair: round down to a power of two, clamp under the maximum, then raise
    to the minimum if the rounding undercut it. The minimum always wins.
    """

    def __init__(
        self,
        *,
        allow_zero: bool = False,
        minimum: Bound = None,
        maximum: Bound = None,
        repairable: bool = True,
        reads: Tuple[str, ...] = (),
    ):
        self.allow_zero = allow_zero
        self.minimum = minimum
        self.maximum = maximum
        self.repairable = repairable
        self._reads = tuple(reads)

    def reads(self) -> Tuple[str, ...]:
        return self._reads

    def describe(self) -> str:
        parts = ["power_of_two" + ("|0" if self.allow_zero else "")]
        if self.minimum is not None:
            parts.append(f">= {'?' if callable(self.minimum) else self.minimum}")
        if self.maximum is not None:
            parts.append(f"<= {'?' if callable(self.maximum) else self.maximum}")
        return " ".join(parts)

    def repair_value(self, value: int, lo: Optional[int], hi: Optional[int]) -> int:
        if value > 0:
            v = round_down_power_of_2(value)
        elif self.allow_zero:
            v = 0
        else:
            v = 1
        if hi is not None and v > hi:
            v = round_down_power_of_2(hi) if hi > 0 else 0
        if lo is not None and v < lo:
            v = _next_power_of_2(lo)
        return v

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        lo = _resolve(self.minimum, ctx)
        hi = _resolve(self.maximum, ctx)
        name = ctx.name
        if not (is_power_of_2(value) or (self.allow_zero and value == 0)):
            expect = "0 or a power of two" if self.allow_zero else "a power of two"
            return self._reject(
                mode, "NOT_POWER_OF_TWO", f"{name} ({value}) must be {expect}",
                self.repair_value(value, lo, hi),
            )
        if lo is not None and value < lo:
            return self._reject(
                mode, "OUT_OF_RANGE", f"{name} ({value}) must be greater than or equal to {lo}",
                self.repair_value(value, lo, hi),
            )
        if hi is not None and value > hi:
            return self._reject(
                mode, "OUT_OF_RANGE", f"{name} ({value}) must be less than or equal to {hi}",
                self.repair_value(value, lo, hi),
            )
        return ACCEPT


# ---------------------------- Cross-parameter --------------------------------


class AtMost(Rule):
    """value <= ref; repair snaps to the referenced value."""

    def __init__(self, ref: str, *, repairable: bool = True, why: str = ""):
        self.ref = ref
        self.repairable = repairable
        self.why = why

    def reads(self) -> Tuple[str, ...]:
        return (self.ref,)

    def describe(self) -> str:
        return f"<= {self.ref}"

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        other = ctx.get(self.ref)
        if value <= other:
            return ACCEPT
        why = f" {self.why}" if self.why else ""
        msg = f"{ctx.name} ({value}) must be less than or equal to {self.ref} ({other}){why}"
        return self._reject(mode, "OUT_OF_RANGE", msg, other)


class AtLeast(Rule):
    """value >= ref; repair snaps to the referenced value."""

    def __init__(self, ref: str, *, repairable: bool = True, why: str = ""):
        self.ref = ref
        self.repairable = repairable
        self.why = why

    def reads(self) -> Tuple[str, ...]:
        return (self.ref,)

    def describe(self) -> str:
        return f">= {self.ref}"

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        other = ctx.get(self.ref)
        if value >= other:
            return ACCEPT
        why = f" {self.why}" if self.why else ""
        msg = f"{ctx.name} ({value}) must be greater than or equal to {self.ref} ({other}){why}"
        return self._reject(mode, "OUT_OF_RANGE", msg, other)


class Chain(Rule):
    """
    Several constraints on one parameter, checked in order.

    Strict: the first violation wins. Repair: each repaired value feeds the
    next constraint; the outcome reports the first problem found and the final
    value. A later repair can undo an earlier one (5 -> 4 -> 6 under a power of
    two then a multiple of 6), so the final value is re-checked against every
    member and a chain that does not settle is a violation. A non-repairable
    member makes the whole chain violation-only.
    """

    def __init__(self, *rules: Rule):
        self.rules = tuple(rules)
        self.repairable = all(r.repairable for r in self.rules)

    def reads(self) -> Tuple[str, ...]:
        out: list[str] = []
        for r in self.rules:
            for dep in r.reads():
                if dep not in out:
                    out.append(dep)
        return tuple(out)

    def describe(self) -> str:
        return "; ".join(r.describe() for r in self.rules)

    def evaluate(self, value: Any, ctx: RuleContext, mode: Mode) -> Outcome:
        if mode != AUTO_REPAIR or not self.repairable:
            for r in self.rules:
                out = r.evaluate(value, ctx, STRICT)
                if isinstance(out, Violation):
                    return out
            return ACCEPT
        first: Optional[Repaired] = None
        cur = value
        for r in self.rules:
            out = r.evaluate(cur, ctx, AUTO_REPAIR)
            if isinstance(out, Violation):
                return out
            if isinstance(out, Repaired):
                if first is None:
                    first = out
                cur = out.value
        if first is None:
            return ACCEPT
        for r in self.rules:
            out = r.evaluate(cur, ctx, STRICT)
            if isinstance(out, Violation):
                return Violation(
                    first.kind,
                    f"{first.message}; repairs do not settle "
                    f"(repaired value {cur} fails: {out.message})",
                )
        return Repaired(cur, first.kind, first.message)


# ------------------------------ Digit-packed ---------------------------------


class DigitPacked(Rule):
    def __init__(self, maxima: Tuple[int, ...], *, repairable: bool = True):
        self.pack = DigitPack(tuple(maxima))
        self.repairable = repairable

    def describe(self) -> str:
        return f"digits{self.pack.maxima}"

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        problem = self.pack.check(value)
        if problem is None:
            return ACCEPT
        fixed = self.pack.repair(value)
        if problem.too_many_digits:
            msg = f"Invalid value ({value}) for {ctx.name}: at most {self.pack.count} digits"
            return self._reject(mode, "TOO_MANY_DIGITS", msg, fixed)
        msg = f"Invalid value ({value}) in {ctx.name} at position {problem.position}"
        return self._reject(mode, "DIGIT_OUT_OF_RANGE", msg, fixed, problem.position)


# ------------------------------ Normalization --------------------------------


class PairedToggle(Rule):
    """
    Keep a boolean switch and an iteration count consistent.

    Consistent means: switch on <=> count > 0. When they disagree, the side
    still at its default follows the side the caller set. When both were set
    the switch wins; when both are defaults nothing changes. Mode is ignored.
    """

    repairable = False

    def __init__(self, switch: str):
        self.switch = switch

    def reads(self) -> Tuple[str, ...]:
        return (self.switch,)

    def governs(self) -> Tuple[str, ...]:
        return (self.switch,)

    def describe(self) -> str:
        return f"consistent_with({self.switch})"

    def evaluate(self, value: int, ctx: RuleContext, mode: Mode) -> Outcome:
        enabled = bool(ctx.get(self.switch))
        if enabled == (value > 0):
            return Normalized()
        switch_default = ctx.is_default(self.switch)
        count_default = ctx.is_default(ctx.name)
        if switch_default and count_default:
            return Normalized()
        if not switch_default:
            if enabled:
                msg = (
                    f"When {self.switch} is enabled, {ctx.name} must be at least 1 "
                    f"(a safepoint every 1 iteration): setting it to 1"
                )
                return Normalized({ctx.name: 1}, msg)
            msg = f"Disabling {self.switch} implies {ctx.name} of 0: setting {ctx.name} to 0"
            return Normalized({ctx.name: 0}, msg)
        turn_on = value > 0
        msg = (
            f"{ctx.name} ({value}) implies {self.switch}={'true' if turn_on else 'false'}: "
            f"setting {self.switch} to {'true' if turn_on else 'false'}"
        )
        return Normalized({self.switch: turn_on}, msg)


class ResetToDefaultWhen(Rule):
    """While `enabled_by` is on, an invalid value is reset to `default`, in any mode."""

    repairable = False

    def __init__(
        self,
        enabled_by: str,
        default: Any,
        *,
        valid: Callable[[Any], bool] = is_power_of_2,
        expectation: str = "a power of 2",
    ):
        self.enabled_by = enabled_by
        self.default = default
        self.valid = valid
        self.expectation = expectation

    def reads(self) -> Tuple[str, ...]:
        return (self.enabled_by,)

    def describe(self) -> str:
        return f"reset_to({self.default}) when {self.enabled_by}"

    def evaluate(self, value: Any, ctx: RuleContext, mode: Mode) -> Outcome:
        if not ctx.get(self.enabled_by) or self.valid(value):
            return Normalized()
        msg = f"{ctx.name} ({value}) must be {self.expectation}, resetting it to {self.default}"
        return Normalized({ctx.name: self.default}, msg)
