from __future__ import annotations

from typing import Any, Dict, Iterable

import pytest

from jitflags.engine.platform import CompilerConfig, platform_for
from jitflags.engine.rules import (
    AtLeast,
    AtMost,
    BoundedRange,
    Chain,
    DigitPacked,
    MultipleOf,
    PairedToggle,
    PowerOfTwo,
    ResetToDefaultWhen,
    RuleContext,
)
from jitflags.engine.store import ParameterStore
from jitflags.engine.types import (
    AUTO_REPAIR,
    STRICT,
    Accept,
    Normalized,
    ParamSpec,
    Repaired,
    Violation,
)
from jitflags.errors import ResolutionError


def _store(values: Dict[str, Any], explicit: Iterable[str] = ()) -> ParameterStore:
    specs = [ParamSpec(n, "bool" if isinstance(v, bool) else "intx", v) for n, v in values.items()]
    store = ParameterStore(specs)
    for n in explicit:
        store.set(n, values[n])
    return store


def _ctx(store: ParameterStore, deps: Iterable[str] = (), name: str = "X") -> RuleContext:
    return RuleContext(name, store, deps, platform_for("x86_64"), CompilerConfig())


def _eval(rule, value, mode, **others):
    store = _store({"X": value, **others})
    return rule.evaluate(value, _ctx(store, others), mode)


# ---- repair-then-accept ----------------------------------------------------

_fudge = BoundedRange(
    lambda ctx: ctx.get("R") * 2 // 100,
    lambda ctx: ctx.get("R") * 40 // 100,
    reads=("R",),
)

REPAIR_CASES = [
    (BoundedRange(0, 10), -5, {}, 0),
    (BoundedRange(0, 10), 50, {}, 10),
    (MultipleOf(8), 10, {}, 8),
    (MultipleOf(8), 3, {}, 8),
    (MultipleOf(8), -3, {}, 8),
    (PowerOfTwo(), 100, {}, 64),
    (PowerOfTwo(), 0, {}, 1),
    (PowerOfTwo(), -7, {}, 1),
    (PowerOfTwo(minimum=16), 10, {}, 16),
    (PowerOfTwo(maximum=100), 200, {}, 64),
    (PowerOfTwo(allow_zero=True), -3, {}, 0),
    (AtMost("R"), 64, {"R": 32}, 32),
    (AtLeast("R"), 4, {"R": 16}, 16),
    (Chain(PowerOfTwo(), MultipleOf(4), AtMost("R")), 6, {"R": 32}, 4),
    (Chain(PowerOfTwo(), MultipleOf(4), AtMost("R")), 2, {"R": 32}, 4),
    (Chain(PowerOfTwo(), MultipleOf(4), AtMost("R")), 100, {"R": 32}, 32),
    (DigitPacked((2, 2, 2)), 239, {}, 222),
    (DigitPacked((2, 2, 2)), 1111, {}, 111),
    (_fudge, 2000, {"R": 1000}, 400),
]


@pytest.mark.parametrize("rule,value,others,expected", REPAIR_CASES)
def test_repaired_value_is_accepted_in_strict(rule, value, others, expected):
    store = _store({"X": value, **others})
    ctx = _ctx(store, others)
    out = rule.evaluate(value, ctx, AUTO_REPAIR)
    assert isinstance(out, Repaired)
    assert out.value == expected
    store.set("X", out.value)
    assert isinstance(rule.evaluate(out.value, ctx, STRICT), Accept)


@pytest.mark.parametrize("rule,value,others,_expected", REPAIR_CASES)
def test_strict_reports_violation_for_same_inputs(rule, value, others, _expected):
    assert isinstance(_eval(rule, value, STRICT, **others), Violation)


# ---- bounded range -----------------------------------------------------------


def test_bounded_range_messages():
    assert _eval(BoundedRange(0, 10), 50, STRICT).message == "X (50) must be between 0 and 10"
    assert _eval(BoundedRange(2, None), 1, STRICT).message == "X (1) must be at least 2"
    assert _eval(BoundedRange(None, 5), 9, STRICT).message == "X (9) must be at most 5"


def test_bounded_range_label_and_note():
    rule = BoundedRange(
        lambda ctx: ctx.get("P"), 1000, reads=("P",), lo_label="InterpreterProfilePercentage"
    )
    out = _eval(rule, 10, STRICT, P=33)
    assert out.message == "X (10) must be at least InterpreterProfilePercentage (33)"
    noted = BoundedRange(8, None, note="to align constants")
    assert _eval(noted, 4, STRICT).message == "X (4) must be at least 8 to align constants"


def test_not_repairable_rule_violates_in_both_modes():
    rule = BoundedRange(0, 4031, repairable=False)
    for mode in (STRICT, AUTO_REPAIR):
        out = _eval(rule, 5000, mode)
        assert isinstance(out, Violation) and out.kind == "OUT_OF_RANGE"


# ---- multiple-of / power-of-two ---------------------------------------------------


def test_multiple_of_only_checked_when_condition_holds():
    rule = MultipleOf(8, when=lambda ctx: ctx.get("S") == 3, reads=("S",), what="word size")
    assert isinstance(_eval(rule, 10, STRICT, S=1), Accept)
    out = _eval(rule, 10, STRICT, S=3)
    assert out.kind == "NOT_MULTIPLE_OF"
    assert out.message == "X (10) must be a multiple of 8 (word size)"


def test_power_of_two_kind_precedes_range():
    assert _eval(PowerOfTwo(minimum=16), 24, STRICT).kind == "NOT_POWER_OF_TWO"
    assert _eval(PowerOfTwo(minimum=16), 8, STRICT).kind == "OUT_OF_RANGE"
    assert isinstance(_eval(PowerOfTwo(allow_zero=True), 0, STRICT), Accept)
    assert _eval(PowerOfTwo(), 0, STRICT).kind == "NOT_POWER_OF_TWO"


# ---- cross-parameter / chain ----------------------------------------------------


def test_at_most_names_both_parameters():
    out = _eval(AtMost("CodeEntryAlignment"), 64, STRICT, CodeEntryAlignment=32)
    assert out.message == "X (64) must be less than or equal to CodeEntryAlignment (32)"


def test_chain_strict_returns_first_violation():
    rule = Chain(PowerOfTwo(), AtMost("R"))
    out = _eval(rule, 100, STRICT, R=32)
    assert out.kind == "NOT_POWER_OF_TWO"


def test_chain_repair_reports_first_problem_and_final_value():
    rule = Chain(PowerOfTwo(), AtMost("R"))
    out = _eval(rule, 100, AUTO_REPAIR, R=32)
    assert isinstance(out, Repaired)
    assert out.value == 32 and out.kind == "NOT_POWER_OF_TWO"


def test_chain_repair_that_does_not_settle_is_a_violation():
    # 5 -> 4 (power of two) -> 6 (multiple of 6), which is no longer a power of two
    rule = Chain(PowerOfTwo(), MultipleOf(6))
    out = _eval(rule, 5, AUTO_REPAIR)
    assert isinstance(out, Violation)
    assert out.kind == "NOT_POWER_OF_TWO"
    assert "X (6) must be a power of two" in out.message
    assert isinstance(_eval(rule, 5, STRICT), Violation)


def test_chain_repair_accepted_in_strict_when_members_agree():
    rule = Chain(PowerOfTwo(), MultipleOf(4), AtMost("R"))
    out = _eval(rule, 6, AUTO_REPAIR, R=32)
    assert isinstance(out, Repaired) and out.value == 4
    assert isinstance(_eval(rule, out.value, STRICT, R=32), Accept)


def test_chain_with_unrepairable_member_never_repairs():
    rule = Chain(AtLeast("R", repairable=False), BoundedRange(8, None))
    assert not rule.repairable
    out = _eval(rule, 4, AUTO_REPAIR, R=16)
    assert isinstance(out, Violation)


def test_chain_reads_union_in_order():
    rule = Chain(AtLeast("A"), BoundedRange(8, None), AtLeast("B"), AtMost("A"))
    assert rule.reads() == ("A", "B")


# ---- digit-packed -------------------------------------------------------------


def test_digit_packed_position_and_excess():
    out = _eval(DigitPacked((2, 2, 2)), 239, STRICT)
    assert out.kind == "DIGIT_OUT_OF_RANGE" and out.position == 0
    assert out.message == "Invalid value (239) in X at position 0"
    out = _eval(DigitPacked((1, 1)), 110, STRICT)
    assert out.kind == "TOO_MANY_DIGITS" and out.position is None


# ---- normalization --------------------------------------------------------------


def _toggle(values, explicit, mode=STRICT):
    store = _store(values, explicit)
    return PairedToggle("S").evaluate(values["X"], _ctx(store, ("S",)), mode)


@pytest.mark.parametrize("mode", [STRICT, AUTO_REPAIR])
def test_toggle_explicit_switch_sets_count(mode):
    out = _toggle({"S": True, "X": 0}, ["S"], mode)
    assert isinstance(out, Normalized)
    assert dict(out.changes) == {"X": 1}
    assert "at least 1" in out.message


def test_toggle_explicit_count_sets_switch():
    out = _toggle({"S": False, "X": 1000}, ["X"])
    assert dict(out.changes) == {"S": True}
    assert out.message


def test_toggle_switch_wins_when_both_explicit():
    out = _toggle({"S": False, "X": 5}, ["S", "X"])
    assert dict(out.changes) == {"X": 0}


def test_toggle_silent_when_both_default_or_consistent():
    out = _toggle({"S": True, "X": 0}, [])
    assert not out.changes and out.message is None
    out = _toggle({"S": True, "X": 10}, ["S", "X"])
    assert not out.changes and out.message is None


def test_reset_to_default_when_enabled():
    rule = ResetToDefaultWhen("E", 64)
    out = _eval(rule, 100, STRICT, E=True)
    assert dict(out.changes) == {"X": 64}
    assert out.message == "X (100) must be a power of 2, resetting it to 64"
    assert not _eval(rule, 100, AUTO_REPAIR, E=False).changes
    assert not _eval(rule, 128, STRICT, E=True).changes


# ---- context scoping -------------------------------------------------------------


def test_context_rejects_undeclared_reads():
    store = _store({"X": 1, "A": 2, "B": 3})
    ctx = _ctx(store, ("A",))
    assert ctx.get("A") == 2
    assert ctx.get("X") == 1
    with pytest.raises(ResolutionError):
        ctx.get("B")
    with pytest.raises(ResolutionError):
        ctx.is_default("B")
