from __future__ import annotations

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, strategies as st, settings

from jitflags.engine.codec import DigitPack, decode_digits, encode_digits

MAXIMA = st.lists(st.integers(min_value=0, max_value=9), min_size=1, max_size=6)


@st.composite
def packed_digits(draw):
    maxima = tuple(draw(MAXIMA))
    digits = tuple(draw(st.integers(min_value=0, max_value=hi)) for hi in maxima)
    return DigitPack(maxima), digits


@settings(max_examples=200, deadline=None)
@given(case=packed_digits())
def test_round_trip_identity_for_in_bounds_digits(case):
    pack, digits = case
    value = encode_digits(digits)
    assert pack.check(value) is None
    got, rest = decode_digits(value, pack.count)
    assert got == digits and rest == 0
    assert pack.repair(value) == value


@settings(max_examples=200, deadline=None)
@given(maxima=MAXIMA, value=st.integers(min_value=0, max_value=10**12))
def test_repair_lands_on_an_accepted_value(maxima, value):
    pack = DigitPack(tuple(maxima))
    fixed = pack.repair(value)
    assert pack.check(fixed) is None
    assert pack.repair(fixed) == fixed
    digits, _ = decode_digits(value, pack.count)
    fixed_digits, _ = decode_digits(fixed, pack.count)
    assert fixed_digits == tuple(min(d, hi) for d, hi in zip(digits, maxima))
