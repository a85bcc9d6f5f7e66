from __future__ import annotations

import pytest

from jitflags.engine.intrinsics import (
    IntrinsicCatalog,
    IntrinsicList,
    default_catalog,
    first_unrecognized,
    split_tokens,
)
from jitflags.engine.platform import CompilerConfig, platform_for
from jitflags.engine.rules import RuleContext
from jitflags.engine.store import ParameterStore
from jitflags.engine.types import AUTO_REPAIR, STRICT, Accept, ParamSpec, Violation
from jitflags.errors import ConfigError

CAT = IntrinsicCatalog(["_hashCode", "_dsin", "_arraycopy"])


def test_default_catalog_ships_known_ids():
    cat = default_catalog()
    assert len(cat) > 10
    assert cat.contains("_hashCode")
    assert "_dsin" in cat
    assert not cat.contains("hashCode")


def test_split_tokens_commas_newlines_whitespace():
    assert split_tokens("a, b\n\nc,") == ["a", "b", "c"]
    assert split_tokens("") == []
    assert split_tokens(" , ,\n") == []


def test_first_unrecognized_bare_names():
    assert first_unrecognized("_hashCode,_dsin", CAT, markers=False) is None
    assert first_unrecognized("_hashCode,_bogus,_nope", CAT, markers=False) == ("_bogus", "unknown intrinsic")


def test_first_unrecognized_requires_markers():
    assert first_unrecognized("+_dsin,\n -_hashCode", CAT, markers=True) is None
    assert first_unrecognized("+_dsin,_hashCode", CAT, markers=True) == ("_hashCode", "missing +/- marker")
    assert first_unrecognized("-_bogus", CAT, markers=True) == ("-_bogus", "unknown intrinsic")


@pytest.mark.parametrize("mode", [STRICT, AUTO_REPAIR])
def test_list_rule_has_no_repair_path(mode):
    store = ParameterStore([ParamSpec("DisableIntrinsic", "ccstrlist", "")])
    ctx = RuleContext("DisableIntrinsic", store, (), platform_for("x86_64"), CompilerConfig())
    rule = IntrinsicList(CAT, markers=False)
    assert isinstance(rule.evaluate("_dsin", ctx, mode), Accept)
    out = rule.evaluate("_dsin,_bogus", ctx, mode)
    assert isinstance(out, Violation)
    assert out.kind == "UNRECOGNIZED_TOKEN"
    assert "_bogus" in out.message and "DisableIntrinsic" in out.message


def test_catalog_from_yaml_shapes():
    cat = IntrinsicCatalog.from_yaml("intrinsics:\n  math: [_dsin, _dcos]\n")
    assert sorted(cat) == ["_dcos", "_dsin"]
    flat = IntrinsicCatalog.from_yaml("intrinsics: [_min, _max]\n")
    assert len(flat) == 2


@pytest.mark.parametrize("text", ["", "other: 1\n", "intrinsics: 3\n", "intrinsics:\n  math: _dsin\n"])
def test_catalog_rejects_bad_shapes(text):
    with pytest.raises(ConfigError):
        IntrinsicCatalog.from_yaml(text)
