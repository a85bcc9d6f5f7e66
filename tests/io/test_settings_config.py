from __future__ import annotations

import pytest

from jitflags.engine.types import AUTO_REPAIR, STRICT
from jitflags.errors import ConfigError
from jitflags.io.config import (
    Settings,
    load_settings,
    settings_from_dict,
    validate_settings,
    validate_settings_api,
)


def _expect_valid(data):
    ok, errs, s = validate_settings_api(data)
    assert ok, errs
    assert isinstance(s, Settings)
    return s


def _expect_error(data, needle):
    ok, errs, s = validate_settings_api(data)
    assert not ok and s is None
    joined = "\n".join(errs)
    assert needle in joined, joined
    return errs


def test_defaults_without_file():
    s = load_settings(None)
    assert s.platform == "x86_64" and s.mode == STRICT and s.verbose is True
    assert s.flags == {}
    assert s.compiler.min_compiler_threads() == 2


def test_missing_file_falls_back_to_defaults(tmp_path):
    s = load_settings(str(tmp_path / "nope.yaml"))
    assert s == Settings()


def test_load_full_file(tmp_path):
    p = tmp_path / "jitflags.yaml"
    p.write_text(
        "platform: aarch64\n"
        "compiler: {tiered: false, has_c2: false}\n"
        "mode: auto_repair\n"
        "verbose: false\n"
        "flags:\n"
        "  CICompilerCount: 3\n"
        "  ProfileInterpreter: false\n",
        encoding="utf-8",
    )
    s = load_settings(str(p))
    assert s.platform == "aarch64" and not s.has_c2
    assert s.compiler.min_compiler_threads() == 1
    assert s.mode == AUTO_REPAIR and s.verbose is False
    assert s.flags == {"CICompilerCount": 3, "ProfileInterpreter": False}
    assert not s.platform_obj().has_c2


def test_invalid_yaml_is_config_error(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("flags: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(p))


def test_non_mapping_document(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(p))


def test_unknown_top_level_key_suggests():
    _expect_error({"mdoe": "strict"}, "did you mean 'mode'")


def test_unknown_flag_suggests():
    _expect_error({"flags": {"CICompilerCont": 2}}, "flags.CICompilerCont unknown key (did you mean 'CICompilerCount'?)")


def test_flag_kind_and_width_checked():
    _expect_error({"flags": {"ProfileInterpreter": 1}}, "flags.ProfileInterpreter expected bool")
    _expect_error({"flags": {"AVX3Threshold": 2**31}}, "does not fit int")
    _expect_error({"flags": {"TypeProfileLevel": -1}}, "does not fit uint")


def test_flag_names_depend_on_build():
    _expect_valid({"platform": "x86_64", "flags": {"UseRTMLocking": True}})
    _expect_error({"platform": "aarch64", "flags": {"UseRTMLocking": True}}, "flags.UseRTMLocking unknown key")


def test_collects_every_problem():
    errs = _expect_error(
        {"platform": "vax", "mode": "lenient", "verbose": "yes", "compiler": {"tiered": 1}},
        "platform must be one of",
    )
    assert len(errs) == 4


def test_validate_settings_raises_typed_error():
    with pytest.raises(ConfigError) as ei:
        validate_settings({"mode": "lenient"})
    assert "mode must be one of" in str(ei.value)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("JITFLAGS_VERIFY_FLAG_CONSTRAINTS", "true")
    assert settings_from_dict({}).mode == AUTO_REPAIR
    monkeypatch.setenv("JITFLAGS_MODE", "strict")
    assert settings_from_dict({}).mode == STRICT  # explicit mode wins
    monkeypatch.setenv("JITFLAGS_PLATFORM", "ppc64")
    assert settings_from_dict({"platform": "x86_64"}).platform == "ppc64"


def test_env_overrides_ignore_garbage(monkeypatch):
    monkeypatch.setenv("JITFLAGS_MODE", "sometimes")
    monkeypatch.setenv("JITFLAGS_PLATFORM", "vax")
    s = settings_from_dict({"mode": "auto_repair"})
    assert s.mode == AUTO_REPAIR and s.platform == "x86_64"
