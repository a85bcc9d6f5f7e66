# tests/conftest.py
from __future__ import annotations

import pytest

from jitflags.compiler_flags import compiler_resolver
from jitflags.engine.diagnostics import CollectingSink
from jitflags.engine.platform import CompilerConfig, platform_for

_ENV_VARS = (
    "JITFLAGS_CONFIG",
    "JITFLAGS_MODE",
    "JITFLAGS_PLATFORM",
    "JITFLAGS_VERIFY_FLAG_CONSTRAINTS",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Start every test without settings overrides and with logs under tmp_path."""
    for k in _ENV_VARS:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("JITFLAGS_LOG_DIR", str(tmp_path / "logs"))
    yield


@pytest.fixture
def x86():
    return platform_for("x86_64")


@pytest.fixture
def tiered():
    return CompilerConfig()


@pytest.fixture
def resolver(x86, tiered):
    return compiler_resolver(x86, tiered)


@pytest.fixture
def sink():
    return CollectingSink()
