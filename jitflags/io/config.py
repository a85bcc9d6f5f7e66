from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging
import os

import yaml

from ..compiler_flags import build_compiler_specs
from ..errors import ConfigError
from ..engine.platform import FAMILIES, CompilerConfig, Platform, platform_for
from ..engine.types import AUTO_REPAIR, MODES, STRICT, Mode, check_value

logger = logging.getLogger(__name__)

__all__ = [
    "Settings",
    "load_settings",
    "validate_settings",
    "validate_settings_api",
    "settings_from_dict",
]

TOP_KEYS = {"platform", "compiler", "mode", "verbose", "flags"}
COMPILER_KEYS = {"has_compilers", "tiered", "interpreter_only", "has_c2"}


@dataclass
class Settings:
    platform: str = "x86_64"
    has_c2: bool = True
    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    mode: Mode = STRICT
    verbose: bool = True
    flags: Dict[str, Any] = field(default_factory=dict)

    def platform_obj(self) -> Platform:
        return platform_for(self.platform, has_c2=self.has_c2)


# ---- small helpers --------------------------------------------------------

def _parse_bool_env(v: str) -> bool:
    return str(v).strip().lower() in {"1", "true", "yes", "on"}

def _lev(a: str, b: str) -> int:
    """Tiny Levenshtein distance (edit distance) for did-you-mean suggestions."""
    la, lb = len(a), len(b)
    dp = list(range(lb + 1))
    for i, ca in enumerate(a, 1):
        prev = dp[0]
        dp[0] = i
        for j, cb in enumerate(b, 1):
            ins = dp[j] + 1
            dele = dp[j - 1] + 1
            sub = prev + (0 if ca == cb else 1)
            prev, dp[j] = dp[j], min(ins, dele, sub)
    return dp[-1]

def _suggest_key(bad: str, allowed: set[str]) -> str | None:
    """Return closest allowed key within distance <=2, else None."""
    best_key, best_dist = None, 99
    for k in sorted(allowed):
        d = _lev(bad, k)
        if d < best_dist:
            best_key, best_dist = k, d
    return best_key if best_dist <= 2 else None

def _err(errors: List[str], path: str, msg: str) -> None:
    errors.append(f"{path} {msg}")

def _unknown(errors: List[str], path: str, key: str, allowed: set[str]) -> None:
    hint = _suggest_key(key, allowed)
    _err(errors, path, "unknown key" + (f" (did you mean '{hint}'?)" if hint else ""))


def _apply_env_overrides(s: Settings) -> Settings:
    """
    Merge environment overrides into loaded settings (no effect if env vars absent).
    Supported:
      - JITFLAGS_VERIFY_FLAG_CONSTRAINTS=true|false -> mode auto_repair|strict
      - JITFLAGS_MODE=strict|auto_repair           -> mode (wins over the above)
      - JITFLAGS_PLATFORM=<family>                 -> platform
    Unrecognized values are ignored with a warning.
    """
    verify = os.getenv("JITFLAGS_VERIFY_FLAG_CONSTRAINTS")
    if verify is not None:
        s.mode = AUTO_REPAIR if _parse_bool_env(verify) else STRICT
    mode = os.getenv("JITFLAGS_MODE")
    if mode:
        mv = mode.strip().lower()
        if mv in MODES:
            s.mode = mv  # type: ignore[assignment]
        else:
            logger.warning("ignoring JITFLAGS_MODE=%r (expected one of %s)", mode, ", ".join(MODES))
    fam = os.getenv("JITFLAGS_PLATFORM")
    if fam:
        fv = fam.strip().lower()
        if fv in FAMILIES:
            s.platform = fv
        else:
            logger.warning("ignoring JITFLAGS_PLATFORM=%r (unknown family)", fam)
    return s


# ---- validation -----------------------------------------------------------

def _flag_kinds(platform: str, has_c2: bool, compiler: CompilerConfig) -> Dict[str, str]:
    specs = build_compiler_specs(platform_for(platform, has_c2=has_c2), compiler)
    return {s.name: s.kind for s in specs}


def validate_settings_api(data: Any) -> Tuple[bool, List[str], Optional[Settings]]:
    """Validate a raw settings mapping. Returns (ok, errors, settings_or_None)."""
    errors: List[str] = []
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return False, ["settings must be a mapping"], None

    for k in data:
        if k not in TOP_KEYS:
            _unknown(errors, str(k), str(k), TOP_KEYS)

    s = Settings()

    fam = data.get("platform", s.platform)
    if not isinstance(fam, str) or fam not in FAMILIES:
        _err(errors, "platform", f"must be one of {', '.join(FAMILIES)} (got {fam!r})")
    else:
        s.platform = fam

    comp = data.get("compiler", {})
    if comp is None:
        comp = {}
    if not isinstance(comp, dict):
        _err(errors, "compiler", "must be a mapping")
        comp = {}
    ckw: Dict[str, bool] = {}
    for k, v in comp.items():
        if k not in COMPILER_KEYS:
            _unknown(errors, f"compiler.{k}", str(k), COMPILER_KEYS)
        elif not isinstance(v, bool):
            _err(errors, f"compiler.{k}", f"must be a bool (got {v!r})")
        elif k == "has_c2":
            s.has_c2 = v
        else:
            ckw[k] = v
    s.compiler = CompilerConfig(**ckw)

    mode = data.get("mode", s.mode)
    if mode not in MODES:
        _err(errors, "mode", f"must be one of {', '.join(MODES)} (got {mode!r})")
    else:
        s.mode = mode

    verbose = data.get("verbose", s.verbose)
    if not isinstance(verbose, bool):
        _err(errors, "verbose", f"must be a bool (got {verbose!r})")
    else:
        s.verbose = verbose

    flags = data.get("flags", {})
    if flags is None:
        flags = {}
    if not isinstance(flags, dict):
        _err(errors, "flags", "must be a mapping of flag name to value")
        flags = {}
    if flags and s.platform in FAMILIES:
        kinds = _flag_kinds(s.platform, s.has_c2, s.compiler)
        for name, value in flags.items():
            name = str(name)
            if name not in kinds:
                _unknown(errors, f"flags.{name}", name, set(kinds))
                continue
            problem = check_value(kinds[name], value)
            if problem is not None:
                _err(errors, f"flags.{name}", problem)
    s.flags = {str(k): v for k, v in flags.items()}

    if errors:
        return False, errors, None
    return True, [], s


def validate_settings(data: Any) -> Settings:
    """Raise ConfigError listing every problem; otherwise return Settings."""
    ok, errs, s = validate_settings_api(data)
    if not ok or s is None:
        raise ConfigError("invalid settings:\n  " + "\n  ".join(errs))
    return s


def settings_from_dict(data: Any) -> Settings:
    return _apply_env_overrides(validate_settings(data))


# ---- loader ---------------------------------------------------------------

def load_settings(path: str | None = None) -> Settings:
    """
    Load YAML settings if available; otherwise return defaults.
    Behavior:
      * Recognized top-level keys: platform, compiler, mode, verbose, flags.
      * Unknown keys and unknown flag names raise ConfigError with a did-you-mean hint.
      * Environment overrides are applied last (see _apply_env_overrides).
    """
    if not path:
        return _apply_env_overrides(Settings())
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug("settings file %s not found; using defaults", path)
        return _apply_env_overrides(Settings())
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: not valid YAML ({e})") from e
    return settings_from_dict(data if data is not None else {})
