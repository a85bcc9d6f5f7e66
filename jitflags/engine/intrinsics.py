"""
Intrinsic catalog and the token-list validator for intrinsic control flags.

Two flag shapes share the validator:
  • DisableIntrinsic: bare names, e.g. "_hashCode,_dsin"
  • ControlIntrinsic: every token carries +/-, e.g. "+_dsin,-_hashCode"

Tokens are split on ',' and newlines (repeated command-line occurrences are
joined with newlines), stripped, and empty tokens are skipped. There is no
repair path: a list either passes or names its first bad token.
"""
from __future__ import annotations

import logging
from importlib.resources import files
from typing import Any, Iterable, Iterator, List, Optional, Tuple

import yaml

from ..errors import ConfigError
from .rules import Rule, RuleContext
from .types import ACCEPT, Mode, Outcome, Violation

logger = logging.getLogger(__name__)

__all__ = [
    "IntrinsicCatalog",
    "default_catalog",
    "split_tokens",
    "first_unrecognized",
    "IntrinsicList",
]

_MARKERS = ("+", "-")


class IntrinsicCatalog:
    """Fixed set of recognized intrinsic identifiers."""

    def __init__(self, ids: Iterable[str]):
        self._ids = frozenset(str(i) for i in ids)

    @classmethod
    def from_mapping(cls, data: Any) -> "IntrinsicCatalog":
        """Build from the YAML shape: {intrinsics: {group: [ids...]}} or a flat list."""
        if not isinstance(data, dict) or "intrinsics" not in data:
            raise ConfigError("intrinsics: expected a mapping with an 'intrinsics' key")
        body = data["intrinsics"]
        ids: List[str] = []
        if isinstance(body, dict):
            for group, names in body.items():
                if not isinstance(names, list):
                    raise ConfigError(f"intrinsics.{group} must be a list of names")
                ids.extend(str(n) for n in names)
        elif isinstance(body, list):
            ids.extend(str(n) for n in body)
        else:
            raise ConfigError("intrinsics must be a mapping of groups or a list")
        return cls(ids)

    @classmethod
    def from_yaml(cls, text: str) -> "IntrinsicCatalog":
        return cls.from_mapping(yaml.safe_load(text) or {})

    def contains(self, token: str) -> bool:
        return token in self._ids

    def __contains__(self, token: object) -> bool:
        return token in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))


_DEFAULT: Optional[IntrinsicCatalog] = None


def default_catalog() -> IntrinsicCatalog:
    """Catalog shipped in jitflags/data/intrinsics.yaml (loaded once)."""
    global _DEFAULT
    if _DEFAULT is None:
        text = files("jitflags").joinpath("data").joinpath("intrinsics.yaml").read_text(encoding="utf-8")
        _DEFAULT = IntrinsicCatalog.from_yaml(text)
        logger.debug("loaded %d intrinsic ids", len(_DEFAULT))
    return _DEFAULT


def split_tokens(value: str) -> List[str]:
    out: List[str] = []
    for line in str(value).splitlines():
        for tok in line.split(","):
            tok = tok.strip()
            if tok:
                out.append(tok)
    return out


def first_unrecognized(
    value: str, catalog: IntrinsicCatalog, *, markers: bool
) -> Optional[Tuple[str, str]]:
    """Return (token, reason) for the first bad token, or None when all are recognized."""
    for tok in split_tokens(value):
        name = tok
        if markers:
            if tok[0] not in _MARKERS:
                return tok, "missing +/- marker"
            name = tok[1:].strip()
        if not catalog.contains(name):
            return tok, "unknown intrinsic"
    return None


class IntrinsicList(Rule):
    repairable = False

    def __init__(self, catalog: IntrinsicCatalog, *, markers: bool):
        self.catalog = catalog
        self.markers = markers

    def describe(self) -> str:
        return "intrinsic list" + (" (+/- markers)" if self.markers else "")

    def evaluate(self, value: str, ctx: RuleContext, mode: Mode) -> Outcome:
        bad = first_unrecognized(value, self.catalog, markers=self.markers)
        if bad is None:
            return ACCEPT
        tok, reason = bad
        return Violation(
            "UNRECOGNIZED_TOKEN",
            f"Unrecognized intrinsic detected in {ctx.name}: {tok} ({reason})",
        )
