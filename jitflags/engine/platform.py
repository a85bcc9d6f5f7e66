"""
Platform capabilities and compiler configuration.

Both are plain inputs handed to the resolver at construction time; nothing here
probes the host. `platform_for(family)` returns the preset for an architecture
family and raises ConfigError for anything it does not know.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal

from ..errors import ConfigError
from .types import MAX_INTX

Family = Literal["x86_64", "x86_32", "aarch64", "ppc64", "s390x", "riscv64"]


@dataclass(frozen=True)
class Platform:
    family: Family
    word_size: int
    nop_size: int  # relocation address unit; loop alignment must be a multiple of it
    interior_entry_min_alignment: int
    prefetch_instr_max: int
    supports_rtm: bool = False
    has_c2: bool = True


_PRESETS: Dict[str, Platform] = {
    "x86_64": Platform("x86_64", 8, 1, 16, 3, supports_rtm=True),
    "x86_32": Platform("x86_32", 4, 1, 4, 3, supports_rtm=True),
    "aarch64": Platform("aarch64", 8, 4, 16, MAX_INTX),
    "ppc64": Platform("ppc64", 8, 4, 16, MAX_INTX),
    "s390x": Platform("s390x", 8, 2, 2, MAX_INTX),
    "riscv64": Platform("riscv64", 8, 4, 16, MAX_INTX),
}

FAMILIES = tuple(sorted(_PRESETS))


def platform_for(family: str, *, has_c2: bool = True) -> Platform:
    """Return the preset for `family`; `has_c2=False` models a build without the optimizing compiler."""
    try:
        p = _PRESETS[str(family)]
    except KeyError:
        raise ConfigError(
            f"platform: unknown family {family!r} (expected one of {', '.join(FAMILIES)})"
        ) from None
    if has_c2:
        return p
    return Platform(
        p.family,
        p.word_size,
        p.nop_size,
        p.interior_entry_min_alignment,
        p.prefetch_instr_max,
        supports_rtm=p.supports_rtm,
        has_c2=False,
    )


@dataclass(frozen=True)
class CompilerConfig:
    has_compilers: bool = True
    tiered: bool = True
    interpreter_only: bool = False

    def min_compiler_threads(self) -> int:
        if not self.has_compilers or self.interpreter_only:
            return 0
        return 2 if self.tiered else 1


__all__ = ["Family", "Platform", "FAMILIES", "platform_for", "CompilerConfig"]
