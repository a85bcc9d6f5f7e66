# -----------------------------------------------------------------------------
# Resolver: one pass over the registered parameters in dependency order.
#
# Registration is validated once, at construction:
#   • names are unique; every dependency and governed partner is registered
#   • a rule only reads declared dependencies, and only rewrites declared partners
#   • a governed partner is depended on by nobody except its governor
#   • the dependency graph is acyclic
#
# Traversal order is a stable topological order: among parameters whose
# dependencies are all placed, registration order decides. Rules must not rely
# on any tie-break beyond their declared edges.
#
# The resolver keeps no state across passes; all mutation goes through the
# store handed to `resolve` / `re_resolve`.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import ConfigError, ConstraintError, RegistrationError
from .diagnostics import DiagnosticsSink
from .platform import CompilerConfig, Platform, platform_for
from .rules import RuleContext
from .store import ParameterStore, StoreLike
from .types import (
    ACCEPT,
    MODES,
    Mode,
    Normalized,
    Outcome,
    ParamSpec,
    Repaired,
    Violation,
    outcome_to_dict,
)

logger = logging.getLogger(__name__)

__all__ = ["Change", "PassResult", "Resolver"]


@dataclass(frozen=True)
class Change:
    """One value written by the resolver during a pass."""

    name: str
    old: Any
    new: Any
    kind: str  # violation kind for repairs, "NORMALIZED" for normalizations

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "old": self.old, "new": self.new, "kind": self.kind}


@dataclass
class PassResult:
    ok: bool
    mode: Mode
    failed: Optional[str] = None
    message: Optional[str] = None
    outcomes: Dict[str, Outcome] = field(default_factory=dict)  # evaluation order
    changes: List[Change] = field(default_factory=list)

    def violations(self) -> List[Tuple[str, Violation]]:
        return [(n, o) for n, o in self.outcomes.items() if isinstance(o, Violation)]

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise ConstraintError(self.failed or "?", self.message or "constraint violated")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "mode": self.mode,
            "failed": self.failed,
            "message": self.message,
            "changes": [c.to_dict() for c in self.changes],
            "outcomes": {n: outcome_to_dict(o) for n, o in self.outcomes.items()},
        }


def _stable_topo_order(specs: Sequence[ParamSpec]) -> List[str]:
    """Kahn's algorithm; the ready set is always drained in registration order."""
    index = {s.name: i for i, s in enumerate(specs)}
    remaining = {s.name: len(set(s.depends_on)) for s in specs}
    dependents: Dict[str, List[str]] = {s.name: [] for s in specs}
    for s in specs:
        for dep in dict.fromkeys(s.depends_on):
            dependents[dep].append(s.name)

    ready = sorted((n for n, c in remaining.items() if c == 0), key=index.__getitem__)
    order: List[str] = []
    while ready:
        n = ready.pop(0)
        order.append(n)
        for d in dependents[n]:
            remaining[d] -= 1
            if remaining[d] == 0:
                ready.append(d)
        ready.sort(key=index.__getitem__)

    if len(order) != len(specs):
        stuck = [s.name for s in specs if s.name not in set(order)]
        raise RegistrationError(f"dependency cycle among: {', '.join(stuck)}")
    return order


class Resolver:
    def __init__(
        self,
        specs: Iterable[ParamSpec],
        *,
        platform: Optional[Platform] = None,
        compiler: Optional[CompilerConfig] = None,
    ):
        self.specs: Tuple[ParamSpec, ...] = tuple(specs)
        self.platform = platform if platform is not None else platform_for("x86_64")
        self.compiler = compiler if compiler is not None else CompilerConfig()
        self._by_name: Dict[str, ParamSpec] = {}
        self._validate()
        self._order = _stable_topo_order(self.specs)
        self._dependents: Dict[str, List[str]] = {s.name: [] for s in self.specs}
        for s in self.specs:
            for dep in dict.fromkeys(s.depends_on):
                self._dependents[dep].append(s.name)
        logger.debug("resolver ready: %d parameters", len(self._order))

    # ---- registration --------------------------------------------------

    def _validate(self) -> None:
        for s in self.specs:
            if s.name in self._by_name:
                raise RegistrationError(f"{s.name}: registered twice")
            self._by_name[s.name] = s

        governor_of: Dict[str, str] = {}
        for s in self.specs:
            for dep in s.depends_on:
                if dep not in self._by_name:
                    raise RegistrationError(f"{s.name}: unknown dependency {dep!r}")
                if dep == s.name:
                    raise RegistrationError(f"{s.name}: depends on itself")
            for partner in s.governs:
                if partner not in self._by_name:
                    raise RegistrationError(f"{s.name}: unknown governed partner {partner!r}")
                if partner in governor_of:
                    raise RegistrationError(
                        f"{partner}: governed by both {governor_of[partner]} and {s.name}"
                    )
                governor_of[partner] = s.name
            if s.rule is not None:
                undeclared = [r for r in s.rule.reads() if r not in s.depends_on]
                if undeclared:
                    raise RegistrationError(
                        f"{s.name}: rule reads undeclared dependencies {', '.join(undeclared)}"
                    )
                rogue = [g for g in s.rule.governs() if g not in s.governs]
                if rogue:
                    raise RegistrationError(
                        f"{s.name}: rule rewrites undeclared partners {', '.join(rogue)}"
                    )

        for s in self.specs:
            for dep in s.depends_on:
                gov = governor_of.get(dep)
                if gov is not None and gov != s.name:
                    raise RegistrationError(
                        f"{s.name}: depends on {dep}, which is governed by {gov}"
                    )

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(self._order)

    def spec(self, name: str) -> ParamSpec:
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigError(f"flags.{name} unknown flag") from None

    def dependents(self, name: str) -> Tuple[str, ...]:
        """Direct dependents of `name`, in registration order."""
        self.spec(name)
        return tuple(self._dependents[name])

    def new_store(self, overrides: Optional[Mapping[str, Any]] = None) -> ParameterStore:
        return ParameterStore.from_overrides(self.specs, overrides)

    # ---- passes --------------------------------------------------------

    def resolve(
        self,
        store: StoreLike,
        mode: Mode,
        *,
        sink: Optional[DiagnosticsSink] = None,
        verbose: bool = True,
        names: Optional[Iterable[str]] = None,
    ) -> PassResult:
        """Run one complete pass; `names` restricts it to a subset (kept in traversal order)."""
        if mode not in MODES:
            raise ConfigError(f"mode must be one of {', '.join(MODES)} (got {mode!r})")
        wanted: Optional[Set[str]] = None
        if names is not None:
            wanted = set(names)
            for n in wanted:
                self.spec(n)
        result = PassResult(ok=True, mode=mode)
        failed: Set[str] = set()

        for name in self._order:
            if wanted is not None and name not in wanted:
                continue
            spec = self._by_name[name]
            bad_deps = [d for d in spec.depends_on if d in failed]
            if bad_deps:
                outcome: Outcome = Violation(
                    "DEPENDENCY_INVALID",
                    f"{name} not checked: dependency {bad_deps[0]} is invalid",
                )
            elif spec.rule is None:
                outcome = ACCEPT
            else:
                ctx = RuleContext(
                    name, store, spec.depends_on, self.platform, self.compiler
                )
                outcome = spec.rule.evaluate(store.get(name), ctx, mode)

            result.outcomes[name] = outcome
            logger.debug("%s -> %s", name, type(outcome).__name__)

            if isinstance(outcome, Violation):
                failed.add(name)
                if result.ok:
                    result.ok = False
                    result.failed = name
                    result.message = outcome.message
                self._emit(sink, "error", outcome.message, True)
            elif isinstance(outcome, Repaired):
                old = store.get(name)
                store.set(name, outcome.value, origin="resolver")
                result.changes.append(Change(name, old, outcome.value, outcome.kind))
                self._emit(sink, "info", f"{outcome.message}: set to {outcome.value}", verbose)
            elif isinstance(outcome, Normalized) and outcome.changes:
                self._apply_normalized(spec, outcome, store, result)
                if outcome.message:
                    self._emit(sink, "info", outcome.message, verbose)

        if result.ok:
            logger.debug("pass ok (%s): %d change(s)", mode, len(result.changes))
        else:
            logger.debug("pass failed at %s (%s)", result.failed, mode)
        return result

    def re_resolve(
        self,
        store: StoreLike,
        mode: Mode,
        changed: Iterable[str],
        *,
        sink: Optional[DiagnosticsSink] = None,
        verbose: bool = True,
    ) -> PassResult:
        """Re-run the changed manageable parameters and everything downstream of them."""
        roots = list(dict.fromkeys(changed))
        for n in roots:
            if not self.spec(n).manageable:
                raise ConfigError(f"flags.{n} is not manageable and cannot change at runtime")
        affected: Set[str] = set()
        stack = list(roots)
        while stack:
            n = stack.pop()
            if n in affected:
                continue
            affected.add(n)
            stack.extend(self._dependents[n])
        return self.resolve(store, mode, sink=sink, verbose=verbose, names=affected)

    # ---- helpers -------------------------------------------------------

    def _apply_normalized(
        self, spec: ParamSpec, outcome: Normalized, store: StoreLike, result: PassResult
    ) -> None:
        allowed = {spec.name, *spec.governs}
        for target, value in outcome.changes.items():
            if target not in allowed:
                raise RegistrationError(
                    f"{spec.name}: normalization rewrote {target}, which it does not govern"
                )
            old = store.get(target)
            if old == value and type(old) is type(value):
                continue
            store.set(target, value, origin="resolver")
            result.changes.append(Change(target, old, value, "NORMALIZED"))

    @staticmethod
    def _emit(sink: Optional[DiagnosticsSink], severity: str, message: str, enabled: bool) -> None:
        if sink is not None and enabled:
            sink.emit(severity, message)
