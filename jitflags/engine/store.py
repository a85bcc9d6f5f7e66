from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Literal, Mapping, Optional, Protocol

from ..errors import ConfigError
from .types import ParamSpec, check_value, is_integer_kind

Origin = Literal["default", "caller", "resolver"]


class StoreLike(Protocol):
    """What rules and the resolver need from a parameter store."""

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any, *, origin: Origin = ...) -> None: ...

    def is_default(self, name: str) -> bool: ...


class ParameterStore:
    """
    In-memory parameter store keyed by flag name.

    Values are typed on entry: `set` rejects values that do not match the
    registered kind or integer width with ConfigError. Each value remembers
    where it came from; `is_default` is True only while the default is untouched
    (or was explicitly restored via `reset_to_default`).
    """

    def __init__(self, specs: Iterable[ParamSpec]):
        self._specs: Dict[str, ParamSpec] = {}
        self._values: Dict[str, Any] = {}
        self._origin: Dict[str, Origin] = {}
        for s in specs:
            self._specs[s.name] = s
            self._values[s.name] = s.default
            self._origin[s.name] = "default"

    @classmethod
    def from_overrides(
        cls, specs: Iterable[ParamSpec], overrides: Optional[Mapping[str, Any]] = None
    ) -> "ParameterStore":
        store = cls(specs)
        for name, value in (overrides or {}).items():
            store.set(name, value)
        return store

    # ---- lookup ----------------------------------------------------------

    def _spec(self, name: str) -> ParamSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise ConfigError(f"flags.{name} unknown flag") from None

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def names(self) -> list[str]:
        return list(self._specs)

    def get(self, name: str) -> Any:
        self._spec(name)
        return self._values[name]

    def is_default(self, name: str) -> bool:
        self._spec(name)
        return self._origin[name] == "default"

    def origin(self, name: str) -> Origin:
        self._spec(name)
        return self._origin[name]

    # ---- mutation --------------------------------------------------------

    def set(self, name: str, value: Any, *, origin: Origin = "caller") -> None:
        spec = self._spec(name)
        problem = check_value(spec.kind, value)
        if problem is not None:
            raise ConfigError(f"flags.{name} {problem}")
        if is_integer_kind(spec.kind):
            value = int(value)
        self._values[name] = value
        self._origin[name] = origin

    def reset_to_default(self, name: str) -> None:
        spec = self._spec(name)
        self._values[name] = spec.default
        self._origin[name] = "default"

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current values, in registration order."""
        return dict(self._values)


__all__ = ["Origin", "StoreLike", "ParameterStore"]
