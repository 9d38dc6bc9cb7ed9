"""Shared extension namespaces and lifecycle payload contracts."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_NAMESPACES = ("global", "host", "workspace", "parsers")


class ValueKind(str, Enum):
    """Closed set of value variants stored in extension namespaces."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    FUNCTION = "function"


def value_kind(value: Any) -> ValueKind:
    """Classify ``value``; strings and bytes count as scalars."""
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if callable(value):
        return ValueKind.FUNCTION
    return ValueKind.SCALAR


@dataclass(frozen=True)
class ExtensionWrite:
    """One value contributed by an extension callback."""

    namespace: str
    key: str
    value: Any

    @property
    def path(self) -> str:
        return f"{self.namespace}.{self.key}"


def write(namespace: str, key: str, value: Any) -> ExtensionWrite:
    """Shorthand used by plugins to build extension writes."""
    return ExtensionWrite(namespace=namespace, key=key, value=value)


class SharedContext:
    """Host-owned store of named namespaces, each mapping keys to values."""

    def __init__(self, namespaces: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._namespaces: Dict[str, Dict[str, Any]] = {}
        for name, values in (namespaces or {}).items():
            self._namespaces[str(name)] = dict(values)

    @classmethod
    def default(cls) -> "SharedContext":
        return cls({name: {} for name in DEFAULT_NAMESPACES})

    def namespaces(self) -> List[str]:
        return list(self._namespaces.keys())

    def namespace(self, name: str) -> Mapping[str, Any]:
        """Return a read-only view of one namespace (empty if absent)."""
        return MappingProxyType(self._namespaces.get(name, {}))

    def has(self, namespace: str, key: str) -> bool:
        return key in self._namespaces.get(namespace, {})

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        return self._namespaces.get(namespace, {}).get(key, default)

    def set(self, namespace: str, key: str, value: Any) -> None:
        self._namespaces.setdefault(namespace, {})[key] = value

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: dict(values) for name, values in self._namespaces.items()}

    def view(self) -> "ContextView":
        return ContextView(self)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{name}={len(values)}" for name, values in self._namespaces.items())
        return f"SharedContext({sizes})"


class ContextView:
    """Read-only access handed to extension callbacks.

    Values come back as deep copies, so mutating them never changes the
    shared context. Functions are returned as-is.
    """

    def __init__(self, context: SharedContext) -> None:
        self._context = context

    def namespaces(self) -> List[str]:
        return self._context.namespaces()

    def namespace(self, name: str) -> Mapping[str, Any]:
        values = self._context.namespace(name)
        return MappingProxyType({key: _detached(value) for key, value in values.items()})

    def has(self, namespace: str, key: str) -> bool:
        return self._context.has(namespace, key)

    def get(self, namespace: str, key: str, default: Any = None) -> Any:
        if not self._context.has(namespace, key):
            return default
        return _detached(self._context.get(namespace, key))


def _detached(value: Any) -> Any:
    if callable(value) and not isinstance(value, (Mapping, list, tuple)):
        return value
    return copy.deepcopy(value)


def iter_writes(result: Any) -> Iterable[ExtensionWrite]:
    """Validate a callback result and return its writes in order."""
    if result is None:
        return ()
    if isinstance(result, (ExtensionWrite, str, bytes, Mapping)):
        raise TypeError(
            "extension callback must return an iterable of ExtensionWrite, "
            f"got {type(result).__name__}"
        )
    try:
        writes = list(result)
    except TypeError as exc:
        raise TypeError(
            "extension callback must return an iterable of ExtensionWrite, "
            f"got {type(result).__name__}"
        ) from exc
    for item in writes:
        if not isinstance(item, ExtensionWrite):
            raise TypeError(
                f"extension callback returned {type(item).__name__}, expected ExtensionWrite"
            )
    return writes


@dataclass
class LifecycleContext:
    """Mutable payload passed to lifecycle hooks."""

    script_name: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    cancel_token: Any = None


@dataclass
class ErrorContext(LifecycleContext):
    """Lifecycle payload for the error pass, carrying the triggering error."""

    error: Optional[BaseException] = None

    @classmethod
    def from_context(
        cls, context: Optional[LifecycleContext], error: BaseException
    ) -> "ErrorContext":
        if context is None:
            return cls(error=error)
        return cls(
            script_name=context.script_name,
            data=context.data,
            cancel_token=context.cancel_token,
            error=error,
        )
