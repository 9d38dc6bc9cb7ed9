"""Base plugin contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional, Tuple, Union

if TYPE_CHECKING:
    from plughost.plugins.context import ContextView, ExtensionWrite

BEFORE_RUN = "before_run"
AFTER_RUN = "after_run"
ON_ERROR = "on_error"

SUPPORTED_HOOK_NAMES = (BEFORE_RUN, AFTER_RUN, ON_ERROR)

ExtensionResult = Optional[Iterable["ExtensionWrite"]]
ExtensionCallback = Callable[
    ["ContextView"], Union[ExtensionResult, Awaitable[ExtensionResult]]
]
HookCallback = Callable[[Any], Optional[Awaitable[Any]]]


class ConflictStrategy(str, Enum):
    """How a plugin resolves writes onto properties owned by another plugin."""

    WARN_OVERRIDE = "warn_override"
    ERROR = "error"
    MERGE = "merge"
    PRIORITY = "priority"

    @classmethod
    def parse(cls, value: Union["ConflictStrategy", str]) -> "ConflictStrategy":
        """Return the strategy named by ``value`` (case and dash insensitive)."""
        if isinstance(value, cls):
            return value
        token = str(value or "").strip().lower().replace("-", "_")
        for member in cls:
            if member.value == token:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown conflict strategy '{value}' (expected one of: {allowed})")


@dataclass(frozen=True)
class PluginHooks:
    """Ordered lifecycle hook callbacks registered by one plugin."""

    before_run: Tuple[HookCallback, ...] = ()
    after_run: Tuple[HookCallback, ...] = ()
    on_error: Tuple[HookCallback, ...] = ()

    def for_pass(self, hook_name: str) -> Tuple[HookCallback, ...]:
        if hook_name not in SUPPORTED_HOOK_NAMES:
            raise ValueError(f"Unknown hook name: {hook_name}")
        return getattr(self, hook_name)

    def count(self) -> int:
        return len(self.before_run) + len(self.after_run) + len(self.on_error)


@dataclass(frozen=True)
class PluginRecord:
    """Validated representation of one loaded plugin.

    ``name`` is the plugin identity within one loading batch. ``dependencies``
    lists plugins that must be ordered before this one. ``extensions`` and
    ``hooks`` keep the order in which the plugin registered them.
    """

    name: str
    priority: int = 0
    dependencies: Tuple[str, ...] = ()
    conflict_strategy: ConflictStrategy = ConflictStrategy.WARN_OVERRIDE
    extensions: Tuple[ExtensionCallback, ...] = ()
    hooks: PluginHooks = field(default_factory=PluginHooks)
    version: str = "0.0.0"
    description: str = ""
    source: str = ""
