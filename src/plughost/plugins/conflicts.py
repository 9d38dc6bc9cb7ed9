"""Property ownership tracking and cross-plugin conflict resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from plughost.plugins.base import ConflictStrategy, PluginRecord
from plughost.plugins.context import ValueKind, value_kind
from plughost.plugins.errors import PropertyConflictError

logger = logging.getLogger(__name__)

WarningCallback = Callable[[str], None]

OVERRIDE_ACTION = "override"
MERGE_ACTION = "merge"
MERGE_FALLBACK_ACTION = "merge_fallback"
PRIORITY_ACTION = "priority"
REJECTED_ACTION = "rejected"


@dataclass(frozen=True)
class ConflictRecord:
    """Audit entry for one cross-plugin collision."""

    namespace: str
    key: str
    previous_owner: str
    new_owner: str
    strategy: ConflictStrategy
    action: str

    @property
    def path(self) -> str:
        return f"{self.namespace}.{self.key}"


class PropertyOwnership:
    """Which plugin last wrote each ``(namespace, key)`` during one apply pass."""

    def __init__(self) -> None:
        self._owners: Dict[Tuple[str, str], str] = {}

    def owner_of(self, namespace: str, key: str) -> Optional[str]:
        return self._owners.get((namespace, key))

    def assign(self, namespace: str, key: str, plugin_name: str) -> None:
        self._owners[(namespace, key)] = plugin_name

    def snapshot(self) -> Dict[Tuple[str, str], str]:
        return dict(self._owners)

    def __len__(self) -> int:
        return len(self._owners)


def can_merge(old: Any, new: Any) -> bool:
    """Return whether ``old`` and ``new`` share a mergeable structure."""
    old_kind = value_kind(old)
    return old_kind in (ValueKind.SEQUENCE, ValueKind.MAPPING) and old_kind == value_kind(new)


def merge_values(old: Any, new: Any) -> Any:
    """Merge two structurally compatible values without mutating either.

    Sequences concatenate, old elements first, duplicates kept. Mappings merge
    key by key, recursing where both sides are mappings or both sequences; for
    any other shared key the new value wins.
    """
    if not can_merge(old, new):
        raise TypeError(
            f"cannot merge {value_kind(old).value} with {value_kind(new).value}"
        )
    if value_kind(old) is ValueKind.SEQUENCE:
        return list(old) + list(new)

    merged: Dict[Any, Any] = dict(old)
    for key, new_value in new.items():
        if key in merged and can_merge(merged[key], new_value):
            merged[key] = merge_values(merged[key], new_value)
        else:
            merged[key] = new_value
    return merged


class ConflictResolver:
    """Decide the stored value when a plugin writes an owned property.

    Dispatch follows the writing plugin's own strategy, not the strategy of
    the plugin that owns the property. With mixed strategies on one key the
    outcome therefore depends on processing order.
    """

    def __init__(
        self,
        ownership: Optional[PropertyOwnership] = None,
        *,
        on_warning: Optional[WarningCallback] = None,
    ) -> None:
        self.ownership = ownership or PropertyOwnership()
        self.records: List[ConflictRecord] = []
        self.warnings: List[str] = []
        self._on_warning = on_warning

    def resolve(
        self,
        plugin: PluginRecord,
        namespace: str,
        key: str,
        previous: Any,
        value: Any,
    ) -> Any:
        """Return the value to store for ``namespace.key`` written by ``plugin``."""
        owner = self.ownership.owner_of(namespace, key)
        if owner is None or owner == plugin.name:
            self.ownership.assign(namespace, key, plugin.name)
            return value

        strategy = plugin.conflict_strategy
        path = f"{namespace}.{key}"

        if strategy is ConflictStrategy.ERROR:
            self._record(namespace, key, owner, plugin, REJECTED_ACTION)
            logger.error(
                "Plugin '%s' conflicts with plugin '%s' on property '%s'",
                plugin.name,
                owner,
                path,
            )
            raise PropertyConflictError(namespace, key, owner, plugin.name)

        if strategy is ConflictStrategy.MERGE:
            if can_merge(previous, value):
                resolved = merge_values(previous, value)
                self._record(namespace, key, owner, plugin, MERGE_ACTION)
                logger.debug(
                    "Plugin '%s' merged property '%s' owned by '%s'",
                    plugin.name,
                    path,
                    owner,
                )
            else:
                resolved = value
                self._record(namespace, key, owner, plugin, MERGE_FALLBACK_ACTION)
                self._warn(
                    f"Plugin '{plugin.name}' cannot merge property '{path}' "
                    f"({value_kind(previous).value} vs {value_kind(value).value}) "
                    f"owned by plugin '{owner}'; overriding"
                )
        elif strategy is ConflictStrategy.PRIORITY:
            resolved = value
            self._record(namespace, key, owner, plugin, PRIORITY_ACTION)
            logger.debug(
                "Plugin '%s' took property '%s' from '%s' by priority",
                plugin.name,
                path,
                owner,
            )
        else:
            resolved = value
            self._record(namespace, key, owner, plugin, OVERRIDE_ACTION)
            self._warn(
                f"Plugin '{plugin.name}' overrides property '{path}' "
                f"previously set by plugin '{owner}'"
            )

        self.ownership.assign(namespace, key, plugin.name)
        return resolved

    def _record(
        self,
        namespace: str,
        key: str,
        owner: str,
        plugin: PluginRecord,
        action: str,
    ) -> None:
        self.records.append(
            ConflictRecord(
                namespace=namespace,
                key=key,
                previous_owner=owner,
                new_owner=plugin.name,
                strategy=plugin.conflict_strategy,
                action=action,
            )
        )

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)
        if self._on_warning is not None:
            try:
                self._on_warning(message)
            except Exception:
                logger.exception("warning callback failed")
