"""Apply plugin extension callbacks to a shared context in resolved order."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from plughost.plugins.base import PluginRecord
from plughost.plugins.conflicts import ConflictRecord, ConflictResolver, WarningCallback
from plughost.plugins.context import SharedContext, iter_writes
from plughost.plugins.errors import ExtensionCallbackError

logger = logging.getLogger(__name__)
_MISSING = object()


@dataclass(frozen=True)
class ApplyReport:
    """Outcome of one apply pass."""

    applied: Tuple[str, ...] = ()
    conflicts: Tuple[ConflictRecord, ...] = ()
    warnings: Tuple[str, ...] = ()
    owners: Dict[Tuple[str, str], str] = field(default_factory=dict)


async def apply_extensions(
    ordered: Sequence[PluginRecord],
    shared_context: SharedContext,
    *,
    on_warning: Optional[WarningCallback] = None,
) -> ApplyReport:
    """Run every plugin's extension callbacks and store their writes.

    Callbacks receive a read-only view of ``shared_context`` and return the
    writes they contribute. The first failing callback or rejected conflict
    aborts the pass; writes stored before the failure stay in place.
    """
    resolver = ConflictResolver(on_warning=on_warning)
    view = shared_context.view()
    applied = []

    for plugin in ordered:
        logger.debug(
            "applying %d extension(s) from plugin '%s'",
            len(plugin.extensions),
            plugin.name,
        )
        for callback in plugin.extensions:
            try:
                result = callback(view)
                if inspect.isawaitable(result):
                    result = await result
                writes = iter_writes(result)
            except Exception as exc:
                logger.exception("Extension callback failed in plugin '%s'", plugin.name)
                raise ExtensionCallbackError(plugin.name, str(exc)) from exc

            for item in writes:
                previous = shared_context.get(item.namespace, item.key, _MISSING)
                if previous is not _MISSING and (
                    previous is item.value or _unchanged(previous, item.value)
                ):
                    continue
                resolved = resolver.resolve(
                    plugin,
                    item.namespace,
                    item.key,
                    None if previous is _MISSING else previous,
                    item.value,
                )
                shared_context.set(item.namespace, item.key, resolved)
        applied.append(plugin.name)

    logger.info(
        "applied extensions from %d plugin(s) with %d conflict(s)",
        len(applied),
        len(resolver.records),
    )
    return ApplyReport(
        applied=tuple(applied),
        conflicts=tuple(resolver.records),
        warnings=tuple(resolver.warnings),
        owners=resolver.ownership.snapshot(),
    )


def _unchanged(left: object, right: object) -> bool:
    # 1 == True and {} == OrderedDict(), but storing either is still a change.
    if type(left) is not type(right):
        return False
    try:
        return bool(left == right)
    except Exception:
        return False
