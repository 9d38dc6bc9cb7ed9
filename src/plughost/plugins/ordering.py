"""Deterministic plugin ordering from priority and dependency declarations."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set, Tuple

from plughost.plugins.base import PluginRecord
from plughost.plugins.errors import CircularDependencyError, MissingDependencyError

logger = logging.getLogger(__name__)


def resolve_order(records: Iterable[PluginRecord]) -> Tuple[PluginRecord, ...]:
    """Return one total order over ``records``.

    Every plugin follows all of its dependencies. Otherwise plugins run by
    descending priority, ties keeping batch order. Missing dependencies and
    cycles fail the whole batch before anything is ordered.
    """
    batch = list(records)
    by_name: Dict[str, PluginRecord] = {record.name: record for record in batch}

    _check_missing_dependencies(batch, by_name)
    _check_cycles(batch, by_name)

    ranked = sorted(batch, key=lambda record: -record.priority)
    placed: Set[str] = set()
    order: List[PluginRecord] = []

    def place(record: PluginRecord) -> None:
        if record.name in placed:
            return
        placed.add(record.name)
        for dependency in _unique(record.dependencies):
            place(by_name[dependency])
        order.append(record)

    for record in ranked:
        place(record)

    logger.debug(
        "resolved plugin order: %s", ", ".join(record.name for record in order)
    )
    return tuple(order)


def _check_missing_dependencies(
    batch: List[PluginRecord], by_name: Dict[str, PluginRecord]
) -> None:
    for record in batch:
        for dependency in record.dependencies:
            if dependency not in by_name:
                logger.error(
                    "Plugin '%s' depends on unknown plugin '%s'",
                    record.name,
                    dependency,
                )
                raise MissingDependencyError(record.name, dependency)


def _check_cycles(batch: List[PluginRecord], by_name: Dict[str, PluginRecord]) -> None:
    visited: Set[str] = set()
    in_progress: Set[str] = set()
    path: List[str] = []

    def visit(name: str) -> None:
        if name in in_progress:
            cycle = path[path.index(name):] + [name]
            logger.error("Plugin dependency cycle: %s", " -> ".join(cycle))
            raise CircularDependencyError(cycle)
        if name in visited:
            return
        in_progress.add(name)
        path.append(name)
        for dependency in _unique(by_name[name].dependencies):
            visit(dependency)
        path.pop()
        in_progress.discard(name)
        visited.add(name)

    for record in batch:
        visit(record.name)


def _unique(names: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(names))
