"""CLI handlers for plugin ordering, extension apply, and lifecycle runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Sequence, Union

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plughost.plugins import (
    LifecycleContext,
    PluginOrchestrator,
    PluginRecord,
    SharedContext,
    load_plugins,
    value_kind,
)

console = Console()
logger = logging.getLogger(__name__)

_MAX_VALUE_DISPLAY_CHARS = 60


def _format_value(value: Any) -> str:
    text = getattr(value, "__qualname__", None) if callable(value) else None
    text = f"<function {text}>" if text else repr(value)
    if len(text) > _MAX_VALUE_DISPLAY_CHARS:
        text = text[:_MAX_VALUE_DISPLAY_CHARS] + "..."
    return escape(text)


def _print_warnings(warnings: Sequence[str]) -> None:
    for message in warnings:
        console.print(f"[yellow]warning:[/] {escape(message)}", highlight=False)


def render_order(order: Sequence[PluginRecord]) -> None:
    """Print the resolved plugin order."""
    if not order:
        console.print("No plugins loaded.")
        return

    table = Table(title="Plugin Order", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Plugin", style="white")
    table.add_column("Priority", justify="right", style="magenta")
    table.add_column("Depends On", style="green")
    table.add_column("Strategy", style="blue")

    for position, record in enumerate(order, start=1):
        table.add_row(
            str(position),
            record.name,
            str(record.priority),
            ", ".join(record.dependencies),
            record.conflict_strategy.value,
        )

    console.print(table)


def render_context(shared_context: SharedContext, owners: dict) -> None:
    """Print one table per non-empty namespace."""
    for namespace in shared_context.namespaces():
        values = shared_context.namespace(namespace)
        if not values:
            continue
        table = Table(title=f"Namespace: {namespace}", show_header=True, header_style="bold cyan")
        table.add_column("Key", style="white")
        table.add_column("Kind", style="dim")
        table.add_column("Owner", style="green")
        table.add_column("Value", style="white")
        for key, value in values.items():
            table.add_row(
                key,
                value_kind(value).value,
                owners.get((namespace, key), ""),
                _format_value(value),
            )
        console.print(table)


async def handle_order(identifiers: List[str], project_root: Union[str, Path]) -> None:
    records = await load_plugins(identifiers, project_root)
    orchestrator = PluginOrchestrator(records)
    render_order(orchestrator.resolve())


async def handle_apply(
    identifiers: List[str],
    project_root: Union[str, Path],
    namespaces: List[str],
) -> None:
    records = await load_plugins(identifiers, project_root)
    warnings: List[str] = []
    orchestrator = PluginOrchestrator(records, on_warning=warnings.append)
    render_order(orchestrator.resolve())

    shared_context = SharedContext({name: {} for name in namespaces})
    report = await orchestrator.apply(shared_context)
    render_context(shared_context, report.owners)
    _print_warnings(warnings)
    console.print(
        f"Applied {len(report.applied)} plugin(s), {len(report.conflicts)} conflict(s)."
    )


async def handle_run(
    identifiers: List[str],
    project_root: Union[str, Path],
    namespaces: List[str],
    script_name: str,
) -> None:
    records = await load_plugins(identifiers, project_root)
    warnings: List[str] = []
    orchestrator = PluginOrchestrator(records, on_warning=warnings.append)
    shared_context = SharedContext({name: {} for name in namespaces})
    context = LifecycleContext(script_name=script_name)

    def _script(_shared: SharedContext) -> None:
        logger.info("running script '%s'", script_name)

    await orchestrator.run(_script, shared_context, context)
    _print_warnings(warnings)
    console.print(
        f"Run '{script_name}' finished with {len(orchestrator.order)} plugin(s) "
        f"({orchestrator.state.value})."
    )
