"""Sequential dispatch of plugin lifecycle hooks."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from plughost.plugins.base import AFTER_RUN, BEFORE_RUN, ON_ERROR, HookCallback, PluginRecord
from plughost.plugins.context import ErrorContext, LifecycleContext
from plughost.plugins.errors import HookError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HookFailure:
    """One hook failure collected during a fail-soft pass."""

    plugin: str
    hook_name: str
    error: BaseException

    def describe(self) -> str:
        return f"{self.plugin}.{self.hook_name}: {self.error}"


@dataclass(frozen=True)
class HookPassReport:
    """Outcome of one fail-soft lifecycle pass."""

    hook_name: str
    invoked: int = 0
    failures: Tuple[HookFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


async def run_before_run(ordered: Sequence[PluginRecord], context: LifecycleContext) -> None:
    """Invoke before-run hooks in order; the first failure aborts the pass."""
    for plugin in ordered:
        for hook in plugin.hooks.before_run:
            try:
                await _invoke(hook, context)
            except Exception as exc:
                logger.error(
                    "before_run hook failed plugin=%s callback=%s",
                    plugin.name,
                    _qualified_name(hook),
                )
                raise HookError(plugin.name, BEFORE_RUN, str(exc)) from exc


async def run_after_run(
    ordered: Sequence[PluginRecord],
    context: LifecycleContext,
    *,
    on_warning: Optional[Callable[[str], None]] = None,
) -> HookPassReport:
    """Invoke after-run hooks in order, collecting failures instead of raising."""
    return await _run_fail_soft(ordered, AFTER_RUN, context, on_warning)


async def run_on_error(
    ordered: Sequence[PluginRecord],
    context: ErrorContext,
    *,
    on_warning: Optional[Callable[[str], None]] = None,
) -> HookPassReport:
    """Invoke on-error hooks in order; ``context.error`` carries the cause."""
    return await _run_fail_soft(ordered, ON_ERROR, context, on_warning)


async def _run_fail_soft(
    ordered: Sequence[PluginRecord],
    hook_name: str,
    context: LifecycleContext,
    on_warning: Optional[Callable[[str], None]],
) -> HookPassReport:
    failures: List[HookFailure] = []
    invoked = 0
    for plugin in ordered:
        for hook in plugin.hooks.for_pass(hook_name):
            invoked += 1
            try:
                await _invoke(hook, context)
            except Exception as exc:
                logger.debug(
                    "%s hook failed plugin=%s callback=%s",
                    hook_name,
                    plugin.name,
                    _qualified_name(hook),
                    exc_info=True,
                )
                failures.append(HookFailure(plugin=plugin.name, hook_name=hook_name, error=exc))

    if failures:
        message = f"{len(failures)} {hook_name} hook(s) failed: " + "; ".join(
            failure.describe() for failure in failures
        )
        logger.warning(message)
        if on_warning is not None:
            try:
                on_warning(message)
            except Exception:
                logger.exception("warning callback failed for %s pass", hook_name)

    return HookPassReport(hook_name=hook_name, invoked=invoked, failures=tuple(failures))


async def _invoke(hook: HookCallback, context: Any) -> None:
    result = hook(context)
    if inspect.isawaitable(result):
        await result


def _qualified_name(callback: Callable[..., Any]) -> str:
    owner = getattr(callback, "__module__", "")
    name = getattr(callback, "__qualname__", repr(callback))
    if owner:
        return f"{owner}.{name}"
    return str(name)
