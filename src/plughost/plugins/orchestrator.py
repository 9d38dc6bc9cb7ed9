"""Per-batch plugin orchestrator: ordering, extension apply, lifecycle passes."""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

from plughost.plugins.applier import ApplyReport, apply_extensions
from plughost.plugins.base import PluginRecord
from plughost.plugins.context import ErrorContext, LifecycleContext, SharedContext
from plughost.plugins.errors import ApplyError, InvalidStateError, OrderingError
from plughost.plugins.lifecycle import (
    HookPassReport,
    run_after_run,
    run_before_run,
    run_on_error,
)
from plughost.plugins.ordering import resolve_order

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    """Batch lifecycle states."""

    UNVALIDATED = "unvalidated"
    ORDERED = "ordered"
    EXTENSIONS_APPLIED = "extensions_applied"
    BEFORE_RUN_DONE = "before_run_done"
    AFTER_RUN_DONE = "after_run_done"
    ERROR_DONE = "error_done"
    FAILED = "failed"


class PluginOrchestrator:
    """Own one plugin batch from ordering through the lifecycle passes.

    A new orchestrator is built for every batch; nothing is shared between
    instances.
    """

    def __init__(
        self,
        records: Iterable[PluginRecord],
        *,
        on_warning: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._records: Tuple[PluginRecord, ...] = tuple(records)
        self._on_warning = on_warning
        self._order: Optional[Tuple[PluginRecord, ...]] = None
        self._state = OrchestratorState.UNVALIDATED
        self.apply_report: Optional[ApplyReport] = None

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def order(self) -> Tuple[PluginRecord, ...]:
        if self._order is None:
            raise InvalidStateError("plugin order has not been resolved")
        return self._order

    def plugin_names(self) -> List[str]:
        return [record.name for record in self.order]

    def resolve(self) -> Tuple[PluginRecord, ...]:
        """Resolve and cache the plugin order for this batch."""
        if self._order is not None:
            return self._order
        if self._state is OrchestratorState.FAILED:
            raise InvalidStateError("plugin batch already failed")
        try:
            self._order = resolve_order(self._records)
        except OrderingError:
            self._state = OrchestratorState.FAILED
            raise
        self._state = OrchestratorState.ORDERED
        return self._order

    async def apply(self, shared_context: SharedContext) -> ApplyReport:
        if self._state is OrchestratorState.UNVALIDATED:
            self.resolve()
        self._require(OrchestratorState.ORDERED, "apply extensions")
        try:
            report = await apply_extensions(
                self.order, shared_context, on_warning=self._on_warning
            )
        except ApplyError:
            self._state = OrchestratorState.FAILED
            raise
        self.apply_report = report
        self._state = OrchestratorState.EXTENSIONS_APPLIED
        return report

    async def before_run(self, context: LifecycleContext) -> None:
        self._require(OrchestratorState.EXTENSIONS_APPLIED, "run before_run hooks")
        await run_before_run(self.order, context)
        self._state = OrchestratorState.BEFORE_RUN_DONE

    async def after_run(self, context: LifecycleContext) -> HookPassReport:
        self._require(OrchestratorState.BEFORE_RUN_DONE, "run after_run hooks")
        report = await run_after_run(self.order, context, on_warning=self._on_warning)
        self._state = OrchestratorState.AFTER_RUN_DONE
        return report

    async def on_error(self, context: ErrorContext) -> HookPassReport:
        if self._order is None or self._state in (
            OrchestratorState.AFTER_RUN_DONE,
            OrchestratorState.ERROR_DONE,
        ):
            raise InvalidStateError(
                f"cannot run on_error hooks in state '{self._state.value}'"
            )
        report = await run_on_error(self.order, context, on_warning=self._on_warning)
        self._state = OrchestratorState.ERROR_DONE
        return report

    async def run(
        self,
        script: Callable[[SharedContext], Any],
        shared_context: Optional[SharedContext] = None,
        context: Optional[LifecycleContext] = None,
    ) -> Any:
        """Apply extensions, then run ``script`` between the lifecycle passes.

        A failing before-run hook or script triggers the error pass and is
        re-raised unchanged.
        """
        self.resolve()
        shared_context = shared_context if shared_context is not None else SharedContext.default()
        if self._state is OrchestratorState.ORDERED:
            await self.apply(shared_context)
        context = context if context is not None else LifecycleContext()

        try:
            await self.before_run(context)
            result = script(shared_context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.info("run of '%s' failed, dispatching on_error hooks", context.script_name)
            await self.on_error(ErrorContext.from_context(context, exc))
            raise

        await self.after_run(context)
        return result

    def _require(self, expected: OrchestratorState, action: str) -> None:
        if self._state is not expected:
            raise InvalidStateError(
                f"cannot {action} in state '{self._state.value}' "
                f"(expected '{expected.value}')"
            )
