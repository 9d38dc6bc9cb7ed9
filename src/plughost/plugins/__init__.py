"""Plugin orchestration engine."""

from plughost.plugins.applier import ApplyReport, apply_extensions
from plughost.plugins.base import (
    AFTER_RUN,
    BEFORE_RUN,
    ON_ERROR,
    ConflictStrategy,
    PluginHooks,
    PluginRecord,
)
from plughost.plugins.conflicts import (
    ConflictRecord,
    ConflictResolver,
    PropertyOwnership,
    merge_values,
)
from plughost.plugins.context import (
    DEFAULT_NAMESPACES,
    ContextView,
    ErrorContext,
    ExtensionWrite,
    LifecycleContext,
    SharedContext,
    ValueKind,
    value_kind,
    write,
)
from plughost.plugins.errors import (
    ApplyError,
    CircularDependencyError,
    ExtensionCallbackError,
    HookError,
    InvalidStateError,
    MissingDependencyError,
    OrderingError,
    PluginError,
    PluginImportError,
    PluginManifestError,
    PropertyConflictError,
)
from plughost.plugins.lifecycle import (
    HookFailure,
    HookPassReport,
    run_after_run,
    run_before_run,
    run_on_error,
)
from plughost.plugins.loader import HookCollector, load_plugin, load_plugins
from plughost.plugins.orchestrator import OrchestratorState, PluginOrchestrator
from plughost.plugins.ordering import resolve_order

__all__ = [
    "AFTER_RUN",
    "BEFORE_RUN",
    "ON_ERROR",
    "DEFAULT_NAMESPACES",
    "ApplyError",
    "ApplyReport",
    "CircularDependencyError",
    "ConflictRecord",
    "ConflictResolver",
    "ConflictStrategy",
    "ContextView",
    "ErrorContext",
    "ExtensionCallbackError",
    "ExtensionWrite",
    "HookCollector",
    "HookError",
    "HookFailure",
    "HookPassReport",
    "InvalidStateError",
    "LifecycleContext",
    "MissingDependencyError",
    "OrchestratorState",
    "OrderingError",
    "PluginError",
    "PluginHooks",
    "PluginImportError",
    "PluginManifestError",
    "PluginOrchestrator",
    "PluginRecord",
    "PropertyConflictError",
    "PropertyOwnership",
    "SharedContext",
    "ValueKind",
    "apply_extensions",
    "load_plugin",
    "load_plugins",
    "merge_values",
    "resolve_order",
    "run_after_run",
    "run_before_run",
    "run_on_error",
    "value_kind",
    "write",
]
