"""Plugin orchestration exception hierarchy."""

from __future__ import annotations

from typing import Sequence, Tuple


class PluginError(Exception):
    """Base plugin orchestration error."""


class OrderingError(PluginError):
    """Raised when a plugin batch cannot be ordered."""


class CircularDependencyError(OrderingError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")


class MissingDependencyError(OrderingError):
    """Raised when a plugin depends on a name absent from the batch."""

    def __init__(self, plugin: str, dependency: str) -> None:
        self.plugin = plugin
        self.dependency = dependency
        super().__init__(
            f"Plugin '{plugin}' depends on '{dependency}' which is not loaded"
        )


class ApplyError(PluginError):
    """Raised when applying plugin extensions fails."""


class ExtensionCallbackError(ApplyError):
    """Raised when one extension callback fails."""

    def __init__(self, plugin: str, message: str) -> None:
        self.plugin = plugin
        super().__init__(f"Error applying extension from plugin '{plugin}': {message}")


class PropertyConflictError(ApplyError):
    """Raised when a write collides under the ``error`` conflict strategy."""

    def __init__(self, namespace: str, key: str, owner: str, writer: str) -> None:
        self.namespace = namespace
        self.key = key
        self.owner = owner
        self.writer = writer
        super().__init__(
            f"Plugin '{writer}' conflicts with plugin '{owner}' "
            f"on property '{self.path}'"
        )

    @property
    def path(self) -> str:
        return f"{self.namespace}.{self.key}"


class HookError(PluginError):
    """Raised when a before-run hook fails."""

    def __init__(self, plugin: str, hook_name: str, message: str) -> None:
        self.plugin = plugin
        self.hook_name = hook_name
        super().__init__(f"Plugin '{plugin}' {hook_name} hook failed: {message}")


class InvalidStateError(PluginError):
    """Raised when orchestrator passes are invoked out of order."""


class PluginManifestError(PluginError):
    """Raised when a plugin definition fails validation."""


class PluginImportError(PluginError):
    """Raised when plugin module import or setup fails."""

    def __init__(
        self,
        message: str,
        failures: Sequence[Tuple[str, BaseException]] = (),
    ) -> None:
        self.failures: Tuple[Tuple[str, BaseException], ...] = tuple(failures)
        super().__init__(message)
