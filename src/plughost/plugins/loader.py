"""Plugin loader: locate plugin modules, validate definitions, run setup."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import re
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterable, List, Optional, Tuple, Union

from plughost.plugins.base import (
    AFTER_RUN,
    BEFORE_RUN,
    ON_ERROR,
    SUPPORTED_HOOK_NAMES,
    ExtensionCallback,
    HookCallback,
    PluginHooks,
    PluginRecord,
)
from plughost.plugins.errors import PluginError, PluginImportError, PluginManifestError
from plughost.plugins.manifest import build_manifest_entry

logger = logging.getLogger(__name__)
PLUGIN_EXPORT_NAME = "plugin"
PLUGIN_FILE_SUFFIXES = (".py",)
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:")


class HookCollector:
    """Collects lifecycle hooks registered by one plugin during setup."""

    def __init__(self, plugin_name: str) -> None:
        self.plugin_name = plugin_name
        self._callbacks: Dict[str, List[HookCallback]] = {
            name: [] for name in SUPPORTED_HOOK_NAMES
        }
        self._frozen = False

    def freeze(self) -> None:
        """Disallow registrations once setup has finished."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register(self, hook_name: str, callback: HookCallback) -> HookCallback:
        normalized_hook = str(hook_name or "").strip()
        if normalized_hook not in SUPPORTED_HOOK_NAMES:
            raise ValueError(f"Unknown hook name: {normalized_hook}")
        if not callable(callback):
            raise TypeError("callback must be callable")
        if self._frozen:
            raise RuntimeError(f"hooks for plugin '{self.plugin_name}' are frozen")
        self._callbacks[normalized_hook].append(callback)
        return callback

    def before_run(self, callback: HookCallback) -> HookCallback:
        return self.register(BEFORE_RUN, callback)

    def after_run(self, callback: HookCallback) -> HookCallback:
        return self.register(AFTER_RUN, callback)

    def on_error(self, callback: HookCallback) -> HookCallback:
        return self.register(ON_ERROR, callback)

    def to_hooks(self) -> PluginHooks:
        return PluginHooks(
            before_run=tuple(self._callbacks[BEFORE_RUN]),
            after_run=tuple(self._callbacks[AFTER_RUN]),
            on_error=tuple(self._callbacks[ON_ERROR]),
        )


def is_file_path(identifier: str) -> bool:
    """Return True when ``identifier`` names a file rather than a module."""
    return (
        identifier.startswith("./")
        or identifier.startswith("../")
        or identifier.startswith("/")
        or bool(_WINDOWS_DRIVE.match(identifier))
    )


def resolve_plugin_path(identifier: str, project_root: Union[str, Path]) -> Optional[Path]:
    """Resolve a plugin file (or package directory) relative to ``project_root``."""
    candidate = Path(identifier).expanduser()
    if not candidate.is_absolute():
        candidate = Path(project_root).expanduser() / candidate

    if candidate.is_file():
        return candidate
    if candidate.is_dir() and (candidate / "__init__.py").is_file():
        return candidate / "__init__.py"
    for suffix in PLUGIN_FILE_SUFFIXES:
        with_suffix = candidate.with_name(candidate.name + suffix)
        if with_suffix.is_file():
            return with_suffix
    return None


def _import_file(path: Path) -> ModuleType:
    module_name = path.parent.name if path.name == "__init__.py" else path.stem
    spec = importlib.util.spec_from_file_location(f"plughost_plugin_{module_name}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot create import spec for {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _import_plugin_module(identifier: str, project_root: Union[str, Path]) -> ModuleType:
    if is_file_path(identifier):
        path = resolve_plugin_path(identifier, project_root)
        if path is None:
            raise PluginImportError(f"Plugin file not found: {identifier}")
        logger.debug("loading plugin from file: %s", path)
        try:
            return _import_file(path)
        except Exception as exc:
            raise PluginImportError(
                f"Failed to load plugin from '{identifier}': {exc}"
            ) from exc

    logger.debug("loading plugin from module: %s", identifier)
    try:
        return importlib.import_module(identifier)
    except Exception as exc:
        raise PluginImportError(
            f"Failed to load plugin module '{identifier}': {exc}. "
            "Make sure the package is installed."
        ) from exc


async def load_plugin(identifier: str, project_root: Union[str, Path] = ".") -> PluginRecord:
    """Import one plugin, validate its definition, and run its setup."""
    module = _import_plugin_module(identifier, project_root)

    build_result = build_manifest_entry(identifier, getattr(module, PLUGIN_EXPORT_NAME, None))
    for warning in build_result.warnings:
        logger.warning(warning)
    if build_result.manifest is None:
        message = build_result.error or "invalid plugin definition"
        logger.error("Plugin '%s' definition invalid: %s", identifier, message)
        raise PluginManifestError(message)
    manifest = build_result.manifest

    extensions: List[ExtensionCallback] = []

    def extend(callback: ExtensionCallback) -> ExtensionCallback:
        if not callable(callback):
            raise TypeError("extension callback must be callable")
        extensions.append(callback)
        return callback

    hooks = HookCollector(manifest.name)
    try:
        result = manifest.setup(extend, hooks)
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        logger.exception("Plugin '%s' setup failed", manifest.name)
        raise PluginImportError(f"Plugin '{manifest.name}' setup failed: {exc}") from exc
    hooks.freeze()

    plugin_hooks = hooks.to_hooks()
    logger.debug(
        "plugin '%s' setup complete with %d extension(s) and %d hook(s)",
        manifest.name,
        len(extensions),
        plugin_hooks.count(),
    )
    return PluginRecord(
        name=manifest.name,
        priority=manifest.priority,
        dependencies=manifest.dependencies,
        conflict_strategy=manifest.conflict_strategy,
        extensions=tuple(extensions),
        hooks=plugin_hooks,
        version=manifest.version,
        description=manifest.description,
        source=identifier,
    )


async def load_plugins(
    identifiers: Iterable[str], project_root: Union[str, Path] = "."
) -> List[PluginRecord]:
    """Load every plugin; report all failures together after trying each one."""
    identifiers = list(identifiers)
    logger.debug("loading %d plugin(s)", len(identifiers))

    records: List[PluginRecord] = []
    failures: List[Tuple[str, BaseException]] = []
    for identifier in identifiers:
        try:
            records.append(await load_plugin(identifier, project_root))
        except PluginError as exc:
            failures.append((identifier, exc))

    if failures:
        details = "\n".join(f"  - {identifier}: {error}" for identifier, error in failures)
        raise PluginImportError(f"Failed to load plugins:\n{details}", failures=failures)
    return records
