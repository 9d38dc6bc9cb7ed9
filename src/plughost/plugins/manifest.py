"""Plugin definition schema and validation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from plughost.plugins.base import ConflictStrategy

REQUIRED_DEFINITION_KEYS = ("name", "setup")
OPTIONAL_DEFINITION_KEYS = (
    "priority",
    "dependencies",
    "conflict_resolution",
    "version",
    "description",
)
KNOWN_DEFINITION_KEYS = set(REQUIRED_DEFINITION_KEYS + OPTIONAL_DEFINITION_KEYS)


@dataclass(frozen=True)
class PluginManifest:
    """Normalized plugin definition, before setup has run."""

    name: str
    setup: Callable[..., Any]
    source: str
    priority: int = 0
    dependencies: Tuple[str, ...] = ()
    conflict_strategy: ConflictStrategy = ConflictStrategy.WARN_OVERRIDE
    version: str = "0.0.0"
    description: str = ""


@dataclass(frozen=True)
class ManifestBuildResult:
    """Result of validating one plugin definition."""

    manifest: Optional[PluginManifest]
    warnings: Tuple[str, ...] = ()
    error: Optional[str] = None


def _normalize_string_list(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        token = value.strip()
        return (token,) if token else ()
    if not isinstance(value, Iterable):
        return ()

    normalized = []
    for item in value:
        token = str(item or "").strip()
        if token:
            normalized.append(token)
    return tuple(normalized)


def _read_fields(definition: Any) -> Optional[Dict[str, Any]]:
    if isinstance(definition, Mapping):
        return dict(definition)
    if definition is None:
        return None
    fields = {
        key: getattr(definition, key)
        for key in KNOWN_DEFINITION_KEYS
        if hasattr(definition, key)
    }
    return fields or None


def build_manifest_entry(source: str, definition: Any) -> ManifestBuildResult:
    """Validate and normalize one plugin definition exported from ``source``."""
    fields = _read_fields(definition)
    if fields is None:
        return ManifestBuildResult(
            manifest=None,
            error=f"plugin from '{source}' must export a plugin definition",
        )

    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        return ManifestBuildResult(
            manifest=None,
            error=f"plugin from '{source}' must have a 'name' property of type string",
        )
    name = name.strip()

    setup = fields.get("setup")
    if not callable(setup):
        return ManifestBuildResult(
            manifest=None,
            error=f"plugin from '{source}' must have a 'setup' property of type function",
        )

    priority = fields.get("priority", 0)
    if priority is None:
        priority = 0
    if isinstance(priority, bool) or not isinstance(priority, int):
        return ManifestBuildResult(
            manifest=None,
            error=f"plugin '{name}': field 'priority' must be an integer",
        )

    raw_strategy = fields.get("conflict_resolution")
    try:
        strategy = (
            ConflictStrategy.WARN_OVERRIDE
            if raw_strategy is None
            else ConflictStrategy.parse(raw_strategy)
        )
    except ValueError as exc:
        return ManifestBuildResult(manifest=None, error=f"plugin '{name}': {exc}")

    unknown_keys = sorted(str(key) for key in set(fields.keys()) - KNOWN_DEFINITION_KEYS)
    warnings = tuple(
        f"plugin '{name}': ignoring unknown definition key '{key}'"
        for key in unknown_keys
    )

    return ManifestBuildResult(
        manifest=PluginManifest(
            name=name,
            setup=setup,
            source=source,
            priority=priority,
            dependencies=_normalize_string_list(fields.get("dependencies")),
            conflict_strategy=strategy,
            version=str(fields.get("version") or "0.0.0"),
            description=str(fields.get("description") or ""),
        ),
        warnings=warnings,
    )
