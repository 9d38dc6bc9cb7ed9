from __future__ import annotations

import asyncio
import sys
import textwrap
import types
from pathlib import Path

import pytest

from plughost.plugins.base import ConflictStrategy
from plughost.plugins.context import LifecycleContext, SharedContext
from plughost.plugins.errors import PluginImportError, PluginManifestError
from plughost.plugins.loader import (
    HookCollector,
    is_file_path,
    load_plugin,
    load_plugins,
    resolve_plugin_path,
)
from plughost.plugins.manifest import build_manifest_entry
from plughost.plugins.orchestrator import PluginOrchestrator


def _run(coro):
    return asyncio.run(coro)


def _write_plugin(directory: Path, filename: str, body: str) -> Path:
    path = directory / filename
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


GREETER_PLUGIN = """
from plughost.plugins import write


def setup(extend, hooks):
    extend(lambda view: [write("global", "greet", "hi")])

    @hooks.before_run
    def _start(context):
        context.data["started"] = True


plugin = {
    "name": "greeter",
    "priority": 5,
    "dependencies": ["base"],
    "conflict_resolution": "merge",
    "version": "1.2.0",
    "setup": setup,
}
"""


def test_is_file_path_detection():
    assert is_file_path("./plugin.py")
    assert is_file_path("../plugins/plugin.py")
    assert is_file_path("/abs/plugin.py")
    assert is_file_path("C:\\plugins\\plugin.py")
    assert not is_file_path("my_package.plugin")


def test_resolve_plugin_path_tries_py_suffix(tmp_path: Path):
    _write_plugin(tmp_path, "util.py", "plugin = None\n")

    assert resolve_plugin_path("./util", tmp_path) == tmp_path / "util.py"
    assert resolve_plugin_path("./missing", tmp_path) is None


def test_load_plugin_from_file_builds_record(tmp_path: Path):
    _write_plugin(tmp_path, "greeter.py", GREETER_PLUGIN)

    record = _run(load_plugin("./greeter.py", tmp_path))

    assert record.name == "greeter"
    assert record.priority == 5
    assert record.dependencies == ("base",)
    assert record.conflict_strategy is ConflictStrategy.MERGE
    assert record.version == "1.2.0"
    assert record.source == "./greeter.py"
    assert len(record.extensions) == 1
    assert len(record.hooks.before_run) == 1


def test_load_plugin_from_module_name(monkeypatch):
    module = types.ModuleType("example_plugins.hello")
    calls = []

    async def _setup(extend, hooks):
        calls.append("setup")
        hooks.after_run(lambda context: None)

    module.plugin = types.SimpleNamespace(name="hello", setup=_setup)
    monkeypatch.setitem(sys.modules, "example_plugins.hello", module)

    record = _run(load_plugin("example_plugins.hello"))

    assert calls == ["setup"]
    assert record.name == "hello"
    assert record.conflict_strategy is ConflictStrategy.WARN_OVERRIDE
    assert len(record.hooks.after_run) == 1


def test_missing_file_raises_import_error(tmp_path: Path):
    with pytest.raises(PluginImportError, match="Plugin file not found"):
        _run(load_plugin("./nope.py", tmp_path))


def test_definition_without_setup_is_rejected(tmp_path: Path):
    _write_plugin(tmp_path, "bad.py", 'plugin = {"name": "bad"}\n')

    with pytest.raises(PluginManifestError, match="setup"):
        _run(load_plugin("./bad.py", tmp_path))


def test_setup_failure_is_wrapped(tmp_path: Path):
    _write_plugin(
        tmp_path,
        "broken.py",
        """
        def setup(extend, hooks):
            raise RuntimeError("cannot connect")

        plugin = {"name": "broken", "setup": setup}
        """,
    )

    with pytest.raises(PluginImportError, match="Plugin 'broken' setup failed: cannot connect"):
        _run(load_plugin("./broken.py", tmp_path))


def test_load_plugins_reports_every_failure(tmp_path: Path):
    _write_plugin(tmp_path, "greeter.py", GREETER_PLUGIN)

    with pytest.raises(PluginImportError) as excinfo:
        _run(load_plugins(["./missing_a.py", "./greeter.py", "./missing_b.py"], tmp_path))

    assert [identifier for identifier, _ in excinfo.value.failures] == [
        "./missing_a.py",
        "./missing_b.py",
    ]
    assert "Failed to load plugins:" in str(excinfo.value)


def test_loaded_plugins_run_end_to_end(tmp_path: Path):
    _write_plugin(
        tmp_path,
        "base.py",
        """
        from plughost.plugins import write

        def setup(extend, hooks):
            extend(lambda view: [write("global", "greet", "hello")])

        plugin = {"name": "base", "priority": 1, "setup": setup}
        """,
    )
    _write_plugin(tmp_path, "greeter.py", GREETER_PLUGIN)

    records = _run(load_plugins(["./greeter.py", "./base.py"], tmp_path))
    orchestrator = PluginOrchestrator(records)
    shared = SharedContext.default()
    context = LifecycleContext(script_name="demo")

    _run(orchestrator.run(lambda ctx: None, shared, context))

    assert orchestrator.plugin_names() == ["base", "greeter"]
    # greeter merges onto base's scalar, which falls back to an override.
    assert shared.get("global", "greet") == "hi"
    assert context.data["started"] is True


def test_hook_collector_rejects_unknown_hooks_and_late_registration():
    hooks = HookCollector("p")

    with pytest.raises(ValueError):
        hooks.register("during_run", lambda context: None)
    with pytest.raises(TypeError):
        hooks.register("before_run", "not callable")

    hooks.freeze()
    with pytest.raises(RuntimeError):
        hooks.before_run(lambda context: None)


def test_manifest_normalizes_fields_and_warns_on_unknown_keys():
    result = build_manifest_entry(
        "./p.py",
        {
            "name": " spaced ",
            "setup": lambda extend, hooks: None,
            "dependencies": "only-one",
            "conflict_resolution": "WARN-OVERRIDE",
            "homepage": "https://example.invalid",
        },
    )

    manifest = result.manifest
    assert manifest is not None
    assert manifest.name == "spaced"
    assert manifest.dependencies == ("only-one",)
    assert manifest.conflict_strategy is ConflictStrategy.WARN_OVERRIDE
    assert result.warnings == ("plugin 'spaced': ignoring unknown definition key 'homepage'",)


@pytest.mark.parametrize(
    "definition, fragment",
    [
        (None, "must export a plugin definition"),
        ({"setup": lambda extend, hooks: None}, "'name'"),
        ({"name": "p", "setup": lambda e, h: None, "priority": "high"}, "priority"),
        ({"name": "p", "setup": lambda e, h: None, "priority": True}, "priority"),
        ({"name": "p", "setup": lambda e, h: None, "conflict_resolution": "loudest"}, "loudest"),
    ],
)
def test_manifest_rejects_invalid_definitions(definition, fragment):
    result = build_manifest_entry("./p.py", definition)

    assert result.manifest is None
    assert fragment in result.error
