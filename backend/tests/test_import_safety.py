"""
test_import_safety.py — Import and purity checks for the engine modules.

Verifies that:
  1. Every engine and model module imports without circular import failures.
  2. The pure engines do not pull in the web framework, so they can be
     embedded in clients without FastAPI installed.
  3. The engines hold no module-level mutable caches between calls.

No database, network, or external services are required.
"""

import importlib
import inspect
import sys

import pytest

_ENGINE_MODULES = [
    "makercalc.config",
    "makercalc.models.errors",
    "makercalc.models.costing_models",
    "makercalc.models.quote_models",
    "makercalc.services.money",
    "makercalc.services.costing_engine",
    "makercalc.services.quote_engine",
    "makercalc.services.quote_lifecycle",
    "makercalc.services.scenario_engine",
]

_API_MODULES = [
    "makercalc.services.logging_config",
    "makercalc.services.middleware",
    "makercalc.api.calculator_routes",
    "makercalc.main",
]


class TestModuleImports:

    @pytest.mark.parametrize("module_path", _ENGINE_MODULES + _API_MODULES)
    def test_module_imports(self, module_path):
        mod = importlib.import_module(module_path)
        assert mod is not None

    def test_package_exports_entry_points(self):
        import makercalc
        assert callable(makercalc.compute_costing)
        assert callable(makercalc.compute_quote_view)


class TestEngineIsolation:
    """The calculation engines must stay free of HTTP and persistence concerns."""

    @pytest.mark.parametrize("module_path", _ENGINE_MODULES)
    def test_no_web_framework_reference(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "fastapi" not in src
        assert "starlette" not in src

    def test_engines_import_without_fastapi_loaded(self):
        saved = {k: sys.modules.pop(k) for k in list(sys.modules) if k.startswith("makercalc")}
        try:
            importlib.import_module("makercalc.services.quote_engine")
            importlib.import_module("makercalc.services.scenario_engine")
            loaded = [k for k in sys.modules if k.startswith("makercalc.api") or k == "makercalc.main"]
            assert loaded == []
        finally:
            for k in [k for k in sys.modules if k.startswith("makercalc")]:
                sys.modules.pop(k)
            sys.modules.update(saved)

    @pytest.mark.parametrize("module_path", [
        "makercalc.services.costing_engine",
        "makercalc.services.quote_engine",
        "makercalc.services.scenario_engine",
    ])
    def test_no_lru_cache(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "lru_cache" not in src
