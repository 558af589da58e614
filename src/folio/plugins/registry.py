"""
Plugin registry.

Discovers plugins at runtime via ``importlib.metadata`` entry points
(group: ``folio.plugins``). Third-party packages can register plugins
in their own ``pyproject.toml``:

    [project.entry-points."folio.plugins"]
    reading-list = "my_package.plugins:ReadingListPlugin"

An entry point may name a plugin class (instantiated with no arguments),
a plugin instance, a module, or a mapping.
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import Any

from loguru import logger

from .builtin import BUILTIN_PLUGINS
from .models import validate_plugin

ENTRY_POINT_GROUP = "folio.plugins"


class PluginRegistry:
    """Name -> plugin factory lookup, seeded with the built-in plugins."""

    def __init__(self, include_builtins: bool = True):
        self._factories: dict[str, Any] = dict(BUILTIN_PLUGINS) if include_builtins else {}

    def discover(self) -> dict[str, Any]:
        """Scan entry points and return {name: plugin_or_class}."""
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                self._factories[ep.name] = ep.load()
                logger.debug(f"Discovered plugin: {ep.name}")
            except Exception as e:
                logger.warning(f"Failed to load plugin '{ep.name}': {e}")
        return dict(self._factories)

    def register(self, name: str, plugin: Any) -> None:
        """Manually register a plugin class or object (useful for testing)."""
        self._factories[name] = plugin

    def get(self, name: str) -> Any | None:
        return self._factories.get(name)

    def list_names(self) -> list[str]:
        return list(self._factories.keys())

    def create(self, name: str) -> Any:
        """Return a ready-to-register plugin object for *name*.

        Raises:
            KeyError: nothing is registered under *name*.
            PluginValidationError: the result does not satisfy the plugin contract.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise KeyError(f"No plugin registered as '{name}'. Available: {self.list_names()}")
        plugin = factory() if isinstance(factory, type) else factory
        validate_plugin(plugin)
        return plugin
