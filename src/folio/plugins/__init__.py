"""Extension pipeline: plugin contract, manager, registry and built-ins."""

from .builtin import BUILTIN_PLUGINS, builtin_plugin
from .manager import PluginManager
from .models import Plugin, PluginConfig, PluginContext, PluginState, ValidPlugin, validate_plugin
from .registry import PluginRegistry

__all__ = [
    "BUILTIN_PLUGINS",
    "Plugin",
    "PluginConfig",
    "PluginContext",
    "PluginManager",
    "PluginRegistry",
    "PluginState",
    "ValidPlugin",
    "builtin_plugin",
    "validate_plugin",
]
