"""
Folio exception hierarchy.

All folio exceptions inherit from FolioError, making it easy for hosts
to catch library-level errors while still distinguishing specific failure modes.

Data-path problems (bad documents, bad queries) are logged and degrade to
empty results; the classes below are raised for control-path misuse.
"""

from __future__ import annotations


class FolioError(Exception):
    """Base exception class for all folio errors."""


class ConfigurationError(FolioError):
    """Raised for configuration errors (missing keys, out-of-range values)."""


class ValidationError(FolioError):
    """Raised when input is malformed or missing required fields."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class PluginError(FolioError):
    """Raised for plugin lifecycle failures."""

    def __init__(self, message: str, plugin_name: str = ""):
        super().__init__(message)
        self.plugin_name = plugin_name


class PluginValidationError(PluginError, ValidationError):
    """Raised when an object does not satisfy the plugin contract."""

    def __init__(self, message: str, plugin_name: str = "", field: str | None = None):
        PluginError.__init__(self, message, plugin_name)
        self.field = field


class PluginActivationError(PluginError):
    """Raised when a plugin's activate hook fails."""


class PluginTimeoutError(PluginError):
    """Raised when a plugin hook does not settle before its deadline."""


class DisposedError(FolioError):
    """Raised on any call into a component after it was disposed."""

    def __init__(self, component: str):
        super().__init__(f"{component} has been disposed")
        self.component = component


class CacheError(FolioError):
    """Raised for invalid cache use, such as an unhashable key."""
