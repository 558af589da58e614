"""Plugin contract, validated plugin records and pipeline configuration."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from folio.content.models import Document
from folio.core.exceptions import PluginValidationError
from folio.core.utils.async_helpers import Deadline

Processor = Callable[[Document], "Document | Awaitable[Document]"]
SearchExtension = Callable[[str, list[Document]], Any]


@dataclass
class PluginConfig:
    """Settings for the extension pipeline.

    Attributes:
        timeout: Seconds each hook (activate, deactivate, processor,
            search extension) may take before it is abandoned.
        max_processors: Cap on processors, and separately on search extensions.
        max_plugins: Cap on registered plugins.
    """

    timeout: float = 10.0
    max_processors: int = 100
    max_plugins: int = 50


class PluginState(StrEnum):
    UNREGISTERED = "unregistered"
    ACTIVATING = "activating"
    ACTIVE = "active"
    DEACTIVATING = "deactivating"


@runtime_checkable
class Plugin(Protocol):
    """What a plugin looks like from the host's side.

    Plugins may also be plain mappings with the same keys. ``description``
    and ``deactivate`` are optional.
    """

    name: str
    version: str

    def activate(self, context: PluginContext) -> None | Awaitable[None]: ...


@dataclass(frozen=True)
class PluginContext:
    """Handed to ``activate``; the plugin's only way into the host.

    Attributes:
        plugin_name: Name the plugin registered under.
        logger: Shared logger bound to the plugin name.
        deadline: When activation must settle; hooks may poll ``remaining()``.
        get_documents: Returns the store's current visible documents.
        register_processor: Adds a ``(document) -> document`` transform.
        register_search_extension: Adds a ``(query, documents) -> result`` hook.
    """

    plugin_name: str
    logger: Any
    deadline: Deadline
    get_documents: Callable[[], list[Document]]
    register_processor: Callable[[Processor], bool]
    register_search_extension: Callable[[SearchExtension], bool]


@dataclass(frozen=True)
class ValidPlugin:
    """A plugin that passed ``validate_plugin``."""

    name: str
    version: str
    activate: Callable[[PluginContext], Any]
    description: str = ""
    deactivate: Callable[[], Any] | None = None
    source: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class ProcessorStats:
    total_processors: int
    total_search_extensions: int
    processors_by_plugin: dict[str, int]


def _read(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def validate_plugin(obj: Any) -> ValidPlugin:
    """Check *obj* against the plugin contract.

    Accepts attribute objects (classes, instances, modules) and mappings.

    Raises:
        PluginValidationError: a required field is missing or has the wrong type.
    """
    if obj is None:
        raise PluginValidationError("Invalid plugin: got None")

    name = _read(obj, "name")
    if not isinstance(name, str) or not name.strip():
        raise PluginValidationError("Invalid plugin: name must be a non-empty string", field="name")

    version = _read(obj, "version")
    if not isinstance(version, str):
        raise PluginValidationError(
            f"Invalid plugin {name}: version must be a string", plugin_name=name, field="version"
        )

    activate = _read(obj, "activate")
    if not callable(activate):
        raise PluginValidationError(
            f"Invalid plugin {name}: activate must be callable", plugin_name=name, field="activate"
        )

    deactivate = _read(obj, "deactivate")
    if deactivate is not None and not callable(deactivate):
        raise PluginValidationError(
            f"Invalid plugin {name}: deactivate must be callable", plugin_name=name, field="deactivate"
        )

    description = _read(obj, "description")
    return ValidPlugin(
        name=name,
        version=version,
        activate=activate,
        description=description if isinstance(description, str) else "",
        deactivate=deactivate,
        source=obj,
    )
