"""
Extension pipeline.

Hosts third-party plugins in-process. Every call into plugin code
(activation, deactivation, document processors, search extensions) runs
inside a failure boundary and against a deadline, so a plugin that raises,
hangs or returns garbage is logged and skipped without stalling the host.

Usage::

    manager = PluginManager(store, PluginConfig(timeout=5))
    await manager.register(word_count_plugin)
    document = await manager.process(document)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from loguru import logger

from folio.content.models import Document
from folio.content.store import DocumentStore
from folio.core.events import PLUGIN_ERROR, PLUGIN_LOADED, PLUGIN_UNLOADED, Event, EventBus
from folio.core.exceptions import (
    ConfigurationError,
    DisposedError,
    PluginActivationError,
    PluginTimeoutError,
    ValidationError,
)
from folio.core.utils.async_helpers import Deadline, race
from folio.core.utils.logging import get_logger

from .models import (
    PluginConfig,
    PluginContext,
    PluginState,
    ProcessorStats,
    ValidPlugin,
    validate_plugin,
)


@dataclass(frozen=True)
class _Hook:
    plugin_name: str
    fn: Any
    token: object


class PluginManager:
    """Registers plugins and runs their hooks in registration order."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        config: PluginConfig | None = None,
        bus: EventBus | None = None,
    ):
        self.config = config or PluginConfig()
        for name in ("timeout", "max_processors", "max_plugins"):
            if getattr(self.config, name) <= 0:
                raise ConfigurationError(f"{name} must be greater than 0")

        self._store = store
        self._bus = bus
        self._plugins: dict[str, ValidPlugin] = {}
        self._states: dict[str, PluginState] = {}
        # One token per registration attempt; hooks registered under a stale token are ignored.
        self._tokens: dict[str, object] = {}
        self._processors: list[_Hook] = []
        self._search_extensions: list[_Hook] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("PluginManager")

    async def _emit(self, name: str, **payload: Any) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(name=name, payload=payload, source="plugins"))

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _context(self, plugin: ValidPlugin, token: object, deadline: Deadline) -> PluginContext:
        def get_documents() -> list[Document]:
            return self._store.documents() if self._store is not None else []

        def register_processor(fn: Any) -> bool:
            if self._tokens.get(plugin.name) is not token:
                logger.warning(f"Ignoring processor from inactive plugin {plugin.name}")
                return False
            return self._add_hook(self._processors, plugin.name, fn, token, "Processor")

        def register_search_extension(fn: Any) -> bool:
            if self._tokens.get(plugin.name) is not token:
                logger.warning(f"Ignoring search extension from inactive plugin {plugin.name}")
                return False
            return self._add_hook(self._search_extensions, plugin.name, fn, token, "Search extension")

        return PluginContext(
            plugin_name=plugin.name,
            logger=get_logger(f"plugin:{plugin.name}", plugin=plugin.name),
            deadline=deadline,
            get_documents=get_documents,
            register_processor=register_processor,
            register_search_extension=register_search_extension,
        )

    def _add_hook(self, hooks: list[_Hook], plugin_name: str, fn: Any, token: object, kind: str) -> bool:
        self._check_disposed()
        if not callable(fn):
            raise ValidationError(f"{kind} must be callable", field="fn")
        if len(hooks) >= self.config.max_processors:
            logger.warning(f"{kind} limit exceeded: {self.config.max_processors}")
            return False
        hooks.append(_Hook(plugin_name=str(plugin_name), fn=fn, token=token))
        logger.debug(f"{kind} registered for plugin {plugin_name}")
        return True

    def register_processor(self, plugin_name: str, fn: Any) -> bool:
        """Append a document processor on behalf of *plugin_name*."""
        return self._add_hook(self._processors, plugin_name, fn, self._tokens.get(plugin_name), "Processor")

    def register_search_extension(self, plugin_name: str, fn: Any) -> bool:
        """Append a search extension on behalf of *plugin_name*."""
        return self._add_hook(
            self._search_extensions, plugin_name, fn, self._tokens.get(plugin_name), "Search extension"
        )

    def _drop_hooks(self, name: str) -> None:
        self._processors = [h for h in self._processors if h.plugin_name != name]
        self._search_extensions = [h for h in self._search_extensions if h.plugin_name != name]

    async def register(self, plugin: Any) -> bool:
        """Validate and activate *plugin*.

        Returns False (with a warning) for a duplicate name or when the plugin
        cap is reached.

        Raises:
            PluginValidationError: *plugin* does not satisfy the contract.
            PluginTimeoutError: activation did not settle before the timeout.
            PluginActivationError: activation raised.
        """
        self._check_disposed()
        valid = validate_plugin(plugin)
        name = valid.name

        if name in self._states:
            logger.warning(f"Plugin {name} is already registered")
            return False
        if len(self._states) >= self.config.max_plugins:
            logger.warning(f"Plugin limit exceeded: {self.config.max_plugins}")
            return False

        token = object()
        deadline = Deadline(self.config.timeout)
        self._tokens[name] = token
        self._states[name] = PluginState.ACTIVATING

        try:
            await race(
                valid.activate(self._context(valid, token, deadline)),
                deadline,
                label=f"Plugin {name} activation",
                plugin_name=name,
            )
        except Exception as e:
            self._tokens.pop(name, None)
            self._states.pop(name, None)
            self._drop_hooks(name)
            logger.error(f"Failed to activate plugin {name}: {e}")
            await self._emit(PLUGIN_ERROR, plugin=name, stage="activate", error=str(e))
            if isinstance(e, PluginTimeoutError):
                raise
            raise PluginActivationError(f"Plugin {name} failed to activate: {e}", plugin_name=name) from e

        self._plugins[name] = valid
        self._states[name] = PluginState.ACTIVE
        logger.info(f"Plugin {name} activated")
        await self._emit(PLUGIN_LOADED, plugin=name, version=valid.version)
        return True

    async def unregister(self, name: str) -> bool:
        """Deactivate *name* and remove every hook it contributed.

        The plugin is removed even when its deactivate hook fails or times
        out; that case is logged and returns False. Unknown names also
        return False.
        """
        self._check_disposed()
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Plugin name must be a non-empty string", field="name")

        plugin = self._plugins.get(name)
        if plugin is None:
            logger.warning(f"Plugin {name} not found")
            return False

        self._states[name] = PluginState.DEACTIVATING
        ok = True
        if plugin.deactivate is not None:
            deadline = Deadline(self.config.timeout)
            try:
                await race(plugin.deactivate(), deadline, label=f"Plugin {name} deactivation", plugin_name=name)
            except Exception as e:
                ok = False
                logger.error(f"Failed to deactivate plugin {name}: {e}")
                await self._emit(PLUGIN_ERROR, plugin=name, stage="deactivate", error=str(e))

        self._plugins.pop(name, None)
        self._states.pop(name, None)
        self._tokens.pop(name, None)
        self._drop_hooks(name)
        logger.info(f"Plugin {name} deactivated")
        await self._emit(PLUGIN_UNLOADED, plugin=name, clean=ok)
        return ok

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    async def process(self, document: Document) -> Document:
        """Run *document* through every processor in registration order.

        A processor that raises, times out, or returns anything other than a
        Document with the same id is skipped; the previous stage's document
        flows on.
        """
        self._check_disposed()
        if not isinstance(document, Document):
            raise ValidationError("Invalid document", field="document")

        processed = document
        for hook in list(self._processors):
            try:
                result = await race(
                    hook.fn(processed),
                    Deadline(self.config.timeout),
                    label=f"Processor from plugin {hook.plugin_name}",
                    plugin_name=hook.plugin_name,
                )
            except Exception as e:
                logger.error(f"Processor from plugin {hook.plugin_name} failed: {e}")
                await self._emit(PLUGIN_ERROR, plugin=hook.plugin_name, stage="process", error=str(e))
                continue

            if isinstance(result, Document) and result.id == processed.id:
                processed = result
            else:
                logger.warning(f"Processor from plugin {hook.plugin_name} returned invalid result")
        return processed

    async def run_search_extensions(self, query: str, documents: list[Document]) -> list[Any]:
        """Collect the non-None results of every search extension, in order."""
        self._check_disposed()
        if not isinstance(query, str):
            return []
        try:
            documents = list(documents)
        except TypeError:
            return []

        results: list[Any] = []
        for hook in list(self._search_extensions):
            try:
                result = await race(
                    hook.fn(query, documents),
                    Deadline(self.config.timeout),
                    label=f"Search extension from plugin {hook.plugin_name}",
                    plugin_name=hook.plugin_name,
                )
            except Exception as e:
                logger.error(f"Search extension from plugin {hook.plugin_name} failed: {e}")
                await self._emit(PLUGIN_ERROR, plugin=hook.plugin_name, stage="search", error=str(e))
                continue
            if result is not None:
                results.append(result)
        return results

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def plugins(self) -> list[ValidPlugin]:
        self._check_disposed()
        return list(self._plugins.values())

    def active_plugins(self) -> list[str]:
        self._check_disposed()
        return [name for name, state in self._states.items() if state is PluginState.ACTIVE]

    def get(self, name: str) -> ValidPlugin | None:
        self._check_disposed()
        if not isinstance(name, str):
            return None
        return self._plugins.get(name)

    def state(self, name: str) -> PluginState:
        self._check_disposed()
        return self._states.get(name, PluginState.UNREGISTERED)

    def processor_stats(self) -> ProcessorStats:
        self._check_disposed()
        return ProcessorStats(
            total_processors=len(self._processors),
            total_search_extensions=len(self._search_extensions),
            processors_by_plugin=dict(Counter(h.plugin_name for h in self._processors)),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def cleanup(self) -> None:
        """Unregister every active plugin and drop all hooks."""
        self._check_disposed()
        for name in self.active_plugins():
            await self.unregister(name)
        self._processors = []
        self._search_extensions = []

    async def dispose(self) -> None:
        if self._disposed:
            return
        await self.cleanup()
        self._disposed = True
        logger.debug("PluginManager disposed")
