"""Event bus for loose-coupled extensibility.

Provides a lightweight publish/subscribe system that lets components
communicate without direct dependencies. Hooks can be sync or async.

Usage::

    from folio.core.events import EventBus, Event, DOCUMENT_ADDED

    bus = EventBus()

    async def on_added(event: Event) -> None:
        print(f"Added: {event.payload['id']}")

    bus.on(DOCUMENT_ADDED, on_added)
    await bus.emit(Event(name=DOCUMENT_ADDED, payload={"id": "hello"}, source="store"))
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

ENGINE_INITIALIZED = "engine.initialized"
ENGINE_DISPOSED = "engine.disposed"
DOCUMENT_ADDED = "document.added"
INDEX_BUILT = "index.built"
SEARCH_EXECUTED = "search.executed"
PLUGIN_LOADED = "plugin.loaded"
PLUGIN_UNLOADED = "plugin.unloaded"
PLUGIN_ERROR = "plugin.error"

# Type alias for hook callables (sync or async)
Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """Pub/sub event bus supporting sync and async hooks.

    A failing hook is logged and never stops the remaining hooks or the emitter.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []
        self._once: set[int] = set()
        self._background_tasks: set[asyncio.Task] = set()

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        self._hooks[event_name].append(hook)

    def once(self, event_name: str, hook: Hook) -> None:
        """Register *hook* to fire for the next *event_name* only."""
        self._hooks[event_name].append(hook)
        self._once.add(id(hook))

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        hooks = self._hooks.get(event_name)
        if hooks and hook in hooks:
            hooks.remove(hook)
            self._once.discard(id(hook))

    def listener_count(self, event_name: str) -> int:
        return len(self._hooks.get(event_name, [])) + len(self._wildcard_hooks)

    def clear(self) -> None:
        """Remove every hook."""
        self._hooks.clear()
        self._wildcard_hooks.clear()
        self._once.clear()

    def _collect(self, event_name: str) -> list[Hook]:
        hooks = list(self._hooks.get(event_name, []))
        for hook in hooks:
            if id(hook) in self._once:
                self.off(event_name, hook)
        hooks.extend(self._wildcard_hooks)
        return hooks

    async def emit(self, event: Event) -> None:
        """Emit an event, running all matching hooks in registration order."""
        for hook in self._collect(event.name):
            try:
                result = hook(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Emit from a sync context.

        If a running event loop exists, schedules async hooks as tasks.
        Otherwise async hooks are skipped.
        """
        loop: asyncio.AbstractEventLoop | None = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            pass

        for hook in self._collect(event.name):
            try:
                if inspect.iscoroutinefunction(hook):
                    if loop is not None:
                        task = loop.create_task(self._run_async(hook, event))
                        self._background_tasks.add(task)
                        task.add_done_callback(self._background_tasks.discard)
                    else:
                        logger.debug(f"Skipping async hook {hook!r}: no running event loop")
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    @staticmethod
    async def _run_async(hook: Hook, event: Event) -> None:
        try:
            await hook(event)
        except Exception as exc:
            logger.warning(f"Event hook failed for {event.name}: {exc}")
