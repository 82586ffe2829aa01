"""One-shot wrappers applied around the body of the next group.

A plugin receives the next step as a zero-argument callable and decides
whether, when and how often to call it::

    def twice(next_step):
        next_step()
        next_step()

    next_test_plugin(twice)
    test("runs its body twice", body)

Plugins registered before a group are consumed by that group, whether it
runs or is skipped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Body = Callable[[], object]
Plugin = Callable[[Body], object]


def _bind(plugin: Plugin, next_step: Body) -> Body:
    def step() -> None:
        plugin(next_step)

    return step


class PluginChain:
    """FIFO queue of pending plugins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: list[Plugin] = []

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, wrapper: Plugin) -> None:
        if not callable(wrapper):
            raise TypeError(f"plugin must be callable, got {type(wrapper).__name__}")
        with self._lock:
            self._pending.append(wrapper)

    def drain_and_wrap(self, body: Body) -> Body:
        """Empty the queue and wrap ``body``; the first-registered plugin is outermost."""
        with self._lock:
            pending, self._pending = self._pending, []

        wrapped = body
        for plugin in reversed(pending):
            wrapped = _bind(plugin, wrapped)
        if pending:
            logger.debug("Wrapped group body with %d plugin(s)", len(pending))
        return wrapped

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()


_chain = PluginChain()


def plugin_chain() -> PluginChain:
    """Return the process-wide plugin chain."""
    return _chain


def next_test_plugin(wrapper: Plugin) -> Plugin:
    """Register ``wrapper`` around the next group's body. Usable as a decorator."""
    _chain.enqueue(wrapper)
    return wrapper


__all__ = ["Body", "Plugin", "PluginChain", "next_test_plugin", "plugin_chain"]
