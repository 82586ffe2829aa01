"""Redirecting harness reports to the running group.

While a group runs, the harness carries an :class:`InterceptionAdapter` in
its interceptor slot.  The adapter looks up the current runner on every call,
so nested groups only have to change which runner is current; the harness
itself is switched once, by the outermost group, and switched back when that
group finishes.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from testgroup.harness.builder import UNSET, Harness, Interceptor

if TYPE_CHECKING:
    from testgroup.runner import GroupRunner

logger = logging.getLogger(__name__)

_CURRENT_RUNNER: ContextVar[GroupRunner | None] = ContextVar("current_group_runner", default=None)


def current_runner() -> GroupRunner | None:
    """Return the innermost running group, or None outside any group."""
    return _CURRENT_RUNNER.get()


class InterceptionAdapter:
    """Stands in for the harness's reporting entry points during a group."""

    def __init__(self, harness: Harness) -> None:
        self._harness = harness

    def ok(self, status: object, name: str | None = None, *, todo: Any = UNSET) -> bool:
        runner = current_runner()
        if runner is None:
            return self._harness.record_ok(status, name, todo=todo)
        return runner.ok(status, name, todo=todo)

    def skip(self, reason: str | None = None) -> None:
        runner = current_runner()
        if runner is None:
            self._harness.record_skip(reason)
            return
        runner.skip(reason)

    def diag(self, *messages: object) -> None:
        runner = current_runner()
        if runner is None:
            self._harness.emit_diag(*messages)
            return
        runner.diag(*messages)


@dataclass(frozen=True, slots=True)
class Activation:
    """What :func:`activate` did, so :func:`deactivate` can undo exactly that."""

    runner: GroupRunner
    harness: Harness | None = None
    displaced: Interceptor | None = None
    parent: GroupRunner | None = None

    @property
    def top_level(self) -> bool:
        return self.harness is not None


def activate(runner: GroupRunner, harness: Harness) -> Activation:
    """Make ``runner`` the target of every harness report."""
    parent = current_runner()
    if parent is None:
        displaced = harness.swap_interceptor(InterceptionAdapter(harness))
        activation = Activation(runner=runner, harness=harness, displaced=displaced)
    else:
        activation = Activation(runner=runner, parent=parent)
    # Must follow the swap immediately: the adapter needs a current runner.
    _CURRENT_RUNNER.set(runner)
    logger.debug("Intercepting harness for group %r (nested=%s)", runner.name, parent is not None)
    return activation


def deactivate(activation: Activation) -> None:
    """Undo :func:`activate`: restore the harness, or the enclosing runner."""
    if activation.harness is not None:
        _CURRENT_RUNNER.set(None)
        activation.harness.swap_interceptor(activation.displaced)
    else:
        _CURRENT_RUNNER.set(activation.parent)
    logger.debug("Released harness from group %r", activation.runner.name)


__all__ = ["Activation", "InterceptionAdapter", "activate", "current_runner", "deactivate"]
