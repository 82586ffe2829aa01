"""Running one group of tests as a single harness result.

A :class:`GroupRunner` executes a group body while the harness is
intercepted, collects every result the body reports as a
:class:`SubtestRecord`, and sums them up into one :class:`Verdict`:

 Situation                                  ok      todo
 Real success                               True    None
 Failure, exception, or no subtests at all  False   None
 Unexpected TODO success(es) in the group   True    excuse
 Only excused (TODO) failures in the group  False   excuse

If the verdict carries no excuse but the group itself runs in a TODO context
(its name contains the word TODO, or a TODO block was active when the runner
was created), that excuse is used instead.
"""

from __future__ import annotations

import logging
import re
import threading
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from testgroup.config import settings
from testgroup.errors import IncorrectCallError
from testgroup.harness.builder import TODO, UNSET, Harness, Interceptor, get_harness
from testgroup.interception import activate, current_runner, deactivate
from testgroup.plugins import plugin_chain
from testgroup.skipping import skip_controller

logger = logging.getLogger(__name__)

NO_EXPLANATION = "no explanation given"

_TODO_WORD = re.compile(r"\bTODO\b")

# Held for the whole of one run(); re-entrant so nested groups can start.
_RUN_LOCK = threading.RLock()


class SubtestRecord(BaseModel):
    """One result reported from inside a running group.

    Attributes:
    ----------
    status: bool
        Whether the subtest passed (skips count as passes)
    todo: str | None
        TODO excuse in effect when the subtest was reported, if any
    name: str | None
        Name the subtest was reported under, if any
    """

    model_config = ConfigDict(frozen=True)

    status: bool
    todo: str | None = None
    name: str | None = None

    @property
    def is_todo(self) -> bool:
        return self.todo is not None


class Verdict(NamedTuple):
    ok: bool
    todo: str | None = None


@dataclass(frozen=True, slots=True)
class Raised:
    """Outcome of a body that raised instead of returning."""

    exception: BaseException


@contextmanager
def _local_todo() -> Iterator[None]:
    """Hide the caller's TODO excuse from the body; restore it afterwards."""
    token = TODO.set(None)
    try:
        yield
    finally:
        TODO.reset(token)


def _make_todo_string(subtests: list[SubtestRecord]) -> str:
    return ", ".join(s.todo or NO_EXPLANATION for s in subtests)


class GroupRunner:
    """Runs one group body and sums up what happened inside it.

    Create it right before the group runs, call :meth:`run` once, then query
    it.  A runner is never reused.
    """

    def __init__(
        self,
        name: str,
        body: Callable[[], Any],
        *,
        mute: bool = False,
        harness: Harness | None = None,
    ) -> None:
        self.name = name
        self.body = body
        self._harness = harness if harness is not None else get_harness()
        # Captured now: the body will run with the TODO excuse hidden. An empty
        # excuse is not inherited.
        self.inherited_todo = self._harness.current_todo() or None
        enclosing = current_runner()
        self.mute = mute or (enclosing is not None and enclosing.mute)
        self.parent: weakref.ref[GroupRunner] | None = None
        self._displaced: Interceptor | None = None
        self._subtests: list[SubtestRecord] = []
        self._has_run = False
        self._skipped = False
        self._skip_reason: str | None = None
        self._got_exception = False
        self._exception: BaseException | None = None

    def __repr__(self) -> str:
        return f"<GroupRunner {self.name!r} subtests={len(self._subtests)}>"

    # -- running ------------------------------------------------------------

    def run(self) -> None:
        """Run the body, unless the group is to be skipped.

        Exceptions raised by the body are recorded when catching is enabled
        (see :func:`~testgroup.config.catch_exceptions`) and re-raised
        otherwise.
        """
        if self._has_run:
            raise IncorrectCallError("a GroupRunner can only run once")
        self._has_run = True

        with _RUN_LOCK:
            body = plugin_chain().drain_and_wrap(self.body)

            decision = skip_controller().should_skip(self.name)
            if decision.skip:
                self._skip(decision.reason)
                return

            if settings().verbosity:
                self._harness.diag(f"Running group of tests - {self.name}")
            logger.debug("Running group %r", self.name)

            activation = activate(self, self._harness)
            if activation.top_level:
                self._displaced = activation.displaced
            elif activation.parent is not None:
                self.parent = weakref.ref(activation.parent)
            try:
                outcome = self._run_with_local_todo(body)
            finally:
                deactivate(activation)

        if outcome is not None:
            if not settings().catch_exceptions:
                raise outcome.exception
            self._record_exception(outcome.exception)

    def _run_with_local_todo(self, body: Callable[[], Any]) -> Raised | None:
        """Call ``body`` with the TODO excuse hidden. Never raises an ``Exception``."""
        with _local_todo():
            try:
                body()
            except Exception as exc:
                return Raised(exc)
        return None

    def _skip(self, reason: str | None) -> None:
        self._skipped = True
        self._skip_reason = reason

    def _record_exception(self, exception: BaseException | None) -> None:
        # A cleanup step that raises while the body unwinds replaces the
        # original exception here; the original is its __context__.
        logger.debug("Group %r raised %r", self.name, exception)
        self._got_exception = True
        self._exception = exception

    # -- intercepted reports ------------------------------------------------

    def ok(self, status: object, name: str | None = None, *, todo: Any = UNSET) -> bool:
        """Record a subtest instead of printing it.

        The TODO excuse comes from the harness at report time, so TODO
        blocks opened inside the body apply.
        """
        passed = bool(status)
        name = None if name is None else str(name)
        excuse = self._harness.current_todo() if todo is UNSET else todo
        if excuse is not None:
            excuse = str(excuse)
        self._subtests.append(SubtestRecord(status=passed, todo=excuse, name=name))

        if not passed and not self.mute:
            location = self._harness.caller()
            label = "Failed (TODO)" if excuse is not None else "Failed"
            if name is not None:
                self.diag(
                    f"  {label} test '{name}'\n",
                    f"  in {location.filename} at line {location.lineno}.\n",
                )
            else:
                self.diag(f"  {label} test in {location.filename} at line {location.lineno}.\n")
        return passed

    def skip(self, reason: str | None = None) -> None:
        self._subtests.append(SubtestRecord(status=True))

    def diag(self, *messages: object) -> None:
        if self.mute:
            return
        target = self.original_dispatch()
        if target is not None:
            target.diag(*messages)
        else:
            self._harness.emit_diag(*messages)

    def original_dispatch(self) -> Interceptor | None:
        """Return the interceptor the outermost group displaced, if any."""
        if self._displaced is not None:
            return self._displaced
        parent = self.parent() if self.parent is not None else None
        if parent is not None:
            return parent.original_dispatch()
        return None

    # -- queries ------------------------------------------------------------

    def is_skipped(self) -> bool:
        return self._skipped

    def skip_reason(self) -> str | None:
        """Reason for skipping; may be None even when :meth:`is_skipped`."""
        return self._skip_reason

    def got_exception(self) -> bool:
        return self._got_exception

    def exception(self) -> BaseException | None:
        return self._exception

    def subtests(self) -> list[SubtestRecord]:
        return list(self._subtests)

    def unexcused_failure_subtests(self) -> list[SubtestRecord]:
        return [s for s in self._subtests if not s.status and not s.is_todo]

    def unexpected_success_subtests(self) -> list[SubtestRecord]:
        return [s for s in self._subtests if s.status and s.is_todo]

    def todo_subtests(self) -> list[SubtestRecord]:
        return [s for s in self._subtests if s.is_todo]

    def compute_verdict(self) -> Verdict:
        """Sum up the group as one ``(ok, todo)`` pair for the harness."""
        if self._skipped:
            raise IncorrectCallError("compute_verdict() should not be called for skipped groups")
        if not self._has_run:
            raise IncorrectCallError("compute_verdict() called before run()")

        ok: bool
        excuse: str | None
        if self._got_exception or not self._subtests or self.unexcused_failure_subtests():
            ok, excuse = False, None
        elif unexpected := self.unexpected_success_subtests():
            ok, excuse = True, _make_todo_string(unexpected)
        elif todos := self.todo_subtests():
            ok, excuse = False, _make_todo_string(todos)
        else:
            ok, excuse = True, None

        if excuse is None:
            if _TODO_WORD.search(self.name):
                excuse = self.name
            elif self.inherited_todo is not None:
                excuse = self.inherited_todo

        logger.debug("Group %r verdict: ok=%s todo=%r", self.name, ok, excuse)
        return Verdict(ok, excuse)


__all__ = ["NO_EXPLANATION", "GroupRunner", "Raised", "SubtestRecord", "Verdict"]
