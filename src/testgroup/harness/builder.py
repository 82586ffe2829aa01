"""TAP-style result builder that test groups hook into.

The :class:`Harness` is the process-wide reporting object that assertion
helpers talk to.  Its three reporting entry points (:meth:`Harness.ok`,
:meth:`Harness.skip` and :meth:`Harness.diag`) consult an interceptor slot at
call time, so that every call site in the process, including ones holding a
reference obtained before a group started, can be redirected while a group
is running.  The ``record_*`` / ``emit_diag`` methods are the real,
never-intercepted implementations.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict
from rich.console import Console

logger = logging.getLogger(__name__)

# Sentinel meaning "look up the ambient TODO excuse" for the ``todo`` keyword.
UNSET: Any = object()

TODO: ContextVar[str | None] = ContextVar("todo", default=None)

_PACKAGE = __name__.split(".", 1)[0]


@contextmanager
def todo(reason: str) -> Iterator[None]:
    """Mark every result reported inside the block as TODO with ``reason``."""
    token: Token[str | None] = TODO.set(str(reason))
    try:
        yield
    finally:
        TODO.reset(token)


def current_todo() -> str | None:
    """Return the ambient TODO excuse, or None outside any TODO block."""
    return TODO.get()


@dataclass(frozen=True, slots=True)
class CallerLocation:
    """Where a result was reported from, for diagnostics."""

    module: str
    filename: str
    lineno: int


class HarnessResult(BaseModel):
    """One line of harness output.

    Attributes:
    ----------
    number: int
        1-based position in the output stream
    passed: bool
        Whether the result counts as a pass (always true for skips)
    name: str | None
        Optional result name
    todo: str | None
        TODO excuse in effect when the result was reported
    skip_reason: str | None
        Reason given for a skip
    skipped: bool
        Whether this result is a skip
    """

    model_config = ConfigDict(frozen=True)

    number: int
    passed: bool
    name: str | None = None
    todo: str | None = None
    skip_reason: str | None = None
    skipped: bool = False

    def as_tap(self) -> str:
        line = "ok" if self.passed else "not ok"
        line += f" {self.number}"
        if self.name:
            line += " - " + self.name.replace("#", "\\#")
        if self.skipped:
            line += " # skip"
            if self.skip_reason:
                line += f" {self.skip_reason}"
        elif self.todo is not None:
            line += f" # TODO {self.todo}"
        return line


class Interceptor(Protocol):
    """Redirection target for the harness reporting entry points."""

    def ok(self, status: object, name: str | None = None, *, todo: Any = UNSET) -> bool: ...

    def skip(self, reason: str | None = None) -> None: ...

    def diag(self, *messages: object) -> None: ...


class Harness:
    """Numbers, records and prints results in a TAP-like format."""

    def __init__(
        self,
        console: Console | None = None,
        diag_console: Console | None = None,
    ) -> None:
        self.console = console if console is not None else Console(highlight=False, soft_wrap=True)
        self.diag_console = (
            diag_console if diag_console is not None else Console(stderr=True, highlight=False, soft_wrap=True)
        )
        self.results: list[HarnessResult] = []
        self._interceptor: Interceptor | None = None

    # -- intercepted entry points -------------------------------------------

    def ok(self, status: object, name: str | None = None, *, todo: Any = UNSET) -> bool:
        """Report a pass/fail result.

        ``todo`` forces the TODO excuse of this one result; None forces "no
        excuse".  When left unset the ambient TODO excuse applies.
        """
        if self._interceptor is not None:
            return self._interceptor.ok(status, name, todo=todo)
        return self.record_ok(status, name, todo=todo)

    def skip(self, reason: str | None = None) -> None:
        if self._interceptor is not None:
            self._interceptor.skip(reason)
            return
        self.record_skip(reason)

    def diag(self, *messages: object) -> None:
        if self._interceptor is not None:
            self._interceptor.diag(*messages)
            return
        self.emit_diag(*messages)

    # -- redirection --------------------------------------------------------

    @property
    def interceptor(self) -> Interceptor | None:
        return self._interceptor

    def swap_interceptor(self, interceptor: Interceptor | None) -> Interceptor | None:
        """Install ``interceptor`` (None to stop intercepting); return the previous one."""
        previous = self._interceptor
        self._interceptor = interceptor
        return previous

    # -- real implementations -----------------------------------------------

    def record_ok(self, status: object, name: str | None = None, *, todo: Any = UNSET) -> bool:
        passed = bool(status)
        excuse = self.current_todo() if todo is UNSET else todo
        result = HarnessResult(
            number=len(self.results) + 1,
            passed=passed,
            name=None if name is None else str(name),
            todo=None if excuse is None else str(excuse),
        )
        self.results.append(result)
        self.console.print(result.as_tap(), markup=False, emoji=False, highlight=False, soft_wrap=True)

        if not passed:
            location = self.caller()
            label = "Failed (TODO)" if result.todo is not None else "Failed"
            where = f"at {location.filename} line {location.lineno}."
            if result.name is not None:
                text = f"  {label} test '{result.name}'\n  {where}\n"
            else:
                text = f"  {label} test {where}\n"
            # Excused failures go to the result stream, as TAP consumers expect.
            target = self.console if result.todo is not None else self.diag_console
            self._print_diag(target, text)
        return passed

    def record_skip(self, reason: str | None = None) -> None:
        result = HarnessResult(
            number=len(self.results) + 1,
            passed=True,
            skipped=True,
            skip_reason=reason,
        )
        self.results.append(result)
        self.console.print(result.as_tap(), markup=False, emoji=False, highlight=False, soft_wrap=True)

    def emit_diag(self, *messages: object) -> None:
        self._print_diag(self.diag_console, "".join(str(m) for m in messages))

    def _print_diag(self, console: Console, text: str) -> None:
        for line in text.splitlines():
            console.print(f"# {line}" if line else "#", markup=False, emoji=False, highlight=False, soft_wrap=True)

    # -- context lookups ----------------------------------------------------

    def current_todo(self) -> str | None:
        return current_todo()

    def caller(self) -> CallerLocation:
        """Return the innermost stack frame outside this package."""
        frame = inspect.currentframe()
        try:
            while frame is not None:
                module = frame.f_globals.get("__name__", "")
                internal = module == _PACKAGE or module.startswith(f"{_PACKAGE}.")
                if not internal and module != "contextlib":
                    return CallerLocation(module, frame.f_code.co_filename, frame.f_lineno)
                frame = frame.f_back
        finally:
            del frame
        logger.warning("No caller frame found outside %s", _PACKAGE)
        return CallerLocation("__main__", "<unknown>", 0)

    # -- bookkeeping --------------------------------------------------------

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed and not r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.todo is None)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def is_passing(self) -> bool:
        return self.failed == 0

    def done_testing(self) -> bool:
        """Print the plan line and return whether the run passed."""
        self.console.print(f"1..{len(self.results)}", markup=False, emoji=False, highlight=False, soft_wrap=True)
        return self.is_passing


_default_harness: Harness | None = None
_HARNESS: ContextVar[Harness | None] = ContextVar("harness", default=None)


def get_harness() -> Harness:
    """Return the harness in effect, creating the process-wide one on first use."""
    global _default_harness
    harness = _HARNESS.get()
    if harness is not None:
        return harness
    if _default_harness is None:
        _default_harness = Harness()
    return _default_harness


@contextmanager
def harness_scope(harness: Harness) -> Iterator[Harness]:
    """Make ``harness`` the one returned by :func:`get_harness` inside the block."""
    token = _HARNESS.set(harness)
    try:
        yield harness
    finally:
        _HARNESS.reset(token)


__all__ = [
    "TODO",
    "UNSET",
    "CallerLocation",
    "Harness",
    "HarnessResult",
    "Interceptor",
    "current_todo",
    "get_harness",
    "harness_scope",
    "todo",
]
