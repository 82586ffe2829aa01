"""Skipping whole groups: counted skips, open-ended skips and name filters."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable
from typing import NamedTuple

from testgroup.errors import AlreadySkippingError

logger = logging.getLogger(__name__)

# Exact name, regex searched in the name, or predicate on the name.
FilterCriterion = str | re.Pattern[str] | Callable[[str], object] | None

INDEFINITE = -1


class SkipDecision(NamedTuple):
    skip: bool
    reason: str | None = None


def _run_everything(name: str) -> bool:
    return True


def resolve_criterion(criterion: FilterCriterion) -> Callable[[str], bool]:
    """Turn a filter criterion into a plain predicate, once, at registration."""
    match criterion:
        case None:
            return _run_everything
        case str():
            return lambda name: name == criterion
        case re.Pattern():
            return lambda name: criterion.search(name) is not None
        case _ if callable(criterion):
            return lambda name: bool(criterion(name))
    msg = f"test_only criterion must be a string, a compiled regex or a callable, got {type(criterion).__name__}"
    raise TypeError(msg)


class SkipController:
    """Decides, once per group run, whether the group is skipped.

    ``skip_counter`` is positive while skipping a fixed number of groups,
    ``INDEFINITE`` while skipping until :meth:`cancel_indefinite_skip`, and 0
    otherwise.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counter = 0
        self._reason: str | None = None
        self._filter: Callable[[str], bool] = _run_everything
        self._filter_reason: str | None = None

    @property
    def skip_counter(self) -> int:
        return self._counter

    @property
    def skip_reason(self) -> str | None:
        return self._reason

    @property
    def filter_reason(self) -> str | None:
        return self._filter_reason

    def skip_next(self, count: int, reason: str | None = None) -> None:
        if count < 0:
            raise ValueError(f"skip count must be >= 0, got {count}")
        with self._lock:
            self._ensure_not_skipping()
            if not count:
                return
            self._counter = count
            self._reason = reason

    def skip_indefinitely(self, reason: str | None = None) -> None:
        with self._lock:
            self._ensure_not_skipping()
            self._counter = INDEFINITE
            self._reason = reason

    def cancel_indefinite_skip(self) -> None:
        with self._lock:
            self._counter = 0
            self._reason = None

    def set_name_filter(self, criterion: FilterCriterion = None, reason: str | None = None) -> None:
        predicate = resolve_criterion(criterion)
        with self._lock:
            self._filter = predicate
            self._filter_reason = reason

    def should_skip(self, name: str) -> SkipDecision:
        with self._lock:
            if self._counter:
                reason = self._reason
                if self._counter > 0:
                    self._counter -= 1
                    if not self._counter:
                        self._reason = None
                logger.debug("Skipping group %r (counter now %d)", name, self._counter)
                return SkipDecision(True, reason)

            if not self._filter(name):
                logger.debug("Group %r filtered out by test_only", name)
                return SkipDecision(True, self._filter_reason)

        return SkipDecision(False)

    def reset(self) -> None:
        """Forget every skip and filter."""
        with self._lock:
            self._counter = 0
            self._reason = None
            self._filter = _run_everything
            self._filter_reason = None

    def _ensure_not_skipping(self) -> None:
        if self._counter:
            raise AlreadySkippingError(self._counter, self._reason)


_controller = SkipController()


def skip_controller() -> SkipController:
    """Return the process-wide skip controller."""
    return _controller


def skip_next_tests(count: int, reason: str | None = None) -> None:
    """Skip the next ``count`` groups (0 skips nothing); raises if already skipping."""
    _controller.skip_next(count, reason)


def skip_next_test(reason: str | None = None) -> None:
    """Skip the next group; raises if already skipping."""
    _controller.skip_next(1, reason)


def begin_skipping_tests(reason: str | None = None) -> None:
    """Skip every group until :func:`end_skipping_tests`; raises if already skipping."""
    _controller.skip_indefinitely(reason)


def end_skipping_tests() -> None:
    """Stop skipping groups. No effect when not skipping."""
    _controller.cancel_indefinite_skip()


def test_only(criterion: FilterCriterion = None, reason: str | None = None) -> None:
    """Skip every group whose name does not match ``criterion``.

    ``criterion`` may be an exact name, a compiled regex (searched anywhere in
    the name) or a predicate. Calling with no criterion runs everything again.
    """
    _controller.set_name_filter(criterion, reason)


test_only.__test__ = False  # type: ignore[attr-defined]


__all__ = [
    "INDEFINITE",
    "FilterCriterion",
    "SkipController",
    "SkipDecision",
    "begin_skipping_tests",
    "end_skipping_tests",
    "resolve_criterion",
    "skip_controller",
    "skip_next_test",
    "skip_next_tests",
    "test_only",
]
