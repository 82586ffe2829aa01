"""Assertion helpers reporting through the current harness.

These are thin on purpose: each one reports exactly one result through
:func:`~testgroup.harness.builder.get_harness`, which is what lets a running
group observe them.
"""

from __future__ import annotations

import re
from typing import Any

from testgroup.harness.builder import get_harness


def ok(status: Any, name: str | None = None) -> bool:
    """Pass if ``status`` is truthy."""
    return get_harness().ok(status, name)


def pass_(name: str | None = None) -> bool:
    return get_harness().ok(True, name)


def fail(name: str | None = None) -> bool:
    return get_harness().ok(False, name)


def is_(got: Any, expected: Any, name: str | None = None) -> bool:
    """Pass if ``got == expected``; diagnose both values otherwise."""
    harness = get_harness()
    passed = harness.ok(got == expected, name)
    if not passed:
        harness.diag(f"         got: {got!r}\n", f"    expected: {expected!r}\n")
    return passed


def isnt(got: Any, unexpected: Any, name: str | None = None) -> bool:
    harness = get_harness()
    passed = harness.ok(got != unexpected, name)
    if not passed:
        harness.diag(f"         got: {got!r}\n", "    expected: anything else\n")
    return passed


def like(text: str, pattern: str | re.Pattern[str], name: str | None = None) -> bool:
    """Pass if ``pattern`` is found anywhere in ``text``."""
    harness = get_harness()
    passed = harness.ok(re.search(pattern, text) is not None, name)
    if not passed:
        shown = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
        harness.diag(f"                  {text!r}\n", f"    doesn't match '{shown}'\n")
    return passed


def skip(reason: str | None = None) -> None:
    get_harness().skip(reason)


def diag(*messages: object) -> None:
    get_harness().diag(*messages)


__all__ = ["diag", "fail", "is_", "isnt", "like", "ok", "pass_", "skip"]
