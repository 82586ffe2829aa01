"""Minimal TAP-style harness that test groups report through."""

from .builder import (
    TODO,
    UNSET,
    CallerLocation,
    Harness,
    HarnessResult,
    Interceptor,
    current_todo,
    get_harness,
    harness_scope,
    todo,
)
from .more import diag, fail, is_, isnt, like, ok, pass_, skip

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
    # Assertion helpers
    "diag",
    "fail",
    "is_",
    "isnt",
    "like",
    "ok",
    "pass_",
    "skip",
]
