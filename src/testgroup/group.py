"""The ``test`` entry point: run a group and report it as one result."""

from __future__ import annotations

import logging
import pprint
import traceback
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from testgroup.config import settings
from testgroup.harness.builder import Harness, get_harness
from testgroup.runner import GroupRunner

logger = logging.getLogger(__name__)

DIED_PREFIX = "*died* "


def _structured_payload(exc: BaseException) -> Any:
    if len(exc.args) != 1:
        return None
    payload = exc.args[0]
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    if isinstance(payload, (dict, list, tuple, set)):
        return payload
    return None


def _stringified(exc: BaseException) -> str | None:
    stringify = getattr(exc, "stringify", None)
    if not callable(stringify):
        return None
    return str(stringify()).rstrip("\n")


def _dumped(exc: BaseException) -> str | None:
    payload = _structured_payload(exc)
    if payload is None:
        return None
    return f"{type(exc).__qualname__}: {pprint.pformat(payload, indent=1)}"


def _plain(exc: BaseException) -> str | None:
    text = str(exc).rstrip("\n")
    if not text.strip():
        return None
    return f"{type(exc).__qualname__}: {text}"


def render_exception(exc: BaseException | None) -> str:
    """Best-effort text for a captured exception.

    Uses the exception's own ``stringify()`` when it has one, then a dump of a
    structured payload (a single dict, list, tuple, set or pydantic model
    argument), then its message. A step that raises is skipped; when nothing
    renders, a placeholder is returned.
    """
    if exc is None:
        return "an undefined exception"

    for step in (_stringified, _dumped, _plain):
        try:
            text = step(exc)
        except Exception:
            logger.debug("Rendering %s with %s failed", type(exc).__qualname__, step.__name__, exc_info=True)
            continue
        if text is not None:
            return text
    return "a blank exception"


def _report_exception(harness: Harness, name: str, exc: BaseException | None) -> None:
    message = f"Test '{name}' died:\n{render_exception(exc)}\n"
    current = settings()
    stream = current.log_stream
    if stream is not None:
        stream.write(message)
        if exc is not None:
            stream.write("".join(traceback.format_exception(exc)))
        stream.flush()
        harness.diag(f"test '{name}' died - see log file: '{current.logfile}'")
    else:
        harness.diag(message)


def test(name: str, body: Callable[[], Any] | None = None) -> Any:
    """Run ``body`` as a group of tests reported as a single result.

    Returns True if the group succeeded (including an unexpected TODO
    success), False if it failed (including an excused TODO failure), and
    None if it was skipped.

    Called with only a name, returns a decorator that runs the decorated
    function as the group body right away and binds the outcome::

        @test("hammering the server")
        def hammering():
            ok(connect())
    """
    if body is None:

        def decorator(fn: Callable[[], Any]) -> bool | None:
            return test(name, fn)

        return decorator

    harness = get_harness()
    runner = GroupRunner(name, body, harness=harness)
    runner.run()

    if runner.is_skipped():
        harness.skip(runner.skip_reason())
        return None

    if runner.got_exception():
        _report_exception(harness, name, runner.exception())
        name = DIED_PREFIX + name

    verdict = runner.compute_verdict()
    harness.ok(verdict.ok, name, todo=verdict.todo)
    return verdict.ok


test.__test__ = False  # type: ignore[attr-defined]


__all__ = ["DIED_PREFIX", "render_exception", "test"]
