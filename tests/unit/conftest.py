"""Shared fixtures for unit tests."""

import io

import pytest
from rich.console import Console

from testgroup.config import reset_settings
from testgroup.harness import Harness, harness_scope
from testgroup.plugins import plugin_chain
from testgroup.skipping import skip_controller


class CapturedHarness(Harness):
    """Harness writing to in-memory consoles."""

    def __init__(self) -> None:
        self.out = io.StringIO()
        self.err = io.StringIO()
        super().__init__(
            console=Console(file=self.out, width=200),
            diag_console=Console(file=self.err, width=200),
        )

    def output_lines(self) -> list[str]:
        return self.out.getvalue().splitlines()

    def diagnostics(self) -> str:
        return self.err.getvalue()


def _reset_global_state() -> None:
    reset_settings()
    skip_controller().reset()
    plugin_chain().clear()


@pytest.fixture(autouse=True)
def harness():
    """Provide a fresh harness and clean process-wide state for every test."""
    _reset_global_state()
    captured = CapturedHarness()
    with harness_scope(captured):
        yield captured
    _reset_global_state()
