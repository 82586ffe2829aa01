"""testgroup - group related checks into single named test results."""

from .config import (
    GroupConfig,
    catch_exceptions,
    configure,
    dont_catch_exceptions,
    load_config,
    logfile,
    settings,
    verbose,
)
from .errors import AlreadySkippingError, IncorrectCallError, TestGroupError
from .group import render_exception, test
from .harness import Harness, get_harness, harness_scope, todo
from .interception import current_runner
from .plugins import next_test_plugin
from .runner import GroupRunner, SubtestRecord, Verdict
from .skipping import (
    begin_skipping_tests,
    end_skipping_tests,
    skip_next_test,
    skip_next_tests,
    test_only,
)

__version__ = "0.1.0"


__all__ = [
    # Groups
    "test",
    "skip_next_test",
    "skip_next_tests",
    "begin_skipping_tests",
    "end_skipping_tests",
    "test_only",
    "next_test_plugin",
    # Settings
    "GroupConfig",
    "catch_exceptions",
    "configure",
    "dont_catch_exceptions",
    "load_config",
    "logfile",
    "settings",
    "verbose",
    # Harness
    "Harness",
    "get_harness",
    "harness_scope",
    "todo",
    # Internals for extension and self-testing
    "GroupRunner",
    "SubtestRecord",
    "Verdict",
    "current_runner",
    "render_exception",
    # Errors
    "AlreadySkippingError",
    "IncorrectCallError",
    "TestGroupError",
]
