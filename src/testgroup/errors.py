"""Error types for testgroup."""

from pathlib import Path


class TestGroupError(Exception):
    """Base class for all testgroup errors."""

    __test__ = False


class AlreadySkippingError(TestGroupError):
    """Raised when a skip is requested while another one is still active."""

    def __init__(self, remaining: int, reason: str | None = None) -> None:
        self.remaining = remaining
        self.reason = reason
        super().__init__("ALREADY_SKIPPING")


class IncorrectCallError(TestGroupError):
    """Raised when the runner API is used out of order (developer error)."""

    def __init__(self, message: str) -> None:
        super().__init__(f"INCORRECT CALL: {message}")


class ConfigError(TestGroupError):
    """Raised when the [tool.testgroup] table cannot be loaded."""

    def __init__(self, source: Path, cause: Exception | None = None) -> None:
        self.source = source
        self.cause = cause

        message = f"Invalid testgroup configuration in {source}"
        if cause:
            message += f"\n\nCause: {cause}"

        super().__init__(message)


class LogfileError(TestGroupError):
    """Raised when the exception log file cannot be opened."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot open {path}: {cause}")


__all__ = [
    "AlreadySkippingError",
    "ConfigError",
    "IncorrectCallError",
    "LogfileError",
    "TestGroupError",
]
