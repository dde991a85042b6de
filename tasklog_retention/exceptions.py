"""Custom exceptions for tasklog-retention.

Every error derives from ``OSError`` as well, so collaborators that raise a
plain ``OSError`` are recovered exactly like the package's own failures.
"""


class LogRetentionError(OSError):
    """Base exception for all log retention errors."""


class OwnerResolutionError(LogRetentionError):
    """Raised when the owner of an attempt's log directory cannot be established."""


class LogDetailsError(LogRetentionError):
    """Raised when an attempt's log-file details cannot be read or parsed."""


class OwnershipMismatchError(LogRetentionError):
    """Raised when a file is not owned by the expected user."""

    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"Owner of {path} is '{actual}', expected '{expected}'")


class ShortSkipError(LogRetentionError):
    """Raised when skipping ahead in a log file advances fewer bytes than requested."""

    def __init__(self, skipped: int, expected: int, detail: str = ""):
        self.skipped = skipped
        self.expected = expected
        suffix = f" while truncating {detail}" if detail else ""
        super().__init__(f"Erroneously skipped {skipped} instead of the expected {expected}{suffix}")


class IndexWriteError(LogRetentionError):
    """Raised when an attempt's index record cannot be persisted."""
