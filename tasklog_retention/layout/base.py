"""Log layout abstract interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from tasklog_retention.models.logfile import LogFileDetail, LogKind

# kind -> (start, end) as persisted in an attempt's index
Ranges = dict[LogKind, tuple[int, int]]


class LogLayout(ABC):
    """Where attempt logs live, who owns them, and how their index is stored.

    Every method signals failure with an ``OSError`` (usually one of the
    ``tasklog_retention.exceptions`` subclasses).
    """

    @abstractmethod
    def resolve_log_owner(self, attempt_id: str) -> str:
        """Return the user that owns the attempt's logs."""
        ...

    @abstractmethod
    def get_all_log_details(self, attempt_id: str, is_cleanup: bool) -> dict[LogKind, LogFileDetail]:
        """Read the current detail of every log kind for one attempt."""
        ...

    @abstractmethod
    def write_index(self, directory: str, attempt_id: str, is_cleanup: bool, ranges: Ranges) -> None:
        """Persist one attempt's (start, end) byte ranges."""
        ...

    @abstractmethod
    def open_for_read(self, path: Path, owner: str) -> BinaryIO:
        """Open an existing log file for reading, checking it belongs to ``owner``."""
        ...

    @abstractmethod
    def open_for_write(self, path: Path, mode: int = 0o644) -> BinaryIO:
        """Create a new file for writing; fails if it already exists."""
        ...
