"""Data models for log streams and per-attempt byte ranges."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace

from tasklog_retention.models.attempt import Attempt


class LogKind(str, enum.Enum):
    """Log stream kinds. The value is the file name inside the log directory."""

    STDOUT = "stdout"
    STDERR = "stderr"
    SYSLOG = "syslog"
    PROFILE = "profile.out"
    DEBUGOUT = "debugout"

    def __str__(self) -> str:
        return self.value


# Only these kinds are recorded in the per-attempt index files.
INDEX_TRACKED_KINDS: tuple[LogKind, ...] = (LogKind.STDOUT, LogKind.STDERR, LogKind.SYSLOG)


@dataclass(frozen=True)
class LogFileDetail:
    """An attempt's contribution to one shared log file."""

    location: str  # directory holding the shared file; unchanged by truncation
    length: int  # bytes contributed by this attempt
    start: int = 0  # offset of the contribution inside the shared file

    @property
    def end(self) -> int:
        return self.start + self.length

    def moved_to(self, start: int) -> LogFileDetail:
        return replace(self, start=start)


# (attempt -> kind -> detail), attempts kept in execution order
OffsetTable = dict[Attempt, dict[LogKind, LogFileDetail]]


def is_index_tracked(kind: LogKind) -> bool:
    return kind in INDEX_TRACKED_KINDS
