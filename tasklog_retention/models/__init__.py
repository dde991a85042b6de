"""Data models for attempts, worker processes and log files."""

from tasklog_retention.models.attempt import Attempt, AttemptCategory, WorkerProcess
from tasklog_retention.models.logfile import (
    INDEX_TRACKED_KINDS,
    LogFileDetail,
    LogKind,
    OffsetTable,
    is_index_tracked,
)

__all__ = [
    "Attempt",
    "AttemptCategory",
    "INDEX_TRACKED_KINDS",
    "LogFileDetail",
    "LogKind",
    "OffsetTable",
    "WorkerProcess",
    "is_index_tracked",
]
