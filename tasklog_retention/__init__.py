"""tasklog-retention: truncate worker-process task logs to their retain sizes."""

__version__ = "0.1.0"

from tasklog_retention.index_sync import IndexSynchronizer
from tasklog_retention.layout.base import LogLayout
from tasklog_retention.layout.local import LocalLogLayout
from tasklog_retention.models.attempt import Attempt, AttemptCategory, WorkerProcess
from tasklog_retention.models.logfile import INDEX_TRACKED_KINDS, LogFileDetail, LogKind
from tasklog_retention.orchestrator import LogsTruncater, TruncationResult
from tasklog_retention.policy import RetentionPolicy
from tasklog_retention.truncator import TRUNCATED_MSG

__all__ = [
    "Attempt",
    "AttemptCategory",
    "INDEX_TRACKED_KINDS",
    "IndexSynchronizer",
    "LocalLogLayout",
    "LogFileDetail",
    "LogKind",
    "LogLayout",
    "LogsTruncater",
    "RetentionPolicy",
    "TRUNCATED_MSG",
    "TruncationResult",
    "WorkerProcess",
]
