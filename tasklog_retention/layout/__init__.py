"""Log layout collaborators: ownership, secure file access and index records."""

from tasklog_retention.layout.base import LogLayout, Ranges
from tasklog_retention.layout.local import LocalLogLayout

__all__ = ["LocalLogLayout", "LogLayout", "Ranges"]
