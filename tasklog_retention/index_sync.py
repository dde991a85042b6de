"""Rewrite attempt index records after their log files were truncated."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from tasklog_retention.layout.base import LogLayout, Ranges
from tasklog_retention.models.attempt import Attempt
from tasklog_retention.models.logfile import INDEX_TRACKED_KINDS, OffsetTable

log = structlog.get_logger(__name__)


def ranges_for(details: OffsetTable, attempt: Attempt) -> Ranges:
    """(start, end) for every index-tracked kind; (0, 0) where nothing is recorded."""
    attempt_details = details.get(attempt, {})
    ranges: Ranges = {}
    for kind in INDEX_TRACKED_KINDS:
        detail = attempt_details.get(kind)
        ranges[kind] = (detail.start, detail.end) if detail is not None else (0, 0)
    return ranges


class IndexSynchronizer:
    """Persist each attempt's updated offsets through the layout's index writer."""

    def __init__(self, layout: LogLayout) -> None:
        self.layout = layout

    def sync(self, location: str, attempts: Iterable[Attempt], details: OffsetTable) -> list[str]:
        """Write every attempt's index; return the ids whose write failed.

        A failure for one attempt is logged and does not stop the others.
        """
        failed: list[str] = []
        for attempt in attempts:
            try:
                self.layout.write_index(
                    location, attempt.attempt_id, attempt.is_cleanup, ranges_for(details, attempt)
                )
            except OSError:
                log.warning(
                    "index.write_failed",
                    attempt=attempt.attempt_id,
                    location=location,
                    exc_info=True,
                )
                failed.append(attempt.attempt_id)
        return failed
