"""Decide whether a shared log file needs rewriting at all."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from tasklog_retention.models.attempt import Attempt
from tasklog_retention.models.logfile import LogFileDetail, LogKind, OffsetTable
from tasklog_retention.policy import RetentionPolicy

log = structlog.get_logger(__name__)


def detail_for(details: OffsetTable, attempt: Attempt, kind: LogKind) -> LogFileDetail | None:
    return details.get(attempt, {}).get(kind)


def is_truncation_needed(
    attempts: Iterable[Attempt],
    details: OffsetTable,
    kind: LogKind,
    policy: RetentionPolicy,
) -> bool:
    """Return True if any attempt's contribution to ``kind`` exceeds its retain size.

    Rewriting touches every byte of the shared file, so files where all
    attempts are within budget are left alone.
    """
    for attempt in attempts:
        detail = detail_for(details, attempt, kind)
        if detail is None:
            continue
        if policy.needs_truncation(attempt.category, detail.length):
            log.debug(
                "truncate.needed",
                kind=str(kind),
                attempt=attempt.attempt_id,
                length=detail.length,
                retain_size=policy.retain_size_for(attempt.category),
            )
            return True
    return False
