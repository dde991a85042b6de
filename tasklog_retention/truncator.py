"""Per-file truncation: rewrite one attempt's slice of a shared log file.

The input stream must be positioned at the start of the attempt's original
slice and the output stream right after the slices already written. Only
the tail of each slice is kept; a marker line is written in front of it
whenever bytes were dropped.
"""

from __future__ import annotations

import os
from typing import BinaryIO

import structlog

from tasklog_retention.exceptions import ShortSkipError
from tasklog_retention.models.logfile import LogFileDetail
from tasklog_retention.policy import truncation_enabled

log = structlog.get_logger(__name__)

TRUNCATED_MSG = b"[ ... this log file was truncated because of excess length]\n"
DEFAULT_BUFFER_SIZE = 4 * 1024


def skip_bytes(stream: BinaryIO, count: int) -> int:
    """Advance ``stream`` by up to ``count`` bytes and return how far it moved.

    Never moves past end-of-file, so a short return value means the stream
    holds fewer bytes than the caller expected.
    """
    if count <= 0:
        return 0
    if stream.seekable():
        pos = stream.tell()
        end = stream.seek(0, os.SEEK_END)
        target = min(pos + count, end)
        stream.seek(target)
        return max(target - pos, 0)
    skipped = 0
    while skipped < count:
        chunk = stream.read(min(DEFAULT_BUFFER_SIZE, count - skipped))
        if not chunk:
            break
        skipped += len(chunk)
    return skipped


def copy_bytes(src: BinaryIO, out: BinaryIO, count: int, buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
    """Copy up to ``count`` bytes in bounded chunks; stops early at end-of-stream."""
    copied = 0
    while copied < count:
        chunk = src.read(min(buffer_size, count - copied))
        if not chunk:
            break
        out.write(chunk)
        copied += len(chunk)
    return copied


def truncate_slice(
    detail: LogFileDetail,
    retain_size: int,
    out: BinaryIO,
    src: BinaryIO,
    *,
    label: str = "",
) -> LogFileDetail:
    """Write the retained part of one attempt's slice and return its new detail.

    The returned detail keeps the original location; its ``start`` is left at
    0 for the caller to place. Its length is what was actually written, which
    can be shorter than requested if the file held fewer bytes than recorded.
    """
    new_length = 0
    if truncation_enabled(retain_size) and detail.length > retain_size:
        log.info(
            "truncate.slice",
            target=label,
            original_length=detail.length,
            retain_size=retain_size,
        )
        to_skip = detail.length - retain_size
        skipped = skip_bytes(src, to_skip)
        if skipped != to_skip:
            raise ShortSkipError(skipped, to_skip, label)
        out.write(TRUNCATED_MSG)
        new_length += len(TRUNCATED_MSG)
        to_copy = retain_size
    else:
        log.debug(
            "truncate.slice_within_limit",
            target=label,
            length=detail.length,
            retain_size=retain_size,
        )
        to_copy = detail.length

    copied = copy_bytes(src, out, to_copy)
    if copied < to_copy:
        log.warning(
            "truncate.short_read",
            target=label,
            expected=to_copy,
            copied=copied,
        )
    return LogFileDetail(location=detail.location, length=new_length + copied)
