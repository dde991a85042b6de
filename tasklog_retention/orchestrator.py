"""Truncation orchestrator: shrink every log file of a finished worker process.

Each log kind is an independent unit of work:

    skip    - the file is absent or every attempt is within its retain size
    open    - create ``truncate.tmp`` and open the current file for reading
    process - rewrite each attempt's slice, in execution order, into the temp file
    commit  - close both streams and rename the temp file over the original

A failure while opening, processing or committing aborts that kind only: the
temp file is removed, the original file stays authoritative and the kind's
index entries keep their pre-pass values. Index records are rewritten once,
after all kinds, and only if some index-tracked kind was committed.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from tasklog_retention.evaluator import detail_for, is_truncation_needed
from tasklog_retention.index_sync import IndexSynchronizer
from tasklog_retention.layout.base import LogLayout
from tasklog_retention.models.attempt import Attempt, WorkerProcess
from tasklog_retention.models.logfile import LogFileDetail, LogKind, OffsetTable, is_index_tracked
from tasklog_retention.policy import RetentionPolicy
from tasklog_retention.truncator import truncate_slice

log = structlog.get_logger(__name__)

TMP_FILE_NAME = "truncate.tmp"
TMP_FILE_MODE = 0o644


@dataclass
class KindResult:
    """Outcome of one kind's pass."""

    kind: LogKind
    status: str  # "skipped" | "committed" | "aborted"
    details: dict[Attempt, LogFileDetail] = field(default_factory=dict)
    new_size: int = 0
    detail: str = ""
    error: str | None = None

    @property
    def committed(self) -> bool:
        return self.status == "committed"


@dataclass
class TruncationResult:
    """Orchestrator return value."""

    details: OffsetTable = field(default_factory=dict)
    kinds: dict[LogKind, KindResult] = field(default_factory=dict)
    index_updated: bool = False
    index_failures: list[str] = field(default_factory=list)
    abandoned: bool = False
    reason: str | None = None

    def status_of(self, kind: LogKind) -> str | None:
        kind_result = self.kinds.get(kind)
        return kind_result.status if kind_result else None

    @property
    def committed_kinds(self) -> list[LogKind]:
        return [k for k, r in self.kinds.items() if r.committed]

    def get_summary(self) -> dict[str, Any]:
        return {
            "kinds": [
                {
                    "kind": r.kind.value,
                    "status": r.status,
                    "detail": r.detail,
                    "error": r.error,
                }
                for r in self.kinds.values()
            ],
            "abandoned": self.abandoned,
            "reason": self.reason,
            "index_updated": self.index_updated,
            "index_failures": list(self.index_failures),
        }



class LogsTruncater:
    """Truncate the logs of removed worker processes down to their retain sizes."""

    def __init__(
        self,
        policy: RetentionPolicy,
        layout: LogLayout,
        index_synchronizer: IndexSynchronizer | None = None,
    ) -> None:
        self.policy = policy
        self.layout = layout
        self.index_synchronizer = index_synchronizer or IndexSynchronizer(layout)
        log.info(
            "truncater.init",
            map_retain_size=policy.map_retain_size,
            reduce_retain_size=policy.reduce_retain_size,
        )

    def truncate_logs(self, process: WorkerProcess) -> TruncationResult:
        """Run one truncation pass. Never raises; failures are logged and reported."""
        result = TruncationResult()
        first_attempt = process.first_attempt

        try:
            owner = self.layout.resolve_log_owner(first_attempt.attempt_id)
        except OSError as e:
            log.error(
                "truncate.owner_unresolved",
                attempt=first_attempt.attempt_id,
                error=str(e),
                exc_info=True,
            )
            result.abandoned = True
            result.reason = f"cannot resolve log owner: {e}"
            return result

        try:
            original = self._load_details(process)
        except OSError as e:
            log.warning(
                "truncate.details_unavailable",
                log_dir=str(process.log_dir),
                error=str(e),
                exc_info=True,
            )
            result.abandoned = True
            result.reason = f"cannot read log details: {e}"
            return result

        # Start from the original index entries; committed kinds overwrite theirs
        updated: OffsetTable = {
            attempt: {k: d for k, d in original[attempt].items() if is_index_tracked(k)}
            for attempt in process.attempts
        }
        index_modified = False

        for kind in LogKind:
            log_file = process.log_dir / kind.value
            if not log_file.exists():
                result.kinds[kind] = KindResult(kind, "skipped", detail="log file absent")
                continue
            if not is_truncation_needed(process.attempts, original, kind, self.policy):
                log.debug("truncate.not_needed", path=str(log_file))
                result.kinds[kind] = KindResult(kind, "skipped", detail="within retain size")
                continue

            old_size = self._recorded_size(process, kind, original)
            kind_result = self._truncate_kind(process, kind, original, owner)
            result.kinds[kind] = kind_result
            if not kind_result.committed:
                continue

            kind_result.detail = f"{old_size} -> {kind_result.new_size} bytes"
            if is_index_tracked(kind):
                for attempt, detail in kind_result.details.items():
                    updated[attempt][kind] = detail
                index_modified = True


        result.details = updated
        if index_modified:
            result.index_failures = self.index_synchronizer.sync(
                str(process.log_dir), process.attempts, updated
            )
            result.index_updated = True
        return result

    def _load_details(self, process: WorkerProcess) -> OffsetTable:
        details: OffsetTable = {}
        for attempt in process.attempts:
            details[attempt] = dict(
                self.layout.get_all_log_details(attempt.attempt_id, attempt.is_cleanup)
            )
        return details

    @staticmethod
    def _recorded_size(process: WorkerProcess, kind: LogKind, original: OffsetTable) -> int:
        total = 0
        for attempt in process.attempts:
            detail = detail_for(original, attempt, kind)
            if detail is not None:
                total += detail.length
        return total

    def _truncate_kind(
        self,
        process: WorkerProcess,
        kind: LogKind,
        original: OffsetTable,
        owner: str,
    ) -> KindResult:
        log_file = process.log_dir / kind.value
        tmp_file = process.log_dir / TMP_FILE_NAME

        if tmp_file.exists():
            log.warning("truncate.stale_tmp_removed", path=str(tmp_file))
            self._discard(tmp_file)

        try:
            out = self.layout.open_for_write(tmp_file, TMP_FILE_MODE)
        except OSError as e:
            log.warning(
                "truncate.tmp_open_failed",
                path=str(tmp_file),
                log_file=str(log_file),
                error=str(e),
            )
            return KindResult(kind, "aborted", error=f"cannot open {tmp_file}: {e}")

        try:
            src = self.layout.open_for_read(log_file, owner)
        except OSError as e:
            log.warning("truncate.log_open_failed", path=str(log_file), error=str(e))
            self._close_quietly(out, tmp_file)
            self._discard(tmp_file)
            return KindResult(kind, "aborted", error=f"cannot open {log_file}: {e}")

        try:
            with src, out:
                details, new_size = self._rewrite(process, kind, original, src, out)
                self._copy_attributes(src, out)
            os.replace(tmp_file, log_file)
        except OSError as e:
            log.warning("truncate.kind_aborted", path=str(log_file), error=str(e), exc_info=True)
            self._discard(tmp_file)
            return KindResult(kind, "aborted", error=str(e))
        except Exception as e:
            log.exception("truncate.kind_failed", path=str(log_file))
            self._discard(tmp_file)
            return KindResult(kind, "aborted", error=repr(e))

        return KindResult(kind, "committed", details=details, new_size=new_size)

    def _rewrite(self, process, kind, original, src, out) -> tuple[dict[Attempt, LogFileDetail], int]:
        """Copy each attempt's retained tail into ``out``; return new details and total size."""
        new_details: dict[Attempt, LogFileDetail] = {}
        offset = 0
        for attempt in process.attempts:
            detail = detail_for(original, attempt, kind)
            if detail is None:
                detail = LogFileDetail(location=str(process.log_dir), length=0)
            new_detail = truncate_slice(
                detail,
                self.policy.retain_size_for(attempt.category),
                out,
                src,
                label=f"{kind} logs for {attempt}",
            )
            new_details[attempt] = new_detail.moved_to(offset)
            offset += new_detail.length
        return new_details, offset

    @staticmethod
    def _copy_attributes(src, out) -> None:
        """Give the temp file the original's permissions and ownership."""
        src_st = os.fstat(src.fileno())
        out_st = os.fstat(out.fileno())
        if (src_st.st_uid, src_st.st_gid) != (out_st.st_uid, out_st.st_gid):
            os.fchown(out.fileno(), src_st.st_uid, src_st.st_gid)
        os.fchmod(out.fileno(), stat.S_IMODE(src_st.st_mode))

    @staticmethod
    def _close_quietly(stream, path: Path) -> None:
        try:
            stream.close()
        except OSError:
            log.warning("truncate.close_failed", path=str(path), exc_info=True)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            log.warning("truncate.tmp_delete_failed", path=str(path), exc_info=True)
