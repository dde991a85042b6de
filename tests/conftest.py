"""Shared pytest fixtures for tasklog-retention tests."""

from __future__ import annotations

import os
import pwd
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from tasklog_retention.layout.local import LocalLogLayout
from tasklog_retention.models.attempt import Attempt, AttemptCategory, WorkerProcess
from tasklog_retention.models.logfile import INDEX_TRACKED_KINDS, LogKind


def payload(tag: str, size: int) -> bytes:
    """Deterministic log-like content of exactly ``size`` bytes."""
    lines = []
    total = 0
    i = 0
    while total < size:
        line = f"{tag} line {i:05d}\n".encode()
        lines.append(line)
        total += len(line)
        i += 1
    return b"".join(lines)[:size]


@dataclass
class Worker:
    """A worker process laid out on disk, plus the bytes each attempt wrote."""

    layout: LocalLogLayout
    process: WorkerProcess
    contents: dict[str, dict[LogKind, bytes]] = field(default_factory=dict)

    @property
    def log_dir(self) -> Path:
        return self.process.log_dir

    def attempt(self, attempt_id: str) -> Attempt:
        return next(a for a in self.process.attempts if a.attempt_id == attempt_id)

    def read(self, kind: LogKind) -> bytes:
        return (self.log_dir / kind.value).read_bytes()

    def index(self, attempt_id: str) -> dict[LogKind, tuple[int, int]]:
        attempt = self.attempt(attempt_id)
        return self.layout.read_index(attempt_id, attempt.is_cleanup)[1]


@pytest.fixture
def owner() -> str:
    return pwd.getpwuid(os.getuid()).pw_name


@pytest.fixture
def make_worker(tmp_path):
    """Factory: lay out a worker's shared log files and per-attempt index files.

    ``attempts`` is a list of ``(attempt_id, category, {kind: size})``; kinds
    left out get no bytes from that attempt. The layout credits untracked kinds
    (no offsets in the index) wholly to the first attempt, so give them to it.
    """

    def _make(attempts, *, cleanup: set[str] | None = None) -> Worker:
        cleanup = cleanup or set()
        root = tmp_path / "userlogs"
        log_dir = root / attempts[0][0]
        log_dir.mkdir(parents=True)

        process_attempts = []
        contents: dict[str, dict[LogKind, bytes]] = {}
        shared: dict[LogKind, bytes] = {}
        layout = LocalLogLayout(root)

        for attempt_id, category, sizes in attempts:
            attempt = Attempt(
                attempt_id=attempt_id,
                category=AttemptCategory(category),
                is_cleanup=attempt_id in cleanup,
            )
            process_attempts.append(attempt)
            (root / attempt_id).mkdir(exist_ok=True)

            contents[attempt_id] = {}
            ranges = {}
            for kind in LogKind:
                data = payload(f"{attempt_id}-{kind.value}", sizes.get(kind, 0))
                contents[attempt_id][kind] = data
                start = len(shared.get(kind, b""))
                if kind in sizes:
                    shared[kind] = shared.get(kind, b"") + data
                if kind in INDEX_TRACKED_KINDS:
                    ranges[kind] = (start, start + len(data))
            layout.write_index(str(log_dir), attempt_id, attempt.is_cleanup, ranges)

        for kind, data in shared.items():
            (log_dir / kind.value).write_bytes(data)

        process = WorkerProcess(log_dir=log_dir, attempts=process_attempts)
        return Worker(layout=layout, process=process, contents=contents)

    return _make
