"""Local userlogs layout.

Each attempt has a directory ``<root>/<attempt_id>/`` holding an index file
(``log.index``, or ``log.index.cleanup`` for cleanup attempts)::

    LOG_DIR:/abs/path/of/the/worker/log/dir
    stdout:<start> <length>
    stderr:<start> <length>
    syslog:<start> <length>

Logs of every attempt run by one worker live in the shared ``LOG_DIR``.
"""

from __future__ import annotations

import os
import pwd
import stat
import tempfile
from pathlib import Path
from typing import BinaryIO

from tasklog_retention.exceptions import (
    IndexWriteError,
    LogDetailsError,
    OwnerResolutionError,
    OwnershipMismatchError,
)
from tasklog_retention.layout.base import LogLayout, Ranges
from tasklog_retention.models.logfile import INDEX_TRACKED_KINDS, LogFileDetail, LogKind

INDEX_FILE = "log.index"
CLEANUP_INDEX_FILE = "log.index.cleanup"
LOG_DIR_PREFIX = "LOG_DIR:"
INDEX_FILE_MODE = 0o644


def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


class LocalLogLayout(LogLayout):
    """Userlogs tree on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def attempt_dir(self, attempt_id: str) -> Path:
        return self.root / attempt_id

    def index_path(self, attempt_id: str, is_cleanup: bool) -> Path:
        name = CLEANUP_INDEX_FILE if is_cleanup else INDEX_FILE
        return self.attempt_dir(attempt_id) / name

    # -- ownership --

    def resolve_log_owner(self, attempt_id: str) -> str:
        attempt_dir = self.attempt_dir(attempt_id)
        try:
            st = os.stat(attempt_dir, follow_symlinks=False)
        except OSError as e:
            raise OwnerResolutionError(f"Cannot stat log dir {attempt_dir}: {e}") from e
        return _user_name(st.st_uid)

    # -- index records --

    def read_index(self, attempt_id: str, is_cleanup: bool) -> tuple[str, dict[LogKind, tuple[int, int]]]:
        """Parse an index file into (log_dir, {kind: (start, length)})."""
        path = self.index_path(attempt_id, is_cleanup)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise LogDetailsError(f"Cannot read index file {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise LogDetailsError(f"Index file {path} is not valid text: {e}") from e

        if not lines or not lines[0].startswith(LOG_DIR_PREFIX):
            raise LogDetailsError(f"Index file {path} does not start with {LOG_DIR_PREFIX}")
        log_dir = lines[0][len(LOG_DIR_PREFIX):].strip()

        entries: dict[LogKind, tuple[int, int]] = {}
        for line in lines[1:]:
            if not line.strip():
                continue
            name, sep, rest = line.partition(":")
            try:
                kind = LogKind(name)
                start_str, length_str = rest.split()
                start, length = int(start_str), int(length_str)
            except ValueError:
                raise LogDetailsError(f"Malformed entry in {path}: {line!r}") from None
            if start < 0 or length < 0:
                raise LogDetailsError(f"Negative offset in {path}: {line!r}")
            entries[kind] = (start, length)
        return log_dir, entries

    def hosts_shared_logs(self, attempt_id: str, log_dir: str) -> bool:
        """True if the shared log directory is this attempt's own directory.

        A worker writes its logs into the directory of the first attempt it
        ran; later attempts only point at it from their index.
        """
        return os.path.realpath(self.attempt_dir(attempt_id)) == os.path.realpath(log_dir)

    def get_all_log_details(self, attempt_id: str, is_cleanup: bool) -> dict[LogKind, LogFileDetail]:
        log_dir, entries = self.read_index(attempt_id, is_cleanup)
        hosts_shared = self.hosts_shared_logs(attempt_id, log_dir)
        details: dict[LogKind, LogFileDetail] = {}
        for kind in LogKind:
            if kind in INDEX_TRACKED_KINDS:
                start, length = entries.get(kind, (0, 0))
            else:
                # No offsets are recorded: the whole file goes to the hosting attempt
                start = 0
                length = 0
                if hosts_shared:
                    try:
                        length = os.path.getsize(Path(log_dir) / kind.value)
                    except FileNotFoundError:
                        pass
            details[kind] = LogFileDetail(location=log_dir, length=length, start=start)
        return details

    def write_index(self, directory: str, attempt_id: str, is_cleanup: bool, ranges: Ranges) -> None:
        path = self.index_path(attempt_id, is_cleanup)
        lines = [f"{LOG_DIR_PREFIX}{directory}"]
        for kind in INDEX_TRACKED_KINDS:
            start, end = ranges.get(kind, (0, 0))
            lines.append(f"{kind.value}:{start} {end - start}")
        content = "\n".join(lines) + "\n"

        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".log.index.", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                os.fchmod(f.fileno(), self._index_mode(path))
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
            raise IndexWriteError(f"Cannot write index file {path}: {e}") from e

    @staticmethod
    def _index_mode(path: Path) -> int:
        try:
            return stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            return INDEX_FILE_MODE

    # -- secure file access --

    def open_for_read(self, path: Path, owner: str) -> BinaryIO:
        fd = os.open(path, os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0))
        try:
            actual = _user_name(os.fstat(fd).st_uid)
            if actual != owner:
                raise OwnershipMismatchError(str(path), owner, actual)
            return os.fdopen(fd, "rb")
        except BaseException:
            os.close(fd)
            raise

    def open_for_write(self, path: Path, mode: int = 0o644) -> BinaryIO:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
        try:
            return os.fdopen(fd, "wb")
        except BaseException:
            os.close(fd)
            raise
