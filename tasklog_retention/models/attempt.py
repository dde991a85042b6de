"""Data models for task attempts and the worker process hosting them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class AttemptCategory(str, enum.Enum):
    """Attempt category; selects which retain size applies."""

    MAP = "map"
    REDUCE = "reduce"


@dataclass(frozen=True)
class Attempt:
    """One executed task attempt. Read-only input to a truncation pass."""

    attempt_id: str
    category: AttemptCategory
    is_cleanup: bool = False  # cleanup variants keep a separate index file

    def __str__(self) -> str:
        return self.attempt_id


@dataclass
class WorkerProcess:
    """A worker process and the attempts it ran, in execution order."""

    log_dir: Path
    attempts: list[Attempt] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.log_dir = Path(self.log_dir)
        if not self.attempts:
            raise ValueError("A worker process must host at least one attempt")

    @property
    def first_attempt(self) -> Attempt:
        return self.attempts[0]
