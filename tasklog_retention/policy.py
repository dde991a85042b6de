"""Retention policy: how many trailing bytes of each attempt's logs to keep."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tasklog_retention.models.attempt import AttemptCategory

MAP_USERLOG_RETAIN_SIZE = "mapreduce.cluster.map.userlog.retain-size"
REDUCE_USERLOG_RETAIN_SIZE = "mapreduce.cluster.reduce.userlog.retain-size"

ENV_MAP_RETAIN_SIZE = "TASKLOG_MAP_RETAIN_SIZE"
ENV_REDUCE_RETAIN_SIZE = "TASKLOG_REDUCE_RETAIN_SIZE"

DEFAULT_RETAIN_SIZE = -1  # unlimited
MINIMUM_RETAIN_SIZE_FOR_TRUNCATION = 0


def truncation_enabled(retain_size: int) -> bool:
    """Retain sizes at or below the minimum (0 or the -1 sentinel) disable truncation."""
    return retain_size > MINIMUM_RETAIN_SIZE_FOR_TRUNCATION


def _parse_size(key: str, value: Any) -> int:
    if value is None:
        return DEFAULT_RETAIN_SIZE
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid retain size for {key}: {value!r}") from None


@dataclass(frozen=True)
class RetentionPolicy:
    """Configured retain sizes, one per attempt category."""

    map_retain_size: int = DEFAULT_RETAIN_SIZE
    reduce_retain_size: int = DEFAULT_RETAIN_SIZE

    @classmethod
    def from_conf(cls, conf: Mapping[str, Any]) -> RetentionPolicy:
        """Build from scheduler-style configuration keys."""
        return cls(
            map_retain_size=_parse_size(
                MAP_USERLOG_RETAIN_SIZE, conf.get(MAP_USERLOG_RETAIN_SIZE)
            ),
            reduce_retain_size=_parse_size(
                REDUCE_USERLOG_RETAIN_SIZE, conf.get(REDUCE_USERLOG_RETAIN_SIZE)
            ),
        )

    @classmethod
    def from_env(cls) -> RetentionPolicy:
        """Build from ``TASKLOG_MAP_RETAIN_SIZE`` / ``TASKLOG_REDUCE_RETAIN_SIZE``."""
        return cls(
            map_retain_size=_parse_size(ENV_MAP_RETAIN_SIZE, os.environ.get(ENV_MAP_RETAIN_SIZE)),
            reduce_retain_size=_parse_size(
                ENV_REDUCE_RETAIN_SIZE, os.environ.get(ENV_REDUCE_RETAIN_SIZE)
            ),
        )

    def retain_size_for(self, category: AttemptCategory) -> int:
        if category is AttemptCategory.MAP:
            return self.map_retain_size
        return self.reduce_retain_size

    def needs_truncation(self, category: AttemptCategory, length: int) -> bool:
        """True iff a slice of ``length`` bytes exceeds an enabled retain size."""
        retain_size = self.retain_size_for(category)
        return truncation_enabled(retain_size) and length > retain_size
