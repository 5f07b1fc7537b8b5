from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockUsage:
    total_bytes: int
    free_bytes: int
    available_bytes: int
    used_bytes: int
    block_size: int = 0
    degraded: bool = False

    @property
    def usage_ratio(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes

    @classmethod
    def zero(cls, degraded: bool = True) -> BlockUsage:
        return cls(total_bytes=0, free_bytes=0, available_bytes=0, used_bytes=0, degraded=degraded)

    def as_degraded(self) -> BlockUsage:
        return replace(self, degraded=True)


def block_usage_from_statvfs(st: Any) -> BlockUsage:
    bsize = int(st.f_frsize)
    total = int(st.f_blocks) * bsize
    free = int(st.f_bfree) * bsize
    return BlockUsage(
        total_bytes=total,
        free_bytes=free,
        available_bytes=int(st.f_bavail) * bsize,
        used_bytes=total - free,
        block_size=bsize,
    )


def read_block_usage(path: str) -> BlockUsage:
    """statvfs numbers for the filesystem holding path.

    On failure returns zeroed usage flagged as degraded; zero then means
    "unknown", not an empty filesystem.
    """
    try:
        st = os.statvfs(path)
    except OSError as e:
        logger.warning("statvfs failed for %s: %s", path, e)
        return BlockUsage.zero(degraded=True)
    return block_usage_from_statvfs(st)
