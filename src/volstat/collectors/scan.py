from __future__ import annotations

import logging
import os
import stat
import time
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    total_size_bytes: int = 0
    file_count: int = 0
    directory_count: int = 0
    error_count: int = 0
    elapsed_microseconds: int = 0

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_microseconds / 1_000_000


def scan_tree(root_path: str) -> ScanResult:
    """Walk the tree below root_path and total up what it holds.

    The root itself is not counted. Symlinks are not descended into; a link
    counts as a file with its own lstat size, and a dangling link is an
    error. Any entry that cannot be stat'ed, and any directory that cannot
    be listed, adds one to error_count. Nothing here raises for filesystem
    errors.
    """
    started = time.perf_counter()
    size = files = dirs = errors = 0

    pending: List[str] = [root_path]
    while pending:
        current = pending.pop()
        try:
            it = os.scandir(current)
        except OSError as e:
            logger.debug("cannot list %s: %s", current, e)
            errors += 1
            continue

        with it:
            while True:
                try:
                    entry = next(it)
                except StopIteration:
                    break
                except OSError as e:
                    logger.debug("error reading %s: %s", current, e)
                    errors += 1
                    break

                try:
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    logger.debug("cannot stat %s: %s", entry.path, e)
                    errors += 1
                    continue

                if stat.S_ISLNK(st.st_mode):
                    try:
                        os.stat(entry.path)
                    except OSError as e:
                        logger.debug("broken symlink %s: %s", entry.path, e)
                        errors += 1
                        continue

                if stat.S_ISDIR(st.st_mode):
                    dirs += 1
                    pending.append(entry.path)
                else:
                    files += 1
                    size += st.st_size

    elapsed = int((time.perf_counter() - started) * 1_000_000)
    return ScanResult(
        total_size_bytes=size,
        file_count=files,
        directory_count=dirs,
        error_count=errors,
        elapsed_microseconds=elapsed,
    )
