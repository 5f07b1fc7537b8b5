from __future__ import annotations

import logging

from volstat.collectors.mounts import MountRecord
from volstat.collectors.scan import scan_tree
from volstat.collectors.usage import read_block_usage
from volstat.snapshot import Snapshot, SnapshotStore, report

logger = logging.getLogger(__name__)


class UpdateCycle:
    """One scan-and-report pass over a fixed target, callable repeatedly."""

    def __init__(self, mount: MountRecord, store: SnapshotStore):
        self.mount = mount
        self.store = store

    @property
    def target(self) -> str:
        return self.mount.resolved_target_path

    def __call__(self) -> Snapshot:
        logger.info("updating stats for %s", self.target)
        scan = scan_tree(self.target)
        usage = read_block_usage(self.target)

        if usage.degraded:
            prev = self.store.current()
            if prev is not None and prev.usage.total_bytes > 0:
                logger.warning("keeping previous block usage for %s", self.mount.device_id)
                usage = prev.usage.as_degraded()

        snap = report(self.store, self.mount, scan, usage)
        logger.info(
            "stats for %s: %d bytes, %d files, %d dirs, %d errors in %.3fs",
            self.target,
            scan.total_size_bytes,
            scan.file_count,
            scan.directory_count,
            scan.error_count,
            scan.elapsed_seconds,
        )
        return snap
