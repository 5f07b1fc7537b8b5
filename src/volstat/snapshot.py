from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional

from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily, Metric

from volstat.collectors.mounts import MountRecord
from volstat.collectors.scan import ScanResult
from volstat.collectors.usage import BlockUsage

PATH_LABELS = ["host_mount_path", "host_device", "path"]
DEVICE_LABELS = ["host_device"]


@dataclass(frozen=True)
class Snapshot:
    mount: MountRecord
    scan: ScanResult
    usage: BlockUsage
    updated_at: float = field(default_factory=time.time)


class SnapshotStore:
    """Holds the latest Snapshot. Writers replace it whole; readers get one reference."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[Snapshot] = None

    def publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._current = snapshot

    def current(self) -> Optional[Snapshot]:
        with self._lock:
            return self._current


def report(store: SnapshotStore, mount: MountRecord, scan: ScanResult, usage: BlockUsage) -> Snapshot:
    snap = Snapshot(mount=mount, scan=scan, usage=usage)
    store.publish(snap)
    return snap


class VolumeStatCollector:
    """Prometheus collector rendering the store's current snapshot as gauges."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def describe(self) -> list:
        # no eager collect() at registration time
        return []

    def collect(self) -> Iterator[Metric]:
        snap = self.store.current()
        if snap is None:
            return

        m = snap.mount
        path_labels = [m.mount_path, m.device_id, m.resolved_target_path]
        device_labels = [m.device_id]

        def path_gauge(name: str, doc: str, value: float) -> GaugeMetricFamily:
            g = GaugeMetricFamily(name, doc, labels=PATH_LABELS)
            g.add_metric(path_labels, value)
            return g

        def device_gauge(name: str, doc: str, value: float) -> GaugeMetricFamily:
            g = GaugeMetricFamily(name, doc, labels=DEVICE_LABELS)
            g.add_metric(device_labels, value)
            return g

        s = snap.scan
        yield path_gauge("volume_stat_size_bytes", "Size of all files in the path of the volume", s.total_size_bytes)
        yield path_gauge("volume_stat_files", "Number of files in the directory", s.file_count)
        yield path_gauge("volume_stat_directories", "Number of directories in the directory", s.directory_count)
        yield path_gauge("volume_stat_errors", "Number of errors while reading files", s.error_count)
        yield path_gauge("volume_stat_runtime_seconds", "Duration of the last scan", s.elapsed_seconds)

        u = snap.usage
        yield device_gauge("volume_stat_blocks_available_bytes", "Bytes available to unprivileged users", u.available_bytes)
        yield device_gauge("volume_stat_blocks_free_bytes", "Free bytes on the filesystem", u.free_bytes)
        yield device_gauge("volume_stat_blocks_used_bytes", "Used bytes on the filesystem", u.used_bytes)
        yield device_gauge("volume_stat_blocks_size_bytes", "Total size of the filesystem", u.total_bytes)
        yield device_gauge(
            "volume_stat_blocks_degraded",
            "1 if the last block statistics query failed and values are stale or zero",
            1 if u.degraded else 0,
        )


def build_registry(store: SnapshotStore) -> CollectorRegistry:
    registry = CollectorRegistry(auto_describe=False)
    registry.register(VolumeStatCollector(store))
    return registry
