from __future__ import annotations

import os
import platform
import time
from typing import Any, Dict, Optional

import psutil

from volstat.collectors.mounts import MountRecord
from volstat.snapshot import Snapshot

VERSION = "0.1.0"


def _process_stats() -> Dict[str, Any]:
    proc = psutil.Process(os.getpid())
    with proc.oneshot():
        rss = int(proc.memory_info().rss)
        started = float(proc.create_time())
    return {
        "rss_bytes": rss,
        "uptime_seconds": max(0, int(time.time() - started)),
    }


def _blocks(snapshot: Optional[Snapshot]) -> Optional[Dict[str, Any]]:
    if snapshot is None:
        return None
    u = snapshot.usage
    return {
        "block_size": u.block_size,
        "usage_ratio": round(u.usage_ratio, 4),
        "degraded": u.degraded,
    }


def get_info(
    mount: MountRecord,
    snapshot: Optional[Snapshot],
    config_path: Optional[str] = None,
    service: str = "volstat",
    version: str = VERSION,
) -> Dict[str, Any]:
    info: Dict[str, Any] = {
        "service": service,
        "version": version,
        "pid": os.getpid(),
        "python": platform.python_version(),
        "config_path": config_path,
        "path": mount.resolved_target_path,
        "mount": {
            "host_mount_path": mount.mount_path,
            "host_device": mount.device_id,
            "mount_point": mount.mount_point,
            "device_number": mount.device_number,
            "fs_type": mount.fs_type,
            "resolved": not mount.is_unknown,
        },
        "last_update": snapshot.updated_at if snapshot else None,
        "blocks": _blocks(snapshot),
    }
    info.update(_process_stats())
    return info
