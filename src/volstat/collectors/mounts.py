from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from volstat.config import DEFAULT_MOUNTINFO

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# id parent major:minor root mount_point options [optional...] - fstype source super_options
_MOUNTINFO_RE = re.compile(
    r"^\d+ \d+ (?P<dev>\d+:\d+) (?P<root>\S+) (?P<mount_point>\S+) \S+(?: \S+)*? - "
    r"(?P<fs_type>\S+) (?P<source>\S+)"
)
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountEntry:
    device_number: str
    root: str
    mount_point: str
    fs_type: str
    source: str


@dataclass(frozen=True)
class MountRecord:
    mount_path: str
    device_id: str
    resolved_target_path: str
    mount_point: str = UNKNOWN
    device_number: str = UNKNOWN
    fs_type: str = UNKNOWN

    @property
    def is_unknown(self) -> bool:
        return self.mount_path == UNKNOWN and self.device_id == UNKNOWN

    @classmethod
    def unknown(cls, target: str) -> MountRecord:
        return cls(mount_path=UNKNOWN, device_id=UNKNOWN, resolved_target_path=target)


def _unescape(field: str) -> str:
    # the kernel writes space, tab, newline and backslash as \ooo
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_mountinfo_line(line: str) -> Optional[MountEntry]:
    m = _MOUNTINFO_RE.match(line.strip())
    if not m:
        return None
    return MountEntry(
        device_number=m.group("dev"),
        root=_unescape(m.group("root")),
        mount_point=_unescape(m.group("mount_point")),
        fs_type=m.group("fs_type"),
        source=_unescape(m.group("source")),
    )


def select_best_mount(entries: Iterable[MountEntry], target: str) -> Optional[MountEntry]:
    """Longest mount point that is a string prefix of target; first seen wins ties."""
    best: Optional[MountEntry] = None
    best_len = 0
    for entry in entries:
        mp = entry.mount_point
        if target.startswith(mp) and len(mp) > best_len:
            logger.debug("new best mount match for %s: %s", target, mp)
            best = entry
            best_len = len(mp)
    return best


def read_mountinfo(mountinfo_path: str = DEFAULT_MOUNTINFO) -> List[MountEntry]:
    entries: List[MountEntry] = []
    with open(mountinfo_path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            entry = parse_mountinfo_line(line)
            if entry is not None:
                entries.append(entry)
    return entries


def resolve_mount(target_path: str, mountinfo_path: str = DEFAULT_MOUNTINFO) -> MountRecord:
    """Find the mount backing target_path.

    Never raises: an unreadable mount table or a path with no matching
    mount yields the "unknown" record.
    """
    target = os.path.abspath(target_path)
    logger.info("resolving mount for %s", target)

    try:
        entries = read_mountinfo(mountinfo_path)
    except OSError as e:
        logger.warning("cannot read mount table %s: %s", mountinfo_path, e)
        return MountRecord.unknown(target)

    best = select_best_mount(entries, target)
    if best is None:
        logger.warning("no mount found for %s in %s", target, mountinfo_path)
        return MountRecord.unknown(target)

    record = MountRecord(
        mount_path=best.root,
        device_id=best.source,
        resolved_target_path=target,
        mount_point=best.mount_point,
        device_number=best.device_number,
        fs_type=best.fs_type,
    )
    logger.info(
        "%s is on %s (root %s, device %s %s)",
        target,
        record.mount_point,
        record.mount_path,
        record.device_id,
        record.device_number,
    )
    return record
