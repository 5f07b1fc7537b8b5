from __future__ import annotations

import os
from pathlib import Path

from volstat.collectors.mounts import (
    MountEntry,
    MountRecord,
    parse_mountinfo_line,
    resolve_mount,
    select_best_mount,
)

ROOT_LINE = "22 1 8:1 / / rw,relatime shared:1 - ext4 /dev/sda1 rw,errors=remount-ro"
DATA_LINE = "35 22 8:17 /data /data rw,noatime shared:20 - xfs /dev/sdb1 rw,attr2"


def _entry(mount_point: str, source: str = "/dev/x") -> MountEntry:
    return MountEntry(device_number="0:1", root=mount_point, mount_point=mount_point, fs_type="ext4", source=source)


def _write(tmp_path: Path, *lines: str) -> str:
    p = tmp_path / "mountinfo"
    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(p)


def test_parse_line_with_optional_fields():
    e = parse_mountinfo_line("36 35 98:0 /mnt1 /mnt2 rw,noatime master:1 shared:2 - ext3 /dev/root rw,errors=continue")
    assert e == MountEntry(device_number="98:0", root="/mnt1", mount_point="/mnt2", fs_type="ext3", source="/dev/root")


def test_parse_line_without_optional_fields():
    e = parse_mountinfo_line("40 22 0:35 / /tmp rw,nosuid - tmpfs tmpfs rw")
    assert e is not None
    assert e.mount_point == "/tmp"
    assert e.source == "tmpfs"


def test_parse_line_decodes_escapes():
    e = parse_mountinfo_line(r"41 22 8:2 /my\040vol /mnt/my\040vol rw - ext4 /dev/sda2 rw")
    assert e is not None
    assert e.mount_point == "/mnt/my vol"
    assert e.root == "/my vol"


def test_parse_garbage_is_none():
    assert parse_mountinfo_line("") is None
    assert parse_mountinfo_line("not a mountinfo line") is None


def test_longest_prefix_wins():
    entries = [_entry("/"), _entry("/data"), _entry("/data/app")]
    best = select_best_mount(entries, "/data/app/logs")
    assert best is not None and best.mount_point == "/data/app"


def test_longest_prefix_independent_of_order():
    entries = [_entry("/data/app"), _entry("/"), _entry("/data")]
    best = select_best_mount(entries, "/data/app/logs")
    assert best is not None and best.mount_point == "/data/app"


def test_tie_keeps_first_seen():
    entries = [_entry("/data", "/dev/first"), _entry("/data", "/dev/second")]
    best = select_best_mount(entries, "/data/x")
    assert best is not None and best.source == "/dev/first"


def test_no_match_is_none():
    assert select_best_mount([_entry("/srv")], "/data/x") is None


def test_resolve_root_and_data(tmp_path):
    path = _write(tmp_path, ROOT_LINE, DATA_LINE)
    rec = resolve_mount("/data/app/logs", path)
    assert rec.mount_path == "/data"
    assert rec.mount_point == "/data"
    assert rec.device_id == "/dev/sdb1"
    assert rec.device_number == "8:17"
    assert rec.fs_type == "xfs"
    assert rec.resolved_target_path == "/data/app/logs"


def test_resolve_reports_host_root_of_bind_mount(tmp_path):
    bind = "50 22 253:0 /var/lib/kubelet/pods/abc/volumes/v1 /data rw - ext4 /dev/mapper/vg-root rw"
    path = _write(tmp_path, ROOT_LINE, bind)
    rec = resolve_mount("/data", path)
    assert rec.mount_path == "/var/lib/kubelet/pods/abc/volumes/v1"
    assert rec.device_id == "/dev/mapper/vg-root"


def test_resolve_canonicalizes_relative_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = _write(tmp_path, ROOT_LINE)
    rec = resolve_mount("sub/dir", path)
    assert rec.resolved_target_path == os.path.join(os.getcwd(), "sub", "dir")
    assert rec.mount_point == "/"


def test_resolve_no_match_is_unknown(tmp_path):
    path = _write(tmp_path, DATA_LINE)
    rec = resolve_mount("/srv/other", path)
    assert rec.is_unknown
    assert rec == MountRecord.unknown("/srv/other")


def test_resolve_unreadable_table_is_unknown(tmp_path):
    rec = resolve_mount("/data", str(tmp_path / "missing"))
    assert rec.mount_path == "unknown"
    assert rec.device_id == "unknown"
    assert rec.resolved_target_path == "/data"


def test_resolve_skips_malformed_lines(tmp_path):
    path = _write(tmp_path, "garbage", ROOT_LINE, "", DATA_LINE)
    assert resolve_mount("/data/x", path).device_id == "/dev/sdb1"
