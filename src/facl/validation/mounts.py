"""
Mount table parsing.

``mount -l`` prints one line per mounted filesystem:

    tank/share on /tank/share type zfs (rw,xattr,posixacl)

The filesystem a path lives on is the one with the longest mount point
that is a path prefix of it.
"""

import os
import re
from dataclasses import dataclass


_MOUNT_LINE = re.compile(
    r"^(?P<source>.+?) on (?P<target>.+?) type (?P<fstype>\S+)"
    r"(?: \((?P<options>[^)]*)\))?(?: \[.*\])?$"
)
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountEntry:
    """One mounted filesystem."""

    source: str
    target: str
    fs_type: str
    options: tuple[str, ...] = ()


def parse_mount_table(output: str) -> list[MountEntry]:
    """
    Parse ``mount -l`` output.

    Lines that do not look like mount entries are skipped.
    """
    mounts = []
    for line in output.splitlines():
        match = _MOUNT_LINE.match(line.strip())
        if match is None:
            continue
        target = _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), match["target"])
        options = tuple(o for o in (match["options"] or "").split(",") if o)
        mounts.append(MountEntry(match["source"], target, match["fstype"], options))
    return mounts


def is_under(path: str, mount_point: str) -> bool:
    """Whether path is mount_point or lies below it."""
    if mount_point == "/":
        return path.startswith("/")
    mount_point = mount_point.rstrip("/")
    return path == mount_point or path.startswith(mount_point + "/")


def find_mount(path: str, mounts: list[MountEntry]) -> MountEntry | None:
    """Return the mount holding path (longest matching mount point wins)."""
    abs_path = os.path.abspath(path)
    best: MountEntry | None = None
    for mount in mounts:
        if not is_under(abs_path, mount.target):
            continue
        if best is None or len(mount.target) >= len(best.target):
            best = mount
    return best
