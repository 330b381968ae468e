"""
Validation module for facl.

All engine operations run their target path through PathValidator
before any ACL tool is invoked:
    - Non-empty, not the root placeholder
    - No shell metacharacters
    - Exists on disk
    - Lives on a supported filesystem type (from the mount table)
"""

from facl.validation.mounts import MountEntry, find_mount, parse_mount_table
from facl.validation.paths import PathValidator

__all__ = [
    "MountEntry",
    "PathValidator",
    "find_mount",
    "parse_mount_table",
]
