"""
Path validation for ACL operations.

Every engine operation validates its target path first, and nothing is
executed when validation fails. Checks, in order:

    1. Path is non-empty and not the root placeholder ("/")
    2. Path contains none of the denylisted shell metacharacters
    3. Path exists (not-found is reported apart from other I/O errors)
    4. Path is on a filesystem type listed in supported_filesystems

Entry-set checks are not done here: whether an empty entry list is
acceptable depends on the operation, so each engine operation checks it.
"""

import logging
import os

from facl.errors import (
    InvalidInputError,
    PathNotFoundError,
    ReadError,
    UnsupportedFSError,
)
from facl.executor import CommandExecutor
from facl.schema import EngineSettings
from facl.validation.mounts import find_mount, parse_mount_table


class PathValidator:
    """
    Pre-flight checks shared by all engine operations.

    Usage:
        validator = PathValidator(executor, settings)
        validator.validate("/tank/share")  # raises on failure

    Attributes:
        executor: Runs mount(8) for the filesystem capability check
        settings: Denylist, supported filesystem types, tool paths
        logger: Where lookups are logged
    """

    def __init__(
        self,
        executor: CommandExecutor,
        settings: EngineSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or EngineSettings()
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, path: str, timeout: float | None = None) -> str | None:
        """
        Run all path checks.

        Returns:
            The filesystem type holding path

        Raises:
            InvalidInputError: Empty, root, or denylisted characters
            PathNotFoundError: Path does not exist
            ReadError: Path or mount table could not be inspected
            UnsupportedFSError: Path is not on a supported filesystem
        """
        self.check_syntax(path)
        self.check_exists(path)
        return self.check_filesystem(path, timeout=timeout)

    def check_syntax(self, path: str) -> None:
        """Reject empty, root and metacharacter-bearing paths."""
        if not path or not path.strip():
            raise InvalidInputError(reason="Path cannot be empty", path=path)

        if path.strip() == "/":
            raise InvalidInputError(reason="Path cannot be the filesystem root", path=path)

        denied = sorted({c for c in path if c in self.settings.denied_path_chars})
        if denied:
            raise InvalidInputError(
                reason=f"Path contains invalid characters: {''.join(denied)}",
                path=path,
            )

    def check_exists(self, path: str) -> None:
        """Stat the path, telling not-found apart from other failures."""
        try:
            os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            raise PathNotFoundError(path=path) from None
        except OSError as e:
            raise ReadError(path=path, underlying_error=str(e)) from e

    def filesystem_type(self, path: str, timeout: float | None = None) -> str | None:
        """
        Type of the filesystem holding path.

        Returns:
            The filesystem type, or None if no mount point covers the path

        Raises:
            ReadError: If the mount table could not be listed
        """
        result = self.executor.execute(self.settings.mount_path, ["-l"], timeout=timeout)
        if not result.success:
            raise ReadError(
                path=path,
                output=result.output,
                underlying_error=result.error or "mount table listing failed",
                timed_out=result.timed_out,
                timeout_seconds=result.metadata.get("timeout"),
            )

        mount = find_mount(path, parse_mount_table(result.output))
        if mount is None:
            return None

        self.logger.debug("Path %s is on %s (%s)", path, mount.target, mount.fs_type)
        return mount.fs_type

    def check_filesystem(self, path: str, timeout: float | None = None) -> str | None:
        """Require the path to be on a supported filesystem type, and return that type."""
        fs_type = self.filesystem_type(path, timeout=timeout)
        if fs_type not in self.settings.supported_filesystems:
            raise UnsupportedFSError(path=path, fs_type=fs_type)
        return fs_type
