"""
ACL Engine for facl.

The Engine is the orchestration layer between typed ACL requests and the
platform ACL tools. It coordinates between:
- PathValidator: Pre-flight checks on the target path
- Codec: Tool text <-> ACLEntry conversion
- CommandExecutor: Runs getfacl/setfacl
- PrincipalResolver: Confirms domain principals exist

Operation Flow:
    1. Check the request shape (no external process is involved)
    2. Validate the path
    3. Apply the merge/replace policy (set only)
    4. Serialize entries into a scratch file and run the tool
    5. Wrap tool failures with the path and the tool's output

Design Principles:
    - Stateless: nothing is cached; every read re-runs getfacl
    - No retries: a failed or timed-out invocation is reported once
    - Best effort only in recursive listing: an unreadable child is
      logged and left out, it never fails the parent
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Generator

from facl.codec import format_entry, format_removal_entry, parse_acl_output
from facl.errors import (
    FaclError,
    InvalidInputError,
    InvalidPrincipalError,
    ParseError,
    ReadError,
    WriteError,
)
from facl.executor import CommandExecutor, ExecResult, SubprocessExecutor
from facl.resolver import DOMAIN_SEPARATOR, PrincipalResolver, split_domain_principal
from facl.schema import (
    BASE_ENTRY_TYPES,
    ACLConfig,
    ACLEntry,
    ACLListConfig,
    ACLListResult,
    ACLRemoveConfig,
    ACLType,
    AccessType,
    EngineSettings,
    EntryType,
)
from facl.validation import PathValidator


# getfacl: -c omits the "# file:" header, -p keeps absolute names
GETFACL_ARGS = ["-c", "-p"]


def merge_base_entries(
    current: list[ACLEntry],
    requested: list[ACLEntry],
) -> list[ACLEntry]:
    """
    Build the entry list for a full replace.

    A replace must not drop the owner, owning group or other entry. For
    each of those the request does not supply itself (as a non-default
    entry), the existing entry is carried over, ahead of the requested ones.

    Args:
        current: Entries presently on the path
        requested: Entries the caller wants the ACL replaced with

    Returns:
        Preserved base entries followed by the requested entries
    """
    supplied = {
        entry.base_category
        for entry in requested
        if not entry.is_default and entry.base_category is not None
    }

    preserved: list[ACLEntry] = []
    seen: set[EntryType] = set()
    for entry in current:
        if entry.is_default or entry.type not in BASE_ENTRY_TYPES:
            continue
        if entry.type in supplied or entry.type in seen:
            continue
        preserved.append(entry)
        seen.add(entry.type)

    return preserved + list(requested)


class ACLEngine:
    """
    Get, set, modify and remove filesystem ACLs.

    Usage:
        engine = ACLEngine(settings=load_settings("facl.yaml"))
        result = engine.get_acl(ACLListConfig(path="/tank/share"))
        engine.modify_acl(ACLConfig(path="/tank/share", entries=[...]))

    Attributes:
        settings: Tool paths, timeout and filesystem rules
        executor: Runs the external tools
        resolver: Directory lookups for domain principals (optional)
        validator: Path checks run before every operation
        logger: Injected logger
    """

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        settings: EngineSettings | None = None,
        resolver: PrincipalResolver | None = None,
        logger: logging.Logger | None = None,
        validator: PathValidator | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            executor: Tool runner (defaults to SubprocessExecutor)
            settings: Engine settings (defaults to EngineSettings())
            resolver: Principal resolver; without one resolve_ad_users is a no-op
            logger: Logger to use (defaults to this module's logger)
            validator: Path validator (defaults to one sharing executor and settings)
        """
        self.settings = settings or EngineSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.executor = executor or SubprocessExecutor(self.settings, self.logger)
        self.resolver = resolver
        self.validator = validator or PathValidator(self.executor, self.settings, self.logger)

    def close(self) -> None:
        """Release resources. The engine holds none between calls."""

    def __enter__(self) -> "ACLEngine":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    # =========================================================================
    # Get
    # =========================================================================

    def get_acl(self, cfg: ACLListConfig, timeout: float | None = None) -> ACLListResult:
        """
        Read the ACL of a path, optionally for its whole subtree.

        Children are visited depth-first in name order. A child that fails
        (vanished, unreadable, unparsable) is logged and omitted.

        Args:
            cfg: Path and recursion flag
            timeout: Deadline for each tool invocation

        Returns:
            ACLListResult tree

        Raises:
            InvalidInputError, PathNotFoundError, UnsupportedFSError: Validation
            ReadError: getfacl failed, or a directory could not be listed
            ParseError: getfacl output was malformed
        """
        return self._get_acl(cfg.path, cfg.recursive, timeout, top=True)

    def _get_acl(
        self,
        path: str,
        recursive: bool,
        timeout: float | None,
        top: bool,
    ) -> ACLListResult:
        fs_type = self.validator.validate(path, timeout=timeout)
        acl_type = self.detect_acl_type(path, timeout=timeout, fs_type=fs_type)

        result = self._run(self.settings.getfacl_path, [*GETFACL_ARGS, path], timeout)
        if not result.success:
            raise _tool_error(ReadError, path, result)

        try:
            entries = parse_acl_output(result.output, acl_type)
        except ParseError as e:
            e.path = path
            e.context["path"] = path
            raise

        listing = ACLListResult(path=path, type=acl_type, entries=entries)

        if not recursive or not _is_walkable_dir(path, top):
            return listing

        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            raise ReadError(path=path, underlying_error=str(e)) from e

        for name in names:
            child_path = os.path.join(path, name)
            try:
                child = self._get_acl(child_path, True, timeout, top=False)
            except FaclError as e:
                self.logger.error("Failed to get ACL for child path %s: %s", child_path, e)
                continue
            listing.children.append(child)

        return listing

    def detect_acl_type(
        self,
        path: str,
        timeout: float | None = None,
        fs_type: str | None = None,
    ) -> ACLType:
        """
        Decide which ACL dialect the path uses.

        Always POSIX for now: getfacl/setfacl on Linux only speak POSIX
        ACLs, even on filesystems that store NFSv4 ACLs. A detection
        failure is logged and never fails the caller.

        Args:
            path: Path to inspect
            timeout: Deadline for the mount table lookup
            fs_type: Filesystem type already found by validation; skips
                the lookup when given
        """
        if fs_type is None:
            try:
                fs_type = self.validator.filesystem_type(path, timeout=timeout)
            except FaclError as e:
                self.logger.warning(
                    "Failed to detect filesystem type for %s, defaulting to POSIX ACLs: %s",
                    path,
                    e,
                )
                return ACLType.POSIX

        self.logger.debug("Using POSIX ACLs for %s (filesystem %s)", path, fs_type)
        return ACLType.POSIX

    # =========================================================================
    # Set / Modify
    # =========================================================================

    def set_acl(self, cfg: ACLConfig, timeout: float | None = None) -> None:
        """
        Replace the ACL of a path.

        The current ACL is read first so that owner, owning group and other
        entries the request leaves out are kept (see merge_base_entries).

        Raises:
            InvalidInputError: No entries, or path validation failed
            ReadError: The current ACL could not be read
            WriteError: setfacl failed
        """
        if not cfg.entries:
            raise InvalidInputError(reason="No ACL entries provided", path=cfg.path)

        current = self.get_acl(ACLListConfig(path=cfg.path), timeout=timeout)
        entries = merge_base_entries(current.entries, cfg.entries)
        injected = len(entries) - len(cfg.entries)
        if injected:
            self.logger.debug("Preserving %d base entries on %s", injected, cfg.path)

        lines = self._serialize(cfg, entries, current.type)
        args = ["-R"] if cfg.recursive else []

        with self._scratch_file(cfg.path, lines) as scratch:
            self._write(cfg.path, [*args, f"--set-file={scratch}", cfg.path], timeout)

        self.logger.info("Replaced ACL on %s (%d entries)", cfg.path, len(entries))

    def modify_acl(self, cfg: ACLConfig, timeout: float | None = None) -> None:
        """
        Add or overwrite the given entries, leaving all others untouched.

        Unlike set_acl, nothing is read or injected: the tool's merge mode
        never drops entries it was not given.

        Raises:
            InvalidInputError: No entries, or path validation failed
            WriteError: setfacl failed
        """
        if not cfg.entries:
            raise InvalidInputError(reason="No ACL entries provided", path=cfg.path)

        fs_type = self.validator.validate(cfg.path, timeout=timeout)
        acl_type = self.detect_acl_type(cfg.path, timeout=timeout, fs_type=fs_type)

        lines = self._serialize(cfg, cfg.entries, acl_type)
        args = ["-R"] if cfg.recursive else []

        with self._scratch_file(cfg.path, lines) as scratch:
            self._write(cfg.path, [*args, "-M", scratch, cfg.path], timeout)

        self.logger.info("Modified ACL on %s (%d entries)", cfg.path, len(cfg.entries))

    # =========================================================================
    # Remove
    # =========================================================================

    def remove_acl(self, cfg: ACLRemoveConfig, timeout: float | None = None) -> None:
        """
        Remove ACL entries from a path.

        Modes:
            remove_all_xattr: strip the whole extended ACL; entries and
                remove_default are ignored
            remove_default: drop the default entries; may be combined with
                entry removal
            entries: remove named user/group entries; base entries cannot be
                removed individually and are skipped

        Raises:
            InvalidInputError: Nothing to remove, or path validation failed
            WriteError: setfacl failed
        """
        if not (cfg.remove_all_xattr or cfg.remove_default or cfg.entries):
            raise InvalidInputError(
                reason="Nothing to remove: provide entries, remove_default or remove_all_xattr",
                path=cfg.path,
            )

        self.validator.validate(cfg.path, timeout=timeout)

        if cfg.remove_all_xattr:
            self._write(cfg.path, ["-b", cfg.path], timeout)
            self.logger.info("Removed all extended ACL entries from %s", cfg.path)
            return

        lines = []
        for entry in cfg.entries:
            line = format_removal_entry(entry)
            if line is None:
                self.logger.debug(
                    "Skipping base entry %s on %s: base entries cannot be removed",
                    entry.type.value,
                    cfg.path,
                )
                continue
            lines.append(line)

        args = ["-R"] if cfg.recursive else []
        if cfg.remove_default:
            args.append("-k")

        if lines:
            with self._scratch_file(cfg.path, lines) as scratch:
                self._write(cfg.path, [*args, f"--remove-file={scratch}", cfg.path], timeout)
        elif cfg.remove_default:
            self._write(cfg.path, [*args, cfg.path], timeout)
        else:
            self.logger.info("No removable entries for %s, nothing to do", cfg.path)
            return

        self.logger.info("Removed ACL entries from %s", cfg.path)

    # =========================================================================
    # Principals
    # =========================================================================

    def resolve_ad_users(self, entries: list[ACLEntry]) -> list[ACLEntry]:
        """
        Confirm that every domain-qualified principal exists.

        Only user and group entries with a ``DOMAIN\\name`` principal are
        looked up. The first unknown principal fails the whole call.

        Returns:
            The entries, unchanged, as a new list

        Raises:
            InvalidPrincipalError: A domain principal was not found, or its
                domain or name part is empty
        """
        if self.resolver is None:
            return list(entries)

        for entry in entries:
            if entry.type not in (EntryType.USER, EntryType.GROUP) or not entry.principal:
                continue

            if DOMAIN_SEPARATOR not in entry.principal:
                continue

            # "CORP\" and "\name" name no resolvable principal
            parts = split_domain_principal(entry.principal)
            if parts is None:
                raise InvalidPrincipalError(principal=entry.principal)

            domain, name = parts
            if entry.type == EntryType.USER:
                exists = self.resolver.user_exists(domain, name)
            else:
                exists = self.resolver.group_exists(domain, name)

            if not exists:
                raise InvalidPrincipalError(principal=entry.principal)

        return list(entries)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _serialize(
        self,
        cfg: ACLConfig,
        entries: list[ACLEntry],
        acl_type: ACLType,
    ) -> list[str]:
        """Render entries in the dialect the path actually uses."""
        if cfg.type != acl_type:
            self.logger.warning(
                "%s ACLs are not supported on %s, writing %s entries",
                cfg.type.value,
                cfg.path,
                acl_type.value,
            )
        if acl_type == ACLType.POSIX:
            for entry in entries:
                if entry.access == AccessType.DENY:
                    self.logger.warning(
                        "POSIX ACLs cannot deny; writing %s entry %r on %s as a grant",
                        entry.type.value,
                        entry.principal,
                        cfg.path,
                    )
        try:
            return [format_entry(entry, acl_type) for entry in entries]
        except InvalidInputError as e:
            e.path = cfg.path
            e.context["path"] = cfg.path
            raise

    def _run(self, binary: str, args: list[str], timeout: float | None) -> ExecResult:
        return self.executor.execute(binary, args, timeout=timeout)

    def _write(self, path: str, args: list[str], timeout: float | None) -> None:
        result = self._run(self.settings.setfacl_path, args, timeout)
        if not result.success:
            raise _tool_error(WriteError, path, result)

    @contextmanager
    def _scratch_file(self, path: str, lines: list[str]) -> Generator[str, None, None]:
        """
        Write entry lines to a temporary file for setfacl to read.

        The file is removed on every exit path.
        """
        try:
            fd, name = tempfile.mkstemp(
                prefix="facl-",
                suffix=".acl",
                dir=self.settings.scratch_dir,
                text=True,
            )
        except OSError as e:
            raise WriteError(path=path, underlying_error=f"cannot create scratch file: {e}") from e

        try:
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    for line in lines:
                        f.write(line + "\n")
            except OSError as e:
                raise WriteError(path=path, underlying_error=f"cannot write scratch file: {e}") from e
            yield name
        finally:
            try:
                os.unlink(name)
            except FileNotFoundError:
                pass


def _is_walkable_dir(path: str, top: bool) -> bool:
    """Directories are descended into; symlinked ones only at the top."""
    if not os.path.isdir(path):
        return False
    return top or not os.path.islink(path)


def _tool_error(
    error_cls: type[ReadError] | type[WriteError],
    path: str,
    result: ExecResult,
) -> ReadError | WriteError:
    """Wrap a failed tool invocation with its path and captured output."""
    return error_cls(
        path=path,
        output=result.output,
        underlying_error=result.error or "command failed",
        timed_out=result.timed_out,
        timeout_seconds=result.metadata.get("timeout"),
    )
