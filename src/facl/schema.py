"""
Schema definitions for facl.

This module defines the Pydantic models used throughout facl:
- ACLEntry: One access-control rule
- ACLConfig/ACLRemoveConfig/ACLListConfig: Request shapes
- ACLListResult: Response tree for listings
- EngineSettings: Tool locations, deadlines and filesystem capability rules

Design Decisions:
    - Enum values are the wire values (JSON and tool characters)
    - Entries are immutable (frozen=True); results are built incrementally
    - Unknown fields are rejected (extra="forbid")
"""

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class ACLType(str, Enum):
    """ACL dialect understood by the tooling."""

    POSIX = "posix"
    NFSV4 = "nfsv4"


class EntryType(str, Enum):
    """
    Kind of an ACL entry.

    OWNER and OWNER_GROUP are the file owner and owning group entries
    (``user::`` and ``group::`` in getfacl output).
    """

    USER = "user"
    GROUP = "group"
    OWNER = "owner"
    OWNER_GROUP = "group::owner"
    EVERYONE = "everyone"
    MASK = "mask"
    OTHER = "other"


class Permission(str, Enum):
    """Permission tokens, valued by their tool character."""

    READ_DATA = "r"
    WRITE_DATA = "w"
    EXECUTE = "x"
    DELETE = "d"
    DELETE_CHILD = "D"
    READ_ACL = "a"
    WRITE_ACL = "A"
    READ_ATTRS = "R"
    WRITE_ATTRS = "W"
    CHOWN = "C"
    READ_NAMED_ATTRS = "N"
    WRITE_NAMED_ATTRS = "n"
    SYNCHRONIZE = "s"


class ACLFlag(str, Enum):
    """NFSv4 inheritance flags, valued by their tool character."""

    INHERIT = "f"
    DIRECTORY_INHERIT = "d"
    INHERIT_ONLY = "i"
    NO_PROPAGATE_INHERIT = "n"


class AccessType(str, Enum):
    """Whether an entry grants or denies. POSIX entries always allow."""

    ALLOW = "allow"
    DENY = "deny"


# Entry kinds every POSIX ACL keeps exactly one (non-default) instance of
BASE_ENTRY_TYPES = (EntryType.OWNER, EntryType.OWNER_GROUP, EntryType.OTHER)


# =============================================================================
# Entry Model
# =============================================================================


class ACLEntry(BaseModel):
    """
    A single ACL entry.

    Attributes:
        type: Entry kind
        principal: User or group name (empty for owner/group/mask/other/everyone)
        permissions: Granted (or denied) permission tokens
        flags: Inheritance flags (NFSv4 only)
        access: allow or deny (NFSv4 only; POSIX is always allow)
        is_default: Directory default entry inherited by new children
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: EntryType = Field(..., description="Entry kind")
    principal: str = Field(default="", description="User or group name")
    permissions: list[Permission] = Field(
        default_factory=list,
        description="Permission tokens",
    )
    flags: list[ACLFlag] = Field(
        default_factory=list,
        description="Inheritance flags (NFSv4 only)",
    )
    access: AccessType = Field(default=AccessType.ALLOW, description="allow or deny")
    is_default: bool = Field(default=False, description="Whether this is a default ACL entry")

    @field_validator("principal", mode="before")
    @classmethod
    def none_principal_is_empty(cls, v: object) -> object:
        """The wire format omits the principal for base entries."""
        return "" if v is None else v

    @property
    def is_named(self) -> bool:
        """True for user/group entries that name a principal."""
        return self.type in (EntryType.USER, EntryType.GROUP) and bool(self.principal)

    @property
    def base_category(self) -> EntryType | None:
        """
        Which base entry this renders as in the POSIX dialect, if any.

        ``user`` and ``group`` without a principal serialize to ``user::`` and
        ``group::``, and ``everyone`` falls back to ``other::``, so they occupy
        the same slot as the owner, owning group and other entries.
        """
        if self.type in BASE_ENTRY_TYPES:
            return self.type
        if self.type == EntryType.USER and not self.principal:
            return EntryType.OWNER
        if self.type == EntryType.GROUP and not self.principal:
            return EntryType.OWNER_GROUP
        if self.type == EntryType.EVERYONE:
            return EntryType.OTHER
        return None


# =============================================================================
# Request / Response Models
# =============================================================================


class ACLConfig(BaseModel):
    """Complete ACL request for a path (set, modify)."""

    model_config = ConfigDict(extra="forbid")

    path: str = Field(..., description="Target path")
    type: ACLType = Field(default=ACLType.POSIX, description="ACL dialect")
    entries: list[ACLEntry] = Field(default_factory=list, description="Entries to apply")
    recursive: bool = Field(default=False, description="Apply to the whole subtree")


class ACLRemoveConfig(ACLConfig):
    """Removal request; see ACLEngine.remove_acl for how the modes combine."""

    remove_all_xattr: bool = Field(
        default=False,
        description="Strip the whole extended ACL (entries and remove_default ignored)",
    )
    remove_default: bool = Field(
        default=False,
        description="Remove the default (inherited) entries",
    )


class ACLListConfig(BaseModel):
    """Parameters for listing ACLs."""

    model_config = ConfigDict(extra="forbid")

    path: str = Field(..., description="Target path")
    recursive: bool = Field(default=False, description="Descend into directories")


class ACLListResult(BaseModel):
    """ACL of one path, plus its children when listed recursively."""

    model_config = ConfigDict(extra="forbid")

    path: str
    type: ACLType = ACLType.POSIX
    entries: list[ACLEntry] = Field(default_factory=list)
    children: list["ACLListResult"] = Field(default_factory=list)


ACLListResult.model_rebuild()


# =============================================================================
# Settings
# =============================================================================


class ResolverKind(str, Enum):
    """Principal resolver the command line front end builds."""

    NONE = "none"
    NSS = "nss"


class EngineSettings(BaseModel):
    """
    Runtime configuration for the engine and its collaborators.

    Attributes:
        getfacl_path: Absolute path of the ACL read tool
        setfacl_path: Absolute path of the ACL write tool
        mount_path: Absolute path of mount(8), used to list mounted filesystems
        command_timeout_seconds: Deadline applied when the caller passes none
        supported_filesystems: Filesystem types that pass the capability check
        denied_path_chars: Characters rejected anywhere in a path
        scratch_dir: Where scratch entry files are created (system temp if None)
        resolver: Principal resolver to build for the CLI
        log_level: Logging level for the CLI
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    getfacl_path: str = Field(default="/usr/bin/getfacl")
    setfacl_path: str = Field(default="/usr/bin/setfacl")
    mount_path: str = Field(default="/bin/mount")
    command_timeout_seconds: float = Field(default=30, gt=0, le=600)
    supported_filesystems: list[str] = Field(default_factory=lambda: ["zfs"])
    denied_path_chars: str = Field(default="&|><$`\\[];{}")
    scratch_dir: str | None = Field(default=None)
    resolver: ResolverKind = Field(default=ResolverKind.NONE)
    log_level: str = Field(default="INFO")

    @field_validator("getfacl_path", "setfacl_path", "mount_path")
    @classmethod
    def validate_absolute(cls, v: str) -> str:
        """Tool binaries are never looked up through PATH."""
        if not v.startswith("/"):
            msg = f"Tool path must be absolute: {v}"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_settings(path: Path | str) -> EngineSettings:
    """
    Load engine settings from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated EngineSettings object

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return EngineSettings.model_validate(data or {})


def load_settings_from_string(content: str) -> EngineSettings:
    """Load engine settings from a YAML string."""
    data = yaml.safe_load(content)
    return EngineSettings.model_validate(data or {})
