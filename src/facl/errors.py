"""
Exception hierarchy for facl.

All facl exceptions inherit from FaclError, allowing callers to catch
all facl-specific exceptions with a single except clause.

Exception Categories:
    - InvalidInputError: Bad path, empty entry set, malformed removal request
    - PathNotFoundError: Target path does not exist
    - UnsupportedFSError: Target path is not on an ACL-capable filesystem
    - ParseError: ACL tool output could not be parsed
    - ReadError / WriteError: ACL tool invocation failed
    - InvalidPrincipalError: Domain user or group could not be resolved

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors carry an HTTP status so a transport layer can map them directly
    - Tool failures keep the tool's captured output in their context
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

ERROR_INVALID_INPUT = 1700
ERROR_READ = 1701
ERROR_WRITE = 1702
ERROR_PARSE = 1703
ERROR_PATH_NOT_FOUND = 1704
ERROR_INVALID_PRINCIPAL = 1705
ERROR_UNSUPPORTED_FS = 1706


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class FaclError(Exception):
    """
    Base exception for all facl errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    http_status = 500

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class InvalidInputError(FaclError):
    """Raised when a request is rejected before any tool is invoked."""

    reason: str = ""
    path: str = ""

    http_status = 400

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid ACL input: {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_INPUT
        self.context.update({
            "reason": self.reason,
            "path": self.path,
        })


@dataclass
class PathNotFoundError(FaclError):
    """Raised when the target path does not exist."""

    path: str = ""

    http_status = 404

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Path does not exist: {self.path}"
        if self.code == 0:
            self.code = ERROR_PATH_NOT_FOUND
        self.context["path"] = self.path


@dataclass
class UnsupportedFSError(FaclError):
    """Raised when the path is not on a filesystem the engine manages."""

    path: str = ""
    fs_type: str | None = None

    http_status = 400

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            found = self.fs_type or "unknown"
            self.message = f"Unsupported filesystem for ACL operations: {self.path} ({found})"
        if self.code == 0:
            self.code = ERROR_UNSUPPORTED_FS
        if not self.suggestion:
            self.suggestion = "Add the filesystem type to supported_filesystems in the settings"
        self.context.update({
            "path": self.path,
            "fs_type": self.fs_type,
        })


@dataclass
class InvalidPrincipalError(FaclError):
    """Raised when a domain-qualified principal cannot be found."""

    principal: str = ""

    http_status = 400

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Directory principal not found: {self.principal}"
        if self.code == 0:
            self.code = ERROR_INVALID_PRINCIPAL
        self.context["principal"] = self.principal


# =============================================================================
# Tool Errors
# =============================================================================


@dataclass
class ParseError(FaclError):
    """
    Raised when a line of ACL tool output cannot be parsed.

    Attributes:
        line: The offending line
        path: Path whose ACL was being read (filled in by the engine)
    """

    line: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to parse ACL data: {self.line!r}"
        if self.code == 0:
            self.code = ERROR_PARSE
        self.context.update({
            "line": self.line,
            "path": self.path,
        })


@dataclass
class ToolError(FaclError):
    """
    Base class for ACL tool invocation failures.

    Attributes:
        path: Path the tool was operating on
        output: Captured combined output of the tool
        underlying_error: Executor's description of the failure
        timed_out: Whether the invocation hit its deadline
        timeout_seconds: The deadline that was exceeded, if any
    """

    path: str = ""
    output: str = ""
    underlying_error: str = ""
    timed_out: bool = False
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "path": self.path,
            "output": self.output,
            "underlying_error": self.underlying_error,
            "timed_out": self.timed_out,
        })
        if self.timed_out:
            self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class ReadError(ToolError):
    """Raised when reading an ACL (or the state around it) fails."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to read filesystem ACLs for {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_READ
        if self.timed_out and not self.suggestion:
            self.suggestion = "Increase command_timeout_seconds or pass a longer timeout"
        super().__post_init__()


@dataclass
class WriteError(ToolError):
    """Raised when changing an ACL fails."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to modify filesystem ACLs for {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_WRITE
        if self.timed_out and not self.suggestion:
            self.suggestion = "Increase command_timeout_seconds or pass a longer timeout"
        super().__post_init__()
