"""
Base classes for running the external ACL tools.

The engine never spawns processes itself; it talks to a CommandExecutor:
- CommandExecutor: Abstract "execute(binary, args) -> result" contract
- ExecResult: Standardized result of one invocation

Design Principles:
    - Executors are stateless between calls
    - Executors return ExecResult for expected failures (non-zero exit,
      timeout, missing binary) and never raise for them
    - Tests substitute a deterministic fake for the real subprocess executor
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ExecResult:
    """
    Outcome of one external tool invocation.

    Attributes:
        success: Whether the tool ran and exited with status 0
        output: Combined stdout/stderr of the tool
        error: Failure description if success is False
        metadata: Extra facts (return_code, timed_out, timeout, cmd, ...)
    """

    success: bool
    output: str = ""
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def timed_out(self) -> bool:
        """Whether the invocation was killed at its deadline."""
        return bool(self.metadata.get("timed_out", False))

    @property
    def return_code(self) -> int | None:
        """Exit status of the tool, if it ran to completion."""
        return self.metadata.get("return_code")

    @classmethod
    def ok(cls, output: str, **metadata: Any) -> "ExecResult":
        """Create a successful result."""
        return cls(success=True, output=output, metadata=metadata)

    @classmethod
    def fail(cls, error: str, output: str = "", **metadata: Any) -> "ExecResult":
        """Create a failed result."""
        return cls(success=False, output=output, error=error, metadata=metadata)


class CommandExecutor(ABC):
    """
    Abstract base class for external tool execution.

    Subclasses must implement execute(). The timeout is the caller's
    deadline in seconds; an implementation must terminate the spawned
    process when it expires and report ``timed_out=True``.

    Example:
        class EchoExecutor(CommandExecutor):
            def execute(self, binary, args, timeout=None):
                return ExecResult.ok(" ".join(args))
    """

    @abstractmethod
    def execute(
        self,
        binary: str,
        args: list[str],
        timeout: float | None = None,
    ) -> ExecResult:
        """
        Run binary with args and capture its output.

        Args:
            binary: Absolute path of the tool
            args: Arguments, passed without shell interpretation
            timeout: Deadline in seconds (implementation default if None)

        Returns:
            ExecResult indicating success or failure with captured output
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
