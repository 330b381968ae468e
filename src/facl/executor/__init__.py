"""
Executor module for facl.

The engine reaches the external ACL tools (getfacl, setfacl, mount)
only through the narrow CommandExecutor contract:

    execute(binary, args, timeout) -> ExecResult

Architecture:
    - CommandExecutor: Abstract base class defining the contract
    - ExecResult: Standardized result (success, output, error, metadata)
    - SubprocessExecutor: Runs the tools with subprocess, no shell
"""

from facl.executor.base import CommandExecutor, ExecResult
from facl.executor.shell import SubprocessExecutor

__all__ = [
    "CommandExecutor",
    "ExecResult",
    "SubprocessExecutor",
]
