"""
Subprocess executor for the external ACL tools.

Security Note:
    - Commands are passed as a list (NO shell=True), so paths and
      arguments are never interpreted by a shell
    - Binaries must be absolute paths; PATH is not consulted
    - Arguments containing shell metacharacters are rejected before spawning
    - The child runs with a minimal environment (LC_ALL=C only), which
      also keeps the tools' output format stable
"""

import logging
import subprocess

from facl.executor.base import CommandExecutor, ExecResult
from facl.schema import EngineSettings


MAX_ARGS = 64


class SubprocessExecutor(CommandExecutor):
    """
    Run tools with subprocess.run and a deadline.

    stderr is merged into stdout; the combined text is what callers wrap
    into their errors. When the deadline passes, subprocess.run kills the
    child and the result is marked ``timed_out``.

    Attributes:
        settings: Supplies the default timeout and the argument denylist
        logger: Where command lines and failures are logged
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.logger = logger or logging.getLogger(__name__)

    def validate_command(self, binary: str, args: list[str]) -> list[str]:
        """
        Check a command line before it is spawned.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not binary:
            errors.append("empty command")
        elif not binary.startswith("/"):
            errors.append(f"command must be an absolute path: {binary}")
        elif any(c in self.settings.denied_path_chars for c in binary):
            errors.append("command contains invalid characters")

        for arg in args:
            if not isinstance(arg, str):
                errors.append(f"argument must be a string, got {type(arg).__name__}")
                break
            if any(c in self.settings.denied_path_chars for c in arg):
                errors.append(f"argument contains invalid characters: {arg}")
                break

        if len(args) > MAX_ARGS:
            errors.append(f"too many arguments ({len(args)} > {MAX_ARGS})")

        return errors

    def execute(
        self,
        binary: str,
        args: list[str],
        timeout: float | None = None,
    ) -> ExecResult:
        errors = self.validate_command(binary, args)
        if errors:
            return ExecResult.fail(f"Invalid command: {'; '.join(errors)}", cmd=[binary, *args])

        cmd = [binary, *args]
        cmd_string = " ".join(cmd)
        timeout_seconds = timeout if timeout is not None else self.settings.command_timeout_seconds

        self.logger.debug("Executing command: %s", cmd_string)

        try:
            result = subprocess.run(
                cmd,
                env={"LC_ALL": "C"},
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout_seconds,
                shell=False,
            )
        except subprocess.TimeoutExpired as e:
            output = _decode(e.output)
            self.logger.error(
                "Command timed out after %ss: %s", timeout_seconds, cmd_string
            )
            return ExecResult.fail(
                f"Command timed out after {timeout_seconds} seconds",
                output=output,
                cmd=cmd,
                timed_out=True,
                timeout=timeout_seconds,
            )
        except FileNotFoundError:
            self.logger.error("Executable not found: %s", binary)
            return ExecResult.fail(f"Executable not found: {binary}", executable=binary)
        except PermissionError:
            self.logger.error("Permission denied executing: %s", binary)
            return ExecResult.fail(f"Permission denied executing: {binary}", executable=binary)
        except OSError as e:
            self.logger.error("OS error executing %s: %s", cmd_string, e)
            return ExecResult.fail(
                f"OS error executing command: {e}",
                cmd=cmd,
                error_type=type(e).__name__,
            )

        output = _decode(result.stdout)

        if result.returncode != 0:
            self.logger.error(
                "Command failed with exit code %d: %s: %s",
                result.returncode,
                cmd_string,
                output.strip(),
            )
            return ExecResult.fail(
                f"Command exited with status {result.returncode}",
                output=output,
                cmd=cmd,
                return_code=result.returncode,
            )

        return ExecResult.ok(output, cmd=cmd, return_code=0)


def _decode(data: bytes | None) -> str:
    """Decode tool output (best effort)."""
    if not data:
        return ""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")
