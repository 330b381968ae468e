"""
Pytest configuration and fixtures for facl tests.

This module provides shared fixtures used across unit, integration,
and security tests. The engine is driven against FakeAclTools, an
in-memory stand-in for getfacl, setfacl and mount that keeps one ACL
per path of a real temporary directory tree.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from facl.engine import ACLEngine
from facl.executor import CommandExecutor, ExecResult
from facl.schema import EngineSettings


BASE_LINES = ["user::rwx", "group::r-x", "other::r-x"]


def _entry_key(line: str) -> str:
    """``user:alice:rwx`` and ``user:alice`` both key as ``user:alice``."""
    if line.count(":") - line.startswith("default:") >= 2:
        return line.rsplit(":", 1)[0]
    return line


class FakeAclTools(CommandExecutor):
    """
    Emulates getfacl, setfacl and mount for paths under one root.

    The root is reported as a zfs mount; everything else sits on an ext4
    root filesystem. Each invocation is recorded in ``calls`` and the
    contents of every entry file setfacl is given are kept in ``scratch``.
    """

    def __init__(self, root: Path, fs_type: str = "zfs") -> None:
        self.root = str(root)
        self.fs_type = fs_type
        self.acls: dict[str, list[str]] = {}
        self.outputs: dict[str, str] = {}
        self.failures: dict[tuple[str, str], ExecResult] = {}
        self.mount_failure: ExecResult | None = None
        self.calls: list[tuple[str, list[str], float | None]] = []
        self.scratch: list[tuple[str, list[str]]] = []

    # Test helpers

    def lines(self, path: str | Path) -> list[str]:
        return self.acls.setdefault(str(path), list(BASE_LINES))

    def fail(self, tool: str, path: str | Path, result: ExecResult) -> None:
        self.failures[(tool, str(path))] = result

    def tool_calls(self, tool: str) -> list[list[str]]:
        return [args for binary, args, _ in self.calls if os.path.basename(binary) == tool]

    # CommandExecutor

    def execute(
        self,
        binary: str,
        args: list[str],
        timeout: float | None = None,
    ) -> ExecResult:
        self.calls.append((binary, list(args), timeout))
        tool = os.path.basename(binary)

        if tool == "mount":
            if self.mount_failure is not None:
                return self.mount_failure
            return ExecResult.ok(
                "/dev/sda1 on / type ext4 (rw,relatime)\n"
                "proc on /proc type proc (rw,nosuid,nodev,noexec)\n"
                f"tank/facl on {self.root} type {self.fs_type} (rw,xattr,posixacl)\n",
                return_code=0,
            )

        path = args[-1]
        failure = self.failures.get((tool, path))
        if failure is not None:
            return failure

        if tool == "getfacl":
            if path in self.outputs:
                return ExecResult.ok(self.outputs[path], return_code=0)
            return ExecResult.ok("\n".join(self.lines(path)) + "\n", return_code=0)

        if tool == "setfacl":
            return self._setfacl(args[:-1], path)

        return ExecResult.fail(f"unexpected binary {binary}", return_code=127)

    def _setfacl(self, opts: list[str], path: str) -> ExecResult:
        recursive = "-R" in opts
        targets = [path]
        if recursive and os.path.isdir(path):
            for dirpath, dirnames, filenames in os.walk(path):
                targets.extend(os.path.join(dirpath, n) for n in sorted(dirnames + filenames))

        if "-b" in opts:
            for target in targets:
                self.acls[target] = [
                    line for line in self.lines(target)
                    if _entry_key(line) in ("user:", "group:", "other:")
                ]
            return ExecResult.ok("", return_code=0)

        if "-k" in opts:
            for target in targets:
                self.acls[target] = [
                    line for line in self.lines(target) if not line.startswith("default:")
                ]

        for i, opt in enumerate(opts):
            if opt.startswith("--set-file="):
                new = self._read_scratch(opt.split("=", 1)[1])
                present = {_entry_key(l) for l in new if not l.startswith("default:")}
                if not {"user:", "group:", "other:"} <= present:
                    return ExecResult.fail(
                        "Command exited with status 1",
                        output=f"setfacl: {path}: Malformed access ACL\n",
                        return_code=1,
                    )
                for target in targets:
                    self.acls[target] = list(new)
            elif opt == "-M":
                new = self._read_scratch(opts[i + 1])
                for target in targets:
                    current = self.lines(target)
                    for line in new:
                        key = _entry_key(line)
                        current[:] = [l for l in current if _entry_key(l) != key] + [line]
            elif opt.startswith("--remove-file="):
                keys = {_entry_key(l) for l in self._read_scratch(opt.split("=", 1)[1])}
                for target in targets:
                    self.acls[target] = [
                        l for l in self.lines(target) if _entry_key(l) not in keys
                    ]

        return ExecResult.ok("", return_code=0)

    def _read_scratch(self, name: str) -> list[str]:
        with open(name, encoding="utf-8") as f:
            lines = [line.rstrip("\n") for line in f if line.strip()]
        self.scratch.append((name, lines))
        return lines


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def scratch_dir() -> Generator[Path, None, None]:
    """Directory the engine writes its setfacl entry files to."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def share(temp_dir: Path) -> Path:
    """
    A small tree on the fake zfs mount:

        share/
            a.txt
            sub/
                b.txt
    """
    root = temp_dir / "share"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("a")
    (root / "sub" / "b.txt").write_text("b")
    return root


@pytest.fixture
def fake_tools(temp_dir: Path) -> FakeAclTools:
    """Fake ACL tools mounting temp_dir as zfs."""
    return FakeAclTools(temp_dir)


@pytest.fixture
def settings(scratch_dir: Path) -> EngineSettings:
    """Default settings with a private scratch directory."""
    return EngineSettings(scratch_dir=str(scratch_dir))


@pytest.fixture
def engine(fake_tools: FakeAclTools, settings: EngineSettings) -> ACLEngine:
    """Engine wired to the fake tools."""
    return ACLEngine(
        executor=fake_tools,
        settings=settings,
        logger=logging.getLogger("facl.tests"),
    )


@pytest.fixture
def sample_settings_yaml() -> str:
    """Return a settings YAML for testing."""
    return """
getfacl_path: /usr/bin/getfacl
setfacl_path: /usr/bin/setfacl
command_timeout_seconds: 10
supported_filesystems:
  - zfs
  - ext4
resolver: nss
log_level: debug
"""
