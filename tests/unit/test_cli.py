"""
Unit tests for the facl command line.

Tests cover:
- get/set/modify/remove against the fake ACL tools
- Entry parsing from the command line
- Error reporting (text and JSON)
- resolve and doctor
"""

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from facl import __version__, cli
from facl.engine import ACLEngine
from facl.resolver import StaticResolver

runner = CliRunner()


@pytest.fixture
def use_engine(monkeypatch: pytest.MonkeyPatch, engine: ACLEngine) -> ACLEngine:
    """Make the CLI use the engine wired to the fake tools."""
    monkeypatch.setattr(cli, "build_engine", lambda settings: engine)
    return engine


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestGetCommand:
    """Tests for facl get."""

    def test_get(self, use_engine: ACLEngine, share: Path) -> None:
        """The ACL is shown as a tree."""
        result = runner.invoke(cli.app, ["get", str(share)])
        assert result.exit_code == 0
        assert "owner" in result.output
        assert "r-x" in result.output

    def test_get_json(self, use_engine: ACLEngine, share: Path) -> None:
        """--json prints the listing wire shape."""
        result = runner.invoke(cli.app, ["get", str(share), "--recursive", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["path"] == str(share)
        assert [c["path"] for c in data["children"]] == [
            str(share / "a.txt"),
            str(share / "sub"),
        ]

    def test_get_missing_path(self, use_engine: ACLEngine, temp_dir: Path) -> None:
        """Errors are printed with their code and exit 1."""
        result = runner.invoke(cli.app, ["get", str(temp_dir / "missing")])
        assert result.exit_code == 1
        assert "[E1704]" in result.output

    def test_get_missing_path_json(self, use_engine: ACLEngine, temp_dir: Path) -> None:
        """JSON errors carry type and code."""
        result = runner.invoke(cli.app, ["get", str(temp_dir / "missing"), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] is True
        assert data["error_type"] == "PathNotFoundError"
        assert data["code"] == 1704


class TestWriteCommands:
    """Tests for set, modify and remove."""

    def test_set(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """Entries given with -e replace the ACL."""
        result = runner.invoke(
            cli.app,
            ["set", str(share), "-e", "user:alice:rwx", "-e", "default:group:staff:r-x"],
        )
        assert result.exit_code == 0
        assert "ACL replaced" in result.output
        lines = fake_tools.lines(share)
        assert "user:alice:rwx" in lines
        assert "default:group:staff:r-x" in lines
        assert "user::rwx" in lines

    def test_set_without_entries(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """An empty replace is invalid input."""
        result = runner.invoke(cli.app, ["set", str(share)])
        assert result.exit_code == 1
        assert "[E1700]" in result.output
        assert fake_tools.tool_calls("setfacl") == []

    def test_bad_entry(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """A malformed entry is a parse error and nothing runs."""
        result = runner.invoke(cli.app, ["set", str(share), "-e", "wheel::rwx"])
        assert result.exit_code == 1
        assert "[E1703]" in result.output
        assert fake_tools.calls == []

    def test_modify(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """modify merges entries into the existing ACL."""
        fake_tools.lines(share).append("user:bob:r--")
        result = runner.invoke(cli.app, ["modify", str(share), "-e", "user:alice:r-x"])
        assert result.exit_code == 0
        assert "user:bob:r--" in fake_tools.lines(share)
        assert "user:alice:r-x" in fake_tools.lines(share)

    def test_remove_entry(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """Removal entries may omit permissions."""
        fake_tools.lines(share).extend(["user:alice:rwx", "default:user:alice:rwx"])
        result = runner.invoke(
            cli.app,
            ["remove", str(share), "-e", "user:alice", "-e", "default:user:alice"],
        )
        assert result.exit_code == 0
        assert fake_tools.lines(share) == ["user::rwx", "group::r-x", "other::r-x"]

    def test_remove_default(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """--default removes default entries."""
        result = runner.invoke(cli.app, ["remove", str(share), "--default"])
        assert result.exit_code == 0
        assert fake_tools.tool_calls("setfacl") == [["-k", str(share)]]

    def test_remove_all(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """--all strips the extended ACL."""
        result = runner.invoke(cli.app, ["remove", str(share), "--all"])
        assert result.exit_code == 0
        assert fake_tools.tool_calls("setfacl") == [["-b", str(share)]]

    def test_remove_nothing(self, use_engine: ACLEngine, fake_tools, share: Path) -> None:
        """A removal without a mode is invalid input."""
        result = runner.invoke(cli.app, ["remove", str(share)])
        assert result.exit_code == 1
        assert "[E1700]" in result.output
        assert fake_tools.calls == []

    def test_write_failure_shows_tool_output(
        self, use_engine: ACLEngine, fake_tools, share: Path
    ) -> None:
        """The tool's own message is shown under the error."""
        from facl.executor import ExecResult

        fake_tools.fail(
            "setfacl",
            share,
            ExecResult.fail("Command exited with status 1", output="setfacl: Invalid argument\n"),
        )
        result = runner.invoke(cli.app, ["modify", str(share), "-e", "user:alice:r-x"])
        assert result.exit_code == 1
        assert "[E1702]" in result.output
        assert "setfacl: Invalid argument" in result.output


class TestResolveCommand:
    """Tests for facl resolve."""

    def test_without_resolver(self, use_engine: ACLEngine) -> None:
        """Without a resolver nothing is checked."""
        result = runner.invoke(cli.app, ["resolve", "-e", "user:CORP\\ghost:rwx"])
        assert result.exit_code == 0
        assert "nothing checked" in result.output

    def test_unknown_principal(
        self, monkeypatch: pytest.MonkeyPatch, fake_tools, settings
    ) -> None:
        """An unknown domain principal fails."""
        engine = ACLEngine(
            executor=fake_tools,
            settings=settings,
            resolver=StaticResolver(users=["CORP\\alice"]),
        )
        monkeypatch.setattr(cli, "build_engine", lambda s: engine)
        ok = runner.invoke(cli.app, ["resolve", "-e", "user:CORP\\alice:rwx"])
        assert ok.exit_code == 0
        assert "1 entries resolved" in ok.output

        bad = runner.invoke(cli.app, ["resolve", "-e", "user:CORP\\ghost:rwx"])
        assert bad.exit_code == 1
        assert "[E1705]" in bad.output

    def test_build_resolver(self, sample_settings_yaml: str) -> None:
        """The nss resolver is built when configured."""
        from facl.resolver import NssResolver
        from facl.schema import EngineSettings, load_settings_from_string

        assert isinstance(cli.build_resolver(load_settings_from_string(sample_settings_yaml)), NssResolver)
        assert cli.build_resolver(EngineSettings()) is None


class TestSettings:
    """Tests for --config handling."""

    def test_invalid_settings(self, temp_dir: Path, share: Path) -> None:
        """Invalid settings are reported and exit 1."""
        config = temp_dir / "facl.yaml"
        config.write_text("getfacl_path: getfacl\n")
        result = runner.invoke(cli.app, ["get", str(share), "-c", str(config)])
        assert result.exit_code == 1
        assert "Error loading settings" in result.output


class TestDoctorCommand:
    """Tests for facl doctor."""

    def _tool(self, directory: Path, name: str) -> str:
        path = directory / name
        path.write_text("#!/bin/sh\n")
        os.chmod(path, 0o755)
        return str(path)

    def test_all_present(self, temp_dir: Path) -> None:
        """Present executables pass."""
        config = temp_dir / "facl.yaml"
        config.write_text(
            f"getfacl_path: {self._tool(temp_dir, 'getfacl')}\n"
            f"setfacl_path: {self._tool(temp_dir, 'setfacl')}\n"
            f"mount_path: {self._tool(temp_dir, 'mount')}\n"
        )
        result = runner.invoke(cli.app, ["doctor", "-c", str(config)])
        assert result.exit_code == 0
        assert "missing" not in result.output

    def test_missing_tool(self, temp_dir: Path) -> None:
        """A missing executable fails the check."""
        config = temp_dir / "facl.yaml"
        config.write_text(f"getfacl_path: {temp_dir / 'nope'}\n")
        result = runner.invoke(cli.app, ["doctor", "-c", str(config)])
        assert result.exit_code == 1
        assert "missing" in result.output
