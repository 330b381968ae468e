"""
Unit tests for listing reports.

Tests cover:
- JSON wire shape of listings
- Console tree rendering
"""

import json
from io import StringIO

from rich.console import Console

from facl.report import (
    build_listing_dict,
    entries_table,
    entry_to_dict,
    generate_json_listing,
    print_listing,
)
from facl.schema import (
    ACLEntry,
    ACLListResult,
    ACLType,
    AccessType,
    EntryType,
    Permission,
)


def _listing() -> ACLListResult:
    return ACLListResult(
        path="/mnt/tank/share",
        entries=[
            ACLEntry(type=EntryType.OWNER, permissions=[Permission.READ_DATA]),
            ACLEntry(
                type=EntryType.USER,
                principal="alice",
                permissions=[Permission.READ_DATA, Permission.EXECUTE],
                is_default=True,
            ),
        ],
        children=[ACLListResult(path="/mnt/tank/share/a.txt")],
    )


class TestJsonReport:
    """Tests for the JSON listing shape."""

    def test_entry_to_dict_drops_empty_fields(self) -> None:
        """Empty principal and flags are omitted."""
        data = entry_to_dict(ACLEntry(type=EntryType.OWNER, permissions=[Permission.READ_DATA]))
        assert data == {
            "type": "owner",
            "permissions": ["r"],
            "access": "allow",
            "is_default": False,
        }

    def test_listing_dict(self) -> None:
        """Children appear only where present."""
        data = build_listing_dict(_listing())
        assert data["type"] == "posix"
        assert data["entries"][1]["principal"] == "alice"
        assert data["children"] == [
            {"path": "/mnt/tank/share/a.txt", "type": "posix", "entries": []}
        ]

    def test_generate_json(self) -> None:
        """The JSON text decodes back to the wire dictionary."""
        listing = _listing()
        assert json.loads(generate_json_listing(listing)) == build_listing_dict(listing)


class TestConsoleReport:
    """Tests for Rich rendering."""

    def _render(self, listing: ACLListResult) -> str:
        buffer = StringIO()
        console = Console(file=buffer, width=120, no_color=True)
        print_listing(listing, console)
        return buffer.getvalue()

    def test_tree(self) -> None:
        """Paths and entries appear, with a path count for trees."""
        output = self._render(_listing())
        assert "/mnt/tank/share" in output
        assert "/mnt/tank/share/a.txt" in output
        assert "alice" in output
        assert "r-x" in output
        assert "Paths: 2" in output

    def test_single_path_has_no_count(self) -> None:
        """A single path listing prints no summary."""
        output = self._render(ACLListResult(path="/mnt/tank/a"))
        assert "Paths:" not in output

    def test_nfsv4_columns(self) -> None:
        """NFSv4 tables show flags and access."""
        table = entries_table(
            [ACLEntry(type=EntryType.EVERYONE, access=AccessType.DENY)],
            ACLType.NFSV4,
        )
        headers = [column.header for column in table.columns]
        assert headers == ["Type", "Principal", "Perms", "Flags", "Access", "Default"]
        assert table.row_count == 1
