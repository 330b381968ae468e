"""
Console rendering of ACL listings.

Uses the Rich library to show a listing as a tree: one node per path,
each carrying a table of its entries. Default entries are dimmed and
deny entries are shown in red.
"""

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from facl.codec import format_flags, format_permissions
from facl.schema import ACLEntry, ACLListResult, ACLType, AccessType, EntryType


# Labels for entry kinds whose wire value is not meant for humans
_TYPE_LABELS = {
    EntryType.OWNER: "owner",
    EntryType.OWNER_GROUP: "owning group",
}


def print_listing(
    listing: ACLListResult,
    console: Console | None = None,
) -> None:
    """
    Print a listing (and its children) to the console.

    Args:
        listing: Result of ACLEngine.get_acl
        console: Rich Console instance (creates one if not provided)
    """
    if console is None:
        console = Console()

    console.print(build_tree(listing))

    total = _count_paths(listing)
    if total > 1:
        console.print()
        console.print(f"[dim]Paths: {total}[/dim]")


def build_tree(listing: ACLListResult, tree: Tree | None = None) -> Tree:
    """Build a Rich tree for a listing."""
    label = f"[bold]{listing.path}[/bold] [dim]({listing.type.value})[/dim]"
    node = Tree(label) if tree is None else tree.add(label)
    node.add(entries_table(listing.entries, listing.type))
    for child in listing.children:
        build_tree(child, node)
    return node


def entries_table(entries: list[ACLEntry], acl_type: ACLType = ACLType.POSIX) -> Table:
    """Tabulate entries."""
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Type", style="cyan")
    table.add_column("Principal")
    table.add_column("Perms", style="green")
    if acl_type == ACLType.NFSV4:
        table.add_column("Flags")
        table.add_column("Access")
    table.add_column("Default", width=7)

    for entry in entries:
        style = "dim" if entry.is_default else None
        if entry.access == AccessType.DENY:
            style = "red"

        row = [
            _TYPE_LABELS.get(entry.type, entry.type.value),
            entry.principal or "-",
            format_permissions(entry.permissions, acl_type),
        ]
        if acl_type == ACLType.NFSV4:
            row.extend([format_flags(entry.flags) or "-", entry.access.value])
        row.append("yes" if entry.is_default else "")

        table.add_row(*row, style=style)

    return table


def _count_paths(listing: ACLListResult) -> int:
    return 1 + sum(_count_paths(child) for child in listing.children)
