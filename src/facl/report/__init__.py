"""
Reporting module for facl.

Renders ACL listings for people and for programs:
    - Console: Rich tree of paths with an entry table per path
    - JSON: The listing wire shape (path, type, entries, children)

Example:
    from facl.report import generate_json_listing, print_listing

    listing = engine.get_acl(ACLListConfig(path="/tank/share", recursive=True))
    print_listing(listing)
    print(generate_json_listing(listing))
"""

from facl.report.console import build_tree, entries_table, print_listing
from facl.report.json import build_listing_dict, entry_to_dict, generate_json_listing

__all__ = [
    "build_listing_dict",
    "build_tree",
    "entries_table",
    "entry_to_dict",
    "generate_json_listing",
    "print_listing",
]
