"""
JSON rendering of ACL listings.

Produces the wire shape consumed by request layers:

    {"path": ..., "type": "posix", "entries": [...], "children": [...]}

``children`` is omitted for paths that have none.
"""

import json
from typing import Any

from facl.schema import ACLEntry, ACLListResult


def entry_to_dict(entry: ACLEntry) -> dict[str, Any]:
    """Serialize one entry; an empty principal or flag list is omitted."""
    data = entry.model_dump(mode="json")
    if not data["principal"]:
        del data["principal"]
    if not data["flags"]:
        del data["flags"]
    return data


def build_listing_dict(listing: ACLListResult) -> dict[str, Any]:
    """Build the wire dictionary for a listing tree."""
    data: dict[str, Any] = {
        "path": listing.path,
        "type": listing.type.value,
        "entries": [entry_to_dict(e) for e in listing.entries],
    }
    if listing.children:
        data["children"] = [build_listing_dict(c) for c in listing.children]
    return data


def generate_json_listing(listing: ACLListResult, indent: int = 2) -> str:
    """
    Render a listing as a JSON string.

    Args:
        listing: Result of ACLEngine.get_acl
        indent: JSON indentation level (default: 2)
    """
    return json.dumps(build_listing_dict(listing), indent=indent)
