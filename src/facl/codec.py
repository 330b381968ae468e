"""
Text codec for getfacl/setfacl line formats.

Two dialects are understood:
- POSIX:  ``[default:]kind[:principal]:perms``  e.g. ``user:alice:r-x``
- NFSv4:  ``principal:perms:flags:access``      e.g. ``owner@:rwx:fd:allow``

Parsing turns tool output into ACLEntry lists; formatting turns entries
back into the lines setfacl reads from its entry files. For every entry
the POSIX parser produces, ``parse_posix_entry(format_entry(e))`` gives
back ``e`` up to the order of its permissions.

Parsing is all-or-nothing: the first malformed line raises ParseError
carrying that line, and no partial result is returned.
"""

import re

from facl.errors import InvalidInputError, ParseError
from facl.schema import (
    ACLEntry,
    ACLFlag,
    ACLType,
    AccessType,
    EntryType,
    Permission,
)


DEFAULT_PREFIX = "default:"

# Order the tools print permission characters in
PERMISSION_ORDER: tuple[Permission, ...] = (
    Permission.READ_DATA,
    Permission.WRITE_DATA,
    Permission.EXECUTE,
    Permission.DELETE,
    Permission.DELETE_CHILD,
    Permission.READ_ACL,
    Permission.WRITE_ACL,
    Permission.READ_ATTRS,
    Permission.WRITE_ATTRS,
    Permission.CHOWN,
    Permission.READ_NAMED_ATTRS,
    Permission.WRITE_NAMED_ATTRS,
    Permission.SYNCHRONIZE,
)

# Fixed-width positions of the POSIX permission string
POSIX_PERMISSIONS: tuple[Permission, ...] = PERMISSION_ORDER[:3]

FLAG_ORDER: tuple[ACLFlag, ...] = (
    ACLFlag.INHERIT,
    ACLFlag.DIRECTORY_INHERIT,
    ACLFlag.INHERIT_ONLY,
    ACLFlag.NO_PROPAGATE_INHERIT,
)

_PERMISSION_BY_CHAR = {p.value: p for p in Permission}
_FLAG_BY_CHAR = {f.value: f for f in ACLFlag}

_NFSV4_SPECIAL_PRINCIPALS = {
    "owner@": EntryType.OWNER,
    "group@": EntryType.OWNER_GROUP,
    "everyone@": EntryType.EVERYONE,
}

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")
_INLINE_COMMENT = re.compile(r"\s+#.*$")

# Characters that would break the line grammar if written verbatim
_ESCAPED_CHARS = frozenset("\\ \t\n\r:,")


# =============================================================================
# Principal Escaping
# =============================================================================


def escape_principal(principal: str) -> str:
    """
    Escape a principal name for setfacl input.

    Spaces become ``\\040`` (as getfacl prints them), backslashes become
    ``\\134`` so ``DOMAIN\\user`` survives a round trip, and separators
    of the line grammar are escaped the same way.
    """
    return "".join(f"\\{ord(c):03o}" if c in _ESCAPED_CHARS else c for c in principal)


def unescape_principal(principal: str) -> str:
    """Decode three-digit octal escapes (``\\040`` and friends)."""
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), principal)


# =============================================================================
# Permissions and Flags
# =============================================================================


def parse_permissions(perms: str) -> list[Permission]:
    """
    Convert a permission string to permission tokens.

    Placeholders (``-``) and unrecognized characters are ignored.
    """
    result: list[Permission] = []
    for char in perms:
        perm = _PERMISSION_BY_CHAR.get(char)
        if perm is not None and perm not in result:
            result.append(perm)
    return result


def parse_flags(flags: str) -> list[ACLFlag]:
    """Convert an NFSv4 flag string to flag tokens, ignoring unknown characters."""
    result: list[ACLFlag] = []
    for char in flags:
        flag = _FLAG_BY_CHAR.get(char)
        if flag is not None and flag not in result:
            result.append(flag)
    return result


def format_permissions(
    permissions: list[Permission],
    acl_type: ACLType = ACLType.POSIX,
) -> str:
    """
    Render permission tokens in tool order.

    POSIX output is the fixed-width ``rwx`` string with ``-`` for absent
    bits, followed by any extended characters present. NFSv4 output lists
    only the characters present.
    """
    present = set(permissions)
    extended = "".join(p.value for p in PERMISSION_ORDER[3:] if p in present)
    if acl_type == ACLType.POSIX:
        fixed = "".join(p.value if p in present else "-" for p in POSIX_PERMISSIONS)
        return fixed + extended
    return "".join(p.value for p in POSIX_PERMISSIONS if p in present) + extended


def format_flags(flags: list[ACLFlag]) -> str:
    """Render NFSv4 flags in tool order."""
    present = set(flags)
    return "".join(f.value for f in FLAG_ORDER if f in present)


# =============================================================================
# Parsing
# =============================================================================


def parse_acl_output(output: str, acl_type: ACLType = ACLType.POSIX) -> list[ACLEntry]:
    """
    Parse the output of getfacl into entries.

    Blank lines and comment lines are skipped, as are trailing
    ``#effective:`` annotations.

    Args:
        output: Raw tool output
        acl_type: Dialect the output is written in

    Returns:
        Entries in output order

    Raises:
        ParseError: On the first malformed line
    """
    entries: list[ACLEntry] = []

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        line = _INLINE_COMMENT.sub("", line)

        if acl_type == ACLType.POSIX:
            entries.append(parse_posix_entry(line))
        else:
            entries.append(parse_nfsv4_entry(line))

    return entries


def parse_posix_entry(line: str) -> ACLEntry:
    """
    Parse one POSIX ACL line.

    ``user::`` and ``group::`` (empty principal) are the owner and owning
    group entries. A leading ``default:`` marks a default entry.

    Raises:
        ParseError: If the line has the wrong number of fields or an unknown kind
    """
    is_default = line.startswith(DEFAULT_PREFIX)
    body = line[len(DEFAULT_PREFIX):] if is_default else line

    parts = body.split(":")
    if len(parts) < 2 or len(parts) > 3:
        raise ParseError(line=line, message=f"Invalid POSIX ACL format: {line!r}")

    kind = parts[0]
    named = len(parts) == 3 and parts[1] != ""
    principal = ""

    if kind == "user":
        entry_type = EntryType.USER if named else EntryType.OWNER
    elif kind == "group":
        entry_type = EntryType.GROUP if named else EntryType.OWNER_GROUP
    elif kind == "owner":
        entry_type = EntryType.OWNER
        named = False
    elif kind == "mask":
        entry_type = EntryType.MASK
        named = False
    elif kind == "other":
        entry_type = EntryType.OTHER
        named = False
    else:
        raise ParseError(line=line, message=f"Unknown POSIX ACL entry type: {kind!r}")

    if named:
        principal = unescape_principal(parts[1])

    return ACLEntry(
        type=entry_type,
        principal=principal,
        permissions=parse_permissions(parts[-1]),
        access=AccessType.ALLOW,
        is_default=is_default,
    )


def parse_nfsv4_entry(line: str) -> ACLEntry:
    """
    Parse one NFSv4 ACL line.

    The principal is ``owner@``, ``group@``, ``everyone@``, ``user:name``,
    ``group:name`` or a bare name (taken as a user). A leading ``user`` or
    ``group`` always takes the next field as the name, so
    ``user:name:perms:flags`` is a named entry without an access field.
    The flags field may be empty; a missing access field, or one other
    than ``deny``, means allow.

    Raises:
        ParseError: If the line has too few fields or an unknown special principal
    """
    parts = line.split(":")
    if len(parts) < 4:
        raise ParseError(line=line, message=f"Invalid NFSv4 ACL format: {line!r}")

    head = parts[0]
    principal = ""

    if head in ("user", "group"):
        entry_type = EntryType.USER if head == "user" else EntryType.GROUP
        principal = unescape_principal(parts[1])
        rest = parts[2:]
    elif head in _NFSV4_SPECIAL_PRINCIPALS:
        entry_type = _NFSV4_SPECIAL_PRINCIPALS[head]
        rest = parts[1:]
    elif head.endswith("@"):
        raise ParseError(line=line, message=f"Invalid NFSv4 principal: {head!r}")
    else:
        entry_type = EntryType.USER
        principal = unescape_principal(head)
        rest = parts[1:]

    flags = rest[1] if len(rest) > 1 else ""
    access = rest[2] if len(rest) > 2 else ""

    return ACLEntry(
        type=entry_type,
        principal=principal,
        permissions=parse_permissions(rest[0]),
        flags=parse_flags(flags),
        access=AccessType.DENY if access == AccessType.DENY.value else AccessType.ALLOW,
    )


# =============================================================================
# Formatting
# =============================================================================


def format_entry(entry: ACLEntry, acl_type: ACLType = ACLType.POSIX) -> str:
    """Render an entry as a line of setfacl input in the given dialect."""
    if acl_type == ACLType.NFSV4:
        return format_nfsv4_entry(entry)
    return format_posix_entry(entry)


def format_posix_entry(entry: ACLEntry) -> str:
    """
    Render an entry in the POSIX dialect.

    Owner, owning group, mask and other entries always render with an
    empty principal segment; ``everyone`` renders as ``other``.
    """
    prefix = DEFAULT_PREFIX if entry.is_default else ""
    perms = format_permissions(entry.permissions, ACLType.POSIX)

    if entry.type == EntryType.USER and entry.principal:
        return f"{prefix}user:{escape_principal(entry.principal)}:{perms}"
    if entry.type == EntryType.GROUP and entry.principal:
        return f"{prefix}group:{escape_principal(entry.principal)}:{perms}"
    if entry.type in (EntryType.USER, EntryType.OWNER):
        return f"{prefix}user::{perms}"
    if entry.type in (EntryType.GROUP, EntryType.OWNER_GROUP):
        return f"{prefix}group::{perms}"
    if entry.type == EntryType.MASK:
        return f"{prefix}mask::{perms}"
    # other and everyone
    return f"{prefix}other::{perms}"


def format_nfsv4_entry(entry: ACLEntry) -> str:
    """
    Render an entry in the NFSv4 dialect.

    Raises:
        InvalidInputError: For mask entries, which NFSv4 has no equivalent of
    """
    if entry.type == EntryType.USER and entry.principal:
        who = f"user:{escape_principal(entry.principal)}"
    elif entry.type == EntryType.GROUP and entry.principal:
        who = f"group:{escape_principal(entry.principal)}"
    elif entry.type in (EntryType.USER, EntryType.OWNER):
        who = "owner@"
    elif entry.type in (EntryType.GROUP, EntryType.OWNER_GROUP):
        who = "group@"
    elif entry.type in (EntryType.EVERYONE, EntryType.OTHER):
        who = "everyone@"
    else:
        raise InvalidInputError(reason=f"{entry.type.value} entries have no NFSv4 form")

    perms = format_permissions(entry.permissions, ACLType.NFSV4)
    return f"{who}:{perms}:{format_flags(entry.flags)}:{entry.access.value}"


def format_removal_entry(entry: ACLEntry) -> str | None:
    """
    Render the setfacl removal line for an entry.

    Only named user and group entries can be removed individually; base
    entries are mandatory, so None is returned for them.
    """
    if not entry.is_named:
        return None
    prefix = DEFAULT_PREFIX if entry.is_default else ""
    return f"{prefix}{entry.type.value}:{escape_principal(entry.principal)}"
