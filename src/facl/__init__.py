"""
facl - Structured management of filesystem access control lists.

facl sits between a request layer and the platform's native ACL tooling
(getfacl/setfacl). It provides:
- A typed entry model for POSIX and NFSv4 ACL entries
- A bidirectional codec for the tools' line-oriented text format
- Merge/replace semantics that keep the mandatory base entries intact
- Recursive, best-effort tree listing

Example usage:
    $ facl get /tank/share --recursive
    $ facl modify /tank/share -e user:nobody:r-x
    $ facl remove /tank/share --default
"""

__version__ = "0.1.0"
__author__ = "facl Contributors"

__all__ = [
    "__version__",
    "__author__",
]
