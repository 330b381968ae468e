"""
Principal resolution for domain-qualified ACL principals.

    - PrincipalResolver: Abstract existence checks for users and groups
    - StaticResolver: Fixed in-memory directory
    - NssResolver: System name service (winbind/sssd joined hosts)
"""

from facl.resolver.base import (
    DOMAIN_SEPARATOR,
    PrincipalResolver,
    StaticResolver,
    split_domain_principal,
)
from facl.resolver.nss import NssResolver

__all__ = [
    "DOMAIN_SEPARATOR",
    "NssResolver",
    "PrincipalResolver",
    "StaticResolver",
    "split_domain_principal",
]
