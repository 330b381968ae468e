"""
Resolver that asks the system name service.

On a host joined to a directory domain (winbind, sssd), domain users and
groups are visible through NSS as ``DOMAIN\\name``, so the passwd and
group databases answer the existence question without a separate client.
"""

import grp
import pwd

from facl.resolver.base import DOMAIN_SEPARATOR, PrincipalResolver


class NssResolver(PrincipalResolver):
    """Look principals up with getpwnam/getgrnam."""

    def user_exists(self, domain: str, name: str) -> bool:
        try:
            pwd.getpwnam(f"{domain}{DOMAIN_SEPARATOR}{name}")
        except KeyError:
            return False
        return True

    def group_exists(self, domain: str, name: str) -> bool:
        try:
            grp.getgrnam(f"{domain}{DOMAIN_SEPARATOR}{name}")
        except KeyError:
            return False
        return True
