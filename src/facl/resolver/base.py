"""
Principal resolver contract.

The engine does not talk to a directory service itself. It asks a
PrincipalResolver whether a domain-qualified principal (``DOMAIN\\name``)
exists before any ACL mutation is attempted.
"""

from abc import ABC, abstractmethod


DOMAIN_SEPARATOR = "\\"


def split_domain_principal(principal: str) -> tuple[str, str] | None:
    """
    Split ``DOMAIN\\name`` into its parts.

    Returns:
        (domain, name), or None if the principal is not domain-qualified
    """
    if DOMAIN_SEPARATOR not in principal:
        return None
    domain, name = principal.split(DOMAIN_SEPARATOR, 1)
    if not domain or not name:
        return None
    return domain, name


class PrincipalResolver(ABC):
    """
    Abstract base class for directory-service lookups.

    Implementations answer existence questions only; they never
    translate or rewrite names.
    """

    @abstractmethod
    def user_exists(self, domain: str, name: str) -> bool:
        """Whether user ``name`` exists in ``domain``."""
        ...

    @abstractmethod
    def group_exists(self, domain: str, name: str) -> bool:
        """Whether group ``name`` exists in ``domain``."""
        ...


class StaticResolver(PrincipalResolver):
    """
    Resolver backed by fixed sets of ``DOMAIN\\name`` strings.

    Domain names compare case-insensitively, as directory services do.
    """

    def __init__(
        self,
        users: list[str] | None = None,
        groups: list[str] | None = None,
    ) -> None:
        self._users = {self._key(p) for p in users or []}
        self._groups = {self._key(p) for p in groups or []}

    @staticmethod
    def _key(principal: str) -> tuple[str, str]:
        parts = split_domain_principal(principal)
        if parts is None:
            msg = f"Not a domain principal: {principal}"
            raise ValueError(msg)
        return parts[0].upper(), parts[1]

    def user_exists(self, domain: str, name: str) -> bool:
        return (domain.upper(), name) in self._users

    def group_exists(self, domain: str, name: str) -> bool:
        return (domain.upper(), name) in self._groups
