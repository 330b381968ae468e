"""
Unit tests for principal resolvers.

Tests cover:
- Splitting DOMAIN\\name principals
- StaticResolver lookups
- NssResolver against the local passwd/group databases
"""

import grp
import pwd

import pytest

from facl.resolver import NssResolver, StaticResolver, split_domain_principal


class TestSplitDomainPrincipal:
    """Tests for split_domain_principal."""

    def test_domain_principal(self) -> None:
        """DOMAIN\\name splits at the first separator."""
        assert split_domain_principal("CORP\\alice") == ("CORP", "alice")
        assert split_domain_principal("CORP\\a\\b") == ("CORP", "a\\b")

    @pytest.mark.parametrize("principal", ["alice", "", "\\alice", "CORP\\"])
    def test_not_domain_principal(self, principal: str) -> None:
        """Local names and half-qualified names are not domain principals."""
        assert split_domain_principal(principal) is None


class TestStaticResolver:
    """Tests for StaticResolver."""

    def test_lookup(self) -> None:
        """Known users and groups resolve; domains ignore case."""
        resolver = StaticResolver(users=["CORP\\alice"], groups=["corp\\staff"])
        assert resolver.user_exists("CORP", "alice")
        assert resolver.user_exists("corp", "alice")
        assert resolver.group_exists("CORP", "staff")
        assert not resolver.user_exists("CORP", "staff")
        assert not resolver.group_exists("OTHER", "staff")

    def test_names_are_case_sensitive(self) -> None:
        """Only the domain part is case-insensitive."""
        resolver = StaticResolver(users=["CORP\\alice"])
        assert not resolver.user_exists("CORP", "Alice")

    def test_rejects_local_names(self) -> None:
        """Configured principals must be domain-qualified."""
        with pytest.raises(ValueError):
            StaticResolver(users=["alice"])


class TestNssResolver:
    """Tests for NssResolver."""

    def test_unknown_user(self) -> None:
        """A principal absent from NSS is not found."""
        assert NssResolver().user_exists("NO-SUCH-DOMAIN", "ghost") is False

    def test_unknown_group(self) -> None:
        """A group absent from NSS is not found."""
        assert NssResolver().group_exists("NO-SUCH-DOMAIN", "ghost") is False

    def test_known_user(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The lookup uses the DOMAIN\\name form."""
        seen = []

        def getpwnam(name: str) -> object:
            seen.append(name)
            return object()

        monkeypatch.setattr(pwd, "getpwnam", getpwnam)
        assert NssResolver().user_exists("CORP", "alice") is True
        assert seen == ["CORP\\alice"]

    def test_known_group(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Groups are looked up in the group database."""
        monkeypatch.setattr(grp, "getgrnam", lambda name: object())
        assert NssResolver().group_exists("CORP", "staff") is True
