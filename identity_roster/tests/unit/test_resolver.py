"""Unit tests for roster resolution."""

import random

import pytest

from identity_roster.errors import DuplicateKeyError, PasswordPolicyError, RosterError, ValidationError
from identity_roster.models import MembershipEdge, ResourceGraph, RoleGroup, UserRecord
from identity_roster.passwords import character_classes
from identity_roster.resolver import resolve


def user(name: str, role: str, password: str | None = None) -> UserRecord:
    return UserRecord(principal_name=name, role=role, display_name=name.split("@")[0], password=password)


EXAMPLE_ROSTER = [
    user("a@x.com", "eng"),
    user("b@x.com", "eng"),
    user("c@x.com", "ops"),
]


class TestResolveShape:
    """Test users, groups and memberships derived from a roster."""

    def test_example_roster(self) -> None:
        """Test three users sharing two roles."""
        graph = resolve(EXAMPLE_ROSTER, password_mode="auto")

        assert set(graph.users) == {"a@x.com", "b@x.com", "c@x.com"}
        assert graph.groups == {"eng": RoleGroup("eng"), "ops": RoleGroup("ops")}
        assert set(graph.memberships) == {
            ("a@x.com", "eng"),
            ("b@x.com", "eng"),
            ("c@x.com", "ops"),
        }
        assert graph.memberships[("c@x.com", "ops")] == MembershipEdge("c@x.com", "ops")

    def test_empty_roster(self) -> None:
        """Test that an empty roster resolves to an empty graph."""
        graph = resolve([], password_mode="auto")

        assert graph == ResourceGraph()
        assert graph.is_empty()
        assert graph.summary() == {"users": 0, "groups": 0, "memberships": 0}

    def test_counts_match_roster(self) -> None:
        """Test one user and one edge per record, one group per distinct role."""
        roster = [user(f"user{i}@x.com", f"role{i % 4}") for i in range(25)]
        graph = resolve(roster, password_mode="auto")

        assert len(graph.users) == 25
        assert len(graph.groups) == 4
        assert len(graph.memberships) == 25

    def test_roles_are_case_sensitive(self) -> None:
        """Test that "Admin" and "admin" become two groups."""
        graph = resolve([user("a@x.com", "Admin"), user("b@x.com", "admin")], password_mode="auto")

        assert set(graph.groups) == {"Admin", "admin"}
        assert ("a@x.com", "Admin") in graph.memberships
        assert ("b@x.com", "admin") in graph.memberships

    def test_every_user_must_change_password(self) -> None:
        """Test that the forced password change flag is set on every user."""
        graph = resolve(EXAMPLE_ROSTER + [user("d@x.com", "ops", "Str0ng!Passw0rd")], password_mode="auto")

        assert all(u.force_password_change for u in graph.users.values())


class TestResolveDeterminism:
    """Test order independence and idempotence."""

    def test_shuffled_roster_gives_equal_graph(self) -> None:
        """Test that record order does not change the graph."""
        roster = [user(f"user{i}@x.com", f"role{i % 3}") for i in range(30)]
        shuffled = roster[:]
        random.Random(7).shuffle(shuffled)

        assert resolve(roster, password_mode="auto") == resolve(shuffled, password_mode="auto")

    def test_repeated_resolution_is_equal(self) -> None:
        """Test that resolving the same roster twice yields equal graphs."""
        first = resolve(EXAMPLE_ROSTER, password_mode="auto")
        second = resolve(EXAMPLE_ROSTER, password_mode="auto")

        assert first == second
        # Credentials are regenerated but excluded from equality
        assert first.generated_passwords != second.generated_passwords


class TestResolveErrors:
    """Test validation, duplicate and password policy failures."""

    def test_duplicate_principal_name(self) -> None:
        """Test that a repeated principal name fails and names the key."""
        roster = [user("a@x.com", "eng"), user("b@x.com", "ops"), user("a@x.com", "ops")]

        with pytest.raises(DuplicateKeyError) as exc_info:
            resolve(roster, password_mode="auto")

        assert exc_info.value.key == "a@x.com"
        assert exc_info.value.first_index == 0
        assert exc_info.value.second_index == 2
        assert "a@x.com" in str(exc_info.value)

    def test_duplicate_principal_name_ignores_case(self) -> None:
        """Test that two spellings of one account are reported as duplicates."""
        roster = [user("Alice@x.com", "eng"), user("alice@x.com", "ops")]

        with pytest.raises(DuplicateKeyError) as exc_info:
            resolve(roster, password_mode="auto")

        assert exc_info.value.key == "alice@x.com"
        assert exc_info.value.first_key == "Alice@x.com"
        assert (exc_info.value.first_index, exc_info.value.second_index) == (0, 1)
        assert "Alice@x.com" in str(exc_info.value)
        assert "alice@x.com" in str(exc_info.value)

    def test_unknown_password_mode(self) -> None:
        """Test that a misspelled password mode is rejected instead of treated as auto."""
        with pytest.raises(ValueError, match="generatd"):
            resolve([user("a@x.com", "eng", "Str0ng!Passw0rd")], password_mode="generatd")

    def test_missing_role_names_index(self) -> None:
        """Test that a record without a role fails with its index."""
        roster = [user("a@x.com", "eng"), user("b@x.com", "eng"), user("c@x.com", "")]

        with pytest.raises(ValidationError) as exc_info:
            resolve(roster, password_mode="auto")

        assert exc_info.value.index == 2
        assert "role" in str(exc_info.value)

    def test_missing_name_names_index(self) -> None:
        """Test that a record without a principal name fails with its index."""
        with pytest.raises(ValidationError) as exc_info:
            resolve([user("  ", "eng")], password_mode="auto")

        assert exc_info.value.index == 0

    @pytest.mark.parametrize("name", ["alice", "alice@", "@x.com", "alice@localhost", "a b@x.com"])
    def test_malformed_principal_name(self, name: str) -> None:
        """Test that names that are not account addresses are rejected."""
        with pytest.raises(ValidationError):
            resolve([user(name, "eng")], password_mode="auto")

    def test_validation_runs_before_duplicate_check(self) -> None:
        """Test that a malformed record is reported even when duplicates exist."""
        roster = [user("a@x.com", "eng"), user("a@x.com", "eng"), user("c@x.com", "")]

        with pytest.raises(ValidationError):
            resolve(roster, password_mode="auto")

    def test_weak_password_names_user(self) -> None:
        """Test that a supplied password failing the policy names the user."""
        roster = [user("a@x.com", "eng", "Str0ng!Passw0rd"), user("b@x.com", "eng", "weak")]

        with pytest.raises(PasswordPolicyError) as exc_info:
            resolve(roster, password_mode="auto")

        assert exc_info.value.principal_name == "b@x.com"
        assert exc_info.value.reasons

    def test_errors_share_base_class(self) -> None:
        """Test that callers can catch every roster failure at once."""
        with pytest.raises(RosterError):
            resolve([user("a@x.com", "eng"), user("a@x.com", "eng")], password_mode="auto")


class TestCredentials:
    """Test supplied and generated credentials."""

    def test_supplied_password_is_kept(self) -> None:
        """Test that a valid supplied password is used as is."""
        graph = resolve([user("a@x.com", "eng", "Str0ng!Passw0rd")], password_mode="auto")

        assert graph.users["a@x.com"].password == "Str0ng!Passw0rd"
        assert graph.users["a@x.com"].password_generated is False
        assert graph.generated_passwords == {}

    def test_generated_passwords_are_unique_and_compliant(self) -> None:
        """Test 100 generated credentials for distinctness and policy."""
        roster = [user(f"user{i}@x.com", "eng") for i in range(100)]
        graph = resolve(roster, password_mode="auto")

        passwords = graph.generated_passwords
        assert len(passwords) == 100
        assert len(set(passwords.values())) == 100
        for password in passwords.values():
            assert len(password) >= 16
            assert character_classes(password) == {"lowercase", "uppercase", "digit", "symbol"}

    def test_supplied_mode_requires_passwords(self) -> None:
        """Test that "supplied" mode rejects records without a password."""
        roster = [user("a@x.com", "eng", "Str0ng!Passw0rd"), user("b@x.com", "eng")]

        with pytest.raises(ValidationError) as exc_info:
            resolve(roster, password_mode="supplied")

        assert exc_info.value.index == 1

    def test_generated_mode_rejects_passwords(self) -> None:
        """Test that "generated" mode keeps passwords out of the roster."""
        with pytest.raises(ValidationError):
            resolve([user("a@x.com", "eng", "Str0ng!Passw0rd")], password_mode="generated")

    def test_generated_mode_generates_all(self) -> None:
        """Test that every user gets a generated credential in "generated" mode."""
        graph = resolve(EXAMPLE_ROSTER, password_mode="generated")

        assert set(graph.generated_passwords) == {"a@x.com", "b@x.com", "c@x.com"}

    def test_custom_password_length(self) -> None:
        """Test that the generated length can be raised."""
        graph = resolve([user("a@x.com", "eng")], password_mode="auto", password_length=32)

        assert len(graph.users["a@x.com"].password or "") == 32
