"""
Data model for roster-driven directory provisioning.

The roster declares users; groups and memberships are derived from it:

    UserRecord (declared) → RoleGroup (one per distinct role)
                          → MembershipEdge (one per user, keyed on the pair)

Identity keys:
    - users:        principal_name
    - groups:       role name (case-sensitive, exact match)
    - memberships:  (principal_name, role)

Credentials never take part in equality. Two graphs resolved from the same
roster compare equal even when their generated passwords differ.
"""

from dataclasses import dataclass, field

MembershipKey = tuple[str, str]


@dataclass(frozen=True)
class UserRecord:
    """One entry of the roster, keyed on ``principal_name``."""

    principal_name: str
    role: str
    display_name: str = ""
    given_name: str = ""
    surname: str = ""
    password: str | None = field(default=None, compare=False, repr=False)
    password_generated: bool = field(default=False, compare=False)
    # Fixed policy: every created account must change its password at first sign-in
    force_password_change: bool = field(default=True, init=False)

    @property
    def mail_nickname(self) -> str:
        """Local part of the principal name, as used for directory aliases."""
        return self.principal_name.split("@", 1)[0]


@dataclass(frozen=True)
class RoleGroup:
    """A security group derived from a distinct ``role`` value."""

    name: str

    @property
    def description(self) -> str:
        return f"Members of the {self.name} role"


@dataclass(frozen=True)
class MembershipEdge:
    """Membership of one user in one role group."""

    principal_name: str
    role: str

    @property
    def key(self) -> MembershipKey:
        return (self.principal_name, self.role)

    @property
    def address(self) -> str:
        return f"{self.principal_name}/{self.role}"


@dataclass
class ResourceGraph:
    """Addressable users, groups and memberships resolved from a roster."""

    users: dict[str, UserRecord] = field(default_factory=dict)
    groups: dict[str, RoleGroup] = field(default_factory=dict)
    memberships: dict[MembershipKey, MembershipEdge] = field(default_factory=dict)

    @property
    def generated_passwords(self) -> dict[str, str]:
        """Credentials generated during resolution, keyed by principal name. Sensitive."""
        return {
            name: user.password
            for name, user in self.users.items()
            if user.password_generated and user.password is not None
        }

    def is_empty(self) -> bool:
        return not (self.users or self.groups or self.memberships)

    def summary(self) -> dict[str, int]:
        return {
            "users": len(self.users),
            "groups": len(self.groups),
            "memberships": len(self.memberships),
        }
