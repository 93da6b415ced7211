"""
Resolve a roster into an addressable resource graph.

``resolve()`` is a pure function of the roster content. It validates every
record, keys users on their principal name, derives one group per distinct
role and one membership edge per user. All checks run before the graph is
returned, so a failing roster never yields partial output and nothing is
ever submitted to a directory on its behalf.

Group names are compared as exact, case-sensitive strings: "Admin" and
"admin" are two different groups. Roles are not normalised. Principal names
are compared case-insensitively for duplicates, the way directories match
account names.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import replace

from .config import GENERATED_PASSWORD_LENGTH, PASSWORD_MODES, ROSTER_PASSWORD_MODE
from .errors import DuplicateKeyError, PasswordPolicyError, ValidationError
from .models import MembershipEdge, ResourceGraph, RoleGroup, UserRecord
from .passwords import generate_password, policy_violations

logger = logging.getLogger(__name__)

PRINCIPAL_NAME_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_record(record: UserRecord, index: int, password_mode: str) -> None:
    """
    Check the required fields of a single record.

    Raises:
        ValidationError: naming ``index`` when a field is missing or malformed.
    """
    if not record.principal_name or not record.principal_name.strip():
        raise ValidationError("missing required field 'name'", index)
    if not PRINCIPAL_NAME_PATTERN.match(record.principal_name):
        raise ValidationError(
            f"name '{record.principal_name}' is not an account address (user@domain)", index
        )
    if not record.role or not record.role.strip():
        raise ValidationError(f"missing required field 'role' for '{record.principal_name}'", index)

    if password_mode == "supplied" and not record.password:
        raise ValidationError(
            f"password required for '{record.principal_name}' when passwords are supplied", index
        )
    if password_mode == "generated" and record.password:
        raise ValidationError(
            f"password for '{record.principal_name}' must not be set when passwords are generated",
            index,
        )


def resolve(
    roster: Iterable[UserRecord],
    password_mode: str = ROSTER_PASSWORD_MODE,
    password_length: int = GENERATED_PASSWORD_LENGTH,
) -> ResourceGraph:
    """
    Transform a sequence of roster records into users, groups and memberships.

    Args:
        roster: Roster records in any order; may be empty.
        password_mode: "auto", "supplied" or "generated".
        password_length: Length of generated credentials.

    Returns:
        ResourceGraph keyed by principal name, role, and (principal, role).

    Raises:
        ValidationError: A record is missing ``name`` or ``role``.
        DuplicateKeyError: Two records share a principal name, ignoring case.
        PasswordPolicyError: A supplied password fails the complexity policy.
        ValueError: ``password_mode`` is not a known mode.
    """
    if password_mode not in PASSWORD_MODES:
        raise ValueError(f"password_mode must be one of {', '.join(PASSWORD_MODES)}, got {password_mode!r}")

    records = list(roster)

    for index, record in enumerate(records):
        validate_record(record, index, password_mode)

    seen: dict[str, int] = {}
    for index, record in enumerate(records):
        folded = record.principal_name.casefold()
        if folded in seen:
            first = seen[folded]
            raise DuplicateKeyError(record.principal_name, first, index, records[first].principal_name)
        seen[folded] = index

    for record in records:
        if record.password:
            reasons = policy_violations(record.password, record.principal_name)
            if reasons:
                raise PasswordPolicyError(record.principal_name, reasons)

    graph = ResourceGraph()
    for record in sorted(records, key=lambda r: r.principal_name):
        user = record
        if not record.password:
            user = replace(
                record,
                password=generate_password(password_length),
                password_generated=True,
            )
        graph.users[user.principal_name] = user

        if user.role not in graph.groups:
            graph.groups[user.role] = RoleGroup(name=user.role)

        edge = MembershipEdge(principal_name=user.principal_name, role=user.role)
        graph.memberships[edge.key] = edge

    logger.debug(
        "Resolved %d users, %d groups, %d memberships (%d generated passwords)",
        len(graph.users),
        len(graph.groups),
        len(graph.memberships),
        len(graph.generated_passwords),
    )
    return graph
