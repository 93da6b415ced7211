"""Resolve a user roster into directory users, role groups and memberships."""

from .errors import (
    DirectoryError,
    DuplicateKeyError,
    PasswordPolicyError,
    RosterError,
    RosterFileError,
    ValidationError,
)
from .models import MembershipEdge, ResourceGraph, RoleGroup, UserRecord
from .resolver import resolve
from .roster import load_roster

__all__ = [
    "DirectoryError",
    "DuplicateKeyError",
    "MembershipEdge",
    "PasswordPolicyError",
    "ResourceGraph",
    "RoleGroup",
    "RosterError",
    "RosterFileError",
    "UserRecord",
    "ValidationError",
    "load_roster",
    "resolve",
]
