"""
Apply a resolved resource graph to a directory backend.

Execution Order:
================
1. Users        (no dependencies)
2. Groups       (no dependencies)
3. Memberships  (need the object ids of both ends)

Each object is looked up by its identity key and created only when missing,
so applying an unchanged roster a second time creates nothing. Objects that
already exist are reported but never modified. Nothing is deleted: removing
stale users, groups or memberships is the job of the reconciliation engine
that owns the directory state.

Errors:
=======
Roster errors are raised by ``resolve()`` before the backend is called.
Errors from the backend (permissions, name collisions, throttling) are
raised unchanged, with no retry; objects created before the failure stay
in place and are picked up as "existing" on the next run.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .backends.base import DirectoryBackend
from .config import CREDENTIALS_DIR, ROSTER_PASSWORD_MODE
from .models import MembershipKey, ResourceGraph
from .resolver import resolve
from .roster import load_roster

logger = logging.getLogger(__name__)

CREATED = "created"
EXISTING = "existing"


@dataclass
class ApplyReport:
    """Outcome of applying a graph, keyed the same way as the graph."""

    backend: str
    user_ids: dict[str, str] = field(default_factory=dict)
    user_display_names: dict[str, str] = field(default_factory=dict)
    group_ids: dict[str, str] = field(default_factory=dict)
    memberships: dict[MembershipKey, str] = field(default_factory=dict)
    created_users: list[str] = field(default_factory=list)
    created_groups: list[str] = field(default_factory=list)
    # Sensitive: only credentials of users created in this run
    generated_passwords: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def changed(self) -> bool:
        return bool(
            self.created_users
            or self.created_groups
            or any(status == CREATED for status in self.memberships.values())
        )

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Plain-data view of the report; credentials are left out unless requested."""
        data: dict[str, Any] = {
            "backend": self.backend,
            "user_ids": dict(sorted(self.user_ids.items())),
            "user_display_names": dict(sorted(self.user_display_names.items())),
            "group_ids": dict(sorted(self.group_ids.items())),
            "memberships": {
                f"{principal}/{role}": status
                for (principal, role), status in sorted(self.memberships.items())
            },
            "created_users": sorted(self.created_users),
            "created_groups": sorted(self.created_groups),
        }
        if include_sensitive:
            data["generated_passwords"] = dict(sorted(self.generated_passwords.items()))
        else:
            data["generated_passwords"] = "(sensitive)" if self.generated_passwords else {}
        return data


def apply_graph(graph: ResourceGraph, backend: DirectoryBackend) -> ApplyReport:
    """
    Ensure every user, group and membership of ``graph`` exists in ``backend``.

    Args:
        graph: Graph returned by ``resolve()``.
        backend: Directory to apply the graph to.

    Returns:
        ApplyReport with object ids and per-object status.
    """
    report = ApplyReport(backend=backend.name)

    logger.info("Ensuring %d users exist", len(graph.users))
    for principal_name, user in sorted(graph.users.items()):
        user_id = backend.find_user(principal_name)
        if user_id:
            logger.info("User '%s' already exists (ID: %s)", principal_name, user_id)
        else:
            user_id = backend.create_user(user)
            logger.info("Created user '%s' (ID: %s)", principal_name, user_id)
            report.created_users.append(principal_name)
            if user.password_generated and user.password is not None:
                report.generated_passwords[principal_name] = user.password
        report.user_ids[principal_name] = user_id
        report.user_display_names[principal_name] = user.display_name

    logger.info("Ensuring %d groups exist", len(graph.groups))
    for name, group in sorted(graph.groups.items()):
        group_id = backend.find_group(name)
        if group_id:
            logger.info("Group '%s' already exists (ID: %s)", name, group_id)
        else:
            group_id = backend.create_group(group)
            logger.info("Created group '%s' (ID: %s)", name, group_id)
            report.created_groups.append(name)
        report.group_ids[name] = group_id

    logger.info("Ensuring %d memberships exist", len(graph.memberships))
    for key, edge in sorted(graph.memberships.items()):
        user_id = report.user_ids[edge.principal_name]
        group_id = report.group_ids[edge.role]
        if backend.is_member(group_id, user_id):
            report.memberships[key] = EXISTING
        else:
            backend.add_member(group_id, user_id)
            logger.info("Added '%s' to group '%s'", edge.principal_name, edge.role)
            report.memberships[key] = CREATED

    return report


def provision(
    roster_path: str | Path,
    backend: DirectoryBackend,
    password_mode: str = ROSTER_PASSWORD_MODE,
) -> ApplyReport:
    """Load, resolve and apply a roster file; roster errors abort before any backend call."""
    records = load_roster(roster_path)
    graph = resolve(records, password_mode=password_mode)
    summary = graph.summary()
    logger.info(
        "Resolved %s: %d users, %d groups, %d memberships",
        roster_path,
        summary["users"],
        summary["groups"],
        summary["memberships"],
    )
    return apply_graph(graph, backend)


def write_credentials(report: ApplyReport, directory: str | Path = CREDENTIALS_DIR) -> Path:
    """
    Save the generated passwords of a report to a file only the owner can read.

    A generated password is reported once, in the run that created the
    account, so it has to be kept somewhere before the run ends.

    Args:
        report: Report returned by ``apply_graph()``.
        directory: Directory for the credentials file; created if missing.

    Returns:
        Path of the new ``initial-passwords-<timestamp>.json`` file.
    """
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"initial-passwords-{datetime.now():%Y%m%d-%H%M%S-%f}.json"

    content = {
        "backend": report.backend,
        "generated_passwords": dict(sorted(report.generated_passwords.items())),
    }
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(json.dumps(content, indent=2) + "\n")

    logger.info("Saved %d generated passwords to %s", len(report.generated_passwords), path)
    return path
