"""
Infrahub account store backend.

Roster objects map onto Infrahub's built-in account schema:

    UserRecord      → CoreAccount        (name = principal name, label = display name)
    RoleGroup       → CoreAccountGroup   (name = role)
    MembershipEdge  → CoreAccountGroup.members relationship

Lookups are GraphQL queries on ``name__value``; memberships are added with
the ``RelationshipAdd`` mutation so existing accounts are never re-saved.
Infrahub has no "change password at next sign-in" flag, so that policy is
logged and left to the operator.
"""

import json
import logging
from typing import Any

from infrahub_sdk import Config, InfrahubClientSync

from ..config import API_TIMEOUT, INFRAHUB_ADDRESS, INFRAHUB_API_TOKEN
from ..errors import DirectoryConflictError
from ..models import RoleGroup, UserRecord
from .base import DirectoryBackend

logger = logging.getLogger(__name__)


class InfrahubDirectory(DirectoryBackend):
    """Apply users, groups and memberships to Infrahub accounts using the official SDK."""

    name = "infrahub"

    def __init__(
        self,
        address: str = INFRAHUB_ADDRESS,
        api_token: str | None = INFRAHUB_API_TOKEN or None,
        timeout: int = API_TIMEOUT,
        branch: str = "main",
    ):
        """Initialize the Infrahub directory backend.

        Args:
            address: Base URL of the Infrahub instance (e.g., "http://localhost:8000")
            api_token: Optional API token for authentication
            timeout: Request timeout in seconds (default: 30)
            branch: Branch the accounts are created on (default: "main")
        """
        self.address = address.rstrip("/")
        self.branch = branch
        config = Config(timeout=timeout, api_token=api_token)
        self._client = InfrahubClientSync(address=address, config=config)
        self._members: dict[str, set[str]] = {}
        self._warned_password_change = False

    def _find_ids(self, kind: str, name: str) -> list[str]:
        query = f"""
        query {{
          {kind}(name__value: {json.dumps(name)}) {{
            edges {{
              node {{
                id
                name {{
                  value
                }}
              }}
            }}
          }}
        }}
        """
        result = self._client.execute_graphql(query=query, branch_name=self.branch)
        edges = result.get(kind, {}).get("edges", [])
        return [edge["node"]["id"] for edge in edges if edge["node"]["name"]["value"] == name]

    def _create(self, kind: str, data: dict[str, Any]) -> str:
        node = self._client.create(kind=kind, data=data, branch=self.branch)
        node.save()
        return node.id

    def find_user(self, principal_name: str) -> str | None:
        ids = self._find_ids("CoreAccount", principal_name)
        return ids[0] if ids else None

    def create_user(self, user: UserRecord) -> str:
        if user.force_password_change and not self._warned_password_change:
            logger.warning(
                "Infrahub cannot force a password change at next sign-in; "
                "share initial credentials out of band and rotate them manually"
            )
            self._warned_password_change = True

        full_name = f"{user.given_name} {user.surname}".strip()
        return self._create(
            "CoreAccount",
            {
                "name": user.principal_name,
                "password": user.password,
                "label": user.display_name or user.principal_name,
                "description": full_name or user.display_name,
                "account_type": "User",
            },
        )

    def find_group(self, name: str) -> str | None:
        ids = self._find_ids("CoreAccountGroup", name)
        if len(ids) > 1:
            raise DirectoryConflictError(f"Group name '{name}' matches {len(ids)} account groups")
        return ids[0] if ids else None

    def create_group(self, group: RoleGroup) -> str:
        group_id = self._create(
            "CoreAccountGroup",
            {"name": group.name, "description": group.description},
        )
        self._members[group_id] = set()
        return group_id

    def is_member(self, group_id: str, user_id: str) -> bool:
        if group_id not in self._members:
            query = f"""
            query {{
              CoreAccountGroup(ids: [{json.dumps(group_id)}]) {{
                edges {{
                  node {{
                    members {{
                      edges {{
                        node {{
                          id
                        }}
                      }}
                    }}
                  }}
                }}
              }}
            }}
            """
            result = self._client.execute_graphql(query=query, branch_name=self.branch)
            members: set[str] = set()
            for edge in result.get("CoreAccountGroup", {}).get("edges", []):
                for member in edge["node"].get("members", {}).get("edges", []):
                    members.add(member["node"]["id"])
            self._members[group_id] = members
        return user_id in self._members[group_id]

    def add_member(self, group_id: str, user_id: str) -> None:
        mutation = f"""
        mutation {{
          RelationshipAdd(data: {{id: {json.dumps(group_id)}, name: "members", nodes: [{{id: {json.dumps(user_id)}}}]}}) {{
            ok
          }}
        }}
        """
        self._client.execute_graphql(query=mutation, branch_name=self.branch)
        self._members.setdefault(group_id, set()).add(user_id)
