"""
Microsoft Entra ID backend over the Microsoft Graph REST API.

Authentication:
===============
Two ways to obtain an access token, matching how the roster is applied:

- CI / unattended: a service principal (``AZURE_CLIENT_ID`` and
  ``AZURE_CLIENT_SECRET``) using the OAuth2 client-credentials grant.
- Local: the operator's ``az login`` session, through
  ``az account get-access-token --resource-type ms-graph``.

The service principal needs the "User Administrator" directory role (or the
equivalent ``User.ReadWrite.All`` and ``Group.ReadWrite.All`` application
permissions).

Group lookups:
==============
Graph ``$filter`` comparisons on ``displayName`` are case-insensitive, so
results are filtered again with an exact string match. A name that still
matches more than one group raises ``DirectoryConflictError``.
"""

import logging
import re
import subprocess
from typing import Any
from urllib.parse import quote

import requests

from ..config import (
    API_TIMEOUT,
    AZURE_AUTHORITY_URL,
    AZURE_CLIENT_ID,
    AZURE_CLIENT_SECRET,
    AZURE_TENANT_ID,
    GRAPH_API_URL,
)
from ..errors import DirectoryAuthError, DirectoryConflictError, DirectoryHTTPError
from ..models import RoleGroup, UserRecord
from .base import DirectoryBackend

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
MAIL_NICKNAME_PATTERN = re.compile(r"[^A-Za-z0-9._-]")


def mail_nickname(value: str) -> str:
    """Strip characters Graph rejects in ``mailNickname``."""
    return MAIL_NICKNAME_PATTERN.sub("", value) or "group"


def odata_literal(value: str) -> str:
    """Quote a string for an OData ``$filter`` expression."""
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


class GraphDirectory(DirectoryBackend):
    """Apply users, groups and memberships to Entra ID through Microsoft Graph."""

    name = "graph"

    def __init__(
        self,
        tenant_id: str = AZURE_TENANT_ID,
        client_id: str = AZURE_CLIENT_ID,
        client_secret: str = AZURE_CLIENT_SECRET,
        base_url: str = GRAPH_API_URL,
        authority_url: str = AZURE_AUTHORITY_URL,
        timeout: int = API_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize the Graph directory backend.

        Args:
            tenant_id: Entra ID tenant identifier.
            client_id: Optional service principal application id.
            client_secret: Optional service principal secret.
            base_url: Graph API base URL (default: v1.0 endpoint).
            authority_url: OAuth2 authority for the token request.
            timeout: Request timeout in seconds (default: 30).
            session: Optional pre-built requests session.
        """
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.authority_url = authority_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token: str | None = None
        self._members: dict[str, set[str]] = {}

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    def _client_credentials_token(self) -> str:
        response = self.session.post(
            f"{self.authority_url}/{self.tenant_id}/oauth2/v2.0/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": GRAPH_SCOPE,
            },
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise DirectoryAuthError(
                f"Token request for client '{self.client_id}' failed "
                f"(HTTP {response.status_code}): {response.text}"
            )
        return response.json()["access_token"]

    def _cli_token(self) -> str:
        command = [
            "az",
            "account",
            "get-access-token",
            "--resource-type",
            "ms-graph",
            "--query",
            "accessToken",
            "-o",
            "tsv",
        ]
        if self.tenant_id:
            command.extend(["--tenant", self.tenant_id])

        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise DirectoryAuthError(
                "Azure CLI is not installed and no service principal is configured"
            ) from e

        token = result.stdout.strip()
        if result.returncode != 0 or not token:
            raise DirectoryAuthError(
                f"Azure CLI could not issue a Graph token (run 'az login'): {result.stderr.strip()}"
            )
        return token

    def access_token(self) -> str:
        """Return a bearer token, acquiring it on first use."""
        if self._token is None:
            if self.client_id and self.client_secret:
                logger.debug("Requesting Graph token for service principal %s", self.client_id)
                self._token = self._client_credentials_token()
            else:
                logger.debug("Requesting Graph token from the Azure CLI session")
                self._token = self._cli_token()
        return self._token

    # ========================================================================
    # HTTP HELPERS
    # ========================================================================

    def _request(
        self,
        method: str,
        path: str,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> requests.Response | None:
        url = path if path.startswith("https://") else f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.access_token()}"}
        response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)

        if allow_missing and response.status_code == 404:
            return None
        if not response.ok:
            raise DirectoryHTTPError(
                f"{method} {path} failed with HTTP {response.status_code}",
                response.status_code,
                response.text,
            )
        return response

    def _get_all(self, path: str, params: dict[str, str] | None = None) -> list[dict[str, Any]]:
        """Collect every page of a collection response."""
        items: list[dict[str, Any]] = []
        response = self._request("GET", path, params=params)
        while response is not None:
            payload = response.json()
            items.extend(payload.get("value", []))
            next_link = payload.get("@odata.nextLink")
            response = self._request("GET", next_link) if next_link else None
        return items

    # ========================================================================
    # USERS
    # ========================================================================

    def find_user(self, principal_name: str) -> str | None:
        response = self._request(
            "GET",
            f"/users/{quote(principal_name, safe='@')}",
            allow_missing=True,
            params={"$select": "id,userPrincipalName"},
        )
        if response is None:
            return None
        return response.json()["id"]

    def create_user(self, user: UserRecord) -> str:
        payload: dict[str, Any] = {
            "accountEnabled": True,
            "userPrincipalName": user.principal_name,
            "displayName": user.display_name or user.principal_name,
            "mailNickname": mail_nickname(user.mail_nickname),
            "passwordProfile": {
                "password": user.password,
                "forceChangePasswordNextSignIn": user.force_password_change,
            },
        }
        if user.given_name:
            payload["givenName"] = user.given_name
        if user.surname:
            payload["surname"] = user.surname

        response = self._request("POST", "/users", json=payload)
        assert response is not None
        return response.json()["id"]

    # ========================================================================
    # GROUPS AND MEMBERSHIPS
    # ========================================================================

    def find_group(self, name: str) -> str | None:
        candidates = self._get_all(
            "/groups",
            params={
                "$filter": f"displayName eq {odata_literal(name)}",
                "$select": "id,displayName",
            },
        )
        matches = [group for group in candidates if group.get("displayName") == name]
        if len(matches) > 1:
            raise DirectoryConflictError(
                f"Group name '{name}' matches {len(matches)} groups in the directory"
            )
        return matches[0]["id"] if matches else None

    def create_group(self, group: RoleGroup) -> str:
        payload = {
            "displayName": group.name,
            "description": group.description,
            "mailEnabled": False,
            "mailNickname": mail_nickname(group.name),
            "securityEnabled": True,
        }
        response = self._request("POST", "/groups", json=payload)
        assert response is not None
        group_id = response.json()["id"]
        self._members[group_id] = set()
        return group_id

    def is_member(self, group_id: str, user_id: str) -> bool:
        if group_id not in self._members:
            members = self._get_all(
                f"/groups/{group_id}/members/microsoft.graph.user",
                params={"$select": "id"},
            )
            self._members[group_id] = {member["id"] for member in members}
        return user_id in self._members[group_id]

    def add_member(self, group_id: str, user_id: str) -> None:
        self._request(
            "POST",
            f"/groups/{group_id}/members/$ref",
            json={"@odata.id": f"{self.base_url}/directoryObjects/{user_id}"},
        )
        self._members.setdefault(group_id, set()).add(user_id)
