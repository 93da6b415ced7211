"""
Roster document loading.

A roster is a YAML or JSON document with a ``users`` collection:

    users:
      - name: alice@contoso.com
        displayName: Alice Smith
        givenName: Alice
        surname: Smith
        role: engineering
        password: optional-initial-password

The loader only turns the document into ``UserRecord`` objects. Required
fields, duplicates and password policy are checked by ``resolve()``.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from .errors import RosterFileError, ValidationError
from .models import UserRecord

COLLECTION_FIELD = "users"

# Document field -> UserRecord attribute; camelCase is canonical
FIELD_ALIASES: dict[str, str] = {
    "name": "principal_name",
    "role": "role",
    "password": "password",
    "displayName": "display_name",
    "display_name": "display_name",
    "givenName": "given_name",
    "given_name": "given_name",
    "surname": "surname",
}


def _text(value: Any, field_name: str, index: int, strip: bool = True) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"field '{field_name}' must be a string", index)
    return str(value).strip() if strip else str(value)


def parse_record(entry: Any, index: int) -> UserRecord:
    """Build a ``UserRecord`` from one entry of the ``users`` collection."""
    if not isinstance(entry, dict):
        raise ValidationError("record must be a mapping", index)

    fields: dict[str, str] = {}
    for key, value in entry.items():
        attribute = FIELD_ALIASES.get(key)
        if attribute is None:
            continue
        # Passwords are kept exactly as written
        fields[attribute] = _text(value, key, index, strip=attribute != "password")

    given_name = fields.get("given_name", "")
    surname = fields.get("surname", "")
    display_name = fields.get("display_name") or f"{given_name} {surname}".strip()

    return UserRecord(
        principal_name=fields.get("principal_name", ""),
        role=fields.get("role", ""),
        display_name=display_name or fields.get("principal_name", ""),
        given_name=given_name,
        surname=surname,
        password=fields.get("password") or None,
    )


def parse_roster(document: Any, source: str = "<roster>") -> list[UserRecord]:
    """Extract the records from an already-decoded roster document."""
    if not isinstance(document, dict) or COLLECTION_FIELD not in document:
        raise RosterFileError(f"{source}: missing '{COLLECTION_FIELD}' collection", source)

    entries = document[COLLECTION_FIELD]
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise RosterFileError(f"{source}: '{COLLECTION_FIELD}' must be a list", source)

    return [parse_record(entry, index) for index, entry in enumerate(entries)]


def load_roster(path: str | Path) -> list[UserRecord]:
    """
    Read a roster file from disk.

    Args:
        path: Path to a ``.yml``, ``.yaml`` or ``.json`` roster document.

    Returns:
        Roster records in document order.

    Raises:
        RosterFileError: The file is missing, unparsable or has the wrong shape.
        ValidationError: An entry of the collection is not a mapping of strings.
    """
    roster_path = Path(path)
    if not roster_path.is_file():
        raise RosterFileError(f"Roster file not found: {roster_path}", str(roster_path))

    try:
        with roster_path.open(encoding="utf-8") as f:
            if roster_path.suffix == ".json":
                document = json.load(f)
            else:
                document = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RosterFileError(f"Failed to parse {roster_path}: {e}", str(roster_path)) from e

    return parse_roster(document, str(roster_path))
