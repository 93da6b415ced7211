"""Interface between the resolved graph and a live directory."""

from abc import ABC, abstractmethod

from ..models import RoleGroup, UserRecord


class DirectoryBackend(ABC):
    """
    Minimal set of directory operations needed to apply a resource graph.

    Implementations look objects up by their identity key and create them
    when missing. They never update, delete or retry; errors from the
    directory are raised to the caller as they are.
    """

    name = "directory"

    @abstractmethod
    def find_user(self, principal_name: str) -> str | None:
        """Return the object id of the user, or None if it does not exist."""

    @abstractmethod
    def create_user(self, user: UserRecord) -> str:
        """Create the user and return its object id."""

    @abstractmethod
    def find_group(self, name: str) -> str | None:
        """Return the object id of the group with exactly this name, or None."""

    @abstractmethod
    def create_group(self, group: RoleGroup) -> str:
        """Create the group and return its object id."""

    @abstractmethod
    def is_member(self, group_id: str, user_id: str) -> bool:
        """Return True if the user is a direct member of the group."""

    @abstractmethod
    def add_member(self, group_id: str, user_id: str) -> None:
        """Add the user to the group."""
