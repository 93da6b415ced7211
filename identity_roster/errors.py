"""Exceptions raised while resolving a roster and applying it to a directory."""


class RosterError(Exception):
    """Base exception for problems detected before anything is submitted."""

    pass


class RosterFileError(RosterError):
    """Exception raised when the roster document cannot be read or has the wrong shape."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ValidationError(RosterError):
    """Exception raised when a roster record is missing or has a malformed field."""

    def __init__(self, message: str, index: int):
        super().__init__(f"Roster record {index}: {message}")
        self.index = index


class DuplicateKeyError(RosterError):
    """Exception raised when two roster records share a principal name."""

    def __init__(self, key: str, first_index: int, second_index: int, first_key: str | None = None):
        first_key = first_key or key
        detail = "" if first_key == key else f", same account as '{first_key}'"
        super().__init__(
            f"Duplicate principal name '{key}' (records {first_index} and {second_index}{detail})"
        )
        self.key = key
        self.first_key = first_key
        self.first_index = first_index
        self.second_index = second_index


class PasswordPolicyError(RosterError):
    """Exception raised when a supplied password fails the complexity policy."""

    def __init__(self, principal_name: str, reasons: list[str]):
        super().__init__(
            f"Password for '{principal_name}' rejected: {'; '.join(reasons)}"
        )
        self.principal_name = principal_name
        self.reasons = reasons


class DirectoryError(Exception):
    """Base exception for errors raised by a directory backend."""

    pass


class DirectoryAuthError(DirectoryError):
    """Exception raised when an access token cannot be obtained."""

    pass


class DirectoryHTTPError(DirectoryError):
    """Exception raised for non-success HTTP responses from the directory."""

    def __init__(self, message: str, status_code: int, response_text: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class DirectoryConflictError(DirectoryError):
    """Exception raised when a name matches more than one directory object."""

    pass
