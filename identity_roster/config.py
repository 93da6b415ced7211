"""Configuration management for roster provisioning."""

import os
from typing import Final

PASSWORD_MODES: Final[tuple[str, ...]] = ("auto", "supplied", "generated")
BACKENDS: Final[tuple[str, ...]] = ("graph", "infrahub")
MIN_GENERATED_PASSWORD_LENGTH: Final[int] = 16

# Load environment variables
ROSTER_FILE: Final[str] = os.getenv("ROSTER_FILE", "data/users.yml")
ROSTER_PASSWORD_MODE: Final[str] = os.getenv("ROSTER_PASSWORD_MODE", "auto").lower()
DIRECTORY_BACKEND: Final[str] = os.getenv("DIRECTORY_BACKEND", "graph").lower()
AZURE_TENANT_ID: Final[str] = os.getenv("AZURE_TENANT_ID", "")
AZURE_CLIENT_ID: Final[str] = os.getenv("AZURE_CLIENT_ID", "")
AZURE_CLIENT_SECRET: Final[str] = os.getenv("AZURE_CLIENT_SECRET", "")
AZURE_AUTHORITY_URL: Final[str] = os.getenv(
    "AZURE_AUTHORITY_URL", "https://login.microsoftonline.com"
)
GRAPH_API_URL: Final[str] = os.getenv("GRAPH_API_URL", "https://graph.microsoft.com/v1.0")
INFRAHUB_ADDRESS: Final[str] = os.getenv("INFRAHUB_ADDRESS", "http://localhost:8000")
INFRAHUB_API_TOKEN: Final[str] = os.getenv("INFRAHUB_API_TOKEN", "")
API_TIMEOUT: Final[int] = int(os.getenv("API_TIMEOUT", "30"))
GENERATED_PASSWORD_LENGTH: Final[int] = int(os.getenv("GENERATED_PASSWORD_LENGTH", "16"))
CREDENTIALS_DIR: Final[str] = os.getenv("CREDENTIALS_DIR", "build/credentials")


def validate_config(
    backend: str = DIRECTORY_BACKEND,
    password_mode: str = ROSTER_PASSWORD_MODE,
    tenant_id: str = AZURE_TENANT_ID,
) -> None:
    """Validate configuration values.

    Args:
        backend: Directory backend that will receive the graph.
        password_mode: How roster passwords are treated.
        tenant_id: Tenant identifier, required by the Graph backend.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    if backend not in BACKENDS:
        raise ValueError(f"DIRECTORY_BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}")

    if password_mode not in PASSWORD_MODES:
        raise ValueError(
            f"ROSTER_PASSWORD_MODE must be one of {', '.join(PASSWORD_MODES)}, got {password_mode!r}"
        )

    if backend == "graph" and not tenant_id:
        raise ValueError("AZURE_TENANT_ID must be set for the graph backend")

    if bool(AZURE_CLIENT_ID) != bool(AZURE_CLIENT_SECRET):
        raise ValueError("AZURE_CLIENT_ID and AZURE_CLIENT_SECRET must be set together")

    if backend == "infrahub" and not INFRAHUB_ADDRESS:
        raise ValueError("INFRAHUB_ADDRESS must be set for the infrahub backend")

    if API_TIMEOUT <= 0:
        raise ValueError(f"API_TIMEOUT must be positive, got {API_TIMEOUT}")

    if GENERATED_PASSWORD_LENGTH < MIN_GENERATED_PASSWORD_LENGTH:
        raise ValueError(
            f"GENERATED_PASSWORD_LENGTH must be at least {MIN_GENERATED_PASSWORD_LENGTH}, "
            f"got {GENERATED_PASSWORD_LENGTH}"
        )
