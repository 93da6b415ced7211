"""Unit tests for configuration validation."""

import pytest

from identity_roster.config import validate_config


class TestValidateConfig:
    """Test validate_config() argument checks."""

    def test_unknown_backend(self) -> None:
        """Test that unknown backends are rejected."""
        with pytest.raises(ValueError, match="DIRECTORY_BACKEND"):
            validate_config(backend="ldap", password_mode="auto", tenant_id="t")

    def test_unknown_password_mode(self) -> None:
        """Test that unknown password modes are rejected."""
        with pytest.raises(ValueError, match="ROSTER_PASSWORD_MODE"):
            validate_config(backend="graph", password_mode="random", tenant_id="t")

    def test_graph_requires_tenant(self) -> None:
        """Test that the graph backend needs a tenant identifier."""
        with pytest.raises(ValueError, match="AZURE_TENANT_ID"):
            validate_config(backend="graph", password_mode="auto", tenant_id="")

    def test_infrahub_without_tenant(self) -> None:
        """Test that the infrahub backend does not need a tenant."""
        validate_config(backend="infrahub", password_mode="generated", tenant_id="")
