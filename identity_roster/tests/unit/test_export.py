"""Unit tests for exporting the resolved graph."""

import json
from pathlib import Path

from identity_roster.export import graph_to_dict, graph_to_json, render_tfvars, write_export
from identity_roster.models import UserRecord
from identity_roster.resolver import resolve

SECRET = "Str0ng!Passw0rd"


def build_graph():
    roster = [
        UserRecord(principal_name="a@x.com", role="eng", display_name="A", password=SECRET),
        UserRecord(principal_name="b@x.com", role="eng", display_name="B"),
        UserRecord(principal_name="c@x.com", role="ops", display_name='C "quoted"'),
    ]
    return resolve(roster, password_mode="auto")


class TestGraphToDict:
    """Test the plain-data view of the graph."""

    def test_addressable_keys(self) -> None:
        """Test that each collection is keyed by its identity key."""
        data = graph_to_dict(build_graph())

        assert list(data["users"]) == ["a@x.com", "b@x.com", "c@x.com"]
        assert list(data["groups"]) == ["eng", "ops"]
        assert data["memberships"]["c@x.com/ops"] == {"user": "c@x.com", "group": "ops"}
        assert data["users"]["a@x.com"]["mail_nickname"] == "a"
        assert data["users"]["a@x.com"]["force_password_change"] is True

    def test_credentials_not_exported(self) -> None:
        """Test that neither supplied nor generated passwords leak."""
        graph = build_graph()
        text = graph_to_json(graph)

        assert SECRET not in text
        for password in graph.generated_passwords.values():
            assert password not in text
        assert "password" not in json.loads(text)["users"]["a@x.com"]

    def test_equal_graphs_export_identically(self) -> None:
        """Test that re-resolving gives byte-identical exports."""
        assert graph_to_json(build_graph()) == graph_to_json(build_graph())


class TestRenderTfvars:
    """Test the Terraform variables rendering."""

    def test_render(self) -> None:
        """Test that every collection and key appears in the output."""
        content = render_tfvars(build_graph())

        assert content.startswith("# Generated from the user roster")
        assert 'users = {' in content
        assert '"a@x.com" = {' in content
        assert '"eng" = {' in content
        assert '"c@x.com/ops" = {' in content
        assert "force_password_change = true" in content
        assert SECRET not in content

    def test_strings_are_escaped(self) -> None:
        """Test that quotes in values are escaped."""
        content = render_tfvars(build_graph())

        assert '"C \\"quoted\\""' in content

    def test_empty_graph(self) -> None:
        """Test rendering an empty roster."""
        content = render_tfvars(resolve([], password_mode="auto"))

        assert "users = {\n}" in content
        assert "memberships = {\n}" in content


class TestWriteExport:
    """Test writing exports to disk."""

    def test_tfvars_suffix(self, tmp_path: Path) -> None:
        """Test that .tfvars paths get HCL content."""
        path = write_export(build_graph(), tmp_path / "out" / "users.auto.tfvars")

        assert path.read_text().startswith("# Generated")

    def test_json_suffix(self, tmp_path: Path) -> None:
        """Test that other paths get JSON content."""
        path = write_export(build_graph(), tmp_path / "graph.json")

        assert set(json.loads(path.read_text())) == {"users", "groups", "memberships"}
