"""
Export a resolved graph for an external reconciliation engine.

Both formats expose the same three collections and the same keys, so an
engine that matches objects by key (e.g. Terraform ``for_each``) sees a
stable address for every user, group and membership across runs:

    users        "<principal>"
    groups       "<role>"
    memberships  "<principal>/<role>"

Credentials are never exported.
"""

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from .models import ResourceGraph

TEMPLATE_DIRECTORY = Path(__file__).parent / "templates"


def graph_to_dict(graph: ResourceGraph) -> dict[str, Any]:
    """Convert the graph into plain, sorted, credential-free data."""
    users = {
        name: {
            "user_principal_name": user.principal_name,
            "display_name": user.display_name,
            "given_name": user.given_name,
            "surname": user.surname,
            "mail_nickname": user.mail_nickname,
            "role": user.role,
            "force_password_change": user.force_password_change,
            "password_generated": user.password_generated,
        }
        for name, user in sorted(graph.users.items())
    }
    groups = {
        name: {"display_name": group.name, "description": group.description}
        for name, group in sorted(graph.groups.items())
    }
    memberships = {
        edge.address: {"user": edge.principal_name, "group": edge.role}
        for _, edge in sorted(graph.memberships.items())
    }
    return {"users": users, "groups": groups, "memberships": memberships}


def graph_to_json(graph: ResourceGraph) -> str:
    return json.dumps(graph_to_dict(graph), indent=2, sort_keys=True) + "\n"


def render_tfvars(graph: ResourceGraph) -> str:
    """Render the graph as a Terraform variables file."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIRECTORY),
        autoescape=False,  # HCL output, not HTML
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    # tojson yields valid HCL string literals, including escaping
    template = env.get_template("users.auto.tfvars.j2")
    return template.render(**graph_to_dict(graph))


def write_export(graph: ResourceGraph, path: str | Path) -> Path:
    """Write the graph to ``path``; ``.tfvars`` files get HCL, anything else JSON."""
    output = Path(path)
    if output.name.endswith(".tfvars"):
        content = render_tfvars(graph)
    else:
        content = graph_to_json(graph)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    return output
