"""Terminal output shared by the provisioning script and invoke tasks."""

import logging

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .models import ResourceGraph
from .provision import CREATED, EXISTING, ApplyReport

STATUS_STYLES = {CREATED: "bold green", EXISTING: "dim"}


def setup_logging(console: Console, verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )
    # Keep HTTP client chatter out of operator output
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def graph_tables(graph: ResourceGraph) -> list[Table]:
    """Build one table per collection of the resolved graph."""
    users = Table(title="Users", box=box.SIMPLE, header_style="bold cyan")
    users.add_column("Principal name", style="green", no_wrap=True)
    users.add_column("Display name")
    users.add_column("Role", style="magenta")
    users.add_column("Password")
    for name, user in sorted(graph.users.items()):
        password = "[yellow]generated[/yellow]" if user.password_generated else "supplied"
        users.add_row(name, escape(user.display_name), escape(user.role), password)

    groups = Table(title="Groups", box=box.SIMPLE, header_style="bold cyan")
    groups.add_column("Name", style="magenta", no_wrap=True)
    groups.add_column("Members", justify="right")
    for name in sorted(graph.groups):
        count = sum(1 for edge in graph.memberships.values() if edge.role == name)
        groups.add_row(escape(name), str(count))

    memberships = Table(title="Memberships", box=box.SIMPLE, header_style="bold cyan")
    memberships.add_column("Address", no_wrap=True)
    for _, edge in sorted(graph.memberships.items()):
        memberships.add_row(escape(edge.address))

    return [users, groups, memberships]


def print_graph(console: Console, graph: ResourceGraph) -> None:
    for table in graph_tables(graph):
        console.print(table)


def report_tables(report: ApplyReport, show_secrets: bool = False) -> list[Table]:
    """Build tables for an apply report; credentials are masked unless ``show_secrets``."""
    users = Table(title="Users", box=box.SIMPLE, header_style="bold cyan")
    users.add_column("Principal name", style="green", no_wrap=True)
    users.add_column("Display name")
    users.add_column("Object ID", style="dim")
    users.add_column("Status")
    for name, user_id in sorted(report.user_ids.items()):
        status = CREATED if name in report.created_users else EXISTING
        users.add_row(
            name,
            escape(report.user_display_names.get(name, "")),
            user_id,
            f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]",
        )

    groups = Table(title="Groups", box=box.SIMPLE, header_style="bold cyan")
    groups.add_column("Name", style="magenta", no_wrap=True)
    groups.add_column("Object ID", style="dim")
    groups.add_column("Status")
    for name, group_id in sorted(report.group_ids.items()):
        status = CREATED if name in report.created_groups else EXISTING
        groups.add_row(escape(name), group_id, f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]")

    memberships = Table(title="Memberships", box=box.SIMPLE, header_style="bold cyan")
    memberships.add_column("Address", no_wrap=True)
    memberships.add_column("Status")
    for (principal, role), status in sorted(report.memberships.items()):
        memberships.add_row(
            escape(f"{principal}/{role}"), f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]"
        )

    tables = [users, groups, memberships]

    if report.generated_passwords:
        secrets_table = Table(
            title="Generated passwords (sensitive)", box=box.SIMPLE, header_style="bold red"
        )
        secrets_table.add_column("Principal name", style="green", no_wrap=True)
        secrets_table.add_column("Initial password")
        for name, password in sorted(report.generated_passwords.items()):
            secrets_table.add_row(name, escape(password) if show_secrets else "[dim]<sensitive>[/dim]")
        tables.append(secrets_table)

    return tables


def print_report(console: Console, report: ApplyReport, show_secrets: bool = False) -> None:
    for table in report_tables(report, show_secrets=show_secrets):
        console.print(table)
