"""Tasks for the identity-roster project."""

import sys
from pathlib import Path

from invoke import Context, task  # type: ignore[import-not-found]
from rich import box  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.panel import Panel  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from identity_roster.config import (
    AZURE_CLIENT_ID,
    AZURE_TENANT_ID,
    DIRECTORY_BACKEND,
    GRAPH_API_URL,
    INFRAHUB_ADDRESS,
    ROSTER_FILE,
    ROSTER_PASSWORD_MODE,
)
from identity_roster.errors import RosterError
from identity_roster.export import write_export
from identity_roster.resolver import resolve
from identity_roster.roster import load_roster
from identity_roster.ui import print_graph

console = Console()

MAIN_DIRECTORY_PATH = Path(__file__).parent


def _resolve_or_exit(roster: str, password_mode: str):
    try:
        return resolve(load_roster(roster), password_mode=password_mode)
    except (RosterError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)


@task(name="list")
def list_tasks(context: Context) -> None:
    """List all available invoke tasks with descriptions."""
    import inspect

    current_module = inspect.getmodule(inspect.currentframe())

    tasks_info = []

    # Get all task objects from the current module
    for name, obj in inspect.getmembers(current_module):
        if hasattr(obj, "__wrapped__") or (
            hasattr(obj, "__class__") and "Task" in obj.__class__.__name__
        ):
            display_name = getattr(obj, "name", name)
            if display_name.startswith("_"):
                continue
            if obj.__doc__:
                description = obj.__doc__.strip().split("\n")[0]
            else:
                description = "No description available"
            tasks_info.append((display_name, description))

    tasks_info.sort(key=lambda x: x[0])

    table = Table(
        title="Available Invoke Tasks",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Task", style="green", no_wrap=True)
    table.add_column("Description", style="white")

    for name, desc in tasks_info:
        table.add_row(name, desc)

    console.print()
    console.print(table)
    console.print()


@task
def info(context: Context) -> None:
    """Show current provisioning configuration."""
    if DIRECTORY_BACKEND == "graph":
        target = f"{GRAPH_API_URL} (tenant {AZURE_TENANT_ID or '[red]not set[/red]'})"
        auth = "Service principal" if AZURE_CLIENT_ID else "Azure CLI session"
    else:
        target = INFRAHUB_ADDRESS
        auth = "API token"

    info_msg = (
        f"[cyan]Roster:[/cyan] {ROSTER_FILE}\n"
        f"[cyan]Password Mode:[/cyan] {ROSTER_PASSWORD_MODE}\n"
        f"[cyan]Backend:[/cyan] {DIRECTORY_BACKEND}\n"
        f"[cyan]Target:[/cyan] {target}\n"
        f"[cyan]Authentication:[/cyan] {auth}"
    )

    console.print()
    console.print(
        Panel(
            info_msg,
            title="[bold]Provisioning Configuration[/bold]",
            border_style="blue",
            box=box.SIMPLE,
        )
    )
    console.print()


@task(optional=["roster", "password_mode"])
def validate(context: Context, roster: str = ROSTER_FILE, password_mode: str = ROSTER_PASSWORD_MODE) -> None:
    """Validate the roster without contacting the directory."""
    graph = _resolve_or_exit(roster, password_mode)
    summary = graph.summary()
    console.print(
        f"[green]✓[/green] {roster}: {summary['users']} users, "
        f"{summary['groups']} groups, {summary['memberships']} memberships"
    )


@task(optional=["roster", "password_mode"])
def plan(context: Context, roster: str = ROSTER_FILE, password_mode: str = ROSTER_PASSWORD_MODE) -> None:
    """Resolve the roster and show the users, groups and memberships it declares."""
    graph = _resolve_or_exit(roster, password_mode)
    console.print()
    console.print(
        Panel(f"[bold cyan]Resource Graph[/bold cyan]\n[dim]Roster:[/dim] {roster}", border_style="cyan", box=box.SIMPLE)
    )
    print_graph(console, graph)


@task(optional=["roster", "output"])
def export(context: Context, roster: str = ROSTER_FILE, output: str = "build/users.auto.tfvars") -> None:
    """Export the resolved graph (.tfvars for Terraform, anything else as JSON)."""
    graph = _resolve_or_exit(roster, ROSTER_PASSWORD_MODE)
    path = write_export(graph, MAIN_DIRECTORY_PATH / output)
    console.print(f"[green]✓[/green] Graph exported to [bold]{path}[/bold]")


@task(optional=["roster", "backend", "show_secrets"])
def apply(
    context: Context,
    roster: str = ROSTER_FILE,
    backend: str = DIRECTORY_BACKEND,
    show_secrets: bool = False,
) -> None:
    """Apply the roster to the directory (users, groups, memberships)."""
    secrets_flag = "--show-secrets" if show_secrets else ""
    context.run(
        f"uv run python scripts/provision_users.py --roster {roster} --backend {backend} {secrets_flag}",
        pty=True,
    )


@task(name="setup-credentials")
def setup_credentials(context: Context) -> None:
    """Fetch the tenant ID and optionally create a CI service principal."""
    context.run("uv run python scripts/setup_credentials.py", pty=True)


@task(name="run-tests")
def run_tests(context: Context) -> None:
    """Run all tests."""
    console.print()
    console.print(
        Panel(
            "[bold cyan]Running Tests[/bold cyan]", border_style="cyan", box=box.SIMPLE
        )
    )
    context.run("pytest -vv identity_roster/tests")
    console.print("[green]✓[/green] Tests completed")


@task(name="_lint-yaml")
def lint_yaml(context: Context) -> None:
    """Run Linter to check all YAML files."""
    print(" - Check code with yamllint")
    exec_cmd = "yamllint ."
    with context.cd(MAIN_DIRECTORY_PATH):
        context.run(exec_cmd)


@task(name="_lint-mypy")
def lint_mypy(context: Context) -> None:
    """Run mypy to check all Python files."""
    print(" - Check code with mypy")
    exec_cmd = "mypy --show-error-codes ."
    with context.cd(MAIN_DIRECTORY_PATH):
        context.run(exec_cmd)


@task(name="_lint-ruff")
def lint_ruff(context: Context) -> None:
    """Run ruff to check all Python files."""
    print(" - Check code with ruff")
    exec_cmd = "ruff check ."
    with context.cd(MAIN_DIRECTORY_PATH):
        context.run(exec_cmd)


@task(name="lint")
def lint_all(context: Context) -> None:
    """Run all linters."""
    console.print()
    console.print(
        Panel(
            "[bold yellow]Running All Linters[/bold yellow]\n"
            "[dim]YAML → Ruff → Mypy[/dim]",
            border_style="yellow",
            box=box.SIMPLE,
        )
    )

    console.print("\n[yellow]→[/yellow] Running yamllint...")
    lint_yaml(context)

    console.print("\n[yellow]→[/yellow] Running ruff...")
    lint_ruff(context)

    console.print("\n[yellow]→[/yellow] Running mypy...")
    lint_mypy(context)

    console.print("\n[green]✓[/green] All linters completed!")
    console.print()
