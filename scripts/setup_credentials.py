#!/usr/bin/env python3
"""
Fetch Entra ID credentials needed to apply the roster.

This script uses the Azure CLI to collect what the provisioning script needs:

1. Tenant ID (required for every run, local or CI)
2. Optionally, a service principal for unattended runs (CI pipelines)
3. Optionally, a ``.env`` file holding the values

Local usage only needs the tenant ID: ``provision_users.py`` falls back to
the ``az login`` session when no service principal is configured.

Service Principal:
==================
Created with ``az ad sp create-for-rbac`` and the "User Administrator" role.
The secret is printed once; store it in the CI secret store and never commit
it. If a file is written, it is created with 0600 permissions.

Usage:
======
    uv run python scripts/setup_credentials.py
    uv run python scripts/setup_credentials.py --yes   # accept all prompts
    uv run invoke setup-credentials

Exit Codes:
===========
    0: Tenant ID fetched (service principal optional)
    1: Azure CLI missing, not logged in, or tenant lookup failed
"""

import argparse
import json
import os
import shutil
import subprocess
import sys
import time
from datetime import datetime
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.rule import Rule

console = Console()

ENV_FILE = Path(".env")


def az(*args: str) -> subprocess.CompletedProcess:
    """Run an Azure CLI command and capture its output."""
    return subprocess.run(["az", *args], capture_output=True, text=True, check=False)


def check_azure_cli() -> bool:
    """Verify the Azure CLI is installed and logged in."""
    if shutil.which("az") is None:
        console.print(
            Panel(
                "[red]✗ Azure CLI is not installed[/red]\n\n"
                "[dim]Install it from:[/dim]\n"
                "  [bold]https://learn.microsoft.com/cli/azure/install-azure-cli[/bold]",
                title="Missing Dependency",
                border_style="red",
                box=box.SIMPLE,
            )
        )
        return False

    if az("account", "show").returncode != 0:
        console.print("[yellow]⚠ You are not logged in to the Azure CLI[/yellow]")
        console.print("  Please run: [bold]az login[/bold]")
        return False

    console.print("[green]✓[/green] Azure CLI is installed and you are logged in")
    return True


def fetch_tenant_id() -> str | None:
    result = az("account", "show", "--query", "tenantId", "-o", "tsv")
    tenant_id = result.stdout.strip()
    if result.returncode != 0 or not tenant_id:
        console.print(f"[bold red]✗ Failed to get Tenant ID[/bold red] [dim]{result.stderr.strip()}[/dim]")
        return None
    return tenant_id


def create_service_principal() -> dict[str, str] | None:
    """
    Create a service principal allowed to manage users and groups.

    Returns:
        Mapping with ``clientId``, ``clientSecret`` and ``tenantId``, or None
        if the Azure CLI reported an error.
    """
    sp_name = f"roster-provisioning-{int(time.time())}"
    console.print(f"[cyan]→[/cyan] Creating service principal [bold]{sp_name}[/bold]")
    result = az(
        "ad",
        "sp",
        "create-for-rbac",
        "--name",
        sp_name,
        "--role",
        "User Administrator",
        "--scopes",
        "/",
        "--sdk-auth",
    )
    if result.returncode != 0:
        console.print("[bold red]✗ Failed to create service principal[/bold red]")
        console.print(f"[dim]{result.stderr.strip()}[/dim]")
        console.print("[dim]You can still apply the roster locally with just the Tenant ID.[/dim]")
        return None

    credentials = json.loads(result.stdout)
    console.print("[green]✓[/green] Service principal created")
    return credentials


def write_env_file(path: Path, tenant_id: str, credentials: dict[str, str] | None) -> None:
    """Write the collected values as ``KEY=value`` lines, readable only by the owner."""
    lines = [
        f"# Generated by scripts/setup_credentials.py on {datetime.now():%Y-%m-%d %H:%M:%S}",
        f"AZURE_TENANT_ID={tenant_id}",
    ]
    if credentials:
        lines.append(f"AZURE_CLIENT_ID={credentials['clientId']}")
        lines.append(f"AZURE_CLIENT_SECRET={credentials['clientSecret']}")

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def main(assume_yes: bool = False, env_file: Path = ENV_FILE) -> int:
    console.print()
    console.print(
        Panel(
            "[bold bright_blue]Entra ID Credentials Setup[/bold bright_blue]\n\n"
            "[dim]What you need:[/dim]\n"
            "  [blue]•[/blue] Tenant ID: required for local and CI usage\n"
            "  [magenta]•[/magenta] Service principal: only for unattended (CI) runs",
            border_style="bright_blue",
            box=box.SIMPLE,
        )
    )

    if not check_azure_cli():
        return 1

    tenant_id = fetch_tenant_id()
    if tenant_id is None:
        return 1
    console.print(f"[green]✓[/green] Tenant ID: [bold]{tenant_id}[/bold]")
    console.print(Rule(style="dim blue"))

    credentials = None
    if assume_yes or Confirm.ask("Do you need a service principal for CI runs?", default=False):
        credentials = create_service_principal()
    else:
        console.print("[dim]Skipping service principal creation[/dim]")
    console.print(Rule(style="dim magenta"))

    console.print("\n[bold]AZURE_TENANT_ID[/bold] (required):")
    console.print(f"  {tenant_id}")
    if credentials:
        console.print("\n[bold]AZURE_CLIENT_ID[/bold] / [bold]AZURE_CLIENT_SECRET[/bold] (CI only):")
        console.print(f"  {credentials['clientId']}")
        console.print("  [dim]<secret hidden; saved only if you write the env file>[/dim]")

    if env_file.exists():
        console.print(f"\n[yellow]⚠[/yellow] {env_file} already exists, leaving it untouched")
    elif assume_yes or Confirm.ask(f"Write these values to {env_file}?", default=False):
        write_env_file(env_file, tenant_id, credentials)
        console.print(f"[green]✓[/green] Created {env_file}")
        console.print("[yellow]⚠[/yellow] Do NOT commit this file; it may contain a client secret")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch Entra ID credentials for roster provisioning")
    parser.add_argument("--yes", "-y", action="store_true", help="Accept all prompts")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=ENV_FILE,
        help=f"Environment file to write (default: {ENV_FILE})",
    )
    args = parser.parse_args()
    sys.exit(main(assume_yes=args.yes, env_file=args.env_file))
