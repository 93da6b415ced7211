#!/usr/bin/env python3
"""
Provision directory users, role groups, and memberships from the user roster.

This script reads the roster file, resolves it into an addressable resource
graph, and applies that graph to a directory backend (Microsoft Entra ID via
Microsoft Graph, or the Infrahub account store).

What This Script Creates:
==========================

Users:
------
One account per roster record, keyed on the principal name (``name``).
- Display name, given name, and surname come from the roster
- Initial password is taken from the roster or generated (16+ characters)
- Every account must change its password at first sign-in

Groups:
-------
One security group per distinct ``role`` value. Role names are matched
exactly: "Admin" and "admin" become two groups.

Memberships:
------------
Each user is added to the group named by its role.

Execution Flow:
===============
1. Load the roster (YAML or JSON)
2. Validate and resolve it (fails before any directory call on error)
3. Ensure users exist (create if missing)
4. Ensure groups exist (create if missing)
5. Ensure memberships exist (add if missing)
6. Print the report (generated passwords hidden unless --show-secrets)
7. Save generated passwords to an owner-only file under CREDENTIALS_DIR
   when they are not shown

Idempotency:
============
Every object is looked up by its identity key before creation. Running the
script twice on an unchanged roster creates nothing the second time.
Nothing is ever deleted or updated.

Usage:
======
    # Apply data/users.yml to Entra ID
    uv run python scripts/provision_users.py

    # Resolve and print the graph without contacting the directory
    uv run python scripts/provision_users.py --dry-run

    # Apply to Infrahub and save the report including generated passwords
    uv run python scripts/provision_users.py --backend infrahub \\
        --output report.json --show-secrets

    # Via invoke
    uv run invoke apply

Environment Variables:
======================
    AZURE_TENANT_ID: Entra ID tenant (required for the graph backend)
    AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: Optional service principal; the
        Azure CLI login is used when unset
    INFRAHUB_ADDRESS / INFRAHUB_API_TOKEN: Infrahub backend connection
    ROSTER_FILE, ROSTER_PASSWORD_MODE, DIRECTORY_BACKEND: Defaults for the
        matching command-line options
    CREDENTIALS_DIR: Where generated passwords are saved (default: build/credentials)

Exit Codes:
===========
    0: Roster resolved (and applied, unless --dry-run)
    1: Roster, configuration, or directory error
"""

import argparse
import json
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel

from identity_roster.backends import get_backend
from identity_roster.config import (
    BACKENDS,
    DIRECTORY_BACKEND,
    PASSWORD_MODES,
    CREDENTIALS_DIR,
    ROSTER_FILE,
    ROSTER_PASSWORD_MODE,
    validate_config,
)
from identity_roster.errors import DirectoryError, RosterError
from identity_roster.provision import apply_graph, write_credentials
from identity_roster.resolver import resolve
from identity_roster.roster import load_roster
from identity_roster.ui import print_graph, print_report, setup_logging

console = Console()


def main(
    roster: str = ROSTER_FILE,
    backend_name: str = DIRECTORY_BACKEND,
    password_mode: str = ROSTER_PASSWORD_MODE,
    dry_run: bool = False,
    show_secrets: bool = False,
    output: str | None = None,
    verbose: bool = False,
    credentials_dir: str = CREDENTIALS_DIR,
) -> int:
    """
    Resolve the roster and apply it to the selected directory backend.

    Returns:
        0 on success, 1 on failure
    """
    setup_logging(console, verbose=verbose)

    console.print()
    console.print(
        Panel(
            f"[bold bright_blue]Roster Provisioning[/bold bright_blue]\n"
            f"[bright_cyan]Roster:[/bright_cyan] [bold yellow]{roster}[/bold yellow]\n"
            f"[bright_cyan]Backend:[/bright_cyan] {backend_name}\n"
            f"[bright_cyan]Passwords:[/bright_cyan] {password_mode}"
            + ("\n[yellow]Dry run:[/yellow] no directory changes" if dry_run else ""),
            border_style="bright_blue",
            box=box.SIMPLE,
        )
    )

    # ========================================================================
    # Step 1: Load and resolve (no directory access)
    # ========================================================================
    try:
        records = load_roster(roster)
        graph = resolve(records, password_mode=password_mode)
    except RosterError as e:
        console.print(f"[bold red]✗ Roster error:[/bold red] {e}")
        return 1
    except ValueError as e:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {e}")
        return 1

    summary = graph.summary()
    console.print(
        f"[green]✓[/green] Resolved {summary['users']} users, "
        f"{summary['groups']} groups, {summary['memberships']} memberships"
    )

    if dry_run:
        print_graph(console, graph)
        return 0

    # ========================================================================
    # Step 2: Apply to the directory
    # ========================================================================
    try:
        validate_config(backend=backend_name, password_mode=password_mode)
    except ValueError as e:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {e}")
        return 1

    try:
        backend = get_backend(backend_name)
        report = apply_graph(graph, backend)
    except DirectoryError as e:
        console.print(f"\n[bold red]✗ Directory error:[/bold red] {e}")
        response_text = getattr(e, "response_text", "")
        if response_text:
            console.print(f"[dim]{response_text}[/dim]")
        return 1
    except Exception as e:
        # SDK and transport errors are shown as raised
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        console.print_exception()
        return 1

    print_report(console, report, show_secrets=show_secrets)

    if report.generated_passwords and not show_secrets:
        credentials_path = write_credentials(report, credentials_dir)
        console.print(
            f"[yellow]Generated passwords saved to {credentials_path} (owner read-only). "
            f"Hand them over and delete the file.[/yellow]"
        )

    if output:
        output_path = Path(output)
        output_path.write_text(
            json.dumps(report.to_dict(include_sensitive=show_secrets), indent=2) + "\n",
            encoding="utf-8",
        )
        console.print(f"[dim]Report written to {output_path}[/dim]")

    if report.changed:
        console.print("\n[bold green]✓ Directory updated from roster[/bold green]")
    else:
        console.print("\n[bold green]✓ No changes: directory already matches roster[/bold green]")
    return 0


# ============================================================================
# COMMAND-LINE INTERFACE
# ============================================================================

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Provision directory users and groups from a roster")
    parser.add_argument(
        "--roster",
        "-r",
        type=str,
        default=ROSTER_FILE,
        help=f"Roster file to apply (default: {ROSTER_FILE})",
    )
    parser.add_argument(
        "--backend",
        "-b",
        choices=BACKENDS,
        default=DIRECTORY_BACKEND,
        help=f"Directory backend (default: {DIRECTORY_BACKEND})",
    )
    parser.add_argument(
        "--password-mode",
        choices=PASSWORD_MODES,
        default=ROSTER_PASSWORD_MODE,
        help=f"How roster passwords are treated (default: {ROSTER_PASSWORD_MODE})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Resolve and print the graph only")
    parser.add_argument(
        "--show-secrets",
        action="store_true",
        help="Display and save generated passwords",
    )
    parser.add_argument("--output", "-o", type=str, help="Write the apply report as JSON")
    parser.add_argument(
        "--credentials-dir",
        type=str,
        default=CREDENTIALS_DIR,
        help=f"Where generated passwords are saved without --show-secrets (default: {CREDENTIALS_DIR})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    sys.exit(
        main(
            roster=args.roster,
            backend_name=args.backend,
            password_mode=args.password_mode,
            dry_run=args.dry_run,
            show_secrets=args.show_secrets,
            output=args.output,
            verbose=args.verbose,
            credentials_dir=args.credentials_dir,
        )
    )
