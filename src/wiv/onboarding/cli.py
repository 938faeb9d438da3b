"""CLI entry point for wiv-onboarding."""

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from wiv.onboarding import onboard as onboard_module
from wiv.onboarding.cloud import GcpControlClient, set_verbose
from wiv.onboarding.types import BindingScope, OnboardingError, validate_project_id
from wiv.onboarding.types.constants import BYTES_PER_TIB
from wiv.onboarding.utils import build_config, load_config_file, save_summary_file

app = typer.Typer(
    help="Onboard Google Cloud projects and organizations for Wiv",
    no_args_is_help=True,
)
console = Console()


def _settings(config_file: Optional[Path]) -> dict:
    return load_config_file(config_file) if config_file else {}


@app.command("version")
def version():
    """Show the version of wiv-onboarding."""
    from wiv.onboarding import __version__

    console.print(f"wiv-onboarding version: [bold green]{__version__}[/bold green]")


@app.command("onboard")
def onboard(
    project_id: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Host project ID for the service account (interactive if not provided)",
    ),
    org_id: Optional[str] = typer.Option(
        None,
        "--org",
        "-o",
        help="Organization ID; grants roles at organization level",
    ),
    standalone: bool = typer.Option(
        False,
        "--standalone",
        help="Onboard a standalone project (roles granted at project level)",
    ),
    max_tb_per_day: float = typer.Option(
        1.0,
        "--max-tb-per-day",
        help="BigQuery daily query cap in TB (0 disables the quota override)",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        "-c",
        help="YAML file with onboarding settings",
    ),
    report_file: Optional[Path] = typer.Option(
        None,
        "--report",
        help="Write a YAML summary of the run to this file",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without making changes",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every cloud API call"),
):
    """
    Onboard a host project: APIs, BigQuery quota, service account, key and roles.

    Creates the project if it does not exist, enables the required APIs,
    caps BigQuery query usage per day, creates the wiv-sa service account,
    writes its key to key.json and grants the viewer role set at project or
    organization level.

    Examples:
        # Interactive mode
        wiv-onboarding onboard

        # Organization-level permissions
        wiv-onboarding onboard --project wiv-gpc-project --org 123456789

        # Dry run
        wiv-onboarding onboard --standalone --dry-run
    """
    set_verbose(verbose)
    try:
        client = GcpControlClient()
        settings = _settings(config_file)

        if not standalone and not org_id and "organization_id" not in settings:
            if onboard_module.choose_scope() == "organization":
                org_id = onboard_module.choose_organization(client)
                if not org_id:
                    console.print("[yellow]Defaulting to standalone project.[/yellow]")

        if project_id is None and "host_project_id" not in settings:
            project_id = onboard_module.prompt_project_id()
        if project_id is not None:
            validate_project_id(project_id)

        org_id = None if standalone else (org_id or settings.get("organization_id"))
        config = build_config(
            settings,
            host_project_id=project_id,
            organization_id=org_id,
            binding_scope=BindingScope.ORGANIZATION if org_id else BindingScope.PROJECT,
            dry_run=dry_run or None,
        )

        max_bytes = int(max_tb_per_day * BYTES_PER_TIB) if max_tb_per_day > 0 else None
        summary = onboard_module.onboard(client, config, max_bytes_per_day=max_bytes)
        if report_file:
            save_summary_file(summary, report_file)
    except OnboardingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Onboarding interrupted by user.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(1)


@app.command("enable-apis")
def enable_apis(
    org_id: Optional[str] = typer.Option(
        None,
        "--org",
        "-o",
        help="Organization ID (interactive if not provided)",
    ),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Projects processed concurrently"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        "-c",
        help="YAML file with onboarding settings",
    ),
    report_file: Optional[Path] = typer.Option(
        None,
        "--report",
        help="Write a YAML summary of the run to this file",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without making changes",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every cloud API call"),
):
    """
    Enable the Wiv API set on every project in an organization.

    Projects are discovered through all nested folders. Any project where an
    API cannot be enabled is reported as failed in the final summary.
    """
    set_verbose(verbose)
    try:
        client = GcpControlClient()
        settings = _settings(config_file)
        org_id = org_id or settings.get("organization_id") or onboard_module.choose_organization(client)
        if not org_id:
            console.print("[bold red]Error:[/bold red] This command requires organization-level access.")
            sys.exit(1)

        config = build_config(
            settings,
            organization_id=org_id,
            max_workers=workers if workers > 1 else None,
            dry_run=dry_run or None,
        )
        summary = onboard_module.enable_apis_sweep(client, config, str(org_id), assume_yes=yes)
        if summary is not None and report_file:
            save_summary_file(summary, report_file)
    except OnboardingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]Unexpected error:[/bold red] {e}")
        sys.exit(1)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
