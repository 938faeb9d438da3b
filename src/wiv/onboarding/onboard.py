"""Onboarding flows behind the CLI.

`onboard` sets up the host project, its service account, key file, roles and
the BigQuery daily cap. `enable_apis_sweep` enables the sweep API set on every
project of an organization.
"""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Optional

import backoff
from InquirerPy import inquirer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from wiv.onboarding.cloud import CloudControlClient
from wiv.onboarding.orchestrator import ProvisioningOrchestrator
from wiv.onboarding.report import print_summary
from wiv.onboarding.types import (
    BindingScope,
    CloudCallError,
    OnboardingConfig,
    OnboardingError,
    OrganizationScope,
    ProjectScope,
    ProvisioningSummary,
    QuotaRequest,
    is_valid_project_id,
)
from wiv.onboarding.types.constants import (
    BYTES_PER_MIB,
    BYTES_PER_TIB,
    DEFAULT_MAX_BYTES_PER_DAY,
    DEFAULT_PROJECT_ID,
    ONBOARDING_APIS,
    ONBOARDING_ROLES,
    SWEEP_APIS,
)

PROJECT_WAIT_ATTEMPTS = 30
PROJECT_WAIT_INTERVAL = 2.0

console = Console()


# --- Interactive selection ---


def choose_scope() -> str:
    """Ask whether to onboard a standalone project or an entire organization.

    Returns
    -------
    str
        ``"project"`` or ``"organization"``.
    """
    return inquirer.select(
        message="Is this for a standalone project or an entire organization?",
        choices=[
            {"name": "Standalone Project", "value": "project"},
            {"name": "Entire Organization", "value": "organization"},
        ],
    ).execute()


def choose_organization(client: CloudControlClient) -> Optional[str]:
    """Pick an organization; auto-selects when only one is visible.

    Returns None when no organization can be listed.
    """
    try:
        orgs = client.list_organizations()
    except CloudCallError as e:
        console.print(f"[yellow]Could not list organizations: {e.message}[/yellow]")
        orgs = []

    if not orgs:
        console.print("[yellow]No organizations found or insufficient permissions to list organizations.[/yellow]")
        return None

    if len(orgs) == 1:
        org = orgs[0]
        console.print(f"[cyan]Using only available organization:[/cyan] {org['display_name']} ({org['id']})")
        return org["id"]

    return inquirer.select(
        message="Multiple organizations found. Please choose one:",
        choices=[{"name": f"{o['display_name']} ({o['id']})", "value": o["id"]} for o in orgs],
    ).execute()


def prompt_project_id(default: str = DEFAULT_PROJECT_ID) -> str:
    """Ask for the host project ID; the project is created if it doesn't exist."""
    return inquirer.text(
        message="Project ID for the Wiv service account project:",
        default=default,
        validate=is_valid_project_id,
        invalid_message=(
            "Project IDs must be 6-30 characters, start with a lowercase letter, and contain only "
            "lowercase letters, numbers, and hyphens."
        ),
    ).execute()


def confirm_bulk(project_count: int) -> bool:
    return inquirer.confirm(
        message=f"Do you want to enable APIs on all {project_count} project(s)?",
        default=False,
    ).execute()


# --- Host project ---


def ensure_host_project(client: CloudControlClient, config: OnboardingConfig) -> None:
    """Create the host project unless it already exists, then wait for it to be visible."""
    project_id = config.host_project_id
    console.print("\n[yellow]--- Project ---[/yellow]")

    if client.describe_project(project_id) is not None:
        console.print(f"[green]Project {project_id} already exists. Using existing project.[/green]")
        return

    if config.dry_run:
        console.print(f"[dim][DRY RUN] Would create project: {project_id}[/dim]")
        return

    parent = f"organizations/{config.organization_id}" if config.organization_id else None
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(description=f"Creating project: {project_id}...", total=None)
        try:
            client.create_project(project_id, config.host_project_name, parent=parent)
        except CloudCallError as e:
            raise OnboardingError(f"Failed to create project {project_id}: {e.message}") from e

        @backoff.on_predicate(
            backoff.constant, interval=PROJECT_WAIT_INTERVAL, max_tries=PROJECT_WAIT_ATTEMPTS, jitter=None
        )
        def _available() -> bool:
            try:
                return client.describe_project(project_id) is not None
            except CloudCallError:
                return False

        progress.add_task(description="Waiting for project to be fully available...", total=None)
        _available()

    console.print("[green]Project created.[/green]")


def check_billing(client: CloudControlClient, project_id: str) -> bool:
    """Return whether billing is linked, warning with remediation when it is not."""
    console.print(f"[cyan]Checking billing status for project {project_id}...[/cyan]")
    try:
        linked = client.check_billing_linked(project_id)
    except CloudCallError as e:
        console.print(f"[yellow]Could not read billing info: {e.message}[/yellow]")
        linked = False

    if not linked:
        console.print(
            f"\n[yellow]Warning:[/yellow] No billing account is linked to project {project_id}.\n"
            "Some APIs require billing to be enabled. Onboarding will continue but some APIs may fail.\n"
            "To enable billing, run:\n"
            f"  gcloud billing projects link {project_id} --billing-account=BILLING_ACCOUNT_ID\n"
        )
    return linked


# --- Cancellation ---


@contextmanager
def interrupt_cancels(cancel: threading.Event) -> Iterator[threading.Event]:
    """Turn the first Ctrl-C into a cooperative cancel; a second one interrupts immediately."""
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        console.print("\n[yellow]Cancelling after the current project (press Ctrl-C again to abort)...[/yellow]")
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


# --- Flows ---


def onboard(
    client: CloudControlClient,
    config: OnboardingConfig,
    *,
    max_bytes_per_day: Optional[int] = DEFAULT_MAX_BYTES_PER_DAY,
) -> ProvisioningSummary:
    """Onboard the host project: APIs, daily quota, service account, key file and roles.

    Parameters
    ----------
    client : CloudControlClient
        Cloud access.
    config : OnboardingConfig
        Host project, organization and binding scope.
    max_bytes_per_day : int, optional
        BigQuery daily cap in bytes; ``None`` skips quota configuration.

    Returns
    -------
    ProvisioningSummary
    """
    mode_text = " [DRY RUN]" if config.dry_run else ""
    level = config.binding_scope.value
    console.print(
        Panel.fit(
            f"[bold cyan]Wiv GCP Onboarding{mode_text}[/bold cyan]\n"
            f"Project: {config.host_project_id}\n"
            f"Organization: {config.organization_id or 'None (standalone project)'}\n"
            f"Bindings: {level} level",
            border_style="cyan" if not config.dry_run else "yellow",
        )
    )

    ensure_host_project(client, config)
    billing_linked = check_billing(client, config.host_project_id)

    quota = None
    if max_bytes_per_day:
        quota = QuotaRequest.bigquery_daily_bytes(config.host_project_id, max_bytes_per_day)

    # Billing was already checked for the host project above
    orchestrator = ProvisioningOrchestrator(client, config, check_billing=False)
    scope = ProjectScope(config.host_project_id)
    summary = orchestrator.run(scope, ONBOARDING_APIS, ONBOARDING_ROLES, quota)

    report = summary.report_for(config.host_project_id)
    key_file = None
    if report is not None and report.identity_email:
        key_file = orchestrator.identity.export_key(report.identity_email)

    print_summary(summary)

    quota_line = "not requested"
    if quota is not None:
        quota_set = report is not None and report.quota is not None and report.quota.success
        amount = f"{max_bytes_per_day / BYTES_PER_TIB:g} TB ({max_bytes_per_day // BYTES_PER_MIB} MiB)"
        quota_line = f"{amount} {'configured' if quota_set else 'NOT configured'}"

    target = config.organization_id if config.binding_scope is BindingScope.ORGANIZATION else config.host_project_id
    console.print(
        Panel.fit(
            f"Project ID: {config.host_project_id}\n"
            f"Service Account: {config.service_account_email}\n"
            f"Key File Name: {key_file or 'not written'}\n"
            f"Permissions granted at: {level} level ({target})\n"
            f"BigQuery Daily Quota: {quota_line}\n"
            f"Billing Status: {'Enabled' if billing_linked else 'Not Enabled (some features may require billing)'}",
            title="Configuration Summary",
            border_style="green" if summary.failed == 0 else "yellow",
        )
    )
    return summary


def enable_apis_sweep(
    client: CloudControlClient,
    config: OnboardingConfig,
    org_id: str,
    *,
    apis: tuple[str, ...] = SWEEP_APIS,
    assume_yes: bool = False,
) -> Optional[ProvisioningSummary]:
    """Enable ``apis`` on every project of an organization.

    Every API is treated as required, so any failure marks the project as
    failed. Returns None when the user declines the confirmation.

    Raises
    ------
    DiscoveryError
        If the organization cannot be listed or holds no projects.
    """
    api_lines = "\n".join(f"  - {api}" for api in apis)
    console.print(
        Panel.fit(
            f"[bold cyan]GCP API Enabler for Organization[/bold cyan]\n"
            f"Organization: {org_id}\n"
            f"APIs:\n{api_lines}",
            border_style="cyan",
        )
    )

    config = replace(config, required_apis=frozenset(apis))
    orchestrator = ProvisioningOrchestrator(client, config, check_billing=False)
    scope = OrganizationScope(org_id)
    targets = orchestrator.discover(scope)

    if not assume_yes and not confirm_bulk(len(targets)):
        console.print("[yellow]Operation cancelled.[/yellow]")
        return None

    with interrupt_cancels(threading.Event()) as cancel:
        summary = orchestrator.run(scope, apis, targets=targets, cancel=cancel)

    print_summary(summary)
    return summary


__all__ = [
    "check_billing",
    "choose_organization",
    "choose_scope",
    "confirm_bulk",
    "enable_apis_sweep",
    "ensure_host_project",
    "interrupt_cancels",
    "onboard",
    "prompt_project_id",
]
