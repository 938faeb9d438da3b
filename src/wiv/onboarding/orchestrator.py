"""Provisioning orchestrator.

Drives discovery, API enablement, quota configuration, identity provisioning
and role binding over a set of projects. Each project moves through::

    DISCOVERED -> APIS_ENABLING -> (QUOTA_CONFIGURING) -> IDENTITY_PROVISIONING
               -> ROLE_BINDING -> DONE | PARTIALLY_FAILED

A failure inside one project ends that project as ``PARTIALLY_FAILED`` and the
run moves on; only discovery and validation failures abort a run.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Sequence

from rich.console import Console

from wiv.onboarding.apis import ApiEnabler
from wiv.onboarding.cloud import CloudControlClient
from wiv.onboarding.identity import IdentityProvisioner
from wiv.onboarding.quota import QuotaOverrideSetter
from wiv.onboarding.types import (
    BindingError,
    OnboardingConfig,
    OnboardingError,
    ProjectReport,
    ProjectState,
    ProjectTarget,
    ProvisioningSummary,
    QuotaRequest,
    Scope,
)
from wiv.onboarding.walker import ResourceTreeWalker

console = Console()


class ProvisioningOrchestrator:
    """Provision a single project or every project under an organization.

    Parameters
    ----------
    client : CloudControlClient
        Shared by all components.
    config : OnboardingConfig
        Immutable run settings.
    check_billing : bool, default True
        Query billing for each discovered project and warn when it is missing.
    """

    def __init__(self, client: CloudControlClient, config: OnboardingConfig, *, check_billing: bool = True):
        self.client = client
        self.config = config
        self.check_billing = check_billing
        self.walker = ResourceTreeWalker(client, resolve_billing=check_billing)
        self.enabler = ApiEnabler(client, dry_run=config.dry_run)
        self.quota_setter = QuotaOverrideSetter(client, self.enabler)
        self.identity = IdentityProvisioner(client, config)
        self._summary_lock = threading.Lock()

    def discover(self, scope: Scope) -> list[ProjectTarget]:
        """Return the projects ``scope`` covers, sorted by ID.

        Raises
        ------
        DiscoveryError
            If the root of the hierarchy cannot be listed or holds no projects.
        """
        console.print(f"[cyan]Fetching all projects under {scope.root().resource_name}...[/cyan]")
        targets = sorted(self.walker.discover_projects(scope.root()), key=lambda t: t.project_id)
        console.print(f"[green]Found {len(targets)} project(s).[/green]")
        return targets

    def run(
        self,
        scope: Scope,
        api_list: Sequence[str],
        role_list: Sequence[str] = (),
        quota_request: Optional[QuotaRequest] = None,
        *,
        targets: Optional[Iterable[ProjectTarget]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ProvisioningSummary:
        """Provision every project in ``scope``.

        Parameters
        ----------
        scope : OrganizationScope or ProjectScope
            What to provision.
        api_list : sequence of str
            APIs to enable on each project, in order.
        role_list : sequence of str
            Roles granted to the service identity, in order. Identity and
            binding steps are skipped when empty.
        quota_request : QuotaRequest, optional
            Daily cap template; its ``project_id`` is replaced per project.
        targets : iterable of ProjectTarget, optional
            Pre-discovered projects; discovery runs when omitted.
        cancel : threading.Event, optional
            When set, projects not yet started are left out of the run.

        Returns
        -------
        ProvisioningSummary
        """
        targets = list(targets) if targets is not None else self.discover(scope)
        summary = ProvisioningSummary(total_projects=len(targets))
        cancel = cancel or threading.Event()

        def _process(target: ProjectTarget) -> None:
            if cancel.is_set():
                with self._summary_lock:
                    summary.cancelled = True
                return
            report = self.provision_project(target, api_list, role_list, quota_request)
            with self._summary_lock:
                summary.record(report)

        if self.config.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                # list() re-raises anything a worker did not handle
                list(pool.map(_process, targets))
        else:
            for target in targets:
                _process(target)

        return summary

    def provision_project(
        self,
        target: ProjectTarget,
        api_list: Sequence[str],
        role_list: Sequence[str] = (),
        quota_request: Optional[QuotaRequest] = None,
    ) -> ProjectReport:
        """Run the per-project state machine and return its report."""
        project_id = target.project_id
        report = ProjectReport(project_id=project_id)
        console.print(f"\n[bold]Processing project: {project_id}[/bold]")

        if self.check_billing and not target.billing_enabled:
            console.print(
                f"[yellow]Warning:[/yellow] No billing account is linked to project {project_id}. "
                "Some APIs may fail.\n  To enable billing, run:\n"
                f"  gcloud billing projects link {project_id} --billing-account=BILLING_ACCOUNT_ID"
            )

        try:
            report.state = ProjectState.APIS_ENABLING
            report.api_results = self.enabler.ensure_all(project_id, api_list, required=self.config.required_apis)
            failed_apis = [r.api_name for r in report.api_results if not r.ok]
            if failed_apis:
                return self._fail(report, f"Required APIs could not be enabled: {', '.join(failed_apis)}")

            if quota_request is not None:
                report.state = ProjectState.QUOTA_CONFIGURING
                if self.config.dry_run:
                    console.print(
                        f"  [dim][DRY RUN] Would set {quota_request.metric_id} to "
                        f"{quota_request.daily_limit_value} on {project_id}[/dim]"
                    )
                else:
                    report.quota = self.quota_setter.apply(quota_request.for_project(project_id))

            if role_list:
                report.state = ProjectState.IDENTITY_PROVISIONING
                report.identity_email = self.identity.ensure_identity()

                report.state = ProjectState.ROLE_BINDING
                target_id = self.config.binding_target(project_id)
                report.bound_roles = self.identity.bind_roles(
                    report.identity_email, role_list, target_id, self.config.binding_scope
                )
        except BindingError as e:
            report.bound_roles = list(role_list[: e.index])
            skipped = len(role_list) - e.index - 1
            return self._fail(report, f"{e} ({skipped} remaining binding(s) skipped)")
        except OnboardingError as e:
            return self._fail(report, str(e))
        except Exception as e:
            return self._fail(report, f"Unexpected error: {e}")

        report.state = ProjectState.DONE
        console.print(f"  [green]✓ Project {project_id} provisioned successfully[/green]")
        return report

    def _fail(self, report: ProjectReport, message: str) -> ProjectReport:
        report.state = ProjectState.PARTIALLY_FAILED
        report.error = message
        console.print(f"  [red]✗ Project {report.project_id}: {message}[/red]")
        return report


__all__ = ["ProvisioningOrchestrator"]
