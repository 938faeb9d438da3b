"""Idempotent API enablement with billing-aware error classification."""

from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console

from wiv.onboarding.cloud import CloudControlClient
from wiv.onboarding.types import (
    ApiActivationResult,
    ApiEnableError,
    ApiOutcome,
    CloudCallError,
)
from wiv.onboarding.types.constants import BILLING_ERROR_REASONS

console = Console()


def is_billing_error(error: CloudCallError) -> bool:
    """Return True if ``error`` means the project has no usable billing account.

    A structured ``ErrorInfo`` reason, when present, decides on its own.
    Matching "billing" in the provider's message is a fallback for responses
    without a reason and will misclassify if Google rewords its errors.
    """
    if error.reason:
        return error.reason.upper() in BILLING_ERROR_REASONS
    return "billing" in (error.message or "").lower()


def classify_enable_error(project_id: str, api_name: str, error: CloudCallError) -> ApiEnableError:
    return ApiEnableError(project_id, api_name, error.message, billing_required=is_billing_error(error))


class ApiEnabler:
    """Ensure APIs are enabled on projects without aborting on billing-gated ones."""

    def __init__(self, client: CloudControlClient, *, dry_run: bool = False):
        self.client = client
        self.dry_run = dry_run

    def ensure_enabled(
        self,
        project_id: str,
        api_name: str,
        require_billing: bool = False,
        *,
        enabled: Optional[set[str]] = None,
    ) -> ApiActivationResult:
        """Enable ``api_name`` on ``project_id`` unless it already is.

        Parameters
        ----------
        project_id : str
            Target project.
        api_name : str
            Service name, e.g. ``"bigquery.googleapis.com"``.
        require_billing : bool, default False
            When True any failure yields ``FAILED``. When False failures are
            advisory and yield ``SKIPPED_BILLING_REQUIRED``.
        enabled : set[str], optional
            Snapshot of the enabled services; queried when omitted.

        Returns
        -------
        ApiActivationResult
        """
        if enabled is None:
            try:
                enabled = self.client.list_enabled_apis(project_id)
            except CloudCallError:
                # Listing can fail where enabling still works; fall through to the enable call
                enabled = set()

        if api_name in enabled:
            console.print(f"  [green]{api_name} is already enabled on project {project_id}.[/green]")
            return ApiActivationResult(project_id, api_name, ApiOutcome.ALREADY_ENABLED)

        if self.dry_run:
            console.print(f"  [dim][DRY RUN] Would enable {api_name} on project {project_id}[/dim]")
            return ApiActivationResult(project_id, api_name, ApiOutcome.ENABLED)

        console.print(f"  [cyan]Enabling {api_name} on project {project_id}...[/cyan]")
        try:
            self.client.enable_api(project_id, api_name)
        except CloudCallError as e:
            error = classify_enable_error(project_id, api_name, e)
            return self._failure(error, require_billing)

        console.print(f"  [green]{api_name} enabled successfully.[/green]")
        return ApiActivationResult(project_id, api_name, ApiOutcome.ENABLED)

    def ensure_all(
        self,
        project_id: str,
        apis: Iterable[str],
        required: Iterable[str] = (),
    ) -> list[ApiActivationResult]:
        """Ensure every API in ``apis`` in order, querying the enabled set once."""
        required = set(required)
        try:
            enabled = self.client.list_enabled_apis(project_id)
        except CloudCallError as e:
            console.print(f"  [yellow]Warning:[/yellow] could not list enabled APIs on {project_id}: {e.message}")
            enabled = set()

        return [
            self.ensure_enabled(project_id, api, require_billing=api in required, enabled=enabled)
            for api in apis
        ]

    def _failure(self, error: ApiEnableError, require_billing: bool) -> ApiActivationResult:
        if error.billing_required:
            console.print(
                f"  [yellow]Warning:[/yellow] Failed to enable {error.api_name} - billing account is not "
                "linked to this project."
            )
            console.print("  Some APIs require billing to be enabled. You can enable billing later and retry.")
        else:
            console.print(f"  [red]Error:[/red] {error}")

        if require_billing:
            console.print("  This API is required for full functionality.")
            return ApiActivationResult(error.project_id, error.api_name, ApiOutcome.FAILED, error)

        console.print("  Continuing without this API...")
        return ApiActivationResult(error.project_id, error.api_name, ApiOutcome.SKIPPED_BILLING_REQUIRED, error)


__all__ = ["ApiEnabler", "classify_enable_error", "is_billing_error"]
