"""Daily quota override installation through an ordered fallback cascade.

Different client versions and permission setups accept different ways of
creating a consumer quota override, so `QuotaOverrideSetter` tries a fixed
list of strategies and stops at the first that succeeds:

1. native create with ``force``
2. native create scoped with a ``project`` dimension
3. native update of an existing override
4. REST ``PUT`` against the v1beta1 override resource
5. REST ``POST`` against the v1 override collection

Failing every strategy is reported but never raised; quota configuration is
best effort.
"""

from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence
from urllib.parse import quote

from rich.console import Console

from wiv.onboarding.apis import ApiEnabler
from wiv.onboarding.cloud import CloudControlClient, RawResponse
from wiv.onboarding.types import (
    CloudCallError,
    QuotaAttemptRecord,
    QuotaCascadeExhausted,
    QuotaRequest,
    QuotaResult,
    QuotaStrategyName,
)
from wiv.onboarding.types.constants import BYTES_PER_MIB, SERVICE_USAGE_API, UNSAFE_OVERRIDE_MARKER

SERVICE_USAGE_ENDPOINT = "https://serviceusage.googleapis.com"

console = Console()


def _limit_segment(unit: str) -> str:
    # "1/d/{project}" -> "/d/project"
    limit = unit[1:] if unit.startswith("1/") else unit
    return limit.replace("{", "").replace("}", "")


def consumer_limit_name(request: QuotaRequest, *, full_metric: bool = True) -> str:
    """Resource name of the consumer quota limit addressed by ``request``.

    With ``full_metric`` the metric segment is the complete metric name
    (``bigquery.googleapis.com%2Fquota%2Fquery%2Fusage``) as the structured
    API returns it; without, the service prefix is dropped
    (``quota%2Fquery%2Fusage``) as the raw REST fallbacks address it.
    """
    metric = request.metric_id
    if not full_metric and "/" in metric:
        metric = metric.split("/", 1)[1]
    return (
        f"projects/{request.project_id}/services/{request.service}"
        f"/consumerQuotaMetrics/{quote(metric, safe='')}"
        f"/limits/{quote(_limit_segment(request.unit), safe='')}"
    )


def new_override_id() -> str:
    return f"override-{int(time.time())}-{os.getpid()}"


def _raise_for_status(response: RawResponse) -> None:
    if not response.ok:
        raise CloudCallError(f"HTTP {response.status}: {response.text[:300]}", status=response.status)


class QuotaStrategy(ABC):
    """One mechanism for installing a quota override."""

    name: QuotaStrategyName
    label: str

    @abstractmethod
    def attempt(self, client: CloudControlClient, request: QuotaRequest, override_id: str) -> None:
        """Install the override or raise `CloudCallError`."""


class NativeCreate(QuotaStrategy):
    name = QuotaStrategyName.NATIVE_CREATE
    label = "quota override create"

    def attempt(self, client, request, override_id):
        client.create_quota_override(consumer_limit_name(request), request.daily_limit_value, force=True)


class NativeCreateWithDimensions(QuotaStrategy):
    name = QuotaStrategyName.NATIVE_CREATE_WITH_DIMENSIONS
    label = "quota override create with explicit dimensions"

    def attempt(self, client, request, override_id):
        client.create_quota_override(
            consumer_limit_name(request),
            request.daily_limit_value,
            dimensions={"project": request.project_id},
            force=True,
        )


class NativeUpdate(QuotaStrategy):
    name = QuotaStrategyName.NATIVE_UPDATE
    label = "update existing quota override"

    def attempt(self, client, request, override_id):
        client.update_quota_override(consumer_limit_name(request), request.daily_limit_value, force=True)


class RestPut(QuotaStrategy):
    name = QuotaStrategyName.REST_PUT
    label = "Service Usage API REST call"

    def attempt(self, client, request, override_id):
        limit = consumer_limit_name(request, full_metric=False)
        url = f"{SERVICE_USAGE_ENDPOINT}/v1beta1/{limit}/consumerOverrides/{override_id}"
        _raise_for_status(client.http_put(url, {"overrideValue": str(request.daily_limit_value)}))


class RestPostAlt(QuotaStrategy):
    name = QuotaStrategyName.REST_POST_ALT
    label = "alternative API endpoint"

    def attempt(self, client, request, override_id):
        limit = consumer_limit_name(request, full_metric=False)
        url = f"{SERVICE_USAGE_ENDPOINT}/v1/{limit}/consumerOverrides"
        payload = {
            "name": f"{limit}/consumerOverrides/{override_id}",
            "overrideValue": str(request.daily_limit_value),
        }
        _raise_for_status(client.http_post(url, payload, params={"overrideId": override_id}))


DEFAULT_STRATEGIES: tuple[QuotaStrategy, ...] = (
    NativeCreate(),
    NativeCreateWithDimensions(),
    NativeUpdate(),
    RestPut(),
    RestPostAlt(),
)


def _failure_record(strategy: QuotaStrategy, error: CloudCallError) -> QuotaAttemptRecord:
    reason = error.message
    unsafe = UNSAFE_OVERRIDE_MARKER in reason or error.reason == UNSAFE_OVERRIDE_MARKER
    if unsafe:
        reason = f"{reason} (quota decrease requires force; force was already requested)"
    return QuotaAttemptRecord(strategy.name, success=False, reason=reason, unsafe_override=unsafe)


class QuotaOverrideSetter:
    """Install a daily quota cap, trying each strategy until one succeeds.

    Parameters
    ----------
    client : CloudControlClient
        Client the strategies call through.
    enabler : ApiEnabler
        Used to enable the metric's service before any attempt.
    strategies : sequence of QuotaStrategy, optional
        Override the default five-step cascade.
    """

    def __init__(
        self,
        client: CloudControlClient,
        enabler: ApiEnabler,
        *,
        strategies: Optional[Sequence[QuotaStrategy]] = None,
    ):
        self.client = client
        self.enabler = enabler
        self.strategies = tuple(DEFAULT_STRATEGIES if strategies is None else strategies)

    def set_daily_quota(self, project_id: str, metric_id: str, unit: str, limit_value: int) -> QuotaResult:
        return self.apply(QuotaRequest(project_id, metric_id, unit, limit_value))

    def apply(self, request: QuotaRequest) -> QuotaResult:
        """Run the cascade for ``request`` and return the full attempt trace."""
        project_id = request.project_id
        console.print(f"[cyan]Setting daily quota on {request.metric_id} for project {project_id}...[/cyan]")
        if request.service == "bigquery.googleapis.com":
            console.print(
                f"  - Maximum bytes billed per day: "
                f"{request.daily_limit_value * BYTES_PER_MIB:,} bytes ({request.daily_limit_value} MiB)"
            )

        prerequisite = self.enabler.ensure_enabled(project_id, request.service)
        if not prerequisite.outcome.active:
            console.print(
                f"[yellow]Warning:[/yellow] {request.service} could not be enabled. Cost limits cannot be "
                "set at this time.\nPlease enable billing and retry, or set the limits manually later."
            )
            return QuotaResult(
                success=False,
                skipped_reason=f"{request.service} is not enabled ({prerequisite.outcome.value})",
            )

        self.enabler.ensure_enabled(project_id, SERVICE_USAGE_API)

        if self.enabler.dry_run:
            console.print(
                f"  [dim][DRY RUN] Would set {request.metric_id} to {request.daily_limit_value} "
                f"on {project_id}[/dim]"
            )
            return QuotaResult(success=False, skipped_reason="dry run")

        override_id = new_override_id()
        attempts: list[QuotaAttemptRecord] = []

        for number, strategy in enumerate(self.strategies, start=1):
            console.print(f"  Attempting method {number}: {strategy.label}...")
            try:
                strategy.attempt(self.client, request, override_id)
            except CloudCallError as e:
                record = _failure_record(strategy, e)
                attempts.append(record)
                if record.unsafe_override:
                    console.print("  [yellow]Quota decrease requires the force flag (already attempted).[/yellow]")
                continue

            attempts.append(QuotaAttemptRecord(strategy.name, success=True))
            console.print(f"  [green]✓ Daily quota configured via {strategy.label}.[/green]")
            return QuotaResult(success=True, attempts=attempts)

        exhausted = QuotaCascadeExhausted(project_id, attempts)
        console.print(f"[yellow]Warning:[/yellow] {exhausted}")
        for record in attempts:
            console.print(f"  - {record.strategy.value}: {record.reason}")
        console.print(
            "  Quota may require the 'Quota Administrator' role or may need to be set via the Console."
        )
        return QuotaResult(success=False, attempts=attempts)


__all__ = [
    "DEFAULT_STRATEGIES",
    "NativeCreate",
    "NativeCreateWithDimensions",
    "NativeUpdate",
    "QuotaOverrideSetter",
    "QuotaStrategy",
    "RestPostAlt",
    "RestPut",
    "consumer_limit_name",
    "new_override_id",
]
