"""API activation outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .exceptions import ApiEnableError


class ApiOutcome(str, Enum):
    ALREADY_ENABLED = "already_enabled"
    ENABLED = "enabled"
    SKIPPED_BILLING_REQUIRED = "skipped_billing_required"
    FAILED = "failed"

    @property
    def active(self) -> bool:
        """True when the API is usable on the project after this outcome."""
        return self in (ApiOutcome.ALREADY_ENABLED, ApiOutcome.ENABLED)


@dataclass(frozen=True)
class ApiActivationResult:
    """Outcome of ensuring one API on one project.

    Attributes
    ----------
    project_id : str
        Project the API was activated on.
    api_name : str
        Service name, e.g. ``"compute.googleapis.com"``.
    outcome : ApiOutcome
        What happened.
    error : ApiEnableError, optional
        The classified failure for ``SKIPPED_BILLING_REQUIRED`` and ``FAILED``.
    """

    project_id: str
    api_name: str
    outcome: ApiOutcome
    error: Optional[ApiEnableError] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not ApiOutcome.FAILED


def project_ok(results: Iterable[ApiActivationResult]) -> bool:
    """Logical AND of all outcomes: False as soon as any API ``FAILED``."""
    return all(result.ok for result in results)


__all__ = ["ApiActivationResult", "ApiOutcome", "project_ok"]
