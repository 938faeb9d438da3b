"""Custom exceptions for wiv.onboarding."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .quota import QuotaAttemptRecord


class OnboardingError(Exception):
    """Base class for every error raised by wiv.onboarding."""


class CloudCallError(OnboardingError):
    """Raised by the cloud client when an outbound call fails.

    Attributes
    ----------
    message : str
        Provider error text (or a local description of the failure).
    status : int, optional
        HTTP status code when the failure came from an HTTP response.
    reason : str, optional
        Structured ``ErrorInfo`` reason (e.g. ``"BILLING_DISABLED"``) when the
        provider returned one.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason


class DiscoveryError(OnboardingError):
    """Raised when the resource hierarchy cannot be listed at the root."""


class EmptyResourceSetError(DiscoveryError):
    """Raised when discovery finishes without finding a single project."""


class ApiEnableError(OnboardingError):
    """An API could not be enabled on a project."""

    def __init__(self, project_id: str, api_name: str, message: str, *, billing_required: bool = False):
        super().__init__(f"Failed to enable {api_name} on project {project_id}: {message}")
        self.project_id = project_id
        self.api_name = api_name
        self.detail = message
        self.billing_required = billing_required


class QuotaCascadeExhausted(OnboardingError):
    """Every quota override strategy failed."""

    def __init__(self, project_id: str, attempts: Sequence["QuotaAttemptRecord"]):
        super().__init__(f"All {len(attempts)} quota override strategies failed for project {project_id}")
        self.project_id = project_id
        self.attempts = list(attempts)


class IdentityProvisionError(OnboardingError):
    """The service identity could not be created or looked up."""


class BindingError(OnboardingError):
    """An IAM binding call failed; remaining bindings were skipped."""

    def __init__(self, target: str, role: str, index: int, message: str):
        super().__init__(f"Failed to bind {role} on {target}: {message}")
        self.target = target
        self.role = role
        self.index = index


class ValidationError(OnboardingError):
    """Invalid user-supplied input (e.g. a malformed project ID)."""


__all__ = [
    "ApiEnableError",
    "BindingError",
    "CloudCallError",
    "DiscoveryError",
    "EmptyResourceSetError",
    "IdentityProvisionError",
    "OnboardingError",
    "QuotaCascadeExhausted",
    "ValidationError",
]
