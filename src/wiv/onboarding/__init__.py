"""Provision Google Cloud projects and organizations for Wiv"""

from wiv.onboarding.apis import ApiEnabler
from wiv.onboarding.cloud import CloudControlClient, GcpControlClient
from wiv.onboarding.identity import IdentityProvisioner
from wiv.onboarding.orchestrator import ProvisioningOrchestrator
from wiv.onboarding.quota import QuotaOverrideSetter
from wiv.onboarding.types import (
    ApiActivationResult,
    ApiOutcome,
    BindingScope,
    OnboardingConfig,
    OnboardingError,
    OrganizationScope,
    ProjectScope,
    ProjectState,
    ProjectTarget,
    ProvisioningSummary,
    QuotaRequest,
    QuotaResult,
    ResourceNode,
    validate_project_id,
)
from wiv.onboarding.walker import ResourceTreeWalker

__version__ = "0.1.0"


__all__ = [
    "__version__",
    "ApiActivationResult",
    "ApiEnabler",
    "ApiOutcome",
    "BindingScope",
    "CloudControlClient",
    "GcpControlClient",
    "IdentityProvisioner",
    "OnboardingConfig",
    "OnboardingError",
    "OrganizationScope",
    "ProjectScope",
    "ProjectState",
    "ProjectTarget",
    "ProvisioningOrchestrator",
    "ProvisioningSummary",
    "QuotaOverrideSetter",
    "QuotaRequest",
    "QuotaResult",
    "ResourceNode",
    "ResourceTreeWalker",
    "validate_project_id",
]
