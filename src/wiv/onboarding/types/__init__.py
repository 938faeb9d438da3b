"""Public exports for wiv.onboarding types."""

from __future__ import annotations

from .config import BindingScope, OnboardingConfig, OrganizationScope, ProjectScope, Scope
from .exceptions import (
    ApiEnableError,
    BindingError,
    CloudCallError,
    DiscoveryError,
    EmptyResourceSetError,
    IdentityProvisionError,
    OnboardingError,
    QuotaCascadeExhausted,
    ValidationError,
)
from .project import ProjectTarget, is_valid_project_id, validate_project_id
from .quota import QuotaAttemptRecord, QuotaRequest, QuotaResult, QuotaStrategyName
from .resource import ResourceKind, ResourceNode
from .results import ApiActivationResult, ApiOutcome, project_ok
from .summary import ProjectReport, ProjectState, ProvisioningSummary

__all__ = [
    "ApiActivationResult",
    "ApiEnableError",
    "ApiOutcome",
    "BindingError",
    "BindingScope",
    "CloudCallError",
    "DiscoveryError",
    "EmptyResourceSetError",
    "IdentityProvisionError",
    "OnboardingConfig",
    "OnboardingError",
    "OrganizationScope",
    "ProjectReport",
    "ProjectScope",
    "ProjectState",
    "ProjectTarget",
    "ProvisioningSummary",
    "QuotaAttemptRecord",
    "QuotaCascadeExhausted",
    "QuotaRequest",
    "QuotaResult",
    "QuotaStrategyName",
    "ResourceKind",
    "ResourceNode",
    "Scope",
    "ValidationError",
    "is_valid_project_id",
    "project_ok",
    "validate_project_id",
]
