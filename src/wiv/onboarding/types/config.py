"""Run configuration and provisioning scopes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .constants import (
    DEFAULT_PROJECT_ID,
    DEFAULT_PROJECT_NAME,
    KEY_FILE_NAME,
    SERVICE_ACCOUNT_DISPLAY_NAME,
    SERVICE_ACCOUNT_NAME,
)
from .project import validate_project_id
from .resource import ResourceNode


class BindingScope(str, Enum):
    """Where IAM roles are granted to the service identity."""

    ORGANIZATION = "organization"
    PROJECT = "project"


@dataclass(frozen=True)
class OrganizationScope:
    """Provision every project reachable under an organization."""

    org_id: str

    def root(self) -> ResourceNode:
        return ResourceNode.organization(self.org_id)


@dataclass(frozen=True)
class ProjectScope:
    """Provision a single standalone project."""

    project_id: str

    def root(self) -> ResourceNode:
        return ResourceNode.project(self.project_id)


Scope = Union[OrganizationScope, ProjectScope]


@dataclass(frozen=True)
class OnboardingConfig:
    """Immutable settings for a provisioning run.

    Attributes
    ----------
    host_project_id : str
        Project that owns the service identity.
    organization_id : str, optional
        Organization used for organization-scope bindings.
    binding_scope : BindingScope
        Grant roles on the organization or on each provisioned project.
    required_apis : frozenset[str]
        APIs whose enablement failure marks a project ``PARTIALLY_FAILED``.
    max_workers : int
        Number of projects processed concurrently (1 means sequential).
    identity_wait_attempts, identity_wait_interval
        Bounded poll for the service identity to become visible.
    dry_run : bool
        Print what would be done without mutating anything.
    """

    host_project_id: str = DEFAULT_PROJECT_ID
    host_project_name: str = DEFAULT_PROJECT_NAME
    organization_id: Optional[str] = None
    binding_scope: BindingScope = BindingScope.PROJECT
    service_account_name: str = SERVICE_ACCOUNT_NAME
    service_account_display_name: str = SERVICE_ACCOUNT_DISPLAY_NAME
    key_file: Path = Path(KEY_FILE_NAME)
    required_apis: frozenset[str] = field(default_factory=frozenset)
    max_workers: int = 1
    identity_wait_attempts: int = 10
    identity_wait_interval: float = 2.0
    operation_timeout: float = 300.0
    dry_run: bool = False

    def __post_init__(self):
        validate_project_id(self.host_project_id)
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.binding_scope is BindingScope.ORGANIZATION and not self.organization_id:
            raise ValueError("organization_id is required for organization-scope bindings")

    @property
    def service_account_email(self) -> str:
        return f"{self.service_account_name}@{self.host_project_id}.iam.gserviceaccount.com"

    @property
    def member(self) -> str:
        return f"serviceAccount:{self.service_account_email}"

    def binding_target(self, project_id: str) -> str:
        """Bare ID of the resource roles are granted on for ``project_id``."""
        if self.binding_scope is BindingScope.ORGANIZATION:
            return self.organization_id  # type: ignore[return-value]
        return project_id


__all__ = ["BindingScope", "OnboardingConfig", "OrganizationScope", "ProjectScope", "Scope"]
