"""Per-project reports and the run summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .quota import QuotaResult
from .results import ApiActivationResult


class ProjectState(str, Enum):
    """States a project moves through during a provisioning run."""

    DISCOVERED = "discovered"
    APIS_ENABLING = "apis_enabling"
    QUOTA_CONFIGURING = "quota_configuring"
    IDENTITY_PROVISIONING = "identity_provisioning"
    ROLE_BINDING = "role_binding"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"

    @property
    def terminal(self) -> bool:
        return self in (ProjectState.DONE, ProjectState.PARTIALLY_FAILED)


@dataclass
class ProjectReport:
    project_id: str
    state: ProjectState = ProjectState.DISCOVERED
    api_results: list[ApiActivationResult] = field(default_factory=list)
    quota: Optional[QuotaResult] = None
    identity_email: Optional[str] = None
    bound_roles: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is ProjectState.DONE


@dataclass
class ProvisioningSummary:
    """Aggregate outcome of a provisioning run.

    Only the orchestrator mutates a summary, through :meth:`record`.
    """

    total_projects: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_project_ids: list[str] = field(default_factory=list)
    reports: list[ProjectReport] = field(default_factory=list)
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def record(self, report: ProjectReport) -> None:
        if not report.state.terminal:
            raise ValueError(f"Project {report.project_id} is still in state {report.state.value}")
        self.reports.append(report)
        if report.succeeded:
            self.succeeded += 1
        else:
            self.failed += 1
            self.failed_project_ids.append(report.project_id)

    def report_for(self, project_id: str) -> Optional[ProjectReport]:
        return next((r for r in self.reports if r.project_id == project_id), None)


__all__ = ["ProjectReport", "ProjectState", "ProvisioningSummary"]
