"""Common utilities for wiv.onboarding commands."""

from __future__ import annotations

import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Optional

import yaml
from rich.console import Console

from wiv.onboarding.types import BindingScope, OnboardingConfig, ProvisioningSummary, ValidationError

console = Console()

_PATH_FIELDS = {"key_file"}
_SET_FIELDS = {"required_apis"}


def load_config_file(path: Path) -> dict[str, Any]:
    """Load onboarding settings from a YAML file.

    The file holds a flat mapping whose keys are `OnboardingConfig` field
    names, e.g.::

        host_project_id: wiv-gpc-project
        organization_id: "123456789"
        binding_scope: organization
        max_workers: 4

    Raises
    ------
    ValidationError
        If the file is not a mapping or names unknown settings.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping of settings")

    known = {f.name for f in fields(OnboardingConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown settings in {path}: {', '.join(unknown)}")
    return data


def build_config(settings: Optional[dict[str, Any]] = None, **overrides: Any) -> OnboardingConfig:
    """Build an `OnboardingConfig` from file settings with non-None ``overrides`` applied on top."""
    merged = dict(settings or {})
    merged.update({k: v for k, v in overrides.items() if v is not None})

    if "binding_scope" in merged:
        merged["binding_scope"] = BindingScope(merged["binding_scope"])
    if "organization_id" in merged:
        merged["organization_id"] = str(merged["organization_id"])
    for name in _PATH_FIELDS & merged.keys():
        merged[name] = Path(merged[name])
    for name in _SET_FIELDS & merged.keys():
        merged[name] = frozenset(merged[name])

    try:
        return OnboardingConfig(**merged)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def write_key_file(path: Path, key_material: bytes) -> Path:
    """Write service account key material readable only by the owner."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key_material)
    return path


def save_summary_file(summary: ProvisioningSummary, path: Path) -> Path:
    """Save a run summary as YAML."""
    data = {
        "total_projects": summary.total_projects,
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "cancelled": summary.cancelled,
        "failed_projects": list(summary.failed_project_ids),
        "projects": [
            {
                "project_id": report.project_id,
                "state": report.state.value,
                "apis": {r.api_name: r.outcome.value for r in report.api_results},
                "quota_configured": None if report.quota is None else report.quota.success,
                "service_account": report.identity_email,
                "roles_bound": len(report.bound_roles),
                "error": report.error,
            }
            for report in summary.reports
        ],
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Saved run summary to:[/green] {path}")
    return path


__all__ = ["build_config", "load_config_file", "save_summary_file", "write_key_file"]
