"""End-to-end tests of the onboarding flows against the in-memory client."""

import signal
import threading
from dataclasses import replace

import pytest

from wiv.onboarding.onboard import enable_apis_sweep, ensure_host_project, interrupt_cancels, onboard
from wiv.onboarding.types import CloudCallError, DiscoveryError, OnboardingError, ProjectState
from wiv.onboarding.types.constants import ONBOARDING_APIS, ONBOARDING_ROLES, SWEEP_APIS

ORG = "organizations/123"


def test_onboard_creates_project_and_writes_key(client, config, tmp_path):
    cfg = replace(config, key_file=tmp_path / "key.json")

    summary = onboard(client, cfg)

    assert client.created_projects == [cfg.host_project_id]
    report = summary.report_for(cfg.host_project_id)
    assert report.state is ProjectState.DONE
    assert [r.api_name for r in report.api_results] == list(ONBOARDING_APIS)
    assert report.bound_roles == list(ONBOARDING_ROLES)
    assert report.quota.success
    assert (tmp_path / "key.json").exists()


def test_onboard_reuses_existing_project(client, config, tmp_path):
    client.existing_projects.add(config.host_project_id)

    onboard(client, replace(config, key_file=tmp_path / "key.json"), max_bytes_per_day=None)

    assert client.created_projects == []
    assert client.quota_calls == []


def test_onboard_dry_run(client, config, tmp_path):
    cfg = replace(config, key_file=tmp_path / "key.json", dry_run=True)

    summary = onboard(client, cfg)

    assert summary.succeeded == 1
    assert client.created_projects == []
    assert client.keys == []
    assert not (tmp_path / "key.json").exists()


def test_ensure_host_project_wraps_create_failure(client, config):
    def refuse(project_id, name, *, parent=None):
        raise CloudCallError("quota exceeded for project creation")

    client.create_project = refuse

    with pytest.raises(OnboardingError, match="Failed to create project"):
        ensure_host_project(client, config)


def test_sweep_marks_projects_with_failed_apis(client, config):
    client.add_project(ORG, "proj-a")
    client.add_project(client.add_folder(ORG, "10"), "proj-b")
    client.enable_errors[("proj-b", "recommender.googleapis.com")] = CloudCallError("Billing must be enabled")

    summary = enable_apis_sweep(client, config, "123", assume_yes=True)

    assert summary.total_projects == 2
    assert summary.report_for("proj-a").state is ProjectState.DONE
    assert summary.failed_project_ids == ["proj-b"]
    enabled_on_a = [api for project, api in client.enable_calls if project == "proj-a"]
    assert enabled_on_a == list(SWEEP_APIS)
    assert client.created_identities == []


def test_sweep_on_empty_organization(client, config):
    with pytest.raises(DiscoveryError):
        enable_apis_sweep(client, config, "123", assume_yes=True)


def test_interrupt_cancels_restores_handler():
    previous = signal.getsignal(signal.SIGINT)
    cancel = threading.Event()

    with interrupt_cancels(cancel):
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        assert cancel.is_set()
        with pytest.raises(KeyboardInterrupt):
            handler(signal.SIGINT, None)

    assert signal.getsignal(signal.SIGINT) is previous
