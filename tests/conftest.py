"""Shared fixtures: an in-memory stand-in for the cloud control plane.

`FakeCloudClient` implements the `CloudControlClient` protocol over plain
dictionaries so the provisioning core can be exercised without network access.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

import pytest

from wiv.onboarding.cloud import RawResponse
from wiv.onboarding.types import BindingScope, CloudCallError, OnboardingConfig


class FakeCloudClient:
    def __init__(self):
        self.projects_by_parent: dict[str, list[str]] = defaultdict(list)
        self.folders_by_parent: dict[str, list[str]] = defaultdict(list)
        self.failing_parents: set[str] = set()
        self.organizations: list[dict[str, str]] = []

        self.enabled: dict[str, set[str]] = defaultdict(set)
        self.enable_errors: dict[tuple[str, str], CloudCallError] = {}
        self.enable_calls: list[tuple[str, str]] = []
        self.list_enabled_calls: list[str] = []

        self.billing: dict[str, bool] = {}
        self.existing_projects: set[str] = set()
        self.created_projects: list[str] = []

        self.identities: dict[str, dict] = {}
        self.identity_error: Optional[CloudCallError] = None
        self.invisible_polls = 0
        self.created_identities: list[str] = []

        self.bindings: list[tuple[str, str, str, BindingScope]] = []
        self.binding_errors: dict[tuple[str, str], CloudCallError] = {}

        self.keys: list[str] = []

        # Keys: "create", "create_dimensions", "update", "put", "post"
        self.quota_errors: dict[str, CloudCallError] = {}
        self.quota_calls: list[tuple] = []
        self.http_status = {"put": 200, "post": 200}

    # --- hierarchy ---

    def add_project(self, parent: str, project_id: str, *, billing: bool = True) -> None:
        self.projects_by_parent[parent].append(project_id)
        self.billing[project_id] = billing

    def add_folder(self, parent: str, folder_id: str) -> str:
        self.folders_by_parent[parent].append(folder_id)
        return f"folders/{folder_id}"

    def list_organizations(self):
        return list(self.organizations)

    def list_projects(self, parent):
        if parent in self.failing_parents:
            raise CloudCallError(f"Permission denied on {parent}", status=403)
        return list(self.projects_by_parent.get(parent, []))

    def list_folders(self, parent):
        if parent in self.failing_parents:
            raise CloudCallError(f"Permission denied on {parent}", status=403)
        return list(self.folders_by_parent.get(parent, []))

    def describe_project(self, project_id):
        if project_id in self.existing_projects:
            return {"projectId": project_id, "state": "ACTIVE"}
        return None

    def create_project(self, project_id, name, *, parent=None):
        self.created_projects.append(project_id)
        self.existing_projects.add(project_id)

    def check_billing_linked(self, project_id):
        return self.billing.get(project_id, False)

    # --- APIs ---

    def list_enabled_apis(self, project_id):
        self.list_enabled_calls.append(project_id)
        return set(self.enabled[project_id])

    def enable_api(self, project_id, api_name):
        self.enable_calls.append((project_id, api_name))
        error = self.enable_errors.get((project_id, api_name))
        if error is not None:
            raise error
        self.enabled[project_id].add(api_name)

    # --- IAM ---

    def describe_service_identity(self, email, project_id):
        if self.identity_error is not None:
            raise self.identity_error
        if email in self.identities and self.invisible_polls > 0:
            self.invisible_polls -= 1
            return None
        return self.identities.get(email)

    def create_service_identity(self, name, display_name, project_id):
        email = f"{name}@{project_id}.iam.gserviceaccount.com"
        self.created_identities.append(email)
        self.identities[email] = {"email": email, "displayName": display_name}
        return email

    def add_iam_binding(self, target, member, role, scope):
        error = self.binding_errors.get((target, role))
        if error is not None:
            raise error
        self.bindings.append((target, member, role, scope))
        return True

    def create_key(self, email, project_id):
        self.keys.append(email)
        return b'{"type": "service_account"}'

    # --- quota ---

    def create_quota_override(self, parent, value, *, dimensions=None, force=True):
        kind = "create_dimensions" if dimensions else "create"
        self.quota_calls.append((kind, parent, value, dimensions, force))
        if kind in self.quota_errors:
            raise self.quota_errors[kind]

    def update_quota_override(self, parent, value, *, force=True):
        self.quota_calls.append(("update", parent, value, None, force))
        if "update" in self.quota_errors:
            raise self.quota_errors["update"]

    def http_put(self, url, payload):
        self.quota_calls.append(("put", url, payload, None, None))
        if "put" in self.quota_errors:
            raise self.quota_errors["put"]
        return RawResponse(self.http_status["put"], "{}")

    def http_post(self, url, payload, *, params=None):
        self.quota_calls.append(("post", url, payload, params, None))
        if "post" in self.quota_errors:
            raise self.quota_errors["post"]
        return RawResponse(self.http_status["post"], "{}")

    def fail_all_quota_strategies(self) -> None:
        for kind in ("create", "create_dimensions", "update", "put", "post"):
            self.quota_errors[kind] = CloudCallError(f"{kind} refused", status=403)


@pytest.fixture
def client() -> FakeCloudClient:
    return FakeCloudClient()


@pytest.fixture
def config() -> OnboardingConfig:
    return OnboardingConfig(
        host_project_id="wiv-gpc-project",
        identity_wait_attempts=3,
        identity_wait_interval=0,
    )
