"""Read-only checks against real Google Cloud APIs.

These tests use Application Default Credentials (ADC) and are skipped unless
WIV_ONBOARDING_MANUAL_TESTS is set:

    WIV_ONBOARDING_MANUAL_TESTS=1 pytest tests/test_live.py -v

Set WIV_ONBOARDING_TEST_PROJECT to a project you can read to run the
project-level checks.
"""

import os

import pytest

from wiv.onboarding.cloud import GcpControlClient
from wiv.onboarding.types import ResourceNode
from wiv.onboarding.walker import ResourceTreeWalker

# Skip these tests in CI unless WIV_ONBOARDING_MANUAL_TESTS environment variable is set
manual_test = pytest.mark.skipif(
    not os.getenv("WIV_ONBOARDING_MANUAL_TESTS"),
    reason="Manual test - requires GCP credentials. Set WIV_ONBOARDING_MANUAL_TESTS=1 to run.",
)


def _test_project() -> str:
    project_id = os.getenv("WIV_ONBOARDING_TEST_PROJECT")
    if not project_id:
        pytest.skip("WIV_ONBOARDING_TEST_PROJECT is not set")
    return project_id


@manual_test
def test_list_organizations():
    orgs = GcpControlClient().list_organizations()

    assert isinstance(orgs, list)
    for org in orgs:
        assert org["id"].isdigit()
        print(f"  {org['display_name']} ({org['id']})")


@manual_test
def test_enabled_apis_on_test_project():
    project_id = _test_project()

    enabled = GcpControlClient().list_enabled_apis(project_id)

    assert isinstance(enabled, set)
    print(f"  {len(enabled)} APIs enabled on {project_id}")


@manual_test
def test_describe_test_project():
    project_id = _test_project()
    client = GcpControlClient()

    assert client.describe_project(project_id) is not None
    assert isinstance(client.check_billing_linked(project_id), bool)


@manual_test
def test_walk_first_organization():
    client = GcpControlClient()
    orgs = client.list_organizations()
    if not orgs:
        pytest.skip("No organizations visible to these credentials")

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.organization(orgs[0]["id"]))

    assert len({t.project_id for t in targets}) == len(targets)
    print(f"  {len(targets)} project(s) under organization {orgs[0]['id']}")
