"""Tests for resource hierarchy discovery against the in-memory client."""

import pytest

from wiv.onboarding.types import DiscoveryError, EmptyResourceSetError, ProjectTarget, ResourceNode
from wiv.onboarding.walker import ResourceTreeWalker

ORG = "organizations/123"


def _ids(targets):
    return sorted(t.project_id for t in targets)


def test_folder_and_direct_projects(client):
    folder = client.add_folder(ORG, "10")
    client.add_project(folder, "proj-in-folder-a")
    client.add_project(folder, "proj-in-folder-b")
    client.add_project(ORG, "proj-direct")

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))

    assert _ids(targets) == ["proj-direct", "proj-in-folder-a", "proj-in-folder-b"]


def test_projects_seen_twice_are_deduplicated(client):
    first = client.add_folder(ORG, "10")
    second = client.add_folder(ORG, "20")
    client.add_project(first, "proj-shared")
    client.add_project(second, "proj-shared")
    client.add_project(ORG, "proj-shared")

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))

    assert targets == {ProjectTarget("proj-shared")}


def test_nested_folders_are_walked(client):
    parent = ORG
    for depth in range(200):
        parent = client.add_folder(parent, str(1000 + depth))
    client.add_project(parent, "proj-deep")

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))

    assert _ids(targets) == ["proj-deep"]


def test_failing_subtree_is_skipped(client):
    good = client.add_folder(ORG, "10")
    bad = client.add_folder(ORG, "20")
    client.add_project(good, "proj-good")
    client.add_project(bad, "proj-hidden")
    client.failing_parents.add(bad)

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))

    assert _ids(targets) == ["proj-good"]


def test_root_listing_failure_is_fatal(client):
    client.add_project(ORG, "proj-direct")
    client.failing_parents.add(ORG)

    with pytest.raises(DiscoveryError):
        ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))


def test_empty_organization(client):
    client.add_folder(ORG, "10")

    with pytest.raises(EmptyResourceSetError):
        ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))


def test_only_failing_subtrees_leaves_nothing(client):
    bad = client.add_folder(ORG, "10")
    client.add_project(bad, "proj-hidden")
    client.failing_parents.add(bad)

    with pytest.raises(EmptyResourceSetError):
        ResourceTreeWalker(client).discover_projects(ResourceNode.organization("123"))


def test_project_root_returns_itself(client):
    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.project("wiv-gpc-project"))
    assert _ids(targets) == ["wiv-gpc-project"]


def test_folder_root(client):
    folder = client.add_folder(ORG, "10")
    child = client.add_folder(folder, "11")
    client.add_project(child, "proj-child")
    client.add_project(ORG, "proj-outside")

    targets = ResourceTreeWalker(client).discover_projects(ResourceNode.folder("10"))

    assert _ids(targets) == ["proj-child"]


def test_resolve_billing(client):
    client.add_project(ORG, "proj-billed", billing=True)
    client.add_project(ORG, "proj-unbilled", billing=False)

    targets = ResourceTreeWalker(client, resolve_billing=True).discover_projects(ResourceNode.organization("123"))

    billing = {t.project_id: t.billing_enabled for t in targets}
    assert billing == {"proj-billed": True, "proj-unbilled": False}
