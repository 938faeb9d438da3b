"""Tests for service identity provisioning, role binding and key export."""

import os
from dataclasses import replace

import pytest

from wiv.onboarding.identity import IdentityProvisioner
from wiv.onboarding.types import BindingError, BindingScope, CloudCallError, IdentityProvisionError

EMAIL = "wiv-sa@wiv-gpc-project.iam.gserviceaccount.com"
ROLES = ["roles/viewer", "roles/compute.viewer", "roles/monitoring.viewer"]


def test_creates_identity_once(client, config):
    provisioner = IdentityProvisioner(client, config)

    assert provisioner.ensure_identity() == EMAIL
    assert provisioner.ensure_identity() == EMAIL
    assert client.created_identities == [EMAIL]


def test_reuses_existing_identity(client, config):
    client.identities[EMAIL] = {"email": EMAIL}

    assert IdentityProvisioner(client, config).ensure_identity() == EMAIL
    assert client.created_identities == []


def test_waits_for_new_identity(client, config):
    client.invisible_polls = 2
    provisioner = IdentityProvisioner(client, config)

    provisioner.ensure_identity()

    assert client.invisible_polls == 0


def test_wait_gives_up_without_raising(client, config):
    provisioner = IdentityProvisioner(client, config)
    assert provisioner.wait_until_visible("ghost@wiv-gpc-project.iam.gserviceaccount.com") is False


def test_lookup_failure_raises(client, config):
    client.identity_error = CloudCallError("Permission denied", status=403)

    with pytest.raises(IdentityProvisionError):
        IdentityProvisioner(client, config).ensure_identity()


def test_dry_run_creates_nothing(client, config):
    provisioner = IdentityProvisioner(client, replace(config, dry_run=True))

    assert provisioner.ensure_identity() == EMAIL
    assert provisioner.bind_roles(EMAIL, ROLES, "proj-one", BindingScope.PROJECT) == ROLES
    assert client.created_identities == []
    assert client.bindings == []


def test_dry_run_tolerates_lookup_failure(client, config):
    client.identity_error = CloudCallError("Permission denied on missing project", status=403)
    provisioner = IdentityProvisioner(client, replace(config, dry_run=True))

    assert provisioner.ensure_identity() == EMAIL
    assert client.created_identities == []


def test_bind_roles_in_order(client, config):
    bound = IdentityProvisioner(client, config).bind_roles(EMAIL, ROLES, "proj-one", BindingScope.PROJECT)

    assert bound == ROLES
    assert [b[2] for b in client.bindings] == ROLES
    assert all(b[1] == f"serviceAccount:{EMAIL}" for b in client.bindings)


def test_binding_failure_stops_at_failed_role(client, config):
    client.binding_errors[("proj-one", ROLES[1])] = CloudCallError("denied", status=403)

    with pytest.raises(BindingError) as excinfo:
        IdentityProvisioner(client, config).bind_roles(EMAIL, ROLES, "proj-one", BindingScope.PROJECT)

    assert excinfo.value.index == 1
    assert excinfo.value.role == ROLES[1]
    assert [b[2] for b in client.bindings] == ROLES[:1]


def test_organization_bindings_applied_once(client, config):
    provisioner = IdentityProvisioner(client, config)

    provisioner.bind_roles(EMAIL, ROLES, "123", BindingScope.ORGANIZATION)
    second = provisioner.bind_roles(EMAIL, ROLES, "123", BindingScope.ORGANIZATION)

    assert second == ROLES
    assert len(client.bindings) == len(ROLES)


def test_export_key_writes_private_file(client, config, tmp_path):
    key_file = tmp_path / "key.json"

    written = IdentityProvisioner(client, config).export_key(EMAIL, key_file)

    assert written == key_file
    assert key_file.read_bytes() == b'{"type": "service_account"}'
    assert os.stat(key_file).st_mode & 0o777 == 0o600
    assert client.keys == [EMAIL]


def test_export_key_keeps_existing_file(client, config, tmp_path):
    key_file = tmp_path / "key.json"
    key_file.write_text("existing")

    IdentityProvisioner(client, config).export_key(EMAIL, key_file)

    assert key_file.read_text() == "existing"
    assert client.keys == []


def test_export_key_dry_run(client, config, tmp_path):
    key_file = tmp_path / "key.json"

    assert IdentityProvisioner(client, replace(config, dry_run=True)).export_key(EMAIL, key_file) is None
    assert not key_file.exists()
