"""Internal helpers to construct Google API service clients.

These helpers centralize `googleapiclient.discovery.build` usage to keep
options consistent across the codebase. They are intentionally private; the
public cloud surface is `GcpControlClient` in `cloud.py`.
"""

from __future__ import annotations

from google.auth.credentials import Credentials
from google.auth.transport.requests import AuthorizedSession
from googleapiclient import discovery


def crm_v1(credentials: Credentials):
    """Cloud Resource Manager v1 service client (organization search)."""
    return discovery.build("cloudresourcemanager", "v1", credentials=credentials, cache_discovery=False)


def crm_v3(credentials: Credentials):
    """Cloud Resource Manager v3 service client."""
    return discovery.build("cloudresourcemanager", "v3", credentials=credentials, cache_discovery=False)


def iam_v1(credentials: Credentials):
    """IAM v1 service client."""
    return discovery.build("iam", "v1", credentials=credentials, cache_discovery=False)


def service_usage(credentials: Credentials):
    """Service Usage v1 service client."""
    return discovery.build("serviceusage", "v1", credentials=credentials, cache_discovery=False)


def service_usage_v1beta1(credentials: Credentials):
    """Service Usage v1beta1 service client (consumer quota overrides)."""
    return discovery.build("serviceusage", "v1beta1", credentials=credentials, cache_discovery=False)


def cloud_billing(credentials: Credentials):
    """Cloud Billing v1 service client."""
    return discovery.build("cloudbilling", "v1", credentials=credentials, cache_discovery=False)


def authorized_session(credentials: Credentials) -> AuthorizedSession:
    """HTTP session that attaches a bearer token from ``credentials`` to every request."""
    return AuthorizedSession(credentials)
