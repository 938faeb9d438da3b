"""Cloud control-plane client.

Every outbound call made by the provisioning core goes through a
`CloudControlClient`. `GcpControlClient` implements it with the Google API
discovery clients and an authorized `requests` session; failures of any kind
are raised as `CloudCallError` so callers only ever handle one error type.
"""

from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import google.auth
import google.auth.exceptions
import httplib2
import requests
from google.auth.credentials import Credentials
from googleapiclient.errors import HttpError
from rich.console import Console

from wiv.onboarding._clients import (
    authorized_session,
    cloud_billing,
    crm_v1,
    crm_v3,
    iam_v1,
    service_usage,
    service_usage_v1beta1,
)
from wiv.onboarding.types import BindingScope, CloudCallError

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

console = Console()
_verbose = False


def set_verbose(verbose: bool) -> None:
    """Echo every outbound cloud call when ``verbose`` is True."""
    global _verbose
    _verbose = verbose


def _echo(description: str) -> None:
    if _verbose:
        console.print(f"[dim]→ {description}[/dim]")


@dataclass(frozen=True)
class RawResponse:
    """Status and body of a raw authenticated HTTP call."""

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return self.status in (200, 201)


class CloudControlClient(Protocol):
    """Narrow interface between the provisioning core and the cloud provider."""

    def list_enabled_apis(self, project_id: str) -> set[str]: ...

    def enable_api(self, project_id: str, api_name: str) -> None: ...

    def list_organizations(self) -> list[dict[str, str]]: ...

    def list_projects(self, parent: str) -> list[str]: ...

    def list_folders(self, parent: str) -> list[str]: ...

    def describe_project(self, project_id: str) -> Optional[dict]: ...

    def create_project(self, project_id: str, name: str, *, parent: Optional[str] = None) -> None: ...

    def check_billing_linked(self, project_id: str) -> bool: ...

    def describe_service_identity(self, email: str, project_id: str) -> Optional[dict]: ...

    def create_service_identity(self, name: str, display_name: str, project_id: str) -> str: ...

    def add_iam_binding(self, target: str, member: str, role: str, scope: BindingScope) -> bool: ...

    def create_key(self, email: str, project_id: str) -> bytes: ...

    def create_quota_override(
        self, parent: str, value: int, *, dimensions: Optional[dict[str, str]] = None, force: bool = True
    ) -> None: ...

    def update_quota_override(self, parent: str, value: int, *, force: bool = True) -> None: ...

    def http_put(self, url: str, payload: dict) -> RawResponse: ...

    def http_post(self, url: str, payload: dict, *, params: Optional[dict[str, str]] = None) -> RawResponse: ...


def _reason_from_details(details: Any) -> Optional[str]:
    for detail in details or []:
        if isinstance(detail, dict) and detail.get("reason"):
            return detail["reason"]
    return None


def cloud_error_from_http(error: HttpError) -> CloudCallError:
    """Convert a googleapiclient ``HttpError`` into a `CloudCallError`.

    The structured ``ErrorInfo`` reason is taken from ``error.details`` when the
    provider sent one, falling back to the legacy ``error.errors[].reason``.
    """
    status = getattr(error.resp, "status", None)
    message = str(error)
    reason = None

    try:
        payload = json.loads(error.content.decode("utf-8"))
    except (AttributeError, UnicodeDecodeError, ValueError):
        payload = {}

    body = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(body, dict):
        message = body.get("message") or message
        reason = _reason_from_details(body.get("details")) or _reason_from_details(body.get("errors"))

    return CloudCallError(message, status=int(status) if status else None, reason=reason)


class GcpControlClient:
    """`CloudControlClient` backed by Google Cloud REST APIs.

    Parameters
    ----------
    credentials : Credentials, optional
        Credentials for every call. When omitted, Application Default
        Credentials are resolved on first use.
    operation_timeout : float, default 300.0
        Max seconds to wait for a long-running operation.
    polling_interval : float, default 2.0
        Seconds between operation polls.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        *,
        operation_timeout: float = 300.0,
        polling_interval: float = 2.0,
    ):
        self._credentials = credentials
        self._session = None
        self.operation_timeout = operation_timeout
        self.polling_interval = polling_interval

    @property
    def credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
        return self._credentials

    def _execute(self, request, description: str) -> dict:
        _echo(description)
        try:
            return request.execute()
        except HttpError as e:
            raise cloud_error_from_http(e) from e
        except (OSError, httplib2.HttpLib2Error, google.auth.exceptions.GoogleAuthError) as e:
            raise CloudCallError(f"{description} failed: {e}") from e

    def _paginate(self, collection, request, key: str, description: str) -> list[dict]:
        items: list[dict] = []
        while request is not None:
            response = self._execute(request, description)
            items.extend(response.get(key, []))
            request = collection.list_next(previous_request=request, previous_response=response)
        return items

    def _wait_for_operation(self, operation: dict, poll: Callable[[str], Any], description: str) -> dict:
        op_name = operation.get("name")
        start = time.time()
        while not operation.get("done", False):
            if time.time() - start > self.operation_timeout:
                raise CloudCallError(f"{description} timed out after {self.operation_timeout}s (operation: {op_name})")
            time.sleep(self.polling_interval)
            operation = self._execute(poll(op_name), f"poll {op_name}")

        if "error" in operation:
            err = operation["error"]
            raise CloudCallError(
                f"{description} failed with error code {err.get('code', 'Unknown')}: "
                f"{err.get('message', 'Unknown error')}",
                reason=_reason_from_details(err.get("details")),
            )
        return operation

    # --- Service Usage ---

    def list_enabled_apis(self, project_id: str) -> set[str]:
        su = service_usage(self.credentials)
        services = su.services()
        request = services.list(parent=f"projects/{project_id}", filter="state:ENABLED")
        listed = self._paginate(services, request, "services", f"list enabled services on {project_id}")
        return {s.get("config", {}).get("name", "") for s in listed} - {""}

    def enable_api(self, project_id: str, api_name: str) -> None:
        su = service_usage(self.credentials)
        operation = self._execute(
            su.services().enable(name=f"projects/{project_id}/services/{api_name}", body={}),
            f"enable {api_name} on {project_id}",
        )
        self._wait_for_operation(
            operation, lambda name: su.operations().get(name=name), f"Enabling {api_name} on {project_id}"
        )

    # --- Resource Manager ---

    def list_organizations(self) -> list[dict[str, str]]:
        crm = crm_v1(self.credentials)
        organizations = []
        request = crm.organizations().search(body={})
        while request is not None:
            response = self._execute(request, "search organizations")
            for org in response.get("organizations", []):
                organizations.append({"id": org["name"].split("/")[1], "display_name": org.get("displayName", "")})
            request = crm.organizations().search_next(previous_request=request, previous_response=response)
        return organizations

    def list_projects(self, parent: str) -> list[str]:
        """List IDs of active projects whose direct parent is ``parent``."""
        crm = crm_v3(self.credentials)
        projects = crm.projects()
        listed = self._paginate(projects, projects.list(parent=parent), "projects", f"list projects under {parent}")
        return [p["projectId"] for p in listed if p.get("state", "ACTIVE") == "ACTIVE"]

    def list_folders(self, parent: str) -> list[str]:
        """List IDs of folders whose direct parent is ``parent``."""
        crm = crm_v3(self.credentials)
        folders = crm.folders()
        listed = self._paginate(folders, folders.list(parent=parent), "folders", f"list folders under {parent}")
        return [f["name"].split("/")[1] for f in listed]

    def describe_project(self, project_id: str) -> Optional[dict]:
        crm = crm_v3(self.credentials)
        try:
            return self._execute(crm.projects().get(name=f"projects/{project_id}"), f"describe {project_id}")
        except CloudCallError as e:
            # CRM answers 403 for projects that do not exist
            if e.status in (403, 404):
                return None
            raise

    def create_project(self, project_id: str, name: str, *, parent: Optional[str] = None) -> None:
        crm = crm_v3(self.credentials)
        body = {"projectId": project_id, "displayName": name}
        if parent:
            body["parent"] = parent
        operation = self._execute(crm.projects().create(body=body), f"create project {project_id}")
        self._wait_for_operation(
            operation, lambda op: crm.operations().get(name=op), f"Creating project {project_id}"
        )

    # --- Billing ---

    def check_billing_linked(self, project_id: str) -> bool:
        billing = cloud_billing(self.credentials)
        info = self._execute(
            billing.projects().getBillingInfo(name=f"projects/{project_id}"), f"billing info for {project_id}"
        )
        return bool(info.get("billingEnabled", False) and info.get("billingAccountName"))

    # --- IAM ---

    def describe_service_identity(self, email: str, project_id: str) -> Optional[dict]:
        iam = iam_v1(self.credentials)
        try:
            return self._execute(
                iam.projects().serviceAccounts().get(name=f"projects/{project_id}/serviceAccounts/{email}"),
                f"describe service account {email}",
            )
        except CloudCallError as e:
            if e.status == 404:
                return None
            raise

    def create_service_identity(self, name: str, display_name: str, project_id: str) -> str:
        iam = iam_v1(self.credentials)
        body = {"accountId": name, "serviceAccount": {"displayName": display_name}}
        try:
            account = self._execute(
                iam.projects().serviceAccounts().create(name=f"projects/{project_id}", body=body),
                f"create service account {name} in {project_id}",
            )
        except CloudCallError as e:
            if e.status == 409:
                return f"{name}@{project_id}.iam.gserviceaccount.com"
            raise
        return account["email"]

    def add_iam_binding(self, target: str, member: str, role: str, scope: BindingScope) -> bool:
        """Add ``member`` to ``role`` on an organization or project; return False if already bound."""
        crm = crm_v3(self.credentials)
        if scope is BindingScope.ORGANIZATION:
            collection = crm.organizations()
            resource = f"organizations/{target}"
        else:
            collection = crm.projects()
            resource = f"projects/{target}"

        policy = self._execute(
            collection.getIamPolicy(resource=resource, body={"options": {"requestedPolicyVersion": 3}}),
            f"get IAM policy of {resource}",
        )
        if policy.get("version", 0) < 3:
            policy["version"] = 3

        bindings = policy.setdefault("bindings", [])
        binding = next((b for b in bindings if b.get("role") == role and "condition" not in b), None)
        if binding is None:
            bindings.append({"role": role, "members": [member]})
        else:
            members = binding.setdefault("members", [])
            if member in members:
                return False
            members.append(member)

        self._execute(
            collection.setIamPolicy(resource=resource, body={"policy": policy}),
            f"bind {role} to {member} on {resource}",
        )
        return True

    def create_key(self, email: str, project_id: str) -> bytes:
        iam = iam_v1(self.credentials)
        key = self._execute(
            iam.projects()
            .serviceAccounts()
            .keys()
            .create(
                name=f"projects/{project_id}/serviceAccounts/{email}",
                body={"privateKeyType": "TYPE_GOOGLE_CREDENTIALS_FILE", "keyAlgorithm": "KEY_ALG_RSA_2048"},
            ),
            f"create key for {email}",
        )
        return base64.b64decode(key["privateKeyData"])

    # --- Quota overrides ---

    def create_quota_override(
        self, parent: str, value: int, *, dimensions: Optional[dict[str, str]] = None, force: bool = True
    ) -> None:
        su = service_usage_v1beta1(self.credentials)
        body: dict[str, Any] = {"overrideValue": str(value)}
        if dimensions:
            body["dimensions"] = dimensions
        overrides = su.services().consumerQuotaMetrics().limits().consumerOverrides()
        operation = self._execute(
            overrides.create(parent=parent, body=body, force=force), f"create quota override on {parent}"
        )
        self._wait_for_operation(
            operation, lambda name: su.operations().get(name=name), f"Creating quota override on {parent}"
        )

    def update_quota_override(self, parent: str, value: int, *, force: bool = True) -> None:
        su = service_usage_v1beta1(self.credentials)
        overrides = su.services().consumerQuotaMetrics().limits().consumerOverrides()
        existing = self._paginate(
            overrides, overrides.list(parent=parent), "overrides", f"list quota overrides on {parent}"
        )
        if not existing:
            raise CloudCallError(f"No existing quota override found on {parent}")

        operation = self._execute(
            overrides.patch(
                name=existing[0]["name"],
                body={"overrideValue": str(value)},
                force=force,
                updateMask="overrideValue",
            ),
            f"update quota override {existing[0]['name']}",
        )
        self._wait_for_operation(
            operation, lambda name: su.operations().get(name=name), f"Updating quota override on {parent}"
        )

    # --- Raw HTTP ---

    def _send(self, method: str, url: str, payload: dict, params: Optional[dict[str, str]] = None) -> RawResponse:
        _echo(f"{method} {url}")
        if self._session is None:
            self._session = authorized_session(self.credentials)
        try:
            response = self._session.request(method, url, json=payload, params=params, timeout=60)
        except (requests.RequestException, google.auth.exceptions.GoogleAuthError) as e:
            raise CloudCallError(f"{method} {url} failed: {e}") from e
        return RawResponse(status=response.status_code, text=response.text)

    def http_put(self, url: str, payload: dict) -> RawResponse:
        return self._send("PUT", url, payload)

    def http_post(self, url: str, payload: dict, *, params: Optional[dict[str, str]] = None) -> RawResponse:
        return self._send("POST", url, payload, params=params)


__all__ = [
    "CloudControlClient",
    "GcpControlClient",
    "RawResponse",
    "cloud_error_from_http",
    "set_verbose",
]
