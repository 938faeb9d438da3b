"""Service identity provisioning and IAM role binding."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Sequence

import backoff
from rich.console import Console

from wiv.onboarding.cloud import CloudControlClient
from wiv.onboarding.types import (
    BindingError,
    BindingScope,
    CloudCallError,
    IdentityProvisionError,
    OnboardingConfig,
)
from wiv.onboarding.utils import write_key_file

console = Console()


class IdentityProvisioner:
    """Create (or reuse) the service account in the host project and grant it roles."""

    def __init__(self, client: CloudControlClient, config: OnboardingConfig):
        self.client = client
        self.config = config
        self._lock = threading.Lock()
        self._email: Optional[str] = None
        self._bound: set[tuple[str, str]] = set()

    def ensure_identity(self) -> str:
        """Return the service account email, creating the account if needed.

        Safe to call from every project of a run; the account is looked up once
        and reused afterwards.

        Raises
        ------
        IdentityProvisionError
            If the account can neither be found nor created.
        """
        with self._lock:
            if self._email is None:
                self._email = self._provision()
            return self._email

    def _provision(self) -> str:
        cfg = self.config
        email = cfg.service_account_email

        try:
            existing = self.client.describe_service_identity(email, cfg.host_project_id)
        except CloudCallError as e:
            if not cfg.dry_run:
                raise IdentityProvisionError(f"Could not look up service account {email}: {e.message}") from e
            # The host project may not exist yet during a dry run
            existing = None

        if existing:
            console.print(f"[green]Service account {email} already exists. Skipping creation.[/green]")
            return existing.get("email", email)

        if cfg.dry_run:
            console.print(f"[dim][DRY RUN] Would create service account: {cfg.service_account_name}[/dim]")
            return email

        console.print(f"[cyan]Creating service account {cfg.service_account_name} in {cfg.host_project_id}...[/cyan]")
        try:
            email = self.client.create_service_identity(
                cfg.service_account_name, cfg.service_account_display_name, cfg.host_project_id
            )
        except CloudCallError as e:
            raise IdentityProvisionError(
                f"Failed to create service account {cfg.service_account_name} in project "
                f"{cfg.host_project_id}: {e.message}"
            ) from e

        self.wait_until_visible(email)
        console.print("[green]Service account created.[/green]")
        return email

    def wait_until_visible(self, email: str) -> bool:
        """Poll until the new account can be described; give up quietly after the configured attempts."""
        cfg = self.config

        def _waiting(details):
            console.print("[dim]Waiting for service account to be available...[/dim]")

        @backoff.on_predicate(
            backoff.constant,
            interval=cfg.identity_wait_interval,
            max_tries=cfg.identity_wait_attempts,
            jitter=None,
            on_backoff=_waiting,
        )
        def _visible() -> bool:
            try:
                return self.client.describe_service_identity(email, cfg.host_project_id) is not None
            except CloudCallError:
                return False

        visible = _visible()
        if not visible:
            console.print(f"[yellow]Service account {email} is not visible yet; continuing anyway.[/yellow]")
        return visible

    def bind_roles(self, email: str, roles: Sequence[str], target: str, scope: BindingScope) -> list[str]:
        """Grant ``roles`` in order to ``email`` on ``target``.

        Returns the roles granted (or already granted earlier in this run).

        Raises
        ------
        BindingError
            On the first failed binding; later roles are not attempted.
        """
        member = f"serviceAccount:{email}"
        bound: list[str] = []

        for index, role in enumerate(roles):
            key = (f"{scope.value}/{target}", role)
            with self._lock:
                done = key in self._bound
            if done:
                bound.append(role)
                continue

            if self.config.dry_run:
                console.print(f"  [dim][DRY RUN] Would grant {role} on {scope.value} {target}[/dim]")
                bound.append(role)
                continue

            try:
                self.client.add_iam_binding(target, member, role, scope)
            except CloudCallError as e:
                raise BindingError(target, role, index, e.message) from e

            with self._lock:
                self._bound.add(key)
            bound.append(role)

        return bound

    def export_key(self, email: str, path: Optional[Path] = None) -> Optional[Path]:
        """Create a key for ``email`` and write it to ``path`` unless a key file is already there."""
        cfg = self.config
        key_file = Path(path or cfg.key_file)

        if key_file.exists():
            console.print(
                f"[yellow]Key file already exists at {key_file}. "
                "Delete it manually if you want to regenerate.[/yellow]"
            )
            return key_file

        if cfg.dry_run:
            console.print(f"[dim][DRY RUN] Would download service account key to: {key_file}[/dim]")
            return None

        try:
            key_material = self.client.create_key(email, cfg.host_project_id)
        except CloudCallError as e:
            raise IdentityProvisionError(f"Failed to generate service account key for {email}: {e.message}") from e

        write_key_file(key_file, key_material)
        console.print(f"[green]Service account key saved to:[/green] {key_file}")
        console.print("[bold yellow]WARNING:[/bold yellow] Keep this key file secure!")
        return key_file


__all__ = ["IdentityProvisioner"]
