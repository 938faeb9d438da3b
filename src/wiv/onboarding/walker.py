"""Resource hierarchy discovery."""

from __future__ import annotations

from rich.console import Console

from wiv.onboarding.cloud import CloudControlClient
from wiv.onboarding.types import (
    CloudCallError,
    DiscoveryError,
    EmptyResourceSetError,
    ProjectTarget,
    ResourceKind,
    ResourceNode,
)

console = Console()


class ResourceTreeWalker:
    """Enumerate every project reachable under a resource hierarchy root.

    Folders are descended with an explicit stack, so arbitrarily deep
    hierarchies do not grow the call stack.

    Parameters
    ----------
    client : CloudControlClient
        Used for ``list_projects``, ``list_folders`` and ``check_billing_linked``.
    resolve_billing : bool, default False
        Query the billing status of each discovered project.
    """

    def __init__(self, client: CloudControlClient, *, resolve_billing: bool = False):
        self.client = client
        self.resolve_billing = resolve_billing

    def discover_projects(self, root: ResourceNode) -> set[ProjectTarget]:
        """Return the deduplicated set of projects under ``root``.

        A listing failure below the root is reported and that subtree is treated
        as empty. A failure listing the root itself raises `DiscoveryError`, and
        an empty result raises `EmptyResourceSetError`.
        """
        if root.kind is ResourceKind.PROJECT:
            project_ids = [root.id]
        elif root.kind is ResourceKind.ORGANIZATION:
            project_ids = self._walk_organization(root)
        else:
            project_ids = self._walk_subtree(root)

        if not project_ids:
            raise EmptyResourceSetError(
                f"No projects found under {root.resource_name}. This could be due to insufficient "
                "permissions to list projects/folders, or no projects exist there."
            )

        return {self._target(project_id) for project_id in dict.fromkeys(project_ids)}

    def _walk_organization(self, root: ResourceNode) -> list[str]:
        try:
            project_ids = self.client.list_projects(root.resource_name)
            folder_ids = self.client.list_folders(root.resource_name)
        except CloudCallError as e:
            raise DiscoveryError(f"Could not list resources under {root.resource_name}: {e.message}") from e

        if project_ids:
            console.print(f"  [green]-[/green] Found {len(project_ids)} project(s) directly under the organization")

        for folder_id in folder_ids:
            project_ids.extend(self._walk_subtree(ResourceNode.folder(folder_id, parent_id=root.resource_name)))
        return project_ids

    def _walk_subtree(self, folder: ResourceNode) -> list[str]:
        project_ids: list[str] = []
        stack = [folder]

        while stack:
            node = stack.pop()
            try:
                project_ids.extend(self.client.list_projects(node.resource_name))
                children = self.client.list_folders(node.resource_name)
            except CloudCallError as e:
                console.print(f"  [yellow]Warning:[/yellow] skipping {node.resource_name}: {e.message}")
                continue
            # Reversed so children pop in listing order
            stack.extend(
                ResourceNode.folder(child, parent_id=node.resource_name) for child in reversed(children)
            )

        return project_ids

    def _target(self, project_id: str) -> ProjectTarget:
        if not self.resolve_billing:
            return ProjectTarget(project_id)
        try:
            billing_enabled = self.client.check_billing_linked(project_id)
        except CloudCallError:
            billing_enabled = False
        return ProjectTarget(project_id, billing_enabled=billing_enabled)


__all__ = ["ResourceTreeWalker"]
