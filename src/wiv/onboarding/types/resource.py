"""Resource hierarchy nodes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResourceKind(str, Enum):
    """Kinds of nodes in the organization -> folder -> project tree."""

    ORGANIZATION = "organization"
    FOLDER = "folder"
    PROJECT = "project"

    @property
    def collection(self) -> str:
        return f"{self.value}s"


@dataclass(frozen=True)
class ResourceNode:
    """A node of the resource hierarchy.

    Attributes
    ----------
    id : str
        Bare identifier (numeric for organizations and folders, the project ID
        for projects).
    kind : ResourceKind
        What kind of node this is.
    parent_id : str, optional
        Resource name of the parent (``"organizations/123"``), ``None`` at the root.
    """

    id: str
    kind: ResourceKind
    parent_id: Optional[str] = None

    @property
    def resource_name(self) -> str:
        """Fully qualified resource name (``organizations/{id}``, ``folders/{id}``, ``projects/{id}``)."""
        return f"{self.kind.collection}/{self.id}"

    @classmethod
    def organization(cls, org_id: str) -> "ResourceNode":
        return cls(id=_strip_collection(org_id, "organizations/"), kind=ResourceKind.ORGANIZATION)

    @classmethod
    def folder(cls, folder_id: str, parent_id: Optional[str] = None) -> "ResourceNode":
        return cls(id=_strip_collection(folder_id, "folders/"), kind=ResourceKind.FOLDER, parent_id=parent_id)

    @classmethod
    def project(cls, project_id: str, parent_id: Optional[str] = None) -> "ResourceNode":
        """Wrap a single project, e.g. as the synthetic root of a standalone run."""
        return cls(id=project_id, kind=ResourceKind.PROJECT, parent_id=parent_id)


def _strip_collection(value: str, prefix: str) -> str:
    return value[len(prefix):] if value.startswith(prefix) else value


__all__ = ["ResourceKind", "ResourceNode"]
