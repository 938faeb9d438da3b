"""Project targets and project ID validation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .exceptions import ValidationError

_PROJECT_ID_RE = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")


@dataclass(frozen=True)
class ProjectTarget:
    """A project selected for provisioning.

    Equality and hashing only consider ``project_id`` so that a project surfaced
    through two listing paths collapses to one entry in a set.

    Attributes
    ----------
    project_id : str
        The project ID (immutable once discovered).
    billing_enabled : bool
        Whether a billing account was linked when last queried.
    """

    project_id: str
    billing_enabled: bool = field(default=False, compare=False)

    @property
    def resource_name(self) -> str:
        return f"projects/{self.project_id}"


def validate_project_id(project_id: str) -> str:
    """Validate a GCP project ID and return it unchanged.

    Project IDs must be 6-30 characters, start with a lowercase letter, contain
    only lowercase letters, digits and hyphens, and must not end with a hyphen.

    Raises
    ------
    ValidationError
        If ``project_id`` does not satisfy the constraints.
    """
    if not isinstance(project_id, str) or not _PROJECT_ID_RE.match(project_id):
        raise ValidationError(
            f"Invalid project ID '{project_id}'. Project IDs must be 6-30 characters, start with a "
            "lowercase letter, and contain only lowercase letters, numbers, and hyphens. "
            "Project ID cannot start or end with a hyphen."
        )
    return project_id


def is_valid_project_id(project_id: str) -> bool:
    try:
        validate_project_id(project_id)
    except ValidationError:
        return False
    return True


__all__ = ["ProjectTarget", "is_valid_project_id", "validate_project_id"]
