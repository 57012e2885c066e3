"""models.py — Request-scoped value objects for project creation.

Nothing here outlives a single invocation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "BAD_REQUEST",
    "CONFLICT",
    "INTERNAL_ERROR",
    "SUCCESS",
    "VALID_ROLES",
    "CreateRequest",
    "Outcome",
    "Project",
    "ResolvedAssignment",
    "UserGroup",
]

# Ordered so error messages list roles deterministically.
VALID_ROLES: Tuple[str, ...] = ("project-owner", "project-viewer", "project-editor")

SUCCESS = "Success"
BAD_REQUEST = "BadRequest"
CONFLICT = "Conflict"
INTERNAL_ERROR = "InternalError"

_API_VERSION = "n9/v1alpha"


@dataclass(frozen=True)
class UserGroup:
    raw_identifiers: str
    role: str


@dataclass(frozen=True)
class CreateRequest:
    project_id: str
    description: str = ""
    groups: Tuple[UserGroup, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Project:
    name: str
    description: str

    def to_manifest(self) -> Dict[str, Any]:
        return {
            "apiVersion": _API_VERSION,
            "kind": "Project",
            "metadata": {"name": self.name},
            "spec": {"description": self.description},
        }


@dataclass(frozen=True)
class ResolvedAssignment:
    generated_name: str
    user_handle: str
    role: str
    project_id: str
    group_index: int

    def to_manifest(self) -> Dict[str, Any]:
        return {
            "apiVersion": _API_VERSION,
            "kind": "RoleBinding",
            "metadata": {"name": self.generated_name},
            "spec": {
                "user": self.user_handle,
                "roleRef": self.role,
                "projectRef": self.project_id,
            },
        }


@dataclass(frozen=True)
class Outcome:
    """Result of one create request. ``status`` is one of the category constants."""

    status: str
    message: str
    assignment_count: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == SUCCESS

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.assignment_count is not None:
            body["assignmentCount"] = self.assignment_count
        return body


def _batch_manifests(project: Project, assignments: List[ResolvedAssignment]) -> List[Dict[str, Any]]:
    """Project first, then every role binding in resolution order."""
    return [project.to_manifest()] + [a.to_manifest() for a in assignments]
