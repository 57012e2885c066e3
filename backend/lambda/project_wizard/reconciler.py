"""reconciler.py — Resolve identifiers, name role bindings, apply one batch.

Every identifier in every group is resolved before anything is written.
Lookup failures are collected rather than raised, so the caller sees the
full list of bad users in one response; if there is at least one, nothing
is applied. Deadline, authentication and transport failures are not about
any one user and propagate to the caller.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Protocol, Sequence, Tuple

from config import logger
from errors import DeadlineExceeded, Nobl9ApiError, Nobl9AuthError
from models import (
    BAD_REQUEST,
    CONFLICT,
    INTERNAL_ERROR,
    SUCCESS,
    CreateRequest,
    Outcome,
    Project,
    ResolvedAssignment,
    _batch_manifests,
)
from naming import _role_binding_name
from validation import _split_identifiers

__all__ = [
    "Applier",
    "IdentityLookup",
    "_build_project",
    "_classify_apply_error",
    "_fold_resolutions",
    "_resolve_identifiers",
    "reconcile",
]

_CONFLICT_MARKERS = ("already exists", "conflict")


class IdentityLookup(Protocol):
    def lookup(self, email: str) -> Optional[str]:
        """Return the user handle for an email, None when no such user exists."""


class Applier(Protocol):
    def apply(self, objects: List[Dict[str, Any]]) -> None:
        """Submit all objects as one unit; raise on failure."""


class _Resolution(NamedTuple):
    identifier: str
    group_index: int
    role: str
    user_handle: Optional[str]
    error: Optional[str]


def _build_project(request: CreateRequest) -> Project:
    description = request.description or f"Project created via API: {request.project_id}"
    return Project(name=request.project_id, description=description)


def _resolve_one(identifier: str, group_index: int, role: str, lookup: IdentityLookup) -> _Resolution:
    if "@" not in identifier:
        logger.info("Using provided user ID: %s", identifier)
        return _Resolution(identifier, group_index, role, identifier, None)

    logger.info("Looking up user by email: %s", identifier)
    try:
        handle = lookup.lookup(identifier)
    except Nobl9ApiError as exc:
        # Only an HTTP answer about this search is a per-user failure.
        if isinstance(exc, (DeadlineExceeded, Nobl9AuthError)) or exc.status_code is None:
            raise
        message = f"Error retrieving user '{identifier}' in group {group_index}: {exc}"
        logger.warning(message)
        return _Resolution(identifier, group_index, role, None, message)

    if not handle:
        message = f"User with email '{identifier}' in group {group_index} not found in Nobl9"
        logger.warning(message)
        return _Resolution(identifier, group_index, role, None, message)

    logger.info("Found user: %s -> %s", identifier, handle)
    return _Resolution(identifier, group_index, role, handle, None)


def _resolve_identifiers(request: CreateRequest, lookup: IdentityLookup) -> Iterator[_Resolution]:
    """Yield one result per identifier, groups and identifiers in request order."""
    for group_index, group in enumerate(request.groups):
        for identifier in _split_identifiers(group.raw_identifiers):
            yield _resolve_one(identifier, group_index, group.role, lookup)


def _fold_resolutions(
    project_id: str,
    resolutions: Iterator[_Resolution],
    clock: Callable[[], int],
) -> Tuple[List[ResolvedAssignment], List[str]]:
    """Split results into named assignments and error messages, keeping order.

    Binding names must be unique in one batch, since Nobl9 applies by name
    and a later object silently replaces an earlier one. A repeat of the
    same user and role is dropped; two different users whose names collide
    after truncation are reported as an error.
    """
    assignments: List[ResolvedAssignment] = []
    errors: List[str] = []
    claimed: Dict[str, _Resolution] = {}
    for item in resolutions:
        if item.error is not None:
            errors.append(item.error)
            continue
        name = _role_binding_name(project_id, item.identifier, item.group_index, clock())
        previous = claimed.get(name)
        if previous is not None:
            if (previous.user_handle, previous.role) == (item.user_handle, item.role):
                logger.info("Skipping duplicate role binding %s for user %s", name, item.user_handle)
                continue
            message = (
                f"User '{item.identifier}' in group {item.group_index} would share role binding name "
                f"'{name}' with '{previous.identifier}' in group {previous.group_index}"
            )
            logger.warning(message)
            errors.append(message)
            continue
        claimed[name] = item
        assignments.append(
            ResolvedAssignment(
                generated_name=name,
                user_handle=item.user_handle,
                role=item.role,
                project_id=project_id,
                group_index=item.group_index,
            )
        )
        logger.info(
            "Prepared role binding %s for user %s with role %s", name, item.user_handle, item.role
        )
    return assignments, errors


def _classify_apply_error(project_id: str, exc: Exception) -> Outcome:
    status_code = getattr(exc, "status_code", None)
    text = str(exc).lower()
    if status_code == 409 or any(marker in text for marker in _CONFLICT_MARKERS):
        logger.info("Project '%s' already exists", project_id)
        return Outcome(CONFLICT, f"Project '{project_id}' already exists")
    logger.error("Failed to create project and assign roles: %s", exc)
    return Outcome(INTERNAL_ERROR, f"Failed to create project and assign roles: {exc}")


def _aggregate_errors(project_id: str, errors: Sequence[str]) -> str:
    return (
        f"Failed to create project '{project_id}' because some users could not be found:\n• "
        + "\n• ".join(errors)
    )


def reconcile(
    request: CreateRequest,
    lookup: IdentityLookup,
    applier: Applier,
    clock: Callable[[], int],
) -> Outcome:
    """Resolve users and apply the project with its role bindings as one batch.

    ``request`` must already have passed validate_create_request.
    """
    project = _build_project(request)
    logger.info("Creating project '%s' with description: %s", project.name, project.description)

    assignments, errors = _fold_resolutions(
        request.project_id, _resolve_identifiers(request, lookup), clock
    )
    if errors:
        message = _aggregate_errors(request.project_id, errors)
        logger.warning(message)
        return Outcome(BAD_REQUEST, message)

    objects = _batch_manifests(project, assignments)
    logger.info(
        "Applying %d objects to Nobl9 (1 project + %d role bindings)", len(objects), len(assignments)
    )
    try:
        applier.apply(objects)
    except Nobl9ApiError as exc:
        return _classify_apply_error(request.project_id, exc)

    logger.info(
        "Successfully created project '%s' and applied %d role bindings",
        request.project_id,
        len(assignments),
    )
    return Outcome(
        SUCCESS,
        f"Project '{request.project_id}' created successfully with {len(assignments)} user role assignments",
        assignment_count=len(assignments),
    )
