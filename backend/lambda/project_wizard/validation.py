"""validation.py — Input validation for create-project requests.

Pure functions of the request; no downstream calls. Checks run in a fixed
order and stop at the first failure:

    1. project name syntax
    2. at least one user group
    3. per group: role is one of VALID_ROLES
    4. per group: each identifier is a well-formed email (when it looks like
       one) or a plausible user ID
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from config import logger
from models import VALID_ROLES, CreateRequest, UserGroup

__all__ = [
    "_looks_like_email",
    "_parse_create_request",
    "_split_identifiers",
    "_valid_roles_text",
    "_validate_email",
    "_validate_project_name",
    "validate_create_request",
]

_PROJECT_NAME_PATTERN = re.compile(r"[a-z0-9-]+")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_EMAIL_DOMAIN_HINTS = (".com", ".org", ".net", ".edu", ".gov", ".co.", ".io", ".dev")
_PROJECT_NAME_MIN = 3
_PROJECT_NAME_MAX = 63
_USER_ID_MIN = 2


# ---------------------------------------------------------------------------
# Payload parsing (MalformedRequest)
# ---------------------------------------------------------------------------


def _string_field(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{where}{key} must be a string")
    return value


def _parse_create_request(payload: Any) -> Tuple[Optional[CreateRequest], Optional[str]]:
    """Map a decoded JSON body onto CreateRequest.

    Returns (request, None) or (None, detail) when the payload has the
    wrong shape. Semantic checks belong to validate_create_request.
    """
    if not isinstance(payload, dict):
        return None, "expected a JSON object"
    try:
        project_id = _string_field(payload, "appID", "")
        description = _string_field(payload, "description", "")
        raw_groups = payload.get("userGroups")
        if raw_groups is None:
            raw_groups = []
        if not isinstance(raw_groups, list):
            raise ValueError("userGroups must be a list")
        groups: List[UserGroup] = []
        for index, raw in enumerate(raw_groups):
            if not isinstance(raw, dict):
                raise ValueError(f"userGroups[{index}] must be an object")
            where = f"userGroups[{index}]."
            groups.append(
                UserGroup(
                    raw_identifiers=_string_field(raw, "userIds", where),
                    role=_string_field(raw, "role", where),
                )
            )
    except ValueError as exc:
        return None, str(exc)
    return CreateRequest(project_id=project_id, description=description, groups=tuple(groups)), None


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def _validate_project_name(name: str) -> Optional[str]:
    """Return an error message, or None when the name is acceptable."""
    if not name:
        return "project name cannot be empty"
    if len(name) < _PROJECT_NAME_MIN:
        return "project name must be at least 3 characters long"
    if len(name) > _PROJECT_NAME_MAX:
        return "project name must be less than 63 characters"
    if not _PROJECT_NAME_PATTERN.fullmatch(name):
        return "project name can only contain lowercase letters, numbers, and hyphens"
    if name.startswith("-") or name.endswith("-"):
        return "project name cannot start or end with a hyphen"
    return None


def _looks_like_email(value: str) -> bool:
    """True when the caller most likely meant an email address, even a broken one."""
    if "@" in value:
        return True
    return any(hint in value for hint in _EMAIL_DOMAIN_HINTS)


def _validate_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.fullmatch(value))


def _split_identifiers(raw: str) -> List[str]:
    """Comma-split, trim, and drop empty entries. Order is preserved."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _valid_roles_text() -> str:
    return ", ".join(VALID_ROLES)


def _validate_group(index: int, group: UserGroup) -> Optional[str]:
    if group.role not in VALID_ROLES:
        logger.info("Invalid role '%s' in group %d", group.role, index)
        return f"Invalid role '{group.role}' in group {index}. Must be one of: {_valid_roles_text()}"

    for identifier in _split_identifiers(group.raw_identifiers):
        if _looks_like_email(identifier):
            if not _validate_email(identifier):
                logger.info("Invalid email format: '%s' in group %d", identifier, index)
                return (
                    f"Invalid email format: '{identifier}' in group {index}. "
                    "Email addresses must contain @ symbol and be properly formatted "
                    "(e.g., user@domain.com)."
                )
        elif len(identifier) < _USER_ID_MIN:
            logger.info("Invalid user ID: '%s' in group %d (too short)", identifier, index)
            return f"Invalid user ID: '{identifier}' in group {index} (too short)"
    return None


def validate_create_request(request: CreateRequest) -> Tuple[Optional[CreateRequest], Optional[str]]:
    """Validate a parsed request. Returns (request, None) or (None, message)."""
    name_error = _validate_project_name(request.project_id)
    if name_error:
        logger.info("Invalid project name '%s': %s", request.project_id, name_error)
        return None, name_error

    if not request.groups:
        logger.info("No user groups provided for project '%s'", request.project_id)
        return None, "At least one user group is required"

    for index, group in enumerate(request.groups):
        group_error = _validate_group(index, group)
        if group_error:
            return None, group_error

    logger.info("Request validation passed for project '%s'", request.project_id)
    return request, None
