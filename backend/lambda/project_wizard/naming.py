"""naming.py — Deterministic, length-bounded role binding names.

Nobl9 object names must be RFC-1123 labels of at most 63 characters. A
binding name is ``assign-<project20>-<user20>-g<group>-<unix>``: the fixed
overhead plus a 10-digit timestamp leaves room for 20 characters from each
of the project and the user.
"""
from __future__ import annotations

import re
import time

__all__ = [
    "MAX_NAME_LENGTH",
    "_role_binding_name",
    "_sanitize_name",
    "_truncate",
    "_unix_now",
]

MAX_NAME_LENGTH = 63
_COMPONENT_LENGTH = 20
_INVALID_RUN = re.compile(r"[^a-z0-9-]+")


def _sanitize_name(name: str) -> str:
    """Lowercase, collapse disallowed runs to '-', strip edge hyphens."""
    return _INVALID_RUN.sub("-", name.lower()).strip("-")


def _truncate(value: str, max_len: int) -> str:
    if max_len <= 0:
        return ""
    return value[:max_len]


def _unix_now() -> int:
    return int(time.time())


def _role_binding_name(project_id: str, identifier: str, group_index: int, timestamp: int) -> str:
    project = _truncate(_sanitize_name(project_id), _COMPONENT_LENGTH)
    user = _truncate(_sanitize_name(identifier), _COMPONENT_LENGTH)
    suffix = f"-g{group_index}-{timestamp}"

    # Only group indexes >= 100 or far-future timestamps push past the limit;
    # give the excess back from the user part first, then the project part.
    overflow = len("assign-") + len(project) + 1 + len(user) + len(suffix) - MAX_NAME_LENGTH
    if overflow > 0:
        cut = min(overflow, len(user))
        user = _truncate(user, len(user) - cut)
        overflow -= cut
    if overflow > 0:
        project = _truncate(project, len(project) - overflow)
    return f"assign-{project}-{user}{suffix}"
