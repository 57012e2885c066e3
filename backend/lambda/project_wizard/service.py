"""service.py — The create-project pipeline behind POST /api/create-project.

    raw body -> parse -> validate -> build Nobl9 client -> reconcile -> Outcome

``handle_create`` never raises. Collaborators are passed in, so tests and
other callers can swap the Nobl9 client for fakes.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Optional

from config import WizardConfig, _get_config, logger
from credentials import _get_nobl9_credentials
from errors import ConfigError, CredentialsError, Nobl9ApiError
from models import BAD_REQUEST, INTERNAL_ERROR, Outcome
from naming import _unix_now
from nobl9_client import Deadline, Nobl9Client
from reconciler import reconcile
from validation import _parse_create_request, validate_create_request

__all__ = [
    "_default_client_factory",
    "handle_create",
]


def _default_client_factory(config: Optional[WizardConfig] = None) -> Nobl9Client:
    """Fetch credentials and build a client whose deadline starts now."""
    config = config or _get_config()
    credentials = _get_nobl9_credentials(config)
    return Nobl9Client(config, credentials, Deadline(config.timeout_seconds))


def _decode(raw_body: Optional[str]) -> Any:
    if raw_body is None or not raw_body.strip():
        raise ValueError("empty body")
    return json.loads(raw_body)


def handle_create(
    raw_body: Optional[str],
    *,
    client_factory: Callable[[], Any] = _default_client_factory,
    clock: Callable[[], int] = _unix_now,
) -> Outcome:
    try:
        payload = _decode(raw_body)
    except ValueError as exc:
        logger.info("Error parsing request body: %s", exc)
        return Outcome(BAD_REQUEST, f"Invalid request body: {exc}")

    request, parse_error = _parse_create_request(payload)
    if parse_error:
        logger.info("Error parsing request body: %s", parse_error)
        return Outcome(BAD_REQUEST, f"Invalid request body: {parse_error}")

    request, validation_error = validate_create_request(request)
    if validation_error:
        return Outcome(BAD_REQUEST, validation_error)

    try:
        client = client_factory()
    except (ConfigError, CredentialsError) as exc:
        logger.error("Failed to retrieve Nobl9 credentials: %s", exc)
        return Outcome(INTERNAL_ERROR, f"Failed to retrieve Nobl9 credentials: {exc}")
    except Exception as exc:
        logger.exception("Failed to initialize Nobl9 client")
        return Outcome(INTERNAL_ERROR, f"Failed to initialize Nobl9 client: {exc}")

    try:
        return reconcile(request, client, client, clock)
    except Nobl9ApiError as exc:
        logger.error("Failed to create project and assign roles: %s", exc)
        return Outcome(INTERNAL_ERROR, f"Failed to create project and assign roles: {exc}")
    except Exception as exc:
        logger.exception("Unexpected failure while reconciling project '%s'", request.project_id)
        return Outcome(INTERNAL_ERROR, f"Failed to create project and assign roles: {exc}")
