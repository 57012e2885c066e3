"""project_wizard/lambda_function.py

Creates a Nobl9 project and binds users to project roles in one request.

Routes (API Gateway proxy, v1 or v2 events):
    GET     /health                 Liveness + version
    POST    /api/create-project     Create project and role bindings
    OPTIONS *                       CORS preflight

Request body for create:
    {"appID": "my-project", "description": "...",
     "userGroups": [{"userIds": "a@example.com, user-id", "role": "project-owner"}]}

Environment variables: see config.py.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict

from config import _get_config, logger
from http_utils import _cors_headers, _message, _outcome_response, _path_method, _raw_body, _response
from service import handle_create

HEALTH_PATH = "/health"
CREATE_PROJECT_PATH = "/api/create-project"


def _now_rfc3339() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _handle_health(method: str) -> Dict[str, Any]:
    config = _get_config()
    if method != "GET":
        return _message(405, False, "Method not allowed", config.cors_origin)
    return _response(
        200,
        {
            "status": "healthy",
            "timestamp": _now_rfc3339(),
            "version": config.app_version,
            "environment": config.environment,
        },
        config.cors_origin,
    )


def _handle_create_project(method: str, event: Dict[str, Any]) -> Dict[str, Any]:
    config = _get_config()
    if method != "POST":
        return _message(405, False, "Method not allowed", config.cors_origin)

    outcome = handle_create(_raw_body(event))
    if outcome.success:
        logger.info("SUCCESS: %s", outcome.message)
    else:
        logger.info("ERROR: %s", outcome.message)
    return _outcome_response(outcome, config.cors_origin)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    method, path = _path_method(event or {})
    logger.info("Received %s request to %s", method, path)

    try:
        origin = _get_config().cors_origin
        if method == "OPTIONS":
            return {"statusCode": 200, "headers": _cors_headers(origin), "body": ""}
        if path == HEALTH_PATH:
            return _handle_health(method)
        if path == CREATE_PROJECT_PATH:
            return _handle_create_project(method, event)
    except Exception:
        logger.exception("Unhandled error for %s %s", method, path)
        return _message(500, False, "Internal server error")

    logger.info("404 Not Found: %s", path)
    return _message(404, False, "Not found", origin)
