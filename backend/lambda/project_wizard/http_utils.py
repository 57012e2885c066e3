"""http_utils.py — API Gateway request/response helpers with CORS."""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict, Optional, Tuple

from models import BAD_REQUEST, CONFLICT, INTERNAL_ERROR, SUCCESS, Outcome

__all__ = [
    "STATUS_CODES",
    "_cors_headers",
    "_message",
    "_outcome_response",
    "_path_method",
    "_raw_body",
    "_response",
]

STATUS_CODES = {
    SUCCESS: 200,
    BAD_REQUEST: 400,
    CONFLICT: 409,
    INTERNAL_ERROR: 500,
}

_ALLOW_HEADERS = "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token"


def _cors_headers(origin: str = "*") -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": _ALLOW_HEADERS,
    }


def _response(status_code: int, body: Any, origin: str = "*") -> Dict[str, Any]:
    """Build a standard API Gateway response with CORS headers."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **_cors_headers(origin)},
        "body": json.dumps(body, default=str),
    }


def _message(status_code: int, success: bool, message: str, origin: str = "*") -> Dict[str, Any]:
    return _response(status_code, {"success": success, "message": message}, origin)


def _outcome_response(outcome: Outcome, origin: str = "*") -> Dict[str, Any]:
    return _response(STATUS_CODES.get(outcome.status, 500), outcome.to_body(), origin)


def _raw_body(event: Dict[str, Any]) -> Optional[str]:
    """Return the request body as text, decoding base64 bodies. None when absent."""
    raw = event.get("body")
    if raw is None:
        return None
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return raw
    return raw


def _path_method(event: Dict[str, Any]) -> Tuple[str, str]:
    """Extract HTTP method and path from an API Gateway v1 or v2 event."""
    rc = event.get("requestContext") or {}
    http = rc.get("http") or {}
    method = (http.get("method") or event.get("httpMethod") or "GET").upper()
    path = http.get("path") or event.get("rawPath") or event.get("path") or "/"
    return method, path
