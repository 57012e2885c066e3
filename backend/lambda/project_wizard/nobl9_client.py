"""nobl9_client.py — Minimal Nobl9 API client for user lookup and apply.

One ``Nobl9Client`` is built per request from freshly fetched credentials;
nothing is shared between invocations. Every HTTP call made through a
client draws on the same ``Deadline``, so the whole downstream interaction
of a request is bounded by ``WizardConfig.timeout_seconds``. The deadline
is checked before each call and again once its body is read; a socket
timeout only bounds a single read, so one slow transfer can overrun the
budget before that second check fails it.

Authentication problems (token endpoint errors, an unknown organization,
401/403 answers) raise ``Nobl9AuthError`` so callers can tell them apart
from per-user lookup failures.

Endpoints used:
    POST {okta}/oauth2/{authServer}/v1/token   client-credentials access token
    GET  {api}/usrmgmt/v2/users?phrase=...      user search by email
    PUT  {api}/apply                            batch create/update of objects
"""
from __future__ import annotations

import base64
import http.client
import json
import socket
import ssl
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional

import certifi
import jwt

from config import WizardConfig, logger
from credentials import Nobl9Credentials
from errors import DeadlineExceeded, Nobl9ApiError, Nobl9AuthError

__all__ = [
    "DEFAULT_API_BASE_URL",
    "Deadline",
    "Nobl9Client",
    "_ssl_context",
]

DEFAULT_API_BASE_URL = "https://app.nobl9.com/api"
_USER_AGENT = "nobl9-project-wizard"
_AUTH_STATUS_CODES = (401, 403)


class Deadline:
    """A fixed time budget measured on the monotonic clock."""

    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        left = self._expires_at - self._clock()
        if left <= 0:
            raise DeadlineExceeded("deadline exceeded while calling Nobl9")
        return left


def _ssl_context(skip_verify: bool) -> ssl.SSLContext:
    if skip_verify:
        logger.warning("WARNING: SSL certificate verification is DISABLED (NOBL9_SKIP_TLS_VERIFY=true)")
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context
    return ssl.create_default_context(cafile=certifi.where())


class Nobl9Client:
    """Implements both the identity lookup and the apply collaborator."""

    def __init__(
        self,
        config: WizardConfig,
        credentials: Nobl9Credentials,
        deadline: Optional[Deadline] = None,
    ):
        self._config = config
        self._credentials = credentials
        self._deadline = deadline or Deadline(config.timeout_seconds)
        self._context = _ssl_context(config.skip_tls_verify)
        self._access_token: Optional[str] = None
        self._organization = config.organization
        self._api_base_url = config.api_base_url

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(self, req: urllib.request.Request) -> Any:
        timeout = self._deadline.remaining()
        try:
            with urllib.request.urlopen(req, timeout=timeout, context=self._context) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            raise Nobl9ApiError(
                f"{req.get_method()} {req.full_url} failed with HTTP {exc.code}: {body or exc.reason}",
                status_code=exc.code,
                body=body,
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise DeadlineExceeded(f"{req.get_method()} {req.full_url} timed out") from exc
        except urllib.error.URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                raise DeadlineExceeded(f"{req.get_method()} {req.full_url} timed out") from exc
            raise Nobl9ApiError(f"{req.get_method()} {req.full_url} failed: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            # Resets, TLS errors and truncated bodies surface unwrapped from urlopen/read.
            raise Nobl9ApiError(f"{req.get_method()} {req.full_url} failed: {exc!r}") from exc
        # The socket timeout bounds each read, not the whole transfer.
        self._deadline.remaining()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise Nobl9ApiError(f"{req.get_method()} {req.full_url} returned invalid JSON") from exc

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _token_url(self) -> str:
        return f"{self._config.okta_org_url}/oauth2/{self._config.okta_auth_server}/v1/token"

    def _fetch_access_token(self) -> str:
        pair = f"{self._credentials.client_id}:{self._credentials.client_secret}".encode("utf-8")
        req = urllib.request.Request(
            url=self._token_url(),
            method="POST",
            data=urllib.parse.urlencode({"grant_type": "client_credentials", "scope": "m2m"}).encode("utf-8"),
            headers={
                "Authorization": "Basic " + base64.b64encode(pair).decode("ascii"),
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
                "User-Agent": _USER_AGENT,
            },
        )
        payload = self._send(req) or {}
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise Nobl9ApiError("token endpoint response did not include an access_token")
        return token

    def _apply_token_claims(self, token: str) -> None:
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise Nobl9ApiError(f"could not decode Nobl9 access token: {exc}") from exc
        profile = claims.get("m2mProfile") or {}
        if not self._organization:
            self._organization = str(profile.get("organization") or "")
        if not self._api_base_url:
            environment = str(profile.get("environment") or "").strip()
            self._api_base_url = f"https://{environment}/api" if environment else DEFAULT_API_BASE_URL
        if not self._organization:
            raise Nobl9ApiError("Nobl9 organization is unknown: set NOBL9_ORG or use an m2m token")

    def _authenticate(self) -> str:
        if self._access_token is None:
            try:
                token = self._fetch_access_token()
                self._apply_token_claims(token)
            except DeadlineExceeded:
                raise
            except Nobl9ApiError as exc:
                raise Nobl9AuthError(
                    f"Nobl9 authentication failed: {exc}", status_code=exc.status_code, body=exc.body
                ) from exc
            self._access_token = token
        return self._access_token

    def _api_request(self, method: str, path: str, body: Any = None, query: Optional[Dict[str, str]] = None) -> Any:
        token = self._authenticate()
        url = f"{self._api_base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Organization": self._organization,
            "Project": "*",
            "Accept": "application/json",
            "User-Agent": _USER_AGENT,
        }
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url=url, method=method, data=data, headers=headers)
        try:
            return self._send(req)
        except Nobl9ApiError as exc:
            if exc.status_code in _AUTH_STATUS_CODES:
                raise Nobl9AuthError(str(exc), status_code=exc.status_code, body=exc.body) from exc
            raise

    # ------------------------------------------------------------------
    # Collaborator operations
    # ------------------------------------------------------------------

    def lookup(self, email: str) -> Optional[str]:
        """Return the Nobl9 user ID for an email, or None when no user matches."""
        payload = self._api_request("GET", "usrmgmt/v2/users", query={"phrase": email})
        if isinstance(payload, dict):
            users = payload.get("users") or []
        else:
            users = payload or []
        wanted = email.lower()
        for user in users:
            if isinstance(user, dict) and str(user.get("email") or "").lower() == wanted:
                return user.get("userId") or None
        return None

    def apply(self, objects: List[Dict[str, Any]]) -> None:
        """PUT every object in one request; Nobl9 accepts or rejects the batch as a whole."""
        self._api_request("PUT", "apply", body=objects)
