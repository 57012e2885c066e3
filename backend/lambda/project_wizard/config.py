"""config.py — Runtime configuration and logging for the project wizard Lambda.

All environment variables are read here, once per container, into a frozen
``WizardConfig``. Handlers and the reconciliation pipeline receive the
config object instead of reading ``os.environ`` themselves.

Environment variables:
    NOBL9_CLIENT_ID_PARAM_NAME      SSM parameter holding the Nobl9 client ID
    NOBL9_CLIENT_SECRET_PARAM_NAME  SSM parameter holding the Nobl9 client secret
    NOBL9_SKIP_TLS_VERIFY           "true" disables certificate verification
    NOBL9_URL                       API base URL override (default: from token)
    NOBL9_OKTA_ORG_URL              default: https://accounts.nobl9.com
    NOBL9_OKTA_AUTH_SERVER          default: auseg9kiegWKEtJZC416
    NOBL9_ORG                       organization override (default: from token)
    NOBL9_TIMEOUT_SECONDS           default: 60
    SSM_REGION / AWS_REGION         default: us-east-1
    ENVIRONMENT                     reported by /health
    APP_VERSION                     default: 1.0.0
    CORS_ORIGIN                     default: *
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from errors import ConfigError

__all__ = [
    "WizardConfig",
    "_get_config",
    "_reset_config",
    "logger",
]

logger = logging.getLogger()
logger.setLevel(logging.INFO)

_DEFAULT_OKTA_ORG_URL = "https://accounts.nobl9.com"
_DEFAULT_OKTA_AUTH_SERVER = "auseg9kiegWKEtJZC416"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


@dataclass(frozen=True)
class WizardConfig:
    client_id_param_name: str = ""
    client_secret_param_name: str = ""
    skip_tls_verify: bool = False
    api_base_url: str = ""
    okta_org_url: str = _DEFAULT_OKTA_ORG_URL
    okta_auth_server: str = _DEFAULT_OKTA_AUTH_SERVER
    organization: str = ""
    timeout_seconds: float = 60.0
    aws_region: str = "us-east-1"
    environment: str = ""
    app_version: str = "1.0.0"
    cors_origin: str = "*"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WizardConfig":
        env = os.environ if environ is None else environ
        raw_timeout = env.get("NOBL9_TIMEOUT_SECONDS", "60")
        try:
            timeout_seconds = float(raw_timeout)
        except ValueError as exc:
            raise ConfigError(f"NOBL9_TIMEOUT_SECONDS must be a number, got '{raw_timeout}'") from exc
        return cls(
            client_id_param_name=env.get("NOBL9_CLIENT_ID_PARAM_NAME", "").strip(),
            client_secret_param_name=env.get("NOBL9_CLIENT_SECRET_PARAM_NAME", "").strip(),
            skip_tls_verify=_env_flag(env.get("NOBL9_SKIP_TLS_VERIFY")),
            api_base_url=env.get("NOBL9_URL", "").strip().rstrip("/"),
            okta_org_url=(env.get("NOBL9_OKTA_ORG_URL") or _DEFAULT_OKTA_ORG_URL).rstrip("/"),
            okta_auth_server=env.get("NOBL9_OKTA_AUTH_SERVER") or _DEFAULT_OKTA_AUTH_SERVER,
            organization=env.get("NOBL9_ORG", "").strip(),
            timeout_seconds=timeout_seconds,
            aws_region=env.get("SSM_REGION") or env.get("AWS_REGION") or "us-east-1",
            environment=env.get("ENVIRONMENT", ""),
            app_version=env.get("APP_VERSION") or "1.0.0",
            cors_origin=env.get("CORS_ORIGIN") or "*",
        )

    def validate(self) -> "WizardConfig":
        """Check the settings needed to talk to Nobl9. Returns self."""
        if not self.client_id_param_name or not self.client_secret_param_name:
            raise ConfigError(
                "missing parameter names: NOBL9_CLIENT_ID_PARAM_NAME and "
                "NOBL9_CLIENT_SECRET_PARAM_NAME must be set"
            )
        if self.timeout_seconds <= 0:
            raise ConfigError("NOBL9_TIMEOUT_SECONDS must be greater than zero")
        return self


# ---------------------------------------------------------------------------
# Container-level singleton
# ---------------------------------------------------------------------------

_config: Optional[WizardConfig] = None


def _get_config() -> WizardConfig:
    """Get (or build) the config for this container. Not validated here."""
    global _config
    if _config is None:
        _config = WizardConfig.from_env()
    return _config


def _reset_config() -> None:
    global _config
    _config = None
