"""errors.py — Exceptions raised by the wizard's downstream collaborators.

Client-caused problems (bad input, unknown users) never raise: they are
reported as ``Outcome`` values. These exceptions cover infrastructure and
API failures only.
"""
from __future__ import annotations

from typing import Optional


class WizardError(Exception):
    """Base class for project wizard failures."""


class ConfigError(WizardError):
    """Raised when the Lambda environment is missing or has invalid settings."""


class CredentialsError(WizardError):
    """Raised when Nobl9 credentials cannot be read from SSM or decrypted."""


class Nobl9ApiError(WizardError):
    """Raised when a Nobl9 API call fails.

    ``status_code`` is the HTTP status when the server answered, otherwise None.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DeadlineExceeded(Nobl9ApiError):
    """Raised when the request's downstream time budget is used up."""


class Nobl9AuthError(Nobl9ApiError):
    """Raised when Nobl9 rejects the wizard's own credentials or token."""
