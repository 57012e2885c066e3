"""aws_clients.py — Lazy-singleton AWS service clients (SSM, KMS).

Clients are created on first use and reused across warm invocations.
"""
from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config

__all__ = [
    "_get_kms",
    "_get_ssm",
    "_reset_clients",
]

_ssm = None
_kms = None


def _get_ssm(region: Optional[str] = None):
    """Get (or create) the SSM client singleton."""
    global _ssm
    if _ssm is None:
        _ssm = boto3.client(
            "ssm",
            region_name=region,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _ssm


def _get_kms(region: Optional[str] = None):
    """Get (or create) the KMS client singleton."""
    global _kms
    if _kms is None:
        _kms = boto3.client(
            "kms",
            region_name=region,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )
    return _kms


def _reset_clients() -> None:
    global _ssm, _kms
    _ssm = None
    _kms = None
