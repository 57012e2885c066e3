"""credentials.py — Nobl9 client credentials from SSM Parameter Store.

Both values are read with ``WithDecryption=True``. Values that were stored
as raw KMS ciphertext (base64, ``AQICAH`` envelope prefix) rather than as
SecureString parameters are additionally decrypted with KMS.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from botocore.exceptions import BotoCoreError, ClientError

from aws_clients import _get_kms, _get_ssm
from config import WizardConfig, logger
from errors import CredentialsError

__all__ = [
    "KMS_ENVELOPE_PREFIX",
    "Nobl9Credentials",
    "_decrypt_if_needed",
    "_get_nobl9_credentials",
    "_get_parameter",
]

KMS_ENVELOPE_PREFIX = "AQICAH"


@dataclass(frozen=True)
class Nobl9Credentials:
    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"Nobl9Credentials(client_id={self.client_id!r}, client_secret='***')"


def _get_parameter(name: str, label: str, region: str) -> str:
    try:
        resp = _get_ssm(region).get_parameter(Name=name, WithDecryption=True)
    except (BotoCoreError, ClientError) as exc:
        raise CredentialsError(f"failed to get {label} parameter: {exc}") from exc
    return resp["Parameter"]["Value"]


def _decrypt_if_needed(value: str, label: str, region: str) -> str:
    if not value.startswith(KMS_ENVELOPE_PREFIX):
        return value
    logger.info("Decrypting %s with KMS", label)
    try:
        blob = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialsError(f"failed to decrypt {label}: value is not valid base64") from exc
    try:
        resp = _get_kms(region).decrypt(CiphertextBlob=blob)
    except (BotoCoreError, ClientError) as exc:
        raise CredentialsError(f"failed to decrypt {label}: {exc}") from exc
    return resp["Plaintext"].decode("utf-8")


def _get_nobl9_credentials(config: WizardConfig) -> Nobl9Credentials:
    """Read and, where needed, decrypt the Nobl9 client ID and secret."""
    config.validate()
    logger.info(
        "Retrieving credentials from Parameter Store: %s, %s",
        config.client_id_param_name,
        config.client_secret_param_name,
    )
    client_id = _get_parameter(config.client_id_param_name, "client ID", config.aws_region)
    client_secret = _get_parameter(config.client_secret_param_name, "client secret", config.aws_region)

    client_id = _decrypt_if_needed(client_id, "client ID", config.aws_region)
    client_secret = _decrypt_if_needed(client_secret, "client secret", config.aws_region)

    logger.info("Successfully retrieved Nobl9 credentials")
    return Nobl9Credentials(client_id=client_id, client_secret=client_secret)
