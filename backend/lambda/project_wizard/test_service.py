"""Unit tests for the create-project pipeline entry point."""

from __future__ import annotations

import io
import json
import os
import sys
import unittest
import urllib.error
from unittest.mock import MagicMock, patch

import jwt

sys.path.insert(0, os.path.dirname(__file__))

import nobl9_client
from config import WizardConfig
from credentials import Nobl9Credentials
from errors import ConfigError, CredentialsError, DeadlineExceeded, Nobl9ApiError, Nobl9AuthError
from models import BAD_REQUEST, INTERNAL_ERROR, SUCCESS
from nobl9_client import Deadline, Nobl9Client
from service import handle_create


def _body(**overrides):
    payload = {
        "appID": "valid-project",
        "userGroups": [{"userIds": "user@example.com", "role": "project-owner"}],
    }
    payload.update(overrides)
    return json.dumps(payload)


class HandleCreateTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.lookup.return_value = "00u-user"
        self.factory = MagicMock(return_value=self.client)

    def _run(self, raw_body):
        return handle_create(raw_body, client_factory=self.factory, clock=lambda: 1700000000)

    def test_empty_body_is_malformed(self):
        for raw in (None, "", "   "):
            outcome = self._run(raw)
            self.assertEqual(outcome.status, BAD_REQUEST)
            self.assertEqual(outcome.message, "Invalid request body: empty body")
        self.factory.assert_not_called()

    def test_invalid_json_is_malformed(self):
        outcome = self._run('{"invalid": json}')
        self.assertEqual(outcome.status, BAD_REQUEST)
        self.assertTrue(outcome.message.startswith("Invalid request body: "))
        self.factory.assert_not_called()

    def test_wrong_shape_is_malformed(self):
        outcome = self._run(json.dumps({"appID": "valid-project", "userGroups": "nope"}))
        self.assertEqual(outcome.message, "Invalid request body: userGroups must be a list")
        self.factory.assert_not_called()

    def test_validation_failures_make_no_downstream_calls(self):
        bodies = [
            json.dumps({"userGroups": [{"userIds": "user@example.com", "role": "project-owner"}]}),
            _body(appID="ab"),
            json.dumps({"appID": "valid-project"}),
            _body(userGroups=[{"userIds": "user@example.com", "role": "invalid-role"}]),
            _body(userGroups=[{"userIds": "invalid-email@", "role": "project-owner"}]),
        ]
        for raw in bodies:
            outcome = self._run(raw)
            self.assertEqual(outcome.status, BAD_REQUEST, raw)
        self.factory.assert_not_called()

    def test_missing_credentials_is_internal_error(self):
        self.factory.side_effect = ConfigError("missing parameter names")
        outcome = self._run(_body())
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertEqual(outcome.message, "Failed to retrieve Nobl9 credentials: missing parameter names")

    def test_ssm_failure_is_internal_error(self):
        self.factory.side_effect = CredentialsError("failed to get client ID parameter: denied")
        outcome = self._run(_body())
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("failed to get client ID parameter", outcome.message)

    def test_unknown_user_is_bad_request_without_apply(self):
        self.client.lookup.return_value = None
        outcome = self._run(_body())
        self.assertEqual(outcome.status, BAD_REQUEST)
        self.assertIn("could not be found", outcome.message)
        self.client.apply.assert_not_called()

    def test_success(self):
        outcome = self._run(_body(description="Checkout SLOs"))
        self.assertEqual(outcome.status, SUCCESS)
        self.assertEqual(outcome.assignment_count, 1)
        objects = self.client.apply.call_args[0][0]
        self.assertEqual(objects[0]["spec"]["description"], "Checkout SLOs")
        self.assertEqual(objects[1]["spec"]["user"], "00u-user")

    def test_token_failure_during_apply_is_internal_error(self):
        self.client.apply.side_effect = Nobl9ApiError("token endpoint failed with HTTP 401")
        outcome = self._run(_body(userGroups=[{"userIds": "00u-direct", "role": "project-owner"}]))
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("HTTP 401", outcome.message)

    def test_deadline_during_lookup_is_internal_error(self):
        self.client.lookup.side_effect = DeadlineExceeded("deadline exceeded while calling Nobl9")
        outcome = self._run(_body())
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertEqual(
            outcome.message,
            "Failed to create project and assign roles: deadline exceeded while calling Nobl9",
        )
        self.client.apply.assert_not_called()

    def test_deadline_during_apply_is_internal_error(self):
        self.client.apply.side_effect = DeadlineExceeded("PUT https://app.nobl9.com/api/apply timed out")
        outcome = self._run(_body(userGroups=[{"userIds": "00u-direct", "role": "project-owner"}]))
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("timed out", outcome.message)
        self.client.lookup.assert_not_called()

    def test_auth_failure_during_lookup_is_internal_error(self):
        self.client.lookup.side_effect = Nobl9AuthError(
            "Nobl9 authentication failed: HTTP 401: invalid_client", status_code=401
        )
        outcome = self._run(_body())
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("invalid_client", outcome.message)
        self.assertNotIn("could not be found", outcome.message)
        self.client.apply.assert_not_called()

    def test_unexpected_failure_is_internal_error(self):
        self.client.lookup.side_effect = RuntimeError("unexpected payload")
        outcome = self._run(_body())
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("unexpected payload", outcome.message)


class HandleCreateTransportTests(unittest.TestCase):
    """Drives a real Nobl9Client with urlopen patched."""

    def _client(self):
        config = WizardConfig(client_id_param_name="a", client_secret_param_name="b", organization="acme")
        return Nobl9Client(config, Nobl9Credentials("client-id", "client-secret"), Deadline(30))

    def _token_response(self):
        resp = MagicMock()
        token = jwt.encode({"sub": "client-1"}, "unit-test-signing-key-0123456789abcdef", algorithm="HS256")
        resp.read.return_value = json.dumps({"access_token": token}).encode("utf-8")
        resp.__enter__.return_value = resp
        resp.__exit__.return_value = False
        return resp

    def test_connection_reset_during_apply_is_internal_error(self):
        client = self._client()
        responses = [self._token_response(), ConnectionResetError(104, "Connection reset by peer")]
        with patch.object(nobl9_client.urllib.request, "urlopen", side_effect=responses) as urlopen:
            outcome = handle_create(
                _body(userGroups=[{"userIds": "00u-direct", "role": "project-owner"}]),
                client_factory=lambda: client,
                clock=lambda: 1700000000,
            )
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertTrue(outcome.message.startswith("Failed to create project and assign roles: PUT "))
        self.assertIn("Connection reset by peer", outcome.message)
        self.assertEqual(urlopen.call_count, 2)

    def test_connection_reset_during_lookup_is_internal_error(self):
        client = self._client()
        responses = [self._token_response(), ConnectionResetError(104, "Connection reset by peer")]
        with patch.object(nobl9_client.urllib.request, "urlopen", side_effect=responses):
            outcome = handle_create(_body(), client_factory=lambda: client, clock=lambda: 1700000000)
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("Connection reset by peer", outcome.message)
        self.assertNotIn("could not be found", outcome.message)

    def test_token_rejected_is_internal_error(self):
        client = self._client()
        url = "https://accounts.nobl9.com/oauth2/auseg9kiegWKEtJZC416/v1/token"
        rejected = urllib.error.HTTPError(url, 401, "error", {}, io.BytesIO(b"invalid_client"))
        with patch.object(nobl9_client.urllib.request, "urlopen", side_effect=[rejected]):
            outcome = handle_create(_body(), client_factory=lambda: client, clock=lambda: 1700000000)
        self.assertEqual(outcome.status, INTERNAL_ERROR)
        self.assertIn("Nobl9 authentication failed", outcome.message)
        self.assertIn("invalid_client", outcome.message)


if __name__ == "__main__":
    unittest.main()
