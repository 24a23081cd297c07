import json
import unittest
from unittest import mock

import requests

from server.formgate.recaptcha import RecaptchaVerifier, VerificationError, VerificationOutcome

_VERIFY_URL = "https://verify.example.test/siteverify"


def _response(body: bytes, status_code: int = 200) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = body
    resp.url = _VERIFY_URL
    return resp


class TestRecaptchaVerifier(unittest.TestCase):
    def setUp(self) -> None:
        self.verifier = RecaptchaVerifier(verify_url=_VERIFY_URL, server_key="secret-key", timeout_seconds=5.0)

    def test_posts_secret_and_token(self) -> None:
        body = json.dumps({"success": True}).encode("utf-8")
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(body)) as post:
            self.verifier.verify("widget-token", remote_ip="203.0.113.7")
        post.assert_called_once_with(
            _VERIFY_URL,
            data={"secret": "secret-key", "response": "widget-token", "remoteip": "203.0.113.7"},
            timeout=5.0,
        )

    def test_success_outcome_carries_diagnostics(self) -> None:
        body = json.dumps(
            {
                "success": True,
                "challenge_ts": "2024-05-01T10:00:00Z",
                "hostname": "forms.example.test",
            }
        ).encode("utf-8")
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(body)):
            outcome = self.verifier.verify("widget-token")
        self.assertEqual(
            outcome,
            VerificationOutcome(
                success=True,
                challenge_ts="2024-05-01T10:00:00Z",
                hostname="forms.example.test",
            ),
        )

    def test_rejected_token(self) -> None:
        body = json.dumps({"success": False, "error-codes": ["timeout-or-duplicate"]}).encode("utf-8")
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(body)):
            outcome = self.verifier.verify("used-token")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error_codes, ("timeout-or-duplicate",))

    def test_connection_error_is_propagated(self) -> None:
        with mock.patch(
            "server.formgate.recaptcha.requests.post",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with self.assertRaises(VerificationError) as ctx:
                self.verifier.verify("widget-token")
        self.assertIn("reCAPTCHA verification request failed", str(ctx.exception))
        self.assertIn("connection refused", str(ctx.exception))

    def test_timeout_is_propagated(self) -> None:
        with mock.patch("server.formgate.recaptcha.requests.post", side_effect=requests.Timeout("read timed out")):
            with self.assertRaises(VerificationError):
                self.verifier.verify("widget-token")

    def test_http_error_status_is_propagated(self) -> None:
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(b"oops", 500)):
            with self.assertRaises(VerificationError):
                self.verifier.verify("widget-token")

    def test_undecodable_body(self) -> None:
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(b"<html>nope</html>")):
            with self.assertRaisesRegex(VerificationError, "could not be decoded"):
                self.verifier.verify("widget-token")

    def test_non_object_body(self) -> None:
        with mock.patch("server.formgate.recaptcha.requests.post", return_value=_response(b"[true]")):
            with self.assertRaisesRegex(VerificationError, "could not be decoded"):
                self.verifier.verify("widget-token")


class TestVerificationOutcome(unittest.TestCase):
    def test_only_literal_true_counts_as_success(self) -> None:
        self.assertFalse(VerificationOutcome.from_payload({"success": "true"}).success)
        self.assertFalse(VerificationOutcome.from_payload({}).success)
        self.assertTrue(VerificationOutcome.from_payload({"success": True}).success)


if __name__ == "__main__":
    unittest.main()
