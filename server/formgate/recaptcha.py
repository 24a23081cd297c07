from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass

import requests

from server.formgate.config import Settings

log = logging.getLogger(__name__)


class VerificationError(Exception):
    """The verification service could not be reached or answered garbage."""


@dataclass(frozen=True)
class VerificationOutcome:
    success: bool
    challenge_ts: str = ""
    hostname: str = ""
    error_codes: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "VerificationOutcome":
        codes = payload.get("error-codes") or []
        if not isinstance(codes, list):
            codes = [codes]
        return cls(
            success=payload.get("success") is True,
            challenge_ts=str(payload.get("challenge_ts") or ""),
            hostname=str(payload.get("hostname") or ""),
            error_codes=tuple(str(code) for code in codes),
        )


@dataclass
class RecaptchaVerifier:
    """Server-side half of reCAPTCHA: asks ``siteverify`` whether a widget token is good."""

    verify_url: str
    server_key: str
    timeout_seconds: float = 20.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecaptchaVerifier":
        return cls(
            verify_url=settings.recaptcha_verify_url,
            server_key=settings.recaptcha_server_key,
            timeout_seconds=settings.api_timeout_seconds,
        )

    def verify(self, token: str, *, remote_ip: str | None = None) -> VerificationOutcome:
        data = {
            "secret": self.server_key,
            "response": token,
        }
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            resp = requests.post(self.verify_url, data=data, timeout=self.timeout_seconds)
            resp.raise_for_status()
            body = resp.content
        except requests.RequestException as exc:
            log.warning("reCAPTCHA verification request failed: %s", exc)
            raise VerificationError(f"reCAPTCHA verification request failed: {exc}") from exc

        try:
            payload = json.loads(body)
        except ValueError as exc:
            log.warning("reCAPTCHA verification response could not be decoded: %s", exc)
            raise VerificationError(f"reCAPTCHA verification response could not be decoded: {exc}") from exc
        if not isinstance(payload, dict):
            raise VerificationError("reCAPTCHA verification response could not be decoded: expected a JSON object")

        outcome = VerificationOutcome.from_payload(payload)
        if not outcome.success:
            log.info("reCAPTCHA rejected token (hostname=%r, error-codes=%s)", outcome.hostname, list(outcome.error_codes))
        return outcome
