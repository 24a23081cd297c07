from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import secrets

from fastapi import HTTPException, Request

from server.formgate.config import Settings

log = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "formgate_csrf"
CSRF_FIELD_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"

_TOKEN_BYTES = 32
_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


class CsrfError(Exception):
    """The request does not carry a token matching its CSRF cookie."""


# Unpadded so cookie values never need quoting.
def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode((value + "=" * (-len(value) % 4)).encode("ascii"))


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def is_safe_method(method: str) -> bool:
    return method.upper() in _SAFE_METHODS


class CsrfGuard:
    """Double-submit CSRF protection keyed by a process-wide secret.

    The cookie carries a random base token signed with the secret. Forms carry
    the base token masked with a one-time pad, so every issued form token is
    distinct while still validating against the same cookie.
    """

    def __init__(self, secret: bytes, *, cookie_secure: bool = False, cookie_path: str = "/") -> None:
        if not secret:
            raise ValueError("CSRF secret must not be empty")
        self._secret = secret
        self._cookie_secure = cookie_secure
        self._cookie_path = cookie_path or "/"

    @classmethod
    def from_settings(cls, settings: Settings) -> "CsrfGuard":
        if settings.csrf_secret:
            secret = settings.csrf_secret.encode("utf-8")
        else:
            secret = secrets.token_bytes(_TOKEN_BYTES)
        return cls(secret, cookie_secure=settings.cookie_secure, cookie_path=settings.base_path or "/")

    def _sign(self, token: bytes) -> bytes:
        return hmac.new(self._secret, token, hashlib.sha256).digest()

    def _encode_cookie(self, token: bytes) -> str:
        return f"{_b64encode(token)}.{_b64encode(self._sign(token))}"

    def _decode_cookie(self, value: str | None) -> bytes | None:
        if not value or "." not in value:
            return None
        token_part, mac_part = value.split(".", 1)
        try:
            token = _b64decode(token_part)
            mac = _b64decode(mac_part)
        except (binascii.Error, ValueError):
            return None
        if len(token) != _TOKEN_BYTES:
            return None
        if not hmac.compare_digest(mac, self._sign(token)):
            return None
        return token

    def base_token(self, request: Request) -> bytes | None:
        return self._decode_cookie(request.cookies.get(CSRF_COOKIE_NAME))

    def mask(self, token: bytes) -> str:
        pad = secrets.token_bytes(len(token))
        return _b64encode(pad + _xor(pad, token))

    def unmask(self, value: str) -> bytes:
        try:
            raw = _b64decode(value)
        except (binascii.Error, ValueError) as exc:
            raise CsrfError("malformed token") from exc
        if len(raw) != 2 * _TOKEN_BYTES:
            raise CsrfError("malformed token")
        pad, masked = raw[:_TOKEN_BYTES], raw[_TOKEN_BYTES:]
        return _xor(pad, masked)

    def issue(self, request: Request) -> str:
        token = getattr(request.state, "csrf_base_token", None) or self.base_token(request)
        if token is None:
            token = secrets.token_bytes(_TOKEN_BYTES)
            request.state.csrf_set_cookie = True
        request.state.csrf_base_token = token
        return self.mask(token)

    def validate(self, request: Request, submitted: str | None) -> None:
        expected = self.base_token(request)
        if expected is None:
            raise CsrfError("missing cookie")
        if not submitted:
            raise CsrfError("missing token")
        if not hmac.compare_digest(self.unmask(submitted), expected):
            raise CsrfError("token mismatch")

    def attach(self, response, request: Request) -> None:
        if not getattr(request.state, "csrf_set_cookie", False):
            return
        response.set_cookie(
            CSRF_COOKIE_NAME,
            self._encode_cookie(request.state.csrf_base_token),
            httponly=True,
            secure=self._cookie_secure,
            samesite="lax",
            path=self._cookie_path,
        )


def get_csrf_guard(request: Request) -> CsrfGuard:
    return request.app.state.csrf_guard


async def _submitted_token(request: Request) -> str | None:
    try:
        form = await request.form()
    except Exception as exc:
        log.debug("CSRF form read failed: %s", exc)
        form = None
    if form is not None:
        value = form.get(CSRF_FIELD_NAME)
        if isinstance(value, str) and value:
            return value
    return request.headers.get(CSRF_HEADER_NAME) or None


async def require_csrf(request: Request) -> None:
    if is_safe_method(request.method):
        return
    guard = get_csrf_guard(request)
    try:
        guard.validate(request, await _submitted_token(request))
    except CsrfError as exc:
        log.warning("CSRF rejection on %s %s: %s", request.method, request.url.path, exc)
        raise HTTPException(status_code=403, detail="Forbidden - CSRF token invalid") from exc
