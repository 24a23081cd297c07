from __future__ import annotations

import secrets

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from server.formgate.config import Settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next):
        request.state.csp_nonce = secrets.token_urlsafe(16)
        response = await call_next(request)

        nonce = getattr(request.state, "csp_nonce", "")
        csp_parts = [
            "default-src 'self'",
            # The reCAPTCHA loader pulls its worker scripts from gstatic.
            f"script-src 'self' 'nonce-{nonce}' https://www.google.com/recaptcha/ https://www.gstatic.com/recaptcha/",
            "style-src 'self'",
            "img-src 'self' data:",
            "connect-src 'self' https://www.google.com/recaptcha/",
            "frame-src https://www.google.com/recaptcha/ https://recaptcha.google.com/recaptcha/",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'",
        ]
        if self._settings.cookie_secure:
            csp_parts.append("upgrade-insecure-requests")

        response.headers.setdefault("Content-Security-Policy", "; ".join(csp_parts))
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "same-origin")
        if self._settings.cookie_secure:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Turns away oversized form posts before anything parses the body."""

    def __init__(self, app, *, max_body_bytes: int) -> None:
        super().__init__(app)
        self._max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):
        if request.method not in {"POST", "PUT", "PATCH"}:
            return await call_next(request)
        content_length = request.headers.get("content-length")
        if not content_length:
            return await call_next(request)
        try:
            size = int(content_length)
        except ValueError:
            return PlainTextResponse("Invalid Content-Length header.", status_code=400)
        if size < 0:
            return PlainTextResponse("Invalid Content-Length header.", status_code=400)
        if size > self._max_body_bytes:
            return PlainTextResponse("Request body too large.", status_code=413)
        return await call_next(request)
