from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from server.formgate.config import Settings
from server.formgate.csrf import CsrfGuard
from server.formgate.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from server.formgate.recaptcha import RecaptchaVerifier
from server.formgate.routes import health, index


def create_app(
    settings: Settings | None = None,
    *,
    verifier=None,
    csrf_guard: CsrfGuard | None = None,
) -> FastAPI:
    """Build the gateway. Raises ``ConfigError`` when the reCAPTCHA keys are missing."""
    if settings is None:
        load_dotenv()
        settings = Settings.from_env()
    settings.validate()

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    app = FastAPI(title="formgate", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.csrf_guard = csrf_guard or CsrfGuard.from_settings(settings)
    app.state.verifier = verifier or RecaptchaVerifier.from_settings(settings)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_kb * 1024)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    app.include_router(health.router)
    app.include_router(index.router, prefix=settings.base_path)
    return app
