from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class ConfigError(Exception):
    """Raised when the configuration cannot be used to serve requests."""


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _env_int(name: str, default: int, *, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        value = default
    else:
        try:
            value = int(raw)
        except Exception as e:
            raise ValueError(f"Invalid integer value for {name}: {raw!r}") from e
    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value} (got {value})")
    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value} (got {value})")
    return value


def _env_float(name: str, default: float, *, min_value: float | None = None, max_value: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        value = float(default)
    else:
        try:
            value = float(raw)
        except Exception as e:
            raise ValueError(f"Invalid float value for {name}: {raw!r}") from e
    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value} (got {value})")
    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value} (got {value})")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {raw!r}")


def normalize_base_path(raw: str) -> str:
    """Return ``raw`` as ``/segment[/segment]`` with no trailing slash, or ``""`` for the root."""
    value = (raw or "").strip().strip("/")
    if not value:
        return ""
    return "/" + value


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    base_path: str

    tls_enabled: bool
    tls_cert_path: str
    tls_key_path: str

    recaptcha_verify_url: str
    recaptcha_client_key: str
    recaptcha_server_key: str

    csrf_secret: str

    api_timeout_seconds: float
    server_timeout_seconds: int
    max_body_kb: int

    cookie_secure: bool
    trust_proxy: bool

    log_level: str
    pid_file: str
    page_title: str

    @classmethod
    def from_env(cls) -> "Settings":
        host = _env_str("FORMGATE_HOST", "0.0.0.0")
        port = _env_int("FORMGATE_PORT", 8080, min_value=1, max_value=65535)
        base_path = normalize_base_path(_env_str("FORMGATE_BASE_PATH", ""))

        tls_enabled = _env_bool("FORMGATE_TLS", False)
        tls_cert_path = _env_str("FORMGATE_TLS_CERT", "")
        tls_key_path = _env_str("FORMGATE_TLS_KEY", "")

        recaptcha_verify_url = _env_str("FORMGATE_RECAPTCHA_VERIFY_URL", DEFAULT_VERIFY_URL)
        recaptcha_client_key = _env_str("FORMGATE_RECAPTCHA_CLIENT_KEY", "")
        recaptcha_server_key = _env_str("FORMGATE_RECAPTCHA_SERVER_KEY", "")

        csrf_secret = _env_str("FORMGATE_CSRF_SECRET", "")

        api_timeout_seconds = _env_float("FORMGATE_API_TIMEOUT_SECONDS", 20.0, min_value=2.0, max_value=120.0)
        server_timeout_seconds = _env_int("FORMGATE_SERVER_TIMEOUT_SECONDS", 120, min_value=1, max_value=3600)
        max_body_kb = _env_int("FORMGATE_MAX_BODY_KB", 256, min_value=1, max_value=102400)

        cookie_secure = _env_bool("FORMGATE_COOKIE_SECURE", tls_enabled)
        trust_proxy = _env_bool("FORMGATE_TRUST_PROXY", False)

        log_level = _env_str("FORMGATE_LOG_LEVEL", "INFO")
        pid_file = _env_str("FORMGATE_PID_FILE", "application.pid")
        page_title = _env_str("FORMGATE_PAGE_TITLE", "FastAPI with reCAPTCHA")

        return cls(
            host=host,
            port=port,
            base_path=base_path,
            tls_enabled=tls_enabled,
            tls_cert_path=tls_cert_path,
            tls_key_path=tls_key_path,
            recaptcha_verify_url=recaptcha_verify_url,
            recaptcha_client_key=recaptcha_client_key,
            recaptcha_server_key=recaptcha_server_key,
            csrf_secret=csrf_secret,
            api_timeout_seconds=api_timeout_seconds,
            server_timeout_seconds=server_timeout_seconds,
            max_body_kb=max_body_kb,
            cookie_secure=cookie_secure,
            trust_proxy=trust_proxy,
            log_level=log_level,
            pid_file=pid_file,
            page_title=page_title,
        )

    def validate(self) -> None:
        if not self.recaptcha_server_key:
            raise ConfigError("Missing FORMGATE_RECAPTCHA_SERVER_KEY")
        if not self.recaptcha_client_key:
            raise ConfigError("Missing FORMGATE_RECAPTCHA_CLIENT_KEY")
        if self.tls_enabled and not (self.tls_cert_path and self.tls_key_path):
            raise ConfigError("FORMGATE_TLS requires FORMGATE_TLS_CERT and FORMGATE_TLS_KEY")

    @property
    def scheme(self) -> str:
        return "https" if self.tls_enabled else "http"
