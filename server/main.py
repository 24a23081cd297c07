from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
import uvicorn

from server.formgate.app import create_app
from server.formgate.cli import add_runtime_args, apply_runtime_overrides
from server.formgate.config import ConfigError, Settings

log = logging.getLogger("formgate")


def _write_pid_file(path: str) -> Path | None:
    if not path:
        return None
    pid_path = Path(path)
    pid_path.write_text(str(os.getpid()), encoding="utf-8")
    return pid_path


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the formgate reCAPTCHA form gateway.")
    add_runtime_args(parser)
    args = parser.parse_args()

    load_dotenv(args.env_file)
    apply_runtime_overrides(args)
    try:
        settings = Settings.from_env()
        application = create_app(settings)
    except (ConfigError, ValueError) as exc:
        logging.basicConfig(level=logging.INFO)
        log.critical("%s", exc)
        sys.exit(1)

    pid_path = _write_pid_file(settings.pid_file)
    ssl_kwargs = {}
    if settings.tls_enabled:
        ssl_kwargs = {"ssl_certfile": settings.tls_cert_path, "ssl_keyfile": settings.tls_key_path}

    log.info("Server running at %s://localhost:%d%s/", settings.scheme, settings.port, settings.base_path)
    try:
        uvicorn.run(
            application,
            host=settings.host,
            port=settings.port,
            timeout_keep_alive=settings.server_timeout_seconds,
            log_level=settings.log_level.lower(),
            **ssl_kwargs,
        )
    finally:
        if pid_path is not None:
            pid_path.unlink(missing_ok=True)


if __name__ == "__main__":
    main()
