from __future__ import annotations

import argparse
import os


def add_runtime_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Location of the .env file holding FORMGATE_* settings (default: .env).",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Listen port (overrides FORMGATE_PORT).",
    )
    parser.add_argument(
        "--base-path",
        help="URL prefix the form is served under (overrides FORMGATE_BASE_PATH).",
    )
    parser.add_argument(
        "--tls",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Serve over HTTPS using FORMGATE_TLS_CERT / FORMGATE_TLS_KEY.",
    )


def apply_runtime_overrides(args: argparse.Namespace) -> None:
    if getattr(args, "port", None) is not None:
        os.environ["FORMGATE_PORT"] = str(args.port)
    if getattr(args, "base_path", None) is not None:
        os.environ["FORMGATE_BASE_PATH"] = args.base_path
    if getattr(args, "tls", None) is not None:
        os.environ["FORMGATE_TLS"] = "true" if args.tls else "false"
