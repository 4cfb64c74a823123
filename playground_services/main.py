"""
Uvicorn launcher for Stellar Playground Services.

Usage:
  python -m playground_services.main [--host 0.0.0.0] [--port 8080]
                                     [--workers 1] [--reload]
                                     [--log-level info]

Environment overrides (if flags not provided):
  HOST / BIND, PORT, WORKERS, RELOAD, LOG_LEVEL, LOG_FORMAT
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

import uvicorn

from .logging import setup_logging


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "y", "on")


def main(argv: Optional[list[str]] = None) -> None:
    default_host = os.getenv("HOST") or os.getenv("BIND") or "0.0.0.0"
    default_port = int(os.getenv("PORT") or 8080)
    default_workers = int(os.getenv("WORKERS") or 1)
    default_reload = _env_bool("RELOAD", False)
    default_log_level = os.getenv("LOG_LEVEL", "info")

    parser = argparse.ArgumentParser(description="Run Stellar Playground Services (uvicorn)")
    parser.add_argument("--host", default=default_host, help="Bind address (default: %(default)s)")
    parser.add_argument("--port", type=int, default=default_port, help="Port (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=default_workers, help="Number of workers (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", default=default_reload, help="Enable autoreload (dev only)")
    parser.add_argument("--log-level", default=default_log_level, help="Log level (default: %(default)s)")
    parser.add_argument("--proxy-headers", action="store_true", default=True, help="Use X-Forwarded-* headers (default: on)")
    parser.add_argument("--forwarded-allow-ips", default="*", help="Comma list of trusted proxies (default: *)")

    args = parser.parse_args(argv)

    # reload and workers>1 are mutually exclusive; prefer reload for dev if both set.
    if args.reload and args.workers != 1:
        print("[playground-services] --reload implies --workers=1; overriding.", file=sys.stderr)
        args.workers = 1
    if args.workers > 1:
        # Project locks are per process; concurrent builds of one project may race.
        print("[playground-services] project locks are per worker process.", file=sys.stderr)

    setup_logging(service_name="playground-services", level=args.log_level)

    # Factory import string so each worker builds its own app (and runner/locks).
    uvicorn.run(
        "playground_services.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        log_config=None,
        proxy_headers=args.proxy_headers,
        forwarded_allow_ips=args.forwarded_allow_ips,
        reload=args.reload,
        workers=args.workers,
    )


if __name__ == "__main__":
    main()
