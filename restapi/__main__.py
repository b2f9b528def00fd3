"""Command-line entry point: ``python -m restapi``.

Usage:
    python -m restapi                  # serve on HOST:PORT
    python -m restapi --version
    python -m restapi --health-check   # for container HEALTHCHECK

Exit codes for --health-check:
    0 = liveness endpoint answered 200
    1 = unreachable or non-200
"""

from __future__ import annotations

import argparse
import sys

import httpx
import uvicorn

from restapi.config import settings


def health_check(port: int, timeout: float = 3.0) -> int:
    url = f"http://localhost:{port}/health/live"
    try:
        resp = httpx.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        print(f"Health check failed: {exc}")
        return 1
    if resp.status_code != 200:
        print(f"Health check failed with status: {resp.status_code}")
        return 1
    print("Health check passed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="restapi", description=settings.APP_NAME)
    parser.add_argument("--version", action="store_true", help="show version and exit")
    parser.add_argument("--health-check", action="store_true", help="probe /health/live and exit")
    args = parser.parse_args(argv)

    if args.version:
        print(f"{settings.APP_NAME} v{settings.APP_VERSION}")
        return 0
    if args.health_check:
        return health_check(settings.PORT)

    uvicorn.run(
        "restapi.main:app",
        host=settings.HOST,
        port=settings.PORT,
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
        log_config=None,
        reload=settings.is_development,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
