#!/usr/bin/env python3
"""
Container entrypoint: run the release phase, then exec gunicorn on ``app.wsgi:app``.

Environment:
  PORT             listen port (default 8080)
  WEB_CONCURRENCY  gunicorn workers (default 2)
  SKIP_RELEASE=1   start gunicorn without migrating/seeding
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def parse_port(raw: str | None) -> int:
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    port = int(raw)
    if not 1 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def gunicorn_argv(port: int, workers: str) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        port = parse_port(os.environ.get("PORT"))
    except ValueError as e:
        sys.exit(f"[start] invalid PORT: {e}")

    if os.environ.get("SKIP_RELEASE") != "1":
        from scripts.release import run_release

        run_release()

    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    print(f"[start] gunicorn on :{port} with {workers} worker(s)", flush=True)
    os.execvp("gunicorn", gunicorn_argv(port, workers))


if __name__ == "__main__":
    main()
