#!/usr/bin/env python3
"""
Production startup script.

1. Runs migrations (release.py)
2. Starts gunicorn (replaces this process via os.execvp)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def resolve_port(raw: str | None) -> int:
    """Validate PORT; unset falls back to 8080, anything else must be 1-65535."""
    port = (raw or "").strip()
    if not port:
        print("WARNING: PORT not set, using default 8080", flush=True)
        return 8080
    port_int = int(port)
    if port_int < 1 or port_int > 65535:
        raise ValueError("Port out of range")
    return port_int


def gunicorn_argv(port: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", "2",
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    # Step 0: Validate PORT environment variable
    raw = os.environ.get("PORT")
    try:
        port = resolve_port(raw)
    except ValueError:
        print(f"ERROR: Invalid PORT value '{raw}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)

    print(f"PORT={port} validated", flush=True)

    # Step 1: Run release (migrations)
    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    # Step 2: Start gunicorn (exec replaces this process)
    print("=== Starting gunicorn ===", flush=True)
    print(f"Gunicorn binding to 0.0.0.0:{port}", flush=True)
    os.execvp("gunicorn", gunicorn_argv(port))


if __name__ == "__main__":
    main()
