#!/usr/bin/env python
"""
Serve the pricing API with uvicorn.

Usage:
    python scripts/run_api.py [--no-reload]

FORMULA_PRICING_HOST and FORMULA_PRICING_PORT override the bind address.
"""
import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
APP = "formula_pricing.api.main:app"


def uvicorn_command(host: str, port: str, reload: bool) -> list[str]:
    cmd = [sys.executable, "-m", "uvicorn", APP, "--host", host, "--port", port]
    if reload:
        cmd += ["--reload", "--reload-dir", str(PROJECT_ROOT / "src")]
    return cmd


def main():
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(PROJECT_ROOT / "src"), env.get("PYTHONPATH")) if p
    )

    host = env.get("FORMULA_PRICING_HOST", "127.0.0.1")
    port = env.get("FORMULA_PRICING_PORT", "8000")
    cmd = uvicorn_command(host, port, reload="--no-reload" not in sys.argv[1:])

    print(f"Serving {APP} at http://{host}:{port}")
    try:
        return subprocess.run(cmd, cwd=str(PROJECT_ROOT), env=env).returncode
    except KeyboardInterrupt:
        print("\nAPI stopped.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
