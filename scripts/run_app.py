#!/usr/bin/env python
"""
Open the Streamlit price preview.

Usage:
    python scripts/run_app.py [streamlit options...]

Extra arguments are handed to `streamlit run`, e.g. --server.port 8502.
"""
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
PREVIEW = PROJECT_ROOT / 'src' / 'formula_pricing' / 'ui' / 'app_streamlit.py'


def main(argv=None):
    if not PREVIEW.is_file():
        sys.exit(f"Preview app missing: {PREVIEW}")

    cmd = [sys.executable, '-m', 'streamlit', 'run', str(PREVIEW), *(argv or [])]
    try:
        return subprocess.run(cmd, cwd=str(PROJECT_ROOT)).returncode
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
