#!/usr/bin/env python
"""
Run the pricing API under uvicorn with auto-reload.

Usage:
    python scripts/run_api.py [port]
"""
import os
import subprocess
import sys
from pathlib import Path


def main():
    project_root = Path(__file__).parent.parent
    port = sys.argv[1] if len(sys.argv) > 1 else "8000"

    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)

    cmd = [
        sys.executable, '-m', 'uvicorn', 'cafe_pricing.api.main:app',
        '--host', '0.0.0.0',
        '--port', port,
        '--reload',
    ]
    print(f"Starting API: {' '.join(cmd)}")

    try:
        subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
