"""Run the DM Chronicle API locally with auto-reload.

    python main.py                    # serve ./data
    python main.py --demo             # wipe and seed demo games first
    python main.py --data-dir /tmp/x  # use another data directory

HOST and PORT come from the environment or .env.
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13013")


def seed_demo_games(data_dir: Path) -> None:
    from dm_chronicle import storage
    from dm_chronicle.demo import create_demo_data

    storage.init_storage(data_dir)
    create_demo_data()
    print(f"Seeded demo games in {data_dir}")


def serve(data_dir: Path) -> int:
    """Run uvicorn in watch mode against data_dir until it exits or Ctrl-C."""
    env = dict(os.environ, DATA_DIR=str(data_dir))
    cmd = [
        sys.executable, "-m", "uvicorn", "backend.app:app",
        "--reload", "--host", HOST, "--port", PORT,
    ]
    print(f"DM Chronicle API on http://localhost:{PORT} (data: {data_dir})")
    server = subprocess.Popen(cmd, cwd=ROOT, env=env)
    try:
        return server.wait()
    except KeyboardInterrupt:
        # uvicorn gets the same SIGINT; wait for its reloader to stop
        return server.wait()


def main():
    parser = argparse.ArgumentParser(description="Run the DM Chronicle API for local play")
    parser.add_argument("--data-dir", type=Path, default=ROOT / "data",
                        help="where games and settings are stored (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="replace all games with the demo set before serving")
    args = parser.parse_args()

    data_dir = args.data_dir.resolve()
    if args.demo:
        seed_demo_games(data_dir)
    sys.exit(serve(data_dir))


if __name__ == "__main__":
    main()
