"""Run the timetable skill server.

Run with: python scripts/run_server.py
Port:     python scripts/run_server.py --port 9000   (or PORT=9000)
Prod:     python scripts/run_server.py --log-json

Exit codes:
  0 = clean shutdown
  1 = configuration error (message on stderr)
"""

import argparse
import os
import sys

import uvicorn
from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.skillserver.app import create_app  # noqa: E402
from src.skillserver.config import get_config  # noqa: E402
from src.skillserver.logging import get_logger, setup_logging  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Kakao skill server answering class timetable requests.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", help="Interface to bind (default: HOST or 0.0.0.0).")
    parser.add_argument("--port", type=int, help="Port to listen on (default: PORT or 8080).")
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit JSON logs (default: LOG_JSON).",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    try:
        config = get_config()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_logging(json_output=args.log_json or config.log_json, log_level=config.log_level)
    log = get_logger("run_server")

    config = config.model_copy(
        update={"host": args.host or config.host, "port": args.port or config.port}
    )
    log.info("skill_server_listening", host=config.host, port=config.port)

    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
