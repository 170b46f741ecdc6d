"""Answer one timetable question from the command line, without HTTP.

Handy for checking what the skill would reply before wiring it into the
chatbot builder. Initializes Comcigan for SCHOOL_NAME, runs the same pipeline
as POST /api/timeTable and prints the reply text.

Run with: python scripts/lookup.py "2학년 5반 내일 시간표"
Params:   python scripts/lookup.py --grade 2 --classroom 5 --tomorrow
Envelope: python scripts/lookup.py "2-5" --json

Exit codes:
  0 = reply printed (including guidance/weekend replies)
  1 = Comcigan could not be initialized in time
"""

import argparse
import asyncio
import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.skillserver.config import get_config  # noqa: E402
from src.skillserver.logging import setup_logging  # noqa: E402
from src.skillserver.models import SkillRequest  # noqa: E402
from src.skillserver.readiness import Initializer  # noqa: E402
from src.skillserver.responses import reply_text  # noqa: E402
from src.skillserver.service import TimetableService  # noqa: E402
from src.skillserver.source import CachedTimetable, ComciganSource  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Print the timetable reply for an utterance or explicit params.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("utterance", nargs="?", default="", help="Free-text question.")
    parser.add_argument("--grade", help="Structured grade param.")
    parser.add_argument("--classroom", help="Structured classroom param.")
    parser.add_argument("--tomorrow", action="store_true", help="Set params.day to 'tomorrow'.")
    parser.add_argument("--json", action="store_true", help="Print the full reply envelope.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for Comcigan initialization (default: 30).",
    )
    return parser.parse_args()


def build_request(args: argparse.Namespace) -> SkillRequest:
    params = {
        "grade": args.grade,
        "classroom": args.classroom,
        "day": "tomorrow" if args.tomorrow else None,
    }
    return SkillRequest.model_validate(
        {"action": {"params": params}, "userRequest": {"utterance": args.utterance}}
    )


async def _run(args: argparse.Namespace) -> int:
    config = get_config()
    source = ComciganSource(week_num=config.week_num)
    initializer = Initializer(
        source,
        config.school_name,
        retry_seconds=config.init_retry_seconds,
    )
    service = TimetableService(
        initializer,
        CachedTimetable(source, ttl_seconds=0, timeout_seconds=config.fetch_timeout_seconds),
    )

    try:
        if not await initializer.ensure_ready(timeout=args.timeout):
            print(f"Comcigan not ready after {args.timeout:.0f}s", file=sys.stderr)
            return 1
    finally:
        await initializer.stop()

    reply = await service.handle(build_request(args))
    if args.json:
        print(json.dumps(reply.payload, ensure_ascii=False, indent=2))
    else:
        print(reply_text(reply.payload))
    return 0


def main() -> int:
    args = _parse_args()
    config = get_config()
    setup_logging(json_output=config.log_json, log_level="WARNING")
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
