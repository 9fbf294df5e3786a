"""
Run one inbox sync pass from the command line.

Pulls vendor replies from the configured mailbox, creates vendor responses
and runs their analysis before exiting (or enqueues it for the ARQ worker
when ANALYSIS_QUEUE_BACKEND=arq).

Usage:
    python scripts/sync_inbox.py
    python scripts/sync_inbox.py --stats
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging_config import setup_logging
from config.settings import settings
from database.connection import configure, init_db, close_db
from services.errors import MailboxConnectionError
from workers.components import build_components
from workers.queue import InProcessAnalysisQueue


async def run(stats_only: bool) -> int:
    session_factory = configure(settings)
    await init_db()
    components = build_components(settings, session_factory)
    queue = components.analysis_queue

    await queue.start()
    try:
        if stats_only:
            result = await components.synchronizer.stats()
            print(json.dumps(result.model_dump(), indent=2))
            return 0

        summary = await components.synchronizer.run()
        if isinstance(queue, InProcessAnalysisQueue):
            await queue.join()
        print(json.dumps(summary.model_dump(by_alias=True), indent=2))
        return 0
    except MailboxConnectionError as e:
        print(f"Mailbox unavailable: {e.message}", file=sys.stderr)
        return 1
    finally:
        await queue.stop()
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Sync vendor proposals from the mailbox")
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Only print total/new/unseen counts"
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(log_level=args.log_level, log_to_file=False)
    sys.exit(asyncio.run(run(args.stats)))


if __name__ == "__main__":
    main()
