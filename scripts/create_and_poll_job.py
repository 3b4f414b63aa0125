#!/usr/bin/env python3
"""
Create a test prediction job and poll it until done/failed or timeout.

Usage:
    python -m scripts.create_and_poll_job
    python -m scripts.create_and_poll_job --timeout 300 --title "My video"

Needs a running worker (python -m engagehub.worker.run_worker) against the
same MongoDB.

Exit codes:
    0 - Job reached done
    1 - Job failed or was cancelled
    2 - Timed out
"""

import argparse
import logging
import os
import sys
import time

# Make engagehub importable when run from scripts/ or repo root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from engagehub.core.database import effective_mongo_uri_and_db
from engagehub.predictions.models import TERMINAL_STATUSES
from engagehub.predictions.store import JobStore


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a prediction job and poll it")
    parser.add_argument("--title", default="Test job from automated script")
    parser.add_argument("--text", default="This is a quick test.")
    parser.add_argument("--timeout", type=int, default=120, help="Seconds to wait")
    parser.add_argument("--every", type=float, default=3.0, help="Poll interval in seconds")
    args = parser.parse_args()

    uri, db_name = effective_mongo_uri_and_db()
    logger.info(f"Connected to Mongo at {uri} (db={db_name})")

    store = JobStore()
    job = store.insert({"title": args.title, "description": args.text})
    logger.info(f"Created job {job.job_id}")

    start = time.monotonic()
    while True:
        current = store.find_by_id(job.job_id)
        last_error = (current.last_error or "")[:200] or None
        logger.info(
            f"Status: {current.status} attempts: {current.attempts} "
            f"next_run_at: {current.next_run_at} last_error: {last_error}"
        )
        if current.status in TERMINAL_STATUSES:
            break
        if time.monotonic() - start > args.timeout:
            logger.warning("Timeout waiting for job to complete")
            return 2
        time.sleep(args.every)

    score = (current.result or {}).get("score") if current.result else None
    logger.info(f"Final job: {current.status} result: {score if score is not None else current.result}")
    return 0 if current.status == "done" else 1


if __name__ == "__main__":
    sys.exit(main())
