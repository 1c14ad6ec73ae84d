import time
import logging
import signal
import threading
import argparse
from datetime import datetime, timedelta, timezone

from core.app_context import AppContext
from core.config_loader import load_config, ScheduleConfig
from database.database import configure_database
from database.init_db import init_db
from pipeline.runner import run_daily_matching

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Set on SIGINT/SIGTERM; the run stops between batches
stop_event = threading.Event()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    stop_event.set()


def next_run_time(now: datetime, schedule: ScheduleConfig) -> datetime:
    """Next daily trigger strictly after ``now`` (UTC)."""
    candidate = now.replace(hour=schedule.hour, minute=schedule.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def run_once(ctx: AppContext) -> bool:
    summary = run_daily_matching(ctx, stop_event=stop_event)
    logger.info(f"Run summary: {summary.to_dict()}")
    return summary.success


def main():
    parser = argparse.ArgumentParser(description="ScholarMatch daily matching driver")
    parser.add_argument('--config', default='config.yaml', help='Path to config file')
    parser.add_argument('--run-once', action='store_true', help='Run a single matching pass and exit')
    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    config = load_config(args.config)
    configure_database(config.database.url)

    # Initialize DB (with retry logic)
    init_db()

    ctx = AppContext.build(config)
    try:
        if args.run_once:
            return 0 if run_once(ctx) else 1

        schedule = config.schedule
        logger.info(f"Daily matching scheduled at {schedule.run_at} UTC")
        while not stop_event.is_set():
            next_run = next_run_time(datetime.now(timezone.utc), schedule)
            logger.info(f"Next run at {next_run.isoformat()}")

            # Sleep in chunks to allow responsive shutdown
            while not stop_event.is_set() and datetime.now(timezone.utc) < next_run:
                remaining = (next_run - datetime.now(timezone.utc)).total_seconds()
                stop_event.wait(min(schedule.poll_interval_seconds, max(remaining, 0)))

            if stop_event.is_set():
                break

            cycle_start = time.time()
            try:
                run_once(ctx)
            except Exception as e:
                logger.error(f"Error in main loop: {e}", exc_info=True)
            logger.info(f"=== Daily run completed in {time.time() - cycle_start:.2f}s ===")
    finally:
        ctx.close()

    logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
