#!/usr/bin/env python3
"""
RQ Worker for the ScholarMatch Notification Service

Processes match notifications from the Redis Queue.

Usage:
    python -m notification.worker
    python -m notification.worker --burst
    python -m notification.worker --config config.yaml --verbose
"""

import sys
import argparse
import logging

from redis import Redis
from redis.exceptions import RedisError
from rq import Worker

from core.config_loader import load_config
from database.database import configure_database

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def start_worker(redis_url: str, burst: bool = False, queues: list = None):
    """Start the RQ worker."""
    if queues is None:
        queues = ['notifications']

    logger.info("Starting RQ Worker")
    logger.info(f"Queues: {', '.join(queues)}")
    logger.info(f"Burst mode: {burst}")

    try:
        redis_conn = Redis.from_url(redis_url)
        redis_conn.ping()
        logger.info("Connected to Redis")

        worker = Worker(queues, connection=redis_conn)

        if burst:
            logger.info("Running in burst mode...")
            worker.work(burst=True)
        else:
            logger.info("Worker started. Press Ctrl+C to stop.")
            worker.work()

    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except RedisError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='ScholarMatch Notification Worker')
    parser.add_argument('--config', default='config.yaml', help='Path to config file')
    parser.add_argument('--burst', action='store_true', help='Process all and exit')
    parser.add_argument('--queues', nargs='+', default=['notifications'])
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    # Tasks record delivery attempts and write in-app rows
    configure_database(config.database.url)

    redis_url = config.notifications.redis_url or 'redis://localhost:6379/0'
    start_worker(redis_url, burst=args.burst, queues=args.queues)


if __name__ == '__main__':
    main()
