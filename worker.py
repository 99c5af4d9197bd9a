#!/usr/bin/env python3
"""
Worker RQ avec logging JSON structuré.
Usage: python worker.py <queue_name>
"""
import sys

import redis
from rq import Queue, Worker

from app.core.config import LOG_LEVEL, REDIS_URL
from app.core.logging import setup_logging

setup_logging(level=LOG_LEVEL)

redis_conn = redis.from_url(REDIS_URL)


def main():
    queue_names = sys.argv[1:] if len(sys.argv) > 1 else ["default"]
    queues = [Queue(name, connection=redis_conn) for name in queue_names]
    worker = Worker(queues, connection=redis_conn)
    worker.work()


if __name__ == "__main__":
    main()
