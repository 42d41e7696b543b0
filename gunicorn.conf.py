"""
Gunicorn Configuration

Uvicorn workers serving src.main:app.
"""

import multiprocessing
import os

bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('API_PORT', '8000')}")
backlog = 2048

# Every worker holds its own engine pool; keep the count modest
workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 9)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "storefront-analytics-api"

daemon = False
pidfile = None

# Application logs go through structlog; gunicorn only owns its own
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None


def when_ready(server):
    """Called when the master is ready to receive connections."""
    server.log.info("storefront-analytics-api ready on %s with %s workers", bind, workers)


def post_fork(server, worker):
    """Called after a worker has been forked."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    """Called when a worker times out."""
    worker.log.warning("Worker aborted (pid: %s)", worker.pid)
