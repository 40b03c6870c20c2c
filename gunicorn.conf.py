"""
Gunicorn configuration for the registry API.
"""
import multiprocessing
from pathlib import Path

# LOG_DIR and process name come from .env via framework.config
from framework.config import settings

LOG_DIR = Path(settings.LOG_DIR)
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Server
bind = "0.0.0.0:8000"
backlog = 2048

# Workers: the API is I/O bound (database, Redis), one async worker per core is enough
workers = min(multiprocessing.cpu_count(), 8)
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 2000
max_requests_jitter = 100
timeout = 60  # bulk writes are capped, so no request should run longer
keepalive = 5
graceful_timeout = 30

proc_name = (settings.GUNICORN_PROC_NAME or settings.APP_NAME.lower().replace(" ", "-"))[:32]

# Logging
accesslog = str(LOG_DIR / "gunicorn_access.log")
errorlog = str(LOG_DIR / "gunicorn_error.log")
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process management (systemd owns user/group and daemonizing)
daemon = False
pidfile = str(LOG_DIR / "gunicorn.pid")
umask = 0o007
preload_app = True
worker_tmp_dir = "/dev/shm"

# Request limits
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info("%s is ready. Listening on %s", settings.APP_NAME, server.address)


def on_exit(server):
    server.log.info("%s is shutting down.", settings.APP_NAME)


def post_fork(server, worker):
    # Engines and Redis pools must not be shared across forks; each worker builds its own lazily
    from framework.database.manager import DatabaseManager
    DatabaseManager._instance = None
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    worker.log.info("Worker received SIGABRT signal")
