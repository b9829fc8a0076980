import multiprocessing
import os

# Gunicorn configuration file
# Run with: gunicorn -c gunicorn_conf.py taskboard.main:app

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Handlers are stateless, so any worker count is safe.
# Default: (2 x num_cores) + 1
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"

timeout = 60
keepalive = 5

# Access log to stdout, errors to stderr; application errors also go to LOG_FILE
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

proc_name = "taskboard_api"
