"""Gunicorn configuration for the harness API."""
import os
import sys

bind = f"0.0.0.0:{os.getenv('PF_PORT', '7080')}"
# The local engine keeps its jobs in process memory; a single worker keeps
# submissions and status queries on the same engine.
workers = 1
threads = int(os.getenv("PF_GUNICORN_THREADS", "4"))
timeout = 120
worker_class = "gthread"
preload_app = False


def post_worker_init(worker):
    """Called just after a worker has initialized the application."""
    app = worker.wsgi
    settings = app.config.get('pf_settings') if hasattr(app, 'config') else None
    if settings is None:
        print(f"[Worker {worker.pid}] WARNING: settings not found in app.config", file=sys.stderr, flush=True)
        return
    print(f"[Worker {worker.pid}] Serving with {settings.engine} engine", file=sys.stderr, flush=True)
