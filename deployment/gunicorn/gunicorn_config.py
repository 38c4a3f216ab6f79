"""
Gunicorn configuration for the contact form service.

    gunicorn core.wsgi:application -c deployment/gunicorn/gunicorn_config.py
"""
import os

bind = os.getenv("GUNICORN_BIND", "127.0.0.1:8000")
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "sync"
max_requests = 1000
max_requests_jitter = 100

# Above RECAPTCHA_TIMEOUT + EMAIL_TIMEOUT so a slow upstream gets its own
# timeout error instead of a killed worker
timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "contact-form"


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Contact form service is ready. Spawning workers")


def worker_abort(worker):
    """Called when a worker is killed for exceeding the timeout."""
    worker.log.warning("Worker aborted; a request outlived the gunicorn timeout")
