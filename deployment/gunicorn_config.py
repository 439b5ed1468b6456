"""
Gunicorn Configuration for Retirement Planner
Production WSGI server settings

    gunicorn -c deployment/gunicorn_config.py "app:create_app('production')"
"""
import multiprocessing
import os

# Server Socket
bind = os.environ.get('GUNICORN_BIND', '127.0.0.1:8000')
backlog = 2048

# Worker Processes
workers = multiprocessing.cpu_count() * 2 + 1
worker_class = 'sync'
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 50
timeout = 60
keepalive = 5

# Logging
accesslog = '/home/planner/app/logs/gunicorn_access.log'
errorlog = '/home/planner/app/logs/gunicorn_error.log'
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process Naming
proc_name = 'retirement-planner'

# Server Mechanics
daemon = False
pidfile = '/home/planner/app/gunicorn.pid'
umask = 0o007
user = None
group = None
tmp_upload_dir = None

# SSL (handled by nginx, not needed here)
# keyfile = None
# certfile = None

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

def post_fork(server, worker):
    """Called after a worker has been forked"""
    server.log.info("Worker spawned (pid: %s)", worker.pid)

def when_ready(server):
    """Called when the server is ready"""
    server.log.info("Server is ready. Spawning workers")

def worker_int(worker):
    """Called when a worker receives an INT or QUIT signal"""
    worker.log.info("worker received INT or QUIT signal")

def worker_abort(worker):
    """Called when a worker fails to boot or times out"""
    worker.log.info("worker received SIGABRT signal")
