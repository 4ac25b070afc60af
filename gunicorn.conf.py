# Gunicorn configuration: gunicorn -c gunicorn.conf.py teleconsult.app:app
import os
import sys

# Add src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', 8000)}"
backlog = 2048

# Worker processes. More than one worker requires REDIS_ENABLED=true, since
# sessions, tokens and payment orders must be shared across processes.
workers = int(os.environ.get("WEB_CONCURRENCY", 2))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Diagnosis requests may take up to three 30s attempts plus backoff.
timeout = 120
keepalive = 5

max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()

proc_name = "teleconsult-backend"

# Each worker opens its own Mongo and Redis clients inside the app lifespan.
preload_app = False
daemon = False
