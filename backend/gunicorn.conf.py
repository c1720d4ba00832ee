import os

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = 1
timeout = 30
graceful_timeout = 30
keepalive = 5
wsgi_app = "wsgi:app"

# Logs to stdout/stderr (collected by Docker); app logs are JSON already
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers; ProxyFix in the app honours one X-Forwarded-For hop
forwarded_allow_ips = "*"
proxy_protocol = False
