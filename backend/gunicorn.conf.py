import os

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Application logs go through the JSON root handler; gunicorn's own to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# ProxyFix in the app trusts one hop; gunicorn forwards the headers as-is
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
proxy_protocol = False

wsgi_app = "portfolio.wsgi:app"
