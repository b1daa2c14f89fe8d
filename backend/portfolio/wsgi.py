"""WSGI entry point (``gunicorn -c gunicorn.conf.py portfolio.wsgi:app``)."""

from portfolio import create_app

app = create_app()
