"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-demo
    gunicorn wsgi:app
"""

from gearguard import create_app

app = create_app()
