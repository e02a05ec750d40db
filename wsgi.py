"""
WSGI and Flask-Migrate / Alembic entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi reset-mock
"""

from crm import create_app

app = create_app()
