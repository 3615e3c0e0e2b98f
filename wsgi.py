"""
WSGI entry point (gunicorn) and Flask-Migrate / Alembic target.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi seed-demo-data
"""

from audit_workflow import create_app

app = create_app()
