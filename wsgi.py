"""
WSGI / Flask-Migrate entry point for the report API.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db init       # first time only (creates migrations/)
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from tracker import create_app

app = create_app()
