"""
WSGI entry point for the Delivery Planner API.

Usage:
    gunicorn wsgi:app                 # APP_ENV selects the config class
    flask --app wsgi db upgrade       # apply migrations/versions
    flask --app wsgi run              # local development server
"""

from app import create_app

app = create_app()
