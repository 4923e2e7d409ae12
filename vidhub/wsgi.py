"""
wsgi.py — Process entry point.

    gunicorn vidhub.wsgi:app
    flask --app vidhub.wsgi run

FLASK_ENV selects the config class (development | testing | production).
"""

import os

from vidhub.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
