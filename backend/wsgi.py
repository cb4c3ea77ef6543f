# backend/wsgi.py
# Entry point for `flask --app wsgi ...` and WSGI servers (gunicorn wsgi:app).
from zenibo import create_app

app = create_app()
