# backend/wsgi.py
from autoparts import create_app

app = create_app()
