# backend/wsgi.py
from techsheet import create_app

app = create_app()
