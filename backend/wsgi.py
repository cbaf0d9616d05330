# backend/wsgi.py
from loja import create_app

app = create_app()
