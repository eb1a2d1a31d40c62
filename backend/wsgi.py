# backend/wsgi.py
from roomkeeper import create_app

app = create_app()
