# backend/wsgi.py
from tireplan import create_app

app = create_app()
