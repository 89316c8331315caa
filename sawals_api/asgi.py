"""Uvicorn entry point: `uvicorn sawals_api.asgi:app`."""
from sawals_api.main import create_app

app = create_app()
