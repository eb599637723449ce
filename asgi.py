"""
asgi.py -- ASGI entry point for the MeoMeo API.

api/main.py builds the application; this module only exposes it under a
stable import path for the server process.

Run with:  uvicorn asgi:app --reload
Production: uvicorn asgi:app --host 0.0.0.0 --port 8000 --proxy-headers
"""

from api.main import app

__all__ = ["app"]
