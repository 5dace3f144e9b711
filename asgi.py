"""
asgi.py -- ASGI entry point for todoguard.

Process managers and uvicorn import the application from here rather than
from api/main.py, so deployment config never has to know the package layout.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
