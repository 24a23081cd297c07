"""
ASGI entry point for running under an external server.

Run with:
    uvicorn server.asgi:app
"""

from server.formgate.app import create_app

app = create_app()
