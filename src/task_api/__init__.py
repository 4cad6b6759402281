"""
FastAPI Task API package.

The ASGI application lives in ``task_api.main:app``; ``create_app`` builds a
fresh instance with explicit settings or store.
"""

__version__ = "0.1.0"
