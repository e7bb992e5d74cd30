"""
HTTP Interface

FastAPI endpoints.
"""

from .rest import app, create_app, main

__all__ = ["app", "create_app", "main"]
