"""
FastAPI Backend for Statement Imports

Provides REST API endpoints for previewing imports.
"""

from .main import app

__all__ = ["app"]
