"""
API Routes Package

This module exports all FastAPI routers for the tracker.
"""

from .presence_routes import router as presence_router

__all__ = [
    "presence_router",
]
