"""FastAPI routes for the nodeflow service."""

from .api import router as api_router
from .streaming import router as stream_router

__all__ = [
    "api_router",
    "stream_router",
]
