"""API routers."""

from .health import router as health_router
from .workflows import router as workflows_router

__all__ = [
    "health_router",
    "workflows_router",
]
