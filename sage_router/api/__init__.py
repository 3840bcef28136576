"""
Sage Router - API Module

Thin HTTP surface over the router service.
"""

from .routes import router as routing_router
from .dependencies import get_service, set_service_getter

__all__ = [
    "routing_router",
    "get_service",
    "set_service_getter",
]
