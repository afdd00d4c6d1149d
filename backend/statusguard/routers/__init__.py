"""API routers."""
from .health_checks import router as health_checks_router

__all__ = ["health_checks_router"]
