"""API routers."""
from .push import router as push_router
from .admin import router as admin_router

__all__ = ["push_router", "admin_router"]
