"""API routers."""

from crmbridge.app.api.routes import router

__all__ = ["router"]
