"""API routes package."""

from gateway.routes.resolve_routes import router as resolve_router

__all__ = ["resolve_router"]
