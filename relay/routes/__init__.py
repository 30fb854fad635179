"""API routes package."""

from relay.routes.file_routes import router as file_router
from relay.routes.upload_routes import router as upload_router

__all__ = ["file_router", "upload_router"]
