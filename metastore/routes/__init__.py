"""API route definitions."""

from metastore.routes.conflict_routes import router as conflict_router
from metastore.routes.metadata_routes import router as metadata_router
from metastore.routes.metadata_routes import versions_router

__all__ = ["metadata_router", "versions_router", "conflict_router"]
