"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from recall.api.routes import auth, content, health, search

# Create main API router
api_router = APIRouter()

# Include health check routes
api_router.include_router(health.router)

# Include authentication routes
api_router.include_router(auth.router)

# Include content routes
api_router.include_router(content.router)

# Include search routes
api_router.include_router(search.router)
