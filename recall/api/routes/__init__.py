"""
API route modules.

Import all route modules here for easy access.
"""

from recall.api.routes import auth, content, health, search

__all__ = ["auth", "content", "health", "search"]
