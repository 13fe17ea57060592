"""
API v1 package.

Contains versioned API routes for the Soulmark registry.
"""

from soulmark.api.v1.routes import router

__all__ = ["router"]
