"""
REST API module for the membership lookup service.
"""

from .routes import router, create_api_app

__all__ = ["router", "create_api_app"]
