"""Routes package for FastAPI endpoints.

This package contains all API route modules for the lecture survey service.
"""

from app.routes import closure, health, responses, results

__all__ = ["closure", "health", "responses", "results"]
