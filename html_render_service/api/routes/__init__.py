"""
API Routes sub-package for the HTML Render Service.

The render router is re-exported here for inclusion in `api/main.py`.
"""

from .render_routes import router as render_router

__all__ = [
    "render_router",
]
