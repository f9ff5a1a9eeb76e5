"""
API sub-package for the HTML Render Service.

Contains the FastAPI application (`api.main`), response models and routes.
Import `html_render_service.api.main.app` directly to serve it.
"""

__all__ = []
