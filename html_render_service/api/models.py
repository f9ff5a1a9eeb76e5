"""
Pydantic response models for the HTML Render Service API.

The render endpoint itself answers with raw PNG bytes or plain text; these
models cover the JSON endpoints and the global error handlers.
"""
from typing import Any, List, Optional
from pydantic import BaseModel


class ServiceInfoResponse(BaseModel):
    """Response model for the API root endpoint."""
    message: str
    version: str
    render_endpoint: str
    documentation_url: Optional[str] = None
    redoc_url: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body returned by the global exception handlers."""
    detail: str
    errors: Optional[List[Any]] = None
