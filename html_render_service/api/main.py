"""
Main application file for the HTML Render Service API.

This file initializes the FastAPI application, sets up logging,
registers global exception handlers, and includes the render router.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from html_render_service.api.models import ErrorResponse, ServiceInfoResponse
from html_render_service.api.routes import render_router
from html_render_service.core.config import config_manager
from html_render_service.core.exceptions import RenderServiceError
from html_render_service.core.logger import get_logger, setup_logging

# --- Logging Setup ---
try:
    setup_logging(config_manager)
    logger = get_logger(__name__)
    logger.info("Logging successfully initialized for FastAPI application.")
except Exception as e:
    import logging as py_logging
    py_logging.basicConfig(level=py_logging.WARNING, format="%(asctime)s - %(levelname)s - CRITICAL - Failed to setup custom logging: %(message)s")
    py_logging.critical(f"Failed to initialize custom logging via ConfigurationManager: {e}", exc_info=True)
    logger = py_logging.getLogger(__name__)


app = FastAPI(
    title="HTML Render Service API",
    description="Renders HTML documents to PNG images with a headless Chromium browser.",
    version="0.1.0",
)


# --- Global Exception Handlers ---

@app.exception_handler(RenderServiceError)
async def render_service_exception_handler(request: Request, exc: RenderServiceError):
    """
    Handles application exceptions that escape a route.

    The render route maps pipeline failures itself; this catches anything
    raised outside it, e.g. while building the orchestrator.
    """
    logger.error(
        f"RenderServiceError caught: {exc.__class__.__name__} - {exc.message} "
        f"for request: {request.method} {request.url}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=f"An application error occurred: {exc.message}").model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"RequestValidationError caught for: {request.method} {request.url}. Errors: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(detail="Request validation failed", errors=exc.errors()).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all so that clients always get a JSON 500 for unexpected errors."""
    logger.critical(
        f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
        f"for request: {request.method} {request.url}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail="An unexpected server error occurred.").model_dump(exclude_none=True),
    )


# --- Routers ---
app.include_router(render_router, tags=["Rendering"])


@app.get("/", tags=["General"], summary="API Root Endpoint", response_model=ServiceInfoResponse)
async def read_root():
    """Basic service information and documentation links."""
    return ServiceInfoResponse(
        message="Welcome to the HTML Render Service API",
        version=app.version,
        render_endpoint="/render",
        documentation_url=app.docs_url,
        redoc_url=app.redoc_url,
    )


if __name__ == "__main__":
    # Local runs only; production uses `uvicorn html_render_service.api.main:app`.
    import uvicorn

    host = config_manager.get("api.host", "0.0.0.0")
    port = int(config_manager.get("api.port", 3000))
    logger.info(f"Screenshot service listening on {host}:{port}")
    uvicorn.run(app, host=host, port=port)
