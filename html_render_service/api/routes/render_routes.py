"""
API route that turns an HTML document into a PNG.

The body is read as text whatever its declared content type; a JSON envelope
`{"html": "..."}` is detected by the pipeline, not by the header.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response

from html_render_service.core.config import config_manager
from html_render_service.core.exceptions import ErrorKind
from html_render_service.core.logger import get_logger
from html_render_service.core.models import RenderRequest
from html_render_service.core.orchestrator import RenderOrchestrator

logger = get_logger(__name__)

DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024

router = APIRouter()

_orchestrator: Optional[RenderOrchestrator] = None


def get_render_orchestrator() -> RenderOrchestrator:
    """FastAPI dependency providing the process-wide `RenderOrchestrator`."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RenderOrchestrator(config=config_manager)
    return _orchestrator


def _max_body_bytes() -> int:
    return int(config_manager.get("api.max_body_bytes", DEFAULT_MAX_BODY_BYTES))


@router.post(
    "/render",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}}, "description": "The rendered document as PNG."},
        400: {"description": "No HTML provided."},
        413: {"description": "Request body too large."},
        500: {"description": "Rendering failed."},
    },
    summary="Render an HTML document to PNG",
    description="Accepts raw HTML, or a JSON envelope {\"html\": \"...\"}, renders it in a headless "
                "browser at a 1080x1350 viewport and returns the screenshot as image/png.",
)
async def render_endpoint(request: Request, orchestrator: RenderOrchestrator = Depends(get_render_orchestrator)):
    max_bytes = _max_body_bytes()
    declared_length = request.headers.get("content-length")
    if declared_length and declared_length.isdigit() and int(declared_length) > max_bytes:
        logger.warning(f"Rejecting body of declared length {declared_length} (limit {max_bytes}).")
        return PlainTextResponse("Payload too large", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

    body = await request.body()
    if len(body) > max_bytes:
        logger.warning(f"Rejecting body of {len(body)} bytes (limit {max_bytes}).")
        return PlainTextResponse("Payload too large", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

    render_request = RenderRequest.from_body(body.decode("utf-8", errors="replace"))
    result = await orchestrator.handle(render_request)

    if result.ok:
        headers = {"X-Render-Duration-Ms": str(result.duration_ms)}
        size = result.image_size
        if size:
            headers["X-Image-Width"], headers["X-Image-Height"] = str(size[0]), str(size[1])
        return Response(content=result.image, media_type="image/png", headers=headers)

    error = result.error
    if error.kind is ErrorKind.EMPTY_INPUT:
        return PlainTextResponse("No HTML provided", status_code=status.HTTP_400_BAD_REQUEST)
    return PlainTextResponse(
        f"Failed to generate screenshot: {error.detail}",
        status_code=error.http_status,
        headers={"X-Render-Error-Kind": error.kind.value},
    )
