"""
Entry point of the render pipeline.

`RenderOrchestrator.handle` takes a `RenderRequest` through
validate -> resolve -> load -> probe -> capture -> close and returns a
`RenderResult`. Classified failures come back as a result, not as exceptions.
"""
import time
from typing import TYPE_CHECKING, Any, Callable, Optional

from playwright.async_api import async_playwright

from html_render_service.components.renderer.engine_session import EngineSession
from html_render_service.components.renderer.executable_resolver import ExecutableResolver, ResolvedEngine
from html_render_service.components.renderer.readiness_probe import ReadinessProbe
from html_render_service.core.exceptions import ErrorKind, InputError, RenderError
from html_render_service.core.logger import get_logger
from html_render_service.core.models import RenderRequest, RenderResult

if TYPE_CHECKING:
    from html_render_service.core.config import ConfigurationManager

logger = get_logger(__name__)

PREVIEW_CHARS = 300


class RenderOrchestrator:
    """
    Drives one render per request, each with its own browser process.

    The orchestrator itself holds no per-request state, so one instance can
    serve concurrent requests. The only thing carried between requests is the
    resolver's remembered executable path under the `cached` policy.
    """

    def __init__(
        self,
        config: Optional['ConfigurationManager'] = None,
        resolver: Optional[ExecutableResolver] = None,
        probe: Optional[ReadinessProbe] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        """
        Args:
            config (Optional[ConfigurationManager]): Configuration for all pipeline components.
            resolver (Optional[ExecutableResolver]): Executable resolver; built from `config` if None.
            probe (Optional[ReadinessProbe]): Readiness probe; built from `config` if None.
            playwright_factory (Callable): Returns the async context manager that starts and
                stops the Playwright driver. `async_playwright` in production.
        """
        self.config = config
        self.resolver = resolver if resolver is not None else ExecutableResolver(config)
        self.probe = probe if probe is not None else ReadinessProbe(config)
        self.playwright_factory = playwright_factory

    @staticmethod
    def validate(request: Optional[RenderRequest]) -> str:
        """
        Returns the markup to render.

        Raises:
            InputError: If the request or its effective markup is empty.
        """
        if request is None or not request.content or not request.content.strip():
            raise InputError()
        markup = request.effective_markup
        if not markup or not markup.strip():
            raise InputError("No HTML provided (envelope 'html' field is empty)")
        return markup

    async def handle(self, request: Optional[RenderRequest]) -> RenderResult:
        """
        Renders one request.

        Args:
            request (Optional[RenderRequest]): The inbound document.

        Returns:
            RenderResult: PNG bytes on success, otherwise the classified `RenderError`.
        """
        started = time.monotonic()

        def elapsed_ms() -> float:
            return round((time.monotonic() - started) * 1000, 1)

        try:
            markup = self.validate(request)
        except InputError as e:
            logger.warning(f"Rejecting render request: {e.detail}")
            return RenderResult.failure(e, duration_ms=elapsed_ms())

        logger.info(f"Rendering HTML ({request.content_type.value}, length {len(markup)}).")
        logger.debug(f"HTML preview: {markup[:PREVIEW_CHARS]} ...")

        engine: Optional[ResolvedEngine] = None
        session: Optional[EngineSession] = None
        image: Optional[bytes] = None
        stage = ErrorKind.NO_ENGINE_AVAILABLE
        try:
            async with self.playwright_factory() as playwright:
                engine = await self.resolver.resolve(playwright.chromium)
                stage = ErrorKind.LOAD_FAILURE
                session = EngineSession.open(engine, probe=self.probe, config=self.config)
                try:
                    image = await session.render(markup)
                finally:
                    await session.close()
        except RenderError as e:
            logger.error(f"Render failed [{e.kind.value}]: {e.detail}", exc_info=True)
            return RenderResult.failure(
                e,
                executable_path=engine.executable_path if engine else None,
                readiness=session.readiness if session else None,
                duration_ms=elapsed_ms(),
            )
        except Exception as e:
            if image is not None:
                # Only the driver shutdown failed; the capture is complete and the browser closed.
                logger.error(f"Error stopping the Playwright driver after render: {e}", exc_info=True)
                return self._success(image, engine, session, elapsed_ms())
            # Raised outside the classified stages (e.g. the Playwright driver failing to start).
            logger.error(f"Unexpected error during render: {e}", exc_info=True)
            if engine is not None and session is None:
                try:
                    await engine.browser.close()
                except Exception as close_error:
                    logger.error(f"Error closing browser after failure: {close_error}", exc_info=True)
            error = RenderError(stage, "Unexpected error during render", original_exception=e)
            return RenderResult.failure(
                error,
                executable_path=engine.executable_path if engine else None,
                duration_ms=elapsed_ms(),
            )

        return self._success(image, engine, session, elapsed_ms())

    @staticmethod
    def _success(image: bytes, engine: ResolvedEngine, session: EngineSession, duration_ms: float) -> RenderResult:
        result = RenderResult.success(
            image,
            executable_path=engine.executable_path,
            readiness=session.readiness,
            duration_ms=duration_ms,
        )
        logger.info(f"Render completed in {result.duration_ms}ms ({len(image)} bytes).")
        return result
