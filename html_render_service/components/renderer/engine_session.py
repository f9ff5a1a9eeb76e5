"""
One browser process, one page, one render.

This module provides `EngineSession`, which takes ownership of a launched
browser (see `ExecutableResolver`) for the length of a single request: it opens
a page at the card viewport, injects the markup, lets the `ReadinessProbe`
wait for content, captures a PNG, and closes the page and the browser on every
exit path. It can also be used as an asynchronous context manager.
"""
from typing import TYPE_CHECKING, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from html_render_service.components.renderer.readiness_probe import ReadinessProbe
from html_render_service.core.config import int_setting
from html_render_service.core.exceptions import ErrorKind, SessionError
from html_render_service.core.logger import get_logger
from html_render_service.core.models import ReadinessResult

if TYPE_CHECKING:
    from playwright.async_api import Page
    from html_render_service.components.renderer.executable_resolver import ResolvedEngine
    from html_render_service.core.config import ConfigurationManager

logger = get_logger(__name__)


class EngineSession:
    """
    Owns exactly one browser process and at most one page for a single request.

    Attributes:
        engine (ResolvedEngine): The launched browser and the executable it came from.
        probe (ReadinessProbe): The readiness heuristic run between load and capture.
        page (Optional[Page]): The page context, once created.
        readiness (Optional[ReadinessResult]): The final probe reading of the last render.
    """
    DEFAULT_VIEWPORT_WIDTH = 1080
    DEFAULT_VIEWPORT_HEIGHT = 1350
    DEFAULT_LOAD_TIMEOUT = 30000  # Milliseconds

    def __init__(
        self,
        engine: 'ResolvedEngine',
        probe: Optional[ReadinessProbe] = None,
        config: Optional['ConfigurationManager'] = None,
    ):
        """
        Takes ownership of `engine.browser`; prefer `EngineSession.open()`.

        Args:
            engine (ResolvedEngine): The launched browser.
            probe (Optional[ReadinessProbe]): Readiness probe; one is built from `config` if None.
            config (Optional[ConfigurationManager]): Source of `components.engine_session.*` settings.
        """
        get = config.get if config else (lambda key, default=None: default)
        prefix = "components.engine_session."
        self.viewport_width = int_setting(config, prefix + "viewport_width", self.DEFAULT_VIEWPORT_WIDTH, minimum=1)
        self.viewport_height = int_setting(config, prefix + "viewport_height", self.DEFAULT_VIEWPORT_HEIGHT, minimum=1)
        # 0 would disable the load timeout in Playwright.
        self.load_timeout = int_setting(config, prefix + "load_timeout_ms", self.DEFAULT_LOAD_TIMEOUT, minimum=1)
        self.full_page = bool(get(prefix + "full_page", True))

        self.engine = engine
        self.browser = engine.browser
        self.probe = probe if probe is not None else ReadinessProbe(config)
        self.page: Optional['Page'] = None
        self.readiness: Optional[ReadinessResult] = None

        self._closing = False
        self._closed = False
        self._disconnected = False
        self.browser.on("disconnected", self._on_disconnected)

    @classmethod
    def open(
        cls,
        engine: 'ResolvedEngine',
        probe: Optional[ReadinessProbe] = None,
        config: Optional['ConfigurationManager'] = None,
    ) -> 'EngineSession':
        return cls(engine, probe=probe, config=config)

    async def __aenter__(self) -> 'EngineSession':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _on_disconnected(self, *_args) -> None:
        if not self._closing:
            logger.error("Browser process disconnected before the session was closed.")
        self._disconnected = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _engine_gone(self) -> bool:
        if self._disconnected:
            return True
        try:
            return not self.browser.is_connected()
        except Exception:
            return True

    def _classify(self, error: Exception, kind: ErrorKind, message: str) -> SessionError:
        """Builds the SessionError for `error`, blaming the engine if it has died."""
        if self._engine_gone():
            kind = ErrorKind.SESSION_CLOSED_PREMATURELY
            message = f"Browser process terminated unexpectedly ({message.lower()})"
        return SessionError(kind, message, original_exception=error)

    async def render(self, markup: str, timeout: Optional[int] = None) -> bytes:
        """
        Renders `markup` to PNG bytes, then closes the page and the browser.

        Args:
            markup (str): The HTML document to render.
            timeout (Optional[int]): Content-load timeout in milliseconds.
                Uses the configured `load_timeout_ms` if None.

        Returns:
            bytes: The captured PNG image.

        Raises:
            SessionError: `LoadTimeout`, `LoadFailure`, `CaptureFailure` or
                `SessionClosedPrematurely`. The session is closed before it propagates.
        """
        if self._closed:
            raise SessionError(ErrorKind.SESSION_CLOSED_PREMATURELY, "Session was already closed")

        effective_timeout = timeout if timeout is not None else self.load_timeout
        try:
            try:
                self.page = await self.browser.new_page()
                await self.page.set_viewport_size({"width": self.viewport_width, "height": self.viewport_height})
            except Exception as e:
                logger.error(f"Failed to create page: {e}", exc_info=True)
                raise self._classify(e, ErrorKind.LOAD_FAILURE, "Failed to create page")

            try:
                # "networkidle" never settles for long-polling or streaming resources.
                await self.page.set_content(markup, wait_until="domcontentloaded", timeout=effective_timeout)
            except PlaywrightTimeoutError as e:
                logger.error(f"Content did not load within {effective_timeout}ms.", exc_info=True)
                raise self._classify(e, ErrorKind.LOAD_TIMEOUT, f"Content did not load within {effective_timeout}ms")
            except Exception as e:
                logger.error(f"Failed to set page content: {e}", exc_info=True)
                raise self._classify(e, ErrorKind.LOAD_FAILURE, "Failed to set page content")

            self.readiness = await self.probe.wait(self.page)

            try:
                image = await self.page.screenshot(type="png", full_page=self.full_page)
            except Exception as e:
                logger.error(f"Screenshot failed: {e}", exc_info=True)
                raise self._classify(e, ErrorKind.CAPTURE_FAILURE, "Failed to capture screenshot")

            logger.info(f"Captured {len(image)} byte PNG.")
            return image
        finally:
            await self.close()

    async def close(self) -> None:
        """Closes the page and the browser. Safe to call more than once; never raises."""
        if self._closed:
            return
        self._closing = True
        if self.page is not None:
            try:
                await self.page.close()
                logger.debug("Page closed.")
            except Exception as e:
                logger.error(f"Error closing page: {e}", exc_info=True)
        try:
            await self.browser.close()
            logger.debug("Browser closed.")
        except Exception as e:
            logger.error(f"Error closing browser: {e}", exc_info=True)
        self._closed = True
