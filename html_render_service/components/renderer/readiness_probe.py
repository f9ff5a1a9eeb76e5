"""
Best-effort check that a freshly loaded document has visible content.

"DOM content loaded" says nothing about fonts, late images or DOM inserted by
scripts. The probe waits a fixed quantum, measures the document, and if it
still looks empty waits one longer quantum and measures again. It stops after
the second reading whatever it shows.

States: LOADED -> PROBING(attempt=1) -> PROBING(attempt=2) -> DONE
"""
import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Optional

from html_render_service.core.config import int_setting
from html_render_service.core.logger import get_logger
from html_render_service.core.models import ReadinessResult

if TYPE_CHECKING:
    from playwright.async_api import Page
    from html_render_service.core.config import ConfigurationManager

logger = get_logger(__name__)

MEASURE_DOCUMENT_JS = """() => ({
    textLength: document.body ? (document.body.innerText || "").length : 0,
    markupLength: document.documentElement ? document.documentElement.outerHTML.length : 0,
})"""


class ProbeState(Enum):
    LOADED = "loaded"
    PROBING = "probing"
    DONE = "done"


class ReadinessProbe:
    """Waits, bounded, until a page's document looks non-empty."""
    MAX_ATTEMPTS = 2
    DEFAULT_INITIAL_DELAY_MS = 1000
    DEFAULT_EXTENSION_DELAY_MS = 2000
    DEFAULT_MIN_MARKUP_LENGTH = 100

    def __init__(self, config: Optional['ConfigurationManager'] = None):
        prefix = "components.readiness_probe."
        self.initial_delay_ms = int_setting(config, prefix + "initial_delay_ms", self.DEFAULT_INITIAL_DELAY_MS)
        self.extension_delay_ms = int_setting(config, prefix + "extension_delay_ms", self.DEFAULT_EXTENSION_DELAY_MS)
        self.min_markup_length = int_setting(config, prefix + "min_markup_length", self.DEFAULT_MIN_MARKUP_LENGTH)

    def is_satisfied(self, text_length: int, markup_length: int) -> bool:
        """A document counts as empty only if it has no text AND almost no markup."""
        return not (text_length == 0 and markup_length < self.min_markup_length)

    async def _measure(self, page: 'Page', attempt: int) -> ReadinessResult:
        try:
            sizes = await page.evaluate(MEASURE_DOCUMENT_JS)
            text_length = int(sizes.get("textLength", 0))
            markup_length = int(sizes.get("markupLength", 0))
        except Exception as e:
            logger.warning(f"Readiness probe could not read the document on attempt {attempt}: {e}")
            return ReadinessResult(text_length=0, markup_length=0, attempt=attempt, probe_error=str(e))
        return ReadinessResult(
            text_length=text_length,
            markup_length=markup_length,
            attempt=attempt,
            satisfied=self.is_satisfied(text_length, markup_length),
        )

    async def wait(self, page: 'Page') -> ReadinessResult:
        """
        Runs the probe against `page` and returns the final reading.

        Never raises for document-read failures; at most
        `initial_delay_ms + extension_delay_ms` is spent sleeping.
        """
        state = ProbeState.LOADED
        attempt = 0
        reading: Optional[ReadinessResult] = None

        while state is not ProbeState.DONE:
            if state is ProbeState.LOADED:
                await asyncio.sleep(self.initial_delay_ms / 1000)
                state = ProbeState.PROBING
                continue

            attempt += 1
            reading = await self._measure(page, attempt)
            logger.debug(
                f"Readiness attempt {attempt}: text_length={reading.text_length}, "
                f"markup_length={reading.markup_length}, satisfied={reading.satisfied}"
            )
            if reading.satisfied or attempt >= self.MAX_ATTEMPTS:
                state = ProbeState.DONE
            else:
                logger.info(f"Document looks empty, waiting {self.extension_delay_ms}ms before re-reading.")
                await asyncio.sleep(self.extension_delay_ms / 1000)

        if not reading.satisfied:
            logger.info(f"Capturing after {attempt} readings without visible content.")
        return reading
