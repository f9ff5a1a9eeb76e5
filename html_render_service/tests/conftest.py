import io
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image


class MockConfigurationManager:
    """Dot-notation `get` over a plain dict, standing in for ConfigurationManager."""
    def __init__(self, settings=None):
        self.settings = settings if settings is not None else {}

    def get(self, key, default=None):
        value = self.settings
        for k_part in key.split('.'):
            if not isinstance(value, dict) or k_part not in value:
                return default
            value = value[k_part]
        return value


# Zero delays so the readiness probe does not slow tests down.
FAST_SETTINGS = {
    "components": {
        "executable_resolver": {
            "candidate_paths": ["/usr/bin/chromium", "/usr/bin/google-chrome"],
            "env_var": "TEST_CHROMIUM_PATH",
        },
        "readiness_probe": {"initial_delay_ms": 0, "extension_delay_ms": 0},
    }
}


def _make_png(width=1080, height=1350, color=(255, 255, 255)):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _make_page(screenshot=None, sizes=None):
    page = MagicMock()
    page.set_viewport_size = AsyncMock()
    page.set_content = AsyncMock()
    page.evaluate = AsyncMock(return_value=sizes if sizes is not None else {"textLength": 42, "markupLength": 512})
    page.screenshot = AsyncMock(return_value=screenshot if screenshot is not None else _make_png())
    page.close = AsyncMock()
    return page


def _make_browser(page=None, connected=True):
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page if page is not None else _make_page())
    browser.close = AsyncMock()
    browser.is_connected = MagicMock(return_value=connected)
    browser.on = MagicMock()
    return browser


@pytest.fixture
def mock_config():
    return MockConfigurationManager


@pytest.fixture
def fast_config():
    return MockConfigurationManager(FAST_SETTINGS)


@pytest.fixture
def make_png():
    return _make_png


@pytest.fixture
def make_page():
    return _make_page


@pytest.fixture
def make_browser():
    return _make_browser


@pytest.fixture
def make_playwright_factory():
    """
    Builds a stand-in for `async_playwright` whose chromium.launch uses `launch`.

    The returned factory is a MagicMock, so tests can assert whether the
    driver was started at all.
    """
    def build(launch):
        playwright = MagicMock()
        playwright.chromium.launch = launch

        @asynccontextmanager
        async def driver():
            yield playwright

        factory = MagicMock(side_effect=driver)
        factory.playwright = playwright
        return factory
    return build
