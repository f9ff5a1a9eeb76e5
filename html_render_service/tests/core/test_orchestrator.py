import asyncio
import json
from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from html_render_service.components.renderer.executable_resolver import ExecutableResolver
from html_render_service.core.exceptions import ErrorKind
from html_render_service.core.models import ContentType, RenderRequest
from html_render_service.core.orchestrator import RenderOrchestrator


# Keep orchestrator logging quiet during tests.
@pytest.fixture(autouse=True)
def mock_orchestrator_logger():
    with patch('html_render_service.core.orchestrator.logger', MagicMock()) as mock_log:
        yield mock_log


def _orchestrator(config, factory):
    return RenderOrchestrator(
        config=config,
        resolver=ExecutableResolver(config=config, environ={}),
        playwright_factory=factory,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   \n\t", None])
async def test_empty_input_never_starts_an_engine(fast_config, make_playwright_factory, body):
    launch = AsyncMock()
    factory = make_playwright_factory(launch)
    orchestrator = _orchestrator(fast_config, factory)

    request = None if body is None else RenderRequest.from_body(body)
    result = await orchestrator.handle(request)

    assert not result.ok
    assert result.error.kind is ErrorKind.EMPTY_INPUT
    assert result.http_status == 400
    factory.assert_not_called()
    launch.assert_not_awaited()


@pytest.mark.asyncio
async def test_envelope_with_empty_html_is_empty_input(fast_config, make_playwright_factory):
    factory = make_playwright_factory(AsyncMock())
    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body('{"html": ""}'))

    assert result.error.kind is ErrorKind.EMPTY_INPUT
    factory.assert_not_called()


@pytest.mark.asyncio
async def test_successful_render_returns_png_and_closes_engine(fast_config, make_playwright_factory, make_browser, make_page, make_png):
    png = make_png(1080, 1350)
    page = make_page(screenshot=png)
    browser = make_browser(page=page)
    factory = make_playwright_factory(AsyncMock(return_value=browser))

    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body("<p>x</p>"))

    assert result.ok
    assert result.image == png
    assert result.image_size == (1080, 1350)
    assert result.executable_path == "/usr/bin/chromium"
    assert result.readiness.satisfied is True
    assert result.duration_ms is not None
    browser.close.assert_awaited()
    page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_envelope_and_raw_markup_take_the_same_path(fast_config, make_playwright_factory, make_browser, make_page):
    injected = []
    for body in ('{"html": "<p>x</p>"}', "<p>x</p>"):
        page = make_page()
        factory = make_playwright_factory(AsyncMock(return_value=make_browser(page=page)))
        result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body(body))
        assert result.ok
        injected.append(page.set_content.await_args.args[0])
    assert injected == ["<p>x</p>", "<p>x</p>"]


@pytest.mark.asyncio
async def test_malformed_json_falls_back_to_raw_markup(fast_config, make_playwright_factory, make_browser, make_page):
    body = '{"html": "<p>unterminated'
    page = make_page()
    factory = make_playwright_factory(AsyncMock(return_value=make_browser(page=page)))

    request = RenderRequest.from_body(body)
    result = await _orchestrator(fast_config, factory).handle(request)

    assert request.content_type is ContentType.RAW_MARKUP
    assert result.ok
    page.set_content.assert_awaited_once()
    assert page.set_content.await_args.args[0] == body


@pytest.mark.asyncio
async def test_no_engine_available_when_every_candidate_fails(fast_config, make_playwright_factory, make_browser):
    dead = make_browser(connected=False)
    launch = AsyncMock(side_effect=[Exception("no chromium"), dead, Exception("no bundled browser")])
    factory = make_playwright_factory(launch)

    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body("<p>x</p>"))

    assert result.error.kind is ErrorKind.NO_ENGINE_AVAILABLE
    assert result.http_status == 500
    assert "no bundled browser" in result.error.detail
    assert launch.await_count == 3
    dead.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_load_timeout_result_and_teardown(fast_config, make_playwright_factory, make_browser, make_page):
    page = make_page()
    page.set_content = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded."))
    browser = make_browser(page=page)
    factory = make_playwright_factory(AsyncMock(return_value=browser))

    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body("<p>x</p>"))

    assert result.error.kind is ErrorKind.LOAD_TIMEOUT
    assert result.executable_path == "/usr/bin/chromium"
    browser.close.assert_awaited_once()
    page.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_capture_failure_result_and_teardown(fast_config, make_playwright_factory, make_browser, make_page):
    page = make_page()
    page.screenshot = AsyncMock(side_effect=Exception("capture exploded"))
    browser = make_browser(page=page)
    factory = make_playwright_factory(AsyncMock(return_value=browser))

    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body("<p>x</p>"))

    assert result.error.kind is ErrorKind.CAPTURE_FAILURE
    assert "capture exploded" in result.error.detail
    assert result.readiness is not None
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_driver_start_failure_is_reported_not_raised(fast_config):
    factory = MagicMock(side_effect=RuntimeError("playwright driver missing"))
    result = await _orchestrator(fast_config, factory).handle(RenderRequest.from_body("<p>x</p>"))

    assert not result.ok
    assert result.error.kind is ErrorKind.NO_ENGINE_AVAILABLE
    assert "playwright driver missing" in result.error.detail


@pytest.mark.asyncio
async def test_one_engine_per_request(fast_config, make_playwright_factory, make_browser):
    browsers = [make_browser(), make_browser()]
    launch = AsyncMock(side_effect=browsers)
    factory = make_playwright_factory(launch)
    orchestrator = _orchestrator(fast_config, factory)

    await orchestrator.handle(RenderRequest.from_body("<p>one</p>"))
    await orchestrator.handle(RenderRequest.from_body("<p>two</p>"))

    assert factory.call_count == 2
    assert launch.await_count == 2
    for browser in browsers:
        browser.close.assert_awaited()


@pytest.mark.asyncio
async def test_concurrent_requests_do_not_share_engines(fast_config, make_playwright_factory, make_browser, make_page, make_png):
    red, blue = make_png(color=(255, 0, 0)), make_png(color=(0, 0, 255))
    pages = {}

    async def launch(**kwargs):
        page = make_page()

        async def set_content(markup, **_kwargs):
            await asyncio.sleep(0)  # let the other request interleave
            page.screenshot.return_value = red if "red" in markup else blue

        page.set_content = AsyncMock(side_effect=set_content)
        browser = make_browser(page=page)
        pages[id(browser)] = page
        return browser

    factory = make_playwright_factory(AsyncMock(side_effect=launch))
    orchestrator = _orchestrator(fast_config, factory)

    red_result, blue_result = await asyncio.gather(
        orchestrator.handle(RenderRequest.from_body("<p>red</p>")),
        orchestrator.handle(RenderRequest.from_body(json.dumps({"html": "<p>blue</p>"}))),
    )

    assert red_result.image == red
    assert blue_result.image == blue
    assert len(pages) == 2


@pytest.mark.asyncio
async def test_cancellation_during_readiness_wait_tears_down_and_propagates(mock_config, make_playwright_factory, make_browser, make_page):
    config = mock_config({
        "components": {
            "executable_resolver": {"candidate_paths": ["/usr/bin/chromium"], "env_var": "TEST_CHROMIUM_PATH"},
            "readiness_probe": {"initial_delay_ms": 60000},
        }
    })
    loaded = asyncio.Event()
    page = make_page()
    page.set_content = AsyncMock(side_effect=lambda *args, **kwargs: loaded.set())
    browser = make_browser(page=page)
    factory = make_playwright_factory(AsyncMock(return_value=browser))

    task = asyncio.ensure_future(_orchestrator(config, factory).handle(RenderRequest.from_body("<p>x</p>")))
    await loaded.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    page.evaluate.assert_not_awaited()
    page.screenshot.assert_not_awaited()
    page.close.assert_awaited_once()
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_driver_shutdown_error_keeps_the_captured_image(fast_config, make_browser, make_page, make_png, mock_orchestrator_logger):
    png = make_png(40, 50)
    browser = make_browser(page=make_page(screenshot=png))
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    @asynccontextmanager
    async def driver():
        yield playwright
        raise RuntimeError("driver connection closed")

    result = await _orchestrator(fast_config, MagicMock(side_effect=driver)).handle(RenderRequest.from_body("<p>x</p>"))

    assert result.ok
    assert result.image == png
    assert result.executable_path == "/usr/bin/chromium"
    browser.close.assert_awaited_once()
    assert any("driver connection closed" in str(call.args[0]) for call in mock_orchestrator_logger.error.call_args_list)

