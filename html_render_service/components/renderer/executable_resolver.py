"""
Locates a launchable browser executable for the current environment.

Deployment targets differ (Debian containers ship `chromium`, desktop Linux
ships Google Chrome, macOS keeps it in an application bundle), so instead of a
single hard-coded path the resolver walks an ordered list of candidates and
keeps the first one that launches. A candidate of `None` means "let Playwright
use its bundled browser".
"""
import os
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar,
)

from html_render_service.core.exceptions import ConfigurationError, ResolutionError
from html_render_service.core.logger import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserType
    from html_render_service.core.config import ConfigurationManager

logger = get_logger(__name__)

T = TypeVar("T")
L = TypeVar("L")


class ProbeExhaustedError(Exception):
    """Raised by `probe_in_order` when every attempt failed."""
    def __init__(self, failures: List[Tuple[Any, Exception]]):
        self.failures = failures
        super().__init__(f"All {len(failures)} attempt(s) failed")


async def probe_in_order(attempts: Iterable[Tuple[L, Callable[[], Awaitable[T]]]]) -> Tuple[L, T]:
    """
    Runs each `(label, factory)` in order and returns the first that succeeds.

    Failed attempts are logged as diagnostics and skipped.

    Raises:
        ProbeExhaustedError: With every `(label, error)` pair, if nothing succeeded.
    """
    failures: List[Tuple[L, Exception]] = []
    for label, factory in attempts:
        try:
            value = await factory()
        except Exception as e:
            logger.warning(f"Discarding candidate {label!r}: {e}")
            failures.append((label, e))
            continue
        return label, value
    raise ProbeExhaustedError(failures)


def _string_list(get: Callable[..., Any], key: str, default: Sequence[str]) -> List[str]:
    value = get(key, None) or default
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"Setting '{key}' must be a list of strings, got {value!r}.")
    return list(value)


@dataclass
class ResolvedEngine:
    """A live browser process plus the executable path it was launched from."""
    browser: 'Browser'
    executable_path: Optional[str]


class ExecutableResolver:
    """
    Builds the candidate list and launches the first working browser executable.

    Configured under `components.executable_resolver`. With the `cached` policy
    the winning candidate is remembered and tried first on later calls; every call
    still launches a fresh process.
    """
    DEFAULT_CANDIDATE_PATHS: Tuple[str, ...] = (
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    )
    DEFAULT_ENV_VAR = "CHROMIUM_EXECUTABLE_PATH"
    DEFAULT_LAUNCH_ARGS: Tuple[str, ...] = ("--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage")
    POLICIES = ("per_request", "cached")

    def __init__(self, config: Optional['ConfigurationManager'] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config (Optional[ConfigurationManager]): Source of resolver settings; defaults are used if None.
            environ (Optional[Mapping[str, str]]): Environment to read the override path from.
                Defaults to `os.environ`.
        """
        get = config.get if config else (lambda key, default=None: default)
        prefix = "components.executable_resolver."
        self.candidate_paths: List[str] = _string_list(get, prefix + "candidate_paths", self.DEFAULT_CANDIDATE_PATHS)
        self.env_var: str = get(prefix + "env_var", self.DEFAULT_ENV_VAR)
        self.headless: bool = bool(get(prefix + "headless", True))
        self.launch_args: List[str] = _string_list(get, prefix + "launch_args", self.DEFAULT_LAUNCH_ARGS)
        self.policy: str = get(prefix + "resolution_policy", "per_request")
        if self.policy not in self.POLICIES:
            logger.warning(f"Unknown resolution_policy '{self.policy}', using 'per_request'.")
            self.policy = "per_request"
        self.environ = environ if environ is not None else os.environ

        self._has_preferred = False
        self._preferred: Optional[str] = None

    def candidates(self) -> List[Optional[str]]:
        """
        The ordered, deduplicated candidate list.

        Platform install paths come first, then the environment override (if set),
        then `None` for the launcher's bundled default.
        """
        ordered: List[Optional[str]] = []
        env_path = (self.environ.get(self.env_var) or "").strip()
        for path in [*self.candidate_paths, env_path]:
            path = (path or "").strip()
            if path and path not in ordered:
                ordered.append(path)
        ordered.append(None)

        if self.policy == "cached" and self._has_preferred and self._preferred in ordered:
            ordered.remove(self._preferred)
            ordered.insert(0, self._preferred)
        return ordered

    def forget(self) -> None:
        """Drops the remembered candidate so the next resolution runs the full sweep."""
        self._has_preferred = False
        self._preferred = None

    async def _launch(self, launcher: 'BrowserType', executable_path: Optional[str]) -> 'Browser':
        options = {"headless": self.headless, "args": list(self.launch_args)}
        if executable_path:
            options["executable_path"] = executable_path
        browser = await launcher.launch(**options)
        if not browser.is_connected():
            # Launched but already gone: release whatever is left before moving on.
            try:
                await browser.close()
            except Exception as e:
                logger.debug(f"Ignoring close error on dead browser from {executable_path!r}: {e}")
            raise RuntimeError("Browser exited immediately after launch")
        return browser

    def _attempts(self, launcher: 'BrowserType', paths: Sequence[Optional[str]]):
        for path in paths:
            yield path, (lambda p=path: self._launch(launcher, p))

    async def resolve(self, launcher: 'BrowserType') -> ResolvedEngine:
        """
        Launches a browser from the first candidate that works.

        Args:
            launcher (BrowserType): The Playwright browser type, e.g. `playwright.chromium`.

        Returns:
            ResolvedEngine: The live browser and the path used (None for the bundled default).

        Raises:
            ResolutionError: If every candidate, including the bundled default, failed to launch.
        """
        paths = self.candidates()
        logger.debug(f"Resolving browser executable from candidates: {paths}")
        try:
            path, browser = await probe_in_order(self._attempts(launcher, paths))
        except ProbeExhaustedError as e:
            self.forget()
            logger.error(f"No browser executable could be launched ({len(e.failures)} candidates tried).")
            raise ResolutionError(e.failures)

        if self.policy == "cached":
            self._has_preferred = True
            self._preferred = path
        logger.info(f"Browser launched from {path or 'bundled default'}.")
        return ResolvedEngine(browser=browser, executable_path=path)
