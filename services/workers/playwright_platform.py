"""
Worker platform backed by a shared headless Chromium (Playwright).

Each worker is a page of one shared browser context. The per-site extraction
collaborators are installed as init scripts: every script checks the page's
hostname and, when it matches its site, defines ``window.__listingExtractor``
and may push results through ``window.__listingPush``.
"""

from __future__ import annotations

import asyncio
import contextlib
import platform as os_platform
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from playwright.async_api import async_playwright

from core.config import BrowserSettings
from core.logging import get_logger
from services.search.errors import ResourceCreationError
from services.workers.base import LoadStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from services.workers.base import PushHandler

logger = get_logger(__name__)

PUSH_BINDING = "__listingPush"
EXTRACT_SCRIPT = "(message) => window.__listingExtractor.handle(message)"


def build_launch_args() -> list[str]:
    """Chromium flags for background workers."""
    args = [
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--disable-background-networking",
        "--disable-default-apps",
        "--disable-extensions",
        "--no-first-run",
        "--no-default-browser-check",
    ]
    if os_platform.system().lower() == "linux":
        args.extend(["--no-sandbox", "--disable-setuid-sandbox"])
    return args


def extractor_scripts(directory: Path | None) -> list[Path]:
    """Return the ``*.js`` collaborators of a directory, sorted by name."""
    if directory is None:
        return []
    if not directory.is_dir():
        logger.warning("Extractor scripts directory not found", path=str(directory))
        return []
    return sorted(directory.glob("*.js"))


class PlaywrightPlatform:
    """
    WorkerPlatform implementation using Playwright.

    The browser is launched lazily on the first ``create`` and shared by
    every worker. Navigation runs in the background: ``create`` returns as
    soon as the page exists, and the correlator polls ``load_status``.
    """

    def __init__(self, settings: BrowserSettings | None = None) -> None:
        """
        Initialize the platform.

        Args:
            settings: Browser settings (defaults to BrowserSettings()).
        """
        self._settings = settings or BrowserSettings()
        self._lock = asyncio.Lock()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._pages: dict[str, Page] = {}
        self._resource_ids: dict[Page, str] = {}
        self._navigations: dict[str, asyncio.Task[None]] = {}
        self._push_handler: PushHandler | None = None

    @property
    def is_running(self) -> bool:
        """True while the shared browser is connected."""
        return self._browser is not None and self._browser.is_connected()

    def set_push_handler(self, handler: PushHandler | None) -> None:
        """Install the callback receiving push notifications."""
        self._push_handler = handler

    async def create(self, url: str) -> str:
        """
        Open a page and start navigating it to ``url``.

        Raises:
            ResourceCreationError: If the browser or the page cannot be created.
        """
        try:
            context = await self._ensure_context()
            page = await context.new_page()
        except ResourceCreationError:
            raise
        except Exception as e:
            raise ResourceCreationError("Page could not be opened", details=str(e)) from e

        resource_id = uuid4().hex
        self._pages[resource_id] = page
        self._resource_ids[page] = resource_id
        self._navigations[resource_id] = asyncio.create_task(
            self._navigate(resource_id, page, url),
            name=f"navigate-{resource_id}",
        )
        return resource_id

    async def exists(self, resource_id: str) -> bool:
        """Return True if the page is still open."""
        page = self._pages.get(resource_id)
        return page is not None and not page.is_closed()

    async def load_status(self, resource_id: str) -> LoadStatus:
        """Return COMPLETE once the target document finished loading."""
        page = self._page(resource_id)
        if page.url == "about:blank":
            return LoadStatus.LOADING
        state = await page.evaluate("document.readyState")
        return LoadStatus.COMPLETE if state == "complete" else LoadStatus.LOADING

    async def send(self, resource_id: str, message: Mapping[str, Any]) -> Any:
        """Call the page's extraction collaborator and return its reply."""
        page = self._page(resource_id)
        return await page.evaluate(EXTRACT_SCRIPT, dict(message))

    async def destroy(self, resource_id: str) -> None:
        """Close the page. Unknown resources are ignored."""
        page = self._pages.pop(resource_id, None)
        navigation = self._navigations.pop(resource_id, None)
        if navigation is not None and not navigation.done():
            navigation.cancel()
        if page is None:
            return
        self._resource_ids.pop(page, None)
        if not page.is_closed():
            await page.close()

    async def close(self) -> None:
        """Close every page and shut the shared browser down."""
        for resource_id in list(self._pages):
            try:
                await self.destroy(resource_id)
            except Exception as e:
                logger.debug("Page close failed", resource_id=resource_id, error=str(e))

        async with self._lock:
            await self._shutdown()
        logger.info("Browser closed")

    def _page(self, resource_id: str) -> Page:
        page = self._pages.get(resource_id)
        if page is None or page.is_closed():
            msg = f"Unknown or closed worker: {resource_id}"
            raise LookupError(msg)
        return page

    async def _navigate(self, resource_id: str, page: Page, url: str) -> None:
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self._settings.navigation_timeout * 1000,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The correlator sees the page never completing and gives up on its own
            logger.info("Navigation failed", resource_id=resource_id, url=url, error=str(e))

    async def _on_push(self, source: dict[str, Any], message: Any) -> bool:
        resource_id = self._resource_ids.get(source.get("page"))
        if resource_id is None:
            logger.debug("Push from unknown page ignored")
            return False
        if self._push_handler is None or not isinstance(message, dict):
            return False
        return await self._push_handler(resource_id, message)

    async def _ensure_context(self) -> BrowserContext:
        async with self._lock:
            if self._context is not None and self.is_running:
                return self._context

            await self._shutdown()
            attempts = self._settings.launch_attempts
            last_error: Exception | None = None
            for attempt in range(1, attempts + 1):
                try:
                    logger.info("Launching browser", attempt=attempt, attempts=attempts)
                    self._context = await asyncio.wait_for(
                        self._launch(),
                        timeout=self._settings.launch_timeout,
                    )
                    logger.info("Browser launched", headless=self._settings.headless)
                    return self._context
                except Exception as e:
                    last_error = e
                    logger.error(
                        "Browser launch failed",
                        attempt=attempt,
                        error=f"{type(e).__name__}: {e}",
                    )
                    await self._shutdown()
                    if attempt < attempts:
                        await asyncio.sleep(min(2.0 * attempt, 10.0))

            raise ResourceCreationError(
                "Browser launch failed",
                details=f"{attempts} attempts, last error: {last_error}",
            )

    async def _launch(self) -> BrowserContext:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._settings.headless,
            args=build_launch_args(),
        )
        context = await self._browser.new_context(
            user_agent=self._settings.user_agent,
            locale=self._settings.locale,
        )
        await context.expose_binding(PUSH_BINDING, self._on_push)
        for script in extractor_scripts(self._settings.extractor_scripts_dir):
            await context.add_init_script(path=script)
            logger.debug("Extractor script installed", script=script.name)
        return context

    async def _shutdown(self) -> None:
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if context is not None:
            with contextlib.suppress(Exception):
                await context.close()
        if browser is not None:
            with contextlib.suppress(Exception):
                await browser.close()
        if playwright is not None:
            with contextlib.suppress(Exception):
                await playwright.stop()
