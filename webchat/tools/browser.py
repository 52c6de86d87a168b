from __future__ import annotations

from typing import Protocol

import httpx
from loguru import logger

from webchat.config import Settings

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
]


class Renderer(Protocol):
    async def render(self, url: str) -> str:
        """Return the document HTML for `url`."""
        ...


class PlaywrightRenderer:
    """Renders pages in a fresh headless Chromium per call."""

    def __init__(self, *, timeout_ms: int = 30000, idle_timeout_ms: int = 5000):
        self.timeout_ms = timeout_ms
        self.idle_timeout_ms = idle_timeout_ms

    async def render(self, url: str) -> str:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError
        from playwright.async_api import async_playwright

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            try:
                context = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT)
                page = await context.new_page()
                await page.route("**/*", _block_heavy_resources)
                await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
                try:
                    await page.wait_for_load_state("networkidle", timeout=self.idle_timeout_ms)
                except PlaywrightTimeoutError:
                    # Pages with long-polling never go idle; take what has rendered.
                    logger.debug(f"[Browser] network idle not reached for {url}")
                return await page.content()
            finally:
                await browser.close()


async def _block_heavy_resources(route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class HttpRenderer:
    """Plain HTTP fetch for pages that do not need JavaScript."""

    def __init__(self, *, timeout_ms: int = 30000, http_client: httpx.AsyncClient | None = None):
        self.timeout_ms = timeout_ms
        self._http_client = http_client

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.text

    async def render(self, url: str) -> str:
        if self._http_client is not None:
            return await self._fetch(self._http_client, url)
        async with httpx.AsyncClient(
            timeout=max(self.timeout_ms / 1000.0, 1.0),
            follow_redirects=True,
        ) as client:
            return await self._fetch(client, url)


def build_renderer(settings: Settings) -> Renderer:
    kind = settings.scrape_renderer.lower().strip()
    if kind == "http":
        return HttpRenderer(timeout_ms=settings.scrape_timeout_ms)
    if kind == "playwright":
        return PlaywrightRenderer(
            timeout_ms=settings.scrape_timeout_ms,
            idle_timeout_ms=settings.scrape_idle_timeout_ms,
        )
    raise ValueError(f"Unsupported SCRAPE_RENDERER: {settings.scrape_renderer}")
