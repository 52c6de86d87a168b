from __future__ import annotations

import asyncio

from loguru import logger

from webchat.models.content import ScrapedContent
from webchat.tools.browser import Renderer
from webchat.tools.content_cache import ContentCache
from webchat.tools.content_extractor import MAX_CONTENT_CHARS, extract_scraped_content


class PageScraper:
    """Fetches pages through the content cache; never raises."""

    def __init__(
        self,
        renderer: Renderer,
        cache: ContentCache | None = None,
        *,
        max_chars: int = MAX_CONTENT_CHARS,
    ):
        self.renderer = renderer
        self.cache = cache
        self.max_chars = max_chars

    async def scrape(self, url: str) -> ScrapedContent:
        try:
            logger.info(f"[Scraper] Starting scrape for {url}")
            if self.cache is not None:
                cached = await self.cache.get(url)
                if cached is not None:
                    logger.info(f"[Scraper] Using cached content for {url}")
                    return cached

            html = await self.renderer.render(url)
            content = extract_scraped_content(url, html, max_chars=self.max_chars)

            if self.cache is not None:
                await self.cache.put(url, content)
            return content
        except Exception as e:
            logger.opt(exception=e).error(f"[Scraper] Error scraping {url}: {e}")
            return ScrapedContent.failed(url)

    async def scrape_many(self, urls: list[str]) -> list[ScrapedContent]:
        """Scrape URLs concurrently; results keep the input order."""
        if not urls:
            return []
        results = await asyncio.gather(*(self.scrape(url) for url in urls), return_exceptions=True)

        scraped: list[ScrapedContent] = []
        for url, result in zip(urls, results):
            if isinstance(result, ScrapedContent):
                scraped.append(result)
            else:
                # scrape() is total; this only catches cancellation-style BaseExceptions
                logger.error(f"[Scraper] Unexpected failure for {url}: {result!r}")
                scraped.append(ScrapedContent.failed(url))
        return scraped
