from __future__ import annotations

from urllib.parse import quote_plus

from bs4 import BeautifulSoup, Tag
from loguru import logger

from webchat.models.content import SearchResult
from webchat.tools.browser import Renderer
from webchat.tools.web_utils import extract_domain, resolve_result_link

GOOGLE_SEARCH_URL = "https://www.google.com/search?q={query}"


def _text(node: Tag | None) -> str:
    return node.get_text().strip() if node is not None else ""


def _thumbnail(card: Tag) -> str:
    img = card.select_one("g-img img, img.T3HQGc")
    if img is None:
        return ""
    src = img.get("src") or ""
    return src if isinstance(src, str) else ""


def _source(card: Tag) -> str:
    name = _text(card.select_one("span.VuuXrf"))
    if name:
        return name
    cite = _text(card.select_one("cite.qLRx3b"))
    if not cite:
        return ""
    # Breadcrumb cites look like "https://docs.python.org › 3"
    return extract_domain(cite.split()[0])


def parse_results(html: str, *, base_url: str, max_results: int) -> list[SearchResult]:
    """Read result cards off a Google results page."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for card in soup.select("div.g")[:max_results]:
        anchor = card.find("a", href=True)
        href = anchor["href"] if anchor is not None else ""
        results.append(
            SearchResult(
                title=_text(card.find("h3")),
                link=resolve_result_link(href if isinstance(href, str) else "", base_url),
                description=_text(card.select_one("div.VwiC3b")),
                thumbnail=_thumbnail(card),
                source=_source(card),
            )
        )
    return results


class WebSearchClient:
    def __init__(self, renderer: Renderer):
        self.renderer = renderer

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """Run a Google search and return up to `max_results` cards.

        Failures propagate to the caller.
        """
        search_url = GOOGLE_SEARCH_URL.format(query=quote_plus(query))
        logger.info(f"[Search] Searching for '{query}' ({max_results} results requested)")
        try:
            html = await self.renderer.render(search_url)
            results = parse_results(html, base_url=search_url, max_results=max_results)
        except Exception as e:
            logger.error(f"[Search] Error performing search for '{query}': {e}")
            raise

        for index, result in enumerate(results, 1):
            logger.debug(
                f"[Search] Result {index}: {result.title[:50]} | {result.link} | "
                f"thumbnail={'yes' if result.thumbnail else 'no'} | source={result.source}"
            )
        logger.info(f"[Search] {len(results)} results for '{query}'")
        return results
