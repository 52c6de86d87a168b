from __future__ import annotations

from bs4 import BeautifulSoup

from webchat.models.content import Headings, ScrapedContent
from webchat.tools.web_utils import clean_text, truncate

NOISE_TAGS = ["script", "style", "noscript", "iframe"]
TEXT_SELECTORS = [
    "p",
    "li",
    "td",
    "th",
    "blockquote",
    "article",
    "span",
    "div",
    "h3",
    "h4",
    "h5",
    "h6",
]
MAX_CONTENT_CHARS = 40000


def _joined_text(soup: BeautifulSoup, selector: str) -> str:
    return " ".join(el.get_text().strip() for el in soup.select(selector))


def _body_text(soup: BeautifulSoup) -> str:
    chunks: list[str] = []
    for selector in TEXT_SELECTORS:
        for element in soup.select(selector):
            text = element.get_text().strip()
            if text:
                chunks.append(text)
    return " ".join(chunks)


def extract_scraped_content(
    url: str,
    html: str,
    *,
    max_chars: int = MAX_CONTENT_CHARS,
) -> ScrapedContent:
    """Pull title, description, headings and a broad text sweep out of a page."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()

    title = soup.title.get_text() if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    meta_description = meta.get("content", "") if meta else ""
    if not isinstance(meta_description, str):
        meta_description = " ".join(meta_description)

    h1 = _joined_text(soup, "h1")
    h2 = _joined_text(soup, "h2")
    body = _body_text(soup)

    combined = clean_text(" ".join([title, meta_description, h1, h2, body]))
    return ScrapedContent(
        url=url,
        title=clean_text(title),
        headings=Headings(h1=clean_text(h1), h2=clean_text(h2)),
        meta_description=clean_text(meta_description),
        content=truncate(combined, max_chars),
        error=None,
    )
