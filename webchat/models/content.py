from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SCRAPE_ERROR = "Failed to scrape URL"


@dataclass(slots=True)
class Headings:
    h1: str = ""
    h2: str = ""


@dataclass(slots=True)
class ScrapedContent:
    """Text extracted from one page, or an error marker for a failed scrape."""

    url: str
    title: str = ""
    headings: Headings = field(default_factory=Headings)
    meta_description: str = ""
    content: str = ""
    error: str | None = None
    cached_at: int | None = None

    @classmethod
    def failed(cls, url: str, reason: str = SCRAPE_ERROR) -> "ScrapedContent":
        return cls(url=url, error=reason)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "headings": {"h1": self.headings.h1, "h2": self.headings.h2},
            "metaDescription": self.meta_description,
            "content": self.content,
            "error": self.error,
        }
        if self.cached_at is not None:
            data["cachedAt"] = self.cached_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapedContent":
        headings = data.get("headings") or {}
        cached_at = data.get("cachedAt")
        return cls(
            url=data["url"],
            title=data["title"],
            headings=Headings(h1=headings.get("h1", ""), h2=headings.get("h2", "")),
            meta_description=data["metaDescription"],
            content=data["content"],
            error=data.get("error"),
            cached_at=int(cached_at) if isinstance(cached_at, (int, float)) else None,
        )


def _error_shape_ok(data: dict[str, Any]) -> bool:
    error = data.get("error")
    if error is None:
        return True
    # A failed scrape carries no page text.
    return isinstance(error, str) and not data.get("title") and not data.get("content")


def is_valid_scraped_payload(data: Any) -> bool:
    """Shape check for a payload read back from the cache."""
    if not isinstance(data, dict):
        return False
    headings = data.get("headings")
    cached_at = data.get("cachedAt")
    return (
        isinstance(data.get("url"), str)
        and isinstance(data.get("title"), str)
        and isinstance(headings, dict)
        and isinstance(headings.get("h1"), str)
        and isinstance(headings.get("h2"), str)
        and isinstance(data.get("metaDescription"), str)
        and isinstance(data.get("content"), str)
        and _error_shape_ok(data)
        and (cached_at is None or (isinstance(cached_at, (int, float)) and not isinstance(cached_at, bool)))
    )


@dataclass(slots=True)
class SearchResult:
    title: str
    link: str
    description: str = ""
    thumbnail: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "source": self.source,
        }
