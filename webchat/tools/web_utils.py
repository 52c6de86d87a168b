from __future__ import annotations

import re
from urllib.parse import parse_qs, urljoin, urlparse

URL_PATTERN = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)",
    re.IGNORECASE,
)

# Trailing punctuation that belongs to the sentence, not the URL.
_TRAILING = ".,;:!?)"


def extract_urls(text: str) -> list[str]:
    """Return the distinct URLs found in a message, in order of appearance."""
    urls: list[str] = []
    for match in URL_PATTERN.finditer(text or ""):
        url = match.group(0)
        while url and url[-1] in _TRAILING and not (url[-1] == ")" and "(" in url):
            url = url[:-1]
        if url and url not in urls:
            urls.append(url)
    return urls


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except Exception:
        return False


def clean_text(text: str) -> str:
    """Collapse all whitespace runs to single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def truncate(text: str, max_length: int) -> str:
    if max_length <= 0:
        return text
    return text[:max_length]


def extract_domain(url: str) -> str:
    """Extract domain from URL for display."""
    try:
        host = urlparse(url if "//" in url else f"//{url}").netloc
    except Exception:
        return url
    if host.startswith("www."):
        host = host[4:]
    return host or url


def resolve_result_link(href: str, base_url: str) -> str:
    """Make a results-page link absolute and unwrap `/url?q=` redirects."""
    if not href:
        return ""
    absolute = urljoin(base_url, href)
    parsed = urlparse(absolute)
    if parsed.path == "/url":
        target = parse_qs(parsed.query).get("q") or parse_qs(parsed.query).get("url")
        if target:
            return target[0]
    return absolute
