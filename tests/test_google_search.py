from __future__ import annotations

import pytest

from webchat.config import Settings
from webchat.tools.browser import HttpRenderer, PlaywrightRenderer, build_renderer
from webchat.tools.google_search import WebSearchClient, parse_results

BASE_URL = "https://www.google.com/search?q=python"

RESULTS_PAGE = """
<html><body>
  <div class="g">
    <a href="/url?q=https://www.python.org/&amp;sa=U"><h3>Welcome to Python.org</h3></a>
    <span class="VuuXrf">Python.org</span>
    <div class="VwiC3b">The official home of the Python Programming Language.</div>
    <g-img><img src="https://img.example.com/py.png"></g-img>
  </div>
  <div class="g">
    <a href="https://docs.python.org/3/"><h3>Python 3 documentation</h3></a>
    <cite class="qLRx3b">https://docs.python.org › 3</cite>
    <div class="VwiC3b">Documentation for Python 3.</div>
  </div>
  <div class="g">
    <a href="https://en.wikipedia.org/wiki/Python"><h3>Python - Wikipedia</h3></a>
  </div>
</body></html>
"""


class _StaticRenderer:
    def __init__(self, html: str = "", error: Exception | None = None):
        self.html = html
        self.error = error
        self.urls: list[str] = []

    async def render(self, url: str) -> str:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


def test_parse_results_reads_cards():
    results = parse_results(RESULTS_PAGE, base_url=BASE_URL, max_results=5)

    assert len(results) == 3
    first = results[0]
    assert first.title == "Welcome to Python.org"
    assert first.link == "https://www.python.org/"
    assert first.description.startswith("The official home")
    assert first.thumbnail == "https://img.example.com/py.png"
    assert first.source == "Python.org"

    second = results[1]
    assert second.link == "https://docs.python.org/3/"
    assert second.source == "docs.python.org"
    assert second.thumbnail == ""

    third = results[2]
    assert third.description == ""
    assert third.source == ""


def test_source_falls_back_to_cite_domain():
    html = """
    <div class="g">
      <a href="https://www.example.org/docs/intro"><h3>Intro</h3></a>
      <cite class="qLRx3b">https://www.example.org › docs › intro</cite>
    </div>
    """
    [result] = parse_results(html, base_url=BASE_URL, max_results=5)
    assert result.source == "example.org"


def test_parse_results_respects_max_results():
    assert len(parse_results(RESULTS_PAGE, base_url=BASE_URL, max_results=2)) == 2
    assert parse_results("<html></html>", base_url=BASE_URL, max_results=5) == []


@pytest.mark.asyncio
async def test_search_encodes_query():
    renderer = _StaticRenderer(RESULTS_PAGE)
    results = await WebSearchClient(renderer).search("python docs & more", max_results=1)

    assert len(results) == 1
    assert renderer.urls == ["https://www.google.com/search?q=python+docs+%26+more"]


@pytest.mark.asyncio
async def test_search_propagates_render_failures():
    renderer = _StaticRenderer(error=RuntimeError("browser crashed"))
    with pytest.raises(RuntimeError):
        await WebSearchClient(renderer).search("anything")


def test_build_renderer_by_setting():
    assert isinstance(build_renderer(Settings(scrape_renderer="http")), HttpRenderer)
    assert isinstance(build_renderer(Settings(scrape_renderer="playwright")), PlaywrightRenderer)
    with pytest.raises(ValueError):
        build_renderer(Settings(scrape_renderer="lynx"))
