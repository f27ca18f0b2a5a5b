"""Tests for page fetching and text extraction."""

import httpx
import pytest

from recallbin.core.content_fetcher import USER_AGENT, ContentFetcher, ContentFetchError

PAGE = """
<html>
  <head><title>Example</title><style>body { color: red; }</style></head>
  <body>
    <nav>Home | About</nav>
    <h1>Hello   world</h1>
    <p>First
       paragraph.</p>
    <script>var tracking = true;</script>
    <footer>Copyright</footer>
  </body>
</html>
"""


def _patch_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        "recallbin.core.content_fetcher.httpx.AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestHtmlToText:
    def test_strips_boilerplate_and_collapses_whitespace(self):
        text = ContentFetcher().html_to_text(PAGE)

        assert text == "Hello world First paragraph."

    def test_caps_length(self):
        text = ContentFetcher(max_chars=5).html_to_text("<p>abcdefghij</p>")
        assert text == "abcde"


class TestExtractText:
    @pytest.mark.asyncio
    async def test_fetches_with_browser_user_agent(self, monkeypatch):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(200, text=PAGE)

        _patch_transport(monkeypatch, handler)

        text = await ContentFetcher().extract_text("https://example.com/page")

        assert text == "Hello world First paragraph."
        assert seen["ua"] == USER_AGENT

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self, monkeypatch):
        _patch_transport(monkeypatch, lambda request: httpx.Response(404, text="missing"))

        assert await ContentFetcher().extract_text("https://example.com/missing") is None

    @pytest.mark.asyncio
    async def test_non_http_scheme_returns_none(self):
        assert await ContentFetcher().extract_text("ftp://example.com/file") is None
        assert await ContentFetcher().extract_text("javascript:alert(1)") is None

    @pytest.mark.asyncio
    async def test_fetch_url_raises_on_network_error(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        _patch_transport(monkeypatch, handler)

        with pytest.raises(ContentFetchError):
            await ContentFetcher().fetch_url("https://example.com")
