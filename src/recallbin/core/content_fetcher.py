"""Page fetching and plain-text extraction for enrichment context."""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from ..utils.url_utils import URLValidationError, validate_url_scheme

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

_WHITESPACE = re.compile(r"\s+")


class ContentFetchError(Exception):
    """Content fetch error."""

    pass


class ContentFetcher:
    """Fetches a URL and reduces the page to whitespace-normalized body text."""

    def __init__(self, timeout: int = 10, max_chars: int = 50000):
        """Initialize content fetcher.

        Args:
            timeout: HTTP request timeout in seconds
            max_chars: Maximum length of extracted text
        """
        self.timeout = timeout
        self.max_chars = max_chars
        self.max_response_size = 10 * 1024 * 1024  # 10MB

    async def extract_text(self, url: str) -> Optional[str]:
        """Return extracted page text, or None when anything goes wrong.

        Failures are logged and swallowed: enrichment proceeds with the
        title and URL alone.
        """
        try:
            validate_url_scheme(url)
            html_content = await self.fetch_url(url)
            text = self.html_to_text(html_content)
        except (URLValidationError, ContentFetchError) as e:
            logger.warning(f"Scraping failed for {url}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Unexpected scraping failure for {url}: {e}")
            return None

        return text or None

    async def fetch_url(self, url: str) -> str:
        """Fetch URL content.

        Raises:
            ContentFetchError: On timeout, network failure, HTTP error or oversize body
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(url, headers={"User-Agent": USER_AGENT})
        except httpx.TimeoutException as e:
            raise ContentFetchError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ContentFetchError(f"Network error: {e}") from e

        if response.status_code >= 400:
            raise ContentFetchError(f"HTTP {response.status_code} for {url}")

        if len(response.content) > self.max_response_size:
            raise ContentFetchError(
                f"Response too large: {len(response.content)} bytes (max {self.max_response_size})"
            )

        return response.text

    def html_to_text(self, html_content: str) -> str:
        """Strip non-content elements and collapse whitespace."""
        soup = BeautifulSoup(html_content, "html.parser")
        for tag in soup(["script", "style", "nav", "footer"]):
            tag.decompose()

        root = soup.body or soup
        text = _WHITESPACE.sub(" ", root.get_text(" ")).strip()
        return text[: self.max_chars]
