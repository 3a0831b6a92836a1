"""
Fetches the text of an external job offer page.
Used when a candidate submits only the URL of an offer.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from shared.config import Settings, get_settings

_BLANK_LINES = re.compile(r"\n\s*\n+")


@dataclass
class FetchedPage:
    """Text content of an offer page."""

    url: str
    title: str
    text: str


def _is_private_host(hostname: str) -> bool:
    if hostname in ("localhost", "") or hostname.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def _check_target(scheme: str, hostname: str, url: str) -> None:
    if scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {url}")
    if _is_private_host(hostname):
        raise ValueError(f"Private or local URLs are not allowed: {url}")


async def _reject_unsafe_request(request: httpx.Request) -> None:
    """Request hook, also run for every redirect hop."""
    _check_target(request.url.scheme, request.url.host, str(request.url))


def html_to_text(html: str) -> tuple[str, str]:
    """
    Strip markup from an HTML page.

    Returns:
        Tuple of (title, text)
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer", "header"]):
        tag.decompose()

    title = soup.title.get_text(" ", strip=True) if soup.title else ""
    text = soup.get_text("\n", strip=True)
    return title, _BLANK_LINES.sub("\n", text).strip()


class OfferPageFetcher:
    """HTTP client for external offer pages."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.settings.fetcher_timeout_seconds,
                follow_redirects=True,
                headers={"User-Agent": self.settings.fetcher_user_agent},
                transport=self._transport,
                event_hooks={"request": [_reject_unsafe_request]},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch(self, url: str) -> FetchedPage:
        """
        Download an offer page and return its visible text.

        Raises:
            ValueError: URL, or a redirect target, is not http(s) or points
                to a private host
            httpx.HTTPError: Request failed or returned an error status
        """
        parsed = urlparse(url)
        _check_target(parsed.scheme, parsed.hostname or "", url)

        client = await self._get_client()
        logger.info(f"Fetching offer page: {url}")

        response = await client.get(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if "html" in content_type:
            title, text = html_to_text(response.text)
        else:
            title, text = "", response.text.strip()

        logger.debug(f"Fetched {len(text)} characters from {url}")
        return FetchedPage(url=url, title=title, text=text)
