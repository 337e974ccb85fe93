"""Page fetcher backed by an external unblocking relay.

The source marketplace blocks naive scraping, so pages are never requested
directly.  Instead the address is handed to a residential-proxy style
"web unlocker" API which returns the page markup on our behalf.

Failures are classified into :class:`~catalog_import.errors.FetchErrorKind`:

``timeout``
    The relay did not answer within ``timeout`` seconds.
``blocked``
    The relay answered with a non-2xx status, or with an empty body.
``network_error``
    Any other transport failure (DNS, connection refused, TLS, ...).

No retries are attempted here; the orchestrator records the failure and moves
on to the next address.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from catalog_import.config import settings
from catalog_import.errors import (
    ConfigurationError,
    FetchError,
    FetchErrorKind,
    ValidationError,
)
from catalog_import.scraper.models import RawPage
from catalog_import.scraper.validator import is_valid_product_url

logger = logging.getLogger(__name__)

# Forwarded to the target site by the relay; a bare client gets challenged.
_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class UnlockerFetcher:
    """Fetch product pages through the unblocking relay API.

    The HTTP client is injected so tests (and the admin API) control its
    lifetime; the fetcher never closes it.
    """

    def __init__(
        self,
        client: httpx.Client,
        api_url: str,
        api_key: str,
        zone: str,
        timeout: float = 60.0,
    ) -> None:
        self.client = client
        self.api_url = api_url
        self.api_key = api_key
        self.zone = zone
        self.timeout = timeout

    @classmethod
    def from_settings(cls, client: Optional[httpx.Client] = None) -> "UnlockerFetcher":
        """Build a fetcher from :data:`~catalog_import.config.settings`.

        Raises:
            ConfigurationError: If ``BRIGHT_DATA_API_KEY`` is not set.
        """
        if not settings.unlocker_api_key:
            raise ConfigurationError(
                "BRIGHT_DATA_API_KEY environment variable is not set"
            )
        return cls(
            client=client or httpx.Client(),
            api_url=settings.unlocker_api_url,
            api_key=settings.unlocker_api_key,
            zone=settings.unlocker_zone,
            timeout=settings.fetch_timeout,
        )

    def fetch(self, url: str) -> RawPage:
        """Return the markup of *url* as a :class:`RawPage`.

        Raises:
            ValidationError: If *url* is not a product page of the source site.
            FetchError: On timeout, a blocked/failed relay response or a
                transport failure.
        """
        if not is_valid_product_url(url):
            raise ValidationError(f"Not a product page address: {url!r}")

        logger.info("Fetching %s via unlocker zone %s", url, self.zone)
        try:
            response = self.client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "zone": self.zone,
                    "url": url,
                    "format": "raw",
                    "headers": _BROWSER_HEADERS,
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise FetchError(
                FetchErrorKind.TIMEOUT,
                f"Request timeout after {self.timeout:g}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(FetchErrorKind.NETWORK_ERROR, str(exc) or repr(exc)) from exc

        if not response.is_success:
            body = response.text[:200]
            raise FetchError(
                FetchErrorKind.BLOCKED,
                f"HTTP {response.status_code}: {response.reason_phrase} - {body}".rstrip(" -"),
                status_code=response.status_code,
            )

        html = response.text
        if not html.strip():
            raise FetchError(
                FetchErrorKind.BLOCKED,
                "Relay returned an empty page",
                status_code=response.status_code,
            )

        logger.info("Fetched %s (%d chars)", url, len(html))
        return RawPage(url=url, html=html, status_code=response.status_code)
