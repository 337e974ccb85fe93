"""Image relay core: download a remote image on the caller's behalf.

Browsers cannot read cross-origin image bytes from the source marketplace, so
the download happens server-side.  Some image hosts sit behind a CDN whose
certificate names the CDN's own domain rather than the origin; with
``tolerate_hostname_mismatch`` enabled the certificate chain is still verified
against the CA bundle but the hostname check is skipped.

Redirects are resolved here rather than by httpx so that at most one hop is
followed, with the same TLS settings as the first request.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import certifi
import httpx

from catalog_import.config import settings
from catalog_import.errors import RelayError, RelayErrorKind

logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
_DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass
class RelayedImage:
    """Image bytes returned by the relay."""

    content: bytes
    content_type: str
    url: str


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _ssl_context(tolerate_hostname_mismatch: bool) -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=certifi.where())
    if tolerate_hostname_mismatch:
        context.check_hostname = False
    return context


def _request_headers() -> dict[str, str]:
    return {
        "User-Agent": _USER_AGENT,
        "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": settings.source_referer,
    }


def _get(client: httpx.Client, url: str) -> httpx.Response:
    try:
        return client.get(url, headers=_request_headers())
    except httpx.TimeoutException as exc:
        raise RelayError(
            RelayErrorKind.TIMEOUT, "Request timeout", url=url
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise RelayError(
            RelayErrorKind.NETWORK_OR_TLS_FAILURE, str(exc) or repr(exc), url=url
        ) from exc


def _is_redirect(response: httpx.Response) -> bool:
    return 300 <= response.status_code < 400 and "location" in response.headers


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_relay_client(
    tolerate_hostname_mismatch: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> httpx.Client:
    """Return an ``httpx.Client`` configured for image relaying.

    Args:
        tolerate_hostname_mismatch: Skip the certificate hostname check.
            Defaults to ``settings.ignore_tls_hostname``.
        timeout: Per-request timeout in seconds.  Defaults to
            ``settings.relay_timeout``.
    """
    if tolerate_hostname_mismatch is None:
        tolerate_hostname_mismatch = settings.ignore_tls_hostname
    return httpx.Client(
        verify=_ssl_context(tolerate_hostname_mismatch),
        timeout=timeout if timeout is not None else settings.relay_timeout,
        follow_redirects=False,
    )


def relay_image(url: str, client: Optional[httpx.Client] = None) -> RelayedImage:
    """Download *url* and return its bytes and content type.

    Args:
        url: Absolute http(s) address of the image.
        client: Client built by :func:`build_relay_client`.  A temporary one
            is created (and closed) when omitted.

    Raises:
        RelayError: ``timeout`` / ``network_or_tls_failure`` on transport
            problems, ``http_status`` for a non-200 final response (including a
            second redirect), ``not_an_image`` when the content type is not
            ``image/*``.
    """
    if client is None:
        with build_relay_client() as owned:
            return relay_image(url, owned)

    logger.info("Fetching image: %s", url)
    final_url = url
    response = _get(client, url)

    if _is_redirect(response):
        final_url = urljoin(url, response.headers["location"])
        logger.info("Following redirect to: %s", final_url)
        response = _get(client, final_url)

    if response.status_code != 200:
        raise RelayError(
            RelayErrorKind.HTTP_STATUS,
            f"HTTP {response.status_code}: {response.reason_phrase}",
            url=final_url,
            status_code=response.status_code,
        )

    content_type = response.headers.get("content-type") or _DEFAULT_CONTENT_TYPE
    if not content_type.lower().startswith("image/"):
        logger.warning("Invalid content type %s for %s", content_type, final_url)
        raise RelayError(
            RelayErrorKind.NOT_AN_IMAGE,
            "URL does not point to an image",
            url=final_url,
            content_type=content_type,
        )

    content = response.content
    logger.info("Relayed %d bytes, type: %s", len(content), content_type)
    return RelayedImage(content=content, content_type=content_type, url=final_url)
