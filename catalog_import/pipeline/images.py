"""Where the persistence step gets image bytes from.

The image relay service is tried first.  When it is unreachable or answers
with anything but an image or a "not an image" verdict, the same relay logic
runs in-process as a direct download.  A 200 answer whose content type is
not ``image/*`` is rejected like the relay's own "not an image" verdict.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from catalog_import.config import settings
from catalog_import.errors import RelayError, RelayErrorKind
from catalog_import.relay.proxy import RelayedImage, relay_image

logger = logging.getLogger(__name__)


class ImageSource:
    """Fetch image bytes via the relay service, falling back to a direct fetch.

    Args:
        client: Client used to talk to the relay service.
        relay_url: Base URL of the relay service (``http://host:3100``).
            ``None`` or empty skips the service and always fetches directly.
        direct_client: Client built with
            :func:`~catalog_import.relay.proxy.build_relay_client` for direct
            fetches.  When omitted each direct fetch uses a short-lived one.
        timeout: Timeout for calls to the relay service.
    """

    def __init__(
        self,
        client: httpx.Client,
        relay_url: Optional[str] = None,
        direct_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.relay_url = relay_url.rstrip("/") if relay_url else None
        self.timeout = timeout
        self.direct_client = direct_client

    @classmethod
    def from_settings(cls, client: httpx.Client) -> "ImageSource":
        return cls(client, settings.relay_url or None, timeout=settings.relay_timeout)

    def fetch(self, image_url: str) -> RelayedImage:
        """Return the bytes and content type of *image_url*.

        Raises:
            RelayError: If the image is not an image, or the direct fetch
                fails as well.
        """
        if self.relay_url:
            image = self._via_relay(image_url)
            if image is not None:
                return image
            logger.warning("Relay failed, attempting direct fetch of %s", image_url)
        return relay_image(image_url, self.direct_client)

    def _via_relay(self, image_url: str) -> Optional[RelayedImage]:
        """Ask the relay service; ``None`` means "fall back to a direct fetch"."""
        endpoint = f"{self.relay_url}/api/proxy-image"
        try:
            response = self.client.get(
                endpoint, params={"url": image_url}, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            logger.warning("Relay service unreachable at %s: %s", self.relay_url, exc)
            return None

        if response.status_code == 200:
            content_type = response.headers.get("content-type") or "image/jpeg"
            if not content_type.startswith("image/"):
                raise RelayError(
                    RelayErrorKind.NOT_AN_IMAGE,
                    "Relay service did not return an image",
                    url=image_url,
                    content_type=content_type,
                )
            return RelayedImage(
                content=response.content, content_type=content_type, url=image_url
            )

        body = _json_or_empty(response)
        if response.status_code == 400 and "contentType" in body:
            raise RelayError(
                RelayErrorKind.NOT_AN_IMAGE,
                "URL does not point to an image",
                url=image_url,
                content_type=body.get("contentType"),
            )

        logger.warning(
            "Relay answered HTTP %d for %s: %s",
            response.status_code, image_url, body.get("error", ""),
        )
        return None


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
