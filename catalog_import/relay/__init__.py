"""Image relay — server-side image download with relaxed TLS hostname checks.

Public re-exports::

    from catalog_import.relay import relay_image, RelayedImage
"""

from catalog_import.relay.proxy import RelayedImage, build_relay_client, relay_image

__all__ = ["relay_image", "build_relay_client", "RelayedImage"]
