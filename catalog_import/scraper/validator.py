"""Source address validation.

Only product pages of the configured marketplace are importable: the host must
match exactly and the path must contain the product-listing segment.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from catalog_import.config import settings


def is_valid_product_url(
    url: str,
    host: Optional[str] = None,
    path_segment: Optional[str] = None,
) -> bool:
    """Return ``True`` if *url* looks like a product page on the source site.

    Args:
        url: Candidate address, as supplied by the operator.
        host: Expected hostname.  Defaults to ``settings.source_host``.
        path_segment: Substring the path must contain.  Defaults to
            ``settings.source_path_segment``.
    """
    expected_host = host or settings.source_host
    segment = path_segment or settings.source_path_segment

    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False

    if parsed.scheme not in ("http", "https"):
        return False
    return parsed.hostname == expected_host.lower() and segment in parsed.path
