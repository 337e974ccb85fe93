"""Blob storage for imported product images.

Images are written under ``settings.images_dir`` and served by the admin API
at ``/images/<key>``, so the public URL of a stored copy is
``<public_base_url>/<key>``.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from catalog_import.config import settings

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "png": "png",
    "webp": "webp",
    "gif": "gif",
    "avif": "avif",
    "svg": "svg",
}


@dataclass
class StoredBlob:
    key: str
    public_url: str


def extension_for(content_type: str) -> str:
    """Pick a file extension from an image content type (``jpg`` by default)."""
    lowered = content_type.lower()
    for marker, ext in _EXTENSIONS.items():
        if marker in lowered:
            return ext
    return "jpg"


def generate_key(content_type: str) -> str:
    """Return a unique object key such as ``scraped-1700000000000-3f9a1c2.png``."""
    millis = int(time.time() * 1000)
    return f"scraped-{millis}-{uuid.uuid4().hex[:7]}.{extension_for(content_type)}"


class LocalBlobStorage:
    """Store image bytes as files in a directory.

    Keys are never reused, so a store never overwrites an existing object.
    """

    def __init__(self, root: Path, public_base_url: str) -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls) -> "LocalBlobStorage":
        return cls(settings.images_dir, settings.public_image_base_url)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def store(
        self, content: bytes, content_type: str, key: Optional[str] = None
    ) -> StoredBlob:
        """Write *content* under a fresh key and return its public URL.

        Raises:
            OSError: If the file cannot be written.
            FileExistsError: If an explicit *key* is already taken.
        """
        key = key or generate_key(content_type)
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / key
        with path.open("xb") as fh:
            fh.write(content)
        logger.info("Stored %d bytes as %s", len(content), key)
        return StoredBlob(key=key, public_url=self.public_url(key))

    def delete(self, key: str) -> None:
        """Remove a stored object.  No-op if it does not exist."""
        (self.root / key).unlink(missing_ok=True)
