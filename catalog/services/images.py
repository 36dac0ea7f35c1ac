"""
Image reference resolution for imported products.

Images are stored inline as data URIs. A row's image cell is kept when it is
already a data URI (or an opaque reference), and fetched and encoded when it
is an http(s) URL. A failed fetch never fails the row: the image is dropped.
"""
import base64
import io
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from catalog.core.config import settings
from catalog.logging_config import get_logger

logger = get_logger("images")

DATA_URI_PREFIX = "data:"
REMOTE_SCHEMES = ("http://", "https://")


class ExternalFetchFailure(Exception):
    """Fetching or decoding a remote image failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Inline bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def is_data_uri(value: str) -> bool:
    return value.startswith(DATA_URI_PREFIX)


def is_remote_url(value: str) -> bool:
    return value.lower().startswith(REMOTE_SCHEMES)


def sniff_image(data: bytes) -> Optional[str]:
    """
    Check that bytes decode as an image.

    Returns:
        MIME type of the detected format, or None when Pillow has no mapping
    Raises:
        ValueError: bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"not a decodable image ({e})")


class ImageResolver:
    """Resolves a CSV image cell to the value stored on the product."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        default_mime: Optional[str] = None
    ):
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.image_fetch_timeout
        self.default_mime = default_mime or settings.image_default_mime

    def resolve(self, raw: Optional[str]) -> str:
        """Return the image value to store; empty string when there is none."""
        if not raw:
            return ""
        value = raw.strip()
        if not value or is_data_uri(value):
            return value
        if is_remote_url(value):
            try:
                return self.fetch_data_uri(value)
            except ExternalFetchFailure as e:
                logger.warning(f"Image fetch failed, importing without image: {e}")
                return ""
        return value

    def fetch_data_uri(self, url: str) -> str:
        """
        Download url once and encode it as a data URI.

        A declared image/* content type is trusted as-is, so formats Pillow
        cannot read (SVG, AVIF) are kept. Any other body must decode as an
        image; its type is then detected, falling back to the default MIME.
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExternalFetchFailure(url, str(e))

        data = response.content
        if not data:
            raise ExternalFetchFailure(url, "empty response body")

        declared = (response.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        if declared.startswith("image/"):
            mime_type = declared
        else:
            # Untyped or mistyped body: keep it only if it decodes as an image
            try:
                mime_type = sniff_image(data) or self.default_mime
            except ValueError as e:
                raise ExternalFetchFailure(url, str(e))
        logger.debug(f"Fetched {len(data)} bytes ({mime_type}) from {url}")
        return encode_data_uri(data, mime_type)
