"""
Detection of images stored as text inside spreadsheet cells.
Cells may hold a data URI or a bare base64 string of JPEG/PNG bytes.
"""
import base64
import binascii
import re
from typing import NamedTuple, Optional

DATA_URI_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$")

JPEG_MAGIC = b"\xff\xd8"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class EncodedImage(NamedTuple):
    """Decoded cell image."""
    data: bytes
    mime_type: str


def _b64decode(text: str) -> Optional[bytes]:
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError):
        return None


def sniff_encoded_image(value) -> Optional[EncodedImage]:
    """
    Classify a cell value as an encoded image.

    Args:
        value: Raw cell value (any type)

    Returns:
        EncodedImage, or None when the value is not a usable image
    """
    if not isinstance(value, str):
        return None

    match = DATA_URI_RE.match(value)
    if match:
        data = _b64decode(match.group(2))
        if data is None:
            return None
        return EncodedImage(data=data, mime_type=match.group(1))

    data = _b64decode(value)
    if data is None:
        return None
    if data[:2] == JPEG_MAGIC:
        return EncodedImage(data=data, mime_type="image/jpeg")
    if data[:8] == PNG_MAGIC:
        return EncodedImage(data=data, mime_type="image/png")
    return None


def extension_for_mime(mime_type: str) -> str:
    """image/png -> png"""
    return mime_type.split("/", 1)[-1]
