"""
Image re-encoding for sheetpics.
Produces size-bounded JPEGs for the download archive and small JPEG
thumbnails for previews.
"""
import asyncio
import base64
import io
import logging

from PIL import Image

from .errors import ImageDecodeError, ImageTooLargeError

logger = logging.getLogger(__name__)

MAX_COMPRESSED_BYTES = 50 * 1024
START_QUALITY = 80
MIN_QUALITY = 10
QUALITY_STEP = 10

THUMBNAIL_SIZE = (80, 80)
THUMBNAIL_QUALITY = 60


def _open_rgb(data: bytes) -> Image.Image:
    """Decode image bytes and flatten to RGB on a white background."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode == "P":
                img = img.convert("RGBA")
            if img.mode in ("RGBA", "LA"):
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                return background
            return img.convert("RGB")
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Unable to decode image: {e}") from e


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode an RGB image as JPEG at the given quality."""
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Unable to encode image: {e}") from e
    return buffer.getvalue()


def compress_image(data: bytes, max_bytes: int = MAX_COMPRESSED_BYTES) -> bytes:
    """
    Re-encode an image as JPEG no larger than max_bytes.

    Quality starts at 80 and drops in steps of 10 down to 10, stopping at the
    first encode that fits.

    Args:
        data: Source image bytes (any format Pillow reads)
        max_bytes: Size ceiling for the output

    Returns:
        JPEG bytes

    Raises:
        ImageDecodeError: If the source cannot be decoded
        ImageTooLargeError: If quality 10 still exceeds max_bytes
    """
    image = _open_rgb(data)

    quality = START_QUALITY
    compressed = encode_jpeg(image, quality)
    while len(compressed) > max_bytes and quality > MIN_QUALITY:
        quality -= QUALITY_STEP
        compressed = encode_jpeg(image, quality)

    if len(compressed) > max_bytes:
        raise ImageTooLargeError(
            f"Unable to compress image below {max_bytes // 1024}KB "
            f"({len(compressed)} bytes at quality {quality})"
        )

    logger.debug("Compressed %d -> %d bytes at quality %d", len(data), len(compressed), quality)
    return compressed


def generate_thumbnail(data: bytes) -> str:
    """Return an 80x80-bounded JPEG thumbnail as a data URI."""
    image = _open_rgb(data)
    # thumbnail() only ever shrinks and keeps the aspect ratio
    image.thumbnail(THUMBNAIL_SIZE)
    thumb = encode_jpeg(image, THUMBNAIL_QUALITY)
    return "data:image/jpeg;base64," + base64.b64encode(thumb).decode("ascii")


async def compress_image_async(data: bytes) -> bytes:
    return await asyncio.to_thread(compress_image, data)


async def generate_thumbnail_async(data: bytes) -> str:
    return await asyncio.to_thread(generate_thumbnail, data)
