"""Decoding of uploaded image payloads into pixel arrays."""

import base64
import binascii
import io
import re

import numpy as np
from PIL import Image, UnidentifiedImageError

from carnet_ocr.errors import DecodeError, InvalidImageData
from carnet_ocr.models import RawImage
from carnet_ocr.utils.logger import get_logger

logger = get_logger(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:image/[a-z]+;base64,", re.IGNORECASE)
_BASE64_BODY = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

MIN_BASE64_LENGTH = 1000
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def decode_image(data: bytes) -> RawImage:
    """Decode raster image bytes (PNG, JPEG, TIFF, ...) into pixels.

    Colour images are returned as RGB, greyscale images keep one channel.

    Raises:
        DecodeError: If the bytes are not a readable image.
    """
    if not data:
        raise DecodeError("Empty image payload")
    try:
        with Image.open(io.BytesIO(data)) as img:
            mode = "L" if img.mode in ("L", "1") else "RGB"
            pixels = np.array(img.convert(mode))
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Unreadable image: {exc}") from exc

    height, width = pixels.shape[:2]
    logger.debug("Decoded image %dx%d (%d channels)", width, height, _channels(pixels))
    return RawImage(pixels=pixels, width=width, height=height)


def _channels(pixels: np.ndarray) -> int:
    return 1 if pixels.ndim == 2 else pixels.shape[2]


def validate_base64_image(payload: str) -> str | None:
    """Check a base64 image payload without decoding it.

    Args:
        payload: Raw base64 text, optionally with a ``data:image/...`` prefix.

    Returns:
        ``None`` when the payload is acceptable, otherwise the reason it is not.
    """
    if not payload or not isinstance(payload, str):
        return "Empty or non-text base64 payload"

    body = _DATA_URI_PREFIX.sub("", payload.strip())
    if not _BASE64_BODY.match(body):
        return "Malformed base64 payload"
    if len(body) < MIN_BASE64_LENGTH:
        return "Image payload too small"
    if len(body) > MAX_IMAGE_BYTES * 4 / 3:
        return "Image payload too large (maximum 10MB)"
    return None


def decode_base64_image(payload: str) -> bytes:
    """Turn a validated base64 (or data URI) payload into image bytes.

    Raises:
        InvalidImageData: If the payload fails validation or decoding.
    """
    problem = validate_base64_image(payload)
    if problem:
        raise InvalidImageData(problem)

    body = _DATA_URI_PREFIX.sub("", payload.strip())
    try:
        return base64.b64decode(body, validate=True)
    except binascii.Error as exc:
        raise InvalidImageData(f"Malformed base64 payload: {exc}") from exc
