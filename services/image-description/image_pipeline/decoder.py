"""
Image decoder: base64 request payload -> validated ImagePayload.
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, InputError
from .models import ErrorKind, ImagePayload

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type accepted by the label detector
SUPPORTED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
}

MSG_NO_IMAGE = "No image provided in the request body."


def _identify_format(data: bytes) -> Optional[str]:
    try:
        with Image.open(BytesIO(data)) as img:
            image_format = img.format
            img.verify()
    except Image.DecompressionBombError as e:
        raise DecodeError(
            f"Image dimensions exceed the supported limit: {e}",
            kind=ErrorKind.UNSUPPORTED_FORMAT,
            details={"max_pixels": Image.MAX_IMAGE_PIXELS},
        ) from e
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, EOFError) as e:
        logger.debug(f"Pillow could not read image bytes: {e}")
        return None
    return image_format


def decode(payload: Union[str, bytes, None]) -> ImagePayload:
    """
    Decode a base64 image payload.

    Args:
        payload: Base64 text (or ASCII bytes) of a JPEG or PNG image,
            without a data-URL prefix

    Returns:
        ImagePayload with the raw bytes and detected content type

    Raises:
        InputError: If the payload is missing or empty
        DecodeError: If the payload is not valid base64 or not a supported image
    """
    if payload is None:
        raise InputError(MSG_NO_IMAGE)
    if not isinstance(payload, (str, bytes)):
        raise InputError(f"'image' must be a base64 string, got {type(payload).__name__}")

    payload = payload.strip()
    if not payload:
        raise InputError(MSG_NO_IMAGE)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Image is not valid base64: {e}") from e

    if not data:
        raise DecodeError("Image decoded to zero bytes.")

    image_format = _identify_format(data)
    content_type = SUPPORTED_FORMATS.get(image_format) if image_format else None
    if content_type is None:
        raise DecodeError(
            f"Unsupported image format: {image_format or 'unknown'}. Only JPEG and PNG images are accepted.",
            kind=ErrorKind.UNSUPPORTED_FORMAT,
            details={"format": image_format},
        )

    logger.debug(f"Decoded {len(data)} bytes as {content_type}")
    return ImagePayload(data=data, content_type=content_type)
