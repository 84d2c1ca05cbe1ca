"""
Decoding of image blob references used by signature and image annotations.
"""
import base64
import binascii
from urllib.parse import unquote_to_bytes

from .errors import ResourceUnavailableError


def decode_image_src(src: str) -> bytes:
    """
    Decode an image reference into raw image bytes.

    Args:
        src: A ``data:`` URL or a plain base64 string

    Returns:
        Encoded image bytes (PNG, JPEG, ...)

    Raises:
        ResourceUnavailableError: If the reference cannot be decoded
    """
    if not src:
        raise ResourceUnavailableError("Empty image reference")

    try:
        if src.startswith("data:"):
            header, sep, payload = src.partition(",")
            if not sep:
                raise ValueError("data URL without payload")
            if header.endswith(";base64"):
                data = base64.b64decode(payload, validate=True)
            else:
                data = unquote_to_bytes(payload)
        else:
            data = base64.b64decode(src, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ResourceUnavailableError(f"Undecodable image reference: {e}") from None

    if not data:
        raise ResourceUnavailableError("Image reference decodes to no data")
    return data


def encode_image_src(data: bytes, mime_type: str = "image/png") -> str:
    """Wrap image bytes into a base64 ``data:`` URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
