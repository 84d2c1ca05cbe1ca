"""
Hex color parsing and conversion.
"""
import re
from typing import Tuple

from .errors import ValidationError

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def normalize_hex(color: str) -> str:
    """
    Normalize a color to the canonical ``#rrggbb`` form.

    Args:
        color: Hex color with or without the leading ``#``

    Returns:
        Lower-case ``#rrggbb`` string

    Raises:
        ValidationError: If the color is not a 6-digit hex color
    """
    if not isinstance(color, str):
        raise ValidationError(f"Color must be a string, got {type(color).__name__}")
    match = _HEX_COLOR.match(color.strip())
    if not match:
        raise ValidationError(f"Malformed color: {color!r}")
    return "#" + "".join(match.groups()).lower()


def is_valid_hex(color: str) -> bool:
    """Check whether a color string is a valid 6-digit hex color."""
    return isinstance(color, str) and _HEX_COLOR.match(color.strip()) is not None


def hex_to_rgb255(color: str) -> Tuple[int, int, int]:
    """Convert a hex color to an RGB tuple (0-255)."""
    digits = normalize_hex(color)[1:]
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """Convert a hex color to an RGB tuple in the 0-1 range used by PyMuPDF."""
    return tuple(c / 255.0 for c in hex_to_rgb255(color))


def rgb255_to_hex(red: int, green: int, blue: int) -> str:
    """Convert an RGB tuple (0-255) to ``#rrggbb``."""
    for component in (red, green, blue):
        if not 0 <= component <= 255:
            raise ValidationError(f"Color component out of range: {component}")
    return f"#{red:02x}{green:02x}{blue:02x}"
