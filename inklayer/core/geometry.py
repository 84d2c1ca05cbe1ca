"""
Coordinate mapping between the zoomed view and the document.

View space is what the user sees on screen (top-down, scaled by zoom).
Interactive document space is the same top-down frame at zoom 1.0. The PDF
file itself is bottom-up, so export flips Y with ``flip_y`` per page.
"""
from dataclasses import dataclass
from typing import Tuple

from .errors import ValidationError

Point = Tuple[float, float]


def _check_zoom(zoom: float) -> None:
    if zoom <= 0:
        raise ValidationError(f"Zoom must be positive, got {zoom}")


def to_document_space(view_point: Point, zoom: float) -> Point:
    """Convert a view-space point to document coordinates."""
    _check_zoom(zoom)
    return view_point[0] / zoom, view_point[1] / zoom


def to_view_space(document_point: Point, zoom: float) -> Point:
    """Convert a document point to view-space coordinates."""
    _check_zoom(zoom)
    return document_point[0] * zoom, document_point[1] * zoom


def flip_y(point: Point, page_height: float) -> Point:
    """
    Flip a point between the top-down and bottom-up conventions.

    Args:
        point: (x, y) in one convention
        page_height: Height of the page the point belongs to

    Returns:
        (x, page_height - y)
    """
    return point[0], page_height - point[1]


@dataclass(frozen=True)
class ViewState:
    """Zoom and page size for the page currently on screen."""

    page_index: int
    zoom: float
    page_width: float
    page_height: float

    def __post_init__(self):
        _check_zoom(self.zoom)

    @property
    def view_size(self) -> Tuple[int, int]:
        """Pixel size of the page at the current zoom."""
        return (
            max(1, int(round(self.page_width * self.zoom))),
            max(1, int(round(self.page_height * self.zoom))),
        )

    def to_document(self, view_point: Point) -> Point:
        return to_document_space(view_point, self.zoom)

    def to_view(self, document_point: Point) -> Point:
        return to_view_space(document_point, self.zoom)


# Relative checkmark stroke inside the bounding box
CHECKMARK_POINTS: Tuple[Tuple[float, float], ...] = ((0.2, 0.5), (0.4, 0.7), (0.8, 0.3))
