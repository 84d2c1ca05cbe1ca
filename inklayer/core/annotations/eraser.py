"""
Hit testing for the eraser and the select tool.
"""
import math
from typing import Iterable, List, Optional, Tuple

from .models import Annotation, AnnotationType, Element

Point = Tuple[float, float]


def find_erasable(elements: Iterable[Element], point: Point, radius: float,
                  page_index: int) -> List[Element]:
    """
    Find every element on a page whose bounding-box center lies inside the eraser.

    Args:
        elements: Candidate elements
        point: Eraser position in document space
        radius: Eraser radius in document units
        page_index: Page the eraser is on

    Returns:
        Matching elements in their original order. Elements exactly at
        ``radius`` are not matched.
    """
    px, py = point
    matches = []
    for element in elements:
        if element.page_index != page_index:
            continue
        cx, cy = element.center
        if math.hypot(cx - px, cy - py) < radius:
            matches.append(element)
    return matches


def element_at(elements: List[Element], point: Point,
               tolerance: float = 5.0) -> Optional[Element]:
    """
    Get the topmost element under a point.

    Args:
        elements: Elements of one page in insertion order
        point: Point in document space
        tolerance: Extra distance accepted around strokes

    Returns:
        The topmost element at the point, or None
    """
    # Check in reverse order (topmost first)
    for element in reversed(elements):
        if _point_in_element(element, point, tolerance):
            return element
    return None


def _point_in_element(element: Element, point: Point, tolerance: float) -> bool:
    px, py = point

    if isinstance(element, Annotation):
        points = element.points
        if points:
            # Check if point is near the freehand path
            width = max(element.stroke_width / 2 + tolerance, tolerance)
            pairs = list(zip(points[0::2], points[1::2]))
            return any(
                point_near_line(px, py, x1, y1, x2, y2, width)
                for (x1, y1), (x2, y2) in zip(pairs, pairs[1:])
            )

        if element.annotation_type == AnnotationType.LINE:
            return point_near_line(
                px, py,
                element.x, element.y,
                element.x + element.width, element.y + element.height,
                max(element.stroke_width / 2 + tolerance, tolerance),
            )

    return (
        element.x - tolerance <= px <= element.x + element.width + tolerance
        and element.y - tolerance <= py <= element.y + element.height + tolerance
    )


def point_near_line(px: float, py: float, x1: float, y1: float,
                    x2: float, y2: float, tolerance: float) -> bool:
    """
    Check if a point is near a line segment.

    Args:
        px, py: Point coordinates
        x1, y1, x2, y2: Line segment endpoints
        tolerance: Maximum distance to consider "near"

    Returns:
        True if point is within tolerance of the line segment
    """
    line_length_sq = (x2 - x1) ** 2 + (y2 - y1) ** 2

    if line_length_sq == 0:
        # Line is a point
        return math.hypot(px - x1, py - y1) <= tolerance

    # Projection of the point onto the segment, clamped to its ends
    t = max(0.0, min(1.0, ((px - x1) * (x2 - x1) + (py - y1) * (y2 - y1)) / line_length_sq))

    nearest_x = x1 + t * (x2 - x1)
    nearest_y = y1 + t * (y2 - y1)
    return math.hypot(px - nearest_x, py - nearest_y) <= tolerance
