"""
Overlay renderer that paints a page's elements on top of the rendered page.
"""
import logging
from typing import Dict, Iterable, Optional, Sequence

from PyQt5.QtCore import QPointF, QRectF, Qt
from PyQt5.QtGui import (
    QBrush,
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QPainter,
    QPainterPath,
    QPen,
    QPolygonF,
)

from ..core.annotations.models import Annotation, AnnotationType, Element, TextElement
from ..core.colors import hex_to_rgb255
from ..core.errors import ResourceUnavailableError, ValidationError
from ..core.geometry import CHECKMARK_POINTS, Point, ViewState
from ..core.images import decode_image_src
from ..utils.settings import EditorSettings

logger = logging.getLogger(__name__)

# Vertical distance of the underline below the baseline, relative to font size
UNDERLINE_OFFSET = 0.15
LINE_SPACING = 1.2


def _qcolor(hex_color: str, alpha: int = 255) -> QColor:
    red, green, blue = hex_to_rgb255(hex_color)
    return QColor(red, green, blue, alpha)


class OverlayRenderer:
    """
    Paints annotations and text elements for one page.

    All element geometry is in document space and gets scaled by the zoom
    passed to :meth:`paint`, stroke widths included.
    """

    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()
        self._image_cache: Dict[str, QImage] = {}

    def clear_image_cache(self) -> None:
        self._image_cache.clear()

    def render_page(self, view_state: ViewState, elements: Iterable[Element],
                    selected_id: Optional[str] = None) -> Optional[QImage]:
        """
        Render the overlay of one page into a transparent image.

        Args:
            view_state: Page and zoom on screen
            elements: Elements to draw; those of other pages are ignored
            selected_id: Element to outline as selected

        Returns:
            Image at the page's view size, or None if no surface could be
            allocated
        """
        width, height = view_state.view_size
        image = QImage(width, height, QImage.Format_ARGB32_Premultiplied)
        if image.isNull():
            logger.warning("Cannot allocate %dx%d overlay for page %d",
                           width, height, view_state.page_index)
            return None
        image.fill(Qt.transparent)

        page_elements = [e for e in elements if e.page_index == view_state.page_index]
        painter = QPainter(image)
        try:
            self.paint(painter, page_elements, view_state.zoom, selected_id)
        finally:
            painter.end()
        return image

    def paint(self, painter: QPainter, elements: Sequence[Element], zoom: float,
              selected_id: Optional[str] = None) -> None:
        """
        Paint elements in insertion order.

        Elements that cannot be drawn are logged and skipped.

        Raises:
            ValidationError: If zoom is not positive
        """
        if zoom <= 0:
            raise ValidationError(f"Zoom must be positive, got {zoom}")

        painter.setRenderHint(QPainter.Antialiasing)
        for element in elements:
            painter.save()
            try:
                if isinstance(element, TextElement):
                    self._paint_text_element(painter, element, zoom)
                else:
                    self._paint_annotation(painter, element, zoom)
            except ResourceUnavailableError as e:
                logger.warning("Skipping element %s: %s", element.id, e)
            except Exception as e:
                logger.warning("Failed to paint element %s: %s", element.id, e)
            finally:
                painter.restore()

            if selected_id is not None and element.id == selected_id:
                self._paint_selection(painter, element, zoom)

    def paint_preview(self, painter: QPainter, points: Sequence[Point], color: str,
                      stroke_width: float, zoom: float) -> None:
        """Paint the path of a drawing in progress."""
        if len(points) < 2:
            return

        painter.save()
        painter.setPen(self._stroke_pen(_qcolor(color, 150), stroke_width, zoom))
        painter.setBrush(Qt.NoBrush)

        path = QPainterPath()
        first = points[0]
        path.moveTo(first[0] * zoom, first[1] * zoom)
        for point in points[1:]:
            path.lineTo(point[0] * zoom, point[1] * zoom)

        painter.drawPath(path)
        painter.restore()

    # Annotations

    def _paint_annotation(self, painter: QPainter, ann: Annotation, zoom: float) -> None:
        ann_type = ann.annotation_type
        rect = self._view_rect(ann, zoom)

        if ann.is_image:
            painter.drawImage(rect, self._load_image(ann.payload.src))
            return

        if ann_type == AnnotationType.TEXT:
            self._draw_text(
                painter,
                ann.payload.text,
                ann.x, ann.y,
                QFont(self.settings.font_family),
                ann.payload.font_size,
                _qcolor(ann.color),
                underline=False,
                zoom=zoom,
            )
            return

        if ann_type == AnnotationType.HIGHLIGHT:
            alpha = int(round(self.settings.highlight_opacity * 255))
            painter.setPen(Qt.NoPen)
            painter.setBrush(QBrush(_qcolor(ann.color, alpha)))
            painter.drawRect(rect)
            return

        painter.setPen(self._stroke_pen(_qcolor(ann.color), ann.stroke_width, zoom))
        painter.setBrush(Qt.NoBrush)

        if ann_type == AnnotationType.RECTANGLE:
            painter.drawRect(rect)

        elif ann_type == AnnotationType.CIRCLE:
            painter.drawEllipse(rect)

        elif ann_type == AnnotationType.LINE:
            painter.drawLine(rect.topLeft(), rect.bottomRight())

        elif ann_type in (AnnotationType.FREEFORM, AnnotationType.SIGNATURE):
            self._paint_path(painter, ann, zoom)

        elif ann_type == AnnotationType.CHECKMARK:
            painter.drawPolyline(QPolygonF([
                QPointF(rect.x() + rect.width() * fx, rect.y() + rect.height() * fy)
                for fx, fy in CHECKMARK_POINTS
            ]))

        elif ann_type == AnnotationType.X_MARK:
            painter.drawLine(rect.topLeft(), rect.bottomRight())
            painter.drawLine(rect.topRight(), rect.bottomLeft())

    def _paint_path(self, painter: QPainter, ann: Annotation, zoom: float) -> None:
        """Paint a freehand path through the stored points."""
        pairs = ann.payload.pairs()
        if len(pairs) < 2:
            return

        path = QPainterPath()
        first = pairs[0]
        path.moveTo(first[0] * zoom, first[1] * zoom)
        for x, y in pairs[1:]:
            path.lineTo(x * zoom, y * zoom)

        painter.drawPath(path)

    # Text

    def _paint_text_element(self, painter: QPainter, element: TextElement, zoom: float) -> None:
        font = QFont(element.font_family)
        font.setBold(element.bold)
        font.setItalic(element.italic)
        self._draw_text(
            painter,
            element.text,
            element.x, element.y,
            font,
            element.font_size,
            _qcolor(element.color),
            underline=element.underline,
            zoom=zoom,
        )

    def _draw_text(self, painter: QPainter, text: str, x: float, y: float, font: QFont,
                   font_size: float, color: QColor, underline: bool, zoom: float) -> None:
        """Draw text with its first baseline one font size below ``y``."""
        if not text:
            return

        font.setPixelSize(max(1, int(round(font_size * zoom))))
        painter.setFont(font)
        painter.setPen(QPen(color))

        lines = text.splitlines()
        baseline = (y + font_size) * zoom
        for index, line in enumerate(lines):
            painter.drawText(QPointF(x * zoom, baseline + index * font_size * LINE_SPACING * zoom), line)

        if underline:
            metrics = QFontMetricsF(font)
            width = metrics.horizontalAdvance(lines[0])
            offset = baseline + font_size * UNDERLINE_OFFSET * zoom
            painter.setPen(QPen(color, max(1.0, font_size * zoom / 16)))
            painter.drawLine(QPointF(x * zoom, offset), QPointF(x * zoom + width, offset))

    def _text_rect(self, element: TextElement, zoom: float) -> QRectF:
        """Bounds of a text element, measured when it has no stored size."""
        if element.width > 0 and element.height > 0:
            return self._view_rect(element, zoom)

        font = QFont(element.font_family)
        font.setBold(element.bold)
        font.setItalic(element.italic)
        font.setPixelSize(max(1, int(round(element.font_size * zoom))))
        metrics = QFontMetricsF(font)

        lines = element.text.splitlines() or [""]
        width = max(metrics.horizontalAdvance(line) for line in lines)
        height = element.font_size * zoom * (1 + (len(lines) - 1) * LINE_SPACING)
        return QRectF(element.x * zoom, element.y * zoom, width, height)

    # Selection

    def _paint_selection(self, painter: QPainter, element: Element, zoom: float) -> None:
        """Outline the selected element inside its bounds."""
        if isinstance(element, TextElement):
            rect = self._text_rect(element, zoom)
        else:
            rect = self._view_rect(element, zoom)

        pen_width = 2
        inset = pen_width / 2
        pen = QPen(_qcolor(self.settings.selection_color), pen_width)
        pen.setStyle(Qt.DashLine)

        painter.save()
        painter.setPen(pen)
        painter.setBrush(Qt.NoBrush)
        painter.drawRect(rect.normalized().adjusted(inset, inset, -inset, -inset))
        painter.restore()

    # Helpers

    @staticmethod
    def _view_rect(element: Element, zoom: float) -> QRectF:
        return QRectF(element.x * zoom, element.y * zoom,
                      element.width * zoom, element.height * zoom)

    @staticmethod
    def _stroke_pen(color: QColor, stroke_width: float, zoom: float) -> QPen:
        pen = QPen(color, stroke_width * zoom)
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        return pen

    def _load_image(self, src: str) -> QImage:
        """
        Decode an image source, caching the result.

        Raises:
            ResourceUnavailableError: If the source does not decode to an image
        """
        image = self._image_cache.get(src)
        if image is not None:
            return image

        image = QImage.fromData(decode_image_src(src))
        if image.isNull():
            raise ResourceUnavailableError("Image data could not be decoded")
        self._image_cache[src] = image
        return image
