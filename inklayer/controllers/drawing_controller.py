"""
Controller turning pointer gestures into committed elements.
"""
import logging
import math
from enum import Enum
from typing import List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from ..core.annotations import (
    Annotation,
    AnnotationManager,
    AnnotationType,
    Element,
    ImagePayload,
    PathPayload,
    TextElement,
)
from ..core.document import measure_text
from ..core.errors import ValidationError
from ..core.geometry import Point, to_document_space

logger = logging.getLogger(__name__)

# Size of a checkmark or x-mark placed with a single click
MARK_SIZE = 20.0
# Size of an image placed with a single click
IMAGE_SIZE = (150.0, 50.0)
# Drags shorter than this (document units) count as a click
CLICK_DISTANCE = 2.0


class Tool(Enum):
    """Active tool of the editor."""
    SELECT = "select"
    ERASER = "eraser"
    TEXT = "text"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    HIGHLIGHT = "highlight"
    FREEFORM = "freeform"
    SIGNATURE = "signature"
    CHECKMARK = "checkmark"
    X_MARK = "x-mark"
    IMAGE = "image"


_BOX_TOOLS = {
    Tool.RECTANGLE: AnnotationType.RECTANGLE,
    Tool.CIRCLE: AnnotationType.CIRCLE,
    Tool.HIGHLIGHT: AnnotationType.HIGHLIGHT,
    Tool.CHECKMARK: AnnotationType.CHECKMARK,
    Tool.X_MARK: AnnotationType.X_MARK,
}

_MARK_TOOLS = (Tool.CHECKMARK, Tool.X_MARK)


class DrawingController(QObject):
    """
    Pointer state machine for one editor view.

    Press, move and release take view-space points. Only the release
    commits anything to the manager; intermediate state (the path being
    drawn, the drag offset) stays here. The eraser commits on every pass.
    """

    # Signals
    annotations_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # selected element or None
    preview_changed = pyqtSignal()
    text_requested = pyqtSignal(int, float, float)  # page_index, x, y

    def __init__(self, manager: AnnotationManager, parent: QObject = None):
        super().__init__(parent)
        self.manager = manager
        settings = manager.settings

        self.tool = Tool.SELECT
        self.color = settings.color
        self.stroke_width = settings.stroke_width
        self.eraser_radius = settings.eraser_radius

        self._pending_image: Optional[str] = None

        # Gesture state
        self._page_index: Optional[int] = None
        self._zoom = 1.0
        self._anchor: Optional[Point] = None
        self._current: Optional[Point] = None
        self._points: List[Point] = []
        self._drag_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """True while a gesture is in progress."""
        return self._page_index is not None

    @property
    def preview_points(self) -> List[Point]:
        """Document-space points of the path being drawn."""
        return list(self._points)

    @property
    def preview_rect(self) -> Optional[Tuple[float, float, float, float]]:
        """(x, y, width, height) of the box being dragged, if any."""
        if self._anchor is None or self._current is None or self.tool not in _BOX_TOOLS:
            return None
        return _box(self._anchor, self._current)

    @property
    def drag_offset(self) -> Point:
        """Offset of the element being dragged by the select tool."""
        if self._drag_id is None or self._anchor is None or self._current is None:
            return 0.0, 0.0
        return self._current[0] - self._anchor[0], self._current[1] - self._anchor[1]

    def set_tool(self, tool: Tool) -> None:
        self.cancel()
        self.tool = tool

    def set_pending_image(self, src: str) -> None:
        """
        Set the image placed by the next signature or image gesture.

        Args:
            src: Data URL or base64 string from the capture dialog
        """
        self._pending_image = src

    def cancel(self) -> None:
        """Drop the gesture in progress without committing."""
        had_preview = bool(self._points) or self._anchor is not None
        self._reset()
        if had_preview:
            self.preview_changed.emit()

    # Gesture handlers

    def press(self, page_index: int, view_point: Point, zoom: float) -> None:
        """Start a gesture on a page."""
        point = to_document_space(view_point, zoom)
        self._page_index = page_index
        self._zoom = zoom
        self._anchor = point
        self._current = point

        if self.tool == Tool.ERASER:
            self._erase(point)

        elif self.tool == Tool.SELECT:
            element = self.manager.get_element_at_point(
                page_index, view_point[0], view_point[1], zoom
            )
            self._select(element)
            self._drag_id = element.id if element else None

        elif self.tool == Tool.FREEFORM or self._draws_signature_path():
            self._points = [point]
            self.preview_changed.emit()

    def move(self, view_point: Point) -> None:
        """Continue the gesture in progress."""
        if not self.is_active:
            return
        point = to_document_space(view_point, self._zoom)
        self._current = point

        if self.tool == Tool.ERASER:
            self._erase(point)
            return

        if self._points:
            self._points.append(point)
        self.preview_changed.emit()

    def release(self, view_point: Point) -> Optional[Element]:
        """
        Finish the gesture and commit its result.

        Returns:
            The element created or moved, or None if nothing was committed
        """
        if not self.is_active:
            return None
        point = to_document_space(view_point, self._zoom)
        self._current = point
        if self._points:
            self._points.append(point)

        try:
            result = self._finish(point)
        except ValidationError as e:
            logger.warning("Discarding %s gesture: %s", self.tool.value, e)
            result = None
        finally:
            self.cancel()

        if result is not None:
            self.annotations_changed.emit()
        return result

    def add_text(self, page_index: int, x: float, y: float, text: str) -> Optional[TextElement]:
        """Commit text entered after a text tool click."""
        if not text:
            return None
        settings = self.manager.settings
        # The stored box is what the eraser and the select tool hit
        width, height = measure_text(text, settings.font_family, settings.font_size)
        element = self.manager.add_text_element(TextElement(
            page_index=page_index,
            x=x,
            y=y,
            text=text,
            width=width,
            height=height,
            font_family=settings.font_family,
            font_size=settings.font_size,
            color="#000000",
        ))
        self.annotations_changed.emit()
        return element

    def delete_selected(self) -> bool:
        """Delete the selected element."""
        selected_id = self.manager.selected_id
        if selected_id is None or not self.manager.remove_element(selected_id):
            return False
        self.selection_changed.emit(None)
        self.annotations_changed.emit()
        return True

    def undo(self) -> bool:
        """
        Undo the last action.

        Returns:
            True if undo was successful
        """
        if self.manager.undo():
            self.selection_changed.emit(None)
            self.annotations_changed.emit()
            return True
        return False

    def redo(self) -> bool:
        """
        Redo the last undone action.

        Returns:
            True if redo was successful
        """
        if self.manager.redo():
            self.selection_changed.emit(None)
            self.annotations_changed.emit()
            return True
        return False

    # Internals

    def _finish(self, point: Point) -> Optional[Element]:
        page_index = self._page_index
        anchor = self._anchor
        is_click = math.hypot(point[0] - anchor[0], point[1] - anchor[1]) < CLICK_DISTANCE

        if self.tool == Tool.SELECT:
            if self._drag_id is None or is_click:
                return None
            dx, dy = self.drag_offset
            return self.manager.move_element(self._drag_id, dx, dy)

        if self.tool == Tool.ERASER:
            return None

        if self.tool == Tool.TEXT:
            self.text_requested.emit(page_index, point[0], point[1])
            return None

        if self.tool == Tool.FREEFORM or self._draws_signature_path():
            return self._commit_path(page_index)

        if self.tool in (Tool.IMAGE, Tool.SIGNATURE):
            return self._commit_image(page_index, anchor, point, is_click)

        if self.tool == Tool.LINE:
            if is_click:
                return None
            return self._commit_annotation(
                AnnotationType.LINE, page_index,
                anchor[0], anchor[1], point[0] - anchor[0], point[1] - anchor[1],
            )

        annotation_type = _BOX_TOOLS[self.tool]
        if is_click:
            if self.tool not in _MARK_TOOLS:
                return None
            x, y = point[0] - MARK_SIZE / 2, point[1] - MARK_SIZE / 2
            return self._commit_annotation(annotation_type, page_index,
                                           max(0.0, x), max(0.0, y), MARK_SIZE, MARK_SIZE)

        return self._commit_annotation(annotation_type, page_index, *_box(anchor, point))

    def _commit_annotation(self, annotation_type: AnnotationType, page_index: int,
                           x: float, y: float, width: float, height: float,
                           payload=None) -> Annotation:
        return self.manager.add_annotation(Annotation(
            page_index=page_index,
            annotation_type=annotation_type,
            x=x,
            y=y,
            width=width,
            height=height,
            color=self.color,
            stroke_width=self.stroke_width,
            payload=payload,
        ))

    def _commit_path(self, page_index: int) -> Optional[Annotation]:
        if len(self._points) < 2:
            return None
        flat = tuple(c for point in self._points for c in point)
        payload = PathPayload(flat)
        annotation_type = (AnnotationType.SIGNATURE if self.tool == Tool.SIGNATURE
                           else AnnotationType.FREEFORM)
        return self._commit_annotation(annotation_type, page_index, *payload.bounds(),
                                       payload=payload)

    def _commit_image(self, page_index: int, anchor: Point, point: Point,
                      is_click: bool) -> Optional[Annotation]:
        src = self._pending_image
        if not src:
            logger.warning("No image to place for the %s tool", self.tool.value)
            return None
        if is_click:
            x, y, width, height = anchor[0], anchor[1], IMAGE_SIZE[0], IMAGE_SIZE[1]
        else:
            x, y, width, height = _box(anchor, point)

        if self.tool == Tool.SIGNATURE:
            element = self.manager.place_signature(src, page_index, (x, y, width, height))
        else:
            element = self._commit_annotation(AnnotationType.IMAGE, page_index,
                                              x, y, width, height, payload=ImagePayload(src))
        self._pending_image = None
        return element

    def _draws_signature_path(self) -> bool:
        """The signature tool draws a path unless an image is waiting to be placed."""
        return self.tool == Tool.SIGNATURE and not self._pending_image

    def _erase(self, point: Point) -> None:
        had_selection = self.manager.selected_id is not None
        removed = self.manager.erase(point, self.eraser_radius, self._page_index)
        if not removed:
            return
        if had_selection and self.manager.selected_id is None:
            self.selection_changed.emit(None)
        self.annotations_changed.emit()

    def _select(self, element: Optional[Element]) -> None:
        new_id = element.id if element else None
        if new_id == self.manager.selected_id:
            return
        self.manager.selected_id = new_id
        self.selection_changed.emit(element)

    def _reset(self) -> None:
        self._page_index = None
        self._anchor = None
        self._current = None
        self._points = []
        self._drag_id = None


def _box(start: Point, end: Point) -> Tuple[float, float, float, float]:
    """Normalized (x, y, width, height) spanned by two corners."""
    return (
        min(start[0], end[0]),
        min(start[1], end[1]),
        abs(end[0] - start[0]),
        abs(end[1] - start[1]),
    )
