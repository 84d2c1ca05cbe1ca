"""
Main annotation manager that coordinates store, history and hit testing.
"""
import logging
from typing import List, Optional, Tuple

from ...utils.settings import EditorSettings
from ..errors import NotFoundError, ValidationError
from ..geometry import to_document_space
from .eraser import element_at, find_erasable
from .history import HistoryManager
from .models import (
    Annotation,
    AnnotationType,
    Element,
    FormField,
    ImagePayload,
    OcrResult,
    TextElement,
)
from .persistence import AnnotationPersistence
from .store import ElementStore

logger = logging.getLogger(__name__)

TEXT_STYLES = ("bold", "italic", "underline")


def text_element_from_ocr(result: OcrResult, page_index: int,
                          font_family: str = "Helvetica", font_size: float = 16.0,
                          color: str = "#000000") -> TextElement:
    """
    Turn a recognized OCR result into a text element at its top-left corner.

    Args:
        result: OCR result with a bounding box in document space
        page_index: Page the result was recognized on

    Returns:
        Unstored TextElement carrying the literal recognized text
    """
    x0, y0, x1, y1 = result.bbox
    return TextElement(
        page_index=page_index,
        x=x0,
        y=y0,
        text=result.text,
        width=max(0.0, x1 - x0),
        height=max(0.0, y1 - y0),
        font_family=font_family,
        font_size=font_size,
        color=color,
    )


class AnnotationManager:
    """Manages all elements of one document with undo/redo support."""

    def __init__(self, store: Optional[ElementStore] = None,
                 settings: Optional[EditorSettings] = None,
                 persistence: Optional[AnnotationPersistence] = None,
                 auto_save: bool = False):
        self.settings = settings or EditorSettings()
        self.store = store or ElementStore()
        self.history = HistoryManager(self.store.snapshot(), max_size=self.settings.history_size)
        self.persistence = persistence or AnnotationPersistence()
        self.auto_save = auto_save

        self.pdf_path: Optional[str] = None

        # For tracking selected element
        self.selected_id: Optional[str] = None

        # State at the last save, to detect real changes
        self._saved_snapshot = self.store.snapshot()

    def set_pdf_path(self, pdf_path: str) -> None:
        """Set the current PDF path."""
        self.pdf_path = pdf_path

    @property
    def has_unsaved_changes(self) -> bool:
        return self.store.snapshot() != self._saved_snapshot

    # Creating elements

    def add_annotation(self, annotation: Annotation) -> Annotation:
        """
        Add a new annotation with undo support.

        Raises:
            ValidationError: If the annotation is malformed
        """
        stored = self.store.add(annotation)
        self._commit()
        return stored

    def add_text_element(self, element: TextElement) -> TextElement:
        """
        Add a new text element with undo support.

        Raises:
            ValidationError: If the element is malformed
        """
        stored = self.store.add(element)
        self._commit()
        return stored

    def add_from_ocr(self, result: OcrResult, page_index: int) -> TextElement:
        """Place a recognized OCR result as a new text element."""
        element = text_element_from_ocr(
            result,
            page_index,
            font_family=self.settings.font_family,
            font_size=self.settings.font_size,
        )
        return self.add_text_element(element)

    def place_signature(self, src: str, page_index: int,
                        rect: Tuple[float, float, float, float]) -> Annotation:
        """
        Place a captured signature image.

        Args:
            src: Image blob as a data URL or base64 string
            page_index: Target page
            rect: (x, y, width, height) in document space
        """
        x, y, width, height = rect
        return self.add_annotation(Annotation(
            page_index=page_index,
            annotation_type=AnnotationType.SIGNATURE,
            x=x,
            y=y,
            width=width,
            height=height,
            color="#000000",
            stroke_width=1.0,
            payload=ImagePayload(src),
        ))

    # Changing elements

    def update_element(self, element_id: str, **patch) -> Optional[Element]:
        """
        Apply a committed edit to an element.

        Returns:
            The updated element, or None if the id is unknown

        Raises:
            ValidationError: If the edit would make the element malformed
        """
        try:
            updated = self.store.update(element_id, **patch)
        except NotFoundError as e:
            logger.warning("Update skipped: %s", e)
            return None
        self._commit()
        return updated

    def move_element(self, element_id: str, dx: float, dy: float) -> Optional[Element]:
        """Translate an element, including the points of a path."""
        try:
            element = self.store.get(element_id)
        except NotFoundError as e:
            logger.warning("Move skipped: %s", e)
            return None

        patch = {"x": element.x + dx, "y": element.y + dy}
        if isinstance(element, Annotation) and element.points:
            points = element.points
            moved = []
            for i in range(0, len(points), 2):
                moved.extend((points[i] + dx, points[i + 1] + dy))
            patch["payload"] = type(element.payload)(tuple(moved))
        return self.update_element(element_id, **patch)

    def resize_element(self, element_id: str, width: float, height: float) -> Optional[Element]:
        return self.update_element(element_id, width=width, height=height)

    def toggle_text_style(self, element_id: str, style: str) -> Optional[TextElement]:
        """Toggle bold, italic or underline on a text element."""
        if style not in TEXT_STYLES:
            raise ValidationError(f"Unknown text style: {style!r}")
        try:
            element = self.store.get(element_id)
        except NotFoundError as e:
            logger.warning("Style toggle skipped: %s", e)
            return None
        if not isinstance(element, TextElement):
            raise ValidationError(f"{element_id} is not a text element")
        return self.update_element(element_id, **{style: not getattr(element, style)})

    def remove_element(self, element_id: str) -> bool:
        """
        Remove an element with undo support.

        Returns:
            True if element was found and removed
        """
        if not self.store.remove(element_id):
            return False
        if self.selected_id == element_id:
            self.selected_id = None
        self._commit()
        return True

    def erase(self, point: Tuple[float, float], radius: float, page_index: int) -> List[Element]:
        """
        Remove every element whose center is within ``radius`` of ``point``.

        All matches are removed together and recorded as a single history step.

        Returns:
            The removed elements
        """
        matches = find_erasable(self.store.query(page_index), point, radius, page_index)
        if not matches:
            return []
        self.store.remove_many(e.id for e in matches)
        if self.selected_id in {e.id for e in matches}:
            self.selected_id = None
        self._commit()
        logger.debug("Erased %d element(s) on page %d", len(matches), page_index)
        return matches

    # Form fields

    def bind_form_fields(self, fields: List[FormField]) -> None:
        self.store.bind_form_fields(fields)

    def set_form_field_value(self, name: str, value: str) -> bool:
        """
        Set a form field value.

        Returns:
            True if the field exists and was updated
        """
        try:
            self.store.set_form_field_value(name, value)
        except NotFoundError as e:
            logger.warning("Form value skipped: %s", e)
            return False
        return True

    # Queries

    def get_elements_for_page(self, page_index: int) -> List[Element]:
        return self.store.query(page_index)

    def get_element_at_point(self, page_index: int, x: float, y: float,
                             zoom: float = 1.0) -> Optional[Element]:
        """
        Get the topmost element at a view-space point.

        Args:
            page_index: 0-based page index
            x: X coordinate in screen pixels
            y: Y coordinate in screen pixels
            zoom: Current zoom level
        """
        point = to_document_space((x, y), zoom)
        return element_at(self.store.query(page_index), point, tolerance=5.0 / zoom)

    def get_element_count(self) -> int:
        return len(self.store)

    # History

    def undo(self) -> bool:
        """
        Perform undo operation.

        Returns:
            True if undo was successful
        """
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.store.restore(snapshot)
        self.selected_id = None
        self._auto_save()
        return True

    def redo(self) -> bool:
        """
        Perform redo operation.

        Returns:
            True if redo was successful
        """
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.store.restore(snapshot)
        self.selected_id = None
        self._auto_save()
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def clear_all(self) -> None:
        """Clear all elements and reset state."""
        self.store.clear()
        self.history.clear(self.store.snapshot())
        self._saved_snapshot = self.store.snapshot()
        self.pdf_path = None
        self.selected_id = None

    # Persistence

    def save_to_json(self, file_path: Optional[str] = None) -> bool:
        """
        Save elements to a JSON file.

        Returns:
            True if save was successful
        """
        if not self.pdf_path:
            return False
        success = self.persistence.save_to_json(
            self.store.annotations(), self.store.text_elements(), self.pdf_path, file_path
        )
        if success:
            self.mark_saved()
        return success

    def load_from_json(self, file_path: Optional[str] = None) -> bool:
        """
        Load elements from a JSON file, replacing the current ones.

        Returns:
            True if load was successful
        """
        if not self.pdf_path:
            return False

        annotations, text_elements, success = self.persistence.load_from_json(
            self.pdf_path, file_path
        )
        if not success:
            return False

        form_fields = self.store.form_fields()
        self.store.clear()
        self.store.bind_form_fields(form_fields)
        for element in [*annotations, *text_elements]:
            try:
                self.store.add(element, keep_id=True)
            except ValidationError as e:
                logger.warning("Skipping stored element: %s", e)

        self.history.clear(self.store.snapshot())
        self.mark_saved()
        return True

    def auto_load(self) -> bool:
        """Try to automatically load saved elements for the current PDF."""
        if self.pdf_path and self.persistence.has_saved_annotations(self.pdf_path):
            return self.load_from_json()
        return False

    def mark_saved(self) -> None:
        """Mark all changes as saved."""
        self._saved_snapshot = self.store.snapshot()

    def _commit(self) -> None:
        self.history.commit(self.store.snapshot())
        self._auto_save()

    def _auto_save(self) -> None:
        """Automatically save elements to the JSON file."""
        if self.auto_save and self.pdf_path:
            self.persistence.save_to_json(
                self.store.annotations(), self.store.text_elements(), self.pdf_path
            )
