"""
Export compositor: bakes text elements, form values and annotations into a PDF.

The export runs as three stages in a fixed order. Each stage opens the bytes
produced by the previous one and serializes fresh bytes, so no document
handle is shared between stages:

1. text elements become native text runs
2. form values are applied to the existing fields, then the form is flattened
3. annotations are drawn on top of everything else

Interactive coordinates are top-down. They are flipped into the PDF's
bottom-up space per page and mapped onto the page through its
transformation matrix.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from ...utils.settings import EditorSettings
from ..annotations.models import Annotation, AnnotationType, FormField, TextElement
from ..colors import hex_to_rgb
from ..errors import ExportCancelledError, ResourceUnavailableError
from ..geometry import CHECKMARK_POINTS, Point, flip_y
from ..images import decode_image_src
from .form_fields import apply_form_values
from .pdf_reader import document_to_bytes, open_document

logger = logging.getLogger(__name__)

# Base-14 font names understood by PyMuPDF: regular, bold, italic, bold-italic
_BASE14_FONTS = {
    "helvetica": ("helv", "hebo", "heit", "hebi"),
    "times": ("tiro", "tibo", "tiit", "tibi"),
    "courier": ("cour", "cobo", "coit", "cobi"),
}

_FONT_FAMILIES = {
    "helvetica": "helvetica",
    "arial": "helvetica",
    "verdana": "helvetica",
    "sans-serif": "helvetica",
    "times": "times",
    "times-roman": "times",
    "times new roman": "times",
    "georgia": "times",
    "serif": "times",
    "courier": "courier",
    "courier new": "courier",
    "monospace": "courier",
}

STAGE_NAMES = ("text", "forms", "annotations")

# Distance between baselines of consecutive lines, relative to font size
LINE_SPACING = 1.2

CancelCheck = Callable[[], bool]
ProgressCallback = Callable[[int, int], None]


def base14_font(font_family: str, bold: bool = False, italic: bool = False) -> str:
    """Map a font family and style onto a PyMuPDF base-14 font name."""
    family = _FONT_FAMILIES.get((font_family or "").strip().lower(), "helvetica")
    return _BASE14_FONTS[family][(2 if italic else 0) + (1 if bold else 0)]


def measure_text(text: str, font_family: str, font_size: float,
                 bold: bool = False, italic: bool = False) -> Tuple[float, float]:
    """
    Size of a text run as it will be exported.

    Args:
        text: Text, possibly spanning several lines
        font_family: Font family, mapped onto a base-14 font
        font_size: Font size in points

    Returns:
        (width, height) in document units; the width is that of the
        longest line
    """
    fontname = base14_font(font_family, bold, italic)
    lines = text.splitlines() or [""]
    width = max(fitz.get_text_length(line, fontname=fontname, fontsize=font_size)
                for line in lines)
    height = font_size * (1 + (len(lines) - 1) * LINE_SPACING)
    return width, height


def text_baseline(x: float, y: float, font_size: float, page_height: float) -> Point:
    """
    Bottom-up baseline origin for text whose top-left corner is at (x, y).

    The baseline sits one font size below the top so the text lines up with
    what was shown on screen. Coordinates are clamped to the page origin.
    """
    native_x, native_y = flip_y((x, y), page_height)
    return max(0.0, native_x), max(0.0, native_y - font_size)


class PageFrame:
    """Maps interactive top-down coordinates onto one PyMuPDF page."""

    def __init__(self, page: fitz.Page):
        self.height = page.rect.height
        self._matrix = page.transformation_matrix

    def to_page(self, native_point: Point) -> fitz.Point:
        """Map a bottom-up PDF point into the page's drawing space."""
        return fitz.Point(native_point) * self._matrix

    def point(self, x: float, y: float) -> fitz.Point:
        return self.to_page(flip_y((x, y), self.height))

    def rect(self, x: float, y: float, width: float, height: float) -> fitz.Rect:
        return fitz.Rect(self.point(x, y), self.point(x + width, y + height)).normalize()

    def baseline(self, x: float, y: float, font_size: float) -> fitz.Point:
        return self.to_page(text_baseline(x, y, font_size, self.height))


def _group_by_page(elements: Iterable) -> Dict[int, List]:
    """Group elements by page, keeping their order within each page."""
    by_page: Dict[int, List] = {}
    for element in elements:
        by_page.setdefault(element.page_index, []).append(element)
    return by_page


class ExportCompositor:
    """Merges all element categories into a base PDF."""

    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()

    def export_document(self, base_bytes: bytes,
                        text_elements: Sequence[TextElement] = (),
                        form_fields: Sequence[FormField] = (),
                        annotations: Sequence[Annotation] = (),
                        should_cancel: Optional[CancelCheck] = None,
                        progress: Optional[ProgressCallback] = None) -> bytes:
        """
        Produce the final document bytes.

        Args:
            base_bytes: Original PDF
            text_elements: Text runs to embed
            form_fields: Values for fields that exist in the base document
            annotations: Shapes, marks, paths, text and images to draw
            should_cancel: Polled between stages; True aborts the export
            progress: Called with (finished stages, total stages)

        Returns:
            The composited PDF. With all collections empty this is
            ``base_bytes`` unchanged.

        Raises:
            SerializationError: If the base bytes cannot be parsed or the
                output cannot be written
            ExportCancelledError: If cancellation was requested
        """
        # Snapshot the inputs so later edits by the caller cannot leak in
        data = bytes(base_bytes)
        stages = (
            (self.embed_text_elements, tuple(text_elements)),
            (self.apply_form_fields, tuple(form_fields)),
            (self.draw_annotations, tuple(annotations)),
        )

        for index, (stage, items) in enumerate(stages):
            if should_cancel is not None and should_cancel():
                logger.info("Export cancelled before %s stage", STAGE_NAMES[index])
                raise ExportCancelledError(f"Cancelled before {STAGE_NAMES[index]} stage")

            if items:
                data = stage(data, items)
            else:
                logger.debug("Skipping empty %s stage", STAGE_NAMES[index])

            if progress is not None:
                progress(index + 1, len(stages))

        return data

    # Stage 1: text elements

    def embed_text_elements(self, data: bytes, elements: Sequence[TextElement]) -> bytes:
        """Embed text elements as native text runs."""
        doc = open_document(data)
        try:
            for page_index, page_elements in _group_by_page(elements).items():
                page = self._load_page(doc, page_index)
                if page is None:
                    continue
                frame = PageFrame(page)
                for element in page_elements:
                    try:
                        self._insert_text_element(page, frame, element)
                    except Exception as e:
                        logger.warning("Failed to add text %s on page %d: %s",
                                       element.id, page_index, e)
            return document_to_bytes(doc)
        finally:
            doc.close()

    def _insert_text_element(self, page: fitz.Page, frame: PageFrame,
                             element: TextElement) -> None:
        if not element.text:
            return
        fontname = base14_font(element.font_family, element.bold, element.italic)
        color = hex_to_rgb(element.color)
        origin = frame.baseline(element.x, element.y, element.font_size)

        page.insert_text(
            origin,
            element.text,
            fontsize=element.font_size,
            fontname=fontname,
            color=color,
        )

        if element.underline:
            first_line = (element.text.splitlines() or [""])[0]
            width = fitz.get_text_length(first_line, fontname=fontname,
                                         fontsize=element.font_size)
            offset = element.font_size * 0.15
            shape = page.new_shape()
            shape.draw_line(
                fitz.Point(origin.x, origin.y + offset),
                fitz.Point(origin.x + width, origin.y + offset),
            )
            shape.finish(color=color, width=max(1.0, element.font_size / 16))
            shape.commit()

    # Stage 2: form fields

    def apply_form_fields(self, data: bytes, fields: Sequence[FormField]) -> bytes:
        """
        Apply field values, then flatten the form.

        If no field could be applied the input bytes are returned unchanged.
        """
        doc = open_document(data)
        try:
            applied = apply_form_values(doc, fields)
            if applied == 0:
                logger.info("No form values applied, leaving the form untouched")
                return data

            try:
                doc.bake(annots=False, widgets=True)
            except Exception as e:
                logger.warning(
                    "Could not flatten form, %d filled field(s) stay editable: %s", applied, e
                )
            return document_to_bytes(doc)
        finally:
            doc.close()

    # Stage 3: annotations

    def draw_annotations(self, data: bytes, annotations: Sequence[Annotation]) -> bytes:
        """Draw annotations as page content above the existing content."""
        doc = open_document(data)
        try:
            for page_index, page_annotations in _group_by_page(annotations).items():
                page = self._load_page(doc, page_index)
                if page is None:
                    continue
                frame = PageFrame(page)
                for ann in page_annotations:
                    try:
                        self._add_annotation_to_page(page, frame, ann)
                    except ResourceUnavailableError as e:
                        logger.warning("Skipping %s annotation %s: %s",
                                       ann.annotation_type.value, ann.id, e)
                    except Exception as e:
                        logger.warning("Failed to add %s annotation on page %d: %s",
                                       ann.annotation_type.value, page_index, e)
            return document_to_bytes(doc)
        finally:
            doc.close()

    def _add_annotation_to_page(self, page: fitz.Page, frame: PageFrame,
                                annotation: Annotation) -> None:
        """Add a single annotation to a PDF page."""
        ann_type = annotation.annotation_type
        color = hex_to_rgb(annotation.color)
        x, y = annotation.x, annotation.y
        width, height = annotation.width, annotation.height

        if annotation.is_image:
            image = decode_image_src(annotation.payload.src)
            page.insert_image(
                frame.rect(x, y, width, height),
                stream=image,
                keep_proportion=False,
                overlay=True,
            )
            return

        if ann_type == AnnotationType.TEXT:
            if annotation.payload.text:
                page.insert_text(
                    frame.baseline(x, y, annotation.payload.font_size),
                    annotation.payload.text,
                    fontsize=annotation.payload.font_size,
                    fontname="helv",
                    color=color,
                )
            return

        shape = page.new_shape()
        close_path = False

        if ann_type == AnnotationType.RECTANGLE:
            shape.draw_rect(frame.rect(x, y, width, height))
            close_path = True

        elif ann_type == AnnotationType.HIGHLIGHT:
            shape.draw_rect(frame.rect(x, y, width, height))
            shape.finish(color=None, fill=color,
                         fill_opacity=self.settings.highlight_opacity, width=0)
            shape.commit()
            return

        elif ann_type == AnnotationType.CIRCLE:
            shape.draw_oval(frame.rect(x, y, width, height))
            close_path = True

        elif ann_type == AnnotationType.LINE:
            shape.draw_line(frame.point(x, y), frame.point(x + width, y + height))

        elif ann_type in (AnnotationType.FREEFORM, AnnotationType.SIGNATURE):
            shape.draw_polyline([frame.point(px, py) for px, py in annotation.payload.pairs()])

        elif ann_type == AnnotationType.CHECKMARK:
            shape.draw_polyline([
                frame.point(x + width * fx, y + height * fy)
                for fx, fy in CHECKMARK_POINTS
            ])

        elif ann_type == AnnotationType.X_MARK:
            shape.draw_line(frame.point(x, y), frame.point(x + width, y + height))
            shape.draw_line(frame.point(x + width, y), frame.point(x, y + height))

        shape.finish(color=color, width=annotation.stroke_width, closePath=close_path)
        shape.commit()

    @staticmethod
    def _load_page(doc: fitz.Document, page_index: int) -> Optional[fitz.Page]:
        if not 0 <= page_index < doc.page_count:
            logger.warning("Page %d does not exist, skipping its elements", page_index)
            return None
        return doc.load_page(page_index)
