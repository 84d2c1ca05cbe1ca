"""
Annotation interchange format and persistence to/from JSON files.

The interchange format is a JSON array of annotation records in which every
optional field of the record's kind is present. Loading also accepts the
aliased spellings produced by older exports (``value`` for ``text``,
``size``/``fontSize`` for ``font_size``, ``font``/``fontFamily`` for
``font_family``, camelCase keys, and a 1-based ``page``), which are collapsed
here and never reach the rest of the engine.
"""
import hashlib
import json
import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

from ...utils.resource_loader import get_app_data_dir
from ..errors import ValidationError
from .models import Annotation, TextElement

logger = logging.getLogger(__name__)

_COMMON_ALIASES = {
    "page_index": ("pageIndex",),
    "stroke_width": ("strokeWidth",),
    "font_size": ("fontSize", "size"),
    "font_family": ("fontFamily", "font"),
    "text": ("value",),
    "type": ("kind",),
}


def normalize_record(data: Dict) -> Dict:
    """
    Collapse aliased keys into their canonical names.

    The canonical key wins when both spellings are present.
    """
    record = dict(data)
    for canonical, aliases in _COMMON_ALIASES.items():
        for alias in aliases:
            if alias in record:
                value = record.pop(alias)
                record.setdefault(canonical, value)
    if "page_index" not in record and "page" in record:
        record["page_index"] = int(record["page"]) - 1
    record.pop("page", None)
    return record


def annotation_from_record(data: Dict) -> Annotation:
    return Annotation.from_dict(normalize_record(data))


def text_element_from_record(data: Dict) -> TextElement:
    return TextElement.from_dict(normalize_record(data))


def dump_annotations(annotations: Iterable[Annotation]) -> List[Dict]:
    """Convert annotations to interchange records."""
    return [ann.to_dict() for ann in annotations]


def load_annotations(records: Iterable[Dict]) -> List[Annotation]:
    """
    Build annotations from interchange records.

    Malformed records are logged and skipped.
    """
    annotations = []
    for index, data in enumerate(records):
        try:
            annotations.append(annotation_from_record(data))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("Skipping annotation record %d: %s", index, e)
    return annotations


def load_text_elements(records: Iterable[Dict]) -> List[TextElement]:
    """Build text elements from records, skipping malformed ones."""
    elements = []
    for index, data in enumerate(records):
        try:
            elements.append(text_element_from_record(data))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("Skipping text element record %d: %s", index, e)
    return elements


class AnnotationPersistence:
    """Manages saving and loading annotations to/from disk."""

    def __init__(self, data_dir: Optional[str] = None):
        self._app_data_dir: Optional[str] = data_dir

    def get_app_data_dir(self) -> str:
        """
        Get or create the directory used for storing annotations.

        Returns:
            Path to the annotations directory
        """
        if self._app_data_dir:
            os.makedirs(self._app_data_dir, exist_ok=True)
            return self._app_data_dir

        app_dir = str(get_app_data_dir() / "annotations")
        os.makedirs(app_dir, exist_ok=True)
        self._app_data_dir = app_dir
        return app_dir

    def get_json_path(self, pdf_path: str) -> str:
        """
        Get the JSON file path for a given PDF.

        Args:
            pdf_path: Path to the PDF file

        Returns:
            Path to the corresponding JSON annotations file
        """
        # Hash of the PDF path keeps one file per document
        path_hash = hashlib.md5(pdf_path.encode()).hexdigest()
        return os.path.join(self.get_app_data_dir(), f"{path_hash}.json")

    def save_to_json(self, annotations: List[Annotation], text_elements: List[TextElement],
                     pdf_path: str, file_path: Optional[str] = None) -> bool:
        """
        Save annotations and text elements to a JSON file.

        Args:
            annotations: Annotations to save
            text_elements: Text elements to save
            pdf_path: Path to the associated PDF
            file_path: Optional custom path for the JSON file

        Returns:
            True if save was successful, False otherwise
        """
        if file_path is None:
            file_path = self.get_json_path(pdf_path)

        try:
            data = {
                "pdf_path": pdf_path,
                "annotations": dump_annotations(annotations),
                "text_elements": [e.to_dict() for e in text_elements],
            }

            directory = os.path.dirname(file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save annotations to %s: %s", file_path, e)
            return False

    def load_from_json(self, pdf_path: str, file_path: Optional[str] = None
                       ) -> Tuple[List[Annotation], List[TextElement], bool]:
        """
        Load annotations and text elements from a JSON file.

        Args:
            pdf_path: Path to the PDF file
            file_path: Optional custom path for the JSON file

        Returns:
            Tuple of (annotations, text elements, success flag)
        """
        if file_path is None:
            file_path = self.get_json_path(pdf_path)

        if not os.path.exists(file_path):
            return [], [], False

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load annotations from %s: %s", file_path, e)
            return [], [], False

        # A bare array is the plain interchange format
        if isinstance(data, list):
            return load_annotations(data), [], True

        stored_pdf_path = data.get("pdf_path")
        if stored_pdf_path and stored_pdf_path != pdf_path:
            logger.warning("JSON file %s is for a different PDF: %s", file_path, stored_pdf_path)

        annotations = load_annotations(data.get("annotations", []))
        text_elements = load_text_elements(data.get("text_elements", []))
        return annotations, text_elements, True

    def delete_json_file(self, pdf_path: str) -> bool:
        """
        Delete the JSON annotation file for a PDF.

        Returns:
            True if deletion was successful or file didn't exist
        """
        file_path = self.get_json_path(pdf_path)

        if not os.path.exists(file_path):
            return True

        try:
            os.remove(file_path)
            return True
        except OSError as e:
            logger.error("Failed to delete %s: %s", file_path, e)
            return False

    def has_saved_annotations(self, pdf_path: str) -> bool:
        """Check if saved annotations exist for a PDF."""
        return os.path.exists(self.get_json_path(pdf_path))
