"""
Core logic of the Inklayer overlay engine.
"""

from .annotations import (
    Annotation,
    AnnotationManager,
    AnnotationType,
    ElementStore,
    HistoryManager,
    TextElement,
)
from .document import ExportCompositor, detect_form_fields
from .errors import (
    ExportCancelledError,
    InklayerError,
    NotFoundError,
    ResourceUnavailableError,
    SerializationError,
    ValidationError,
)
from .geometry import ViewState, flip_y, to_document_space, to_view_space

__all__ = [
    "Annotation",
    "AnnotationManager",
    "AnnotationType",
    "ElementStore",
    "HistoryManager",
    "TextElement",
    "ExportCompositor",
    "detect_form_fields",
    "InklayerError",
    "ValidationError",
    "NotFoundError",
    "ResourceUnavailableError",
    "SerializationError",
    "ExportCancelledError",
    "ViewState",
    "flip_y",
    "to_document_space",
    "to_view_space",
]
