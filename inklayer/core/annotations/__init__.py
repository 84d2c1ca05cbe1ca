"""
Element model, storage, history and hit testing.
"""
from .eraser import element_at, find_erasable
from .history import HistoryManager, HistorySnapshot
from .manager import AnnotationManager, text_element_from_ocr
from .models import (
    Annotation,
    AnnotationType,
    Element,
    FormField,
    FormFieldType,
    ImagePayload,
    OcrResult,
    PathPayload,
    TextElement,
    TextPayload,
)
from .persistence import AnnotationPersistence, dump_annotations, load_annotations
from .store import ElementStore

__all__ = [
    'Annotation',
    'AnnotationType',
    'Element',
    'FormField',
    'FormFieldType',
    'ImagePayload',
    'OcrResult',
    'PathPayload',
    'TextElement',
    'TextPayload',
    'ElementStore',
    'HistoryManager',
    'HistorySnapshot',
    'AnnotationManager',
    'AnnotationPersistence',
    'dump_annotations',
    'load_annotations',
    'element_at',
    'find_erasable',
    'text_element_from_ocr',
]
