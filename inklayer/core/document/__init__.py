"""
PDF document handling: reading, form fields and export compositing.
"""
from .compositor import ExportCompositor, PageFrame, base14_font, measure_text, text_baseline
from .form_fields import apply_form_values, detect_form_fields
from .pdf_reader import PDFDocumentReader, document_to_bytes, get_page_sizes, open_document

__all__ = [
    'ExportCompositor',
    'PageFrame',
    'PDFDocumentReader',
    'apply_form_values',
    'base14_font',
    'detect_form_fields',
    'document_to_bytes',
    'get_page_sizes',
    'measure_text',
    'open_document',
    'text_baseline',
]
