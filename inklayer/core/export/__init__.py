"""
Export of the edited document.
"""
from .export_worker import (
    ExportController,
    ExportJob,
    ExportWorker,
    edited_file_name,
    save_document,
)

__all__ = [
    'ExportController',
    'ExportJob',
    'ExportWorker',
    'edited_file_name',
    'save_document',
]
