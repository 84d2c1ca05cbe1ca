"""
Background export of the edited document.
"""
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set, Tuple

from PyQt5.QtCore import QObject, QThread, pyqtSignal

from ..annotations.manager import AnnotationManager
from ..annotations.models import Annotation, FormField, TextElement
from ..document.compositor import ExportCompositor
from ..errors import ExportCancelledError, InklayerError, SerializationError

logger = logging.getLogger(__name__)


def edited_file_name(source_name: str) -> str:
    """
    Name for the exported file, e.g. ``report.pdf`` -> ``report-edited.pdf``.
    """
    stem, ext = os.path.splitext(Path(source_name).name)
    return f"{stem or 'document'}-edited{ext or '.pdf'}"


def save_document(data: bytes, output_path: str) -> None:
    """
    Write exported bytes through a temp file in the target directory.

    Raises:
        SerializationError: If the file cannot be written
    """
    output_dir = os.path.dirname(os.path.abspath(output_path))
    temp_path = None
    try:
        temp_fd, temp_path = tempfile.mkstemp(suffix='.pdf', dir=output_dir)
        with os.fdopen(temp_fd, 'wb') as f:
            f.write(data)
        # Replace the target only once the bytes are fully on disk
        shutil.move(temp_path, output_path)
    except OSError as e:
        if temp_path and os.path.exists(temp_path):
            os.remove(temp_path)
        raise SerializationError(f"Cannot write {output_path}: {e}") from e


@dataclass(frozen=True)
class ExportJob:
    """Immutable inputs of one export, captured when the export starts."""

    base_bytes: bytes
    text_elements: Tuple[TextElement, ...] = ()
    form_fields: Tuple[FormField, ...] = ()
    annotations: Tuple[Annotation, ...] = ()
    source_name: str = "document.pdf"

    @classmethod
    def capture(cls, base_bytes: bytes, manager: AnnotationManager,
                source_name: str = "document.pdf") -> "ExportJob":
        store = manager.store
        return cls(
            base_bytes=bytes(base_bytes),
            text_elements=tuple(store.text_elements()),
            form_fields=tuple(store.form_fields()),
            annotations=tuple(store.annotations()),
            source_name=source_name,
        )

    @property
    def output_name(self) -> str:
        return edited_file_name(self.source_name)


class ExportWorker(QThread):
    """Worker thread for exporting without freezing the UI."""

    # Signals
    export_finished = pyqtSignal(object)  # final bytes
    failed = pyqtSignal(str)  # error message
    cancelled = pyqtSignal()
    progress = pyqtSignal(str)  # status message
    stage_progress = pyqtSignal(int, int)  # finished stages, total stages

    def __init__(self, job: ExportJob, compositor: Optional[ExportCompositor] = None,
                 output_path: Optional[str] = None):
        super().__init__()
        self.job = job
        self.compositor = compositor or ExportCompositor()
        self.output_path = output_path
        self._cancel_requested = False

    def request_cancel(self) -> None:
        """Ask the export to stop at the next stage boundary."""
        self._cancel_requested = True

    def run(self):
        """Execute the export in a background thread."""
        job = self.job
        try:
            self.progress.emit("Exporting...")
            data = self.compositor.export_document(
                job.base_bytes,
                job.text_elements,
                job.form_fields,
                job.annotations,
                should_cancel=lambda: self._cancel_requested,
                progress=self.stage_progress.emit,
            )

            if self.output_path:
                self.progress.emit("Finalizing...")
                save_document(data, self.output_path)

            self.export_finished.emit(data)
        except ExportCancelledError:
            self.cancelled.emit()
        except InklayerError as e:
            logger.error("Export of %s failed: %s", job.source_name, e)
            self.failed.emit(str(e))
        except Exception as e:
            logger.exception("Unexpected error exporting %s", job.source_name)
            self.failed.emit(f"Export failed: {e}")


class ExportController(QObject):
    """Starts exports, one at a time, from the current editor state."""

    export_started = pyqtSignal()
    export_finished = pyqtSignal(object)  # final bytes
    export_failed = pyqtSignal(str)
    export_cancelled = pyqtSignal()
    stage_progress = pyqtSignal(int, int)

    def __init__(self, manager: AnnotationManager,
                 compositor: Optional[ExportCompositor] = None, parent: QObject = None):
        super().__init__(parent)
        self.manager = manager
        self.compositor = compositor or ExportCompositor(manager.settings)
        self._worker: Optional[ExportWorker] = None
        self._in_flight = False
        # Threads stay referenced until they have fully stopped
        self._threads: Set[ExportWorker] = set()

    @property
    def is_exporting(self) -> bool:
        return self._in_flight

    def start_export(self, base_bytes: bytes, source_name: str = "document.pdf",
                     output_path: Optional[str] = None, run_async: bool = True) -> bool:
        """
        Export the current elements merged into ``base_bytes``.

        Args:
            base_bytes: Original document
            source_name: File name the output name is derived from
            output_path: Where to write the result, if anywhere
            run_async: Run in a worker thread; False runs inline

        Returns:
            False if an export is already running
        """
        if self._in_flight:
            logger.warning("Export already in progress, ignoring request")
            return False

        self._in_flight = True
        job = ExportJob.capture(base_bytes, self.manager, source_name)
        worker = ExportWorker(job, self.compositor, output_path)
        worker.export_finished.connect(self._on_finished)
        worker.failed.connect(self._on_failed)
        worker.cancelled.connect(self._on_cancelled)
        worker.stage_progress.connect(self.stage_progress)
        self._worker = worker

        self.export_started.emit()
        if run_async:
            self._threads.add(worker)
            worker.finished.connect(self._on_thread_finished)
            worker.start()
        else:
            worker.run()
        return True

    def wait_for_export(self, msecs: int = 30000) -> bool:
        """
        Block until running export threads have stopped.

        Returns:
            False if a thread was still running after the timeout
        """
        return all(worker.wait(msecs) for worker in list(self._threads))

    def cancel(self) -> None:
        """Request cancellation of the running export."""
        if self._worker is not None and self._in_flight:
            self._worker.request_cancel()

    def _release(self) -> None:
        self._in_flight = False
        self._worker = None

    def _on_thread_finished(self) -> None:
        worker = self.sender()
        self._threads.discard(worker)
        if worker is not None:
            worker.deleteLater()

    def _on_finished(self, data: bytes) -> None:
        self._release()
        self.export_finished.emit(data)

    def _on_failed(self, message: str) -> None:
        self._release()
        self.export_failed.emit(message)

    def _on_cancelled(self) -> None:
        self._release()
        self.export_cancelled.emit()
