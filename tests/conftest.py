# tests/conftest.py
"""Shared fixtures: offscreen Qt application and generated PDFs."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # PyMuPDF
import pytest
from PyQt5.QtWidgets import QApplication

from inklayer.core.images import encode_image_src


def make_pdf(page_sizes=((612, 792),), text=None) -> bytes:
    """Build a PDF with one page per (width, height), optionally labelled."""
    doc = fitz.open()
    for number, (width, height) in enumerate(page_sizes, start=1):
        page = doc.new_page(width=width, height=height)
        if text:
            page.insert_text((72, 72), f"{text} {number}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def _add_widget(page, name, field_type, rect, value=None, choices=None):
    widget = fitz.Widget()
    widget.field_name = name
    widget.field_type = field_type
    widget.rect = fitz.Rect(rect)
    if choices is not None:
        widget.choice_values = choices
    if value is not None:
        widget.field_value = value
    page.add_widget(widget)


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep data, config and log files out of the real home directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("INKLAYER_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def sample_pdf() -> bytes:
    return make_pdf(((612, 792), (612, 792)), text="Page")


@pytest.fixture
def form_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    _add_widget(page, "full_name", fitz.PDF_WIDGET_TYPE_TEXT, (72, 100, 300, 124), value="")
    _add_widget(page, "agree", fitz.PDF_WIDGET_TYPE_CHECKBOX, (72, 140, 90, 158))
    _add_widget(page, "country", fitz.PDF_WIDGET_TYPE_COMBOBOX, (72, 180, 300, 204),
                value="Canada", choices=["Canada", "France"])
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def png_bytes() -> bytes:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 4, 4), False)
    pix.clear_with(200)
    return pix.tobytes("png")


@pytest.fixture
def png_src(png_bytes) -> str:
    return encode_image_src(png_bytes)
