"""
Detection of existing form fields and application of edited values.
"""
import logging
from typing import Dict, Iterable, List, Set

import fitz  # PyMuPDF

from ..annotations.models import FormField, FormFieldType
from ..errors import NotFoundError
from .pdf_reader import open_document

logger = logging.getLogger(__name__)

_WIDGET_TYPES = {
    fitz.PDF_WIDGET_TYPE_TEXT: FormFieldType.TEXT,
    fitz.PDF_WIDGET_TYPE_CHECKBOX: FormFieldType.CHECKBOX,
    fitz.PDF_WIDGET_TYPE_RADIOBUTTON: FormFieldType.RADIO,
    fitz.PDF_WIDGET_TYPE_COMBOBOX: FormFieldType.DROPDOWN,
    fitz.PDF_WIDGET_TYPE_LISTBOX: FormFieldType.DROPDOWN,
}

CHECKED_VALUES = ("yes", "on", "true", "1", "checked")


def _choice_strings(widget) -> List[str]:
    """Flatten choice values, which may be plain strings or [export, display] pairs."""
    choices = []
    for choice in widget.choice_values or []:
        if isinstance(choice, (list, tuple)):
            choices.extend(str(c) for c in choice)
        else:
            choices.append(str(choice))
    return choices


def _widget_value(widget) -> str:
    value = widget.field_value
    if value is True:
        return "Yes"
    if value is False or value is None:
        return "Off"
    return str(value)


def detect_form_fields(data: bytes) -> List[FormField]:
    """
    List the fillable fields of a PDF.

    Radio buttons sharing a name are reported once, with the on-states of
    all buttons of the group as options.

    Raises:
        SerializationError: If the bytes are not a readable PDF
    """
    doc = open_document(data)
    try:
        fields: Dict[str, FormField] = {}
        for page in doc:
            for widget in page.widgets():
                field_type = _WIDGET_TYPES.get(widget.field_type)
                if field_type is None or not widget.field_name:
                    continue

                name = widget.field_name
                if field_type == FormFieldType.RADIO:
                    on_state = widget.on_state()
                    existing = fields.get(name)
                    if existing is not None:
                        options = existing.options + (str(on_state),)
                        value = existing.value
                        if _widget_value(widget) not in ("Off", "No"):
                            value = str(on_state)
                        fields[name] = FormField(
                            name, field_type, value, existing.rect,
                            existing.page_index, options,
                        )
                        continue
                    value = str(on_state) if _widget_value(widget) not in ("Off", "No") else "Off"
                    options = (str(on_state),)
                elif field_type == FormFieldType.DROPDOWN:
                    value = _widget_value(widget)
                    options = tuple(_choice_strings(widget))
                else:
                    value = _widget_value(widget)
                    options = ()

                if name in fields:
                    continue
                fields[name] = FormField(
                    name=name,
                    field_type=field_type,
                    value=value,
                    rect=tuple(widget.rect),
                    page_index=page.number,
                    options=options,
                )
        return list(fields.values())
    finally:
        doc.close()


def _apply_to_widget(widget, field: FormField) -> bool:
    """
    Write one field value into one widget.

    Returns:
        True if the widget took the value
    """
    field_type = _WIDGET_TYPES.get(widget.field_type)

    if field_type == FormFieldType.TEXT:
        widget.field_value = field.value

    elif field_type == FormFieldType.CHECKBOX:
        checked = field.value.lower() in CHECKED_VALUES or field.value == widget.on_state()
        widget.field_value = widget.on_state() if checked else "Off"

    elif field_type == FormFieldType.RADIO:
        # Only the button whose on-state matches is switched on
        if str(widget.on_state()) != field.value:
            return False
        widget.field_value = True

    elif field_type == FormFieldType.DROPDOWN:
        choices = _choice_strings(widget)
        if choices and field.value not in choices:
            raise NotFoundError(f"{field.value!r} is not an option of {field.name!r}")
        widget.field_value = field.value

    else:
        return False

    widget.update()
    return True


def apply_form_values(doc: fitz.Document, fields: Iterable[FormField]) -> int:
    """
    Apply field values to the document's widgets, matched by field name.

    Fields without a value, with an unknown name, or whose value a widget
    rejects are logged and skipped.

    Returns:
        Number of fields successfully applied
    """
    pending: Dict[str, FormField] = {}
    for field in fields:
        if field.value == "":
            logger.debug("Form field %s has no value, skipping", field.name)
            continue
        pending[field.name] = field

    seen: Set[str] = set()
    applied: Set[str] = set()
    for page in doc:
        for widget in page.widgets():
            field = pending.get(widget.field_name)
            if field is None:
                continue
            seen.add(field.name)
            try:
                if _apply_to_widget(widget, field):
                    applied.add(field.name)
            except Exception as e:
                logger.warning("Could not set form field %s: %s", field.name, e)

    for name in pending.keys() - seen:
        logger.warning("Form field %s not found in document", name)
    for name in seen - applied:
        logger.debug("Form field %s matched no widget value", name)

    logger.info("Applied %d of %d form field values", len(applied), len(pending))
    return len(applied)
