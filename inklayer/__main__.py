"""
Headless export: merge annotation, text and form value files into a PDF.

Usage:
    python -m inklayer report.pdf --annotations marks.json
    python -m inklayer report.pdf --text text.json --fields values.json -o out.pdf
"""
import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Optional

from .core.annotations import ElementStore, FormField
from .core.annotations.persistence import load_annotations, load_text_elements
from .core.document import ExportCompositor, detect_form_fields
from .core.errors import InklayerError, SerializationError, ValidationError
from .core.export import edited_file_name, save_document
from .utils import configure_logging, load_settings

logger = logging.getLogger(__name__)


def _read_json(path: str):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise SerializationError(f"Cannot read {path}: {e}") from e


def _annotation_records(data) -> Dict[str, List]:
    """Accept either a bare annotation array or a saved editor file."""
    if isinstance(data, list):
        return {"annotations": data, "text_elements": []}
    if isinstance(data, dict):
        return {
            "annotations": data.get("annotations", []),
            "text_elements": data.get("text_elements", []),
        }
    raise ValidationError("Annotation file must hold a JSON array or object")


def _field_values(data) -> Dict[str, str]:
    """Accept ``{"name": "value"}`` or ``[{"name": ..., "value": ...}]``."""
    if isinstance(data, dict):
        return {str(k): str(v) for k, v in data.items()}
    if isinstance(data, list):
        return {str(r["name"]): str(r.get("value", "")) for r in data if "name" in r}
    raise ValidationError("Field file must hold a JSON object or array")


def bind_field_values(base_bytes: bytes, values: Dict[str, str]) -> List[FormField]:
    """
    Attach values to the fields detected in the base document.

    Names that match no detected field are logged and dropped.
    """
    fields = {f.name: f for f in detect_form_fields(base_bytes)}
    store = ElementStore()
    store.bind_form_fields(fields.values())
    for name, value in values.items():
        if name not in fields:
            logger.warning("Form field %s not found in document", name)
            continue
        store.set_form_field_value(name, value)
    return [f for f in store.form_fields() if f.name in values]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inklayer",
        description="Merge annotations, text and form values into a PDF",
    )
    parser.add_argument("pdf", help="Base PDF document")
    parser.add_argument("--annotations", "-a", default=None,
                        help="Annotation JSON (array, or a saved editor file)")
    parser.add_argument("--text", "-t", default=None,
                        help="Text element JSON array")
    parser.add_argument("--fields", "-f", default=None,
                        help="Form values as JSON {name: value}")
    parser.add_argument("--output", "-o", default=None,
                        help="Output path (default: <name>-edited.pdf next to the input)")
    parser.add_argument("--settings", default=None, help="Settings JSON file")
    parser.add_argument("--debug", action="store_true", help="Log to the console")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    debug = args.debug or os.environ.get("INKLAYER_DEBUG", "").strip() in ("1", "true", "yes")
    configure_logging(debug=debug)

    try:
        with open(args.pdf, "rb") as f:
            base_bytes = f.read()
    except OSError as e:
        print(f"Error: cannot read {args.pdf}: {e}", file=sys.stderr)
        return 1

    try:
        store = ElementStore()
        annotations, text_elements = [], []
        if args.annotations:
            records = _annotation_records(_read_json(args.annotations))
            annotations = load_annotations(records["annotations"])
            text_elements = load_text_elements(records["text_elements"])
        if args.text:
            text_records = _read_json(args.text)
            if not isinstance(text_records, list):
                raise ValidationError("Text file must hold a JSON array")
            text_elements.extend(load_text_elements(text_records))

        for element in [*annotations, *text_elements]:
            try:
                store.add(element, keep_id=True)
            except ValidationError as e:
                logger.warning("Skipping element: %s", e)

        form_fields = []
        if args.fields:
            form_fields = bind_field_values(base_bytes, _field_values(_read_json(args.fields)))

        compositor = ExportCompositor(load_settings(args.settings))
        data = compositor.export_document(
            base_bytes,
            store.text_elements(),
            form_fields,
            store.annotations(),
        )

        output = args.output or os.path.join(
            os.path.dirname(os.path.abspath(args.pdf)), edited_file_name(args.pdf)
        )
        save_document(data, output)
    except InklayerError as e:
        logger.error("Export failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
