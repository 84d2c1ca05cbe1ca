# tests/test_persistence.py
"""Tests for the annotation interchange format and JSON storage."""

import json

from inklayer.core.annotations import (
    Annotation,
    AnnotationPersistence,
    AnnotationType,
    PathPayload,
    TextElement,
    TextPayload,
    dump_annotations,
    load_annotations,
)
from inklayer.core.annotations.persistence import load_text_elements, normalize_record


class TestInterchange:
    """Tests for the normalized record format."""

    def test_aliases_collapse(self):
        """Test that aliased keys collapse into canonical names."""
        record = normalize_record({
            "kind": "text", "page": 2, "x": 1, "y": 2, "width": 3, "height": 4,
            "value": "Hi", "size": 12, "strokeWidth": 3,
        })
        assert record["type"] == "text"
        assert record["page_index"] == 1
        assert record["text"] == "Hi"
        assert record["font_size"] == 12
        assert record["stroke_width"] == 3
        assert "value" not in record
        assert "page" not in record

    def test_canonical_key_wins(self):
        """Test that the canonical spelling beats an alias."""
        record = normalize_record({"text": "real", "value": "alias"})
        assert record["text"] == "real"

    def test_load_aliased_text_annotation(self):
        """Test that aliased records load into the canonical model."""
        [ann] = load_annotations([{
            "type": "text", "pageIndex": 0, "x": 5, "y": 6, "width": 10, "height": 10,
            "value": "Note", "fontSize": 14,
        }])
        assert ann.payload == TextPayload("Note", 14)

    def test_load_text_element_font_alias(self):
        """Test the font alias of text elements."""
        [element] = load_text_elements([{"page_index": 0, "x": 1, "y": 1, "text": "a",
                                         "font": "Georgia"}])
        assert element.font_family == "Georgia"

    def test_malformed_records_skipped(self, caplog):
        """Test that bad records are logged and the rest still load."""
        annotations = load_annotations([
            {"type": "rectangle", "page_index": 0, "x": 0, "y": 0, "width": 5, "height": 5},
            {"type": "freeform", "page_index": 0, "x": 0, "y": 0, "width": 5, "height": 5,
             "points": [1]},
            {"type": "nonsense"},
        ])
        assert len(annotations) == 1
        assert "Skipping annotation record 1" in caplog.text
        assert "Skipping annotation record 2" in caplog.text

    def test_dump_is_json_array(self):
        """Test that records dump to a plain JSON array."""
        anns = [
            Annotation(0, AnnotationType.RECTANGLE, 1, 2, 3, 4),
            Annotation(0, AnnotationType.FREEFORM, 0, 0, 1, 1, payload=PathPayload((0, 0, 1, 1))),
        ]
        records = json.loads(json.dumps(dump_annotations(anns)))
        assert [r["type"] for r in records] == ["rectangle", "freeform"]
        assert load_annotations(records) == anns


class TestAnnotationPersistence:
    """Tests for JSON files on disk."""

    def test_json_path_is_per_document(self, tmp_path):
        """Test that each document gets its own file."""
        persistence = AnnotationPersistence(str(tmp_path))
        assert persistence.get_json_path("/a.pdf") != persistence.get_json_path("/b.pdf")
        assert persistence.get_json_path("/a.pdf").startswith(str(tmp_path))

    def test_default_dir_under_app_data(self, tmp_path):
        """Test that the default directory lives in the app data dir."""
        persistence = AnnotationPersistence()
        assert persistence.get_app_data_dir().startswith(str(tmp_path / "data"))

    def test_save_load_delete(self, tmp_path):
        """Test the save, load and delete cycle."""
        persistence = AnnotationPersistence(str(tmp_path))
        ann = Annotation(0, AnnotationType.CIRCLE, 1, 2, 3, 4, id="circle-1")
        text = TextElement(1, 5, 6, "hello", italic=True, id="text-2")

        assert persistence.save_to_json([ann], [text], "/doc.pdf")
        assert persistence.has_saved_annotations("/doc.pdf")

        annotations, text_elements, success = persistence.load_from_json("/doc.pdf")
        assert success
        assert annotations == [ann]
        assert text_elements == [text]

        assert persistence.delete_json_file("/doc.pdf")
        assert not persistence.has_saved_annotations("/doc.pdf")
        assert persistence.delete_json_file("/doc.pdf")

    def test_load_bare_array(self, tmp_path):
        """Test that a plain interchange array can be loaded."""
        path = tmp_path / "marks.json"
        path.write_text(json.dumps([
            {"type": "x-mark", "page_index": 0, "x": 1, "y": 1, "width": 9, "height": 9},
        ]))
        annotations, text_elements, success = AnnotationPersistence(str(tmp_path)).load_from_json(
            "/doc.pdf", str(path)
        )
        assert success
        assert annotations[0].annotation_type == AnnotationType.X_MARK
        assert text_elements == []

    def test_load_missing_or_corrupt(self, tmp_path):
        """Test that unreadable files report failure."""
        persistence = AnnotationPersistence(str(tmp_path))
        assert persistence.load_from_json("/nope.pdf") == ([], [], False)

        path = tmp_path / "broken.json"
        path.write_text("{not json")
        assert persistence.load_from_json("/doc.pdf", str(path)) == ([], [], False)
