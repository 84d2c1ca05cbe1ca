# tests/test_models.py
"""Tests for the element data model."""

import pytest

from inklayer.core.annotations import (
    Annotation,
    AnnotationType,
    FormField,
    FormFieldType,
    ImagePayload,
    PathPayload,
    TextElement,
    TextPayload,
)
from inklayer.core.errors import ValidationError


def rect(**overrides):
    values = dict(page_index=0, annotation_type=AnnotationType.RECTANGLE,
                  x=10, y=10, width=50, height=30)
    values.update(overrides)
    return Annotation(**values)


class TestAnnotationPayloads:
    """Tests that payloads match the annotation kind."""

    def test_rectangle_has_no_payload(self):
        """Test that shapes cannot carry points or text."""
        with pytest.raises(ValidationError):
            rect(payload=PathPayload((0, 0, 1, 1)))
        with pytest.raises(ValidationError):
            rect(payload=TextPayload("hi"))

    def test_freeform_requires_path(self):
        """Test that a freeform annotation needs a point payload."""
        with pytest.raises(ValidationError):
            Annotation(0, AnnotationType.FREEFORM, 0, 0, 1, 1)

    def test_signature_accepts_path_or_image(self):
        """Test that signatures are either a path or a bitmap."""
        path = Annotation(0, AnnotationType.SIGNATURE, 0, 0, 1, 1,
                          payload=PathPayload((0, 0, 1, 1)))
        image = Annotation(0, AnnotationType.SIGNATURE, 0, 0, 1, 1,
                           payload=ImagePayload("aGVsbG8="))
        assert path.points == (0.0, 0.0, 1.0, 1.0)
        assert not path.is_image
        assert image.is_image
        assert image.points is None

    @pytest.mark.parametrize("points", [(), (1, 2), (1, 2, 3), (1, 2, 3, 4, 5)])
    def test_path_needs_coordinate_pairs(self, points):
        """Test that a path needs at least two complete points."""
        with pytest.raises(ValidationError):
            PathPayload(points)

    def test_path_bounds(self):
        """Test the bounding box of a path."""
        payload = PathPayload((10, 40, 30, 20, 25, 60))
        assert payload.bounds() == (10.0, 20.0, 20.0, 40.0)
        assert payload.pairs() == [(10.0, 40.0), (30.0, 20.0), (25.0, 60.0)]


class TestValidation:
    """Tests for geometry and color validation."""

    def test_valid_annotation(self):
        """Test that a well-formed annotation validates."""
        rect().validate()

    @pytest.mark.parametrize("overrides", [
        {"width": -1},
        {"height": -5},
        {"page_index": -1},
        {"color": "#ff00"},
        {"x": float("nan")},
        {"stroke_width": -2},
    ])
    def test_invalid_annotation(self, overrides):
        """Test that malformed geometry or color is rejected."""
        with pytest.raises(ValidationError):
            rect(**overrides).validate()

    def test_line_may_run_in_any_direction(self):
        """Test that a line keeps a signed extent."""
        line = Annotation(0, AnnotationType.LINE, 100, 100, -40, 25)
        line.validate()
        assert line.center == (80.0, 112.5)

    def test_text_element_needs_positive_font_size(self):
        """Test that text elements need a font size above zero."""
        with pytest.raises(ValidationError):
            TextElement(0, 0, 0, "x", font_size=0).validate()


class TestSerialization:
    """Tests for dictionary conversion."""

    def test_shape_record_has_no_payload_keys(self):
        """Test that unrelated payload fields do not leak into a record."""
        data = rect().to_dict()
        assert data["type"] == "rectangle"
        assert "points" not in data
        assert "text" not in data
        assert "src" not in data

    def test_freeform_record(self):
        """Test the record of a freeform path."""
        ann = Annotation(1, AnnotationType.FREEFORM, 0, 0, 5, 5,
                         payload=PathPayload((0, 0, 5, 5)))
        data = ann.to_dict()
        assert data["points"] == [0.0, 0.0, 5.0, 5.0]
        assert Annotation.from_dict(data) == ann

    def test_signature_path_record_defaults_src(self):
        """Test that a path signature records an empty image source."""
        ann = Annotation(0, AnnotationType.SIGNATURE, 0, 0, 5, 5,
                         payload=PathPayload((0, 0, 5, 5)))
        data = ann.to_dict()
        assert data["src"] is None
        assert data["points"] == [0.0, 0.0, 5.0, 5.0]

    def test_text_annotation_record(self):
        """Test the record of a text annotation."""
        ann = Annotation(0, AnnotationType.TEXT, 5, 5, 40, 10,
                         payload=TextPayload("Note", 12))
        data = ann.to_dict()
        assert data["text"] == "Note"
        assert data["font_size"] == 12
        assert Annotation.from_dict(data) == ann

    def test_unknown_type_rejected(self):
        """Test that unknown kinds are rejected on load."""
        with pytest.raises(ValidationError):
            Annotation.from_dict({"type": "star", "page_index": 0,
                                  "x": 0, "y": 0, "width": 1, "height": 1})

    def test_text_element_round_trip(self):
        """Test that text elements keep their style flags."""
        element = TextElement(2, 50, 100, "Hello", font_family="Courier",
                              bold=True, underline=True, id="text-3")
        assert TextElement.from_dict(element.to_dict()) == element

    def test_form_field_round_trip(self):
        """Test that form fields keep their options."""
        form_field = FormField("country", FormFieldType.DROPDOWN, "France",
                               (0, 0, 10, 10), 0, ("Canada", "France"))
        assert FormField.from_dict(form_field.to_dict()) == form_field
