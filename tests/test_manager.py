# tests/test_manager.py
"""Tests for the annotation manager."""

import pytest

from inklayer.core.annotations import (
    Annotation,
    AnnotationManager,
    AnnotationPersistence,
    AnnotationType,
    FormField,
    FormFieldType,
    OcrResult,
    PathPayload,
    TextElement,
    text_element_from_ocr,
)
from inklayer.core.errors import ValidationError
from inklayer.utils.settings import EditorSettings


def make_rect(x=10, y=10, page_index=0):
    return Annotation(page_index, AnnotationType.RECTANGLE, x, y, 50, 30)


@pytest.fixture
def manager(tmp_path):
    return AnnotationManager(persistence=AnnotationPersistence(str(tmp_path / "store")))


class TestCommits:
    """Tests that committed mutations are recorded in history."""

    def test_add_commits_once(self, manager):
        """Test that each add is one undo step."""
        manager.add_annotation(make_rect())
        manager.add_annotation(make_rect(x=100))

        assert manager.get_element_count() == 2
        assert manager.undo()
        assert manager.get_element_count() == 1
        assert manager.undo()
        assert manager.get_element_count() == 0
        assert not manager.undo()

    def test_invalid_add_leaves_history_alone(self, manager):
        """Test that a rejected element is not recorded."""
        with pytest.raises(ValidationError):
            manager.add_annotation(Annotation(0, AnnotationType.RECTANGLE, 0, 0, -1, 5))
        assert not manager.can_undo()

    def test_undo_then_commit_drops_redo(self, manager):
        """Test that a new commit after undo discards the redo branch."""
        manager.add_annotation(make_rect())
        manager.undo()
        assert manager.can_redo()

        manager.add_text_element(TextElement(0, 5, 5, "new"))
        assert not manager.can_redo()
        assert not manager.redo()

    def test_redo_restores(self, manager):
        """Test that redo brings back the undone element."""
        ann = manager.add_annotation(make_rect())
        manager.undo()
        manager.redo()
        assert manager.get_elements_for_page(0) == [ann]

    def test_undo_keeps_z_order_after_page_move(self, manager):
        """Test that undoing an unrelated edit keeps text above a shape it was moved over."""
        text = manager.add_text_element(TextElement(0, 5, 5, "note"))
        rect = manager.add_annotation(make_rect(page_index=1))
        manager.update_element(text.id, page_index=1)
        before = [e.id for e in manager.get_elements_for_page(1)]

        manager.add_annotation(Annotation(1, AnnotationType.LINE, 0, 0, 20, 20))
        manager.undo()

        assert before == [rect.id, text.id]
        assert [e.id for e in manager.get_elements_for_page(1)] == before

        manager.redo()
        manager.undo()
        assert [e.id for e in manager.get_elements_for_page(1)] == before

    def test_update_unknown_is_logged(self, manager, caplog):
        """Test that updating a missing element is skipped with a warning."""
        assert manager.update_element("rectangle-42", x=1) is None
        assert "rectangle-42" in caplog.text
        assert not manager.can_undo()

    def test_move_shifts_path_points(self, manager):
        """Test that moving a path moves its points too."""
        path = manager.add_annotation(Annotation(
            0, AnnotationType.FREEFORM, 0, 0, 10, 10,
            payload=PathPayload((0, 0, 10, 10)),
        ))
        moved = manager.move_element(path.id, 5, -2)
        assert (moved.x, moved.y) == (5, -2)
        assert moved.points == (5.0, -2.0, 15.0, 8.0)

    def test_toggle_text_style(self, manager):
        """Test toggling bold on a text element."""
        text = manager.add_text_element(TextElement(0, 5, 5, "t"))
        assert manager.toggle_text_style(text.id, "bold").bold
        assert not manager.toggle_text_style(text.id, "bold").bold
        with pytest.raises(ValidationError):
            manager.toggle_text_style(text.id, "strike")

    def test_remove_clears_selection(self, manager):
        """Test that removing the selected element clears the selection."""
        ann = manager.add_annotation(make_rect())
        manager.selected_id = ann.id
        assert manager.remove_element(ann.id)
        assert manager.selected_id is None
        assert not manager.remove_element(ann.id)


class TestErase:
    """Tests for batch erasing."""

    def test_erase_is_one_history_step(self, manager):
        """Test that all erased elements come back with a single undo."""
        manager.add_annotation(Annotation(0, AnnotationType.RECTANGLE, 95, 95, 10, 10))
        manager.add_text_element(TextElement(0, 96, 98, "x", width=6, height=4))
        far = manager.add_annotation(make_rect(x=300, y=300))
        history_length = len(manager.history.snapshots)

        removed = manager.erase((100, 100), 10, 0)

        assert len(removed) == 2
        assert manager.get_elements_for_page(0) == [far]
        assert len(manager.history.snapshots) == history_length + 1

        manager.undo()
        assert manager.get_element_count() == 3

    def test_erase_nothing_commits_nothing(self, manager):
        """Test that an empty pass is not recorded."""
        manager.add_annotation(make_rect(x=300, y=300))
        history_length = len(manager.history.snapshots)
        assert manager.erase((0, 0), 10, 0) == []
        assert len(manager.history.snapshots) == history_length


class TestQueries:
    """Tests for hit testing from view coordinates."""

    def test_element_at_view_point(self, manager):
        """Test that view points are mapped through the zoom."""
        ann = manager.add_annotation(make_rect())
        assert manager.get_element_at_point(0, 60, 60, zoom=2.0) == ann
        assert manager.get_element_at_point(0, 300, 300, zoom=2.0) is None


class TestCollaborators:
    """Tests for OCR, signatures and form fields."""

    def test_text_from_ocr(self):
        """Test that OCR results become text at the box's top-left corner."""
        result = OcrResult("Invoice", 93.5, (40, 60, 120, 80))
        element = text_element_from_ocr(result, 2)
        assert (element.page_index, element.x, element.y) == (2, 40, 60)
        assert element.text == "Invoice"
        assert (element.width, element.height) == (80, 20)

    def test_add_from_ocr_uses_settings(self, tmp_path):
        """Test that OCR text gets the configured font."""
        manager = AnnotationManager(
            settings=EditorSettings(font_family="Courier", font_size=11),
            persistence=AnnotationPersistence(str(tmp_path)),
        )
        element = manager.add_from_ocr(OcrResult("abc", 80, (0, 0, 10, 10)), 0)
        assert element.font_family == "Courier"
        assert element.font_size == 11
        assert manager.can_undo()

    def test_place_signature(self, manager, png_src):
        """Test that a captured signature is placed as an image."""
        signature = manager.place_signature(png_src, 1, (10, 20, 150, 50))
        assert signature.annotation_type == AnnotationType.SIGNATURE
        assert signature.is_image
        assert (signature.x, signature.y, signature.width, signature.height) == (10, 20, 150, 50)

    def test_form_values(self, manager):
        """Test that values only bind to known fields."""
        manager.bind_form_fields([FormField("name", FormFieldType.TEXT, "", (0, 0, 1, 1), 0)])
        assert manager.set_form_field_value("name", "Ada")
        assert not manager.set_form_field_value("other", "x")
        assert manager.store.form_fields()[0].value == "Ada"


class TestPersistence:
    """Tests for saving and loading through the manager."""

    def test_save_and_load(self, manager):
        """Test that saved elements load back and reset history."""
        manager.set_pdf_path("/docs/a.pdf")
        ann = manager.add_annotation(make_rect())
        text = manager.add_text_element(TextElement(0, 1, 2, "hello"))
        assert manager.has_unsaved_changes
        assert manager.save_to_json()
        assert not manager.has_unsaved_changes

        manager.clear_all()
        manager.set_pdf_path("/docs/a.pdf")
        assert manager.auto_load()

        assert manager.store.annotations() == [ann]
        assert [t.text for t in manager.store.text_elements()] == [text.text]
        assert not manager.can_undo()

    def test_save_requires_pdf_path(self, manager):
        """Test that nothing is saved without a document."""
        assert not manager.save_to_json()
