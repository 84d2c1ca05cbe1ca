# tests/test_geometry.py
"""Tests for view/document coordinate mapping."""

import random

import pytest

from inklayer.core.errors import ValidationError
from inklayer.core.geometry import ViewState, flip_y, to_document_space, to_view_space


class TestCoordinateTransform:
    """Tests for the zoom transform."""

    def test_document_space_divides_by_zoom(self):
        """Test that view points are divided by the zoom."""
        assert to_document_space((200.0, 50.0), 2.0) == (100.0, 25.0)

    def test_view_space_multiplies_by_zoom(self):
        """Test that document points are multiplied by the zoom."""
        assert to_view_space((100.0, 25.0), 1.5) == (150.0, 37.5)

    def test_transforms_are_inverse(self):
        """Test that mapping to document space and back is the identity."""
        rng = random.Random(7)
        for _ in range(200):
            point = (rng.uniform(-2000, 2000), rng.uniform(-2000, 2000))
            zoom = rng.uniform(0.05, 8.0)
            x, y = to_view_space(to_document_space(point, zoom), zoom)
            assert x == pytest.approx(point[0], abs=1e-6)
            assert y == pytest.approx(point[1], abs=1e-6)

    @pytest.mark.parametrize("zoom", [0, -1.0])
    def test_non_positive_zoom_rejected(self, zoom):
        """Test that a zero or negative zoom is rejected."""
        with pytest.raises(ValidationError):
            to_document_space((1.0, 1.0), zoom)
        with pytest.raises(ValidationError):
            to_view_space((1.0, 1.0), zoom)


class TestFlipY:
    """Tests for the top-down to bottom-up flip."""

    def test_flip_uses_page_height(self):
        """Test that y is measured from the bottom of the page."""
        assert flip_y((50.0, 100.0), 792.0) == (50.0, 692.0)

    def test_flip_per_page_height(self):
        """Test that pages of different heights flip differently."""
        assert flip_y((0.0, 100.0), 400.0) == (0.0, 300.0)
        assert flip_y((0.0, 100.0), 1000.0) == (0.0, 900.0)

    def test_flip_is_involution(self):
        """Test that flipping twice returns the original point."""
        assert flip_y(flip_y((12.5, 33.0), 792.0), 792.0) == (12.5, 33.0)


class TestViewState:
    """Tests for the per-page view state."""

    def test_view_size_scales_page(self):
        """Test that the view size is the page size times the zoom."""
        state = ViewState(page_index=0, zoom=2.0, page_width=612, page_height=792)
        assert state.view_size == (1224, 1584)

    def test_round_trip_through_state(self):
        """Test that the state maps points with its own zoom."""
        state = ViewState(page_index=1, zoom=1.25, page_width=612, page_height=792)
        assert state.to_document(state.to_view((10.0, 20.0))) == pytest.approx((10.0, 20.0))

    def test_invalid_zoom_rejected(self):
        """Test that a view state cannot have a non-positive zoom."""
        with pytest.raises(ValidationError):
            ViewState(page_index=0, zoom=0, page_width=612, page_height=792)
