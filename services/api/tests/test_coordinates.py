"""
Tests for surface <-> native coordinate mapping.

Run with: pytest tests/test_coordinates.py -v
"""
import pytest

from core.coordinates import (
    PageGeometry,
    Rect,
    SurfaceGeometry,
    constrain,
    flip_to_native,
    round_half_away,
    to_native,
    to_surface,
)

LETTER = PageGeometry(612, 792)
LETTER_SURFACE = SurfaceGeometry(612, 792)


class TestToNative:
    """Tests for the surface -> native mapping."""

    def test_letter_page_flip(self):
        """Default-size mark at (50, 50) lands 692pt above the bottom edge."""
        native = to_native(Rect(50, 50, 150, 50), LETTER, LETTER_SURFACE, 1.0)
        assert native == Rect(50, 692, 150, 50)

    def test_zoom_scales_down(self):
        """At zoom 2 the surface is twice as large as the page."""
        native = to_native(Rect(100, 100, 300, 100), LETTER, LETTER_SURFACE, 2.0)
        assert native == Rect(50, 692, 150, 50)

    def test_rendered_size_differs_from_native(self):
        """A 1224x1584 rendering is a 2x raster of a letter page."""
        native = to_native(Rect(0, 0, 200, 100), LETTER, SurfaceGeometry(1224, 1584), 1.0)
        assert native == Rect(0, 742, 100, 50)

    def test_values_are_rounded_to_two_decimals(self):
        """Every component is rounded to 2 decimals."""
        native = to_native(Rect(10, 10, 10, 10), LETTER, SurfaceGeometry(700, 900), 1.0)
        for value in (native.x, native.y, native.width, native.height):
            assert value == round_half_away(value)


class TestToSurface:
    """Tests for the native -> surface mapping."""

    def test_inverse_of_letter_example(self):
        """The flipped example maps back to where it was placed."""
        assert to_surface(Rect(50, 692, 150, 50), LETTER, LETTER_SURFACE, 1.0) == Rect(50, 50, 150, 50)

    @pytest.mark.parametrize("zoom", [0.5, 0.75, 1.0, 1.5, 2.0, 3.0])
    def test_round_trip(self, zoom):
        """to_surface(to_native(r)) == r within rounding tolerance."""
        original = Rect(100.37, 200.11, 120.5, 40.25)
        back = to_surface(to_native(original, LETTER, LETTER_SURFACE, zoom), LETTER, LETTER_SURFACE, zoom)
        tolerance = 0.02 * max(1.0, zoom) + 0.01
        assert back.x == pytest.approx(original.x, abs=tolerance)
        assert back.y == pytest.approx(original.y, abs=tolerance)
        assert back.width == pytest.approx(original.width, abs=tolerance)
        assert back.height == pytest.approx(original.height, abs=tolerance)


class TestConstrain:
    """Tests for clamping into the visible bounds."""

    def test_inside_is_unchanged(self):
        rect = Rect(10, 20, 150, 50)
        assert constrain(rect, LETTER_SURFACE) == rect

    def test_clamps_all_edges(self):
        """Negative and overflowing positions are pulled back inside."""
        assert constrain(Rect(-10, 900, 150, 50), LETTER_SURFACE) == Rect(0, 742, 150, 50)
        assert constrain(Rect(1000, -3, 150, 50), LETTER_SURFACE) == Rect(462, 0, 150, 50)

    def test_size_passes_through(self):
        """Only position is clamped, never width or height."""
        clamped = constrain(Rect(5, 5, 700, 50), LETTER_SURFACE)
        assert clamped.width == 700
        assert clamped.x == 0

    @pytest.mark.parametrize("rect", [
        Rect(-10, -10, 150, 50),
        Rect(600, 780, 150, 50),
        Rect(50, 50, 150, 50),
        Rect(3, 900, 20, 20),
    ])
    def test_idempotent(self, rect):
        """Clamping an already clamped rect changes nothing."""
        once = constrain(rect, LETTER_SURFACE)
        assert constrain(once, LETTER_SURFACE) == once


class TestHelpers:
    """Tests for rounding and the single Y flip."""

    def test_round_half_away_from_zero(self):
        assert round_half_away(0.125) == 0.13
        assert round_half_away(-0.125) == -0.13
        assert round_half_away(1.004) == 1.0

    def test_flip_to_native(self):
        """Top-left page units flip without any scaling."""
        assert flip_to_native(Rect(50, 50, 150, 50), 792) == Rect(50, 692, 150, 50)

    def test_flip_is_its_own_inverse(self):
        rect = Rect(12, 300, 40, 20)
        assert flip_to_native(flip_to_native(rect, 792), 792) == rect
