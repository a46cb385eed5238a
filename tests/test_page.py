"""Test module for shapekit.page

The tests are run using pytest.
These tests ensure that shapes end up as path elements of the SVG page and
that the page is written to plain and compressed files.
"""

import gzip

from shapekit.line_styles import LineStyles
from shapekit.page import SvgPage
from shapekit.shape import Shape


def _page_with_square():
    page = SvgPage.create_page_a4(170, 120)
    page.add_shape(Shape.rectangle(0, 0, 10, 10))
    return page


class TestSvgPage:
    """Test class for SvgPage."""

    def test_a4_page_centers_the_viewbox(self):
        """The viewbox origin is moved to the middle of the page."""
        svg = SvgPage.create_page_a4(170, 120).to_string()
        assert 'width="210mm"' in svg
        assert 'height="297mm"' in svg
        assert 'viewBox="-20.0 -88.5 210.0 297.0"' in svg

    def test_shape_becomes_path(self):
        """The path data is the SVG path of the shape."""
        svg = _page_with_square().to_string()
        assert 'd="M 0 0 L 10 0 L 10 10 L 0 10 L 0 0 Z"' in svg
        assert 'fill-rule="nonzero"' in svg

    def test_stroke_attributes(self):
        """Stroke attributes follow the line styles."""
        page = SvgPage(100, 100)
        styles = LineStyles(line_width=2.5, line_cap="round", line_dash=[3, 1])
        page.add_shape(Shape.line_segment(0, 0, 10, 0), fill="none", stroke="red", line_styles=styles)
        svg = page.to_string()
        assert 'stroke-width="2.5"' in svg
        assert 'stroke-linecap="round"' in svg
        assert 'stroke-dasharray="3.0 1.0"' in svg

    def test_empty_shape_is_still_valid(self):
        """An empty shape is written as a single move."""
        page = SvgPage(100, 100)
        page.add_shape(Shape())
        assert 'd="M 0 0"' in page.to_string()

    def test_debug_layer_is_optional(self):
        """Elements of the debug layer are only written on request."""
        page = SvgPage(100, 100)
        page.add_shape(Shape.circle(50, 50, 10), add_to_debug_layer=True)
        assert "A 10 10" not in page.to_string()
        assert "A 10 10" in page.to_string(include_debug_layer=True)

    def test_to_string_leaves_page_unchanged(self):
        """Writing twice gives the same document."""
        page = _page_with_square()
        assert page.to_string() == page.to_string()

    def test_save_as(self, tmp_path):
        """The file holds the same document as to_string()."""
        page = _page_with_square()
        filename = tmp_path / "page.svg"
        page.save_as(str(filename))
        assert filename.read_text(encoding="utf-8") == page.to_string()

    def test_save_as_compressed(self, tmp_path):
        """A compressed file unpacks to the document."""
        page = _page_with_square()
        filename = tmp_path / "page.svgz"
        page.save_as(str(filename), compressed=True)
        assert gzip.decompress(filename.read_bytes()).decode("utf-8") == page.to_string()
