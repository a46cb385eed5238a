"""Test module for shapekit.subpath

The tests are run using pytest.
These tests cover building, closing, offsetting, stroking and dashing of
subpaths as well as their serialized form.
"""

import pytest

from shapekit.common import DeserializationError
from shapekit.geom import Vector2
from shapekit.line_styles import LineStyles
from shapekit.segment import Line
from shapekit.subpath import Subpath, deserialize_segment


def _open_square():
    points = [Vector2(0, 0), Vector2(10, 0), Vector2(10, 10), Vector2(0, 10)]
    return Subpath([Line(start, end) for start, end in zip(points, points[1:])])


def _closed_square():
    subpath = _open_square()
    subpath.close()
    return subpath


###############################################################################
# Building
###############################################################################


class TestSubpathBuilding:
    """Test class for constructing and closing subpaths."""

    def test_degenerate_segments_are_dropped(self):
        """Zero-length pieces are not stored, the raw points are kept."""
        subpath = Subpath([Line(Vector2(0, 0), Vector2(0, 0)), Line(Vector2(0, 0), Vector2(5, 0))])
        assert len(subpath.segments) == 1
        assert subpath.get_length() == 3
        assert subpath.is_drawable()

    def test_empty_subpath(self):
        """An empty subpath draws nothing."""
        subpath = Subpath()
        assert not subpath.is_drawable()
        assert subpath.bounds.is_empty()
        assert subpath.stroked() == []

    def test_add_segment_invalidates(self):
        """Adding a segment updates the bounds and notifies listeners once."""
        calls = []
        subpath = _open_square()
        subpath.invalidated_emitter.add_listener(lambda: calls.append(1))
        assert subpath.bounds.ymax == 10

        subpath.add_segment(Line(Vector2(0, 10), Vector2(0, 20)))

        assert subpath.bounds.ymax == 20
        assert calls == [1]

    def test_fill_segments_include_closing_line(self):
        """An open subpath is filled as if it were closed."""
        subpath = _open_square()
        assert subpath.has_closing_segment()
        fill_segments = subpath.get_fill_segments()
        assert len(fill_segments) == 4
        assert fill_segments[-1].end == Vector2(0, 0)

    def test_close(self):
        """Closing adds the closing line once."""
        subpath = _closed_square()
        assert subpath.is_closed()
        assert len(subpath.segments) == 4
        assert subpath.get_last_point() == subpath.get_first_point()
        assert not subpath.has_closing_segment()
        assert len(subpath.get_fill_segments()) == 4

    def test_arc_length(self):
        """The length sums up the segment lengths."""
        assert _open_square().get_arc_length() == pytest.approx(30)
        assert _closed_square().get_arc_length() == pytest.approx(40)

    def test_transformed(self):
        """Segments and raw points are transformed together."""
        subpath = _closed_square().transformed([1, 0, 0, 1, 5, 5])
        assert subpath.is_closed()
        assert subpath.get_first_point() == Vector2(5, 5)
        assert subpath.bounds.extent == (5, 5, 15, 15)

    def test_copy_is_independent(self):
        """Adding to a copy does not change the original."""
        subpath = _open_square()
        copied = subpath.copy()
        copied.add_segment(Line(Vector2(0, 10), Vector2(0, 20)))
        assert len(subpath.segments) == 3
        assert len(copied.segments) == 4

    def test_closest_points(self):
        """The closest point lies on the nearest segment."""
        results = _open_square().get_closest_points(Vector2(12, 5))
        assert len(results) == 1
        assert results[0].closest_point.x == pytest.approx(10)
        assert results[0].closest_point.y == pytest.approx(5)


###############################################################################
# Offset and stroke
###############################################################################


class TestSubpathOutline:
    """Test class for offset and stroked outlines."""

    def test_offset_of_a_line(self):
        """A single line is shifted to its left side."""
        offset = Subpath([Line(Vector2(0, 0), Vector2(10, 0))]).offset(1)
        assert len(offset.segments) == 1
        assert offset.segments[0].start == Vector2(0, 1)
        assert offset.segments[0].end == Vector2(10, 1)

    def test_offset_corners_are_connected(self):
        """Consecutive offset segments are connected by an arc."""
        offset = Subpath([Line(Vector2(0, 0), Vector2(10, 0)), Line(Vector2(10, 0), Vector2(10, 10))]).offset(1)
        segments = offset.segments
        assert len(segments) == 3
        for segment, next_segment in zip(segments, segments[1:]):
            assert segment.end.x == pytest.approx(next_segment.start.x)
            assert segment.end.y == pytest.approx(next_segment.start.y)

    def test_stroked_open_line(self):
        """An open line gives one closed outline including both caps."""
        subpaths = Subpath([Line(Vector2(0, 0), Vector2(10, 0))]).stroked(LineStyles(line_width=2))
        assert len(subpaths) == 1
        outline = subpaths[0]
        assert outline.is_closed()
        assert outline.bounds.extent == pytest.approx((0, -1, 10, 1))
        assert outline.get_arc_length() == pytest.approx(24)

    def test_stroked_closed_square(self):
        """A closed square gives an outer and an inner contour."""
        subpaths = _closed_square().stroked(LineStyles(line_width=2))
        assert len(subpaths) == 2
        assert all(subpath.is_closed() for subpath in subpaths)
        bounds = subpaths[0].bounds.union(subpaths[1].bounds)
        assert bounds.extent == pytest.approx((-1, -1, 11, 11))

    def test_stroked_is_cached_per_style(self):
        """Equal styles reuse the cached outline, invalidation drops it."""
        subpath = _open_square()
        first = subpath.stroked(LineStyles(line_width=2))
        assert subpath.stroked(LineStyles(line_width=2)) is first
        assert subpath.stroked(LineStyles(line_width=3)) is not first

        second = subpath.stroked(LineStyles(line_width=2))
        subpath.invalidate()
        assert subpath.stroked(LineStyles(line_width=2)) is not second


###############################################################################
# Dash
###############################################################################


class TestSubpathDashed:
    """Test class for dashing."""

    def test_dashed_line(self):
        """Each dash becomes an open subpath."""
        dashes = Subpath([Line(Vector2(0, 0), Vector2(10, 0))]).dashed([2, 3], 0)
        assert len(dashes) == 2
        assert not any(dash.is_closed() for dash in dashes)
        extents = [(dash.segments[0].start.x, dash.segments[-1].end.x) for dash in dashes]
        assert extents == [pytest.approx((0, 2)), pytest.approx((5, 7))]

    def test_dashed_with_offset(self):
        """The offset shifts the pattern along the path."""
        dashes = Subpath([Line(Vector2(0, 0), Vector2(10, 0))]).dashed([2, 3], 1)
        assert dashes[0].segments[0].start.x == pytest.approx(0)
        assert dashes[0].segments[-1].end.x == pytest.approx(1)
        assert dashes[1].segments[0].start.x == pytest.approx(4)

    def test_dash_across_segments_is_joined(self):
        """A dash running over a corner stays one subpath."""
        dashes = _open_square().dashed([12, 100], 0)
        assert len(dashes) == 1
        assert len(dashes[0].segments) == 2
        assert dashes[0].get_arc_length() == pytest.approx(12)

    def test_fully_filled_closed_subpath_stays_closed(self):
        """A dash longer than the whole closed subpath keeps it closed."""
        dashes = _closed_square().dashed([100], 0)
        assert len(dashes) == 1
        assert dashes[0].is_closed()
        assert dashes[0].get_arc_length() == pytest.approx(40)


###############################################################################
# Output and serialization
###############################################################################


class TestSubpathOutput:
    """Test class for drawing and serialization."""

    def test_write_to_context_uses_close_path(self, recording_context):
        """The final line of a closed subpath is drawn by close_path."""
        _closed_square().write_to_context(recording_context)
        assert recording_context.calls == [
            ("move_to", 0, 0),
            ("line_to", 10, 0),
            ("line_to", 10, 10),
            ("line_to", 0, 10),
            ("close_path",),
        ]

    def test_write_to_context_open(self, recording_context):
        """An open subpath is not closed."""
        _open_square().write_to_context(recording_context)
        assert recording_context.calls[-1] == ("line_to", 0, 10)
        assert len(recording_context.calls) == 4

    def test_serialize_round_trip(self):
        """The serialized form restores segments, points and the closed flag."""
        data = _closed_square().serialize()
        assert data["type"] == "Subpath"
        restored = Subpath.deserialize(data)
        assert restored.is_closed()
        assert len(restored.segments) == 4
        assert restored.points == _closed_square().points

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "Shape", "segments": [], "points": [], "closed": False},
            {"type": "Subpath", "segments": [], "closed": False},
            {"type": "Subpath", "segments": [{"type": "Spiral"}], "points": [], "closed": False},
            {"type": "Subpath", "segments": [{"type": "Line", "startX": 0}], "points": [], "closed": False},
            "Subpath",
        ],
    )
    def test_deserialize_malformed_data_raises(self, data):
        """Unknown types and missing fields are reported."""
        with pytest.raises(DeserializationError):
            Subpath.deserialize(data)

    def test_deserialize_segment_unknown_type(self):
        """Only the known segment types can be read back."""
        with pytest.raises(DeserializationError):
            deserialize_segment({"type": "Segment"})
