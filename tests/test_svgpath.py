"""Test module for shapekit.svgpath

The tests are run using pytest.
These tests cover number formatting, tokenizing of SVG path data and the
replay of parsed commands onto a Shape. Lengths and points are cross-checked
against svgpathtools.
"""

import math

import numpy as np
import pytest
import svgpathtools

from shapekit.common import SvgPathParseError
from shapekit.geom import Vector2
from shapekit.shape import Shape
from shapekit.svgpath import SvgCommand, SvgPathItem, SvgPathParser, parse_svg_path, svg_number

###############################################################################
# svg_number
###############################################################################


class TestSvgNumber:
    """Test class for the number formatting of path data."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (10.0, "10"),
            (-3, "-3"),
            (0.0, "0"),
            (0.5, "0.5"),
            (-2.25, "-2.25"),
            (1e-7, "1e-07"),
        ],
    )
    def test_formatting(self, value, expected):
        """Integral values lose their decimals, other values keep full precision."""
        assert svg_number(value) == expected

    def test_round_trip_precision(self):
        """The written number reads back as the same float."""
        value = 0.1 + 0.2
        assert float(svg_number(value)) == value

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_raises(self, value):
        """Non-finite numbers cannot be written."""
        with pytest.raises(ValueError):
            svg_number(value)


###############################################################################
# SvgPathParser
###############################################################################


class TestSvgPathParser:
    """Test class for SvgPathParser."""

    def test_parse_simple_path(self):
        """Commands and their arguments are read in order."""
        items = SvgPathParser.parse("M 0 0 L 10 0 Z")
        assert items == [
            SvgPathItem(SvgCommand.MOVE_TO, (0.0, 0.0)),
            SvgPathItem(SvgCommand.LINE_TO, (10.0, 0.0)),
            SvgPathItem(SvgCommand.CLOSE, ()),
        ]

    def test_parse_compact_syntax(self):
        """Commas, missing spaces, signs and exponents are accepted."""
        items = parse_svg_path("M1,2L-3-4.5l.5.5e1")
        assert [item.args for item in items] == [(1.0, 2.0), (-3.0, -4.5), (0.5, 5.0)]

    def test_implicit_line_to_after_move_to(self):
        """Extra coordinate pairs after a moveto are linetos."""
        commands = [item.command for item in parse_svg_path("M 0 0 10 0 10 10 m 1 1 2 2")]
        assert commands == [
            SvgCommand.MOVE_TO,
            SvgCommand.LINE_TO,
            SvgCommand.LINE_TO,
            SvgCommand.MOVE_TO_RELATIVE,
            SvgCommand.LINE_TO_RELATIVE,
        ]

    def test_repeated_arguments(self):
        """A repeated argument group yields one item per repetition."""
        items = parse_svg_path("Q 1 1 2 0 3 -1 4 0")
        assert len(items) == 2
        assert all(item.command == SvgCommand.QUADRATIC_CURVE_TO for item in items)

    def test_compact_arc_flags(self):
        """Arc flags may be written without separators."""
        items = parse_svg_path("M0 0A5 5 0 0110 0")
        assert items[1] == SvgPathItem(SvgCommand.ELLIPTICAL_ARC_TO, (5.0, 5.0, 0.0, 0.0, 1.0, 10.0, 0.0))

    def test_empty_path(self):
        """Empty or blank data gives no commands."""
        assert parse_svg_path("  \n ") == []

    @pytest.mark.parametrize(
        "path_string",
        [
            "M 0 0 X 1 1",
            "M 0",
            "10 10",
            "M 0 0 A 5 5 0 2 0 10 0",
            "M 0 0 L 1 #",
        ],
    )
    def test_malformed_data_raises(self, path_string):
        """Unknown commands, missing numbers and bad flags are rejected."""
        with pytest.raises(SvgPathParseError):
            parse_svg_path(path_string)


###############################################################################
# Shape.from_svg_path
###############################################################################


class TestShapeFromSvgPath:
    """Test class for building shapes from SVG path data."""

    def test_round_trip_of_absolute_commands(self):
        """Absolute path data is reproduced, the closing line becomes explicit."""
        shape = Shape.from_svg_path("M 0 0 L 10 0 Q 15 5 10 10 C 5 15 0 15 0 10 Z")
        assert shape.get_svg_path() == "M 0 0 L 10 0 Q 15 5 10 10 C 5 15 0 15 0 10 L 0 0 Z"

    def test_relative_commands(self):
        """Relative commands are resolved against the current point."""
        shape = Shape.from_svg_path("m 10 10 l 5 0 l 0 5 z")
        assert shape.get_svg_path() == "M 10 10 L 15 10 L 15 15 L 10 10 Z"

    def test_horizontal_and_vertical_lines(self):
        """H and V keep the other coordinate."""
        shape = Shape.from_svg_path("M 0 0 H 10 V 10 h -10 z")
        assert shape.get_svg_path() == "M 0 0 L 10 0 L 10 10 L 0 10 L 0 0 Z"

    def test_smooth_quadratic_reflects_control_point(self):
        """T mirrors the previous quadratic control point."""
        shape = Shape.from_svg_path("M 0 0 Q 5 10 10 0 T 20 0")
        assert shape.get_svg_path() == "M 0 0 Q 5 10 10 0 Q 15 -10 20 0"

    def test_smooth_cubic_reflects_control_point(self):
        """S mirrors the previous second cubic control point."""
        shape = Shape.from_svg_path("M 0 0 C 0 10 10 10 10 0 S 20 -10 20 0")
        assert shape.get_svg_path() == "M 0 0 C 0 10 10 10 10 0 C 10 -10 20 -10 20 0"

    def test_smooth_cubic_without_previous_cubic(self):
        """Without a previous cubic the first control point is the current point."""
        shape = Shape.from_svg_path("M 0 0 L 10 0 S 20 10 20 0")
        curve = shape.subpaths[0].segments[-1]
        assert curve.start == Vector2(10, 0)
        assert curve.end == Vector2(20, 0)
        # leaves towards the second control point
        assert curve.start_tangent.x == pytest.approx(math.sqrt(0.5))
        assert curve.start_tangent.y == pytest.approx(math.sqrt(0.5))

    def test_arc_command_becomes_circular_arc(self):
        """An SVG arc with equal radii is stored as a circular arc."""
        shape = Shape.from_svg_path("M 0 0 A 50 50 0 0 1 100 0")
        arc = shape.subpaths[0].segments[0]
        assert type(arc).__name__ == "Arc"
        assert arc.center.x == pytest.approx(50)
        assert arc.center.y == pytest.approx(0, abs=1e-12)
        bounds = shape.bounds
        assert bounds.ymin == pytest.approx(-50)
        assert bounds.xmax == pytest.approx(100)

    def test_zero_radius_arc_is_a_line(self):
        """An arc with a zero radius degenerates to a straight line."""
        shape = Shape.from_svg_path("M 0 0 A 0 5 0 0 1 10 0")
        assert shape.get_svg_path() == "M 0 0 L 10 0"

    def test_arc_to_the_current_point_is_dropped(self):
        """An arc ending at its start draws nothing."""
        shape = Shape.from_svg_path("M 5 5 A 10 10 0 0 1 5 5")
        assert shape.get_svg_path() == ""

    def test_malformed_path_raises(self):
        """Parse errors propagate from the builder."""
        with pytest.raises(SvgPathParseError):
            Shape.from_svg_path("M 0 0 L")

    @pytest.mark.parametrize(
        "shape",
        [
            Shape.rectangle(0, 0, 10, 20),
            Shape.circle(3, 4, 10),
            Shape.round_rectangle(0, 0, 20, 10, 4, 2),
            Shape.ellipse(0, 0, 20, 10, 0.4),
            Shape().move_to(0, 0).cubic_curve_to(0, 30, 40, -10, 30, 20).close(),
        ],
        ids=["rectangle", "circle", "round_rectangle", "rotated_ellipse", "cubic"],
    )
    def test_own_path_data_reads_back(self, shape):
        """A shape rebuilt from its own path data covers the same area."""
        restored = Shape.from_svg_path(shape.get_svg_path())
        assert restored.bounds.extent == pytest.approx(shape.bounds.extent, abs=1e-6)

        bounds = shape.bounds.dilated(1)
        samples = np.random.default_rng(7).random((200, 2))
        for u, v in samples.tolist():
            point = Vector2(bounds.xmin + u * bounds.width, bounds.ymin + v * bounds.height)
            expected = shape.contains_point(point, rng=np.random.default_rng(8))
            assert restored.contains_point(point, rng=np.random.default_rng(8)) == expected


###############################################################################
# Cross-check with svgpathtools
###############################################################################


class TestCrossCheckSvgPathTools:
    """Compare lengths and positions with svgpathtools."""

    @pytest.mark.parametrize(
        "path_string",
        [
            "M 0 0 L 30 40",
            "M 0 0 Q 50 100 100 0",
            "M 10 80 C 40 10 65 10 95 80",
            "M 0 0 A 50 50 0 0 1 100 0",
            "M 0 0 A 60 30 30 1 0 80 20",
            "M 0 0 L 10 0 Q 20 10 30 0 C 40 -10 50 10 60 0",
        ],
    )
    def test_arc_length(self, path_string):
        """Arc lengths agree with svgpathtools."""
        expected = svgpathtools.parse_path(path_string).length()
        assert Shape.from_svg_path(path_string).get_arc_length() == pytest.approx(expected, rel=1e-5)

    @pytest.mark.parametrize(
        "path_string",
        [
            "M 0 0 Q 50 100 100 0",
            "M 10 80 C 40 10 65 10 95 80",
            "M 0 0 A 60 30 30 1 0 80 20",
        ],
    )
    def test_positions(self, path_string):
        """Points along single segments agree with svgpathtools."""
        reference = svgpathtools.parse_path(path_string)[0]
        segment = Shape.from_svg_path(path_string).subpaths[0].segments[0]
        for t in (0.0, 0.25, 0.5, 0.9):
            point = reference.point(t)
            position = segment.position_at(t)
            assert position.x == pytest.approx(point.real, abs=1e-9)
            assert position.y == pytest.approx(point.imag, abs=1e-9)
