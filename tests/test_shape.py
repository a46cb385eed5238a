"""Test module for shapekit.shape

The tests are run using pytest.
These tests cover the path-building API, containment, measures, derived
shapes, invalidation and immutability of Shape.
"""

import json
import logging
import math

import numpy as np
import pytest

from shapekit.arc import Arc, EllipticalArc
from shapekit.common import DeserializationError, ImmutableShapeError, InvalidGeometryError
from shapekit.geom import Bounds, Ray, Vector2
from shapekit.line_styles import LineStyles
from shapekit.segment import Line
from shapekit.shape import Shape


def _ring():
    """Circle of radius 10 with a hole of radius 6, both around the origin."""
    return (
        Shape()
        .arc(0, 0, 10, 0, 2 * math.pi)
        .close()
        .new_subpath()
        .arc(0, 0, 6, 2 * math.pi, 0, True)
        .close()
    )


###############################################################################
# Path building
###############################################################################


class TestShapeBuilding:
    """Test class for the path-building calls."""

    def test_lines_and_close(self):
        """A closed triangle gets an explicit closing line."""
        shape = Shape().move_to(0, 0).line_to(10, 0).line_to(10, 10).close()
        assert shape.get_svg_path() == "M 0 0 L 10 0 L 10 10 L 0 0 Z"
        assert shape.get_last_point() == Vector2(0, 0)

    def test_line_to_on_empty_shape_starts_a_subpath(self):
        """The first line_to only sets the start point."""
        shape = Shape().line_to(5, 5).line_to(10, 0)
        assert shape.get_svg_path() == "M 5 5 L 10 0"

    def test_drawing_after_new_subpath_sets_the_start(self):
        """A fresh subpath takes its start point from the next drawing call."""
        shape = Shape().move_to(0, 0).new_subpath().line_to(5, 5).line_to(10, 5)
        assert shape.get_svg_path() == "M 5 5 L 10 5"

    def test_smooth_curves_on_empty_shape(self):
        """Without a current point smooth curves start a subpath."""
        quadratic = Shape().smooth_quadratic_curve_to(10, 0).line_to(20, 0)
        assert quadratic.get_svg_path() == "M 10 0 L 20 0"

        cubic = Shape().smooth_cubic_curve_to(5, 5, 10, 0)
        assert cubic.get_last_point() == Vector2(10, 0)
        assert cubic.bounds.extent == pytest.approx((5, 0, 10, 5))

    def test_last_point_of_empty_shape_raises(self):
        """There is no last point before the first drawing call."""
        with pytest.raises(InvalidGeometryError):
            Shape().get_last_point()
        with pytest.raises(InvalidGeometryError):
            Shape().move_to(0, 0).new_subpath().get_last_point()

    def test_relative_calls(self):
        """Relative calls start from the last point, or the origin."""
        shape = Shape().move_to_relative(1, 2).line_to_relative(3, 0).vertical_line_to_relative(4)
        assert shape.get_svg_path() == "M 1 2 L 4 2 L 4 6"
        assert shape.get_relative_point() == Vector2(4, 6)

    def test_horizontal_and_vertical_lines(self):
        """Absolute horizontal and vertical lines keep the other coordinate."""
        shape = Shape().move_to(1, 1).horizontal_line_to(5).vertical_line_to(7)
        assert shape.get_svg_path() == "M 1 1 L 5 1 L 5 7"

    def test_arc_is_connected_by_a_line(self):
        """An arc starting away from the current point is connected by a line."""
        shape = Shape().move_to(0, 0).arc(20, 0, 10, math.pi, 2 * math.pi)
        segments = shape.subpaths[0].segments
        assert [type(segment) for segment in segments] == [Line, Arc]
        assert segments[0].end.x == pytest.approx(10)
        assert shape.get_last_segment() is segments[-1]

    def test_non_finite_coordinates_raise(self):
        """NaN and infinity are rejected."""
        with pytest.raises(InvalidGeometryError):
            Shape().move_to(math.nan, 0)
        with pytest.raises(InvalidGeometryError):
            Shape().move_to(0, 0).line_to(math.inf, 0)

    def test_zig_zag(self):
        """A zig-zag oscillates around the straight connection."""
        shape = Shape().move_to(0, 0).zig_zag_to(40, 0, 5, 2)
        assert len(shape.subpaths[0].segments) == 5
        assert shape.bounds.extent == pytest.approx((0, -5, 40, 5))
        assert shape.get_last_point() == Vector2(40, 0)

    def test_zig_zag_needs_integer_count(self):
        """Only whole oscillations are supported."""
        with pytest.raises(InvalidGeometryError):
            Shape().move_to(0, 0).zig_zag_to(40, 0, 5, 2.5)

    def test_cardinal_spline_passes_through_positions(self):
        """The spline interpolates the given positions."""
        shape = Shape().cardinal_spline([(0, 0), (10, 10), (20, 0)])
        segments = shape.subpaths[0].segments
        assert segments[0].start == Vector2(0, 0)
        assert shape.get_last_point() == Vector2(20, 0)
        assert shape.bounds.ymax >= 10

    def test_cardinal_spline_tension_range(self):
        """The tension must lie strictly between -1 and 1."""
        with pytest.raises(InvalidGeometryError):
            Shape().cardinal_spline([(0, 0), (10, 10), (20, 0)], tension=1)

    def test_from_segments(self):
        """Connected segments form one subpath."""
        shape = Shape.from_segments([Line(Vector2(0, 0), Vector2(10, 0)), Line(Vector2(10, 0), Vector2(10, 10))])
        assert str(shape) == "Shape('M 0 0 L 10 0 L 10 10')"

    def test_from_segments_mismatch_raises(self):
        """Segments that do not connect are rejected."""
        with pytest.raises(InvalidGeometryError):
            Shape.from_segments([Line(Vector2(0, 0), Vector2(10, 0)), Line(Vector2(11, 0), Vector2(10, 10))])

    def test_regular_polygon_needs_three_sides(self):
        """Fewer than three or fractional sides are rejected."""
        with pytest.raises(InvalidGeometryError):
            Shape.regular_polygon(2, 10)
        with pytest.raises(InvalidGeometryError):
            Shape.regular_polygon(4.5, 10)

    def test_rounded_rectangle_radii_are_reduced(self):
        """Radii larger than the sides turn a square into a circle."""
        shape = Shape.rounded_rectangle_with_radii(0, 0, 10, 10, 10, 10, 10, 10)
        assert shape.get_nonoverlapping_area() == pytest.approx(25 * math.pi)

    def test_rounded_rectangle_negative_radius_raises(self):
        """Negative radii are rejected."""
        with pytest.raises(InvalidGeometryError):
            Shape.rounded_rectangle_with_radii(0, 0, 10, 10, top_left=-1)

    def test_bounds_offset_with_radii(self):
        """The rectangle grows by the given offsets."""
        shape = Shape.bounds_offset_with_radii(Bounds(0, 0, 10, 10), left=1, top=1, right=1, bottom=1)
        assert shape.bounds == Bounds(-1, -1, 11, 11)


###############################################################################
# Containment
###############################################################################


class TestShapeContainment:
    """Test class for point containment and ray queries."""

    def test_rectangle(self):
        """Points inside and outside a rectangle."""
        shape = Shape.rectangle(0, 0, 10, 10)
        assert shape.contains_point((5, 5))
        assert not shape.contains_point((15, 5))
        assert not shape.contains_point(Vector2(-1, -1))

    def test_ring(self):
        """The hole of a ring is not inside."""
        ring = _ring()
        assert ring.contains_point((0, 8))
        assert not ring.contains_point((0, 3))
        assert not ring.contains_point((15, 0))

    def test_ray_through_vertex_is_rotated(self, caplog):
        """A ray through a segment start is retried with a random direction."""
        caplog.set_level(logging.DEBUG, logger="shapekit.shape")
        assert not _ring().contains_point((0, 0), rng=np.random.default_rng(1))
        assert "Containment ray through a vertex at" in caplog.text
        assert "retry 1" in caplog.text

    def test_retries_are_limited(self, caplog, monkeypatch):
        """After the last attempt the ray is used as it is."""
        monkeypatch.setattr(Shape, "_ray_hits_segment_vertex", lambda self, point, direction: True)
        caplog.set_level(logging.DEBUG, logger="shapekit.shape")
        Shape.rectangle(0, 0, 10, 10).contains_point((5, 5), rng=np.random.default_rng(2))
        records = [record for record in caplog.records if record.name == "shapekit.shape"]
        retries = [record for record in records if record.levelno == logging.DEBUG]
        warnings = [record for record in records if record.levelno == logging.WARNING]
        assert len(retries) == 5
        assert len(warnings) == 1

    def test_winding_intersection(self):
        """A ray leaving a rectangle winds once."""
        shape = Shape.rectangle(0, 0, 10, 10)
        hits = shape.intersection(Ray(Vector2(5, 5), Vector2(1, 0)))
        assert len(hits) == 1
        assert hits[0].point.x == pytest.approx(10)
        assert abs(shape.winding_intersection(Ray(Vector2(5, 5), Vector2(1, 0)))) == 1

    def test_interior_intersects_line_segment(self):
        """Test line segments against a rectangle."""
        shape = Shape.rectangle(0, 0, 10, 10)
        assert shape.interior_intersects_line_segment((-5, 5), (5, 5))
        assert shape.interior_intersects_line_segment((2, 2), (3, 3))
        assert not shape.interior_intersects_line_segment((-5, 5), (-1, 5))

    @pytest.mark.parametrize(
        "bounds, expected",
        [
            (Bounds(5, 5, 20, 20), True),
            (Bounds(-5, -5, 50, 50), True),
            (Bounds(20, 20, 30, 30), False),
            (Bounds(2, 2, 8, 8), False),
        ],
    )
    def test_intersects_bounds(self, bounds, expected):
        """Only the boundary counts, a box inside the area does not touch it."""
        assert Shape.rectangle(0, 0, 10, 10).intersects_bounds(bounds) == expected

    def test_closest_point(self):
        """The closest boundary point of a rectangle."""
        point = Shape.rectangle(0, 0, 10, 10).get_closest_point((12, 5))
        assert point.x == pytest.approx(10)
        assert point.y == pytest.approx(5)


###############################################################################
# Measures
###############################################################################


class TestShapeMeasures:
    """Test class for areas, centroids and lengths."""

    def test_rectangle_area_and_length(self):
        """Test a plain rectangle."""
        shape = Shape.rectangle(0, 0, 10, 20)
        assert shape.get_nonoverlapping_area() == pytest.approx(200)
        assert shape.get_arc_length() == pytest.approx(60)

    def test_round_rectangle_area(self):
        """The corners remove (4 - pi) r^2 from the rectangle."""
        shape = Shape.round_rectangle(0, 0, 20, 10, 2, 2)
        assert shape.get_nonoverlapping_area() == pytest.approx(184 + 4 * math.pi)

    def test_elliptical_round_rectangle_area(self):
        """Elliptical corners remove (4 - pi) rx ry from the rectangle."""
        shape = Shape.round_rectangle(0, 0, 20, 10, 4, 2)
        assert shape.get_nonoverlapping_area() == pytest.approx(200 - (4 - math.pi) * 8)

    def test_regular_polygon_area(self):
        """A square with circumradius 10 has area 200."""
        assert Shape.regular_polygon(4, 10).get_nonoverlapping_area() == pytest.approx(200)

    def test_circle_and_ellipse_area(self):
        """Arcs contribute their exact area."""
        assert Shape.circle(3, 4, 10).get_nonoverlapping_area() == pytest.approx(100 * math.pi)
        assert Shape.ellipse(0, 0, 20, 10, 0.4).get_nonoverlapping_area() == pytest.approx(200 * math.pi)

    def test_ring_area(self):
        """The hole with opposite orientation is subtracted."""
        assert _ring().get_nonoverlapping_area() == pytest.approx(64 * math.pi)

    def test_circle_length(self):
        """Circular arc lengths are exact."""
        assert Shape.circle_at_origin(10).get_arc_length() == pytest.approx(20 * math.pi)

    def test_simplified_circle_area(self):
        """The flattened circle keeps its area within one percent."""
        assert Shape.circle(0, 0, 10).get_area() == pytest.approx(100 * math.pi, rel=1e-2)

    def test_ellipse_length_converges(self):
        """Smaller tolerances never move the length away from the limit."""
        ellipse = EllipticalArc(Vector2(0, 0), 20, 10, 0, 0, 2 * math.pi)
        limit = ellipse.get_arc_length(distance_epsilon=1e-10, curve_epsilon=math.inf)
        # Ramanujan's approximation of the perimeter
        assert limit == pytest.approx(math.pi * (3 * 30 - math.sqrt((3 * 20 + 10) * (20 + 3 * 10))), rel=1e-6)

        errors = [
            abs(limit - ellipse.get_arc_length(distance_epsilon=epsilon, curve_epsilon=math.inf))
            for epsilon in (1e-2, 1e-4, 1e-7)
        ]
        assert errors[0] > 0
        for error, next_error in zip(errors, errors[1:]):
            assert next_error <= error

    def test_approximate_area(self):
        """The Monte Carlo estimate is close to the exact area."""
        rng = np.random.default_rng(3)
        assert Shape.rectangle(0, 0, 10, 10).get_approximate_area(2000, rng) == pytest.approx(100)
        assert Shape.circle_at_origin(10).get_approximate_area(4000, rng) == pytest.approx(100 * math.pi, rel=0.05)

    def test_approximate_centroid(self):
        """The centroid of a rectangle is its center."""
        centroid = Shape.rectangle(0, 0, 10, 20).get_approximate_centroid(4000, np.random.default_rng(4))
        assert centroid.x == pytest.approx(5, abs=0.3)
        assert centroid.y == pytest.approx(10, abs=0.5)

    def test_approximate_centroid_without_area(self, caplog):
        """A shape without area has no centroid."""
        caplog.set_level(logging.WARNING, logger="shapekit.shape")
        shape = Shape.line_segment(0, 0, 10, 0)
        assert shape.get_approximate_centroid(50, np.random.default_rng(5)) is None
        assert "centroid is undefined" in caplog.text


###############################################################################
# Derived shapes and bounds
###############################################################################


class TestShapeDerived:
    """Test class for derived shapes and bounds."""

    def test_stroked_bounds_of_closed_rectangle(self):
        """Closed axis aligned outlines are simply dilated."""
        bounds = Shape.rectangle(0, 0, 10, 20).get_stroked_bounds(LineStyles(line_width=2))
        assert bounds == Bounds(-1, -1, 11, 21)

    def test_stroked_bounds_of_open_line(self):
        """Butt caps do not extend beyond the end points."""
        bounds = Shape.line_segment(0, 0, 10, 0).get_stroked_bounds(LineStyles(line_width=2))
        assert bounds.extent == pytest.approx((0, -1, 10, 1))

    def test_stroked_shape(self):
        """A closed rectangle strokes into an outer and an inner contour."""
        stroked = Shape.rectangle(0, 0, 10, 10).get_stroked_shape(LineStyles(line_width=2))
        assert len(stroked.subpaths) == 2
        assert stroked.bounds.extent == pytest.approx((-1, -1, 11, 11))

    def test_offset_shape(self):
        """Offsetting outwards adds quarter circles at the corners."""
        offset = Shape.rectangle(0, 0, 10, 10).get_offset_shape(-1)
        assert offset.get_arc_length() == pytest.approx(40 + 2 * math.pi)
        assert offset.bounds.extent == pytest.approx((-1, -1, 11, 11))

    def test_dashed_shape(self):
        """Every side carries one dash."""
        dashed = Shape.rectangle(0, 0, 10, 10).get_dashed_shape([5, 5])
        assert len(dashed.subpaths) == 4
        assert dashed.get_arc_length() == pytest.approx(20)

    def test_transformed(self):
        """Test an affine transformation of a rectangle."""
        shape = Shape.rectangle(0, 0, 10, 10).transformed([2, 0, 0, 2, 1, 1])
        assert shape.bounds == Bounds(1, 1, 21, 21)

    def test_bounds_with_transform_and_stroke(self):
        """The stroke widens the transformed bounds."""
        bounds = Shape.rectangle(0, 0, 10, 10).get_bounds_with_transform([1, 0, 0, 1, 0, 0], LineStyles(line_width=2))
        assert bounds.extent == pytest.approx((-1, -1, 11, 11))

    def test_to_piecewise_linear(self):
        """Only lines remain after flattening."""
        flat = Shape.circle_at_origin(10).to_piecewise_linear(2, 6)
        segments = [segment for subpath in flat.subpaths for segment in subpath.segments]
        assert len(segments) >= 4
        assert all(isinstance(segment, Line) for segment in segments)

    def test_polar_to_cartesian(self):
        """A band in polar coordinates becomes an annulus."""
        band = Shape.rectangle(0, 5, 2 * math.pi, 5)
        annulus = band.polar_to_cartesian(max_levels=10, distance_epsilon=0.01)
        assert annulus.get_nonoverlapping_area() == pytest.approx(75 * math.pi, rel=1e-2)
        assert annulus.bounds.extent == pytest.approx((-10, -10, 10, 10), abs=0.1)

    def test_copy_is_independent(self):
        """Extending a copy leaves the original unchanged."""
        shape = Shape().move_to(0, 0).line_to(10, 0)
        copied = shape.copy().line_to(10, 10)
        assert shape.get_svg_path() == "M 0 0 L 10 0"
        assert copied.get_svg_path() == "M 0 0 L 10 0 L 10 10"

    def test_write_to_context(self, recording_context):
        """A circle is drawn as one arc call."""
        Shape.circle_at_origin(10).write_to_context(recording_context)
        assert recording_context.calls == [
            ("move_to", 10, 0),
            ("arc", 0, 0, 10, 0, 2 * math.pi, False),
            ("close_path",),
        ]


###############################################################################
# Invalidation, immutability and serialization
###############################################################################


class TestShapeLifecycle:
    """Test class for invalidation, immutability and serialization."""

    def test_every_change_notifies(self):
        """Each drawing call notifies the listeners."""
        calls = []
        shape = Shape().move_to(0, 0)
        shape.invalidated_emitter.add_listener(lambda: calls.append(1))
        shape.line_to(10, 0).line_to(10, 10)
        assert calls == [1, 1]

    def test_batch_invalidation_notifies_once(self):
        """Changes inside a batch notify once at the end."""
        calls = []
        shape = Shape().move_to(0, 0)
        shape.invalidated_emitter.add_listener(lambda: calls.append(1))
        with shape.batch_invalidation():
            shape.line_to(10, 0).line_to(10, 10).close()
            with shape.batch_invalidation():
                shape.line_to(5, 5)
            assert calls == []
            assert shape.bounds == Bounds(0, 0, 10, 10)
        assert calls == [1]

    def test_invalidate_points_notifies_once(self):
        """Re-synchronizing all subpaths fires a single notification."""
        calls = []
        shape = _ring()
        shape.invalidated_emitter.add_listener(lambda: calls.append(1))
        shape.invalidate_points()
        assert calls == [1]

    def test_immutable_shape_rejects_changes(self):
        """Drawing calls and subpath changes fail on an immutable shape."""
        shape = Shape.rectangle(0, 0, 10, 10).make_immutable()
        assert shape.is_immutable()
        with pytest.raises(ImmutableShapeError):
            shape.line_to(20, 20)
        with pytest.raises(ImmutableShapeError):
            shape.close()
        with pytest.raises(ImmutableShapeError):
            shape.subpaths[0].add_segment(Line(Vector2(0, 0), Vector2(5, 5)))
        with pytest.raises(ImmutableShapeError):
            with shape.batch_invalidation():
                pass

    def test_immutable_shape_can_be_queried_and_copied(self):
        """Queries and copies still work on an immutable shape."""
        shape = Shape.rectangle(0, 0, 10, 10).make_immutable()
        assert shape.contains_point((5, 5))
        assert shape.get_stroked_bounds(LineStyles(line_width=2)) == Bounds(-1, -1, 11, 11)
        copied = shape.copy().line_to(20, 20)
        assert not copied.is_immutable()

    def test_serialize_round_trip(self):
        """The serialized form is JSON compatible and restores the path."""
        shape = Shape.round_rectangle(0, 0, 20, 10, 4, 2).quadratic_curve_to(5, 5, 10, 0)
        data = json.loads(json.dumps(shape.serialize()))
        restored = Shape.deserialize(data)
        assert restored.get_svg_path() == shape.get_svg_path()
        assert restored.bounds == shape.bounds

    @pytest.mark.parametrize("data", [{"type": "Shape"}, {"type": "Subpath", "subpaths": []}, []])
    def test_deserialize_malformed_data_raises(self, data):
        """Missing fields and wrong types are reported."""
        with pytest.raises(DeserializationError):
            Shape.deserialize(data)
