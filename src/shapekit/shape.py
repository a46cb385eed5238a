"""Shape: a list of subpaths with the path-building API and the derived queries"""

from __future__ import annotations

import functools
import logging
import math
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from shapekit.arc import Arc, EllipticalArc, ellipse_center_from_endpoints
from shapekit.bezier import Cubic, Quadratic
from shapekit.common import DeserializationError, Emitter, ImmutableShapeError, InvalidGeometryError
from shapekit.consts import (
    APPROXIMATE_SAMPLES,
    ARC_LENGTH_MAX_LEVELS,
    CONTAINMENT_MAX_ATTEMPTS,
    CURVE_EPSILON,
    DISTANCE_EPSILON,
    PIECEWISE_MAX_LEVELS,
    PIECEWISE_MIN_LEVELS,
    SEGMENTS_CONTINUITY_EPSILON,
    VERTEX_COINCIDENCE_EPSILON,
)
from shapekit.geom import ZERO, X_UNIT, AffineTrafo, Bounds, PointLike, Ray, Vector2, as_vector
from shapekit.line_styles import LineStyles
from shapekit.segment import ClosestPoint, DrawingContext, Line, RayIntersection, Segment, check_finite
from shapekit.subpath import Subpath
from shapekit.svgpath import apply_svg_path, parse_svg_path, svg_number

if TYPE_CHECKING:
    from shapekit.cag import ClipOptions  # pylint: disable=unused-import

logger = logging.getLogger(__name__)


def _mutating(method: Callable) -> Callable:
    """Reject the call if the shape was made immutable."""

    @functools.wraps(method)
    def wrapper(self: Shape, *args, **kwargs):
        if self.is_immutable():
            raise ImmutableShapeError(f"Attempt to modify an immutable Shape with {method.__name__}()")
        return method(self, *args, **kwargs)

    return wrapper


def _weighted_spline_vector(before: Vector2, current: Vector2, after: Vector2, tension: float) -> Vector2:
    return (after - before) * ((1 - tension) / 6) + current


###############################################################################
# Shape
###############################################################################
class Shape:
    """
    A planar shape made of subpaths, filled with the non-zero winding rule.

    Shapes are built incrementally with canvas-like calls (move_to, line_to,
    arc, ...) which can be chained. Any change clears the cached bounds and
    notifies the listeners of invalidated_emitter. Inside batch_invalidation()
    the notification is deferred until the block ends.

    Segments are immutable values, subpaths are owned by exactly one shape.
    """

    def __init__(self, subpaths: Optional[Sequence[Subpath]] = None, bounds: Optional[Bounds] = None):
        """
        Initialize the shape.

        Args:
            subpaths (Optional[Sequence[Subpath]]): subpaths to take ownership of
            bounds (Optional[Bounds]): precomputed bounds consistent with the subpaths
        """
        self._subpaths: List[Subpath] = []
        self._invalidating_points = False
        self._immutable = False
        self.invalidated_emitter = Emitter()
        self._last_quadratic_control_point: Optional[Vector2] = None
        self._last_cubic_control_point: Optional[Vector2] = None
        self._invalidate_listener = self._invalidate

        for subpath in subpaths or []:
            self._add_subpath(subpath)

        self._bounds: Optional[Bounds] = bounds

    def __str__(self) -> str:
        return f"Shape('{self.get_svg_path()}')"

    def __repr__(self) -> str:
        return str(self)

    @property
    def subpaths(self) -> List[Subpath]:
        """List[Subpath]: the subpaths in drawing order (do not modify)."""
        return self._subpaths

    @property
    def bounds(self) -> Bounds:
        """Bounds: union of the subpath bounds (cached)."""
        if self._bounds is None:
            bounds = Bounds.nothing()
            for subpath in self._subpaths:
                bounds = bounds.union(subpath.bounds)
            self._bounds = bounds
        return self._bounds

    ###########################################################################
    # Invalidation and immutability
    ###########################################################################
    def _invalidate(self) -> None:
        if self._immutable:
            raise ImmutableShapeError("Attempt to modify an immutable Shape")
        self._bounds = None
        if not self._invalidating_points:
            self.invalidated_emitter.emit()

    @contextmanager
    def batch_invalidation(self) -> Iterator[Shape]:
        """
        Defer invalidation notifications while the block runs.

        Cached geometry is still dropped on every change; listeners are
        notified exactly once when the block is left (also on errors).

        Yields:
            Shape: this shape
        """
        if self._immutable:
            raise ImmutableShapeError("Attempt to modify an immutable Shape")
        outer = self._invalidating_points
        self._invalidating_points = True
        try:
            yield self
        finally:
            self._invalidating_points = outer
            if not outer:
                self._invalidate()

    def invalidate_points(self) -> None:
        """Re-synchronize all subpaths and fire a single invalidation."""
        with self.batch_invalidation():
            for subpath in self._subpaths:
                subpath.invalidate_points()

    def make_immutable(self) -> Shape:
        """Freeze the shape; every further mutation raises ImmutableShapeError."""
        self._immutable = True
        self.invalidated_emitter.emit()
        return self

    def is_immutable(self) -> bool:
        """Whether make_immutable() was called."""
        return self._immutable

    ###########################################################################
    # Internal subpath handling
    ###########################################################################
    def _add_subpath(self, subpath: Subpath) -> Shape:
        self._subpaths.append(subpath)
        subpath.invalidated_emitter.add_listener(self._invalidate_listener)
        self._invalidate()
        return self

    def _add_segment_and_bounds(self, segment: Segment) -> None:
        # the subpath notifies us through its emitter
        self._last_subpath().add_segment(segment)

    def _ensure(self, point: Vector2) -> None:
        if not self.has_subpaths():
            self._add_subpath(Subpath())
        if not self._last_subpath().points:
            self._last_subpath().add_point(point)

    def _has_current_point(self) -> bool:
        return self.has_subpaths() and len(self._last_subpath().points) > 0

    def has_subpaths(self) -> bool:
        """Whether any subpath was started."""
        return len(self._subpaths) > 0

    def _last_subpath(self) -> Subpath:
        return self._subpaths[-1]

    def get_last_point(self) -> Vector2:
        """
        The last point of the last subpath.

        Raises:
            InvalidGeometryError: if there is no current point (empty shape or fresh subpath)
        """
        if not self._has_current_point():
            raise InvalidGeometryError("Shape has no current point, start with move_to()")
        return self._last_subpath().get_last_point()

    def get_last_segment(self) -> Optional[Segment]:
        """The last segment of the last subpath (None if there is none)."""
        if not self.has_subpaths() or not self._last_subpath().is_drawable():
            return None
        return self._last_subpath().get_last_segment()

    def get_relative_point(self) -> Vector2:
        """Origin for relative commands: the last point, or (0, 0) for an empty shape."""
        if self._has_current_point():
            return self._last_subpath().get_last_point()
        return ZERO

    def _reset_control_points(self) -> None:
        self._last_quadratic_control_point = None
        self._last_cubic_control_point = None

    def _set_quadratic_control_point(self, point: Vector2) -> None:
        self._last_quadratic_control_point = point
        self._last_cubic_control_point = None

    def _set_cubic_control_point(self, point: Vector2) -> None:
        self._last_quadratic_control_point = None
        self._last_cubic_control_point = point

    def _smooth_quadratic_control_point(self, fallback: Vector2) -> Vector2:
        # without a current point the curve starts at _fallback_
        if not self._has_current_point():
            return fallback
        last_point = self.get_last_point()
        if self._last_quadratic_control_point is None:
            return last_point
        return last_point + (last_point - self._last_quadratic_control_point)

    def _smooth_cubic_control_point(self, fallback: Vector2) -> Vector2:
        if not self._has_current_point():
            return fallback
        last_point = self.get_last_point()
        if self._last_cubic_control_point is None:
            return last_point
        return last_point + (last_point - self._last_cubic_control_point)

    ###########################################################################
    # Path building: moves and lines
    ###########################################################################
    def move_to(self, x: float, y: float) -> Shape:
        """Start a new subpath at (x, y)."""
        check_finite(x, y)
        return self.move_to_point(Vector2(x, y))

    def move_to_relative(self, x: float, y: float) -> Shape:
        """Start a new subpath displaced by (x, y) from the last point."""
        check_finite(x, y)
        return self.move_to_point_relative(Vector2(x, y))

    def move_to_point_relative(self, displacement: PointLike) -> Shape:
        """Start a new subpath displaced by _displacement_ from the last point."""
        return self.move_to_point(self.get_relative_point() + as_vector(displacement))

    @_mutating
    def move_to_point(self, point: PointLike) -> Shape:
        """Start a new subpath at _point_."""
        point = as_vector(point)
        self._add_subpath(Subpath().add_point(point))
        self._reset_control_points()
        return self

    def line_to(self, x: float, y: float) -> Shape:
        """Straight line from the last point to (x, y)."""
        check_finite(x, y)
        return self.line_to_point(Vector2(x, y))

    def line_to_relative(self, x: float, y: float) -> Shape:
        """Straight line displaced by (x, y)."""
        check_finite(x, y)
        return self.line_to_point_relative(Vector2(x, y))

    def line_to_point_relative(self, displacement: PointLike) -> Shape:
        """Straight line displaced by _displacement_."""
        return self.line_to_point(self.get_relative_point() + as_vector(displacement))

    @_mutating
    def line_to_point(self, point: PointLike) -> Shape:
        """Straight line from the last point to _point_ (only sets the start point if there is none)."""
        point = as_vector(point)
        if self._has_current_point():
            start = self._last_subpath().get_last_point()
            self._last_subpath().add_point(point)
            self._add_segment_and_bounds(Line(start, point))
        else:
            self._ensure(point)
        self._reset_control_points()
        return self

    def horizontal_line_to(self, x: float) -> Shape:
        """Horizontal line to the x-coordinate _x_."""
        return self.line_to(x, self.get_relative_point().y)

    def horizontal_line_to_relative(self, x: float) -> Shape:
        """Horizontal line by the displacement _x_."""
        return self.line_to_relative(x, 0)

    def vertical_line_to(self, y: float) -> Shape:
        """Vertical line to the y-coordinate _y_."""
        return self.line_to(self.get_relative_point().x, y)

    def vertical_line_to_relative(self, y: float) -> Shape:
        """Vertical line by the displacement _y_."""
        return self.line_to_relative(0, y)

    def zig_zag_to(
        self, end_x: float, end_y: float, amplitude: float, number_zig_zags: int, symmetrical: bool = False
    ) -> Shape:
        """Zig-zag line from the last point to (end_x, end_y), see zig_zag_to_point()."""
        check_finite(end_x, end_y)
        return self.zig_zag_to_point(Vector2(end_x, end_y), amplitude, number_zig_zags, symmetrical)

    @_mutating
    def zig_zag_to_point(
        self, end_point: PointLike, amplitude: float, number_zig_zags: int, symmetrical: bool = False
    ) -> Shape:
        """
        Zig-zag line from the last point to _end_point_.

        Args:
            end_point (PointLike): where the zig-zag ends
            amplitude (float): amplitude of the wave, its sign selects the initial direction
            number_zig_zags (int): number of complete oscillations
            symmetrical (bool): add half an oscillation so the wave is symmetric

        Returns:
            Shape: this shape
        """
        if int(number_zig_zags) != number_zig_zags:
            raise InvalidGeometryError(f"number_zig_zags must be an integer: {number_zig_zags}")
        end_point = as_vector(end_point)
        self._ensure(end_point)
        start_point = self.get_last_point()
        delta = end_point - start_point
        direction = delta.normalized()
        amplitude_normal = direction.perpendicular * amplitude

        wavelength = delta.magnitude / (number_zig_zags + 0.5 if symmetrical else number_zig_zags)
        for i in range(int(number_zig_zags)):
            wave_origin = start_point + direction * (i * wavelength)
            top_point = wave_origin + direction * (wavelength / 4) + amplitude_normal
            bottom_point = wave_origin + direction * (3 * wavelength / 4) - amplitude_normal
            self.line_to_point(top_point)
            self.line_to_point(bottom_point)

        if symmetrical:
            wave_origin = start_point + direction * (number_zig_zags * wavelength)
            self.line_to_point(wave_origin + direction * (wavelength / 4) + amplitude_normal)

        return self.line_to_point(end_point)

    ###########################################################################
    # Path building: Bezier curves
    ###########################################################################
    def quadratic_curve_to(self, cpx: float, cpy: float, x: float, y: float) -> Shape:
        """Quadratic curve with control point (cpx, cpy) ending at (x, y)."""
        check_finite(cpx, cpy, x, y)
        return self.quadratic_curve_to_point(Vector2(cpx, cpy), Vector2(x, y))

    def quadratic_curve_to_relative(self, cpx: float, cpy: float, x: float, y: float) -> Shape:
        """Quadratic curve with both points given relative to the last point."""
        check_finite(cpx, cpy, x, y)
        return self.quadratic_curve_to_point_relative(Vector2(cpx, cpy), Vector2(x, y))

    def quadratic_curve_to_point_relative(self, control_point: PointLike, point: PointLike) -> Shape:
        """Quadratic curve with both points given relative to the last point."""
        relative_point = self.get_relative_point()
        return self.quadratic_curve_to_point(
            relative_point + as_vector(control_point), relative_point + as_vector(point)
        )

    def smooth_quadratic_curve_to(self, x: float, y: float) -> Shape:
        """Quadratic curve whose control point mirrors the previous one."""
        check_finite(x, y)
        point = Vector2(x, y)
        return self.quadratic_curve_to_point(self._smooth_quadratic_control_point(point), point)

    def smooth_quadratic_curve_to_relative(self, x: float, y: float) -> Shape:
        """Smooth quadratic curve ending at a displacement of (x, y)."""
        check_finite(x, y)
        point = Vector2(x, y) + self.get_relative_point()
        return self.quadratic_curve_to_point(self._smooth_quadratic_control_point(point), point)

    @_mutating
    def quadratic_curve_to_point(self, control_point: PointLike, point: PointLike) -> Shape:
        """Quadratic curve from the last point through _control_point_ to _point_."""
        control_point = as_vector(control_point)
        point = as_vector(point)
        self._ensure(control_point)
        start = self._last_subpath().get_last_point()
        self._last_subpath().add_point(point)
        for segment in Quadratic(start, control_point, point).get_nondegenerate_segments():
            self._add_segment_and_bounds(segment)
        self._set_quadratic_control_point(control_point)
        return self

    def cubic_curve_to(self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float) -> Shape:
        """Cubic curve with control points (cp1x, cp1y), (cp2x, cp2y) ending at (x, y)."""
        check_finite(cp1x, cp1y, cp2x, cp2y, x, y)
        return self.cubic_curve_to_point(Vector2(cp1x, cp1y), Vector2(cp2x, cp2y), Vector2(x, y))

    def cubic_curve_to_relative(
        self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float
    ) -> Shape:
        """Cubic curve with all points given relative to the last point."""
        check_finite(cp1x, cp1y, cp2x, cp2y, x, y)
        return self.cubic_curve_to_point_relative(Vector2(cp1x, cp1y), Vector2(cp2x, cp2y), Vector2(x, y))

    def cubic_curve_to_point_relative(self, control1: PointLike, control2: PointLike, point: PointLike) -> Shape:
        """Cubic curve with all points given relative to the last point."""
        relative_point = self.get_relative_point()
        return self.cubic_curve_to_point(
            relative_point + as_vector(control1),
            relative_point + as_vector(control2),
            relative_point + as_vector(point),
        )

    def smooth_cubic_curve_to(self, cp2x: float, cp2y: float, x: float, y: float) -> Shape:
        """Cubic curve whose first control point mirrors the previous second control point."""
        check_finite(cp2x, cp2y, x, y)
        control2 = Vector2(cp2x, cp2y)
        return self.cubic_curve_to_point(self._smooth_cubic_control_point(control2), control2, Vector2(x, y))

    def smooth_cubic_curve_to_relative(self, cp2x: float, cp2y: float, x: float, y: float) -> Shape:
        """Smooth cubic curve with the remaining points relative to the last point."""
        check_finite(cp2x, cp2y, x, y)
        relative_point = self.get_relative_point()
        control2 = Vector2(cp2x, cp2y) + relative_point
        point = Vector2(x, y) + relative_point
        return self.cubic_curve_to_point(self._smooth_cubic_control_point(control2), control2, point)

    @_mutating
    def cubic_curve_to_point(self, control1: PointLike, control2: PointLike, point: PointLike) -> Shape:
        """Cubic curve from the last point through both control points to _point_."""
        control1 = as_vector(control1)
        control2 = as_vector(control2)
        point = as_vector(point)
        self._ensure(control1)
        start = self._last_subpath().get_last_point()
        for segment in Cubic(start, control1, control2, point).get_nondegenerate_segments():
            self._add_segment_and_bounds(segment)
        self._last_subpath().add_point(point)
        self._set_cubic_control_point(control2)
        return self

    ###########################################################################
    # Path building: arcs
    ###########################################################################
    def arc(
        self,
        center_x: float,
        center_y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> Shape:
        """Circular arc, connected to the last point by a line (see arc_point())."""
        check_finite(center_x, center_y)
        return self.arc_point(Vector2(center_x, center_y), radius, start_angle, end_angle, anticlockwise)

    @_mutating
    def arc_point(
        self, center: PointLike, radius: float, start_angle: float, end_angle: float, anticlockwise: bool = False
    ) -> Shape:
        """
        Circular arc around _center_.

        If the current point differs from the start of the arc, a straight line
        to the arc start is added first (like canvas arc()).

        Args:
            center (PointLike): center of the circle
            radius (float): radius
            start_angle (float): start angle in radians
            end_angle (float): end angle in radians
            anticlockwise (bool): direction of the arc

        Returns:
            Shape: this shape
        """
        arc = Arc(as_vector(center), radius, start_angle, end_angle, anticlockwise)
        return self._append_arc(arc)

    def elliptical_arc(
        self,
        center_x: float,
        center_y: float,
        radius_x: float,
        radius_y: float,
        rotation: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> Shape:
        """Elliptical arc, connected to the last point by a line (see elliptical_arc_point())."""
        check_finite(center_x, center_y)
        return self.elliptical_arc_point(
            Vector2(center_x, center_y), radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise
        )

    @_mutating
    def elliptical_arc_point(
        self,
        center: PointLike,
        radius_x: float,
        radius_y: float,
        rotation: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> Shape:
        """Elliptical arc around _center_, rotation in radians."""
        elliptical_arc = EllipticalArc(
            as_vector(center), radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise
        )
        return self._append_arc(elliptical_arc)

    def _append_arc(self, arc: Segment) -> Shape:
        start_point = arc.start
        end_point = arc.end
        if (
            self.has_subpaths()
            and self._last_subpath().get_length() > 0
            and start_point != self._last_subpath().get_last_point()
        ):
            self._add_segment_and_bounds(Line(self._last_subpath().get_last_point(), start_point))
        if not self.has_subpaths():
            self._add_subpath(Subpath())
        self._last_subpath().add_point(start_point)
        self._last_subpath().add_point(end_point)
        self._add_segment_and_bounds(arc)
        self._reset_control_points()
        return self

    def elliptical_arc_to_relative(
        self, radius_x: float, radius_y: float, rotation: float, large_arc: bool, sweep: bool, x: float, y: float
    ) -> Shape:
        """SVG arc command with the end point relative to the last point."""
        relative_point = self.get_relative_point()
        return self.elliptical_arc_to(
            radius_x, radius_y, rotation, large_arc, sweep, x + relative_point.x, y + relative_point.y
        )

    @_mutating
    def elliptical_arc_to(
        self, radius_x: float, radius_y: float, rotation: float, large_arc: bool, sweep: bool, x: float, y: float
    ) -> Shape:
        """
        SVG arc command: elliptical arc from the last point to (x, y).

        Args:
            radius_x (float): x radius (scaled up if too small to reach the end point)
            radius_y (float): y radius (scaled up if too small to reach the end point)
            rotation (float): rotation of the ellipse in DEGREES, as in SVG path data
            large_arc (bool): take the arc spanning more than 180 degrees
            sweep (bool): draw in the direction of increasing angles (clockwise on screen)
            x (float): end point x
            y (float): end point y

        Returns:
            Shape: this shape
        """
        check_finite(radius_x, radius_y, rotation, x, y)
        end_point = Vector2(x, y)
        self._ensure(end_point)
        start_point = self._last_subpath().get_last_point()
        self._last_subpath().add_point(end_point)

        elliptical_arc = ellipse_center_from_endpoints(
            start_point, end_point, radius_x, radius_y, math.radians(rotation), bool(large_arc), bool(sweep)
        )
        if elliptical_arc is None:
            # zero radius: straight line, coincident end points: nothing
            if start_point != end_point:
                self._add_segment_and_bounds(Line(start_point, end_point))
        else:
            for segment in elliptical_arc.get_nondegenerate_segments():
                self._add_segment_and_bounds(segment)
        self._reset_control_points()
        return self

    ###########################################################################
    # Path building: subpaths and compound figures
    ###########################################################################
    @_mutating
    def close(self) -> Shape:
        """Close the current subpath and start a new one at its first point."""
        if self.has_subpaths():
            previous_path = self._last_subpath()
            next_path = Subpath()
            previous_path.close()
            self._add_subpath(next_path)
            if previous_path.points:
                next_path.add_point(previous_path.get_first_point())
        self._reset_control_points()
        return self

    @_mutating
    def new_subpath(self) -> Shape:
        """Start a new subpath without a point (the next drawing call sets its start point)."""
        self._add_subpath(Subpath())
        self._reset_control_points()
        return self

    @_mutating
    def rect(self, x: float, y: float, width: float, height: float) -> Shape:
        """Closed rectangle with the corner (x, y), as its own subpath."""
        check_finite(x, y, width, height)
        subpath = Subpath()
        self._add_subpath(subpath)
        corners = [Vector2(x, y), Vector2(x + width, y), Vector2(x + width, y + height), Vector2(x, y + height)]
        for corner in corners:
            subpath.add_point(corner)
        for start, end in zip(corners, corners[1:]):
            self._add_segment_and_bounds(Line(start, end))
        subpath.close()
        self._add_subpath(Subpath())
        self._last_subpath().add_point(Vector2(x, y))
        self._reset_control_points()
        return self

    def round_rect(self, x: float, y: float, width: float, height: float, arc_width: float, arc_height: float) -> Shape:
        """Rectangle with rounded corners (circular arcs if arc_width == arc_height, else elliptical)."""
        low_x = x + arc_width
        high_x = x + width - arc_width
        low_y = y + arc_height
        high_y = y + height - arc_height
        half_pi = math.pi / 2
        if arc_width == arc_height:
            return (
                self.arc(high_x, low_y, arc_width, -half_pi, 0)
                .arc(high_x, high_y, arc_width, 0, half_pi)
                .arc(low_x, high_y, arc_width, half_pi, math.pi)
                .arc(low_x, low_y, arc_width, math.pi, 3 * half_pi)
                .close()
            )
        return (
            self.elliptical_arc(high_x, low_y, arc_width, arc_height, 0, -half_pi, 0)
            .elliptical_arc(high_x, high_y, arc_width, arc_height, 0, 0, half_pi)
            .elliptical_arc(low_x, high_y, arc_width, arc_height, 0, half_pi, math.pi)
            .elliptical_arc(low_x, low_y, arc_width, arc_height, 0, math.pi, 3 * half_pi)
            .close()
        )

    def polygon(self, vertices: Sequence[PointLike]) -> Shape:
        """Closed polygon through _vertices_."""
        if vertices:
            self.move_to_point(vertices[0])
            for vertex in vertices[1:]:
                self.line_to_point(vertex)
        return self.close()

    @_mutating
    def cardinal_spline(
        self, positions: Sequence[PointLike], tension: float = 0.0, is_closed_line_segments: bool = False
    ) -> Shape:
        """
        Cardinal spline through all _positions_, built from cubic curves.

        Args:
            positions (Sequence[PointLike]): points the curve passes through (at least 3 if open)
            tension (float): -1 < tension < 1, 0 gives a Catmull-Rom spline
            is_closed_line_segments (bool): connect the last position back to the first

        Returns:
            Shape: this shape
        """
        if not -1 < tension < 1:
            raise InvalidGeometryError(f"tension must be between -1 and 1: {tension}")
        points = [as_vector(position) for position in positions]
        point_number = len(points)
        segment_number = point_number if is_closed_line_segments else point_number - 1

        for i in range(segment_number):
            if i == 0 and not is_closed_line_segments:
                cardinal_points = [points[0], points[0], points[1], points[2]]
            elif i == segment_number - 1 and not is_closed_line_segments:
                cardinal_points = [points[i - 1], points[i], points[i + 1], points[i + 1]]
            else:
                cardinal_points = [
                    points[(i - 1 + point_number) % point_number],
                    points[i % point_number],
                    points[(i + 1) % point_number],
                    points[(i + 2) % point_number],
                ]

            bezier_points = [
                cardinal_points[1],
                _weighted_spline_vector(cardinal_points[0], cardinal_points[1], cardinal_points[2], tension),
                _weighted_spline_vector(cardinal_points[3], cardinal_points[2], cardinal_points[1], tension),
                cardinal_points[2],
            ]
            if i == 0:
                self._ensure(bezier_points[0])
                self._last_subpath().add_point(bezier_points[0])
            self.cubic_curve_to_point(bezier_points[1], bezier_points[2], bezier_points[3])
        return self

    ###########################################################################
    # Derived shapes
    ###########################################################################
    def copy(self) -> Shape:
        """Independent copy (subpaths are copied, segments are shared)."""
        return Shape([subpath.copy() for subpath in self._subpaths], self._bounds)

    def transformed(self, affine_trafo: AffineTrafo) -> Shape:
        """The shape mapped by [a00, a01, a10, a11, b0, b1]."""
        return Shape([subpath.transformed(affine_trafo) for subpath in self._subpaths])

    def nonlinear_transformed(
        self,
        point_map: Optional[Callable[[Vector2], Vector2]] = None,
        min_levels: int = 0,
        max_levels: int = 7,
        distance_epsilon: Optional[float] = 0.16,
        curve_epsilon: Optional[float] = None,
    ) -> Shape:
        """
        The shape flattened into lines, with _point_map_ applied to every vertex.

        The subdivision refines where the mapped midpoints deviate from the
        mapped chords by more than the given tolerances.
        """
        return Shape(
            [
                subpath.to_piecewise_linear(min_levels, max_levels, distance_epsilon, curve_epsilon, point_map)
                for subpath in self._subpaths
            ]
        )

    def polar_to_cartesian(self, **kwargs) -> Shape:
        """Map x to the polar angle and y to the polar radius (see nonlinear_transformed())."""
        return self.nonlinear_transformed(lambda point: Vector2.from_polar(point.y, point.x), **kwargs)

    def to_piecewise_linear(
        self,
        min_levels: int = PIECEWISE_MIN_LEVELS,
        max_levels: int = PIECEWISE_MAX_LEVELS,
        distance_epsilon: Optional[float] = None,
        curve_epsilon: Optional[float] = None,
    ) -> Shape:
        """The shape approximated by lines only."""
        return Shape(
            [
                subpath.to_piecewise_linear(min_levels, max_levels, distance_epsilon, curve_epsilon)
                for subpath in self._subpaths
            ]
        )

    def get_stroked_shape(self, line_styles: Optional[LineStyles] = None) -> Shape:
        """
        Outline of the stroked path.

        Subpaths are stroked independently; overlaps between their outlines are
        not resolved (fill the result with the non-zero rule).
        """
        subpaths = [stroked for subpath in self._subpaths for stroked in subpath.stroked(line_styles)]
        bounds = Bounds.nothing()
        for subpath in subpaths:
            bounds = bounds.union(subpath.bounds)
        return Shape(subpaths, bounds)

    def get_offset_shape(self, distance: float) -> Shape:
        """Every subpath offset to the left by _distance_."""
        subpaths = [subpath.offset(distance) for subpath in self._subpaths]
        bounds = Bounds.nothing()
        for subpath in subpaths:
            bounds = bounds.union(subpath.bounds)
        return Shape(subpaths, bounds)

    def get_dashed_shape(
        self,
        line_dash: Sequence[float],
        line_dash_offset: float = 0.0,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
    ) -> Shape:
        """The path with the gaps of the dash pattern removed (usually many subpaths)."""
        return Shape(
            [
                dashed
                for subpath in self._subpaths
                for dashed in subpath.dashed(line_dash, line_dash_offset, distance_epsilon, curve_epsilon)
            ]
        )

    def get_simplified_area_shape(self) -> Shape:
        """Non-overlapping equivalent of the filled area (see cag.simplify_non_zero())."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.simplify_non_zero(self)

    ###########################################################################
    # Bounds
    ###########################################################################
    def get_stroked_bounds(self, line_styles: Optional[LineStyles] = None) -> Bounds:
        """
        Bounds of the stroked shape.

        If every drawable subpath is closed and every segment is stroked-bounds
        dilatable, the bounds are simply dilated by half the line width.
        """
        if line_styles is None:
            line_styles = LineStyles()
        are_stroked_bounds_dilated = True
        for subpath in self._subpaths:
            # caps apply to open subpaths
            if subpath.is_drawable() and not subpath.is_closed():
                are_stroked_bounds_dilated = False
                break
            if not all(segment.are_stroked_bounds_dilated() for segment in subpath.segments):
                are_stroked_bounds_dilated = False
                break

        if are_stroked_bounds_dilated:
            return self.bounds.dilated(line_styles.line_width / 2)

        bounds = self.bounds
        for subpath in self._subpaths:
            for stroked in subpath.stroked(line_styles):
                bounds = bounds.union(stroked.bounds)
        return bounds

    def get_bounds_with_transform(self, affine_trafo: AffineTrafo, line_styles: Optional[LineStyles] = None) -> Bounds:
        """Bounds after applying _affine_trafo_, including the stroke if _line_styles_ are given."""
        bounds = Bounds.nothing()
        for subpath in self._subpaths:
            bounds = bounds.union(subpath.get_bounds_with_transform(affine_trafo))
        if line_styles is not None:
            bounds = bounds.union(self.get_stroked_shape(line_styles).get_bounds_with_transform(affine_trafo))
        return bounds

    ###########################################################################
    # Hit testing
    ###########################################################################
    def _ray_hits_segment_vertex(self, point: Vector2, ray_direction: Vector2) -> bool:
        for subpath in self._subpaths:
            for segment in subpath.segments:
                delta = segment.start - point
                magnitude = delta.magnitude
                # a point on a segment start has no better ray
                if magnitude == 0:
                    continue
                if (delta / magnitude - ray_direction).magnitude_squared < VERTEX_COINCIDENCE_EPSILON:
                    return True
        return False

    def contains_point(self, point: PointLike, rng: Optional[np.random.Generator] = None) -> bool:
        """
        Whether _point_ is inside the shape (non-zero winding rule).

        A ray towards +x is used unless it passes through a segment start, in
        which case it is rotated by a random angle, up to
        CONTAINMENT_MAX_ATTEMPTS times. The last ray is used even if it still
        touches a vertex.

        Args:
            point (PointLike): the point to test
            rng (Optional[np.random.Generator]): random source for the ray rotation

        Returns:
            bool: True if the winding number is non-zero
        """
        point = as_vector(point)
        ray_direction = X_UNIT
        for attempt in range(CONTAINMENT_MAX_ATTEMPTS):
            if not self._ray_hits_segment_vertex(point, ray_direction):
                break
            if rng is None:
                rng = np.random.default_rng()
            ray_direction = ray_direction.rotated(float(rng.random()))
            logger.debug("Containment ray through a vertex at %s, retry %d", point, attempt + 1)
        else:
            logger.warning(
                "Containment ray for %s may still touch a vertex after %d attempts", point, CONTAINMENT_MAX_ATTEMPTS
            )
        return self.winding_intersection(Ray(point, ray_direction)) != 0

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        """All hits of _ray_ with the boundary (closing segments included), sorted by distance."""
        hits: List[RayIntersection] = []
        for subpath in self._subpaths:
            if subpath.is_drawable():
                for segment in subpath.segments:
                    hits.extend(segment.intersection(ray))
                if subpath.has_closing_segment():
                    hits.extend(subpath.get_closing_segment().intersection(ray))
        return sorted(hits, key=lambda hit: hit.distance)

    def winding_intersection(self, ray: Ray) -> int:
        """Winding number of the boundary (closing segments included) along _ray_."""
        wind = 0
        for subpath in self._subpaths:
            if subpath.is_drawable():
                for segment in subpath.segments:
                    wind += segment.winding_intersection(ray)
                if subpath.has_closing_segment():
                    wind += subpath.get_closing_segment().winding_intersection(ray)
        return wind

    def interior_intersects_line_segment(self, start_point: PointLike, end_point: PointLike) -> bool:
        """Whether the segment from _start_point_ to _end_point_ touches the filled interior or the boundary."""
        start_point = as_vector(start_point)
        end_point = as_vector(end_point)
        if self.contains_point(start_point.blend(end_point, 0.5)):
            return True
        delta = end_point - start_point
        length = delta.magnitude
        if length == 0:
            return False
        hits = self.intersection(Ray(start_point, delta / length))
        return any(hit.distance <= length for hit in hits)

    def intersects_bounds(self, bounds: Bounds) -> bool:
        """Whether the boundary of the shape touches _bounds_ or lies completely inside it."""
        if self.bounds.intersection(bounds) == self.bounds:
            return True

        min_horizontal_ray = Ray(Vector2(bounds.xmin, bounds.ymin), Vector2(1, 0))
        min_vertical_ray = Ray(Vector2(bounds.xmin, bounds.ymin), Vector2(0, 1))
        max_horizontal_ray = Ray(Vector2(bounds.xmax, bounds.ymax), Vector2(-1, 0))
        max_vertical_ray = Ray(Vector2(bounds.xmax, bounds.ymax), Vector2(0, -1))

        for hit in self.intersection(min_horizontal_ray) + self.intersection(max_horizontal_ray):
            if bounds.xmin <= hit.point.x <= bounds.xmax:
                return True
        for hit in self.intersection(min_vertical_ray) + self.intersection(max_vertical_ray):
            if bounds.ymin <= hit.point.y <= bounds.ymax:
                return True
        return False

    def get_closest_points(self, point: PointLike) -> List[ClosestPoint]:
        """Candidates for the closest boundary point to _point_."""
        point = as_vector(point)
        return Segment.filter_closest_to_point_result(
            [info for subpath in self._subpaths for info in subpath.get_closest_points(point)]
        )

    def get_closest_point(self, point: PointLike) -> Vector2:
        """One boundary point closest to _point_ (arbitrary if there are several)."""
        return self.get_closest_points(point)[0].closest_point

    ###########################################################################
    # Measures
    ###########################################################################
    def get_nonoverlapping_area(self) -> float:
        """
        Area assuming no self-intersection or overlap and consistent orientation.

        Holes are supported if they have the opposite orientation and do not
        intersect their outer contour.
        """
        return abs(
            sum(
                segment.get_signed_area_fragment()
                for subpath in self._subpaths
                for segment in subpath.get_fill_segments()
            )
        )

    def get_area(self) -> float:
        """Area of the filled region (the shape is simplified first)."""
        return self.get_simplified_area_shape().get_nonoverlapping_area()

    def _sample_hits(self, num_samples: int, rng: np.random.Generator) -> List[Tuple[float, float]]:
        # uniform samples in the bounds which are inside the shape
        bounds = self.bounds
        samples = rng.random((num_samples, 2))
        samples[:, 0] = bounds.xmin + samples[:, 0] * bounds.width
        samples[:, 1] = bounds.ymin + samples[:, 1] * bounds.height
        return [(x, y) for x, y in samples.tolist() if self.contains_point(Vector2(x, y), rng)]

    def get_approximate_area(
        self, num_samples: int = APPROXIMATE_SAMPLES, rng: Optional[np.random.Generator] = None
    ) -> float:
        """Monte Carlo estimate of the area (for cross-checking get_area())."""
        if rng is None:
            rng = np.random.default_rng()
        rectangle_area = self.bounds.width * self.bounds.height
        hits = self._sample_hits(num_samples, rng)
        return rectangle_area * len(hits) / num_samples

    def get_approximate_centroid(
        self, num_samples: int = APPROXIMATE_SAMPLES, rng: Optional[np.random.Generator] = None
    ) -> Optional[Vector2]:
        """
        Monte Carlo estimate of the centroid.

        Returns:
            Optional[Vector2]: the centroid, None if no sample hit the shape
        """
        if rng is None:
            rng = np.random.default_rng()
        hits = self._sample_hits(num_samples, rng)
        if not hits:
            logger.warning("No sample out of %d hit the shape, centroid is undefined", num_samples)
            return None
        center = np.mean(np.array(hits), axis=0)
        return Vector2(float(center[0]), float(center[1]))

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        """Sum of the arc lengths of all subpaths."""
        return sum(subpath.get_arc_length(distance_epsilon, curve_epsilon, max_levels) for subpath in self._subpaths)

    ###########################################################################
    # Boolean operations
    ###########################################################################
    def shape_union(self, shape: Shape) -> Shape:
        """Points in either shape."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.binary_result(self, shape, cag.BinaryOperation.UNION)

    def shape_intersection(self, shape: Shape) -> Shape:
        """Points in both shapes."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.binary_result(self, shape, cag.BinaryOperation.INTERSECTION)

    def shape_difference(self, shape: Shape) -> Shape:
        """Points in this shape but not in _shape_."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.binary_result(self, shape, cag.BinaryOperation.DIFFERENCE)

    def shape_xor(self, shape: Shape) -> Shape:
        """Points in exactly one of the shapes."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.binary_result(self, shape, cag.BinaryOperation.XOR)

    def shape_clip(self, shape: Shape, options: Optional[ClipOptions] = None) -> Shape:
        """The parts of this shape's segments inside the area of _shape_ (see cag.ClipOptions)."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.clip_shape(shape, self, options)

    @classmethod
    def union(cls, shapes: Sequence[Shape]) -> Shape:
        """Union of all _shapes_."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.union_non_zero(shapes)

    @classmethod
    def intersection_of(cls, shapes: Sequence[Shape]) -> Shape:
        """Intersection of all _shapes_."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.intersection_non_zero(shapes)

    @classmethod
    def xor(cls, shapes: Sequence[Shape]) -> Shape:
        """Points covered by an odd number of _shapes_."""
        from shapekit import cag  # pylint: disable=import-outside-toplevel

        return cag.xor_non_zero(shapes)

    ###########################################################################
    # Output and serialization
    ###########################################################################
    def write_to_context(self, context: DrawingContext) -> None:
        """Issue the path to a canvas-like _context_ (no begin_path)."""
        for subpath in self._subpaths:
            subpath.write_to_context(context)

    def get_svg_path(self) -> str:
        """
        SVG path data, e.g. "M 150 0 L 75 200 L 225 200 Z" for a triangle.

        Returns:
            str: path data with absolute commands only
        """
        parts: List[str] = []
        for subpath in self._subpaths:
            if subpath.is_drawable():
                start_point = subpath.segments[0].start
                parts.append(f"M {svg_number(start_point.x)} {svg_number(start_point.y)}")
                parts.extend(segment.get_svg_path_fragment() for segment in subpath.segments)
                if subpath.is_closed():
                    parts.append("Z")
        return " ".join(parts)

    def serialize(self) -> dict:
        """Structural (JSON compatible) representation."""
        return {"type": "Shape", "subpaths": [subpath.serialize() for subpath in self._subpaths]}

    @classmethod
    def deserialize(cls, data: dict) -> Shape:
        """
        Create a Shape from its serialized form.

        Raises:
            DeserializationError: on malformed data
        """
        if not isinstance(data, dict) or data.get("type") != "Shape":
            raise DeserializationError(f"Expected a serialized Shape, got {data!r}")
        if "subpaths" not in data:
            raise DeserializationError("Missing field 'subpaths' in serialized Shape")
        return cls([Subpath.deserialize(subpath) for subpath in data["subpaths"]])

    ###########################################################################
    # Builders
    ###########################################################################
    @classmethod
    def from_svg_path(cls, path_string: str) -> Shape:
        """
        Shape from SVG path data.

        Raises:
            SvgPathParseError: on malformed path data
        """
        shape = cls()
        apply_svg_path(shape, parse_svg_path(path_string))
        return shape

    @classmethod
    def from_segments(cls, segments: Sequence[Segment], closed: bool = False) -> Shape:
        """
        Shape with one subpath made of the given connected _segments_.

        Raises:
            InvalidGeometryError: if a segment does not start where the previous one ends
        """
        for previous, segment in zip(segments, segments[1:]):
            if not previous.end.equals_epsilon(segment.start, SEGMENTS_CONTINUITY_EPSILON):
                raise InvalidGeometryError(f"Mismatched segments: {previous.end} does not meet {segment.start}")
        return cls([Subpath(segments, None, closed)])

    @classmethod
    def rectangle(cls, x: float, y: float, width: float, height: float) -> Shape:
        """Rectangle with the corner (x, y)."""
        return cls().rect(x, y, width, height)

    @classmethod
    def round_rectangle(
        cls, x: float, y: float, width: float, height: float, arc_width: float, arc_height: float
    ) -> Shape:
        """Rectangle with rounded corners."""
        return cls().round_rect(x, y, width, height, arc_width, arc_height)

    @classmethod
    def rounded_rectangle_with_radii(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        top_left: float = 0.0,
        top_right: float = 0.0,
        bottom_left: float = 0.0,
        bottom_right: float = 0.0,
    ) -> Shape:
        """
        Rectangle where every corner has its own radius.

        Radii whose sum exceeds the side they share are reduced proportionally.

        Raises:
            InvalidGeometryError: on negative or non-finite sizes or radii
        """
        for name, value in (
            ("width", width),
            ("height", height),
            ("top_left", top_left),
            ("top_right", top_right),
            ("bottom_left", bottom_left),
            ("bottom_right", bottom_right),
        ):
            if not math.isfinite(value) or value < 0:
                raise InvalidGeometryError(f"{name} must be a non-negative finite number: {value}")

        top_sum = top_left + top_right
        if top_sum > width and top_sum > 0:
            top_left, top_right = top_left / top_sum * width, top_right / top_sum * width
        bottom_sum = bottom_left + bottom_right
        if bottom_sum > width and bottom_sum > 0:
            bottom_left, bottom_right = bottom_left / bottom_sum * width, bottom_right / bottom_sum * width
        left_sum = top_left + bottom_left
        if left_sum > height and left_sum > 0:
            top_left, bottom_left = top_left / left_sum * height, bottom_left / left_sum * height
        right_sum = top_right + bottom_right
        if right_sum > height and right_sum > 0:
            top_right, bottom_right = top_right / right_sum * height, bottom_right / right_sum * height

        shape = cls()
        right = x + width
        bottom = y + height
        # straight edges come from the connecting lines between the corners
        if bottom_right > 0:
            shape.arc(right - bottom_right, bottom - bottom_right, bottom_right, 0, math.pi / 2)
        else:
            shape.move_to(right, bottom)
        if bottom_left > 0:
            shape.arc(x + bottom_left, bottom - bottom_left, bottom_left, math.pi / 2, math.pi)
        else:
            shape.line_to(x, bottom)
        if top_left > 0:
            shape.arc(x + top_left, y + top_left, top_left, math.pi, 3 * math.pi / 2)
        else:
            shape.line_to(x, y)
        if top_right > 0:
            shape.arc(right - top_right, y + top_right, top_right, 3 * math.pi / 2, 2 * math.pi)
        else:
            shape.line_to(right, y)
        return shape.close()

    @classmethod
    def bounds_offset_with_radii(
        cls,
        bounds: Bounds,
        left: float = 0.0,
        top: float = 0.0,
        right: float = 0.0,
        bottom: float = 0.0,
        **radii: float,
    ) -> Shape:
        """Rounded rectangle from _bounds_ grown by the given offsets (radii as in rounded_rectangle_with_radii())."""
        xmin = bounds.xmin - left
        ymin = bounds.ymin - top
        return cls.rounded_rectangle_with_radii(
            xmin, ymin, bounds.xmax + right - xmin, bounds.ymax + bottom - ymin, **radii
        )

    @classmethod
    def polygon_from(cls, vertices: Sequence[PointLike]) -> Shape:
        """Closed polygon through _vertices_."""
        return cls().polygon(vertices)

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> Shape:
        """Rectangle covering _bounds_."""
        return cls().rect(bounds.xmin, bounds.ymin, bounds.width, bounds.height)

    @classmethod
    def line_segment(cls, x1: float, y1: float, x2: float, y2: float) -> Shape:
        """Open shape with a single line."""
        return cls().move_to(x1, y1).line_to(x2, y2)

    @classmethod
    def line_segment_points(cls, start: PointLike, end: PointLike) -> Shape:
        """Open shape with a single line."""
        return cls().move_to_point(start).line_to_point(end)

    @classmethod
    def regular_polygon(cls, sides: int, radius: float) -> Shape:
        """Regular polygon around the origin, first vertex on the positive x-axis."""
        if int(sides) != sides or sides < 3:
            raise InvalidGeometryError(f"A regular polygon needs an integer number of at least 3 sides: {sides}")
        shape = cls()
        for k in range(int(sides)):
            point = Vector2.from_polar(radius, 2 * math.pi * k / sides)
            if k == 0:
                shape.move_to_point(point)
            else:
                shape.line_to_point(point)
        return shape.close()

    @classmethod
    def circle(cls, center_x: float, center_y: float, radius: float) -> Shape:
        """Full circle around (center_x, center_y)."""
        return cls.circle_point(Vector2(center_x, center_y), radius)

    @classmethod
    def circle_point(cls, center: PointLike, radius: float) -> Shape:
        """Full circle around _center_."""
        return cls().arc_point(center, radius, 0, 2 * math.pi).close()

    @classmethod
    def circle_at_origin(cls, radius: float) -> Shape:
        """Full circle around the origin."""
        return cls.circle_point(ZERO, radius)

    @classmethod
    def ellipse(
        cls, center_x: float, center_y: float, radius_x: float, radius_y: float, rotation: float = 0.0
    ) -> Shape:
        """Full ellipse around (center_x, center_y), rotation in radians."""
        return cls.ellipse_point(Vector2(center_x, center_y), radius_x, radius_y, rotation)

    @classmethod
    def ellipse_point(cls, center: PointLike, radius_x: float, radius_y: float, rotation: float = 0.0) -> Shape:
        """Full ellipse around _center_, rotation in radians."""
        return cls().elliptical_arc_point(center, radius_x, radius_y, rotation, 0, 2 * math.pi).close()

    @classmethod
    def ellipse_at_origin(cls, radius_x: float, radius_y: float, rotation: float = 0.0) -> Shape:
        """Full ellipse around the origin."""
        return cls.ellipse_point(ZERO, radius_x, radius_y, rotation)

    @classmethod
    def arc_shape(
        cls,
        center_x: float,
        center_y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ) -> Shape:
        """Open shape with a single circular arc."""
        return cls().arc(center_x, center_y, radius, start_angle, end_angle, anticlockwise)


###############################################################################
# Main
###############################################################################


def main():
    """Main"""


if __name__ == "__main__":
    main()
