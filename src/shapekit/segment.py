"""Segments: immutable curves from a start point to an end point.

This module contains the abstract Segment base with all algorithms that only
need the generic curve interface (arc length, dashing, flattening, closest
points), the straight Line segment and the result records used by ray
intersection, closest-point queries and dashing.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Sequence

from shapekit.common import InvalidGeometryError
from shapekit.consts import (
    ARC_LENGTH_MAX_LEVELS,
    CLOSEST_POINT_FILTER_EPSILON,
    CLOSEST_POINT_THRESHOLD,
    CURVE_EPSILON,
    DASH_MAX_DEPTH,
    DISTANCE_EPSILON,
)
from shapekit.geom import AffineTrafo, Bounds, GeomMath, Ray, Vector2
from shapekit.svgpath import svg_number

if TYPE_CHECKING:
    from shapekit.shape import Shape  # pylint: disable=unused-import


###############################################################################
# Drawing context contract
###############################################################################
class DrawingContext(Protocol):
    """Canvas-like path sink. The caller owns begin/fill/stroke of the path."""

    def move_to(self, x: float, y: float) -> None: ...

    def line_to(self, x: float, y: float) -> None: ...

    def quadratic_curve_to(self, cpx: float, cpy: float, x: float, y: float) -> None: ...

    def bezier_curve_to(self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float) -> None: ...

    def arc(
        self, x: float, y: float, radius: float, start_angle: float, end_angle: float, anticlockwise: bool
    ) -> None: ...

    def ellipse(
        self,
        x: float,
        y: float,
        radius_x: float,
        radius_y: float,
        rotation: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool,
    ) -> None: ...

    def close_path(self) -> None: ...


###############################################################################
# Result records
###############################################################################
@dataclass(frozen=True)
class RayIntersection:
    """
    A hit of a ray with a segment.

    Attributes:
        distance (float): distance from the ray origin
        point (Vector2): location of the hit
        normal (Vector2): unit normal of the segment, pointing against the ray
        wind (int): +1 or -1 depending on the crossing direction
        t (float): parametric value of the hit on the segment
    """

    distance: float
    point: Vector2
    normal: Vector2
    wind: int
    t: float


@dataclass(frozen=True)
class ClosestPoint:
    """Closest point of a segment to a query point."""

    segment: "Segment"
    t: float
    closest_point: Vector2
    distance_squared: float


@dataclass
class DashValues:
    """
    Dash pattern breakpoints along one segment.

    Attributes:
        values (List[float]): parametric t-values where the dash toggles
        arc_length (float): estimated arc length of the segment
        initially_inside (bool): whether the segment starts inside a dash
    """

    values: List[float] = field(default_factory=list)
    arc_length: float = 0.0
    initially_inside: bool = True


@dataclass
class _ClosestCandidate:
    ta: float
    tb: float
    pa: Vector2
    pb: Vector2
    segment: "Segment"
    min_distance_squared: float
    max_distance_squared: float


def check_finite(*values: float) -> None:
    """Raise InvalidGeometryError if any of the given numbers is NaN or infinite."""
    for value in values:
        if not math.isfinite(value):
            raise InvalidGeometryError(f"Non-finite segment parameter: {value}")


def check_finite_points(*points: Vector2) -> None:
    """Raise InvalidGeometryError if any coordinate of the given points is not finite."""
    for point in points:
        if not point.is_finite():
            raise InvalidGeometryError(f"Non-finite segment point: {point}")


###############################################################################
# Segment
###############################################################################
class Segment(ABC):
    """Abstract base of all segment types (Line, Quadratic, Cubic, Arc, EllipticalArc)."""

    # ---------------------------------------------------------------- geometry
    @property
    @abstractmethod
    def start(self) -> Vector2:
        """Vector2: start point of the segment."""

    @property
    @abstractmethod
    def end(self) -> Vector2:
        """Vector2: end point of the segment."""

    @property
    @abstractmethod
    def start_tangent(self) -> Vector2:
        """Vector2: normalized tangent at the start."""

    @property
    @abstractmethod
    def end_tangent(self) -> Vector2:
        """Vector2: normalized tangent at the end."""

    @property
    @abstractmethod
    def bounds(self) -> Bounds:
        """Bounds: bounding box of the segment."""

    @abstractmethod
    def position_at(self, t: float) -> Vector2:
        """Point on the segment at parametric value _t_ in [0, 1]."""

    @abstractmethod
    def tangent_at(self, t: float) -> Vector2:
        """Tangent (derivative, not necessarily normalized) at _t_."""

    @abstractmethod
    def curvature_at(self, t: float) -> float:
        """Signed curvature at _t_."""

    @abstractmethod
    def subdivided(self, t: float) -> List[Segment]:
        """Split the segment at _t_ (returns [self] for t of 0 or 1)."""

    @abstractmethod
    def get_nondegenerate_segments(self) -> List[Segment]:
        """Zero or more well-formed segments tracing the same curve."""

    @abstractmethod
    def get_svg_path_fragment(self) -> str:
        """SVG path data for this segment, continuing from its start point."""

    @abstractmethod
    def stroke_left(self, line_width: float) -> List[Segment]:
        """Offset curve on the left side for a stroke of _line_width_."""

    @abstractmethod
    def stroke_right(self, line_width: float) -> List[Segment]:
        """Offset curve on the right side (reversed) for a stroke of _line_width_."""

    @abstractmethod
    def get_interior_extrema_ts(self) -> List[float]:
        """Sorted t-values in (0, 1) where x or y reach a local extremum."""

    @abstractmethod
    def intersection(self, ray: Ray) -> List[RayIntersection]:
        """All hits of _ray_ with this segment."""

    @abstractmethod
    def get_signed_area_fragment(self) -> float:
        """Contribution of this segment to the signed area of a closed contour."""

    @abstractmethod
    def reversed(self) -> Segment:
        """The same curve traced from end to start."""

    @abstractmethod
    def transformed(self, affine_trafo: AffineTrafo) -> Segment:
        """The segment transformed by [a00, a01, a10, a11, b0, b1]."""

    @abstractmethod
    def serialize(self) -> dict:
        """Structural (JSON compatible) representation of the segment."""

    @abstractmethod
    def write_to_context(self, context: DrawingContext) -> None:
        """Issue the drawing call continuing from the start point."""

    # ---------------------------------------------------------------- generic
    def winding_intersection(self, ray: Ray) -> int:
        """Signed number of crossings of _ray_ with this segment."""
        return sum(hit.wind for hit in self.intersection(ray))

    def are_stroked_bounds_dilated(self) -> bool:
        """Whether stroking this segment only dilates its bounds.

        True if the tangents at both ends point into a cardinal direction.
        """
        epsilon = 0.0000001
        return (
            abs(self.start_tangent.x * self.start_tangent.y) < epsilon
            and abs(self.end_tangent.x * self.end_tangent.y) < epsilon
        )

    def get_bounds_with_transform(self, affine_trafo: AffineTrafo) -> Bounds:
        """Bounds of the segment after applying _affine_trafo_."""
        return self.transformed(affine_trafo).bounds

    def slice(self, t0: float, t1: float) -> Segment:
        """The part of the segment between _t0_ and _t1_ (0 <= t0 < t1 <= 1)."""
        if not 0 <= t0 < t1 <= 1:
            raise InvalidGeometryError(f"Invalid slice range [{t0}, {t1}]")
        segment: Segment = self
        if t1 < 1:
            segment = segment.subdivided(t1)[0]
        if t0 > 0:
            segment = segment.subdivided(GeomMath.linear(0, t1, 0, 1, t0))[1]
        return segment

    def subdivisions(self, t_list: Sequence[float]) -> List[Segment]:
        """Split the segment at all sorted t-values in _t_list_."""
        ts = list(t_list)
        right: Segment = self
        result: List[Segment] = []
        for i, t in enumerate(ts):
            left, right = right.subdivided(t)
            result.append(left)
            # rescale the remaining t values onto the right part
            for j in range(i + 1, len(ts)):
                ts[j] = GeomMath.linear(t, 1, 0, 1, ts[j])
        result.append(right)
        return result

    def subdivided_into_monotone(self) -> List[Segment]:
        """Split the segment into parts that are monotone in x and y."""
        return self.subdivisions(self.get_interior_extrema_ts())

    @staticmethod
    def is_sufficiently_flat_points(
        distance_epsilon: float, curve_epsilon: float, start: Vector2, middle: Vector2, end: Vector2
    ) -> bool:
        """Flatness test for a curve through _start_, _middle_ and _end_."""
        deviation_squared = GeomMath.distance_to_segment_squared(middle, start, end)
        chord_squared = start.distance_squared(end)
        if chord_squared == 0:
            if deviation_squared > 0:
                return False
        elif deviation_squared / chord_squared > curve_epsilon:
            return False
        return deviation_squared <= distance_epsilon

    def is_sufficiently_flat(self, distance_epsilon: float, curve_epsilon: float) -> bool:
        """Whether the segment is close enough to its chord."""
        return Segment.is_sufficiently_flat_points(
            distance_epsilon, curve_epsilon, self.start, self.position_at(0.5), self.end
        )

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        """
        Arc length estimated by recursive subdivision.

        Subdivision stops at _max_levels_ or once a part is sufficiently flat,
        then the chord length is used.

        Args:
            distance_epsilon (float): maximal squared deviation of the midpoint from the chord
            curve_epsilon (float): maximal squared deviation relative to the chord length
            max_levels (int): maximal recursion depth

        Returns:
            float: the arc length
        """
        if max_levels <= 0 or self.is_sufficiently_flat(distance_epsilon, curve_epsilon):
            return self.start.distance(self.end)
        left, right = self.subdivided(0.5)
        return left.get_arc_length(distance_epsilon, curve_epsilon, max_levels - 1) + right.get_arc_length(
            distance_epsilon, curve_epsilon, max_levels - 1
        )

    def get_dash_values(
        self,
        line_dash: Sequence[float],
        line_dash_offset: float,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
    ) -> DashValues:
        """
        Parametric positions where the dash pattern toggles along this segment.

        Args:
            line_dash (Sequence[float]): alternating dash/gap lengths
            line_dash_offset (float): distance into the pattern at the segment start
            distance_epsilon (float): flatness tolerance (absolute)
            curve_epsilon (float): flatness tolerance (relative)

        Returns:
            DashValues: toggle positions, arc length and initial state
        """
        dash_sum = sum(line_dash)
        if not line_dash or dash_sum <= 0:
            raise InvalidGeometryError(f"Invalid line dash pattern: {list(line_dash)}")

        result = DashValues()
        # do the offset modulo the sum, so we don't have to cycle for a long time
        offset = line_dash_offset % dash_sum

        state = {"index": 0, "offset": 0.0, "inside": True}

        def next_dash_index() -> None:
            state["index"] = (state["index"] + 1) % len(line_dash)
            state["inside"] = not state["inside"]

        # burn off the initial offset
        while offset > 0:
            if offset >= line_dash[state["index"]]:
                offset -= line_dash[state["index"]]
                next_dash_index()
            else:
                state["offset"] = offset
                offset = 0
        result.initially_inside = bool(state["inside"])

        def recur(t0: float, t1: float, p0: Vector2, p1: Vector2, depth: int) -> None:
            t_mid = (t0 + t1) / 2
            p_mid = self.position_at(t_mid)
            if depth > DASH_MAX_DEPTH or Segment.is_sufficiently_flat_points(
                distance_epsilon, curve_epsilon, p0, p_mid, p1
            ):
                total_length = p0.distance(p_mid) + p_mid.distance(p1)
                result.arc_length += total_length
                length_left = total_length
                while state["offset"] + length_left >= line_dash[state["index"]]:
                    t = GeomMath.linear(
                        0,
                        total_length,
                        t0,
                        t1,
                        total_length - length_left + line_dash[state["index"]] - state["offset"],
                    )
                    result.values.append(t)
                    length_left -= line_dash[state["index"]] - state["offset"]
                    state["offset"] = 0.0
                    next_dash_index()
                state["offset"] = state["offset"] + length_left
            else:
                recur(t0, t_mid, p0, p_mid, depth + 1)
                recur(t_mid, t1, p_mid, p1, depth + 1)

        recur(0.0, 1.0, self.start, self.end, 0)
        return result

    def to_piecewise_linear_segments(
        self,
        min_levels: int,
        max_levels: int,
        distance_epsilon: Optional[float] = None,
        curve_epsilon: Optional[float] = None,
        point_map: Optional[Callable[[Vector2], Vector2]] = None,
    ) -> List[Line]:
        """
        Approximate the segment by lines.

        Args:
            min_levels (int): number of subdivision levels that are always done
            max_levels (int): maximal number of subdivision levels
            distance_epsilon (Optional[float]): absolute flatness tolerance (None: ignore)
            curve_epsilon (Optional[float]): relative flatness tolerance (None: ignore)
            point_map (Optional[Callable]): maps points before building lines (e.g. a transform)

        Returns:
            List[Line]: the approximating lines
        """
        mapper = point_map if point_map is not None else (lambda point: point)
        segments: List[Line] = []
        self._piecewise_linear_recursion(
            min_levels,
            max_levels,
            math.inf if distance_epsilon is None else distance_epsilon,
            math.inf if curve_epsilon is None else curve_epsilon,
            mapper,
            segments,
            mapper(self.start),
            mapper(self.end),
        )
        return segments

    def _piecewise_linear_recursion(
        self,
        min_levels: int,
        max_levels: int,
        distance_epsilon: float,
        curve_epsilon: float,
        mapper: Callable[[Vector2], Vector2],
        segments: List[Line],
        start: Vector2,
        end: Vector2,
    ) -> None:
        middle = mapper(self.position_at(0.5))
        finished = max_levels <= 0
        if not finished and min_levels <= 0:
            finished = Segment.is_sufficiently_flat_points(distance_epsilon, curve_epsilon, start, middle, end)
        if finished:
            if start != end:
                segments.append(Line(start, end))
            return
        left, right = self.subdivided(0.5)
        left._piecewise_linear_recursion(  # pylint: disable=protected-access
            min_levels - 1, max_levels - 1, distance_epsilon, curve_epsilon, mapper, segments, start, middle
        )
        right._piecewise_linear_recursion(  # pylint: disable=protected-access
            min_levels - 1, max_levels - 1, distance_epsilon, curve_epsilon, mapper, segments, middle, end
        )

    def to_shape(self) -> Shape:
        """A Shape consisting of an open subpath with just this segment."""
        # pylint: disable=import-outside-toplevel
        from shapekit.shape import Shape
        from shapekit.subpath import Subpath

        return Shape([Subpath([self])])

    def get_closest_points(self, point: Vector2) -> List[ClosestPoint]:
        """Closest points of this segment to _point_."""
        return Segment.closest_to_point([self], point, CLOSEST_POINT_THRESHOLD)

    @staticmethod
    def closest_to_point(segments: Sequence[Segment], point: Vector2, threshold: float) -> List[ClosestPoint]:
        """
        Closest points of several segments to _point_.

        Lines are handled exactly, curves by splitting into monotone parts and
        refining the candidate intervals until they are shorter than _threshold_.

        Returns:
            List[ClosestPoint]: all (nearly) equally close results
        """
        threshold_squared = threshold * threshold
        items: List[_ClosestCandidate] = []
        best_list: List[ClosestPoint] = []
        best_distance_squared = math.inf
        threshold_ok = False

        for segment in segments:
            if isinstance(segment, Line):
                for info in segment.explicit_closest_to_point(point):
                    if info.distance_squared < best_distance_squared:
                        best_list = [info]
                        best_distance_squared = info.distance_squared
                    elif info.distance_squared == best_distance_squared:
                        best_list.append(info)
                continue

            ts = [0.0] + segment.get_interior_extrema_ts() + [1.0]
            for ta, tb in zip(ts[:-1], ts[1:]):
                pa = segment.position_at(ta)
                pb = segment.position_at(tb)
                bounds = Bounds.from_point(pa).with_point(pb)
                min_distance_squared = bounds.minimum_distance_to_point_squared(point)
                if min_distance_squared <= best_distance_squared:
                    max_distance_squared = bounds.maximum_distance_to_point_squared(point)
                    if max_distance_squared < best_distance_squared:
                        best_distance_squared = max_distance_squared
                        best_list = []
                    items.append(
                        _ClosestCandidate(ta, tb, pa, pb, segment, min_distance_squared, max_distance_squared)
                    )

        while items and not threshold_ok:
            current_items = items
            items = []
            threshold_ok = True
            for item in current_items:
                if item.min_distance_squared > best_distance_squared:
                    continue
                if threshold_ok and item.pa.distance_squared(item.pb) > threshold_squared:
                    threshold_ok = False
                t_mid = (item.ta + item.tb) / 2
                p_mid = item.segment.position_at(t_mid)
                for ta, tb, pa, pb in ((item.ta, t_mid, item.pa, p_mid), (t_mid, item.tb, p_mid, item.pb)):
                    bounds = Bounds.from_point(pa).with_point(pb)
                    min_distance_squared = bounds.minimum_distance_to_point_squared(point)
                    if min_distance_squared <= best_distance_squared:
                        max_distance_squared = bounds.maximum_distance_to_point_squared(point)
                        if max_distance_squared < best_distance_squared:
                            best_distance_squared = max_distance_squared
                            best_list = []
                        items.append(
                            _ClosestCandidate(ta, tb, pa, pb, item.segment, min_distance_squared, max_distance_squared)
                        )

        # the remaining candidates are all within the threshold
        for item in items:
            t = (item.ta + item.tb) / 2
            closest_point = item.segment.position_at(t)
            best_list.append(ClosestPoint(item.segment, t, closest_point, point.distance_squared(closest_point)))
        return best_list

    @staticmethod
    def filter_closest_to_point_result(results: Sequence[ClosestPoint]) -> List[ClosestPoint]:
        """Keep the results with the smallest distance, unique by location."""
        if not results:
            return []
        closest = min(result.distance_squared for result in results)
        filtered: List[ClosestPoint] = []
        for result in results:
            if abs(result.distance_squared - closest) >= CLOSEST_POINT_FILTER_EPSILON:
                continue
            if any(
                result.closest_point.distance_squared(other.closest_point) < CLOSEST_POINT_FILTER_EPSILON
                for other in filtered
            ):
                continue
            filtered.append(result)
        return filtered


###############################################################################
# Line
###############################################################################
class Line(Segment):
    """Straight segment from _start_ to _end_."""

    def __init__(self, start: Vector2, end: Vector2):
        check_finite_points(start, end)
        self._start = start
        self._end = end

    def __repr__(self) -> str:
        return f"Line({self._start}, {self._end})"

    @property
    def start(self) -> Vector2:
        return self._start

    @property
    def end(self) -> Vector2:
        return self._end

    @cached_property
    def start_tangent(self) -> Vector2:
        return (self._end - self._start).normalized()

    @property
    def end_tangent(self) -> Vector2:
        return self.start_tangent

    @cached_property
    def bounds(self) -> Bounds:
        return Bounds.from_point(self._start).with_point(self._end)

    def position_at(self, t: float) -> Vector2:
        return self._start + (self._end - self._start) * t

    def tangent_at(self, t: float) -> Vector2:
        return self._end - self._start

    def curvature_at(self, t: float) -> float:
        return 0.0

    def subdivided(self, t: float) -> List[Segment]:
        if t in (0, 1):
            return [self]
        point = self.position_at(t)
        return [Line(self._start, point), Line(point, self._end)]

    def get_nondegenerate_segments(self) -> List[Segment]:
        if self._start == self._end:
            return []
        return [self]

    def get_svg_path_fragment(self) -> str:
        return f"L {svg_number(self._end.x)} {svg_number(self._end.y)}"

    def stroke_left(self, line_width: float) -> List[Segment]:
        offset = -self.end_tangent.perpendicular * (line_width / 2)
        return [Line(self._start + offset, self._end + offset)]

    def stroke_right(self, line_width: float) -> List[Segment]:
        offset = self.start_tangent.perpendicular * (line_width / 2)
        return [Line(self._end + offset, self._start + offset)]

    def get_interior_extrema_ts(self) -> List[float]:
        return []

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        start = self._start
        diff = self._end - start
        position = ray.position
        direction = ray.direction

        denom = direction.y * diff.x - direction.x * diff.y
        # parallel lines never cross
        if denom == 0:
            return []

        t = (direction.x * (start.y - position.y) - direction.y * (start.x - position.x)) / denom
        # outside of the segment (end point excluded, it is the next segment's start)
        if t < 0 or t >= 1:
            return []

        s = (diff.x * (start.y - position.y) - diff.y * (start.x - position.x)) / denom
        # behind (or at) the ray origin
        if s < 0.00000001:
            return []

        perp = direction.perpendicular
        normal = diff.perpendicular.normalized()
        if normal.dot(direction) > 0:
            normal = -normal
        wind = 1 if perp.dot(diff) < 0 else -1
        return [RayIntersection(s, self.position_at(t), normal, wind, t)]

    def get_signed_area_fragment(self) -> float:
        return 0.5 * (self._start.x * self._end.y - self._start.y * self._end.x)

    def reversed(self) -> Segment:
        return Line(self._end, self._start)

    def transformed(self, affine_trafo: AffineTrafo) -> Segment:
        return Line(
            GeomMath.transform_vector(affine_trafo, self._start),
            GeomMath.transform_vector(affine_trafo, self._end),
        )

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        return self._start.distance(self._end)

    def explicit_closest_to_point(self, point: Vector2) -> List[ClosestPoint]:
        """Exact closest point of the line to _point_."""
        diff = self._end - self._start
        length_squared = diff.magnitude_squared
        t = 0.0 if length_squared == 0 else (point - self._start).dot(diff) / length_squared
        t = min(1.0, max(0.0, t))
        closest_point = self.position_at(t)
        return [ClosestPoint(self, t, closest_point, point.distance_squared(closest_point))]

    def serialize(self) -> dict:
        return {
            "type": "Line",
            "startX": self._start.x,
            "startY": self._start.y,
            "endX": self._end.x,
            "endY": self._end.y,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Line:
        """Create a Line from its serialized form."""
        return cls(Vector2(data["startX"], data["startY"]), Vector2(data["endX"], data["endY"]))

    def write_to_context(self, context: DrawingContext) -> None:
        context.line_to(self._end.x, self._end.y)
