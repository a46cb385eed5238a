"""Subpath: a connected chain of segments, optionally closed"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from shapekit.arc import Arc, EllipticalArc
from shapekit.bezier import Cubic, Quadratic
from shapekit.common import DeserializationError, Emitter
from shapekit.consts import (
    ARC_LENGTH_MAX_LEVELS,
    CLOSING_EPSILON,
    CURVE_EPSILON,
    DASH_JOIN_EPSILON,
    DISTANCE_EPSILON,
)
from shapekit.geom import AffineTrafo, Bounds, GeomMath, Vector2
from shapekit.line_styles import LineStyles
from shapekit.segment import ClosestPoint, DrawingContext, Line, Segment

# Closed set of segment types that can be read back from serialized data
SEGMENT_TYPES: Dict[str, Type[Segment]] = {
    "Line": Line,
    "Quadratic": Quadratic,
    "Cubic": Cubic,
    "Arc": Arc,
    "EllipticalArc": EllipticalArc,
}


def deserialize_segment(data: dict) -> Segment:
    """
    Create a segment from its serialized form.

    Raises:
        DeserializationError: if the type is unknown or a field is missing
    """
    segment_type = data.get("type") if isinstance(data, dict) else None
    segment_class = SEGMENT_TYPES.get(segment_type)  # type: ignore[arg-type]
    if segment_class is None:
        raise DeserializationError(f"Unknown segment type: {segment_type!r}")
    try:
        return segment_class.deserialize(data)  # type: ignore[attr-defined]
    except KeyError as exc:
        raise DeserializationError(f"Missing field {exc} in serialized {segment_type}") from exc


@dataclass
class _DashItem:
    segment_arrays: List[List[Segment]] = field(default_factory=list)
    has_left_filled: bool = False
    has_right_filled: bool = False


###############################################################################
# Subpath
###############################################################################
class Subpath:
    """
    An ordered chain of segments plus the raw points used to build them.

    Segments are added through their nondegenerate decomposition, so a subpath
    never holds zero-length or otherwise degenerate pieces. A closed subpath
    implies a closing line from the last to the first point, which is part of
    every fill-related computation (see get_fill_segments()).
    """

    def __init__(
        self,
        segments: Optional[Sequence[Segment]] = None,
        points: Optional[Sequence[Vector2]] = None,
        closed: bool = False,
    ):
        """
        Initialize the subpath.

        Args:
            segments (Optional[Sequence[Segment]]): initial segments (decomposed into nondegenerate ones)
            points (Optional[Sequence[Vector2]]): raw points, derived from the segments if None
            closed (bool): whether the subpath is closed
        """
        self.invalidated_emitter = Emitter()
        self._segments: List[Segment] = []
        self._bounds: Optional[Bounds] = None
        self._stroked_cache: Optional[Tuple[LineStyles, List[Subpath]]] = None

        if points is not None:
            self._points: List[Vector2] = list(points)
        elif segments:
            self._points = [segment.start for segment in segments] + [segments[-1].end]
        else:
            self._points = []
        self.closed = bool(closed)

        for segment in segments or []:
            for nondegenerate in segment.get_nondegenerate_segments():
                self._segments.append(nondegenerate)

    def __repr__(self) -> str:
        return f"Subpath({len(self._segments)} segments, closed={self.closed})"

    @property
    def segments(self) -> List[Segment]:
        """List[Segment]: the segments (do not modify, use add_segment())."""
        return self._segments

    @property
    def points(self) -> List[Vector2]:
        """List[Vector2]: the raw points (do not modify, use add_point())."""
        return self._points

    @property
    def bounds(self) -> Bounds:
        """Bounds: union of the segment bounds (cached)."""
        if self._bounds is None:
            bounds = Bounds.nothing()
            for segment in self._segments:
                bounds = bounds.union(segment.bounds)
            self._bounds = bounds
        return self._bounds

    def invalidate(self) -> None:
        """Drop cached geometry and notify listeners."""
        self._bounds = None
        self._stroked_cache = None
        self.invalidated_emitter.emit()

    def invalidate_points(self) -> None:
        """Re-synchronize after the raw points were replaced (single notification)."""
        self.invalidate()

    # ------------------------------------------------------------- building
    def add_point(self, point: Vector2) -> Subpath:
        """Append a raw point."""
        self._points.append(point)
        return self

    def add_segment_directly(self, segment: Segment) -> Subpath:
        """Append _segment_ as it is (no decomposition, no invalidation)."""
        self._segments.append(segment)
        return self

    def add_segment(self, segment: Segment) -> Subpath:
        """Append the nondegenerate pieces of _segment_."""
        for nondegenerate in segment.get_nondegenerate_segments():
            self.add_segment_directly(nondegenerate)
        self.invalidate()
        return self

    def add_closing_segment(self) -> None:
        """Materialize the closing line (if the ends do not meet already)."""
        if self._points and self.has_closing_segment():
            self.add_segment_directly(self.get_closing_segment())
            self.invalidate()
            self.add_point(self.get_first_point())
            self.closed = True

    def close(self) -> None:
        """Mark the subpath as closed and add the closing line if needed."""
        self.closed = True
        self.add_closing_segment()

    # -------------------------------------------------------------- queries
    def get_length(self) -> int:
        """Number of raw points."""
        return len(self._points)

    def get_first_point(self) -> Vector2:
        """The first raw point."""
        return self._points[0]

    def get_last_point(self) -> Vector2:
        """The last raw point."""
        return self._points[-1]

    def get_first_segment(self) -> Segment:
        """The first segment."""
        return self._segments[0]

    def get_last_segment(self) -> Segment:
        """The last segment."""
        return self._segments[-1]

    def has_closing_segment(self) -> bool:
        """Whether the first and last point differ, so closing needs an extra line."""
        return not self.get_first_point().equals_epsilon(self.get_last_point(), CLOSING_EPSILON)

    def get_closing_segment(self) -> Line:
        """The line from the last point back to the first point."""
        return Line(self.get_last_point(), self.get_first_point())

    def get_fill_segments(self) -> List[Segment]:
        """The segments plus the implicit closing line, as used for filling."""
        segments = list(self._segments)
        if self._points and self.has_closing_segment():
            segments.append(self.get_closing_segment())
        return segments

    def is_drawable(self) -> bool:
        """Whether there is anything to draw (at least one segment)."""
        return len(self._segments) > 0

    def is_closed(self) -> bool:
        """Whether the subpath is closed."""
        return self.closed

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        """Sum of the segment arc lengths."""
        return sum(segment.get_arc_length(distance_epsilon, curve_epsilon, max_levels) for segment in self._segments)

    def get_closest_points(self, point: Vector2) -> List[ClosestPoint]:
        """Closest points of all segments to _point_."""
        return Segment.filter_closest_to_point_result(
            [info for segment in self._segments for info in segment.get_closest_points(point)]
        )

    def get_bounds_with_transform(self, affine_trafo: AffineTrafo) -> Bounds:
        """Bounds of the subpath after applying _affine_trafo_."""
        bounds = Bounds.nothing()
        for segment in self._segments:
            bounds = bounds.union(segment.get_bounds_with_transform(affine_trafo))
        return bounds

    # ------------------------------------------------------------ derived
    def copy(self) -> Subpath:
        """A shallow copy (segments are immutable and shared)."""
        return Subpath(list(self._segments), list(self._points), self.closed)

    def transformed(self, affine_trafo: AffineTrafo) -> Subpath:
        """The subpath mapped by [a00, a01, a10, a11, b0, b1]."""
        return Subpath(
            [segment.transformed(affine_trafo) for segment in self._segments],
            [GeomMath.transform_vector(affine_trafo, point) for point in self._points],
            self.closed,
        )

    def to_piecewise_linear(
        self,
        min_levels: int,
        max_levels: int,
        distance_epsilon: Optional[float] = None,
        curve_epsilon: Optional[float] = None,
        point_map: Optional[Callable[[Vector2], Vector2]] = None,
    ) -> Subpath:
        """The subpath with every segment approximated by lines."""
        lines: List[Segment] = []
        for segment in self._segments:
            lines.extend(
                segment.to_piecewise_linear_segments(min_levels, max_levels, distance_epsilon, curve_epsilon, point_map)
            )
        return Subpath(lines, None, self.closed)

    def offset(self, distance: float) -> Subpath:
        """
        Subpath offset to the left by _distance_, joined by circular arcs.

        Args:
            distance (float): offset distance (negative values offset to the right)

        Returns:
            Subpath: the offset curve
        """
        if not self.is_drawable():
            return Subpath([], None, self.closed)
        if distance == 0:
            return Subpath(list(self._segments), None, self.closed)

        regular_segments = self._segments
        offsets = [segment.stroke_left(2 * distance) for segment in regular_segments]

        segments: List[Segment] = []
        for i, segment in enumerate(regular_segments):
            if self.closed or i > 0:
                previous = regular_segments[i - 1]
                from_tangent = previous.end_tangent
                to_tangent = segment.start_tangent
                start_angle = (-from_tangent.perpendicular * distance).angle
                end_angle = (-to_tangent.perpendicular * distance).angle
                anticlockwise = from_tangent.perpendicular.dot(to_tangent) > 0
                segments.append(Arc(segment.start, abs(distance), start_angle, end_angle, anticlockwise))
            segments.extend(offsets[i])
        return Subpath(segments, None, self.closed)

    def stroked(self, line_styles: Optional[LineStyles] = None) -> List[Subpath]:
        """
        Outline of this subpath stroked with _line_styles_ (cached per style).

        A closed subpath gives an outer and an inner closed contour, an open
        subpath gives a single closed contour including both caps.
        """
        if not self.is_drawable():
            return []
        if line_styles is None:
            line_styles = LineStyles()
        if self._stroked_cache is not None and self._stroked_cache[0] == line_styles:
            return self._stroked_cache[1]

        line_width = line_styles.line_width
        segments = self._segments
        first_segment = segments[0]
        last_segment = segments[-1]
        left_segments: List[Segment] = []
        right_segments: List[Segment] = []

        # no implicit closing segment needed if the ends meet
        already_closed = last_segment.end == first_segment.start

        # logical "left" side
        for i, segment in enumerate(segments):
            if i > 0:
                left_segments.extend(
                    line_styles.left_join(segment.start, segments[i - 1].end_tangent, segment.start_tangent)
                )
            left_segments.extend(segment.stroke_left(line_width))

        # logical "right" side, walked backwards
        for i in range(len(segments) - 1, -1, -1):
            if i < len(segments) - 1:
                right_segments.extend(
                    line_styles.right_join(segments[i].end, segments[i].end_tangent, segments[i + 1].start_tangent)
                )
            right_segments.extend(segments[i].stroke_right(line_width))

        if self.closed:
            if already_closed:
                left_segments.extend(
                    line_styles.left_join(last_segment.end, last_segment.end_tangent, first_segment.start_tangent)
                )
                right_segments.extend(
                    line_styles.right_join(last_segment.end, last_segment.end_tangent, first_segment.start_tangent)
                )
            else:
                closing = Line(last_segment.end, first_segment.start)
                left_segments.extend(
                    line_styles.left_join(closing.start, last_segment.end_tangent, closing.start_tangent)
                )
                left_segments.extend(closing.stroke_left(line_width))
                left_segments.extend(
                    line_styles.left_join(closing.end, closing.end_tangent, first_segment.start_tangent)
                )
                right_segments.extend(
                    line_styles.right_join(closing.end, closing.end_tangent, first_segment.start_tangent)
                )
                right_segments.extend(closing.stroke_right(line_width))
                right_segments.extend(
                    line_styles.right_join(closing.start, last_segment.end_tangent, closing.start_tangent)
                )
            subpaths = [Subpath(left_segments, None, True), Subpath(right_segments, None, True)]
        else:
            subpaths = [
                Subpath(
                    left_segments
                    + line_styles.cap(last_segment.end, last_segment.end_tangent)
                    + right_segments
                    + line_styles.cap(first_segment.start, -first_segment.start_tangent),
                    None,
                    True,
                )
            ]

        self._stroked_cache = (line_styles, subpaths)
        return subpaths

    def dashed(
        self,
        line_dash: Sequence[float],
        line_dash_offset: float,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
    ) -> List[Subpath]:
        """
        The filled parts of the dash pattern along this subpath.

        Args:
            line_dash (Sequence[float]): alternating dash and gap lengths
            line_dash_offset (float): distance into the pattern at the start
            distance_epsilon (float): flatness tolerance (absolute)
            curve_epsilon (float): flatness tolerance (relative)

        Returns:
            List[Subpath]: one open subpath per dash (a fully filled closed subpath stays closed)
        """

        def combine_segment_arrays(left: List[List[Segment]], right: List[List[Segment]]) -> List[List[Segment]]:
            # join the touching arrays in the middle
            return left[:-1] + [left[-1] + right[0]] + right[1:]

        def can_be_combined(left_item: _DashItem, right_item: _DashItem) -> bool:
            if not left_item.has_right_filled or not right_item.has_left_filled:
                return False
            if not left_item.segment_arrays or not right_item.segment_arrays:
                return False
            left_segment = left_item.segment_arrays[-1][-1]
            right_segment = right_item.segment_arrays[0][0]
            return left_segment.end.distance(right_segment.start) < DASH_JOIN_EPSILON

        dash_items: List[_DashItem] = []
        for segment in self._segments:
            dash_values = segment.get_dash_values(line_dash, line_dash_offset, distance_epsilon, curve_epsilon)
            line_dash_offset += dash_values.arc_length

            values = [0.0] + [min(1.0, max(0.0, value)) for value in dash_values.values] + [1.0]
            initially_inside = dash_values.initially_inside
            item = _DashItem(
                has_left_filled=initially_inside,
                has_right_filled=initially_inside if len(values) % 2 == 0 else not initially_inside,
            )
            for j in range(0 if initially_inside else 1, len(values) - 1, 2):
                if values[j] < values[j + 1]:
                    item.segment_arrays.append([segment.slice(values[j], values[j + 1])])
            dash_items.append(item)

        # combine neighbors which are both filled where they meet
        for i in range(len(dash_items) - 1, 0, -1):
            left_item = dash_items[i - 1]
            right_item = dash_items[i]
            if can_be_combined(left_item, right_item):
                dash_items[i - 1 : i + 1] = [
                    _DashItem(
                        combine_segment_arrays(left_item.segment_arrays, right_item.segment_arrays),
                        left_item.has_left_filled,
                        right_item.has_right_filled,
                    )
                ]

        # combine the end with the start
        if len(dash_items) > 1 and can_be_combined(dash_items[-1], dash_items[0]):
            left_item = dash_items.pop()
            right_item = dash_items.pop(0)
            dash_items.append(
                _DashItem(
                    combine_segment_arrays(left_item.segment_arrays, right_item.segment_arrays),
                    left_item.has_left_filled,
                    right_item.has_right_filled,
                )
            )

        # a closed subpath that is filled everywhere stays one closed subpath
        if (
            self.closed
            and len(dash_items) == 1
            and len(dash_items[0].segment_arrays) == 1
            and dash_items[0].has_left_filled
            and dash_items[0].has_right_filled
        ):
            return [Subpath(dash_items[0].segment_arrays[0], None, True)]

        return [Subpath(segments) for item in dash_items for segments in item.segment_arrays]

    # ------------------------------------------------------------- output
    def write_to_context(self, context: DrawingContext) -> None:
        """Issue move_to, the segment calls and close_path on _context_."""
        if not self.is_drawable():
            return
        start_point = self.get_first_segment().start
        context.move_to(start_point.x, start_point.y)
        count = len(self._segments)
        # close_path draws the final line of a closed subpath
        if self.closed and count >= 2 and isinstance(self._segments[-1], Line):
            count -= 1
        for segment in self._segments[:count]:
            segment.write_to_context(context)
        if self.closed:
            context.close_path()

    def serialize(self) -> dict:
        """Structural (JSON compatible) representation."""
        return {
            "type": "Subpath",
            "segments": [segment.serialize() for segment in self._segments],
            "points": [point.to_dict() for point in self._points],
            "closed": self.closed,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Subpath:
        """
        Create a Subpath from its serialized form.

        Raises:
            DeserializationError: on unknown segment types or missing fields
        """
        if not isinstance(data, dict) or data.get("type") != "Subpath":
            raise DeserializationError(f"Expected a serialized Subpath, got {data!r}")
        try:
            segments = [deserialize_segment(segment) for segment in data["segments"]]
            points = [Vector2(point["x"], point["y"]) for point in data["points"]]
            return cls(segments, points, bool(data["closed"]))
        except KeyError as exc:
            raise DeserializationError(f"Missing field {exc} in serialized Subpath") from exc
