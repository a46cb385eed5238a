"""Stroke styles and the join/cap geometry needed to outline a path"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import List, Tuple

from shapekit.arc import Arc
from shapekit.common import InvalidGeometryError, LineCap, LineJoin
from shapekit.geom import GeomMath, Vector2
from shapekit.segment import Line, Segment


###############################################################################
# LineStyles
###############################################################################
@dataclass(frozen=True)
class LineStyles:
    """
    Style of a stroked path.

    Instances are immutable and hashable, so they can key the stroke caches of
    subpaths. The dash pattern is stored as tuple.

    Attributes:
        line_width (float): width of the stroke
        line_cap (LineCap): cap at both ends of open subpaths
        line_join (LineJoin): join between consecutive segments
        line_dash (Tuple[float, ...]): alternating dash and gap lengths (empty: solid)
        line_dash_offset (float): distance into the dash pattern at the start
        miter_limit (float): maximal miter length relative to half the line width
    """

    line_width: float = 1.0
    line_cap: LineCap = LineCap.BUTT
    line_join: LineJoin = LineJoin.MITER
    line_dash: Tuple[float, ...] = field(default_factory=tuple)
    line_dash_offset: float = 0.0
    miter_limit: float = 10.0

    def __post_init__(self):
        # accept any sequence for the dash pattern
        object.__setattr__(self, "line_dash", tuple(float(dash) for dash in self.line_dash))
        object.__setattr__(self, "line_cap", LineCap(self.line_cap))
        object.__setattr__(self, "line_join", LineJoin(self.line_join))

        if not math.isfinite(self.line_width) or self.line_width < 0:
            raise InvalidGeometryError(f"line_width should be a non-negative finite number: {self.line_width}")
        if not all(math.isfinite(dash) and dash >= 0 for dash in self.line_dash):
            raise InvalidGeometryError(f"Every line_dash should be a non-negative finite number: {self.line_dash}")
        if not math.isfinite(self.line_dash_offset):
            raise InvalidGeometryError(f"line_dash_offset should be a finite number: {self.line_dash_offset}")
        if not math.isfinite(self.miter_limit):
            raise InvalidGeometryError(f"miter_limit should be a finite number: {self.miter_limit}")

    def copy(self, **changes) -> LineStyles:
        """A copy with the given attributes replaced."""
        return replace(self, **changes)

    def has_dash(self) -> bool:
        """Whether the stroke uses a dash pattern."""
        return len(self.line_dash) > 0

    def left_join(self, center: Vector2, from_tangent: Vector2, to_tangent: Vector2) -> List[Segment]:
        """
        Segments joining the left offsets of two consecutive segments at _center_.

        Args:
            center (Vector2): common point of both segments
            from_tangent (Vector2): end tangent of the incoming segment
            to_tangent (Vector2): start tangent of the outgoing segment

        Returns:
            List[Segment]: the join (possibly empty)
        """
        from_tangent = from_tangent.normalized()
        to_tangent = to_tangent.normalized()

        # where the join starts and ends
        from_point = center + (-from_tangent.perpendicular) * (self.line_width / 2)
        to_point = center + (-to_tangent.perpendicular) * (self.line_width / 2)

        bevel: List[Segment] = [] if from_point == to_point else [Line(from_point, to_point)]

        # only the non-acute side needs a join, tiny turns are bridged by the bevel
        if from_tangent.perpendicular.dot(to_tangent) <= 1e-12:
            return bevel

        if self.line_join == LineJoin.ROUND:
            from_angle = from_tangent.angle + math.pi / 2
            to_angle = to_tangent.angle + math.pi / 2
            return [Arc(center, self.line_width / 2, from_angle, to_angle, True)]

        if self.line_join == LineJoin.MITER:
            theta = from_tangent.angle_between(-to_tangent)
            if 1 / math.sin(theta / 2) <= self.miter_limit and theta < math.pi - 0.00001:
                miter_point = GeomMath.line_line_intersection(
                    from_point, from_point + from_tangent, to_point, to_point + to_tangent
                )
                if miter_point is None:
                    return [Line(from_point, to_point)]
                return [Line(from_point, miter_point), Line(miter_point, to_point)]
            # too steep for the miter limit
            return bevel

        return bevel

    def right_join(self, center: Vector2, from_tangent: Vector2, to_tangent: Vector2) -> List[Segment]:
        """Segments joining the right offsets (walked backwards) at _center_."""
        return self.left_join(center, -to_tangent, -from_tangent)

    def cap(self, center: Vector2, tangent: Vector2) -> List[Segment]:
        """
        End cap at _center_ for a path leaving along _tangent_.

        The cap runs from the right offset to the left offset of the path.
        """
        tangent = tangent.normalized()
        half_width = self.line_width / 2
        from_point = center + tangent.perpendicular * -half_width
        to_point = center + tangent.perpendicular * half_width

        if self.line_cap == LineCap.ROUND:
            tangent_angle = tangent.angle
            return [Arc(center, half_width, tangent_angle + math.pi / 2, tangent_angle - math.pi / 2, True)]

        if self.line_cap == LineCap.SQUARE:
            to_front = tangent * half_width
            left = center + (-tangent.perpendicular) * half_width + to_front
            right = center + tangent.perpendicular * half_width + to_front
            return [Line(from_point, left), Line(left, right), Line(right, to_point)]

        return [Line(from_point, to_point)]
