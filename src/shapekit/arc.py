"""Circular and elliptical arc segments"""

from __future__ import annotations

import math
from functools import cached_property
from typing import List, Optional

import numpy as np

from shapekit.consts import ARC_LENGTH_MAX_LEVELS, CURVE_EPSILON, DISTANCE_EPSILON, OFFSET_SAMPLES
from shapekit.geom import ZERO, AffineTrafo, Bounds, GeomMath, Ray, Vector2
from shapekit.segment import DrawingContext, Line, RayIntersection, Segment, check_finite, check_finite_points
from shapekit.svgpath import svg_number

TWO_PI = 2 * math.pi

# leeway to render things as "almost circles" in SVG output
SVG_FULL_CIRCLE_EPSILON = 0.01


def _interior_ts(ts: List[float]) -> List[float]:
    epsilon = 0.0000000001
    return sorted(t for t in ts if epsilon < t < 1 - epsilon)


def _preserved_end_angle(start_angle: float, end_angle: float, old_start: float, old_end: float, anticlockwise: bool):
    """End angle keeping a full turn if the original angles spanned exactly 2pi."""
    if abs(old_end - old_start) == TWO_PI:
        return start_angle - TWO_PI if anticlockwise else start_angle + TWO_PI
    return end_angle


###############################################################################
# Arc
###############################################################################
class Arc(Segment):
    """
    Circular arc around _center_ from _start_angle_ to _end_angle_ (radians).

    Angles are measured in a y-down frame, so anticlockwise means decreasing
    angles. A negative radius is mapped onto the opposite side of the circle.
    """

    def __init__(
        self, center: Vector2, radius: float, start_angle: float, end_angle: float, anticlockwise: bool = False
    ):
        check_finite_points(center)
        check_finite(radius, start_angle, end_angle)
        if radius < 0:
            radius = -radius
            start_angle += math.pi
            end_angle += math.pi
        self._center = center
        self._radius = float(radius)
        self._start_angle = float(start_angle)
        self._end_angle = float(end_angle)
        self._anticlockwise = bool(anticlockwise)

    def __repr__(self) -> str:
        return (
            f"Arc({self._center}, {self._radius}, {self._start_angle}, "
            f"{self._end_angle}, anticlockwise={self._anticlockwise})"
        )

    @classmethod
    def create_from_points(cls, start: Vector2, middle: Vector2, end: Vector2) -> Segment:
        """Arc through three points (a Line if they are collinear)."""
        center = GeomMath.circle_center_from_points(start, middle, end)
        if center is None:
            return Line(start, end)

        start_diff = start - center
        middle_diff = middle - center
        end_diff = end - center
        start_angle = start_diff.angle
        middle_angle = middle_diff.angle
        end_angle = end_diff.angle

        radius = (start_diff.magnitude + middle_diff.magnitude + end_diff.magnitude) / 3

        # try increasing angles first
        arc = cls(center, radius, start_angle, end_angle, False)
        if arc.contains_angle(middle_angle):
            return arc
        return cls(center, radius, start_angle, end_angle, True)

    @staticmethod
    def compute_actual_end_angle(start_angle: float, end_angle: float, anticlockwise: bool) -> float:
        """End angle with the sign of (end - start) matching the direction of the arc."""
        if anticlockwise:
            # angle is decreasing: -2pi <= end - start < 2pi
            if start_angle > end_angle:
                return end_angle
            if start_angle < end_angle:
                return end_angle - TWO_PI
            return start_angle
        # angle is increasing: -2pi < end - start <= 2pi
        if start_angle < end_angle:
            return end_angle
        if start_angle > end_angle:
            return end_angle + TWO_PI
        return start_angle

    # ---------------------------------------------------------------- params
    @property
    def center(self) -> Vector2:
        """Vector2: center of the circle."""
        return self._center

    @property
    def radius(self) -> float:
        """float: radius of the circle."""
        return self._radius

    @property
    def start_angle(self) -> float:
        """float: start angle in radians."""
        return self._start_angle

    @property
    def end_angle(self) -> float:
        """float: end angle in radians."""
        return self._end_angle

    @property
    def anticlockwise(self) -> bool:
        """bool: direction of the arc."""
        return self._anticlockwise

    @cached_property
    def actual_end_angle(self) -> float:
        """float: end angle normalized against the start angle."""
        return Arc.compute_actual_end_angle(self._start_angle, self._end_angle, self._anticlockwise)

    @cached_property
    def is_full_perimeter(self) -> bool:
        """bool: whether the arc covers the whole circle."""
        return (not self._anticlockwise and self._end_angle - self._start_angle >= TWO_PI) or (
            self._anticlockwise and self._start_angle - self._end_angle >= TWO_PI
        )

    @cached_property
    def angle_difference(self) -> float:
        """float: non-negative amount of angle covered (may exceed 2pi)."""
        difference = (
            self._start_angle - self._end_angle if self._anticlockwise else self._end_angle - self._start_angle
        )
        if difference < 0:
            difference += TWO_PI
        return difference

    # --------------------------------------------------------------- angles
    def contains_angle(self, angle: float) -> bool:
        """Whether the arc passes through the given _angle_ of its circle."""
        normalized = angle - self._end_angle if self._anticlockwise else angle - self._start_angle
        return GeomMath.modulo_between_down(normalized, 0, TWO_PI) <= self.angle_difference

    def map_angle(self, angle: float) -> float:
        """Map a contained _angle_ into [start_angle, actual_end_angle]."""
        actual_end = self.actual_end_angle
        if abs(GeomMath.modulo_between_down(angle - self._start_angle, -math.pi, math.pi)) < 1e-8:
            return self._start_angle
        if abs(GeomMath.modulo_between_down(angle - actual_end, -math.pi, math.pi)) < 1e-8:
            return actual_end
        if self._start_angle > actual_end:
            return GeomMath.modulo_between_up(angle, self._start_angle - TWO_PI, self._start_angle)
        return GeomMath.modulo_between_down(angle, self._start_angle, self._start_angle + TWO_PI)

    def t_at_angle(self, angle: float) -> float:
        """Parametric value of the given _angle_."""
        return (self.map_angle(angle) - self._start_angle) / (self.actual_end_angle - self._start_angle)

    def angle_at(self, t: float) -> float:
        """Angle at parametric value _t_."""
        return self._start_angle + (self.actual_end_angle - self._start_angle) * t

    def position_at_angle(self, angle: float) -> Vector2:
        """Point of the circle at _angle_."""
        return self._center + Vector2.from_polar(self._radius, angle)

    def tangent_at_angle(self, angle: float) -> Vector2:
        """Unit tangent of the arc at _angle_."""
        normal = Vector2.from_polar(1, angle)
        return normal.perpendicular if self._anticlockwise else -normal.perpendicular

    # -------------------------------------------------------------- segment
    @cached_property
    def start(self) -> Vector2:
        return self.position_at_angle(self._start_angle)

    @cached_property
    def end(self) -> Vector2:
        return self.position_at_angle(self._end_angle)

    @cached_property
    def start_tangent(self) -> Vector2:
        return self.tangent_at_angle(self._start_angle)

    @cached_property
    def end_tangent(self) -> Vector2:
        return self.tangent_at_angle(self._end_angle)

    def position_at(self, t: float) -> Vector2:
        return self.position_at_angle(self.angle_at(t))

    def tangent_at(self, t: float) -> Vector2:
        return self.tangent_at_angle(self.angle_at(t))

    def curvature_at(self, t: float) -> float:
        # constant along a circle
        return (-1 if self._anticlockwise else 1) / self._radius

    def subdivided(self, t: float) -> List[Segment]:
        if t in (0, 1):
            return [self]
        angle0 = self.angle_at(0)
        angle_t = self.angle_at(t)
        angle1 = self.angle_at(1)
        return [
            Arc(self._center, self._radius, angle0, angle_t, self._anticlockwise),
            Arc(self._center, self._radius, angle_t, angle1, self._anticlockwise),
        ]

    @cached_property
    def bounds(self) -> Bounds:
        bounds = Bounds.from_point(self.start).with_point(self.end)
        if self._start_angle != self._end_angle:
            for angle in (0, math.pi / 2, math.pi, 3 * math.pi / 2):
                if self.contains_angle(angle):
                    bounds = bounds.with_point(self.position_at_angle(angle))
        return bounds

    def get_nondegenerate_segments(self) -> List[Segment]:
        if self._radius <= 0 or self._start_angle == self._end_angle:
            return []
        return [self]

    def get_svg_path_fragment(self) -> str:
        sweep_flag = "0" if self._anticlockwise else "1"
        radius = svg_number(self._radius)
        if self.angle_difference < TWO_PI - SVG_FULL_CIRCLE_EPSILON:
            large_arc_flag = "0" if self.angle_difference < math.pi else "1"
            end = f"{svg_number(self.end.x)} {svg_number(self.end.y)}"
            return f"A {radius} {radius} 0 {large_arc_flag} {sweep_flag} {end}"

        # SVG can't draw a full circle from start and end alone, so split it into two halves
        split_point = self.position_at_angle((self._start_angle + self._end_angle) / 2)
        first_arc = f"A {radius} {radius} 0 0 {sweep_flag} {svg_number(split_point.x)} {svg_number(split_point.y)}"
        second_arc = f"A {radius} {radius} 0 0 {sweep_flag} {svg_number(self.end.x)} {svg_number(self.end.y)}"
        return f"{first_arc} {second_arc}"

    def stroke_left(self, line_width: float) -> List[Segment]:
        return [
            Arc(
                self._center,
                self._radius + (1 if self._anticlockwise else -1) * line_width / 2,
                self._start_angle,
                self._end_angle,
                self._anticlockwise,
            )
        ]

    def stroke_right(self, line_width: float) -> List[Segment]:
        return [
            Arc(
                self._center,
                self._radius + (-1 if self._anticlockwise else 1) * line_width / 2,
                self._end_angle,
                self._start_angle,
                not self._anticlockwise,
            )
        ]

    def get_interior_extrema_ts(self) -> List[float]:
        return _interior_ts(
            [
                self.t_at_angle(angle)
                for angle in (0, math.pi / 2, math.pi, 3 * math.pi / 2)
                if self.contains_angle(angle)
            ]
        )

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        result: List[RayIntersection] = []

        # solve for the distances where the ray meets the full circle, then check the angles
        center_to_ray = ray.position - self._center
        tmp = ray.direction.dot(center_to_ray)
        discriminant = 4 * tmp * tmp - 4 * (center_to_ray.magnitude_squared - self._radius * self._radius)
        if discriminant < 0:
            # ray misses the circle entirely
            return result
        base = ray.direction.dot(self._center) - ray.direction.dot(ray.position)
        sqt = math.sqrt(discriminant) / 2
        ta = base - sqt
        tb = base + sqt

        if tb < 0:
            # circle is behind the ray
            return result

        point_b = ray.point_at_distance(tb)
        normal_b = (point_b - self._center).normalized()
        normal_b_angle = normal_b.angle

        if ta >= 0:
            # two possible hits, the first one from outside
            point_a = ray.point_at_distance(ta)
            normal_a = (point_a - self._center).normalized()
            normal_a_angle = normal_a.angle
            if self.contains_angle(normal_a_angle):
                result.append(
                    RayIntersection(
                        ta, point_a, normal_a, 1 if self._anticlockwise else -1, self.t_at_angle(normal_a_angle)
                    )
                )
        if self.contains_angle(normal_b_angle):
            # hit from inside: normal against the ray, winding the opposite way
            result.append(
                RayIntersection(
                    tb, point_b, -normal_b, -1 if self._anticlockwise else 1, self.t_at_angle(normal_b_angle)
                )
            )
        return result

    def get_signed_area_fragment(self) -> float:
        t0 = self._start_angle
        t1 = self.actual_end_angle
        return (
            0.5
            * self._radius
            * (
                self._radius * (t1 - t0)
                + self._center.x * (math.sin(t1) - math.sin(t0))
                - self._center.y * (math.cos(t1) - math.cos(t0))
            )
        )

    def reversed(self) -> Segment:
        return Arc(self._center, self._radius, self._end_angle, self._start_angle, not self._anticlockwise)

    def transformed(self, affine_trafo: AffineTrafo) -> Segment:
        ellipse = EllipticalArc(
            self._center, self._radius, self._radius, 0, self._start_angle, self._end_angle, self._anticlockwise
        ).transformed(affine_trafo)
        return ellipse.as_arc_if_circular()

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        return self.angle_difference * self._radius

    def serialize(self) -> dict:
        return {
            "type": "Arc",
            "centerX": self._center.x,
            "centerY": self._center.y,
            "radius": self._radius,
            "startAngle": self._start_angle,
            "endAngle": self._end_angle,
            "anticlockwise": self._anticlockwise,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Arc:
        """Create an Arc from its serialized form."""
        return cls(
            Vector2(data["centerX"], data["centerY"]),
            data["radius"],
            data["startAngle"],
            data["endAngle"],
            data["anticlockwise"],
        )

    def write_to_context(self, context: DrawingContext) -> None:
        context.arc(
            self._center.x, self._center.y, self._radius, self._start_angle, self._end_angle, self._anticlockwise
        )


###############################################################################
# EllipticalArc
###############################################################################
class EllipticalArc(Segment):
    """
    Elliptical arc, the image of a unit circle arc under translate(center) * rotate(rotation) * scale(rx, ry).

    The radii are normalized on construction so that radius_x >= radius_y >= 0.
    """

    def __init__(
        self,
        center: Vector2,
        radius_x: float,
        radius_y: float,
        rotation: float,
        start_angle: float,
        end_angle: float,
        anticlockwise: bool = False,
    ):
        check_finite_points(center)
        check_finite(radius_x, radius_y, rotation, start_angle, end_angle)

        # remapping of negative radii
        if radius_x < 0:
            radius_x = -radius_x
            start_angle = math.pi - start_angle
            end_angle = math.pi - end_angle
            anticlockwise = not anticlockwise
        if radius_y < 0:
            radius_y = -radius_y
            start_angle = -start_angle
            end_angle = -end_angle
            anticlockwise = not anticlockwise
        # the major axis is always radius_x
        if radius_x < radius_y:
            rotation += math.pi / 2
            start_angle -= math.pi / 2
            end_angle -= math.pi / 2
            radius_x, radius_y = radius_y, radius_x

        self._center = center
        self._radius_x = float(radius_x)
        self._radius_y = float(radius_y)
        self._rotation = float(rotation)
        self._start_angle = float(start_angle)
        self._end_angle = float(end_angle)
        self._anticlockwise = bool(anticlockwise)

    def __repr__(self) -> str:
        return (
            f"EllipticalArc({self._center}, {self._radius_x}, {self._radius_y}, {self._rotation}, "
            f"{self._start_angle}, {self._end_angle}, anticlockwise={self._anticlockwise})"
        )

    # ---------------------------------------------------------------- params
    @property
    def center(self) -> Vector2:
        """Vector2: center of the ellipse."""
        return self._center

    @property
    def radius_x(self) -> float:
        """float: semi-major radius."""
        return self._radius_x

    @property
    def radius_y(self) -> float:
        """float: semi-minor radius."""
        return self._radius_y

    @property
    def rotation(self) -> float:
        """float: rotation of the semi-major axis in radians."""
        return self._rotation

    @property
    def start_angle(self) -> float:
        """float: start angle on the unit circle."""
        return self._start_angle

    @property
    def end_angle(self) -> float:
        """float: end angle on the unit circle."""
        return self._end_angle

    @property
    def anticlockwise(self) -> bool:
        """bool: direction of the arc."""
        return self._anticlockwise

    @cached_property
    def unit_transform(self) -> AffineTrafo:
        """Affine transformation mapping the unit circle onto this ellipse."""
        cos_r = math.cos(self._rotation)
        sin_r = math.sin(self._rotation)
        return (
            cos_r * self._radius_x,
            -sin_r * self._radius_y,
            sin_r * self._radius_x,
            cos_r * self._radius_y,
            self._center.x,
            self._center.y,
        )

    @cached_property
    def unit_arc_segment(self) -> Arc:
        """Arc: the unit circle arc that is mapped onto this ellipse."""
        return Arc(ZERO, 1, self._start_angle, self._end_angle, self._anticlockwise)

    @cached_property
    def _inverse_linear(self) -> np.ndarray:
        return np.linalg.inv(GeomMath.linear_part(self.unit_transform))

    @cached_property
    def actual_end_angle(self) -> float:
        """float: end angle normalized against the start angle."""
        return Arc.compute_actual_end_angle(self._start_angle, self._end_angle, self._anticlockwise)

    @cached_property
    def is_full_perimeter(self) -> bool:
        """bool: whether the arc covers the whole ellipse."""
        return (not self._anticlockwise and self._end_angle - self._start_angle >= TWO_PI) or (
            self._anticlockwise and self._start_angle - self._end_angle >= TWO_PI
        )

    @cached_property
    def angle_difference(self) -> float:
        """float: non-negative amount of angle covered (may exceed 2pi)."""
        difference = (
            self._start_angle - self._end_angle if self._anticlockwise else self._end_angle - self._start_angle
        )
        if difference < 0:
            difference += TWO_PI
        return difference

    # --------------------------------------------------------------- angles
    def map_angle(self, angle: float) -> float:
        """Map a contained _angle_ into [start_angle, actual_end_angle]."""
        return self.unit_arc_segment.map_angle(angle)

    def t_at_angle(self, angle: float) -> float:
        """Parametric value of the given _angle_."""
        return self.unit_arc_segment.t_at_angle(angle)

    def angle_at(self, t: float) -> float:
        """Angle at parametric value _t_."""
        return self._start_angle + (self.actual_end_angle - self._start_angle) * t

    def position_at_angle(self, angle: float) -> Vector2:
        """Point of the ellipse at unit circle _angle_."""
        return GeomMath.transform_vector(self.unit_transform, Vector2.from_polar(1, angle))

    def _transform_normal(self, normal: Vector2) -> Vector2:
        # normals transform with the inverse transpose
        inverse = self._inverse_linear
        return Vector2(
            float(inverse[0, 0] * normal.x + inverse[1, 0] * normal.y),
            float(inverse[0, 1] * normal.x + inverse[1, 1] * normal.y),
        )

    def tangent_at_angle(self, angle: float) -> Vector2:
        """Tangent direction of the arc at unit circle _angle_ (not normalized)."""
        normal = self._transform_normal(Vector2.from_polar(1, angle))
        return normal.perpendicular if self._anticlockwise else -normal.perpendicular

    # -------------------------------------------------------------- segment
    @cached_property
    def start(self) -> Vector2:
        return self.position_at_angle(self._start_angle)

    @cached_property
    def end(self) -> Vector2:
        return self.position_at_angle(self._end_angle)

    @cached_property
    def start_tangent(self) -> Vector2:
        return self.tangent_at_angle(self._start_angle).normalized()

    @cached_property
    def end_tangent(self) -> Vector2:
        return self.tangent_at_angle(self._end_angle).normalized()

    def position_at(self, t: float) -> Vector2:
        return self.position_at_angle(self.angle_at(t))

    def tangent_at(self, t: float) -> Vector2:
        return self.tangent_at_angle(self.angle_at(t))

    def curvature_at(self, t: float) -> float:
        # see http://mathworld.wolfram.com/Ellipse.html (59)
        angle = self.angle_at(t)
        aq = self._radius_x * math.sin(angle)
        bq = self._radius_y * math.cos(angle)
        denominator = math.pow(bq * bq + aq * aq, 3 / 2)
        return (-1 if self._anticlockwise else 1) * self._radius_x * self._radius_y / denominator

    def subdivided(self, t: float) -> List[Segment]:
        if t in (0, 1):
            return [self]
        angle0 = self.angle_at(0)
        angle_t = self.angle_at(t)
        angle1 = self.angle_at(1)
        return [
            EllipticalArc(
                self._center, self._radius_x, self._radius_y, self._rotation, angle0, angle_t, self._anticlockwise
            ),
            EllipticalArc(
                self._center, self._radius_x, self._radius_y, self._rotation, angle_t, angle1, self._anticlockwise
            ),
        ]

    @cached_property
    def possible_extrema_angles(self) -> List[float]:
        """List[float]: unit circle angles where x or y of the full ellipse is extremal."""
        sin_r = math.sin(self._rotation)
        cos_r = math.cos(self._rotation)
        x_angle = math.atan2(-self._radius_y * sin_r, self._radius_x * cos_r)
        y_angle = math.atan2(self._radius_y * cos_r, self._radius_x * sin_r)
        return [x_angle, x_angle + math.pi, y_angle, y_angle + math.pi]

    @cached_property
    def bounds(self) -> Bounds:
        bounds = Bounds.from_point(self.start).with_point(self.end)
        if self._start_angle != self._end_angle:
            for angle in self.possible_extrema_angles:
                if self.unit_arc_segment.contains_angle(angle):
                    bounds = bounds.with_point(self.position_at_angle(angle))
        return bounds

    def as_arc_if_circular(self) -> Segment:
        """The equivalent Arc if both radii are (numerically) equal, otherwise self."""
        if not math.isclose(self._radius_x, self._radius_y, rel_tol=1e-12, abs_tol=1e-14):
            return self
        start_angle = self._start_angle + self._rotation
        end_angle = _preserved_end_angle(
            start_angle, self._end_angle + self._rotation, self._start_angle, self._end_angle, self._anticlockwise
        )
        return Arc(self._center, self._radius_x, start_angle, end_angle, self._anticlockwise)

    def get_nondegenerate_segments(self) -> List[Segment]:
        if self._radius_x <= 0 or self._radius_y <= 0 or self._start_angle == self._end_angle:
            return []
        if self._radius_x == self._radius_y:
            # reduce to an Arc
            start_angle = self._start_angle + self._rotation
            end_angle = _preserved_end_angle(
                start_angle, self._end_angle + self._rotation, self._start_angle, self._end_angle, self._anticlockwise
            )
            return [Arc(self._center, self._radius_x, start_angle, end_angle, self._anticlockwise)]
        return [self]

    def offset_to(self, r: float, reverse: bool) -> List[Segment]:
        """Polyline approximating the arc offset by _r_ along its normals."""
        points: List[Vector2] = []
        result: List[Segment] = []
        for i in range(OFFSET_SAMPLES):
            ratio = i / (OFFSET_SAMPLES - 1)
            if reverse:
                ratio = 1 - ratio
            angle = self.angle_at(ratio)
            points.append(
                self.position_at_angle(angle) + self.tangent_at_angle(angle).perpendicular.normalized() * r
            )
            if i > 0 and points[i - 1] != points[i]:
                result.append(Line(points[i - 1], points[i]))
        return result

    def get_svg_path_fragment(self) -> str:
        sweep_flag = "0" if self._anticlockwise else "1"
        radii = f"{svg_number(self._radius_x)} {svg_number(self._radius_y)} {svg_number(math.degrees(self._rotation))}"
        if self.angle_difference < TWO_PI - SVG_FULL_CIRCLE_EPSILON:
            large_arc_flag = "0" if self.angle_difference < math.pi else "1"
            return f"A {radii} {large_arc_flag} {sweep_flag} {svg_number(self.end.x)} {svg_number(self.end.y)}"

        # full ellipse: split into two halves
        split_point = self.position_at_angle((self._start_angle + self._end_angle) / 2)
        first_arc = f"A {radii} 0 {sweep_flag} {svg_number(split_point.x)} {svg_number(split_point.y)}"
        second_arc = f"A {radii} 0 {sweep_flag} {svg_number(self.end.x)} {svg_number(self.end.y)}"
        return f"{first_arc} {second_arc}"

    def stroke_left(self, line_width: float) -> List[Segment]:
        return self.offset_to(-line_width / 2, False)

    def stroke_right(self, line_width: float) -> List[Segment]:
        return self.offset_to(line_width / 2, True)

    def get_interior_extrema_ts(self) -> List[float]:
        return _interior_ts(
            [
                self.t_at_angle(angle)
                for angle in self.possible_extrema_angles
                if self.unit_arc_segment.contains_angle(angle)
            ]
        )

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        # transform the ray into the space of the unit circle arc
        inverse = self._inverse_linear
        local_position = ray.position - self._center
        unit_position = Vector2(
            float(inverse[0, 0] * local_position.x + inverse[0, 1] * local_position.y),
            float(inverse[1, 0] * local_position.x + inverse[1, 1] * local_position.y),
        )
        unit_direction = Vector2(
            float(inverse[0, 0] * ray.direction.x + inverse[0, 1] * ray.direction.y),
            float(inverse[1, 0] * ray.direction.x + inverse[1, 1] * ray.direction.y),
        ).normalized()

        result: List[RayIntersection] = []
        for hit in self.unit_arc_segment.intersection(Ray(unit_position, unit_direction)):
            point = GeomMath.transform_vector(self.unit_transform, hit.point)
            normal = self._transform_normal(hit.normal).normalized()
            result.append(RayIntersection(ray.position.distance(point), point, normal, hit.wind, hit.t))
        return result

    def get_signed_area_fragment(self) -> float:
        t0 = self._start_angle
        t1 = self.actual_end_angle
        sin0 = math.sin(t0)
        sin1 = math.sin(t1)
        cos0 = math.cos(t0)
        cos1 = math.cos(t1)
        rx = self._radius_x
        ry = self._radius_y
        cx = self._center.x
        cy = self._center.y
        return 0.5 * (
            rx * ry * (t1 - t0)
            + math.cos(self._rotation) * (rx * cy * (cos0 - cos1) + ry * cx * (sin1 - sin0))
            + math.sin(self._rotation) * (rx * cx * (cos1 - cos0) + ry * cy * (sin1 - sin0))
        )

    def reversed(self) -> Segment:
        return EllipticalArc(
            self._center,
            self._radius_x,
            self._radius_y,
            self._rotation,
            self._end_angle,
            self._start_angle,
            not self._anticlockwise,
        )

    def transformed(self, affine_trafo: AffineTrafo) -> EllipticalArc:
        """
        The elliptical arc mapped by a general affine transformation.

        The linear part of trafo * unit_transform is split by a singular value
        decomposition U * S * Vt: U gives the new rotation, S the new radii and
        Vt (a rotation or a reflection) remaps the unit circle angles.
        """
        linear = GeomMath.linear_part(affine_trafo) @ GeomMath.linear_part(self.unit_transform)
        u, sigma, vt = np.linalg.svd(linear)
        if np.linalg.det(u) < 0:
            u[:, 1] = -u[:, 1]
            vt[1, :] = -vt[1, :]

        rotation = math.atan2(u[1, 0], u[0, 0])
        center = GeomMath.transform_vector(affine_trafo, self._center)
        if np.linalg.det(vt) > 0:
            phi = math.atan2(vt[1, 0], vt[0, 0])
            start_angle = self._start_angle + phi
            end_angle = self._end_angle + phi
            anticlockwise = self._anticlockwise
        else:
            # reflection: the angles run the other way around
            phi = math.atan2(vt[0, 1], vt[0, 0])
            start_angle = phi - self._start_angle
            end_angle = phi - self._end_angle
            anticlockwise = not self._anticlockwise
        end_angle = _preserved_end_angle(start_angle, end_angle, self._start_angle, self._end_angle, anticlockwise)
        return EllipticalArc(
            center, float(sigma[0]), float(sigma[1]), rotation, start_angle, end_angle, anticlockwise
        )

    def get_arc_length(
        self,
        distance_epsilon: float = DISTANCE_EPSILON,
        curve_epsilon: float = CURVE_EPSILON,
        max_levels: int = ARC_LENGTH_MAX_LEVELS,
    ) -> float:
        if self._radius_x == self._radius_y:
            return self.angle_difference * self._radius_x
        return super().get_arc_length(distance_epsilon, curve_epsilon, max_levels)

    def serialize(self) -> dict:
        return {
            "type": "EllipticalArc",
            "centerX": self._center.x,
            "centerY": self._center.y,
            "radiusX": self._radius_x,
            "radiusY": self._radius_y,
            "rotation": self._rotation,
            "startAngle": self._start_angle,
            "endAngle": self._end_angle,
            "anticlockwise": self._anticlockwise,
        }

    @classmethod
    def deserialize(cls, data: dict) -> EllipticalArc:
        """Create an EllipticalArc from its serialized form."""
        return cls(
            Vector2(data["centerX"], data["centerY"]),
            data["radiusX"],
            data["radiusY"],
            data["rotation"],
            data["startAngle"],
            data["endAngle"],
            data["anticlockwise"],
        )

    def write_to_context(self, context: DrawingContext) -> None:
        context.ellipse(
            self._center.x,
            self._center.y,
            self._radius_x,
            self._radius_y,
            self._rotation,
            self._start_angle,
            self._end_angle,
            self._anticlockwise,
        )


def ellipse_center_from_endpoints(
    start: Vector2,
    end: Vector2,
    radius_x: float,
    radius_y: float,
    rotation: float,
    large_arc: bool,
    sweep: bool,
) -> Optional[EllipticalArc]:
    """
    SVG endpoint-to-center parameterization of an elliptical arc.

    See https://www.w3.org/TR/SVG/implnote.html F.6.5 and F.6.6.

    Args:
        start (Vector2): current point
        end (Vector2): end point of the arc
        radius_x (float): x radius (sign ignored)
        radius_y (float): y radius (sign ignored)
        rotation (float): rotation of the x-axis in radians
        large_arc (bool): large-arc-flag
        sweep (bool): sweep-flag

    Returns:
        Optional[EllipticalArc]: the arc, or None if the endpoints coincide or a radius is zero
            (then the caller draws a straight line, see F.6.2)
    """
    if start == end or radius_x == 0 or radius_y == 0:
        return None

    # F.6.6 step 1: ensure radii are non-negative
    rx = abs(radius_x)
    ry = abs(radius_y)

    # F.6.5 step 1: compute (x1', y1')
    half_diff = (start - end) / 2
    start_prime = half_diff.rotated(-rotation)

    # F.6.6 step 3: ensure radii are large enough
    lambda_ = (start_prime.x * start_prime.x) / (rx * rx) + (start_prime.y * start_prime.y) / (ry * ry)
    if lambda_ > 1:
        scale = math.sqrt(lambda_)
        rx *= scale
        ry *= scale

    # F.6.5 step 2: compute (cx', cy')
    rx_sq = rx * rx
    ry_sq = ry * ry
    rx_sq_y_sq = rx_sq * start_prime.y * start_prime.y
    ry_sq_x_sq = ry_sq * start_prime.x * start_prime.x
    numerator = rx_sq * ry_sq - rx_sq_y_sq - ry_sq_x_sq
    # rounding can make the numerator slightly negative after the radius correction
    factor = math.sqrt(max(0.0, numerator / (rx_sq_y_sq + ry_sq_x_sq)))
    if large_arc == sweep:
        factor = -factor
    center_prime = Vector2(rx * start_prime.y / ry, -ry * start_prime.x / rx) * factor

    # F.6.5 step 3: compute (cx, cy) from (cx', cy')
    center = center_prime.rotated(rotation) + start.average(end)

    # F.6.5 step 4: compute the start angle and the angle delta
    def signed_angle(u: Vector2, v: Vector2) -> float:
        # angle from u to v, signed by the cross product
        return (1 if u.cross(v) > 0 else -1) * u.angle_between(v)

    start_vector = Vector2((start_prime.x - center_prime.x) / rx, (start_prime.y - center_prime.y) / ry)
    end_vector = Vector2((-start_prime.x - center_prime.x) / rx, (-start_prime.y - center_prime.y) / ry)
    start_angle = signed_angle(Vector2(1, 0), start_vector)
    delta_angle = math.fmod(signed_angle(start_vector, end_vector), TWO_PI)

    # sweep to the correct side
    if not sweep and delta_angle > 0:
        delta_angle -= TWO_PI
    if sweep and delta_angle < 0:
        delta_angle += TWO_PI

    return EllipticalArc(center, rx, ry, rotation, start_angle, start_angle + delta_angle, not sweep)
