"""Quadratic and cubic Bezier segments"""

from __future__ import annotations

import math
from functools import cached_property
from typing import List, Optional

from shapekit.consts import OFFSET_SAMPLES
from shapekit.geom import AffineTrafo, Bounds, GeomMath, Ray, Vector2
from shapekit.segment import DrawingContext, Line, RayIntersection, Segment, check_finite_points
from shapekit.svgpath import svg_number


def _ray_frame_trafo(ray: Ray) -> AffineTrafo:
    """Affine transformation mapping the ray onto the positive x-axis."""
    angle = -ray.direction.angle
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    px, py = ray.position.x, ray.position.y
    # rotation(-angle) * translation(-position)
    return (cos_a, -sin_a, sin_a, cos_a, -(cos_a * px - sin_a * py), -(sin_a * px + cos_a * py))


def _bezier_ray_hits(segment: Segment, ray: Ray, ts: Optional[List[float]]) -> List[RayIntersection]:
    """Turn candidate parameters _ts_ of a Bezier/ray crossing into RayIntersections."""
    result: List[RayIntersection] = []
    for t in ts or []:
        if not 0 <= t <= 1:
            continue
        hit_point = segment.position_at(t)
        tangent = segment.tangent_at(t)
        if tangent.magnitude_squared == 0:
            continue
        unit_tangent = tangent.normalized()
        perp = unit_tangent.perpendicular
        to_hit = hit_point - ray.position
        # make sure it's not behind the ray
        if to_hit.dot(ray.direction) > 0:
            normal = -perp if perp.dot(ray.direction) > 0 else perp
            wind = 1 if ray.direction.perpendicular.dot(unit_tangent) < 0 else -1
            result.append(RayIntersection(to_hit.magnitude, hit_point, normal, wind, t))
    return result


def _bezier_curvature(degree: int, t: float, segment: Segment, points: List[Vector2]) -> float:
    """Signed curvature of a Bezier curve with control polygon _points_ at _t_."""
    epsilon = 0.0000001
    if abs(t - 0.5) > 0.5 - epsilon:
        is_zero = t < 0.5
        p0 = points[0] if is_zero else points[-1]
        p1 = points[1] if is_zero else points[-2]
        p2 = points[2] if is_zero else points[-3]
        d10 = p1 - p0
        a = d10.magnitude
        if a == 0:
            return 0.0
        h = (-1 if is_zero else 1) * d10.perpendicular.normalized().dot(p2 - p1)
        return (h * (degree - 1)) / (degree * a * a)
    return segment.subdivided(t)[0].curvature_at(1)


def _unique_interior_ts(ts: List[float]) -> List[float]:
    epsilon = 0.0000000001
    result: List[float] = []
    for t in ts:
        if epsilon < t < 1 - epsilon and all(abs(t - other) > epsilon for other in result):
            result.append(t)
    return sorted(result)


###############################################################################
# Quadratic
###############################################################################
class Quadratic(Segment):
    """Quadratic Bezier curve with one _control_ point."""

    degree = 2

    def __init__(self, start: Vector2, control: Vector2, end: Vector2):
        check_finite_points(start, control, end)
        self._start = start
        self._control = control
        self._end = end

    def __repr__(self) -> str:
        return f"Quadratic({self._start}, {self._control}, {self._end})"

    @property
    def start(self) -> Vector2:
        return self._start

    @property
    def control(self) -> Vector2:
        """Vector2: the control point."""
        return self._control

    @property
    def end(self) -> Vector2:
        return self._end

    def position_at(self, t: float) -> Vector2:
        mt = 1 - t
        return self._start * (mt * mt) + self._control * (2 * mt * t) + self._end * (t * t)

    def tangent_at(self, t: float) -> Vector2:
        return (self._control - self._start) * (2 * (1 - t)) + (self._end - self._control) * (2 * t)

    def curvature_at(self, t: float) -> float:
        return _bezier_curvature(self.degree, t, self, [self._start, self._control, self._end])

    def subdivided(self, t: float) -> List[Segment]:
        if t in (0, 1):
            return [self]
        # de Casteljau method
        left_mid = self._start.blend(self._control, t)
        right_mid = self._control.blend(self._end, t)
        mid = left_mid.blend(right_mid, t)
        return [Quadratic(self._start, left_mid, mid), Quadratic(mid, right_mid, self._end)]

    @cached_property
    def start_tangent(self) -> Vector2:
        # a control point on the start point gives no direction
        if self._start == self._control:
            return (self._end - self._start).normalized()
        return (self._control - self._start).normalized()

    @cached_property
    def end_tangent(self) -> Vector2:
        if self._end == self._control:
            return (self._end - self._start).normalized()
        return (self._end - self._control).normalized()

    @staticmethod
    def extrema_t(start: float, control: float, end: float) -> Optional[float]:
        """Parameter of the extremum of a 1D quadratic Bezier, None if it is linear."""
        divisor = start - 2 * control + end
        if divisor == 0:
            return None
        return (start - control) / divisor

    @cached_property
    def bounds(self) -> Bounds:
        bounds = Bounds.from_point(self._start).with_point(self._end)
        for t in (
            Quadratic.extrema_t(self._start.x, self._control.x, self._end.x),
            Quadratic.extrema_t(self._start.y, self._control.y, self._end.y),
        ):
            if t is not None and 0 <= t <= 1:
                bounds = bounds.with_point(self.position_at(t))
        return bounds

    def get_nondegenerate_segments(self) -> List[Segment]:
        start = self._start
        control = self._control
        end = self._end

        start_is_end = start == end
        start_is_control = start == control
        end_is_control = end == control

        if start_is_end and start_is_control:
            return []
        if start_is_end:
            # collinear special case: out to the farthest point and back
            half_point = self.position_at(0.5)
            return [Line(start, half_point), Line(half_point, end)]
        if GeomMath.are_points_collinear(start, control, end):
            if start_is_control or end_is_control:
                return [Line(start, end)]
            delta = end - start
            p1d = (control - start).dot(delta.normalized()) / delta.magnitude
            t = Quadratic.extrema_t(0, p1d, 1)
            if t is not None and 0 < t < 1:
                point = self.position_at(t)
                return Line(start, point).get_nondegenerate_segments() + Line(
                    point, end
                ).get_nondegenerate_segments()
            return [Line(start, end)]
        return [self]

    def degree_elevated(self) -> Cubic:
        """The same curve as cubic Bezier."""
        return Cubic(
            self._start,
            (self._start + self._control * 2) / 3,
            (self._end + self._control * 2) / 3,
            self._end,
        )

    def approximate_offset(self, r: float) -> Quadratic:
        """Quadratic approximating the curve offset by _r_ along its normals."""
        start_dir = self._end - self._start if self._start == self._control else self._control - self._start
        end_dir = self._end - self._start if self._end == self._control else self._end - self._control
        return Quadratic(
            self._start + start_dir.perpendicular.normalized() * r,
            self._control + (self._end - self._start).perpendicular.normalized() * r,
            self._end + end_dir.perpendicular.normalized() * r,
        )

    def offset_to(self, r: float, reverse: bool) -> List[Segment]:
        """Offset curve made of 2^5 approximating quadratics, optionally reversed."""
        curves: List[Segment] = [self]
        for _ in range(5):
            curves = [part for curve in curves for part in curve.subdivided(0.5)]
        offset_curves: List[Segment] = [curve.approximate_offset(r) for curve in curves]  # type: ignore[attr-defined]
        if reverse:
            offset_curves = [curve.reversed() for curve in reversed(offset_curves)]
        return offset_curves

    def get_svg_path_fragment(self) -> str:
        return (
            f"Q {svg_number(self._control.x)} {svg_number(self._control.y)} "
            f"{svg_number(self._end.x)} {svg_number(self._end.y)}"
        )

    def stroke_left(self, line_width: float) -> List[Segment]:
        return self.offset_to(-line_width / 2, False)

    def stroke_right(self, line_width: float) -> List[Segment]:
        return self.offset_to(line_width / 2, True)

    def get_interior_extrema_ts(self) -> List[float]:
        ts = [
            t
            for t in (
                Quadratic.extrema_t(self._start.x, self._control.x, self._end.x),
                Quadratic.extrema_t(self._start.y, self._control.y, self._end.y),
            )
            if t is not None
        ]
        return _unique_interior_ts(ts)

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        # rotate the ray onto the x-axis, so only y = 0 has to be solved
        trafo = _ray_frame_trafo(ray)
        p0 = GeomMath.transform_vector(trafo, self._start)
        p1 = GeomMath.transform_vector(trafo, self._control)
        p2 = GeomMath.transform_vector(trafo, self._end)

        # polynomial form: start + (2 control - 2 start) t + (start - 2 control + end) t^2
        a = p0.y - 2 * p1.y + p2.y
        b = -2 * p0.y + 2 * p1.y
        c = p0.y
        return _bezier_ray_hits(self, ray, GeomMath.solve_quadratic_roots_real(a, b, c))

    def get_signed_area_fragment(self) -> float:
        s, c, e = self._start, self._control, self._end
        return (1 / 6) * (s.x * (2 * c.y + e.y) + c.x * (-2 * s.y + 2 * e.y) + e.x * (-s.y - 2 * c.y))

    def reversed(self) -> Segment:
        return Quadratic(self._end, self._control, self._start)

    def transformed(self, affine_trafo: AffineTrafo) -> Segment:
        return Quadratic(
            GeomMath.transform_vector(affine_trafo, self._start),
            GeomMath.transform_vector(affine_trafo, self._control),
            GeomMath.transform_vector(affine_trafo, self._end),
        )

    def serialize(self) -> dict:
        return {
            "type": "Quadratic",
            "startX": self._start.x,
            "startY": self._start.y,
            "controlX": self._control.x,
            "controlY": self._control.y,
            "endX": self._end.x,
            "endY": self._end.y,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Quadratic:
        """Create a Quadratic from its serialized form."""
        return cls(
            Vector2(data["startX"], data["startY"]),
            Vector2(data["controlX"], data["controlY"]),
            Vector2(data["endX"], data["endY"]),
        )

    def write_to_context(self, context: DrawingContext) -> None:
        context.quadratic_curve_to(self._control.x, self._control.y, self._end.x, self._end.y)


###############################################################################
# Cubic
###############################################################################
class Cubic(Segment):
    """Cubic Bezier curve with two control points."""

    degree = 3

    def __init__(self, start: Vector2, control1: Vector2, control2: Vector2, end: Vector2):
        check_finite_points(start, control1, control2, end)
        self._start = start
        self._control1 = control1
        self._control2 = control2
        self._end = end

    def __repr__(self) -> str:
        return f"Cubic({self._start}, {self._control1}, {self._control2}, {self._end})"

    @property
    def start(self) -> Vector2:
        return self._start

    @property
    def control1(self) -> Vector2:
        """Vector2: the first control point."""
        return self._control1

    @property
    def control2(self) -> Vector2:
        """Vector2: the second control point."""
        return self._control2

    @property
    def end(self) -> Vector2:
        return self._end

    def position_at(self, t: float) -> Vector2:
        mt = 1 - t
        return (
            self._start * (mt * mt * mt)
            + self._control1 * (3 * mt * mt * t)
            + self._control2 * (3 * mt * t * t)
            + self._end * (t * t * t)
        )

    def tangent_at(self, t: float) -> Vector2:
        mt = 1 - t
        return (
            (self._control1 - self._start) * (3 * mt * mt)
            + (self._control2 - self._control1) * (6 * mt * t)
            + (self._end - self._control2) * (3 * t * t)
        )

    def curvature_at(self, t: float) -> float:
        return _bezier_curvature(self.degree, t, self, [self._start, self._control1, self._control2, self._end])

    def subdivided(self, t: float) -> List[Segment]:
        if t in (0, 1):
            return [self]
        # de Casteljau method
        left = self._start.blend(self._control1, t)
        right = self._control2.blend(self._end, t)
        middle = self._control1.blend(self._control2, t)
        left_mid = left.blend(middle, t)
        right_mid = middle.blend(right, t)
        mid = left_mid.blend(right_mid, t)
        return [Cubic(self._start, left, left_mid, mid), Cubic(mid, right_mid, right, self._end)]

    @staticmethod
    def _first_direction(*candidates: Vector2) -> Vector2:
        for candidate in candidates:
            if candidate.magnitude_squared > 0:
                return candidate.normalized()
        return candidates[-1].normalized()

    @cached_property
    def start_tangent(self) -> Vector2:
        return Cubic._first_direction(
            self._control1 - self._start, self._control2 - self._start, self._end - self._start
        )

    @cached_property
    def end_tangent(self) -> Vector2:
        return Cubic._first_direction(self._end - self._control2, self._end - self._control1, self._end - self._start)

    # ------------------------------------------------------------- cusp info
    @cached_property
    def _cusp_info(self):
        # from "Bezier flattening" (Hain et al.): cusp and inflection parameters
        a = -self._start + self._control1 * 3 - self._control2 * 3 + self._end
        b = self._start * 3 - self._control1 * 6 + self._control2 * 3
        c = -self._start * 3 + self._control1 * 3
        a_perp = a.perpendicular
        b_perp = b.perpendicular
        a_perp_dot_b = a_perp.dot(b)
        if a_perp_dot_b == 0:
            return math.nan, math.nan, math.nan, math.nan
        t_cusp = -0.5 * (a_perp.dot(c) / a_perp_dot_b)
        t_determinant = t_cusp * t_cusp - (1 / 3) * (b_perp.dot(c) / a_perp_dot_b)
        if t_determinant >= 0:
            sqrt_det = math.sqrt(t_determinant)
            return t_cusp, t_determinant, t_cusp - sqrt_det, t_cusp + sqrt_det
        return t_cusp, t_determinant, math.nan, math.nan

    @property
    def t_cusp(self) -> float:
        """float: parameter of a potential cusp (NaN if undefined)."""
        return self._cusp_info[0]

    @property
    def t_inflections(self) -> List[float]:
        """List[float]: parameters of the inflection points (may be empty)."""
        return [t for t in self._cusp_info[2:] if not math.isnan(t)]

    def has_cusp(self) -> bool:
        """Whether the curve has a cusp (zero-length tangent) within [0, 1]."""
        t_cusp = self.t_cusp
        epsilon = 1e-7
        return 0 <= t_cusp <= 1 and self.tangent_at(t_cusp).magnitude < epsilon

    def get_quadratics(self) -> List[Quadratic]:
        """Quadratics replacing the curve when it has a cusp (empty list otherwise)."""
        if not self.has_cusp():
            return []
        t_cusp = self.t_cusp
        if t_cusp == 0:
            return [Quadratic(self._start, self._control2, self._end)]
        if t_cusp == 1:
            return [Quadratic(self._start, self._control1, self._end)]
        first, second = self.subdivided(t_cusp)
        return [
            Quadratic(first.start, first.control1, first.end),  # type: ignore[attr-defined]
            Quadratic(second.start, second.control2, second.end),  # type: ignore[attr-defined]
        ]

    def degree_reduced(self, epsilon: float = 0.0) -> Optional[Quadratic]:
        """The equivalent quadratic if both candidate control points agree within _epsilon_."""
        control_a = (self._control1 * 3 - self._start) / 2
        control_b = (self._control2 * 3 - self._end) / 2
        if (control_a - control_b).magnitude <= epsilon:
            return Quadratic(self._start, control_a.average(control_b), self._end)
        return None

    @staticmethod
    def extrema_t(v0: float, v1: float, v2: float, v3: float) -> List[float]:
        """Parameters in [0, 1] where a 1D cubic Bezier has an extremum."""
        if v0 == v1 == v2 == v3:
            return []
        # coefficients of the derivative
        a = -3 * v0 + 9 * v1 - 9 * v2 + 3 * v3
        b = 6 * v0 - 12 * v1 + 6 * v2
        c = -3 * v0 + 3 * v1
        roots = GeomMath.solve_quadratic_roots_real(a, b, c) or []
        return [t for t in roots if 0 <= t <= 1]

    @cached_property
    def x_extrema_t(self) -> List[float]:
        """List[float]: parameters of the x-extrema."""
        return Cubic.extrema_t(self._start.x, self._control1.x, self._control2.x, self._end.x)

    @cached_property
    def y_extrema_t(self) -> List[float]:
        """List[float]: parameters of the y-extrema."""
        return Cubic.extrema_t(self._start.y, self._control1.y, self._control2.y, self._end.y)

    @cached_property
    def bounds(self) -> Bounds:
        bounds = Bounds.from_point(self._start).with_point(self._end)
        for t in self.x_extrema_t + self.y_extrema_t:
            bounds = bounds.with_point(self.position_at(t))
        if self.has_cusp():
            bounds = bounds.with_point(self.position_at(self.t_cusp))
        return bounds

    def get_nondegenerate_segments(self) -> List[Segment]:
        start = self._start
        control1 = self._control1
        control2 = self._control2
        end = self._end
        reduced = self.degree_reduced(1e-9)

        if start == end == control1 == control2:
            # degenerate point
            return []
        if self.has_cusp():
            return [
                segment for quadratic in self.get_quadratics() for segment in quadratic.get_nondegenerate_segments()
            ]
        if reduced is not None:
            # always reduce to a quadratic if possible
            return reduced.get_nondegenerate_segments()
        if (
            GeomMath.are_points_collinear(start, control1, end)
            and GeomMath.are_points_collinear(start, control2, end)
            and not start.equals_epsilon(end, 1e-7)
        ):
            extrema_points = [self.position_at(t) for t in sorted(self.x_extrema_t + self.y_extrema_t)]
            lines: List[Segment] = []
            last_point = start
            for point in extrema_points:
                lines.append(Line(last_point, point))
                last_point = point
            lines.append(Line(last_point, end))
            return [segment for line in lines for segment in line.get_nondegenerate_segments()]
        return [self]

    def _unit_normal_at(self, t: float) -> Vector2:
        if t <= 0:
            tangent = self.start_tangent
        elif t >= 1:
            tangent = self.end_tangent
        else:
            tangent = self.tangent_at(t)
            if tangent.magnitude_squared == 0:
                tangent = self._end - self._start
        return tangent.perpendicular.normalized()

    def offset_to(self, r: float, reverse: bool) -> List[Segment]:
        """Polyline approximating the curve offset by _r_ along its normals."""
        points: List[Vector2] = []
        result: List[Segment] = []
        for i in range(OFFSET_SAMPLES):
            t = i / (OFFSET_SAMPLES - 1)
            if reverse:
                t = 1 - t
            points.append(self.position_at(t) + self._unit_normal_at(t) * r)
            if i > 0 and points[i - 1] != points[i]:
                result.append(Line(points[i - 1], points[i]))
        return result

    def get_svg_path_fragment(self) -> str:
        return (
            f"C {svg_number(self._control1.x)} {svg_number(self._control1.y)} "
            f"{svg_number(self._control2.x)} {svg_number(self._control2.y)} "
            f"{svg_number(self._end.x)} {svg_number(self._end.y)}"
        )

    def stroke_left(self, line_width: float) -> List[Segment]:
        return self.offset_to(-line_width / 2, False)

    def stroke_right(self, line_width: float) -> List[Segment]:
        return self.offset_to(line_width / 2, True)

    def get_interior_extrema_ts(self) -> List[float]:
        return _unique_interior_ts(self.x_extrema_t + self.y_extrema_t)

    def intersection(self, ray: Ray) -> List[RayIntersection]:
        # rotate the ray onto the x-axis, so only y = 0 has to be solved
        trafo = _ray_frame_trafo(ray)
        p0 = GeomMath.transform_vector(trafo, self._start)
        p1 = GeomMath.transform_vector(trafo, self._control1)
        p2 = GeomMath.transform_vector(trafo, self._control2)
        p3 = GeomMath.transform_vector(trafo, self._end)

        # polynomial form of the cubic in y
        a = -p0.y + 3 * p1.y - 3 * p2.y + p3.y
        b = 3 * p0.y - 6 * p1.y + 3 * p2.y
        c = -3 * p0.y + 3 * p1.y
        d = p0.y
        return _bezier_ray_hits(self, ray, GeomMath.solve_cubic_roots_real(a, b, c, d))

    def get_signed_area_fragment(self) -> float:
        s, c1, c2, e = self._start, self._control1, self._control2, self._end
        return (1 / 20) * (
            s.x * (6 * c1.y + 3 * c2.y + e.y)
            + c1.x * (-6 * s.y + 3 * c2.y + 3 * e.y)
            + c2.x * (-3 * s.y - 3 * c1.y + 6 * e.y)
            + e.x * (-s.y - 3 * c1.y - 6 * c2.y)
        )

    def reversed(self) -> Segment:
        return Cubic(self._end, self._control2, self._control1, self._start)

    def transformed(self, affine_trafo: AffineTrafo) -> Segment:
        return Cubic(
            GeomMath.transform_vector(affine_trafo, self._start),
            GeomMath.transform_vector(affine_trafo, self._control1),
            GeomMath.transform_vector(affine_trafo, self._control2),
            GeomMath.transform_vector(affine_trafo, self._end),
        )

    def serialize(self) -> dict:
        return {
            "type": "Cubic",
            "startX": self._start.x,
            "startY": self._start.y,
            "control1X": self._control1.x,
            "control1Y": self._control1.y,
            "control2X": self._control2.x,
            "control2Y": self._control2.y,
            "endX": self._end.x,
            "endY": self._end.y,
        }

    @classmethod
    def deserialize(cls, data: dict) -> Cubic:
        """Create a Cubic from its serialized form."""
        return cls(
            Vector2(data["startX"], data["startY"]),
            Vector2(data["control1X"], data["control1Y"]),
            Vector2(data["control2X"], data["control2Y"]),
            Vector2(data["endX"], data["endY"]),
        )

    def write_to_context(self, context: DrawingContext) -> None:
        context.bezier_curve_to(
            self._control1.x, self._control1.y, self._control2.x, self._control2.y, self._end.x, self._end.y
        )
