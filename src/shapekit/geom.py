"""Handling 2D vectors, rays, bounding boxes and numeric geometry helpers"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from shapekit.common import InvalidGeometryError

# Affine transformation [a00, a01, a10, a11, b0, b1] (same layout as shapely.affinity)
AffineTrafo = Sequence[Union[int, float]]

IDENTITY_TRAFO: Tuple[float, float, float, float, float, float] = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


###############################################################################
# Vector2
###############################################################################
@dataclass(frozen=True)
class Vector2:
    """
    Immutable 2D vector / point.

    Attributes:
        x (float): x-coordinate
        y (float): y-coordinate
    """

    x: float
    y: float

    @classmethod
    def from_polar(cls, magnitude: float, angle: float) -> Vector2:
        """Create a vector with the given _magnitude_ pointing at _angle_ (radians)."""
        return cls(magnitude * math.cos(angle), magnitude * math.sin(angle))

    @classmethod
    def from_dict(cls, data: dict) -> Vector2:
        """Create a Vector2 from a dictionary {"x": .., "y": ..}."""
        return cls(float(data["x"]), float(data["y"]))

    def to_dict(self) -> dict:
        """Convert the vector to a dictionary."""
        return {"x": self.x, "y": self.y}

    def to_tuple(self) -> Tuple[float, float]:
        """The vector as tuple (x, y)."""
        return (self.x, self.y)

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2:
        return Vector2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vector2:
        return Vector2(self.x / scalar, self.y / scalar)

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)

    def __iter__(self):
        yield self.x
        yield self.y

    @property
    def magnitude(self) -> float:
        """float: Euclidean length of the vector."""
        return math.hypot(self.x, self.y)

    @property
    def magnitude_squared(self) -> float:
        """float: Squared length of the vector."""
        return self.x * self.x + self.y * self.y

    @property
    def angle(self) -> float:
        """float: Angle of the vector in radians, measured from the positive x-axis."""
        return math.atan2(self.y, self.x)

    @property
    def perpendicular(self) -> Vector2:
        """Vector2: The vector rotated by -90 degrees in a y-down frame, i.e. (y, -x)."""
        return Vector2(self.y, -self.x)

    def is_finite(self) -> bool:
        """Whether both coordinates are finite."""
        return math.isfinite(self.x) and math.isfinite(self.y)

    def dot(self, other: Vector2) -> float:
        """Dot product."""
        return self.x * other.x + self.y * other.y

    def cross(self, other: Vector2) -> float:
        """Z-component of the 3D cross product (2D determinant)."""
        return self.x * other.y - self.y * other.x

    def distance(self, other: Vector2) -> float:
        """Euclidean distance to _other_."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def distance_squared(self, other: Vector2) -> float:
        """Squared Euclidean distance to _other_."""
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def normalized(self) -> Vector2:
        """
        The unit vector pointing into the same direction.

        Raises:
            InvalidGeometryError: if the vector has zero length
        """
        magnitude = self.magnitude
        if magnitude == 0:
            raise InvalidGeometryError("Cannot normalize a zero-length vector")
        return Vector2(self.x / magnitude, self.y / magnitude)

    def rotated(self, angle: float) -> Vector2:
        """The vector rotated by _angle_ (radians)."""
        cos_a = math.cos(angle)
        sin_a = math.sin(angle)
        return Vector2(self.x * cos_a - self.y * sin_a, self.x * sin_a + self.y * cos_a)

    def angle_between(self, other: Vector2) -> float:
        """Unsigned angle between this vector and _other_ in [0, pi]."""
        cosine = self.dot(other) / (self.magnitude * other.magnitude)
        return math.acos(min(1.0, max(-1.0, cosine)))

    def blend(self, other: Vector2, ratio: float) -> Vector2:
        """Linear interpolation: ratio 0 gives self, ratio 1 gives _other_."""
        return Vector2(self.x + (other.x - self.x) * ratio, self.y + (other.y - self.y) * ratio)

    def average(self, other: Vector2) -> Vector2:
        """Midpoint between this vector and _other_."""
        return self.blend(other, 0.5)

    def equals_epsilon(self, other: Vector2, epsilon: float) -> bool:
        """Whether both coordinates differ by at most _epsilon_."""
        return abs(self.x - other.x) <= epsilon and abs(self.y - other.y) <= epsilon

    def __str__(self):
        return f"Vector2({self.x}, {self.y})"


ZERO = Vector2(0.0, 0.0)
X_UNIT = Vector2(1.0, 0.0)
Y_UNIT = Vector2(0.0, 1.0)

# Anything that can be turned into a Vector2
PointLike = Union[Vector2, Tuple[float, float], Sequence[float]]


def as_vector(point: PointLike) -> Vector2:
    """Convert a point given as Vector2 or (x, y) into a Vector2 copy."""
    if isinstance(point, Vector2):
        return point
    return Vector2(float(point[0]), float(point[1]))


###############################################################################
# Ray
###############################################################################
@dataclass(frozen=True)
class Ray:
    """
    A half-line starting at _position_ in the (unit) _direction_.

    Attributes:
        position (Vector2): origin of the ray
        direction (Vector2): normalized direction of the ray
    """

    position: Vector2
    direction: Vector2

    def point_at_distance(self, distance: float) -> Vector2:
        """Point on the ray with the given _distance_ from its origin."""
        return self.position + self.direction * distance


###############################################################################
# GeomMath
###############################################################################
class GeomMath:
    """Class to provide various static methods related to geometry handling."""

    @staticmethod
    def transform_point(affine_trafo: AffineTrafo, point: PointLike) -> Tuple[float, float]:
        """
        Perform an affine transformation on the given 2D point.

        The given _affine_trafo_ is a list of 6 floats, performing an affine transformation.
        The transformation is defined as:
            | x' | = | a00 a01 b0 |   | x |
            | y' | = | a10 a11 b1 | * | y |
            | 1  | = |  0   0  1  |   | 1 |
        with
            affine_trafo = [a00, a01, a10, a11, b0, b1]
        See also shapely - Affine Transformations

        Args:
            affine_trafo (Tuple/List[float]): Affine transformation - [a00, a01, a10, a11, b0, b1]
            point (Vector2 or Tuple/List[float]): 2D point - (x, y)

        Returns:
            Tuple[float, float]: the transformed point
        """
        x_new = float(affine_trafo[0] * point[0] + affine_trafo[1] * point[1] + affine_trafo[4])
        y_new = float(affine_trafo[2] * point[0] + affine_trafo[3] * point[1] + affine_trafo[5])
        return (x_new, y_new)

    @staticmethod
    def transform_vector(affine_trafo: AffineTrafo, point: Vector2) -> Vector2:
        """Apply _affine_trafo_ to _point_ and return the result as Vector2."""
        return Vector2(*GeomMath.transform_point(affine_trafo, (point.x, point.y)))

    @staticmethod
    def linear_part(affine_trafo: AffineTrafo) -> NDArray[np.float64]:
        """The 2x2 linear part of _affine_trafo_ as numpy array."""
        return np.array(
            [[affine_trafo[0], affine_trafo[1]], [affine_trafo[2], affine_trafo[3]]],
            dtype=np.float64,
        )

    @staticmethod
    def linear(a1: float, a2: float, b1: float, b2: float, a3: float) -> float:
        """Linear map of _a3_ from the interval [a1, a2] onto [b1, b2]."""
        return (b2 - b1) / (a2 - a1) * (a3 - a1) + b1

    @staticmethod
    def modulo_between_down(value: float, minimum: float, maximum: float) -> float:
        """Map _value_ into [minimum, maximum) by adding multiples of the interval length."""
        divisor = maximum - minimum
        return (value - minimum) % divisor + minimum

    @staticmethod
    def modulo_between_up(value: float, minimum: float, maximum: float) -> float:
        """Map _value_ into (minimum, maximum] by adding multiples of the interval length."""
        return -GeomMath.modulo_between_down(-value, -maximum, -minimum)

    @staticmethod
    def solve_linear_root_real(a: float, b: float) -> Optional[List[float]]:
        """
        Real roots of a*x + b = 0.

        Returns:
            Optional[List[float]]: the root, an empty list, or None if every x is a root
        """
        if a == 0:
            return None if b == 0 else []
        return [-b / a]

    @staticmethod
    def solve_quadratic_roots_real(a: float, b: float, c: float) -> Optional[List[float]]:
        """
        Real roots of a*x^2 + b*x + c = 0 (double roots are reported twice).

        Returns:
            Optional[List[float]]: the roots, or None if every x is a root
        """
        epsilon = 1e7
        # degenerate to linear if the leading coefficient is negligible
        if a == 0 or abs(b / a) >= epsilon or abs(c / a) >= epsilon:
            return GeomMath.solve_linear_root_real(b, c)

        discriminant = b * b - 4 * a * c
        if discriminant < 0:
            return []
        sqrt_disc = math.sqrt(discriminant)
        return [(-b - sqrt_disc) / (2 * a), (-b + sqrt_disc) / (2 * a)]

    @staticmethod
    def solve_cubic_roots_real(a: float, b: float, c: float, d: float) -> Optional[List[float]]:
        """
        Real roots of a*x^3 + b*x^2 + c*x + d = 0.

        Uses numpy's companion-matrix root finder for the true cubic case.

        Returns:
            Optional[List[float]]: the real roots, or None if every x is a root
        """
        epsilon = 1e7
        if a == 0 or abs(b / a) >= epsilon or abs(c / a) >= epsilon or abs(d / a) >= epsilon:
            return GeomMath.solve_quadratic_roots_real(b, c, d)
        if d == 0:
            roots = GeomMath.solve_quadratic_roots_real(a, b, c) or []
            return [0.0] + roots

        roots = np.roots([a, b, c, d])
        tolerance = 1e-9 * max(1.0, float(np.max(np.abs(roots))))
        return sorted(float(root.real) for root in roots if abs(root.imag) <= tolerance)

    @staticmethod
    def line_line_intersection(p1: Vector2, p2: Vector2, p3: Vector2, p4: Vector2) -> Optional[Vector2]:
        """Intersection of the infinite lines p1-p2 and p3-p4, or None if they are parallel."""
        x12 = p1.x - p2.x
        x34 = p3.x - p4.x
        y12 = p1.y - p2.y
        y34 = p3.y - p4.y
        denom = x12 * y34 - y12 * x34
        if abs(denom) < 1e-10:
            return None
        a = p1.x * p2.y - p1.y * p2.x
        b = p3.x * p4.y - p3.y * p4.x
        return Vector2((a * x34 - x12 * b) / denom, (a * y34 - y12 * b) / denom)

    @staticmethod
    def circle_center_from_points(p1: Vector2, p2: Vector2, p3: Vector2) -> Optional[Vector2]:
        """Center of the circle through three points, or None if they are collinear."""
        mid1 = p1.average(p2)
        mid2 = p2.average(p3)
        return GeomMath.line_line_intersection(
            mid1, mid1 + (p2 - p1).perpendicular, mid2, mid2 + (p3 - p2).perpendicular
        )

    @staticmethod
    def distance_to_segment_squared(point: Vector2, start: Vector2, end: Vector2) -> float:
        """Squared distance from _point_ to the line segment start-end."""
        length_squared = start.distance_squared(end)
        if length_squared == 0:
            return point.distance_squared(start)
        t = ((point.x - start.x) * (end.x - start.x) + (point.y - start.y) * (end.y - start.y)) / length_squared
        if t < 0:
            return point.distance_squared(start)
        if t > 1:
            return point.distance_squared(end)
        return point.distance_squared(start.blend(end, t))

    @staticmethod
    def triangle_area_signed(a: Vector2, b: Vector2, c: Vector2) -> float:
        """Twice the signed area of the triangle a-b-c."""
        return a.x * (b.y - c.y) + b.x * (c.y - a.y) + c.x * (a.y - b.y)

    @staticmethod
    def are_points_collinear(a: Vector2, b: Vector2, c: Vector2, epsilon: float = 0.0) -> bool:
        """Whether the three points lie on a common line."""
        return abs(GeomMath.triangle_area_signed(a, b, c)) <= epsilon


###############################################################################
# Bounds
###############################################################################
@dataclass
class Bounds:
    """
    Represents an axis-aligned bounding box.

    An empty box (see Bounds.nothing()) has xmin = ymin = +inf and xmax = ymax = -inf,
    so that the union with any point yields that point.

    Attributes:
        xmin (float): The minimum x-coordinate.
        ymin (float): The minimum y-coordinate.
        xmax (float): The maximum x-coordinate.
        ymax (float): The maximum y-coordinate.
    """

    _xmin: float
    _ymin: float
    _xmax: float
    _ymax: float

    def __init__(self, xmin: float, ymin: float, xmax: float, ymax: float):
        """Initialize Bounds with coordinates (taken as they are, empty boxes allowed).

        Args:
            xmin: The minimum x-coordinate
            ymin: The minimum y-coordinate
            xmax: The maximum x-coordinate
            ymax: The maximum y-coordinate
        """
        self._xmin = float(xmin)
        self._ymin = float(ymin)
        self._xmax = float(xmax)
        self._ymax = float(ymax)

    @classmethod
    def nothing(cls) -> Bounds:
        """The empty box."""
        return cls(math.inf, math.inf, -math.inf, -math.inf)

    @classmethod
    def everything(cls) -> Bounds:
        """The box covering the whole plane."""
        return cls(-math.inf, -math.inf, math.inf, math.inf)

    @classmethod
    def from_point(cls, point: Vector2) -> Bounds:
        """Zero-sized box at _point_."""
        return cls(point.x, point.y, point.x, point.y)

    @classmethod
    def from_points(cls, points: Iterable[PointLike]) -> Bounds:
        """Smallest box containing all _points_ (empty box for no points)."""
        coords = np.array([tuple(point) for point in points], dtype=np.float64)
        if coords.size == 0:
            return cls.nothing()
        xmin, ymin = coords.min(axis=0)
        xmax, ymax = coords.max(axis=0)
        return cls(xmin, ymin, xmax, ymax)

    @property
    def xmin(self) -> float:
        """float: The minimum x-coordinate."""
        return self._xmin

    @property
    def ymin(self) -> float:
        """float: The minimum y-coordinate."""
        return self._ymin

    @property
    def xmax(self) -> float:
        """float: The maximum x-coordinate."""
        return self._xmax

    @property
    def ymax(self) -> float:
        """float: The maximum y-coordinate."""
        return self._ymax

    @property
    def extent(self) -> Tuple[float, float, float, float]:
        """The extent of the box as Tuple (xmin, ymin, xmax, ymax)."""
        return self._xmin, self._ymin, self._xmax, self._ymax

    @property
    def width(self) -> float:
        """float: The width of the box (difference between xmax and xmin)."""
        return self._xmax - self._xmin

    @property
    def height(self) -> float:
        """float: The height of the box (difference between ymax and ymin)."""
        return self._ymax - self._ymin

    @property
    def area(self) -> float:
        """float: The area of the box."""
        return self.width * self.height

    @property
    def center(self) -> Vector2:
        """Vector2: The center point of the box."""
        return Vector2((self._xmin + self._xmax) / 2, (self._ymin + self._ymax) / 2)

    def is_empty(self) -> bool:
        """Whether the box contains no point at all."""
        return self._xmin > self._xmax or self._ymin > self._ymax

    def is_finite(self) -> bool:
        """Whether all coordinates are finite."""
        return all(math.isfinite(value) for value in self.extent)

    def with_point(self, point: Vector2) -> Bounds:
        """The smallest box containing this box and _point_."""
        return Bounds(
            min(self._xmin, point.x),
            min(self._ymin, point.y),
            max(self._xmax, point.x),
            max(self._ymax, point.y),
        )

    def union(self, other: Bounds) -> Bounds:
        """The smallest box containing both boxes."""
        return Bounds(
            min(self._xmin, other.xmin),
            min(self._ymin, other.ymin),
            max(self._xmax, other.xmax),
            max(self._ymax, other.ymax),
        )

    def intersection(self, other: Bounds) -> Bounds:
        """The overlap of both boxes (possibly empty)."""
        return Bounds(
            max(self._xmin, other.xmin),
            max(self._ymin, other.ymin),
            min(self._xmax, other.xmax),
            min(self._ymax, other.ymax),
        )

    def dilated(self, amount: float) -> Bounds:
        """The box grown by _amount_ in every direction."""
        return Bounds(self._xmin - amount, self._ymin - amount, self._xmax + amount, self._ymax + amount)

    def contains_point(self, point: Vector2) -> bool:
        """Whether _point_ lies inside or on the border of the box."""
        return self._xmin <= point.x <= self._xmax and self._ymin <= point.y <= self._ymax

    def contains_bounds(self, other: Bounds) -> bool:
        """Whether _other_ lies completely inside this box."""
        return (
            self._xmin <= other.xmin
            and self._ymin <= other.ymin
            and self._xmax >= other.xmax
            and self._ymax >= other.ymax
        )

    def intersects_bounds(self, other: Bounds) -> bool:
        """Whether both boxes overlap (touching counts)."""
        return not self.intersection(other).is_empty()

    def equals_epsilon(self, other: Bounds, epsilon: float) -> bool:
        """Whether all coordinates differ by at most _epsilon_ (infinite values must match)."""
        for own, foreign in zip(self.extent, other.extent):
            if math.isfinite(own) and math.isfinite(foreign):
                if abs(own - foreign) > epsilon:
                    return False
            elif own != foreign:
                return False
        return True

    def closest_point_to(self, point: Vector2) -> Vector2:
        """The point of the box closest to _point_."""
        return Vector2(min(max(point.x, self._xmin), self._xmax), min(max(point.y, self._ymin), self._ymax))

    def minimum_distance_to_point_squared(self, point: Vector2) -> float:
        """Squared distance from _point_ to the closest point of the box."""
        return self.closest_point_to(point).distance_squared(point)

    def maximum_distance_to_point_squared(self, point: Vector2) -> float:
        """Squared distance from _point_ to the farthest corner of the box."""
        dx = max(abs(self._xmin - point.x), abs(self._xmax - point.x))
        dy = max(abs(self._ymin - point.y), abs(self._ymax - point.y))
        return dx * dx + dy * dy

    def transform_affine(self, affine_trafo: AffineTrafo) -> Bounds:
        """
        Bounds of the box transformed by [a00, a01, a10, a11, b0, b1].

        All four corners are transformed, so rotations give a conservative box.

        Args:
            affine_trafo (List[float]): Affine transformation [a00, a01, a10, a11, b0, b1]

        Returns:
            Bounds: The transformed box
        """
        if self.is_empty():
            return Bounds.nothing()
        (xmin, ymin, xmax, ymax) = self.extent
        corners = [(xmin, ymin), (xmax, ymin), (xmax, ymax), (xmin, ymax)]
        return Bounds.from_points(GeomMath.transform_point(affine_trafo, corner) for corner in corners)

    @classmethod
    def from_dict(cls, data: dict) -> Bounds:
        """Create a Bounds instance from a dictionary."""
        return cls(
            xmin=data.get("xmin", 0.0),
            ymin=data.get("ymin", 0.0),
            xmax=data.get("xmax", 0.0),
            ymax=data.get("ymax", 0.0),
        )

    def __str__(self):
        """Returns a string representation of the Bounds instance."""
        return (
            f"Bounds(xmin={self.xmin}, ymin={self.ymin}, "
            f"xmax={self.xmax}, ymax={self.ymax}, "
            f"width={self.width}, height={self.height})"
        )

    def to_dict(self) -> dict:
        """Convert the Bounds instance to a dictionary."""
        return {
            "xmin": self.xmin,
            "ymin": self.ymin,
            "xmax": self.xmax,
            "ymax": self.ymax,
        }
