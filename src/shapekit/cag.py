"""Boolean area operations (constructive area geometry) on top of shapely

Shapes are flattened into polygons, their fill is resolved with the non-zero
winding rule, the operation runs in shapely and the resulting rings are turned
back into shapes made of lines.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import shapely
import shapely.errors
import shapely.geometry
import shapely.geometry.base
import shapely.ops

from shapekit.common import BinaryOperation, CagError
from shapekit.consts import (
    CAG_CURVE_EPSILON,
    CAG_DISTANCE_EPSILON,
    CAG_MAX_LEVELS,
    CAG_MIN_LEVELS,
    CLIP_BOUNDARY_EPSILON,
)
from shapekit.geom import Vector2
from shapekit.segment import Line, Segment
from shapekit.shape import Shape
from shapekit.subpath import Subpath

__all__ = [
    "BinaryOperation",
    "ClipOptions",
    "binary_result",
    "clip_shape",
    "intersection_non_zero",
    "simplify_non_zero",
    "union_non_zero",
    "xor_non_zero",
]

logger = logging.getLogger(__name__)

Ring = List[Tuple[float, float]]


@dataclass(frozen=True)
class ClipOptions:
    """
    Which parts of the clipped segments are kept by clip_shape().

    Attributes:
        include_exterior (bool): keep parts outside the clipping area
        include_boundary (bool): keep parts running along the clipping outline
        include_interior (bool): keep parts inside the clipping area
    """

    include_exterior: bool = False
    include_boundary: bool = True
    include_interior: bool = True


###############################################################################
# Shape -> shapely
###############################################################################
def _flattened(shape: Shape) -> Shape:
    return shape.to_piecewise_linear(CAG_MIN_LEVELS, CAG_MAX_LEVELS, CAG_DISTANCE_EPSILON, CAG_CURVE_EPSILON)


def _fill_rings(flat_shape: Shape) -> List[Ring]:
    """Vertex lists of every drawable subpath, implicitly closed."""
    rings: List[Ring] = []
    for subpath in flat_shape.subpaths:
        if not subpath.is_drawable():
            continue
        ring = [segment.start.to_tuple() for segment in subpath.get_fill_segments()]
        if len(ring) >= 3:
            rings.append(ring)
    return rings


def _non_zero_geometry(shape: Shape) -> shapely.geometry.base.BaseGeometry:
    """
    Filled area of _shape_ under the non-zero winding rule.

    All rings are noded against each other, polygonized into faces and every
    face is kept if the winding number at an interior point is non-zero.
    """
    flat_shape = _flattened(shape)
    rings = _fill_rings(flat_shape)
    if not rings:
        return shapely.geometry.Polygon()

    try:
        noded = shapely.ops.unary_union([shapely.geometry.LineString(ring + [ring[0]]) for ring in rings])
        faces = list(shapely.ops.polygonize(noded))
        filled = []
        for face in faces:
            point = face.representative_point()
            if flat_shape.contains_point(Vector2(point.x, point.y)):
                filled.append(face)
        logger.debug("Polygonized %d rings into %d faces, %d filled", len(rings), len(faces), len(filled))
        result = shapely.ops.unary_union(filled) if filled else shapely.geometry.Polygon()
    except (shapely.errors.ShapelyError, ValueError, TypeError) as exc:
        raise CagError(f"Could not resolve the filled area of {len(rings)} rings: {exc}") from exc

    if not result.is_valid:
        result = result.buffer(0)
    return result


###############################################################################
# shapely -> Shape
###############################################################################
def _ring_subpath(coords: Sequence[Tuple[float, float]]) -> Optional[Subpath]:
    points = [Vector2(float(x), float(y)) for x, y in coords]
    # shapely repeats the first coordinate at the end
    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    if len(points) < 3:
        return None
    lines: List[Segment] = [Line(start, end) for start, end in zip(points, points[1:] + points[:1])]
    return Subpath(lines, None, True)


def _geometry_to_shape(geometry: shapely.geometry.base.BaseGeometry) -> Shape:
    """Shape from the polygons contained in _geometry_ (holes get the opposite orientation)."""
    polygons: List[shapely.geometry.Polygon] = []
    if isinstance(geometry, shapely.geometry.Polygon):
        polygons = [geometry]
    elif isinstance(geometry, (shapely.geometry.MultiPolygon, shapely.geometry.GeometryCollection)):
        for part in geometry.geoms:
            if isinstance(part, shapely.geometry.Polygon):
                polygons.append(part)
            elif not part.is_empty:
                logger.warning("Dropping degenerate %s from the area result", part.geom_type)
    elif not geometry.is_empty:
        logger.warning("Dropping degenerate %s from the area result", geometry.geom_type)

    subpaths: List[Subpath] = []
    for polygon in polygons:
        if polygon.is_empty:
            continue
        polygon = shapely.geometry.polygon.orient(polygon, sign=1.0)
        for ring in [polygon.exterior, *polygon.interiors]:
            subpath = _ring_subpath(ring.coords)
            if subpath is None:
                logger.warning("Dropping degenerate ring with %d coordinates", len(ring.coords))
            else:
                subpaths.append(subpath)
    return Shape(subpaths)


###############################################################################
# Contract
###############################################################################
def simplify_non_zero(shape: Shape) -> Shape:
    """Equivalent shape without self-intersections or overlaps (lines only)."""
    return _geometry_to_shape(_non_zero_geometry(shape))


def binary_result(shape_a: Shape, shape_b: Shape, operation: BinaryOperation) -> Shape:
    """
    Combine the filled areas of two shapes.

    Args:
        shape_a (Shape): first operand
        shape_b (Shape): second operand
        operation (BinaryOperation): union, intersection, difference (a minus b) or xor

    Returns:
        Shape: the resulting area

    Raises:
        CagError: if shapely fails
    """
    geometry_a = _non_zero_geometry(shape_a)
    geometry_b = _non_zero_geometry(shape_b)
    try:
        if operation == BinaryOperation.UNION:
            result = geometry_a.union(geometry_b)
        elif operation == BinaryOperation.INTERSECTION:
            result = geometry_a.intersection(geometry_b)
        elif operation == BinaryOperation.DIFFERENCE:
            result = geometry_a.difference(geometry_b)
        elif operation == BinaryOperation.XOR:
            result = geometry_a.symmetric_difference(geometry_b)
        else:
            raise CagError(f"Unknown binary operation: {operation}")
    except (shapely.errors.ShapelyError, ValueError, TypeError) as exc:
        raise CagError(f"Binary operation {operation.value} failed: {exc}") from exc
    return _geometry_to_shape(result)


def _reduce(shapes: Sequence[Shape], combine, name: str) -> Shape:
    geometries = [_non_zero_geometry(shape) for shape in shapes]
    if not geometries:
        return Shape()
    try:
        result = functools.reduce(combine, geometries)
    except (shapely.errors.ShapelyError, ValueError, TypeError) as exc:
        raise CagError(f"{name} of {len(geometries)} shapes failed: {exc}") from exc
    return _geometry_to_shape(result)


def union_non_zero(shapes: Sequence[Shape]) -> Shape:
    """Area covered by any of the _shapes_."""
    return _reduce(shapes, lambda a, b: a.union(b), "Union")


def intersection_non_zero(shapes: Sequence[Shape]) -> Shape:
    """Area covered by all of the _shapes_."""
    return _reduce(shapes, lambda a, b: a.intersection(b), "Intersection")


def xor_non_zero(shapes: Sequence[Shape]) -> Shape:
    """Area covered by an odd number of the _shapes_."""
    return _reduce(shapes, lambda a, b: a.symmetric_difference(b), "Xor")


def _point_at(segment: Segment, line: shapely.geometry.LineString, distance: float) -> Vector2:
    # exact end points keep the clipped pieces connected
    if distance <= 0:
        return segment.start
    if distance >= line.length:
        return segment.end
    return Vector2(*line.interpolate(distance).coords[0])


def clip_shape(clipper: Shape, target: Shape, options: Optional[ClipOptions] = None) -> Shape:
    """
    The parts of the (flattened) segments of _target_ selected by the area of _clipper_.

    Every target line is split where it crosses the clipper outline and each
    piece is classified by its midpoint as interior, boundary or exterior.

    Args:
        clipper (Shape): shape whose filled area clips
        target (Shape): shape whose segments are clipped
        options (Optional[ClipOptions]): which pieces to keep

    Returns:
        Shape: open subpaths made of the kept pieces
    """
    if options is None:
        options = ClipOptions()
    area = _non_zero_geometry(clipper)
    outline = area.boundary

    subpaths: List[Subpath] = []
    current: List[Segment] = []

    def flush() -> None:
        if current:
            subpaths.append(Subpath(list(current)))
            current.clear()

    try:
        for subpath in _flattened(target).subpaths:
            segments = subpath.get_fill_segments() if subpath.is_closed() else subpath.segments
            for segment in segments:
                line = shapely.geometry.LineString([segment.start.to_tuple(), segment.end.to_tuple()])
                crossings = shapely.get_coordinates(line.intersection(outline))
                distances = sorted({0.0, line.length} | {line.project(shapely.geometry.Point(xy)) for xy in crossings})
                for d0, d1 in zip(distances, distances[1:]):
                    if d1 <= d0:
                        continue
                    start = _point_at(segment, line, d0)
                    end = _point_at(segment, line, d1)
                    midpoint = shapely.geometry.Point(start.blend(end, 0.5).to_tuple())
                    if outline.distance(midpoint) <= CLIP_BOUNDARY_EPSILON:
                        keep = options.include_boundary
                    elif area.contains(midpoint):
                        keep = options.include_interior
                    else:
                        keep = options.include_exterior
                    if keep:
                        if current and current[-1].end != start:
                            flush()
                        current.append(Line(start, end))
                    else:
                        flush()
            flush()
    except (shapely.errors.ShapelyError, ValueError, TypeError) as exc:
        raise CagError(f"Clipping failed: {exc}") from exc

    return Shape(subpaths)
