# -*- coding: utf-8 -*-
"""
TopoQA - Geometry Utilities

This module provides the geometry primitives the QA checks are built on:
envelopes, line segments with projection and distance operations, fast
angle computation, Hausdorff helpers, and thin robust wrappers around
shapely overlay and relate operations.

Segment math works on plain ``(x, y)`` tuples; anything that needs a
real geometry engine (relate, overlay, nearest points) goes through
shapely.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from shapely import make_valid
from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiLineString, Point, box
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient as orient_polygon
from shapely.ops import nearest_points

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]

TWO_PI = 2.0 * math.pi
HALF_PI = math.pi / 2.0
QUARTER_PI = math.pi * 0.25

# Coefficients of the polynomial arctangent approximation on [0, 1]
_ATAN_A = 0.0776509570923569
_ATAN_B = -0.287434475393028
_ATAN_C = QUARTER_PI - _ATAN_A - _ATAN_B


def _xy(point: Sequence[float]) -> Coordinate:
    return (float(point[0]), float(point[1]))


def point_distance(p: Coordinate, q: Coordinate) -> float:
    """Euclidean distance between two coordinates."""
    return math.hypot(p[0] - q[0], p[1] - q[1])


def is_geometry_null(geometry: Optional[BaseGeometry]) -> bool:
    """
    Check if a geometry is null or empty.

    Args:
        geometry: A shapely geometry, or None

    Returns:
        True if geometry is None or empty
    """
    return geometry is None or geometry.is_empty


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Envelope:
    """Axis-aligned bounding box."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @classmethod
    def of_coordinates(cls, *coords: Coordinate) -> "Envelope":
        xs = [c[0] for c in coords]
        ys = [c[1] for c in coords]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @classmethod
    def of_geometry(cls, geometry: Optional[BaseGeometry]) -> Optional["Envelope"]:
        """Envelope of a geometry, or None for null/empty geometries."""
        if is_geometry_null(geometry):
            return None
        return cls(*geometry.bounds)

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def expand(self, distance: float) -> "Envelope":
        return Envelope(
            self.xmin - distance,
            self.ymin - distance,
            self.xmax + distance,
            self.ymax + distance,
        )

    def intersects(self, other: "Envelope") -> bool:
        return not (
            other.xmin > self.xmax or
            other.xmax < self.xmin or
            other.ymin > self.ymax or
            other.ymax < self.ymin
        )

    def contains_point(self, p: Coordinate) -> bool:
        return self.xmin <= p[0] <= self.xmax and self.ymin <= p[1] <= self.ymax

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    def to_geometry(self) -> BaseGeometry:
        """
        Smallest geometry covering the envelope.

        Degenerate envelopes become a Point or a LineString rather than
        a collapsed polygon.
        """
        if self.width == 0 and self.height == 0:
            return Point(self.xmin, self.ymin)
        if self.width == 0 or self.height == 0:
            return LineString([(self.xmin, self.ymin), (self.xmax, self.ymax)])
        return box(self.xmin, self.ymin, self.xmax, self.ymax)


# ---------------------------------------------------------------------------
# Angles
# ---------------------------------------------------------------------------

def _fast_atan(x: float) -> float:
    xx = x * x
    return ((_ATAN_A * xx + _ATAN_B) * xx + _ATAN_C) * x


def fast_atan2(y: float, x: float) -> float:
    """
    Polynomial approximation of ``math.atan2``.

    Maximum absolute error is about 0.00085 rad. Returns an angle in
    [-pi, pi]; like ``math.atan2`` the origin maps to 0.0.
    """
    ay = abs(y)
    ax = abs(x)
    if ax == 0.0 and ay == 0.0:
        return 0.0
    invert = ay > ax
    z = ax / ay if invert else ay / ax
    th = _fast_atan(z)
    if invert:
        th = HALF_PI - th
    if x < 0:
        th = math.pi - th
    return math.copysign(th, y)


def normalized_angle(angle: float) -> float:
    """Equivalent angle in the range [0, 2*pi)."""
    while angle < 0.0:
        angle += TWO_PI
    while angle >= TWO_PI:
        angle -= TWO_PI
    return angle


def angle_diff(seg0: "LineSegment", seg1: "LineSegment") -> float:
    """Minimum angle in [0, pi] between the directions of two segments."""
    a0 = normalized_angle(seg0.angle())
    a1 = normalized_angle(seg1.angle())
    return min(normalized_angle(a0 - a1), normalized_angle(a1 - a0))


# ---------------------------------------------------------------------------
# Line segments
# ---------------------------------------------------------------------------

class LineSegment:
    """A directed segment between two coordinates."""

    __slots__ = ("p0", "p1")

    def __init__(self, p0: Sequence[float], p1: Sequence[float]):
        self.p0 = _xy(p0)
        self.p1 = _xy(p1)

    def __repr__(self) -> str:
        return (
            f"LINESTRING ({self.p0[0]} {self.p0[1]}, {self.p1[0]} {self.p1[1]})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, LineSegment):
            return NotImplemented
        return self.p0 == other.p0 and self.p1 == other.p1

    def __hash__(self) -> int:
        return hash((self.p0, self.p1))

    @property
    def length(self) -> float:
        return point_distance(self.p0, self.p1)

    @property
    def is_zero_length(self) -> bool:
        return self.p0 == self.p1

    @property
    def envelope(self) -> Envelope:
        return Envelope.of_coordinates(self.p0, self.p1)

    def key(self) -> Tuple[Coordinate, Coordinate]:
        """Endpoint pair in canonical order, independent of direction."""
        if self.p1 < self.p0:
            return (self.p1, self.p0)
        return (self.p0, self.p1)

    def reversed(self) -> "LineSegment":
        return LineSegment(self.p1, self.p0)

    def angle(self) -> float:
        return fast_atan2(self.p1[1] - self.p0[1], self.p1[0] - self.p0[0])

    def equals_topo(self, other: "LineSegment") -> bool:
        """True if both segments have the same endpoints in either order."""
        return (
            (self.p0 == other.p0 and self.p1 == other.p1) or
            (self.p0 == other.p1 and self.p1 == other.p0)
        )

    def projection_factor(self, p: Coordinate) -> float:
        """
        Position of the projection of ``p`` along the segment.

        0 is p0, 1 is p1; values outside [0, 1] fall beyond the ends.
        NaN for a zero-length segment.
        """
        if p == self.p0:
            return 0.0
        if p == self.p1:
            return 1.0
        dx = self.p1[0] - self.p0[0]
        dy = self.p1[1] - self.p0[1]
        len2 = dx * dx + dy * dy
        if len2 <= 0.0:
            return math.nan
        return ((p[0] - self.p0[0]) * dx + (p[1] - self.p0[1]) * dy) / len2

    def _point_at(self, p: Coordinate, factor: float) -> Coordinate:
        if p == self.p0 or p == self.p1:
            return p
        return (
            self.p0[0] + factor * (self.p1[0] - self.p0[0]),
            self.p0[1] + factor * (self.p1[1] - self.p0[1]),
        )

    def project_point(self, p: Coordinate) -> Coordinate:
        """Projection of ``p`` onto the line through the segment."""
        return self._point_at(_xy(p), self.projection_factor(_xy(p)))

    def project(self, seg: "LineSegment") -> Optional["LineSegment"]:
        """
        Project another segment onto this one.

        The projection is clipped to this segment. Returns None when the
        other segment lies entirely before the start or past the end.
        """
        if self.is_zero_length:
            return None
        pf0 = self.projection_factor(seg.p0)
        pf1 = self.projection_factor(seg.p1)
        if pf0 >= 1.0 and pf1 >= 1.0:
            return None
        if pf0 <= 0.0 and pf1 <= 0.0:
            return None

        new_p0 = self._point_at(seg.p0, pf0)
        if pf0 < 0.0:
            new_p0 = self.p0
        if pf0 > 1.0:
            new_p0 = self.p1

        new_p1 = self._point_at(seg.p1, pf1)
        if pf1 < 0.0:
            new_p1 = self.p0
        if pf1 > 1.0:
            new_p1 = self.p1

        return LineSegment(new_p0, new_p1)

    def closest_point(self, p: Coordinate) -> Coordinate:
        """Point on the segment nearest to ``p``."""
        p = _xy(p)
        factor = self.projection_factor(p)
        if 0.0 < factor < 1.0:
            return self._point_at(p, factor)
        if point_distance(self.p0, p) < point_distance(self.p1, p):
            return self.p0
        return self.p1

    def distance_to_point(self, p: Coordinate) -> float:
        """Distance from ``p`` to the nearest point of the segment."""
        p = _xy(p)
        if self.is_zero_length:
            return point_distance(p, self.p0)
        dx = self.p1[0] - self.p0[0]
        dy = self.p1[1] - self.p0[1]
        len2 = dx * dx + dy * dy
        r = ((p[0] - self.p0[0]) * dx + (p[1] - self.p0[1]) * dy) / len2
        if r <= 0.0:
            return point_distance(p, self.p0)
        if r >= 1.0:
            return point_distance(p, self.p1)
        s = ((self.p0[1] - p[1]) * dx - (self.p0[0] - p[0]) * dy) / len2
        return abs(s) * math.sqrt(len2)

    def to_geometry(self) -> LineString:
        return LineString([self.p0, self.p1])


def segment_hausdorff(seg0: LineSegment, seg1: LineSegment) -> float:
    """Hausdorff distance between two segments (endpoint-to-segment form)."""
    return max(
        seg0.distance_to_point(seg1.p0),
        seg0.distance_to_point(seg1.p1),
        seg1.distance_to_point(seg0.p0),
        seg1.distance_to_point(seg0.p1),
    )


def vertex_hausdorff_points(
    seg0: LineSegment,
    seg1: LineSegment
) -> Tuple[Coordinate, Coordinate]:
    """
    Pair of points realizing the Hausdorff distance between two segments.

    Each endpoint is paired with its closest point on the other segment;
    the pair with the largest separation is returned.
    """
    best: Optional[Tuple[Coordinate, Coordinate]] = None
    best_dist = -1.0
    for seg, other in ((seg0, seg1), (seg1, seg0)):
        for p in (seg.p0, seg.p1):
            q = other.closest_point(p)
            dist = point_distance(p, q)
            if dist > best_dist:
                best_dist = dist
                best = (p, q)
    return best


# ---------------------------------------------------------------------------
# Coordinate extraction
# ---------------------------------------------------------------------------

def _coords_of(seq) -> List[Coordinate]:
    return [_xy(c) for c in seq]


def coordinate_arrays(
    geometry: Optional[BaseGeometry],
    orient_polygons: bool = False
) -> List[List[Coordinate]]:
    """
    Coordinate sequences of every line and ring in a geometry.

    Polygons contribute their shell followed by their holes. With
    ``orient_polygons`` shells are clockwise and holes counter-clockwise,
    so two adjacent polygons traverse their shared edges in opposite
    directions.
    """
    arrays: List[List[Coordinate]] = []
    _collect_coordinate_arrays(geometry, orient_polygons, arrays)
    return arrays


def _collect_coordinate_arrays(geometry, orient_polygons, arrays) -> None:
    if is_geometry_null(geometry):
        return
    geom_type = geometry.geom_type
    if geom_type == "Polygon":
        if orient_polygons:
            geometry = orient_polygon(geometry, sign=-1.0)
        arrays.append(_coords_of(geometry.exterior.coords))
        for ring in geometry.interiors:
            arrays.append(_coords_of(ring.coords))
    elif geom_type in ("LineString", "LinearRing"):
        arrays.append(_coords_of(geometry.coords))
    elif geom_type == "Point":
        arrays.append(_coords_of(geometry.coords))
    elif hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            _collect_coordinate_arrays(part, orient_polygons, arrays)


def geometry_vertices(geometry: Optional[BaseGeometry]) -> List[Coordinate]:
    """All vertices of a geometry, without the closing vertex of rings."""
    vertices: List[Coordinate] = []
    _collect_vertices(geometry, vertices)
    return vertices


def _collect_vertices(geometry, vertices) -> None:
    if is_geometry_null(geometry):
        return
    geom_type = geometry.geom_type
    if geom_type == "Polygon":
        for ring in [geometry.exterior, *geometry.interiors]:
            vertices.extend(_coords_of(ring.coords)[:-1])
    elif geom_type == "LinearRing":
        vertices.extend(_coords_of(geometry.coords)[:-1])
    elif geom_type in ("LineString", "Point"):
        vertices.extend(_coords_of(geometry.coords))
    elif hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            _collect_vertices(part, vertices)


def extract_lines(geometry: Optional[BaseGeometry]) -> MultiLineString:
    """Line-only components of a geometry, as a (possibly empty) MultiLineString."""
    lines: List[LineString] = []
    _collect_lines(geometry, lines)
    return MultiLineString(lines)


def _collect_lines(geometry, lines) -> None:
    if is_geometry_null(geometry):
        return
    if geometry.geom_type in ("LineString", "LinearRing"):
        lines.append(LineString(geometry.coords))
    elif hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            _collect_lines(part, lines)


# ---------------------------------------------------------------------------
# Robust predicates and overlay
# ---------------------------------------------------------------------------

def robust_intersection(geom_a: BaseGeometry, geom_b: BaseGeometry) -> BaseGeometry:
    """
    Intersection of two geometries, retried on repaired inputs.

    A second GEOSException propagates to the caller.
    """
    try:
        return geom_a.intersection(geom_b)
    except GEOSException as exc:
        logger.debug("Intersection failed (%s), retrying on repaired inputs", exc)
        return make_valid(geom_a).intersection(make_valid(geom_b))


def robust_difference(geom_a: BaseGeometry, geom_b: BaseGeometry) -> BaseGeometry:
    """Difference of two geometries, retried on repaired inputs."""
    try:
        return geom_a.difference(geom_b)
    except GEOSException as exc:
        logger.debug("Difference failed (%s), retrying on repaired inputs", exc)
        return make_valid(geom_a).difference(make_valid(geom_b))


def interiors_intersect(geom_a: BaseGeometry, geom_b: BaseGeometry) -> bool:
    """
    Test whether the interiors of two geometries intersect.

    Unlike the OGC ``overlaps`` predicate this is true when one geometry
    is wholly contained in the other.
    """
    return geom_a.relate(geom_b)[0] != "F"


def is_inside(coord: Coordinate, geometry: BaseGeometry) -> bool:
    """True if ``coord`` lies in the interior of ``geometry``."""
    envelope = Envelope.of_geometry(geometry)
    if envelope is None or not envelope.contains_point(coord):
        return False
    return interiors_intersect(geometry, Point(coord))


def discrete_hausdorff_points(
    geom_a: BaseGeometry,
    geom_b: BaseGeometry
) -> Optional[Tuple[Coordinate, Coordinate]]:
    """
    Pair of points realizing the discrete Hausdorff distance.

    Every vertex of each geometry is measured against the nearest point
    of the other; the farthest such pair is returned. None if either
    geometry is empty.
    """
    if is_geometry_null(geom_a) or is_geometry_null(geom_b):
        return None
    best: Optional[Tuple[Coordinate, Coordinate]] = None
    best_dist = -1.0
    for source, target in ((geom_a, geom_b), (geom_b, geom_a)):
        for vertex in geometry_vertices(source):
            nearest = nearest_points(Point(vertex), target)[1]
            q = (nearest.x, nearest.y)
            dist = point_distance(vertex, q)
            if dist > best_dist:
                best_dist = dist
                best = (vertex, q)
    return best


def segments_of(coords: Sequence[Coordinate]) -> Iterable[Tuple[int, Coordinate, Coordinate]]:
    """Consecutive vertex pairs of a coordinate sequence, with their index."""
    for i in range(len(coords) - 1):
        yield i, coords[i], coords[i + 1]

