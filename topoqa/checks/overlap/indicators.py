# -*- coding: utf-8 -*-
"""
TopoQA - Overlap Indicators

Two ways of drawing where, and by how much, two geometries overlap:

- ``OverlapBoundaryIndicators`` works on whole-geometry overlay results.
  It is fast and gives a good size measure, but overlay can fail or
  collapse on ill-conditioned input.
- ``OverlapSegmentIndicators`` tests one segment or vertex at a time
  with relate and point location. Slower, but it only needs predicates.

``compute_overlap_indicators`` tries the boundary strategy first and
falls back to the segment strategy.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from shapely.errors import GEOSException
from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry

from topoqa.core.errors import IndicatorComputationError
from topoqa.core.geometry import (
    Coordinate,
    coordinate_arrays,
    discrete_hausdorff_points,
    extract_lines,
    interiors_intersect,
    is_inside,
    robust_difference,
    robust_intersection,
    segments_of,
)

logger = logging.getLogger(__name__)

# Failures an overlay or relate call can raise on degenerate input
ROBUSTNESS_ERRORS = (GEOSException, ValueError)


class IndicatorSource(Enum):
    """Which strategy produced a set of overlap indicators."""

    BOUNDARY = "boundary"
    SEGMENT = "segment"
    NONE = "none"


@dataclass(frozen=True)
class IndicatorResult:
    """Overlap indicators for one pair of geometries, tagged with their source."""

    source: IndicatorSource
    overlap_indicators: Tuple[BaseGeometry, ...] = ()
    size_indicators: Tuple[BaseGeometry, ...] = ()

    @property
    def found(self) -> bool:
        return self.source is not IndicatorSource.NONE


class OverlapBoundaryIndicators:
    """
    Boundary-based overlap indicators.

    The overlap indicators are the parts of each boundary lying inside
    the other geometry, minus any shared linework. The size indicator is
    the line realizing the discrete Hausdorff distance between the two
    boundary pieces. Robustness failures are recorded in ``failed`` and
    ``error`` instead of being raised.
    """

    @staticmethod
    def overlapping_boundary(g0: BaseGeometry, g1: BaseGeometry) -> BaseGeometry:
        """
        Part of the boundary of ``g1`` bounding the overlap with ``g0``.

        Args:
            g0: Geometry whose interior the boundary must lie in
            g1: Geometry whose boundary is clipped

        Returns:
            Line-only geometry (possibly empty)
        """
        try:
            intersect_lines = extract_lines(robust_intersection(g0, g1))
        except ROBUSTNESS_ERRORS as exc:
            logger.debug("Line intersection failed (%s), ignoring shared linework", exc)
            intersect_lines = None

        overlap_bdy_lines = extract_lines(robust_intersection(g0, g1.boundary))
        if intersect_lines is not None and not intersect_lines.is_empty:
            ind_all = robust_difference(overlap_bdy_lines, intersect_lines)
        else:
            ind_all = robust_difference(overlap_bdy_lines, g0.boundary)
        return extract_lines(ind_all)

    def __init__(self, g0: BaseGeometry, g1: BaseGeometry):
        self.overlap_indicators: List[BaseGeometry] = []
        self.size_indicators: List[BaseGeometry] = []
        self.failed = False
        self.error = None
        self._compute(g1, g0)

    def _compute(self, g0: BaseGeometry, g1: BaseGeometry) -> None:
        try:
            robust_intersection(g0, g1)
        except ROBUSTNESS_ERRORS as exc:
            self._fail(exc)
            return

        try:
            ob0 = self.overlapping_boundary(g0, g1)
            ob1 = self.overlapping_boundary(g1, g0)
            if not ob0.is_empty:
                self.overlap_indicators.append(ob0)
            if not ob1.is_empty:
                self.overlap_indicators.append(ob1)
            if not ob0.is_empty and not ob1.is_empty:
                points = discrete_hausdorff_points(ob0, ob1)
                if points is not None:
                    self.size_indicators.append(LineString(points))
        except ROBUSTNESS_ERRORS as exc:
            self._fail(exc)

    def _fail(self, exc: Exception) -> None:
        logger.debug("Boundary overlap indicators failed: %s", exc)
        self.failed = True
        self.error = exc


class OverlapSegmentIndicators:
    """
    Segment-based overlap indicators.

    Overlap indicators are the segments of either geometry whose interior
    meets the interior of the other. Size indicators are the vertices of
    either geometry lying strictly inside the other; there may be none,
    for example when two shapes cross without enclosing a vertex.
    """

    def __init__(self, g0: BaseGeometry, g1: BaseGeometry):
        self.overlap_indicators: List[BaseGeometry] = []
        self._inside_coords: List[Coordinate] = []
        self.failed = False
        self._compute(g0, g1)
        self._compute(g1, g0)

    @property
    def size_indicators(self) -> List[BaseGeometry]:
        return [Point(coord) for coord in self._inside_coords]

    def _compute(self, g0: BaseGeometry, g1: BaseGeometry) -> None:
        try:
            self._compute_size_indicators(g0, g1)
            self._compute_overlap_indicators(g0, g1)
        except ROBUSTNESS_ERRORS as exc:
            logger.debug("Segment overlap indicators incomplete: %s", exc)
            self.failed = True

    def _compute_size_indicators(self, g0: BaseGeometry, g1: BaseGeometry) -> None:
        for coords in coordinate_arrays(g0, orient_polygons=False):
            for coord in coords[:-1]:
                if is_inside(coord, g1):
                    self._inside_coords.append(coord)

    def _compute_overlap_indicators(self, g0: BaseGeometry, g1: BaseGeometry) -> None:
        for coords in coordinate_arrays(g0, orient_polygons=True):
            for _, p0, p1 in segments_of(coords):
                line = LineString([p0, p1])
                if interiors_intersect(g1, line):
                    self.overlap_indicators.append(line)


def _boundary_result(g0: BaseGeometry, g1: BaseGeometry) -> IndicatorResult:
    boundary = OverlapBoundaryIndicators(g0, g1)
    if boundary.failed:
        raise IndicatorComputationError(f"overlay failed: {boundary.error}")
    if not boundary.overlap_indicators or not boundary.size_indicators:
        raise IndicatorComputationError("boundary indicators incomplete")
    return IndicatorResult(
        IndicatorSource.BOUNDARY,
        tuple(boundary.overlap_indicators),
        tuple(boundary.size_indicators),
    )


def compute_overlap_indicators(g0: BaseGeometry, g1: BaseGeometry) -> IndicatorResult:
    """
    Indicators for two geometries whose interiors intersect.

    The boundary result is used when it has both overlap and size
    indicators; otherwise the segment result is used if it has any
    indicator at all.

    Args:
        g0: First geometry
        g1: Second geometry

    Returns:
        IndicatorResult; its source is NONE when neither strategy
        produced anything
    """
    try:
        return _boundary_result(g0, g1)
    except IndicatorComputationError as exc:
        logger.debug("Falling back to segment overlap indicators: %s", exc)

    segment = OverlapSegmentIndicators(g0, g1)
    size_indicators = segment.size_indicators
    if segment.overlap_indicators or size_indicators:
        return IndicatorResult(
            IndicatorSource.SEGMENT,
            tuple(segment.overlap_indicators),
            tuple(size_indicators),
        )
    return IndicatorResult(IndicatorSource.NONE)
