# -*- coding: utf-8 -*-
"""
TopoQA - Segment Matcher

Decides whether two boundary segments "match": they overlap along their
length, stay within a distance tolerance of each other over that overlap,
and point in a compatible direction.
"""

import math
from typing import Optional

from topoqa.core.config import Orientation, SegmentMatchConfig
from topoqa.core.geometry import (
    Coordinate,
    LineSegment,
    angle_diff,
    point_distance,
    segment_hausdorff,
)


class SegmentMatcher:
    """
    Binary match predicate over two segments.

    Two segments match when:

    - each has a non-empty projection on the other (mutual overlap),
    - the Hausdorff distance between those projections is within the
      distance tolerance, so the segments are close along the whole
      shared stretch,
    - the angle between them is within the angle tolerance, for the
      configured orientation.

    The relation is symmetric. Instances hold only their tolerances and
    can be shared between threads.
    """

    def __init__(
        self,
        distance_tolerance: float,
        angle_tolerance: float,
        orientation: Orientation = Orientation.OPPOSITE
    ):
        config = SegmentMatchConfig(distance_tolerance, angle_tolerance, orientation)
        self.distance_tolerance = config.distance_tolerance
        self.angle_tolerance = config.angle_tolerance
        self.angle_tolerance_rad = math.radians(config.angle_tolerance)
        self.orientation = config.orientation

    @classmethod
    def from_config(cls, config: SegmentMatchConfig) -> "SegmentMatcher":
        return cls(config.distance_tolerance, config.angle_tolerance, config.orientation)

    @staticmethod
    def is_close_to(coord: Coordinate, seg: LineSegment, tolerance: float) -> bool:
        """True if ``coord`` is within ``tolerance`` of either endpoint of ``seg``."""
        return (
            point_distance(coord, seg.p0) < tolerance or
            point_distance(coord, seg.p1) < tolerance
        )

    def is_match_coords(
        self,
        p00: Coordinate,
        p01: Coordinate,
        p10: Coordinate,
        p11: Coordinate
    ) -> bool:
        return self.is_match(LineSegment(p00, p01), LineSegment(p10, p11))

    def is_match(self, seg0: LineSegment, seg1: LineSegment) -> bool:
        """
        Test whether two segments match.

        Args:
            seg0: First segment
            seg1: Second segment

        Returns:
            True if the segments match under the configured tolerances
        """
        if seg0.is_zero_length or seg1.is_zero_length:
            return False

        proj0 = seg1.project(seg0)
        proj1 = seg0.project(seg1)
        if proj0 is None or proj1 is None:
            return False

        if segment_hausdorff(proj0, proj1) > self.distance_tolerance:
            return False

        return self._is_angle_match(seg0, seg1)

    def _is_angle_match(self, seg0: LineSegment, seg1: LineSegment) -> bool:
        if self.orientation is Orientation.SAME:
            return angle_diff(seg0, seg1) <= self.angle_tolerance_rad
        if self.orientation is Orientation.OPPOSITE:
            return angle_diff(seg0.reversed(), seg1) <= self.angle_tolerance_rad
        return (
            angle_diff(seg0, seg1) <= self.angle_tolerance_rad or
            angle_diff(seg0.reversed(), seg1) <= self.angle_tolerance_rad
        )

    def has_mutual_overlap(self, src: LineSegment, tgt: LineSegment) -> bool:
        """True if either segment projects onto the other."""
        return self.projects_onto(src, tgt) or self.projects_onto(tgt, src)

    @staticmethod
    def projects_onto(seg0: LineSegment, seg1: LineSegment) -> bool:
        """
        True if ``seg0`` projects onto ``seg1``.

        The projection range of ``seg0`` must intersect [0, 1] along
        ``seg1``: it is neither entirely before the start nor entirely
        past the end.
        """
        pos0 = seg1.projection_factor(seg0.p0)
        pos1 = seg1.projection_factor(seg0.p1)
        if pos0 >= 1.0 and pos1 >= 1.0:
            return False
        if pos0 <= 0.0 and pos1 <= 0.0:
            return False
        return True


def segment_projection_distance(seg0: LineSegment, seg1: LineSegment) -> Optional[float]:
    """Hausdorff distance between the mutual projections, or None if they do not overlap."""
    proj0 = seg1.project(seg0)
    proj1 = seg0.project(seg1)
    if proj0 is None or proj1 is None:
        return None
    return segment_hausdorff(proj0, proj1)
