# -*- coding: utf-8 -*-
"""
TopoQA - Coverage Gap Detection

This module finds gaps and slivers inside a single polygon coverage.

Adjacent polygons of a clean coverage share their edges exactly. Where
two boundary segments of different polygons are close and anti-parallel
but not identical, the coverage has a gap or an overlap between them.
Edges that are shared exactly are removed up front by counting, so only
unpaired ("unique") edges are searched for matches.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry import LineString, Point
from shapely.geometry.base import BaseGeometry

from topoqa.checks.segment_counter import FeatureSegmentCounter
from topoqa.checks.segment_matcher import SegmentMatcher
from topoqa.checks.summary import calculate_length_stats, report_check_summary
from topoqa.core.config import (
    DEFAULT_COVERAGE_GAP_CONFIG,
    DEFAULT_EXECUTION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    CoverageGapConfig,
    ExecutionConfig,
    IndexConfig,
    OutputConfig,
)
from topoqa.core.features import (
    Feature,
    FeatureCollection,
    FeatureSegment,
    Indicator,
    sorted_by_id,
)
from topoqa.core.geometry import Coordinate, Envelope, LineSegment, vertex_hausdorff_points
from topoqa.core.spatial_ops import SpatialIndex, create_index, run_query_units
from topoqa.utils.feature_io import Fence, fence_geometry, require_collection
from topoqa.utils.messaging import DummyTaskMonitor, TaskMonitor, ToolMessenger

logger = logging.getLogger(__name__)

SegmentId = Tuple[Any, int, int]

# (query segment, matched candidates, size indicator geometries)
_UnitResult = Tuple[FeatureSegment, List[FeatureSegment], List[Tuple[FeatureSegment, List[BaseGeometry]]]]


def create_indicator_list(seg0: LineSegment, seg1: LineSegment) -> List[BaseGeometry]:
    """
    Size indicators for a pair of matching segments.

    If both mutual projections are the same segment the segments are
    parallel and overlapping, and the indicators are the projection
    endpoints not shared by both segments. Otherwise the indicator is the
    line between the points realizing the Hausdorff distance of the two
    projections.

    Args:
        seg0: A matching segment
        seg1: The segment it matches

    Returns:
        List of Point or LineString geometries (empty if the segments
        do not overlap)
    """
    proj1 = seg0.project(seg1)
    proj2 = seg1.project(seg0)
    if proj1 is None or proj2 is None:
        return []
    if proj1.equals_topo(proj2):
        return create_equal_projection_indicators(seg0, seg1, proj1)

    p, q = vertex_hausdorff_points(proj1, proj2)
    return [LineString([p, q])]


def create_equal_projection_indicators(
    seg0: LineSegment,
    seg1: LineSegment,
    proj: LineSegment
) -> List[BaseGeometry]:
    """Projection endpoints that are not an endpoint of both segments (0 to 2 points)."""
    indicators = []
    for pt in (proj.p0, proj.p1):
        in_seg0 = pt == seg0.p0 or pt == seg0.p1
        in_seg1 = pt == seg1.p0 or pt == seg1.p1
        if not (in_seg0 and in_seg1):
            indicators.append(Point(pt))
    return indicators


class InternalMatchedSegmentFinder:
    """
    Finds almost-shared boundary segments within one coverage.

    Matching always uses opposite orientation: coverage polygons are
    wound consistently, so neighbours traverse a shared edge in reverse.
    A finder computes once; later calls return the cached results.
    """

    create_indicator_list = staticmethod(create_indicator_list)
    create_equal_projection_indicators = staticmethod(create_equal_projection_indicators)

    def __init__(
        self,
        collection: FeatureCollection,
        config: Optional[CoverageGapConfig] = None,
        monitor: Optional[TaskMonitor] = None,
        index_config: Optional[IndexConfig] = None,
        execution_config: Optional[ExecutionConfig] = None,
        output_config: Optional[OutputConfig] = None
    ):
        """
        Initialize the finder.

        Args:
            collection: Coverage polygons
            config: Tolerances and indicator switch
            monitor: Progress and cancellation monitor
            index_config: Spatial index selection
            execution_config: Query phase execution settings
            output_config: Indicator kind names
        """
        self.collection = require_collection(collection, "coverage")
        self.config = config or DEFAULT_COVERAGE_GAP_CONFIG
        self.monitor = monitor or DummyTaskMonitor()
        self.index_config = index_config
        self.execution_config = execution_config or DEFAULT_EXECUTION_CONFIG
        self.output_config = output_config or DEFAULT_OUTPUT_CONFIG
        self.matcher = SegmentMatcher.from_config(self.config.to_match_config())

        self.fence: Optional[BaseGeometry] = None
        self.is_computed = False
        self.was_cancelled = False

        self._unique_segments: List[FeatureSegment] = []
        self._index: Optional[SpatialIndex] = None
        self._matched_segments: List[FeatureSegment] = []
        self._matched_lines: List[Indicator] = []
        self._size_indicators: List[Indicator] = []
        self._matches: Dict[SegmentId, Dict[SegmentId, FeatureSegment]] = {}
        self._ordinals = self.collection.ordinals()

    def set_fence(self, fence: Optional[Fence]) -> None:
        """Restrict the check to segments intersecting an envelope or geometry."""
        self.fence = fence_geometry(fence)

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def compute_matches(self) -> None:
        if self.is_computed:
            return
        self.is_computed = True

        logger.debug("Collecting unique segments of %r", self.collection)
        counter = FeatureSegmentCounter(
            count_zero_length_segments=False,
            monitor=self.monitor,
            fence=self.fence,
        )
        if not counter.add_collection(self.collection):
            self._cancel()
            return
        unique = counter.get_unique_segments()
        logger.debug("%d unique segments out of %d distinct", len(unique), len(counter))

        self._create_index(unique)

        self.monitor.allow_cancellation_requests()
        self.monitor.report("Finding segment matches")
        results = run_query_units(
            unique,
            self._match_segment,
            self.monitor,
            "segments",
            max_workers=self.execution_config.max_workers,
        )
        if results is None:
            self._cancel()
            return

        self._unique_segments = unique
        for query_seg, partners, indicator_groups in results:
            self._merge(query_seg, partners, indicator_groups)

        logger.debug(
            "%d matched segments, %d size indicators",
            len(self._matched_segments),
            len(self._size_indicators),
        )

    def _cancel(self) -> None:
        logger.info("Coverage gap search cancelled; results discarded")
        self.was_cancelled = True
        self._index = None

    def _create_index(self, segments: List[FeatureSegment]) -> None:
        self.monitor.allow_cancellation_requests()
        self.monitor.report("Creating segment index")
        index = create_index(self.index_config)
        index.build((seg.envelope, seg) for seg in segments if not seg.is_zero_length)
        self._index = index

    def _match_segment(self, query_seg: FeatureSegment) -> _UnitResult:
        """Find every candidate matching one query segment. Reads shared state only."""
        partners: List[FeatureSegment] = []
        indicator_groups: List[Tuple[FeatureSegment, List[BaseGeometry]]] = []
        if query_seg.is_zero_length:
            return query_seg, partners, indicator_groups

        query_env = query_seg.envelope.expand(self.config.distance_tolerance)
        for candidate in self._index.query(query_env):
            if candidate.feature is query_seg.feature:
                continue
            if query_seg.equals_topo(candidate):
                continue
            if candidate.is_zero_length:
                continue
            if not self.matcher.is_match(query_seg, candidate):
                continue

            partners.append(candidate)
            # Each pair is seen from both sides; only the side with the
            # larger feature rank emits the size indicator
            if self.config.create_indicators and self._outranks(query_seg, candidate):
                indicator_groups.append((candidate, create_indicator_list(query_seg, candidate)))

        return query_seg, partners, indicator_groups

    def _outranks(self, seg: FeatureSegment, other: FeatureSegment) -> bool:
        return self._ordinals[id(seg.feature)] > self._ordinals[id(other.feature)]

    def _merge(
        self,
        query_seg: FeatureSegment,
        partners: List[FeatureSegment],
        indicator_groups: List[Tuple[FeatureSegment, List[BaseGeometry]]]
    ) -> None:
        if not partners:
            return

        cfg = self.output_config
        self._matched_segments.append(query_seg)
        if self.config.create_indicators:
            self._matched_lines.append(
                Indicator(query_seg.to_geometry(), cfg.kind_matched_segment, (query_seg.fid,))
            )
        for candidate in partners:
            self._add_match(query_seg, candidate)
            self._add_match(candidate, query_seg)
        for candidate, geometries in indicator_groups:
            source_ids = (query_seg.fid, candidate.fid)
            for geometry in geometries:
                self._size_indicators.append(Indicator(geometry, cfg.kind_gap_size, source_ids))

    def _add_match(self, seg: FeatureSegment, partner: FeatureSegment) -> None:
        self._matches.setdefault(seg.identity, {})[partner.identity] = partner

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_matched_segments(self) -> Optional[List[Indicator]]:
        """
        Matched segments as line indicators.

        Returns:
            List of indicators, or None when indicators are disabled
        """
        self.compute_matches()
        if not self.config.create_indicators:
            return None
        return list(self._matched_lines)

    def get_matched_feature_segments(self) -> List[FeatureSegment]:
        """The matched segments with their provenance."""
        self.compute_matches()
        return list(self._matched_segments)

    def get_size_indicators(self) -> Optional[List[Indicator]]:
        """
        Gap size indicators: points or Hausdorff lines.

        Returns:
            List of indicators, or None when indicators are disabled
        """
        self.compute_matches()
        if not self.config.create_indicators:
            return None
        return list(self._size_indicators)

    def get_matched_features(self) -> FeatureCollection:
        """Features owning at least one matched segment, ordered by id."""
        self.compute_matches()
        features = sorted_by_id((seg.feature for seg in self._matched_segments), self._ordinals)
        return self.collection.with_features(features, name=f"{self.collection.name}_matched")

    def get_unique_segment_features(self) -> FeatureCollection:
        """Features owning at least one unique segment, ordered by id."""
        self.compute_matches()
        features = sorted_by_id((seg.feature for seg in self._unique_segments), self._ordinals)
        return self.collection.with_features(features, name=f"{self.collection.name}_unique")

    def get_adjacent_features(self) -> FeatureCollection:
        """Features with a unique segment touching an endpoint of a matched segment."""
        self.compute_matches()
        features: List[Feature] = []
        for seg in self._matched_segments:
            features.extend(self._features_with_vertex(seg.p0))
            features.extend(self._features_with_vertex(seg.p1))
        return self.collection.with_features(
            sorted_by_id(features, self._ordinals), name=f"{self.collection.name}_adjacent"
        )

    def _features_with_vertex(self, pt: Coordinate) -> List[Feature]:
        if self._index is None:
            return []
        return [
            seg.feature for seg in self._index.query(Envelope.of_coordinates(pt))
            if seg.p0 == pt or seg.p1 == pt
        ]

    def get_matches(self, seg: FeatureSegment) -> List[FeatureSegment]:
        """Segments matched with ``seg``, in the order the matches were found."""
        self.compute_matches()
        return list(self._matches.get(seg.identity, {}).values())

    def find_triangle_matches(self) -> List[FeatureSegment]:
        """
        Matched segments forming a triangular gap.

        A segment qualifies when it matches exactly two segments of the
        same other feature, each of which matches nothing else.
        """
        self.compute_matches()
        return [seg for seg in self._matched_segments if self._is_triangle_match(seg)]

    def _is_triangle_match(self, seg: FeatureSegment) -> bool:
        partners = list(self._matches.get(seg.identity, {}).values())
        if len(partners) != 2:
            return False
        for partner in partners:
            if len(self._matches.get(partner.identity, {})) != 1:
                return False
        return partners[0].feature is partners[1].feature


def run_coverage_gap_check(
    collection: FeatureCollection,
    distance_tolerance: float = 1.0,
    angle_tolerance: float = 22.5,
    fence: Optional[Fence] = None,
    monitor: Optional[TaskMonitor] = None,
    max_workers: int = 1,
    verbose: bool = False
) -> Tuple[InternalMatchedSegmentFinder, Dict[str, Any]]:
    """
    Convenience function to run the coverage gap check.

    Args:
        collection: Coverage polygons
        distance_tolerance: Maximum gap width to report (map units)
        angle_tolerance: Maximum angle between matching segments (degrees)
        fence: Optional region of interest
        monitor: Progress and cancellation monitor
        max_workers: Query phase thread count
        verbose: Log progress details at INFO

    Returns:
        Tuple of (finder, stats_dict)
    """
    config = CoverageGapConfig(
        distance_tolerance=distance_tolerance,
        angle_tolerance=angle_tolerance,
    )
    messenger = ToolMessenger("CoverageGaps")
    messenger.start_timer()
    messenger.debug(
        f"Distance tolerance {distance_tolerance}, angle tolerance {angle_tolerance}",
        verbose,
    )

    finder = InternalMatchedSegmentFinder(
        collection,
        config=config,
        monitor=monitor,
        execution_config=ExecutionConfig(max_workers=max_workers),
    )
    finder.set_fence(fence)
    finder.compute_matches()

    if finder.was_cancelled:
        messenger.warning("Check cancelled, no results produced")

    stats: Dict[str, Any] = {
        "total_features": len(collection),
        "matched_segments": len(finder.get_matched_feature_segments()),
        "matched_features": len(finder.get_matched_features()),
        "triangle_matches": len(finder.find_triangle_matches()),
        "cancelled": finder.was_cancelled,
    }
    stats.update(calculate_length_stats(finder.get_size_indicators(), "size_indicators"))

    report_check_summary(messenger, len(collection), stats["matched_segments"], stats)
    return finder, stats
