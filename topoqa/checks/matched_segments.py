# -*- coding: utf-8 -*-
"""
TopoQA - Matched Segment Detection

This module compares the boundaries of two collections: every edge of a
reference collection is indexed, and every edge of a subject collection
is tested against it. Edges that almost, but not exactly, coincide with a
reference edge are reported together with gap size indicators.

Typical use is checking that a dataset lines up with the one it was
digitized against.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from topoqa.checks.coverage_gaps import create_indicator_list
from topoqa.checks.segment_matcher import SegmentMatcher
from topoqa.checks.summary import calculate_length_stats, report_check_summary
from topoqa.core.config import (
    DEFAULT_EXECUTION_CONFIG,
    DEFAULT_MATCHED_SEGMENT_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    ExecutionConfig,
    IndexConfig,
    MatchedSegmentConfig,
    Orientation,
    OutputConfig,
)
from topoqa.core.features import Feature, FeatureCollection, FeatureSegment, Indicator, feature_segments
from topoqa.core.geometry import is_geometry_null
from topoqa.core.spatial_ops import SpatialIndex, create_index, run_query_units
from topoqa.utils.feature_io import require_collection
from topoqa.utils.messaging import DummyTaskMonitor, TaskMonitor, ToolMessenger

logger = logging.getLogger(__name__)

REFERENCE = 0
SUBJECT = 1


class MatchedSegmentFinder:
    """
    Finds subject segments matching, but not equal to, reference segments.

    Unlike the coverage gap finder there is no counting step (duplicate
    reference edges are all indexed) and no id tie-break: only the
    subject side is scanned, so each pair is seen once.
    """

    def __init__(
        self,
        reference: FeatureCollection,
        subject: FeatureCollection,
        config: Optional[MatchedSegmentConfig] = None,
        monitor: Optional[TaskMonitor] = None,
        index_config: Optional[IndexConfig] = None,
        execution_config: Optional[ExecutionConfig] = None,
        output_config: Optional[OutputConfig] = None
    ):
        self.collections = (
            require_collection(reference, "reference collection"),
            require_collection(subject, "subject collection"),
        )
        self.config = config or DEFAULT_MATCHED_SEGMENT_CONFIG
        self.monitor = monitor or DummyTaskMonitor()
        self.index_config = index_config
        self.execution_config = execution_config or DEFAULT_EXECUTION_CONFIG
        self.output_config = output_config or DEFAULT_OUTPUT_CONFIG
        self.matcher = SegmentMatcher.from_config(self.config.to_match_config())

        self.is_computed = False
        self.was_cancelled = False
        self._index: Optional[SpatialIndex] = None
        self._matched: Tuple[List[Indicator], List[Indicator]] = ([], [])
        self._size_indicators: List[Indicator] = []

    def compute_matches(self) -> None:
        if self.is_computed:
            return
        self.is_computed = True

        self.monitor.allow_cancellation_requests()
        self.monitor.report("Creating segment index")
        self._index = self._create_index(self.collections[REFERENCE])
        logger.debug("Indexed %d reference segments", len(self._index))

        self.monitor.report("Testing segments")
        results = run_query_units(
            self.collections[SUBJECT].features,
            self._match_feature,
            self.monitor,
            "features",
            max_workers=self.execution_config.max_workers,
        )
        if results is None:
            logger.info("Matched segment search cancelled; results discarded")
            self.was_cancelled = True
            return

        for reference_lines, subject_lines, size_indicators in results:
            self._matched[REFERENCE].extend(reference_lines)
            self._matched[SUBJECT].extend(subject_lines)
            self._size_indicators.extend(size_indicators)

    def _create_index(self, collection: FeatureCollection) -> SpatialIndex:
        index = create_index(self.index_config)
        items = []
        for feature in collection:
            for seg in feature_segments(feature, orient_polygons=True):
                items.append((seg.envelope, seg))
        return index.build(items)

    def _match_feature(
        self,
        feature: Feature
    ) -> Tuple[List[Indicator], List[Indicator], List[Indicator]]:
        reference_lines: List[Indicator] = []
        subject_lines: List[Indicator] = []
        size_indicators: List[Indicator] = []
        if is_geometry_null(feature.geometry):
            return reference_lines, subject_lines, size_indicators

        cfg = self.output_config
        for query_seg in feature_segments(feature, orient_polygons=True):
            matches = self._check_matches(feature, query_seg)
            if not matches:
                continue
            subject_lines.append(
                Indicator(query_seg.to_geometry(), cfg.kind_matched_segment, (feature.fid,))
            )
            for candidate, geometries in matches:
                source_ids = (feature.fid, candidate.fid)
                reference_lines.append(
                    Indicator(candidate.to_geometry(), cfg.kind_matched_segment, (candidate.fid,))
                )
                size_indicators.extend(
                    Indicator(geometry, cfg.kind_gap_size, source_ids) for geometry in geometries
                )
        return reference_lines, subject_lines, size_indicators

    def _check_matches(
        self,
        feature: Feature,
        query_seg: FeatureSegment
    ) -> List[Tuple[FeatureSegment, List[BaseGeometry]]]:
        query_env = query_seg.envelope.expand(self.config.distance_tolerance)
        matches = []
        for candidate in self._index.query(query_env):
            if candidate.feature is feature:
                continue
            if query_seg.equals_topo(candidate):
                continue
            if self.matcher.is_match(query_seg, candidate):
                matches.append((candidate, create_indicator_list(query_seg, candidate)))
        return matches

    def get_matched_segments(self, i: int) -> List[Indicator]:
        """
        Matched segments of one side.

        Args:
            i: 0 for the matched reference segments, 1 for the matched
                subject segments

        Returns:
            List of line indicators
        """
        if i not in (REFERENCE, SUBJECT):
            raise IndexError(f"Collection index must be 0 or 1, got {i!r}")
        self.compute_matches()
        return list(self._matched[i])

    def get_size_indicators(self) -> List[Indicator]:
        self.compute_matches()
        return list(self._size_indicators)


def run_matched_segment_check(
    reference: FeatureCollection,
    subject: FeatureCollection,
    distance_tolerance: float = 1.0,
    angle_tolerance: float = 22.5,
    orientation: Orientation = Orientation.OPPOSITE,
    monitor: Optional[TaskMonitor] = None,
    max_workers: int = 1,
    verbose: bool = False
) -> Tuple[MatchedSegmentFinder, Dict[str, Any]]:
    """
    Convenience function to run the matched segment check.

    Args:
        reference: Reference collection (indexed)
        subject: Subject collection (scanned)
        distance_tolerance: Maximum distance between matching segments
        angle_tolerance: Maximum angle between matching segments (degrees)
        orientation: Required relative direction of matching segments
        monitor: Progress and cancellation monitor
        max_workers: Query phase thread count
        verbose: Log progress details at INFO

    Returns:
        Tuple of (finder, stats_dict)
    """
    config = MatchedSegmentConfig(
        distance_tolerance=distance_tolerance,
        angle_tolerance=angle_tolerance,
        orientation=orientation,
    )
    messenger = ToolMessenger("MatchedSegments")
    messenger.start_timer()
    messenger.debug(f"Orientation {orientation.name}", verbose)

    finder = MatchedSegmentFinder(
        reference,
        subject,
        config=config,
        monitor=monitor,
        execution_config=ExecutionConfig(max_workers=max_workers),
    )
    finder.compute_matches()

    if finder.was_cancelled:
        messenger.warning("Check cancelled, no results produced")

    subject_matches = len(finder.get_matched_segments(SUBJECT))
    stats: Dict[str, Any] = {
        "total_features": len(subject),
        "matched_reference_segments": len(finder.get_matched_segments(REFERENCE)),
        "matched_subject_segments": subject_matches,
        "cancelled": finder.was_cancelled,
    }
    stats.update(calculate_length_stats(finder.get_size_indicators(), "size_indicators"))

    report_check_summary(messenger, len(subject), subject_matches, stats)
    return finder, stats
