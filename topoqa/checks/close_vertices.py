# -*- coding: utf-8 -*-
"""
TopoQA - Close Vertex Detection

Finds vertices of one collection lying near, but not exactly on, vertices
of another. Such pairs usually mean a snap that did not happen.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry import LineString

from topoqa.checks.summary import calculate_length_stats, report_check_summary
from topoqa.core.config import (
    DEFAULT_CLOSE_VERTEX_CONFIG,
    DEFAULT_EXECUTION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    CloseVertexConfig,
    ExecutionConfig,
    OutputConfig,
)
from topoqa.core.features import Feature, FeatureCollection, Indicator
from topoqa.core.geometry import geometry_vertices, is_geometry_null, point_distance
from topoqa.core.spatial_ops import run_query_units
from topoqa.utils.feature_io import require_collection
from topoqa.utils.messaging import DummyTaskMonitor, TaskMonitor, ToolMessenger

logger = logging.getLogger(__name__)


class CloseVertexFinder:
    """
    Reports vertex pairs closer than a tolerance but not equal.

    Collection 1 is indexed by feature envelope; every feature of
    collection 0 is scanned against it. Vertex pairs of candidate features
    are compared exhaustively.
    """

    def __init__(
        self,
        collection0: FeatureCollection,
        collection1: FeatureCollection,
        config: Optional[CloseVertexConfig] = None,
        monitor: Optional[TaskMonitor] = None,
        execution_config: Optional[ExecutionConfig] = None,
        output_config: Optional[OutputConfig] = None
    ):
        self.collections = (
            require_collection(collection0, "collection 0"),
            require_collection(collection1, "collection 1"),
        )
        self.config = config or DEFAULT_CLOSE_VERTEX_CONFIG
        self.monitor = monitor or DummyTaskMonitor()
        self.execution_config = execution_config or DEFAULT_EXECUTION_CONFIG
        self.output_config = output_config or DEFAULT_OUTPUT_CONFIG

        self.is_computed = False
        self.was_cancelled = False
        self._indicators: List[Indicator] = []

    def compute(self) -> None:
        if self.is_computed:
            return
        self.is_computed = True

        self.monitor.allow_cancellation_requests()
        self.monitor.report("Building feature index")
        self.collections[1].get_index()

        self.monitor.report("Finding near vertices")
        results = run_query_units(
            self.collections[0].features,
            self._find_near_vertices,
            self.monitor,
            "features",
            max_workers=self.execution_config.max_workers,
        )
        if results is None:
            logger.info("Close vertex search cancelled; results discarded")
            self.was_cancelled = True
            return

        for indicators in results:
            self._indicators.extend(indicators)

    def _find_near_vertices(self, feature: Feature) -> List[Indicator]:
        indicators: List[Indicator] = []
        if is_geometry_null(feature.geometry):
            return indicators

        tolerance = self.config.distance_tolerance
        kind = self.output_config.kind_close_vertex
        query_env = feature.envelope.expand(tolerance)
        pts0 = geometry_vertices(feature.geometry)
        for candidate in self.collections[1].query(query_env):
            pts1 = geometry_vertices(candidate.geometry)
            for p0 in pts0:
                for p1 in pts1:
                    if p0 == p1:
                        continue
                    if point_distance(p0, p1) < tolerance:
                        indicators.append(
                            Indicator(LineString([p0, p1]), kind, (feature.fid, candidate.fid))
                        )
        return indicators

    def get_indicators(self) -> List[Indicator]:
        """Lines joining each near vertex pair."""
        self.compute()
        return list(self._indicators)


def run_close_vertex_check(
    collection0: FeatureCollection,
    collection1: FeatureCollection,
    distance_tolerance: float = 1.0,
    monitor: Optional[TaskMonitor] = None,
    max_workers: int = 1,
    verbose: bool = False
) -> Tuple[CloseVertexFinder, Dict[str, Any]]:
    """
    Convenience function to run the close vertex check.

    Args:
        collection0: Scanned features
        collection1: Indexed features
        distance_tolerance: Vertices closer than this are reported
        monitor: Progress and cancellation monitor
        max_workers: Query phase thread count
        verbose: Log progress details at INFO

    Returns:
        Tuple of (finder, stats_dict)
    """
    config = CloseVertexConfig(distance_tolerance=distance_tolerance)
    messenger = ToolMessenger("CloseVertices")
    messenger.start_timer()
    messenger.debug(f"Distance tolerance {distance_tolerance}", verbose)

    finder = CloseVertexFinder(
        collection0,
        collection1,
        config=config,
        monitor=monitor,
        execution_config=ExecutionConfig(max_workers=max_workers),
    )
    finder.compute()

    if finder.was_cancelled:
        messenger.warning("Check cancelled, no results produced")

    indicators = finder.get_indicators()
    stats: Dict[str, Any] = {
        "total_features": len(collection0),
        "cancelled": finder.was_cancelled,
    }
    stats.update(calculate_length_stats(indicators, "close_vertex_pairs"))

    report_check_summary(messenger, len(collection0), len(indicators), stats)
    return finder, stats
