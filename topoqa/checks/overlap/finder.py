# -*- coding: utf-8 -*-
"""
TopoQA - Overlap Detection

This module implements feature-level overlap detection, finding features
whose interiors intersect, either within one collection or between two.

Touching along a boundary is not an overlap. A feature lying wholly
inside another is.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from topoqa.checks.overlap.indicators import IndicatorResult, compute_overlap_indicators
from topoqa.checks.summary import calculate_length_stats, report_check_summary
from topoqa.core.config import (
    DEFAULT_EXECUTION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    ExecutionConfig,
    OutputConfig,
)
from topoqa.core.features import Feature, FeatureCollection, Indicator, sorted_by_id
from topoqa.core.geometry import interiors_intersect, is_geometry_null
from topoqa.core.spatial_ops import run_query_units
from topoqa.utils.feature_io import Fence, iterate_features, require_collection
from topoqa.utils.messaging import DummyTaskMonitor, TaskMonitor, ToolMessenger

logger = logging.getLogger(__name__)

# (indexed feature, scanned feature, indicators)
OverlapHit = Tuple[Feature, Feature, IndicatorResult]


class OverlapFinder:
    """
    Detects overlapping features.

    With one collection, the collection is both indexed and scanned, and
    each unordered pair is tested once. With two collections, collection 0
    is indexed and collection 1 is scanned, and every candidate pair is
    tested.
    """

    def __init__(
        self,
        collection0: FeatureCollection,
        collection1: Optional[FeatureCollection] = None,
        monitor: Optional[TaskMonitor] = None,
        execution_config: Optional[ExecutionConfig] = None,
        output_config: Optional[OutputConfig] = None
    ):
        """
        Initialize the overlap finder.

        Args:
            collection0: Features to check (indexed)
            collection1: Optional second collection (scanned)
            monitor: Progress and cancellation monitor
            execution_config: Query phase execution settings
            output_config: Indicator kind names
        """
        collections = [require_collection(collection0, "collection 0")]
        if collection1 is not None:
            collections.append(require_collection(collection1, "collection 1"))
        self.collections = tuple(collections)
        self.scan_index = len(self.collections) - 1
        self.monitor = monitor or DummyTaskMonitor()
        self.execution_config = execution_config or DEFAULT_EXECUTION_CONFIG
        self.output_config = output_config or DEFAULT_OUTPUT_CONFIG

        self.fence: Optional[Fence] = None
        self.is_computed = False
        self.was_cancelled = False

        self._ordinals: Dict[int, int] = {}
        self._overlapping: List[Dict[int, Feature]] = [{} for _ in self.collections]
        self._pairs: List[Tuple[Any, Any]] = []
        self._unresolved: List[Tuple[Any, Any]] = []
        self._overlap_indicators: List[Indicator] = []
        self._size_indicators: List[Indicator] = []

    @property
    def is_single_input(self) -> bool:
        return len(self.collections) == 1

    def set_fence(self, fence: Optional[Fence]) -> None:
        """Only scan features intersecting an envelope or geometry."""
        self.fence = fence

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def compute_overlaps(self) -> None:
        if self.is_computed:
            return
        self.is_computed = True

        self.monitor.allow_cancellation_requests()
        query_features = list(iterate_features(self.collections[self.scan_index], self.fence))
        if self.is_single_input:
            self._ordinals = self.collections[0].ordinals()

        self.monitor.report("Building feature index")
        index_collection = self.collections[0]
        index_collection.get_index()
        self.monitor.report("Finding overlaps")
        results = run_query_units(
            query_features,
            lambda feature: self._find_overlaps(index_collection, feature),
            self.monitor,
            "features",
            max_workers=self.execution_config.max_workers,
        )
        if results is None:
            logger.info("Overlap search cancelled; results discarded")
            self.was_cancelled = True
            return

        for hits in results:
            for indexed, scanned, result in hits:
                self._record(indexed, scanned, result)

        logger.debug(
            "%d overlapping pairs, %d without indicators",
            len(self._pairs),
            len(self._unresolved),
        )

    def _is_test_needed(self, scanned: Feature, candidate: Feature) -> bool:
        if not self.is_single_input:
            return True
        return self._ordinals[id(scanned)] < self._ordinals[id(candidate)]

    def _find_overlaps(self, index_collection: FeatureCollection, scanned: Feature) -> List[OverlapHit]:
        hits: List[OverlapHit] = []
        if is_geometry_null(scanned.geometry):
            return hits
        for candidate in index_collection.query(scanned.envelope):
            if not self._is_test_needed(scanned, candidate):
                continue
            if interiors_intersect(scanned.geometry, candidate.geometry):
                result = compute_overlap_indicators(candidate.geometry, scanned.geometry)
                hits.append((candidate, scanned, result))
        return hits

    def _record(self, indexed: Feature, scanned: Feature, result: IndicatorResult) -> None:
        self._overlapping[0].setdefault(id(indexed), indexed)
        self._overlapping[self.scan_index].setdefault(id(scanned), scanned)
        pair = (indexed.fid, scanned.fid)
        self._pairs.append(pair)

        if not result.found:
            logger.warning(
                "Could not compute overlap indicators for features %r and %r\n%s\n%s",
                indexed.fid,
                scanned.fid,
                indexed.geometry.wkt,
                scanned.geometry.wkt,
            )
            self._unresolved.append(pair)
            return

        cfg = self.output_config
        self._overlap_indicators.extend(
            Indicator(geometry, cfg.kind_overlap, pair) for geometry in result.overlap_indicators
        )
        self._size_indicators.extend(
            Indicator(geometry, cfg.kind_overlap_size, pair) for geometry in result.size_indicators
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_overlapping_features(self, i: int = 0) -> FeatureCollection:
        """
        Features of collection ``i`` involved in at least one overlap.

        Returns:
            FeatureCollection ordered by feature id
        """
        collection = self.collections[i]
        self.compute_overlaps()
        return collection.with_features(
            sorted_by_id(self._overlapping[i].values(), collection.ordinals()),
            name=f"{collection.name}_overlapping",
        )

    def get_overlap_indicators(self) -> List[Indicator]:
        self.compute_overlaps()
        return list(self._overlap_indicators)

    def get_overlap_size_indicators(self) -> List[Indicator]:
        self.compute_overlaps()
        return list(self._size_indicators)

    def get_pairs(self) -> List[Tuple[Any, Any]]:
        """Overlapping pairs as (collection 0 id, scanned feature id)."""
        self.compute_overlaps()
        return list(self._pairs)

    def get_unresolved_pairs(self) -> List[Tuple[Any, Any]]:
        """Overlapping pairs for which no indicator could be computed."""
        self.compute_overlaps()
        return list(self._unresolved)


def run_overlap_check(
    collection0: FeatureCollection,
    collection1: Optional[FeatureCollection] = None,
    fence: Optional[Fence] = None,
    monitor: Optional[TaskMonitor] = None,
    max_workers: int = 1,
    verbose: bool = False
) -> Tuple[OverlapFinder, Dict[str, Any]]:
    """
    Convenience function to run the overlap check.

    Args:
        collection0: Features to check
        collection1: Optional second collection to check against the first
        fence: Optional region of interest
        monitor: Progress and cancellation monitor
        max_workers: Query phase thread count
        verbose: Log progress details at INFO

    Returns:
        Tuple of (finder, stats_dict)
    """
    messenger = ToolMessenger("Overlaps")
    messenger.start_timer()
    messenger.debug(
        "Two-collection mode" if collection1 is not None else "Single-collection mode",
        verbose,
    )

    finder = OverlapFinder(
        collection0,
        collection1,
        monitor=monitor,
        execution_config=ExecutionConfig(max_workers=max_workers),
    )
    finder.set_fence(fence)
    finder.compute_overlaps()

    if finder.was_cancelled:
        messenger.warning("Check cancelled, no results produced")

    total_features = sum(len(c) for c in finder.collections)
    pairs = finder.get_pairs()
    stats: Dict[str, Any] = {
        "total_features": total_features,
        "overlapping_pairs": len(pairs),
        "overlapping_features": sum(
            len(finder.get_overlapping_features(i)) for i in range(len(finder.collections))
        ),
        "unresolved_pairs": len(finder.get_unresolved_pairs()),
        "overlap_indicators": len(finder.get_overlap_indicators()),
        "cancelled": finder.was_cancelled,
    }
    stats.update(calculate_length_stats(finder.get_overlap_size_indicators(), "size_indicators"))

    report_check_summary(messenger, total_features, len(pairs), stats)
    return finder, stats
