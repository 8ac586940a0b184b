# -*- coding: utf-8 -*-
"""
TopoQA - Feature Segment Counter

Breaks features into their edges and counts how often each edge occurs,
ignoring direction. Edges seen exactly once are "unique": no other ring
shares them, so they are the only candidates for gaps and slivers.
"""

import logging
from typing import Dict, List, Optional, Tuple

from topoqa.core.errors import SegmentNotFoundError
from topoqa.core.features import Feature, FeatureCollection, FeatureSegment, feature_segments
from topoqa.core.geometry import Coordinate, LineSegment, is_geometry_null
from topoqa.utils.feature_io import Fence, fence_geometry
from topoqa.utils.messaging import DummyTaskMonitor, TaskMonitor

logger = logging.getLogger(__name__)

SegmentKey = Tuple[Coordinate, Coordinate]


class FeatureSegmentCounter:
    """
    Counts segments by undirected endpoint equality.

    The first segment added for a key is the one kept; later equal
    segments only raise the count.
    """

    def __init__(
        self,
        count_zero_length_segments: bool = True,
        monitor: Optional[TaskMonitor] = None,
        fence: Optional[Fence] = None
    ):
        """
        Initialize the counter.

        Args:
            count_zero_length_segments: If False, zero-length segments
                are ignored
            monitor: Progress and cancellation monitor
            fence: Optional envelope or geometry restricting the segments
        """
        self.count_zero_length_segments = count_zero_length_segments
        self.monitor = monitor or DummyTaskMonitor()
        self.fence = fence_geometry(fence)
        self.was_cancelled = False
        self._counts: Dict[SegmentKey, int] = {}
        self._segments: Dict[SegmentKey, FeatureSegment] = {}

    def __len__(self) -> int:
        return len(self._counts)

    def set_fence(self, fence: Optional[Fence]) -> None:
        self.fence = fence_geometry(fence)

    def add_collection(self, collection: FeatureCollection) -> bool:
        """
        Add every feature of a collection.

        Args:
            collection: Features to add

        Returns:
            False if cancellation stopped the scan early
        """
        self.monitor.allow_cancellation_requests()
        self.monitor.report("Adding features to segment counter")
        total = len(collection)
        for count, feature in enumerate(collection, start=1):
            if self.monitor.is_cancel_requested():
                self.was_cancelled = True
                logger.debug("Segment counting cancelled after %d of %d features", count - 1, total)
                return False
            self.monitor.report_progress(count, total, "features")
            self.add_feature(feature)
        return True

    def add_feature(self, feature: Feature) -> None:
        """Add every edge of a feature, honouring the fence."""
        geometry = feature.geometry
        if is_geometry_null(geometry):
            return
        if self.fence is not None and not geometry.intersects(self.fence):
            return

        for seg in feature_segments(feature, orient_polygons=True):
            # Features crossing the fence edge only keep the segments inside it
            if self.fence is not None and not self.fence.intersects(seg.to_geometry()):
                continue
            self.add_segment(seg)

    def add_segment(self, seg: FeatureSegment) -> None:
        if not self.count_zero_length_segments and seg.is_zero_length:
            return
        key = seg.key()
        if key in self._counts:
            self._counts[key] += 1
        else:
            self._counts[key] = 1
            self._segments[key] = seg

    def get_unique_segments(self) -> List[FeatureSegment]:
        """Segments seen exactly once, in the order first added."""
        return [self._segments[key] for key, count in self._counts.items() if count == 1]

    def get_count(self, seg: LineSegment) -> int:
        """
        Number of added segments topologically equal to ``seg``.

        Raises:
            SegmentNotFoundError: if no equal segment was ever added
        """
        try:
            return self._counts[seg.key()]
        except KeyError:
            raise SegmentNotFoundError(f"Segment was never added: {seg!r}") from None
