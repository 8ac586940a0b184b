# -*- coding: utf-8 -*-
"""
TopoQA - Core Spatial Operations

This module provides the spatial indexing layer shared by every QA check
and the driver that runs a check's query phase.

An index is built once from ``(Envelope, payload)`` items and is then
read-only. Queries return candidates whose envelope intersects the query
envelope; callers always re-check candidates with an exact predicate.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from shapely.geometry import LineString
from shapely.strtree import STRtree

from topoqa.core.config import DEFAULT_INDEX_CONFIG, IndexConfig
from topoqa.core.geometry import Envelope

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

IndexItem = Tuple[Envelope, Any]


class SpatialIndex(ABC):
    """
    Envelope index with a build-then-query discipline.

    ``build`` bulk-loads all items exactly once; ``query`` may then be
    called any number of times, from any number of threads.
    """

    def __init__(self):
        self._built = False
        self._payloads: List[Any] = []

    def __len__(self) -> int:
        return len(self._payloads)

    @property
    def is_built(self) -> bool:
        return self._built

    def build(self, items: Iterable[IndexItem]) -> "SpatialIndex":
        """
        Bulk-load the index.

        Args:
            items: Iterable of (envelope, payload) pairs

        Returns:
            The index itself
        """
        if self._built:
            raise RuntimeError(f"{type(self).__name__} has already been built")
        items = list(items)
        self._payloads = [payload for _, payload in items]
        self._load([envelope for envelope, _ in items])
        self._built = True
        return self

    def query(self, envelope: Envelope) -> List[Any]:
        """
        Find candidate payloads whose envelope intersects ``envelope``.

        Candidates are returned in insertion order.
        """
        if not self._built:
            raise RuntimeError(f"{type(self).__name__} queried before build")
        return [self._payloads[i] for i in self._query_positions(envelope)]

    @abstractmethod
    def _load(self, envelopes: List[Envelope]) -> None:
        """Store the envelopes; position i belongs to payload i."""

    @abstractmethod
    def _query_positions(self, envelope: Envelope) -> List[int]:
        """Sorted positions of items whose envelope intersects ``envelope``."""


class STRtreeIndex(SpatialIndex):
    """Sort-Tile-Recursive packed R-tree backed by shapely."""

    def __init__(self, node_capacity: int = 10):
        super().__init__()
        self.node_capacity = node_capacity
        self._tree: Optional[STRtree] = None

    @staticmethod
    def _envelope_geometry(envelope: Envelope) -> LineString:
        # The diagonal has exactly the envelope's bounds, even when degenerate
        return LineString([(envelope.xmin, envelope.ymin), (envelope.xmax, envelope.ymax)])

    def _load(self, envelopes: List[Envelope]) -> None:
        self._tree = STRtree(
            [self._envelope_geometry(env) for env in envelopes],
            node_capacity=self.node_capacity,
        )

    def _query_positions(self, envelope: Envelope) -> List[int]:
        if not self._payloads:
            return []
        return sorted(int(i) for i in self._tree.query(self._envelope_geometry(envelope)))


class GridIndex(SpatialIndex):
    """
    Uniform grid index.

    Items are registered in every grid cell their envelope overlaps.
    Items spanning more than ``max_item_cells`` cells are kept aside and
    checked against every query. Good enough for evenly sized items such
    as segments of one dataset.
    """

    def __init__(self, cell_size: Optional[float] = None, max_item_cells: int = 1024):
        """
        Initialize grid index.

        Args:
            cell_size: Grid cell size in map units; derived from the
                average item size at build time when None
            max_item_cells: Cell count above which an item is not
                registered in the grid
        """
        super().__init__()
        self.cell_size = cell_size
        self.max_item_cells = max_item_cells
        self.grid: Dict[Tuple[int, int], List[int]] = {}
        self.oversized: List[int] = []
        self.extents: List[Envelope] = []

    def _cell_range(self, envelope: Envelope) -> Tuple[int, int, int, int]:
        col_min = int(envelope.xmin // self.cell_size)
        col_max = int(envelope.xmax // self.cell_size)
        row_min = int(envelope.ymin // self.cell_size)
        row_max = int(envelope.ymax // self.cell_size)
        return col_min, col_max, row_min, row_max

    def _load(self, envelopes: List[Envelope]) -> None:
        self.extents = envelopes
        if self.cell_size is None:
            self.cell_size = estimate_cell_size(envelopes)

        for pos, envelope in enumerate(envelopes):
            col_min, col_max, row_min, row_max = self._cell_range(envelope)
            if (col_max - col_min + 1) * (row_max - row_min + 1) > self.max_item_cells:
                self.oversized.append(pos)
                continue
            for col in range(col_min, col_max + 1):
                for row in range(row_min, row_max + 1):
                    self.grid.setdefault((col, row), []).append(pos)

        if self.oversized:
            logger.debug("%d items span more than %d grid cells", len(self.oversized), self.max_item_cells)

    def _occupied_cells(self, envelope: Envelope) -> Iterator[Tuple[int, int]]:
        col_min, col_max, row_min, row_max = self._cell_range(envelope)
        if (col_max - col_min + 1) * (row_max - row_min + 1) > len(self.grid):
            # Fewer occupied cells than cells in range
            for col, row in self.grid:
                if col_min <= col <= col_max and row_min <= row <= row_max:
                    yield col, row
            return
        for col in range(col_min, col_max + 1):
            for row in range(row_min, row_max + 1):
                if (col, row) in self.grid:
                    yield col, row

    def _query_positions(self, envelope: Envelope) -> List[int]:
        if not self.extents:
            return []
        candidates = set(self.oversized)
        for cell in self._occupied_cells(envelope):
            candidates.update(self.grid[cell])
        # Cells are coarse; keep only true envelope overlaps
        return sorted(
            pos for pos in candidates
            if extents_intersect(self.extents[pos], envelope)
        )


class BruteForceIndex(SpatialIndex):
    """Linear scan. Useful for small inputs and as a test oracle."""

    def __init__(self):
        super().__init__()
        self.extents: List[Envelope] = []

    def _load(self, envelopes: List[Envelope]) -> None:
        self.extents = envelopes

    def _query_positions(self, envelope: Envelope) -> List[int]:
        return [
            pos for pos, extent in enumerate(self.extents)
            if extents_intersect(extent, envelope)
        ]


def estimate_cell_size(envelopes: Sequence[Envelope]) -> float:
    """
    Pick a grid cell size of twice the average item extent.

    Args:
        envelopes: Item envelopes

    Returns:
        Cell size in map units (1.0 when every item is a point)
    """
    if not envelopes:
        return 1.0
    total = sum(env.width + env.height for env in envelopes)
    avg_size = total / (2 * len(envelopes))
    if avg_size <= 0:
        return 1.0
    return avg_size * 2


def create_index(config: Optional[IndexConfig] = None) -> SpatialIndex:
    """Create an empty index of the configured kind."""
    config = config or DEFAULT_INDEX_CONFIG
    if config.kind == "grid":
        return GridIndex(cell_size=config.cell_size)
    if config.kind == "brute":
        return BruteForceIndex()
    return STRtreeIndex(node_capacity=config.node_capacity)


def extents_intersect(extent_a: Envelope, extent_b: Envelope) -> bool:
    """
    Quick check if two bounding box extents intersect.

    Args:
        extent_a: Envelope of first item
        extent_b: Envelope of second item

    Returns:
        True if extents overlap (touching counts)
    """
    return not (
        extent_a.xmax < extent_b.xmin or
        extent_a.xmin > extent_b.xmax or
        extent_a.ymax < extent_b.ymin or
        extent_a.ymin > extent_b.ymax
    )


def run_query_units(
    units: Sequence[T],
    fn: Callable[[T], R],
    monitor,
    unit_label: str,
    max_workers: int = 1
) -> Optional[List[R]]:
    """
    Evaluate ``fn`` over the query units of a check.

    Each call must only read shared state (the built index, the input
    geometries) and return its own local result; results come back in
    unit order so the caller merges them deterministically.

    Args:
        units: Query units (segments or features)
        fn: Per-unit evaluation
        monitor: Task monitor, checked for cancellation after each unit
        unit_label: Label used in progress reports
        max_workers: Thread count; 1 evaluates serially

    Returns:
        Per-unit results, or None if cancellation was requested
    """
    total = len(units)
    results: List[R] = []

    if max_workers <= 1 or total <= 1:
        for count, unit in enumerate(units, start=1):
            results.append(fn(unit))
            monitor.report_progress(count, total, unit_label)
            if monitor.is_cancel_requested():
                return None
        return results

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        for count, result in enumerate(executor.map(fn, units), start=1):
            results.append(result)
            monitor.report_progress(count, total, unit_label)
            if monitor.is_cancel_requested():
                executor.shutdown(wait=True, cancel_futures=True)
                return None
    finally:
        executor.shutdown(wait=True)
    return results
