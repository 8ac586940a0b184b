# -*- coding: utf-8 -*-
"""
TopoQA - Feature Model

Features, feature collections and the segment/indicator value types the
QA checks exchange.

A feature carries a stable, totally ordered id. The checks only read
feature geometry; nothing in TopoQA mutates it.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry.base import BaseGeometry

from topoqa.core.geometry import (
    Coordinate,
    Envelope,
    LineSegment,
    coordinate_arrays,
    is_geometry_null,
    segments_of,
)
from topoqa.core.spatial_ops import STRtreeIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Feature:
    """
    A geometry with an identity and attributes.

    Equality is object identity: two features with the same id taken from
    different collections are still different features.
    """

    fid: Any
    geometry: BaseGeometry
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def envelope(self) -> Optional[Envelope]:
        return Envelope.of_geometry(self.geometry)

    def __repr__(self) -> str:
        geom_type = self.geometry.geom_type if self.geometry is not None else None
        return f"Feature(fid={self.fid!r}, geometry={geom_type})"


class FeatureCollection:
    """
    Ordered, read-only collection of features.

    ``query`` answers envelope queries from an STRtree built on first use.
    """

    def __init__(
        self,
        features: Iterable[Feature] = (),
        name: str = "features",
        schema: Optional[Sequence[str]] = None
    ):
        self._features: List[Feature] = list(features)
        self.name = name
        if schema is None:
            schema = list(self._features[0].attributes) if self._features else []
        self.schema: Tuple[str, ...] = tuple(schema)
        self._index: Optional[STRtreeIndex] = None
        self._index_lock = threading.Lock()
        self._ordinals: Optional[Dict[int, int]] = None

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def __getitem__(self, i: int) -> Feature:
        return self._features[i]

    def __repr__(self) -> str:
        return f"FeatureCollection(name={self.name!r}, size={len(self)})"

    @property
    def features(self) -> List[Feature]:
        return list(self._features)

    def ids(self) -> List[Any]:
        return [f.fid for f in self._features]

    def get(self, fid: Any) -> Optional[Feature]:
        """First feature with the given id, or None."""
        for feature in self._features:
            if feature.fid == fid:
                return feature
        return None

    def with_features(self, features: Iterable[Feature], name: Optional[str] = None) -> "FeatureCollection":
        """New collection with the same schema holding ``features``."""
        return FeatureCollection(features, name=name or self.name, schema=self.schema)

    def get_index(self) -> STRtreeIndex:
        """The collection's spatial index, built on first use."""
        with self._index_lock:
            if self._index is None:
                items = [
                    (f.envelope, f) for f in self._features
                    if not is_geometry_null(f.geometry)
                ]
                self._index = STRtreeIndex()
                self._index.build(items)
            return self._index

    def query(self, envelope: Envelope) -> List[Feature]:
        """Features whose envelope intersects ``envelope``."""
        return self.get_index().query(envelope)

    def ordinals(self) -> Dict[int, int]:
        """Rank of every feature by id, or by position if ids are not comparable."""
        if self._ordinals is None:
            self._ordinals = assign_ordinals(self._features)
        return self._ordinals


def assign_ordinals(features: Sequence[Feature]) -> Dict[int, int]:
    """
    Run-scoped total order of a sequence of features.

    Features are ranked by id; if ids cannot be compared with each other
    (e.g. a mix of ints and strings), sequence order is used instead.
    Features sharing an id still get distinct ranks.

    Args:
        features: Features to rank

    Returns:
        Dictionary mapping ``id(feature)`` to its rank
    """
    try:
        ranked = sorted(features, key=lambda f: f.fid)
    except TypeError:
        logger.debug("Feature ids are not comparable, using sequence order")
        ranked = list(features)
    return {id(feature): rank for rank, feature in enumerate(ranked)}


def sorted_by_id(
    features: Iterable[Feature],
    ordinals: Optional[Dict[int, int]] = None
) -> List[Feature]:
    """
    Deduplicate features by id and order them by id.

    The first feature seen for an id is kept.

    Args:
        features: Features to order
        ordinals: Ranks from ``assign_ordinals``; computed from the
            deduplicated features when None

    Returns:
        List of features
    """
    unique: Dict[Any, Feature] = {}
    for feature in features:
        unique.setdefault(feature.fid, feature)
    kept = list(unique.values())
    if ordinals is None:
        ordinals = assign_ordinals(kept)
    return sorted(kept, key=lambda f: ordinals[id(f)])


class FeatureSegment(LineSegment):
    """
    A segment of a feature's geometry, with its provenance.

    ``shell_index`` numbers the rings/lines of the feature in extraction
    order; ``segment_index`` is the position within that ring.
    """

    __slots__ = ("feature", "shell_index", "segment_index")

    def __init__(
        self,
        feature: Feature,
        p0: Coordinate,
        p1: Coordinate,
        shell_index: int = 0,
        segment_index: int = 0
    ):
        super().__init__(p0, p1)
        self.feature = feature
        self.shell_index = shell_index
        self.segment_index = segment_index

    def __repr__(self) -> str:
        return f"{self.fid}/{self.shell_index}/{self.segment_index} {super().__repr__()}"

    @property
    def fid(self) -> Any:
        return self.feature.fid

    @property
    def identity(self) -> Tuple[Any, int, int]:
        """Stable identity of the segment within a run."""
        return (self.feature.fid, self.shell_index, self.segment_index)


def feature_segments(feature: Feature, orient_polygons: bool = True) -> Iterator[FeatureSegment]:
    """
    Decompose a feature into its segments.

    Args:
        feature: Feature to decompose
        orient_polygons: Orient shells clockwise and holes counter-clockwise

    Yields:
        FeatureSegment for every consecutive vertex pair of every ring/line
    """
    arrays = coordinate_arrays(feature.geometry, orient_polygons=orient_polygons)
    for shell_index, coords in enumerate(arrays):
        for segment_index, p0, p1 in segments_of(coords):
            yield FeatureSegment(feature, p0, p1, shell_index, segment_index)


@dataclass(frozen=True)
class Indicator:
    """
    A diagnostic geometry produced by a check.

    Indicators live for one run only; ``source_ids`` records the ids of
    the features involved.
    """

    geometry: BaseGeometry
    kind: str
    source_ids: Tuple[Any, ...] = ()

    @property
    def length(self) -> float:
        return self.geometry.length
