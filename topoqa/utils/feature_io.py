# -*- coding: utf-8 -*-
"""
TopoQA - Feature Input Helpers

This module provides helper functions for getting feature data in and out
of the TopoQA checks: building feature collections from WKT or GeoJSON,
reading geometries, fence filtering, and turning indicator geometries
into output features.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from shapely import wkt
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

from topoqa.core.config import DEFAULT_OUTPUT_CONFIG, OutputConfig
from topoqa.core.errors import ConfigurationError
from topoqa.core.features import Feature, FeatureCollection, Indicator
from topoqa.core.geometry import Envelope, is_geometry_null

Fence = Union[Envelope, BaseGeometry]


def features_from_wkt(
    items: Union[Mapping[Any, str], Sequence[str]],
    name: str = "features"
) -> FeatureCollection:
    """
    Build a feature collection from WKT strings.

    Args:
        items: Mapping of feature id to WKT, or a sequence of WKT strings
            (ids are then assigned 1, 2, 3, ...)
        name: Collection name

    Returns:
        FeatureCollection with one feature per WKT string
    """
    if isinstance(items, Mapping):
        pairs = list(items.items())
    else:
        pairs = list(enumerate(items, start=1))

    features = [Feature(fid, wkt.loads(text)) for fid, text in pairs]
    return FeatureCollection(features, name=name)


def features_from_geojson(
    data: Mapping[str, Any],
    name: Optional[str] = None,
    id_field: Optional[str] = None
) -> FeatureCollection:
    """
    Build a feature collection from a GeoJSON FeatureCollection mapping.

    Args:
        data: Parsed GeoJSON FeatureCollection
        name: Collection name (default: the GeoJSON "name" member)
        id_field: Property to use as feature id; falls back to the
            feature "id" member, then to the 1-based position

    Returns:
        FeatureCollection with the GeoJSON properties as attributes
    """
    if data.get("type") != "FeatureCollection":
        raise ConfigurationError(
            f"Expected a GeoJSON FeatureCollection, got {data.get('type')!r}"
        )

    features = []
    for position, item in enumerate(data.get("features", []), start=1):
        properties = dict(item.get("properties") or {})
        if id_field is not None and id_field in properties:
            fid = properties[id_field]
        elif item.get("id") is not None:
            fid = item["id"]
        else:
            fid = position

        raw_geometry = item.get("geometry")
        geometry = shape(raw_geometry) if raw_geometry else None
        features.append(Feature(fid, geometry, properties))

    return FeatureCollection(features, name=name or data.get("name", "features"))


def read_geometries_to_dict(collection: FeatureCollection) -> Dict[Any, BaseGeometry]:
    """
    Read only geometries from a collection into a dictionary.

    Null and empty geometries are left out.

    Args:
        collection: Input features

    Returns:
        Dictionary mapping feature id to geometry
    """
    result = {}
    for feature in collection:
        if not is_geometry_null(feature.geometry):
            result[feature.fid] = feature.geometry
    return result


def count_features(collection: FeatureCollection) -> int:
    """Number of features with a non-null geometry."""
    return sum(1 for f in collection if not is_geometry_null(f.geometry))


def fence_geometry(fence: Optional[Fence]) -> Optional[BaseGeometry]:
    """Fence as a geometry; envelopes are converted, None stays None."""
    if fence is None:
        return None
    if isinstance(fence, Envelope):
        return fence.to_geometry()
    return fence


def iterate_features(
    collection: FeatureCollection,
    fence: Optional[Fence] = None
) -> Iterator[Feature]:
    """
    Iterate over the features of a collection, optionally inside a fence.

    With a fence, candidates come from the collection's envelope query and
    are kept only if their geometry intersects the fence.

    Args:
        collection: Input features
        fence: Optional envelope or geometry restricting the features

    Yields:
        Features in collection order
    """
    if fence is None:
        yield from collection
        return

    fence_geom = fence_geometry(fence)
    envelope = Envelope.of_geometry(fence_geom)
    if envelope is None:
        return
    for feature in collection.query(envelope):
        if feature.geometry.intersects(fence_geom):
            yield feature


def validate_feature_collection(
    collection: Optional[FeatureCollection],
    required_geometry_type: Optional[str] = None,
    required_fields: Optional[List[str]] = None
) -> Tuple[bool, str]:
    """
    Validate that a feature collection meets requirements.

    Args:
        collection: Feature collection to check
        required_geometry_type: Expected geometry family (e.g. "Polygon"
            also accepts "MultiPolygon")
        required_fields: List of required attribute names

    Returns:
        Tuple of (is_valid, error_message)
    """
    if collection is None:
        return False, "Feature collection is missing"

    if not isinstance(collection, FeatureCollection):
        return False, f"Expected a FeatureCollection, got {type(collection).__name__}"

    if required_geometry_type:
        required_lower = required_geometry_type.lower()
        for feature in collection:
            if is_geometry_null(feature.geometry):
                continue
            actual_type = feature.geometry.geom_type.lower()
            if actual_type not in (required_lower, f"multi{required_lower}"):
                return False, (
                    f"Expected geometry type '{required_geometry_type}', "
                    f"got '{feature.geometry.geom_type}' for feature {feature.fid!r}"
                )

    if required_fields:
        existing_fields = [name.upper() for name in collection.schema]
        for field_name in required_fields:
            if field_name.upper() not in existing_fields:
                return False, f"Required field not found: {field_name}"

    return True, ""


def require_collection(collection: Optional[FeatureCollection], label: str) -> FeatureCollection:
    """Return ``collection`` or raise ConfigurationError if it is unusable."""
    is_valid, error_msg = validate_feature_collection(collection)
    if not is_valid:
        raise ConfigurationError(f"Invalid {label}: {error_msg}")
    return collection


def indicators_to_features(
    indicators: Sequence[Indicator],
    name: str = "indicators",
    output_config: Optional[OutputConfig] = None
) -> FeatureCollection:
    """
    Turn indicators into output features.

    Each feature carries the indicator geometry and the attributes
    LENGTH, KIND and SOURCE_IDS (names taken from ``output_config``).
    Ids are assigned 1, 2, 3, ... in indicator order.

    Args:
        indicators: Indicators produced by a check
        name: Output collection name
        output_config: Output field configuration

    Returns:
        FeatureCollection of indicator features
    """
    cfg = output_config or DEFAULT_OUTPUT_CONFIG
    schema = [cfg.field_length, cfg.field_kind, cfg.field_source_ids]
    features = []
    for fid, indicator in enumerate(indicators, start=1):
        attributes = {
            cfg.field_length: indicator.length,
            cfg.field_kind: indicator.kind,
            cfg.field_source_ids: ";".join(str(i) for i in indicator.source_ids),
        }
        features.append(Feature(fid, indicator.geometry, attributes))
    return FeatureCollection(features, name=name, schema=schema)


def feature_to_geojson(feature: Feature) -> Dict[str, Any]:
    """GeoJSON mapping of a single feature."""
    return {
        "type": "Feature",
        "id": feature.fid,
        "geometry": mapping(feature.geometry) if feature.geometry is not None else None,
        "properties": dict(feature.attributes),
    }


def collection_to_geojson(collection: FeatureCollection) -> Dict[str, Any]:
    """GeoJSON FeatureCollection mapping of a collection."""
    return {
        "type": "FeatureCollection",
        "name": collection.name,
        "features": [feature_to_geojson(f) for f in collection],
    }
