"""Tests for feature input and output helpers."""

import pytest
from shapely.geometry import Point, box

from topoqa.core.errors import ConfigurationError
from topoqa.core.features import Feature, FeatureCollection, Indicator, sorted_by_id
from topoqa.core.geometry import Envelope
from topoqa.utils.feature_io import (
    collection_to_geojson,
    count_features,
    features_from_geojson,
    features_from_wkt,
    fence_geometry,
    indicators_to_features,
    iterate_features,
    read_geometries_to_dict,
    require_collection,
    validate_feature_collection,
)

GEOJSON = {
    "type": "FeatureCollection",
    "name": "parcels",
    "features": [
        {
            "type": "Feature",
            "id": 10,
            "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]},
            "properties": {"PARCEL": "A-1"},
        },
        {
            "type": "Feature",
            "geometry": None,
            "properties": {"PARCEL": "A-2"},
        },
    ],
}


def test_features_from_wkt_sequence_numbers_ids():
    collection = features_from_wkt(["POINT (0 0)", "POINT (1 1)"])
    assert collection.ids() == [1, 2]
    assert collection.get(2).geometry.equals(Point(1, 1))
    assert collection.get(3) is None


def test_features_from_geojson():
    collection = features_from_geojson(GEOJSON)
    assert collection.name == "parcels"
    assert collection.ids() == [10, 2]
    assert collection.schema == ("PARCEL",)
    assert collection[1].geometry is None

    by_field = features_from_geojson(GEOJSON, name="by_parcel", id_field="PARCEL")
    assert by_field.ids() == ["A-1", "A-2"]


def test_features_from_geojson_rejects_other_types():
    with pytest.raises(ConfigurationError):
        features_from_geojson({"type": "Feature"})


def test_null_geometries_are_skipped():
    collection = features_from_geojson(GEOJSON)
    assert count_features(collection) == 1
    assert list(read_geometries_to_dict(collection)) == [10]


def test_fence_geometry():
    assert fence_geometry(None) is None
    assert fence_geometry(Envelope(0, 0, 2, 2)).area == pytest.approx(4.0)
    circle = Point(0, 0).buffer(1)
    assert fence_geometry(circle) is circle


def test_iterate_features_with_fence():
    collection = features_from_wkt({
        1: "POLYGON ((0 0, 1 0, 1 1, 0 1, 0 0))",
        2: "POLYGON ((5 5, 6 5, 6 6, 5 6, 5 5))",
        3: "POLYGON ((0 5, 1 5, 1 6, 0 6, 0 5))",
    })
    assert [f.fid for f in iterate_features(collection)] == [1, 2, 3]
    assert [f.fid for f in iterate_features(collection, Envelope(4, 4, 7, 7))] == [2]
    # Envelope hits feature 1 but the L-shape does not
    l_shape = box(0, 0, 3, 3).difference(box(0, 0, 2, 2))
    assert [f.fid for f in iterate_features(collection, l_shape)] == []


def test_validate_feature_collection(clean_coverage):
    assert validate_feature_collection(clean_coverage, "Polygon") == (True, "")
    is_valid, message = validate_feature_collection(clean_coverage, "LineString")
    assert not is_valid
    assert "Polygon" in message

    is_valid, message = validate_feature_collection(clean_coverage, required_fields=["NAME"])
    assert not is_valid
    assert "NAME" in message

    assert not validate_feature_collection(None)[0]
    assert not validate_feature_collection([Feature(1, Point(0, 0))])[0]


def test_require_collection():
    collection = FeatureCollection([])
    assert require_collection(collection, "input") is collection
    with pytest.raises(ConfigurationError, match="input"):
        require_collection(None, "input")


def test_indicators_to_features():
    indicators = [
        Indicator(Point(0, 0).buffer(1).boundary, "OVERLAP", (3, 7)),
        Indicator(Point(2, 2), "GAP_SIZE", ("a",)),
    ]
    collection = indicators_to_features(indicators, name="errors")

    assert collection.name == "errors"
    assert collection.ids() == [1, 2]
    assert collection.schema == ("LENGTH", "KIND", "SOURCE_IDS")
    assert collection[0].attributes["SOURCE_IDS"] == "3;7"
    assert collection[0].attributes["LENGTH"] > 6.2
    assert collection[1].attributes == {"LENGTH": 0.0, "KIND": "GAP_SIZE", "SOURCE_IDS": "a"}


def test_collection_to_geojson_round_trip():
    collection = features_from_geojson(GEOJSON)
    data = collection_to_geojson(collection)
    assert data["type"] == "FeatureCollection"
    assert data["features"][0]["geometry"]["type"] == "Polygon"
    assert data["features"][1]["geometry"] is None
    assert features_from_geojson(data).ids() == [10, 2]


def test_sorted_by_id_keeps_first_feature_per_id():
    f1 = Feature(2, Point(0, 0))
    f2 = Feature(1, Point(1, 1))
    twin = Feature(1, Point(1, 1))
    assert sorted_by_id([f1, f2, f1, twin]) == [f2, f1]


def test_sorted_by_id_with_mixed_ids_keeps_sequence_order():
    named = Feature("b", Point(0, 0))
    numbered = Feature(1, Point(1, 1))
    assert sorted_by_id([named, numbered, named]) == [named, numbered]
