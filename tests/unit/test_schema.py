import copy

import pytest

from depindex.common.errors import ConfigError
from depindex.common.schema import validate_pipeline_config


BASE_PIPELINE = {
    "crs": {"epsg": 2193},
    "inputs": {
        "localities": {"path": "raw/l.geojson", "id_field": "id", "name_field": "name"},
        "subdivisions": {"path": "raw/s.geojson", "key_field": "code", "area_field": "area", "area_unit": "km2"},
        "attributes": {
            "path": "raw/a.csv",
            "key_field": "code",
            "score_field": "score",
            "decile_field": "decile",
            "population_field": "pop",
        },
    },
    "overlay": {"workers": 2, "high_deprivation_deciles": [9, 10]},
    "output": {"vector_filename": "a.geojson", "csv_filename": "a.csv", "csv_columns": ["id", "name"]},
}


def _cfg():
    return copy.deepcopy(BASE_PIPELINE)


def test_validate_pipeline_config_accepts_valid_shape():
    validated = validate_pipeline_config(_cfg())
    assert validated["crs"]["epsg"] == 2193


def test_validate_pipeline_config_rejects_unknown_key_by_default():
    bad = _cfg()
    bad["unexpected"] = True
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


def test_validate_pipeline_config_allows_unknown_when_enabled():
    okay = _cfg()
    okay["extra"] = 1
    okay["inputs"]["localities"]["note"] = "x"
    validate_pipeline_config(okay, allow_unknown=True)


def test_validate_pipeline_config_requires_input_fields():
    bad = _cfg()
    del bad["inputs"]["attributes"]["decile_field"]
    with pytest.raises(ConfigError, match="decile_field"):
        validate_pipeline_config(bad)


@pytest.mark.parametrize(
    "section,key,value",
    [
        ("overlay", "workers", 0),
        ("overlay", "workers", True),
        ("overlay", "high_deprivation_deciles", []),
        ("overlay", "high_deprivation_deciles", [11]),
        ("overlay", "area_tolerance", -1),
        ("output", "csv_columns", ["id", "id"]),
        ("output", "csv_columns", "id"),
        ("output", "vector_filename", "a.kml"),
    ],
)
def test_validate_pipeline_config_rejects_bad_values(section, key, value):
    bad = _cfg()
    bad[section][key] = value
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


def test_validate_pipeline_config_rejects_unknown_area_unit():
    bad = _cfg()
    bad["inputs"]["subdivisions"]["area_unit"] = "acres"
    with pytest.raises(ConfigError):
        validate_pipeline_config(bad)


@pytest.mark.parametrize("filename", ["a.shp", "a.gpkg", "A.GeoJSON"])
def test_validate_pipeline_config_accepts_vector_formats(filename):
    cfg = _cfg()
    cfg["output"]["vector_filename"] = filename
    validate_pipeline_config(cfg)
