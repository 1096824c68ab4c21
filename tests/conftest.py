from __future__ import annotations

import csv
from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import box

EPSG = 2193
KM = 1000.0


def _square(x: float, y: float, size: float = 1.0):
    return box(x * KM, y * KM, (x + size) * KM, (y + size) * KM)


def write_boundaries(path: Path, records: list[dict], *, crs=EPSG) -> Path:
    """Write records carrying a `geometry` entry as a vector file, driver by suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = gpd.GeoDataFrame(
        [{key: value for key, value in record.items() if key != "geometry"} for record in records],
        geometry=[record["geometry"] for record in records],
        crs=crs,
    )
    driver = "ESRI Shapefile" if path.suffix == ".shp" else "GeoJSON"
    frame.to_file(path, driver=driver, engine="pyogrio")
    return path


def write_fixture_inputs(data_dir: Path, *, include_unnamed: bool = True) -> None:
    """Fixture inputs matching the paths and field names in config/pipeline.yml.

    Kilometre squares keep the declared AREA_SQ_KM values exact in metres.
    """
    localities = [
        {"id": 1, "suburb_4th": "Northfield", "city_name": "Alpha", "geometry": _square(0, 0)},
        {"id": 2, "suburb_4th": "Riverside", "city_name": "Alpha", "geometry": _square(1, 0)},
        {"id": 3, "suburb_4th": "Far Reach", "city_name": "Beta", "geometry": _square(50, 50)},
    ]
    if include_unnamed:
        localities.append({"id": 4, "suburb_4th": None, "city_name": None, "geometry": _square(0, 0)})
    subdivisions = [
        # Covers locality 1 exactly.
        {"SA12018_V1": "7000001", "AREA_SQ_KM": 1.0, "geometry": _square(0, 0)},
        # Right half inside locality 2.
        {"SA12018_V1": "7000002", "AREA_SQ_KM": 1.0, "geometry": _square(1.5, 0)},
        # Left half of locality 2, no attribute row.
        {"SA12018_V1": "7000003", "AREA_SQ_KM": 0.5, "geometry": box(1 * KM, 0, 1.5 * KM, 1 * KM)},
    ]
    write_boundaries(data_dir / "raw" / "fire-and-emergency-nz-localities.geojson", localities)
    write_boundaries(data_dir / "raw" / "statistical-area-1-2018-generalised.geojson", subdivisions)

    attributes_path = data_dir / "raw" / "otago730395.csv"
    with attributes_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["SA12018_code", "NZDep2018", "NZDep2018_Score", "URPopnSA1_2018"])
        writer.writeheader()
        writer.writerow({"SA12018_code": "7000001", "NZDep2018": "10", "NZDep2018_Score": "1200", "URPopnSA1_2018": "100"})
        writer.writerow({"SA12018_code": "7000002", "NZDep2018": "3", "NZDep2018_Score": "950", "URPopnSA1_2018": "80"})


@pytest.fixture
def fixture_data_dir(tmp_path: Path) -> Path:
    data_dir = tmp_path / "data"
    write_fixture_inputs(data_dir)
    return data_dir


@pytest.fixture
def make_data_dir(tmp_path: Path):
    def _make(name: str) -> Path:
        data_dir = tmp_path / name
        write_fixture_inputs(data_dir)
        return data_dir

    return _make


@pytest.fixture
def boundaries_writer():
    return write_boundaries
