import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from depindex.common.config_loader import OverlayOptions
from depindex.common.errors import UndefinedWeightError
from depindex.common.models import Locality, Subdivision
from depindex.overlay.indexer import candidate_ordinals
from depindex.overlay.quantify import intersection_area, overlap_weight, quantify_pair, quantify_pairs
from depindex.overlay.store import GeometryStore, intersection

U_SHAPE = Polygon([(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3)])


def test_multipart_intersection_sums_every_part():
    strip = box(0, 2, 3, 3)
    overlap = intersection(U_SHAPE, strip)

    assert overlap.geom_type == "MultiPolygon"
    assert intersection_area(overlap) == pytest.approx(2.0)


def test_intersection_area_of_empty_geometry_is_zero():
    assert intersection_area(intersection(box(0, 0, 1, 1), box(5, 5, 6, 6))) == 0.0


def test_quantify_pair_weight_uses_declared_area():
    locality = Locality(id="L", name="L", geometry=MultiPolygon([box(0, 0, 1, 1), box(3, 0, 4, 1)]))
    subdivision = Subdivision(key="S", geometry=box(0, 0, 4, 1), area=4.0, ordinal=0)

    pair = quantify_pair(locality, subdivision)

    assert pair.intersection_area == pytest.approx(2.0)
    assert pair.overlap_weight == pytest.approx(0.5)


def test_weight_above_one_is_tolerated():
    subdivision = Subdivision(key="S", geometry=box(0, 0, 2, 2), area=3.9, ordinal=0)
    assert overlap_weight(4.0, subdivision) > 1


@pytest.mark.parametrize("declared", [0.0, -1.0, None, float("nan")])
def test_undefined_subdivision_area_raises(declared):
    subdivision = Subdivision(key="S3", geometry=box(0, 0, 1, 1), area=declared, ordinal=0)
    with pytest.raises(UndefinedWeightError) as excinfo:
        overlap_weight(1.0, subdivision)
    assert excinfo.value.key == "S3"


def _store():
    localities = [Locality(id=i, name=str(i), geometry=box(i * 2, 0, i * 2 + 2, 2)) for i in range(6)]
    subdivisions = [
        Subdivision(key=f"S{i}", geometry=box(i * 2 + 1, 0, i * 2 + 3, 2), area=4.0) for i in range(6)
    ]
    subdivisions.append(Subdivision(key="ZERO", geometry=box(0, 0, 1, 1), area=0.0))
    # Shares only the x=12 edge with locality 5.
    subdivisions.append(Subdivision(key="EDGE", geometry=box(12, 0, 13, 1), area=1.0))
    return GeometryStore.load(localities, subdivisions)


def test_quantify_pairs_excludes_undefined_and_touching_pairs():
    store = _store()
    pairs, issues = quantify_pairs(store, candidate_ordinals(store), OverlayOptions())

    codes = {(issue.code, issue.key) for issue in issues}
    assert ("UNDEFINED_WEIGHT", (0, "ZERO")) in codes
    assert all(pair.intersection_area > 0 for pair in pairs)
    assert all(pair.subdivision_key != "ZERO" for pair in pairs)
    assert ("ZERO_AREA_OVERLAP", (5, "EDGE")) in codes


def test_zero_area_pairs_are_kept_when_configured():
    store = _store()
    pairs, _ = quantify_pairs(store, candidate_ordinals(store), OverlayOptions(drop_zero_area_pairs=False))

    assert any(pair.intersection_area == 0 for pair in pairs)


def test_parallel_quantification_matches_serial():
    store = _store()
    candidates = candidate_ordinals(store)

    serial = quantify_pairs(store, candidates, OverlayOptions(workers=1))
    parallel = quantify_pairs(store, candidates, OverlayOptions(workers=4))

    assert serial == parallel
