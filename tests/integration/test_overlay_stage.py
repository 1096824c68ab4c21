import copy
import json
from pathlib import Path

import pytest

from depindex.common.config_loader import ConfigBundle, OverlayOptions, load_all_configs
from depindex.common.errors import StageError
from depindex.pipeline.export import run_export
from depindex.pipeline.overlay import intermediate_path, run_overlay_stage


@pytest.mark.integration
def test_overlay_stage_persists_summaries_pairs_and_issues(fixture_data_dir: Path):
    bundle = load_all_configs(Path("config"))

    payload = run_overlay_stage(bundle, fixture_data_dir, "run-x")

    on_disk = json.loads(intermediate_path(fixture_data_dir).read_text(encoding="utf-8"))
    assert on_disk["run_id"] == "run-x"
    assert on_disk["area_scale"] == pytest.approx(1e6)
    assert [item["locality_id"] for item in on_disk["summaries"]] == [1, 2, 3]
    assert on_disk["counts"]["attribute_rows"] == 2
    assert on_disk["counts"]["issues"] == len(payload["issues"])
    pair_keys = [(pair["locality_id"], pair["subdivision_key"]) for pair in on_disk["pairs"]]
    assert pair_keys == [(1, "7000001"), (2, "7000002"), (2, "7000003")]
    zero_area = [issue["key"] for issue in on_disk["issues"] if issue["code"] == "ZERO_AREA_OVERLAP"]
    assert zero_area == [[1, "7000003"], [2, "7000001"]]


@pytest.mark.integration
def test_overlay_stage_honours_worker_and_decile_options(fixture_data_dir: Path):
    base = load_all_configs(Path("config"))
    bundle = ConfigBundle(
        pipeline=copy.deepcopy(base.pipeline),
        overlay=OverlayOptions(workers=4, high_deprivation_deciles=frozenset({3})),
    )

    payload = run_overlay_stage(bundle, fixture_data_dir, "run-y")

    summaries = {item["locality_id"]: item for item in payload["summaries"]}
    assert summaries[1]["population_pct_high_deprivation"] == 0
    assert summaries[2]["population_pct_high_deprivation"] == pytest.approx(100)


@pytest.mark.integration
def test_export_requires_overlay_output(fixture_data_dir: Path):
    bundle = load_all_configs(Path("config"))

    with pytest.raises(StageError):
        run_export(bundle.pipeline, fixture_data_dir)


@pytest.mark.integration
def test_export_keeps_unnamed_localities_when_configured(fixture_data_dir: Path):
    bundle = load_all_configs(Path("config"))
    pipeline = copy.deepcopy(bundle.pipeline)
    pipeline["inputs"]["localities"]["drop_unnamed"] = False
    bundle = ConfigBundle(pipeline=pipeline, overlay=bundle.overlay)

    run_overlay_stage(bundle, fixture_data_dir, "run-z")
    result = run_export(pipeline, fixture_data_dir)

    assert result["rows"] == 4
    geojson = json.loads(Path(result["vector"]).read_text(encoding="utf-8"))
    unnamed = geojson["features"][3]["properties"]
    # Same footprint as locality 1, so the same summary.
    assert unnamed["deprivation_score_mean"] == pytest.approx(1200)
