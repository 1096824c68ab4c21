from pathlib import Path

import pytest

from depindex.cli import parse_args, run_command


def _run_once(data_dir: Path, run_id: str, *extra: str) -> None:
    args = parse_args(
        [
            "all",
            "--config-dir",
            "config",
            "--data-dir",
            str(data_dir),
            "--run-date",
            "2026-02-17",
            "--run-id",
            run_id,
            *extra,
        ]
    )
    assert run_command(args) == 0


@pytest.mark.regression
def test_outputs_are_byte_stable_for_same_inputs(make_data_dir):
    first = make_data_dir("first")
    second = make_data_dir("second")

    _run_once(first, "run-a")
    _run_once(second, "run-b")

    for name in ("fire_dep2018.csv", "fire_dep2018.geojson"):
        assert (first / "out" / name).read_bytes() == (second / "out" / name).read_bytes()


@pytest.mark.regression
def test_worker_count_does_not_change_outputs(make_data_dir, tmp_path: Path):
    serial = make_data_dir("serial")
    parallel = make_data_dir("parallel")
    overlay_dir = tmp_path / "overlay-config"
    overlay_dir.mkdir()
    (overlay_dir / "pipeline.yml").write_text("overlay:\n  workers: 4\n", encoding="utf-8")

    _run_once(serial, "run-a")
    _run_once(parallel, "run-b", "--overlay-config-dir", str(overlay_dir))

    assert (serial / "out" / "fire_dep2018.csv").read_bytes() == (parallel / "out" / "fire_dep2018.csv").read_bytes()
