"""Filesystem helpers.

Writers go through `atomic_write` or `atomic_path`, so a target path either
holds the previous content or the complete new content.
"""

from __future__ import annotations

import csv
import json
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterable, Iterator, Mapping


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


@contextmanager
def atomic_write(path: Path, mode: str = "w", **open_kwargs) -> Iterator[IO]:
    ensure_dir(path.parent)
    partial_path = path.with_name(path.name + ".part")
    try:
        with partial_path.open(mode, **open_kwargs) as f:
            yield f
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise
    partial_path.replace(path)


@contextmanager
def atomic_path(path: Path) -> Iterator[Path]:
    """Staging path for writers that produce sidecar files next to `path`.

    Everything written into the staging directory replaces its namesake
    beside `path` once the block exits cleanly.
    """
    staging = path.parent / f".{path.name}.part"
    shutil.rmtree(staging, ignore_errors=True)
    ensure_dir(staging)
    try:
        yield staging / path.name
        for produced in sorted(staging.iterdir()):
            produced.replace(path.parent / produced.name)
    finally:
        shutil.rmtree(staging, ignore_errors=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload) -> None:
    with atomic_write(path, encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_csv(path: Path, headers: list[str], rows: Iterable[Mapping[str, object]]) -> None:
    with atomic_write(path, encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def read_csv(path: Path) -> tuple[list[str], list[dict]]:
    # utf-8-sig drops the byte-order mark spreadsheet exports tend to carry.
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader.fieldnames or []), list(reader)
