"""Fetch stage: download configured input datasets into the data directory."""

from __future__ import annotations

from pathlib import Path

from depindex.common.constants import INPUT_NAMES
from depindex.common.errors import StageError
from depindex.common.http import HttpClient, HttpRequestError


def run_fetch(pipeline_config: dict, data_dir: Path, *, client: HttpClient | None = None) -> dict:
    inputs = pipeline_config["inputs"]
    downloaded: dict[str, dict] = {}
    skipped: list[str] = []
    failures: list[str] = []

    owns_client = client is None
    client = client or HttpClient()
    try:
        for name in INPUT_NAMES:
            url = inputs[name].get("url")
            if not url:
                skipped.append(name)
                continue
            target = data_dir / inputs[name]["path"]
            try:
                size = client.download(url, target)
            except HttpRequestError:
                failures.append(name)
                continue
            downloaded[name] = {"url": url, "path": str(target), "bytes": size}
    finally:
        if owns_client:
            client.close()

    if failures:
        raise StageError(f"Download failed for inputs: {', '.join(failures)}")

    return {
        "downloaded": downloaded,
        "skipped": skipped,
    }
