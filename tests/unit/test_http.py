from __future__ import annotations

from pathlib import Path

import pytest
import requests

from depindex.common.http import HttpClient, HttpRequestError, RetryConfig, RetryableHttpError


class FakeResponse:
    def __init__(self, status_code: int, chunks=None, fail_midway: bool = False):
        self.status_code = status_code
        self._chunks = chunks or []
        self._fail_midway = fail_midway

    def iter_content(self, chunk_size=None):
        for chunk in self._chunks:
            yield chunk
        if self._fail_midway:
            raise requests.ConnectionError("reset")


def test_download_writes_target(monkeypatch, tmp_path: Path):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, [b"abc", b"", b"de"]))
    target = tmp_path / "raw" / "input.geojson"

    written = client.download("https://example.com/input.geojson", target)

    assert written == 5
    assert target.read_bytes() == b"abcde"
    assert not target.with_name("input.geojson.part").exists()


def test_download_retryable_status_raises_retryable_error(monkeypatch, tmp_path: Path):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503))

    with pytest.raises(RetryableHttpError):
        client.download("https://example.com", tmp_path / "x.csv")


def test_download_client_error_is_not_retried(monkeypatch, tmp_path: Path):
    calls = []

    def fake_request(**kwargs):
        calls.append(kwargs["url"])
        return FakeResponse(404)

    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0, max_wait=0))
    monkeypatch.setattr(client.session, "request", fake_request)

    with pytest.raises(HttpRequestError) as excinfo:
        client.download("https://example.com/missing", tmp_path / "x.csv")
    assert not isinstance(excinfo.value, RetryableHttpError)
    assert calls == ["https://example.com/missing"]


def test_interrupted_download_leaves_no_partial_file(monkeypatch, tmp_path: Path):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, [b"ab"], fail_midway=True))
    target = tmp_path / "x.csv"

    with pytest.raises(RetryableHttpError):
        client.download("https://example.com", target)
    assert not target.exists()
    assert not (tmp_path / "x.csv.part").exists()
