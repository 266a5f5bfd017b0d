#!/usr/bin/env python3
"""Tests for document acquisition (download or local file)."""

import pytest
import pathlib
import sys
from unittest.mock import patch

import requests

sys.path.append(str(pathlib.Path(__file__).parent.parent))
from op1_fetch.acquire import (
    AcquiredDocument,
    DownloadError,
    acquire_document,
    discard,
    download_file,
    temp_download_path,
)


def test_temp_download_path_is_unique(tmp_path):
    first = temp_download_path(tmp_path, "raydium-pools")
    second = temp_download_path(tmp_path, "raydium-pools")
    assert first.parent == tmp_path
    assert first.name.startswith("raydium-pools-") and first.suffix == ".json"
    assert first != second


def test_download_writes_chunks(tmp_path, mock_requests, fake_response):
    mock_requests.return_value = fake_response([b'{"a":', b'', b' 1}'])
    dest = tmp_path / "nested" / "doc.json"
    total = download_file("https://example.test/doc.json", dest)
    assert total == 7
    assert dest.read_bytes() == b'{"a": 1}'
    mock_requests.assert_called_once_with("https://example.test/doc.json", stream=True)


def test_download_bad_status(tmp_path, mock_requests, fake_response):
    mock_requests.return_value = fake_response([], status_code=503)
    with pytest.raises(DownloadError, match="status code 503"):
        download_file("https://example.test/doc.json", tmp_path / "doc.json")


def test_download_transport_error(tmp_path, mock_requests):
    mock_requests.side_effect = requests.ConnectionError("refused")
    with pytest.raises(DownloadError) as exc:
        download_file("https://example.test/doc.json", tmp_path / "doc.json")
    assert exc.value.url == "https://example.test/doc.json"


def test_download_progress_logged(tmp_path, mock_requests, fake_response):
    mock_requests.return_value = fake_response([b'x' * 10, b'y' * 10])
    with patch('op1_fetch.acquire.logger') as mock_logger:
        download_file("https://example.test/doc.json", tmp_path / "doc.json", report_interval=0)
    messages = [c.args[0] for c in mock_logger.info.call_args_list]
    assert messages.count("Downloading... %.1f MB") == 2


def test_acquire_local_file(tmp_path, mock_requests):
    path = tmp_path / "pools.json"
    path.write_text("{}")
    doc = acquire_document(str(path), "https://unused", tmp_path / "tmp", "raydium-pools")
    assert doc == AcquiredDocument(path, False)
    mock_requests.assert_not_called()


def test_acquire_missing_local_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        acquire_document(str(tmp_path / "nope.json"), "https://unused", tmp_path, "x")


def test_acquire_downloads_into_tmp(tmp_path, mock_requests, fake_response):
    mock_requests.return_value = fake_response([b'{}'])
    doc = acquire_document(None, "https://example.test/pools.json", tmp_path / "tmp", "raydium-pools")
    assert doc.downloaded
    assert doc.path.parent == tmp_path / "tmp"
    assert doc.path.read_bytes() == b'{}'


def test_failed_download_leaves_no_file(tmp_path, mock_requests, fake_response):
    response = fake_response([])
    response.iter_content.side_effect = requests.ConnectionError("reset")
    mock_requests.return_value = response
    with pytest.raises(DownloadError):
        acquire_document(None, "https://example.test/pools.json", tmp_path, "raydium-pools")
    assert list(tmp_path.iterdir()) == []


def test_discard_only_removes_downloads(tmp_path):
    kept = tmp_path / "mine.json"
    kept.write_text("{}")
    temp = tmp_path / "downloaded.json"
    temp.write_text("{}")
    discard(AcquiredDocument(kept, False))
    discard(AcquiredDocument(temp, True))
    discard(None)
    assert kept.exists()
    assert not temp.exists()
