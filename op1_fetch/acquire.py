#!/usr/bin/env python3
"""Fetch source documents over HTTP or take them from disk."""
import logging, pathlib, time
from typing import NamedTuple, Optional

import requests

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32 * 1024
REPORT_INTERVAL = 0.5


class DownloadError(Exception):
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"failed to download {url}: {reason}")


class AcquiredDocument(NamedTuple):
    path: pathlib.Path
    downloaded: bool


def temp_download_path(tmp_dir, prefix: str) -> pathlib.Path:
    return pathlib.Path(tmp_dir) / f"{prefix}-{time.time_ns()}.json"


def download_file(url: str, dest, chunk_size: int = CHUNK_SIZE,
                  report_interval: float = REPORT_INTERVAL) -> int:
    """Stream ``url`` into ``dest`` and return the number of bytes written."""
    dest = pathlib.Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        resp = requests.get(url, stream=True)
    except requests.RequestException as e:
        raise DownloadError(url, str(e)) from e
    with resp:
        if resp.status_code != requests.codes.ok:
            raise DownloadError(url, f"server returned status code {resp.status_code}")
        total = 0
        last = time.monotonic()
        with open(dest, 'wb') as out:
            try:
                for chunk in resp.iter_content(chunk_size=chunk_size):
                    if not chunk:
                        continue
                    out.write(chunk)
                    total += len(chunk)
                    if time.monotonic() - last >= report_interval:
                        logger.info("Downloading... %.1f MB", total / (1024 * 1024))
                        last = time.monotonic()
            except requests.RequestException as e:
                raise DownloadError(url, f"error reading from response: {e}") from e
    logger.info("Downloaded %.1f MB to %s", total / (1024 * 1024), dest)
    return total


def acquire_document(local_path: Optional[str], url: str, tmp_dir, prefix: str) -> AcquiredDocument:
    """Use ``local_path`` when given, otherwise download ``url`` into ``tmp_dir``."""
    if local_path:
        path = pathlib.Path(local_path)
        if not path.exists():
            raise FileNotFoundError(f"provided file does not exist: {path}")
        logger.info("Using provided file: %s", path)
        return AcquiredDocument(path, False)
    path = temp_download_path(tmp_dir, prefix)
    try:
        download_file(url, path)
    except BaseException:
        if path.exists():
            path.unlink()
        raise
    return AcquiredDocument(path, True)


def discard(doc: Optional[AcquiredDocument]) -> None:
    """Remove a downloaded document; files supplied by the user are kept."""
    if doc is not None and doc.downloaded and doc.path.exists():
        doc.path.unlink()
        logger.debug("removed %s", doc.path)
