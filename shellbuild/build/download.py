"""
Artifact download with a metadata cache.

A downloaded file is reused when its modification time equals the remote
Last-Modified timestamp and its size equals the remote Content-Length. After
every transfer the local mtime is set to the remote timestamp so the next
fetch can make that comparison. No manifest is kept beside the file.
"""

from __future__ import annotations

import os
import tempfile
from datetime import timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import urlsplit

import httpx

from shellbuild.core.utils import TagAdapter, get_log
from shellbuild.errors import DownloadFailure

SkipPredicate = Callable[[Path], bool]

CHUNK_SIZE = 64 * 1024

IDENTITY_ENCODING = {"Accept-Encoding": "identity"}


def file_name_from_uri(uri: str) -> str:
    """Last path segment of the URI, without query or fragment."""
    path = urlsplit(uri).path
    return path[path.rfind("/") + 1 :]


def _remote_mtime_ns(response: httpx.Response) -> int:
    value = response.headers.get("last-modified")
    if not value:
        return 0
    try:
        stamp = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return 0
    # "-0000" parses to a naive datetime; HTTP dates are always UTC.
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return int(stamp.timestamp()) * 1_000_000_000


def _remote_size(response: httpx.Response) -> int:
    value = response.headers.get("content-length")
    try:
        return int(value) if value is not None else -1
    except ValueError:
        return -1


def _always(_path: Path) -> bool:
    return True


class ArtifactDownloader:
    """Fetch URIs into directories, skipping transfers for fresh local copies."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        log: Optional[TagAdapter] = None,
        timeout: float = 30.0,
    ):
        self.client = client if client is not None else httpx.Client(
            follow_redirects=True, timeout=timeout
        )
        self.log = log if log is not None else get_log(__name__)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ArtifactDownloader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def fetch(
        self,
        uri: str,
        target_directory: Union[str, Path],
        target_file_name: Optional[str] = None,
        skip: Optional[SkipPredicate] = None,
    ) -> Path:
        """Download uri into target_directory and return the local path.

        Args:
            uri: Resource to fetch.
            target_directory: Created if missing.
            target_file_name: Defaults to the last segment of the URI path.
            skip: Extra veto on cache hits; a fresh file is only reused when
                this returns True for its path.

        Raises:
            DownloadFailure: On any HTTP or filesystem error.
        """
        uri = str(uri)
        if target_file_name is None:
            target_file_name = file_name_from_uri(uri)
        if skip is None:
            skip = _always

        with self.log.tagged("download"):
            try:
                return self._fetch(uri, Path(target_directory), target_file_name, skip)
            except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
                raise DownloadFailure(uri, exc) from exc

    def _fetch(self, uri: str, target_directory: Path, file_name: str, skip: SkipPredicate) -> Path:
        target_directory.mkdir(parents=True, exist_ok=True)
        target_path = target_directory / file_name

        # Content-Length must describe the bytes that end up on disk.
        head = self.client.head(uri, headers=IDENTITY_ENCODING)
        head.raise_for_status()
        remote_mtime_ns = _remote_mtime_ns(head)
        remote_size = _remote_size(head)

        if target_path.exists():
            stat = target_path.stat()
            if stat.st_mtime_ns == remote_mtime_ns and stat.st_size == remote_size and skip(target_path):
                self.log.debug("download skipped - using `%s`", target_path)
                return target_path
            target_path.unlink()

        self.log.debug("download `%s` in progress...", uri)
        fd, part_name = tempfile.mkstemp(prefix=f".{file_name}.", suffix=".part", dir=target_directory)
        part_path = Path(part_name)
        try:
            with os.fdopen(fd, "wb") as target:
                with self.client.stream("GET", uri, headers=IDENTITY_ENCODING) as response:
                    response.raise_for_status()
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        target.write(chunk)
            os.utime(part_path, ns=(remote_mtime_ns, remote_mtime_ns))
            os.replace(part_path, target_path)
        except BaseException:
            part_path.unlink(missing_ok=True)
            raise
        self.log.debug("download `%s` completed", uri)
        self.log.info("stored `%s` [%s]", target_path, head.headers.get("last-modified", "no timestamp"))
        return target_path
