"""
Shared pytest fixtures for shellbuild tests.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

import gzip
import io
import logging
from pathlib import Path
from typing import Generator, Optional

import httpx
import pytest

from shellbuild.build.config import BuildConfig
from shellbuild.build.download import ArtifactDownloader
from shellbuild.build.session import Builder
from shellbuild.core.utils import LOGGER_NAME


# =============================================================================
# Test Data Constants
# =============================================================================

LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"
ARTIFACT_URI = "https://repo.example.org/tools/formatter-1.0-all.jar"


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )


@pytest.fixture(autouse=True)
def reset_shellbuild_logger() -> Generator[None, None, None]:
    """Drop handlers and level set by configure_logging() during a test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)


# =============================================================================
# Fake HTTP Server
# =============================================================================


class BrokenStream(httpx.SyncByteStream):
    """Body stream that drops the connection after its first chunk."""

    def __init__(self, first: bytes):
        self.first = first

    def __iter__(self):
        yield self.first
        raise httpx.ReadError("connection reset by peer")


class FakeArtifactServer:
    """Serves one artifact through httpx.MockTransport and records requests."""

    def __init__(self, body: bytes = b"jar-bytes", last_modified: Optional[str] = LAST_MODIFIED):
        self.body = body
        self.last_modified = last_modified
        self.status_code = 200
        self.compress = False  # gzip the body whenever the client accepts it
        self.break_body = False
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        payload = self.body
        headers = {}
        if self.compress and "gzip" in request.headers.get("accept-encoding", ""):
            payload = gzip.compress(self.body)
            headers["Content-Encoding"] = "gzip"
        headers["Content-Length"] = str(len(payload))
        if self.last_modified is not None:
            headers["Last-Modified"] = self.last_modified
        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        if self.break_body:
            return httpx.Response(200, headers=headers, stream=BrokenStream(payload[:4]))
        return httpx.Response(200, headers=headers, content=payload)

    @property
    def transfers(self) -> int:
        """Number of body transfers (GET requests) served."""
        return sum(1 for r in self.requests if r.method == "GET")

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def artifact_server() -> FakeArtifactServer:
    return FakeArtifactServer()


@pytest.fixture
def downloader(artifact_server: FakeArtifactServer) -> Generator[ArtifactDownloader, None, None]:
    with ArtifactDownloader(client=artifact_server.client()) as d:
        yield d


# =============================================================================
# Builder Session
# =============================================================================


class FakeDownloader:
    """Stands in for ArtifactDownloader; returns a fixed path."""

    def __init__(self, path: Path):
        self.path = path
        self.calls: list[tuple] = []

    def fetch(self, uri, target_directory, target_file_name=None, skip=None) -> Path:
        self.calls.append((uri, Path(target_directory)))
        return self.path

    def close(self) -> None:
        pass


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def builder(tmp_path: Path, out: io.StringIO) -> Generator[Builder, None, None]:
    """Builder rooted in tmp_path, with entry point discovery disabled."""
    config = BuildConfig(project_root=tmp_path)
    downloader = FakeDownloader(tmp_path / "google-java-format.jar")
    with Builder(config, out=out, err=out, downloader=downloader, discover=lambda name: None) as b:
        yield b
