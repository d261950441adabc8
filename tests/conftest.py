"""Shared pytest fixtures for all tests."""

import hashlib
import json

import httpx
import pytest

from filebin.config import Config
from filebin.session import BinSession
from filebin.transport import Transport

BASE_URL = "https://filebin.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def file_payload(filename: str, content: bytes) -> dict:
    """Build a service file entry for content."""
    return {
        "filename": filename,
        "content-type": "application/octet-stream",
        "bytes": len(content),
        "bytes_readable": f"{len(content)} B",
        "md5": hashlib.md5(content).hexdigest(),
        "sha256": hashlib.sha256(content).hexdigest(),
        "updated_at": "2026-10-19T10:00:00.000000Z",
        "updated_at_relative": "just now",
        "created_at": "2026-10-19T10:00:00.000000Z",
        "created_at_relative": "just now",
    }


def bin_payload(readonly: bool = False, files: dict | None = None) -> dict:
    """Build a GET /{bin} response body."""
    files = files or {}
    return {
        "bin": {
            "readonly": readonly,
            "bytes": sum(len(c) for c in files.values()),
            "bytes_readable": "0 B",
            "updated_at": "2026-10-19T10:00:00.000000Z",
            "updated_at_relative": "just now",
            "created_at": "2026-10-19T09:00:00.000000Z",
            "created_at_relative": "an hour ago",
            "expired_at": "2026-10-25T09:00:00.000000Z",
            "expired_at_relative": "6 days from now",
        },
        "files": [file_payload(name, content) for name, content in files.items()],
    }


class FakeFilebinService:
    """
    In-memory stand-in for the filebin HTTP API, used as an httpx.MockTransport handler.

    Every request is recorded in `requests` as (method, path, headers, body).
    Entries in `overrides` force a status code for a (method, path) pair.
    """

    def __init__(self):
        self.bins: dict[str, dict] = {}
        self.requests: list[tuple[str, str, httpx.Headers, bytes]] = []
        self.overrides: dict[tuple[str, str], int] = {}

    def add_bin(self, bin_id: str, files: dict | None = None, readonly: bool = False) -> None:
        self.bins[bin_id] = {"readonly": readonly, "files": dict(files or {})}

    def calls(self, method: str | None = None) -> list[tuple[str, str]]:
        return [(m, p) for m, p, _, _ in self.requests if method is None or m == method]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        path = request.url.path
        self.requests.append((request.method, path, request.headers, body))

        forced = self.overrides.get((request.method, path))
        if forced is not None:
            return httpx.Response(forced, json={"error": "forced"})

        segments = [s for s in path.split("/") if s]

        if segments[0] == "archive" and len(segments) == 3:
            return self._archive(segments[1], segments[2])
        if segments[0] == "qr" and len(segments) == 2:
            return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})
        if len(segments) == 1:
            return self._bin(request.method, segments[0])
        if len(segments) == 2:
            return self._file(request.method, segments[0], segments[1], body)
        return httpx.Response(404)

    def _bin(self, method: str, bin_id: str) -> httpx.Response:
        if method == "GET":
            if bin_id not in self.bins:
                self.add_bin(bin_id)
            data = self.bins[bin_id]
            return httpx.Response(200, json=bin_payload(data["readonly"], data["files"]))
        if bin_id not in self.bins:
            return httpx.Response(404)
        if method == "PUT":
            self.bins[bin_id]["readonly"] = True
            return httpx.Response(200, json={})
        if method == "DELETE":
            del self.bins[bin_id]
            return httpx.Response(200, json={})
        return httpx.Response(405)

    def _file(self, method: str, bin_id: str, filename: str, body: bytes) -> httpx.Response:
        data = self.bins.get(bin_id)
        if method == "POST":
            if data is None:
                self.add_bin(bin_id)
                data = self.bins[bin_id]
            if data["readonly"]:
                return httpx.Response(405)
            data["files"][filename] = body
            return httpx.Response(201, json={"bin": {}, "file": file_payload(filename, body)})
        if data is None or filename not in data["files"]:
            return httpx.Response(404)
        if method == "GET":
            return httpx.Response(200, content=data["files"][filename])
        if method == "DELETE":
            del data["files"][filename]
            return httpx.Response(200, json={})
        return httpx.Response(405)

    def _archive(self, bin_id: str, archive_format: str) -> httpx.Response:
        data = self.bins.get(bin_id)
        if data is None or archive_format not in ("tar", "zip"):
            return httpx.Response(404)
        listing = json.dumps(sorted(data["files"])).encode()
        return httpx.Response(200, content=archive_format.encode() + b":" + listing)


@pytest.fixture
def service():
    """Fresh fake filebin service."""
    return FakeFilebinService()


@pytest.fixture
def temp_config(tmp_path):
    """
    Create a config pointing at the fake service, with a private scratch root.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Config instance
    """
    return Config(
        tmp_path / '.filebin' / 'config.json',
        base_url=BASE_URL,
        scratch_dir=str(tmp_path / 'scratch'),
        chunk_size=1024,
    )


@pytest.fixture
def transport(temp_config, service):
    """Transport whose HTTP client is backed by the fake service."""
    client = httpx.Client(transport=httpx.MockTransport(service), base_url=BASE_URL)
    with Transport(temp_config, client=client) as t:
        yield t


@pytest.fixture
def make_session(transport, temp_config):
    """Factory creating a BinSession against the fake service."""
    def factory(bin_id: str | None = None) -> BinSession:
        return BinSession.create(bin_id, transport=transport, config=temp_config)
    return factory


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing uploads.

    Returns:
        Path to a 1024-byte file named report.pdf
    """
    file_path = tmp_path / 'report.pdf'
    file_path.write_bytes(bytes(range(256)) * 4)
    return file_path
