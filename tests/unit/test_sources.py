"""
Unit tests for snapshot sources.
"""

import os
from pathlib import Path
import sys

import pytest
import requests

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from relay.errors import SourceAccessError
from relay.sources import FileSnapshotSource, HttpSnapshotSource, open_source

URL = "http://piaware/dump1090-fa/data/aircraft.json"


def response(status=200, content=b"", headers=None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = content
    r.headers.update(headers or {})
    r.url = URL
    return r


class StubSession:
    """Returns canned responses instead of talking to a receiver."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def request(self, method, url, timeout=None):
        self.calls.append(method)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestFileSnapshotSource:

    def test_modified_time_and_read(self, tmp_path):
        path = tmp_path / "aircraft.json"
        path.write_bytes(b'{"aircraft": []}')
        os.utime(path, (1000.0, 2000.0))
        source = FileSnapshotSource(str(path))

        assert source.exists()
        assert source.modified_time() == 2000.0
        assert source.read() == b'{"aircraft": []}'

    def test_missing_file(self, tmp_path):
        source = FileSnapshotSource(str(tmp_path / "missing.json"))

        assert not source.exists()
        with pytest.raises(SourceAccessError):
            source.modified_time()
        with pytest.raises(SourceAccessError):
            source.read()


class TestHttpSnapshotSource:

    def test_last_modified(self):
        session = StubSession(response(headers={"Last-Modified": "Fri, 03 May 2024 19:40:00 GMT"}))
        source = HttpSnapshotSource(URL, session=session)

        assert source.modified_time() == 1714765200.0
        assert session.calls == ["HEAD"]

    def test_missing_last_modified_is_always_newer(self):
        source = HttpSnapshotSource(URL, session=StubSession(response()))

        first = source.modified_time()
        assert first > 0

    def test_read(self):
        session = StubSession(response(content=b'{"aircraft": []}'))
        source = HttpSnapshotSource(URL, session=session)

        assert source.read() == b'{"aircraft": []}'
        assert session.calls == ["GET"]

    def test_http_error(self):
        source = HttpSnapshotSource(URL, session=StubSession(response(status=404)))

        with pytest.raises(SourceAccessError):
            source.read()
        assert not source.exists()

    def test_connection_error(self):
        source = HttpSnapshotSource(URL, session=StubSession(requests.exceptions.ConnectionError("refused")))

        with pytest.raises(SourceAccessError):
            source.modified_time()

    def test_timeout(self):
        source = HttpSnapshotSource(URL, session=StubSession(requests.exceptions.Timeout()))

        with pytest.raises(SourceAccessError):
            source.read()


def test_open_source():
    assert isinstance(open_source(URL), HttpSnapshotSource)
    assert isinstance(open_source("https://receiver/data/aircraft.json"), HttpSnapshotSource)
    assert isinstance(open_source("/run/dump1090-fa/aircraft.json"), FileSnapshotSource)
