"""
Snapshot sources.

A source exposes the modification time of the current snapshot and its raw
bytes. The receiver rewrites aircraft.json in place, either on local disk or
behind the web server that ships with dump1090-fa.
"""

import logging
import os
import time
from email.utils import parsedate_to_datetime
from typing import Optional

import requests

from relay.errors import SourceAccessError

logger = logging.getLogger(__name__)


class FileSnapshotSource:
    """aircraft.json on the local filesystem."""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def modified_time(self) -> float:
        """Modification time of the file, seconds since epoch."""
        try:
            return os.stat(self.path).st_mtime
        except OSError as e:
            raise SourceAccessError(f"failed to stat {self.path}: {e}") from e

    def read(self) -> bytes:
        try:
            with open(self.path, "rb") as f:
                return f.read()
        except OSError as e:
            raise SourceAccessError(f"failed to read {self.path}: {e}") from e

    def __str__(self) -> str:
        return self.path


class HttpSnapshotSource:
    """aircraft.json served over HTTP (e.g. http://receiver/dump1090-fa/data/aircraft.json)."""

    def __init__(self, url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def exists(self) -> bool:
        try:
            self.modified_time()
            return True
        except SourceAccessError:
            return False

    def _request(self, method: str) -> requests.Response:
        try:
            response = self.session.request(method, self.url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise SourceAccessError(f"{method} {self.url} timed out") from e
        except requests.exceptions.RequestException as e:
            raise SourceAccessError(f"{method} {self.url} failed: {e}") from e

        if not response.ok:
            raise SourceAccessError(f"{method} {self.url} returned HTTP {response.status_code}")
        return response

    def modified_time(self) -> float:
        """
        Last-Modified of the snapshot, seconds since epoch.

        Servers that do not send Last-Modified are treated as always changed.
        """
        response = self._request("HEAD")
        last_modified = response.headers.get("Last-Modified")
        if not last_modified:
            return time.time()
        try:
            return parsedate_to_datetime(last_modified).timestamp()
        except (TypeError, ValueError):
            logger.debug(f"Unparsable Last-Modified header: {last_modified}")
            return time.time()

    def read(self) -> bytes:
        return self._request("GET").content

    def __str__(self) -> str:
        return self.url


def open_source(locator: str, timeout: float = 5.0):
    """Pick the source implementation for a path or URL."""
    if locator.startswith(("http://", "https://")):
        return HttpSnapshotSource(locator, timeout=timeout)
    return FileSnapshotSource(locator)
