"""Open harvest sources as binary streams.

A source location is a filesystem path, a file:// URL or an http(s):// URL.
Remote sources are fetched with httpx.
"""

import io
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import unquote, urlparse

import httpx

from authorities.exceptions import SourceUnavailableError

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "local-authorities-harvester/0.1"


def is_remote(location: str) -> bool:
    return urlparse(str(location)).scheme in ("http", "https")


def fetch_remote(location: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Download a remote source.

    Raises:
        SourceUnavailableError: On timeouts, connection errors and non-2xx responses
    """
    headers = {"User-Agent": USER_AGENT}
    try:
        with httpx.Client(follow_redirects=True, timeout=timeout, headers=headers) as client:
            response = client.get(location)
            response.raise_for_status()
            return response.content
    except (httpx.TimeoutException, httpx.RequestError, httpx.HTTPStatusError) as e:
        raise SourceUnavailableError(location, e) from e


def local_path(location: str) -> Path:
    parsed = urlparse(str(location))
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(location)


@contextmanager
def open_source(location: str, timeout: float = DEFAULT_TIMEOUT) -> Iterator[BinaryIO]:
    """Yield a binary stream over the source at `location`.

    Raises:
        SourceUnavailableError: If the source cannot be opened or fetched
    """
    location = str(location)
    if is_remote(location):
        yield io.BytesIO(fetch_remote(location, timeout=timeout))
        return

    path = local_path(location)
    try:
        stream = open(path, "rb")
    except OSError as e:
        raise SourceUnavailableError(location, e) from e
    with stream:
        yield stream
