"""Streamed HTTP reads bounded by an overall deadline.

``requests`` applies ``timeout`` to the connect and to each socket read, so a
server that trickles a few bytes at a time can keep a plain ``get`` open far
past its limit. ``get_bytes`` streams the body and abandons the request once
the total elapsed time crosses the limit.
"""

import time
from typing import Any, Callable, Optional, Tuple

import requests

from niftydesk.core.logger import logger

CHUNK_SIZE = 16 * 1024


def get_bytes(
    session: requests.Session,
    url: str,
    timeout: float,
    clock: Optional[Callable[[], float]] = None,
    **kwargs: Any,
) -> Tuple[requests.Response, bytes]:
    """GET ``url`` and read the whole body within ``timeout`` seconds.

    The body of a non-2xx response is not read; empty ``bytes`` are returned
    alongside it.

    Raises:
        requests.Timeout: The overall deadline passed before the body finished.
        requests.RequestException: Any other transport failure.
    """
    clock = clock or time.monotonic
    started = clock()

    def check_deadline() -> None:
        if clock() - started > timeout:
            logger.warning(f"get_bytes: {url} still streaming after {timeout}s, abandoning")
            raise requests.Timeout(f"{url} exceeded {timeout}s overall")

    resp = session.get(url, timeout=timeout, stream=True, **kwargs)
    chunks = []
    try:
        if not resp.ok:
            return resp, b""
        check_deadline()
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            check_deadline()
    finally:
        resp.close()
    return resp, b"".join(chunks)
