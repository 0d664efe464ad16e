"""
HTTP helpers shared by every stage.

Wraps a ``requests.Session`` call so that each stage gets the same
behaviour for free:

  * **Fully drained bodies** -- the body is read and the response closed
    before returning, so the connection goes back to the pool whatever
    the outcome.  Leaking half-read responses under load exhausts the
    pool and shows up as spurious timeouts.
  * **No dereferencing of absent responses** -- a session that hands
    back ``None`` (a misbehaving adapter or test double) is reported as a
    transport failure instead of crashing on ``.status_code``.
  * **Typed failures** -- ``requests`` exceptions become
    :class:`~emojify_traffic.errors.TransportError`, unexpected statuses
    become :class:`~emojify_traffic.errors.StatusError`.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from .errors import ParseError, StatusError, TransportError

logger = logging.getLogger(__name__)


def is_success(status_code: int) -> bool:
    """Any 2xx status."""
    return 200 <= status_code < 300


def is_ok(status_code: int) -> bool:
    """Exactly 200, which the API endpoints return on success."""
    return status_code == 200


@dataclass(frozen=True)
class HttpReply:
    """A response whose body has already been read and released."""

    url: str
    status_code: int
    body: bytes

    def json_object(self, stage: str) -> dict[str, Any]:
        """
        Decode the body as a JSON object.

        Raises:
            ParseError: If the body is not JSON, or is JSON but not an
                object (a bare list or string is as useless as garbage).
        """
        try:
            data = json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ParseError(self.url, f"invalid JSON ({exc})", stage=stage) from exc

        if not isinstance(data, dict):
            raise ParseError(self.url, "JSON body is not an object", stage=stage)
        return data


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    stage: str,
    timeout: float,
    accept: Callable[[int], bool] = is_ok,
    **kwargs: Any,
) -> HttpReply:
    """
    Perform one request and return its drained reply.

    Args:
        session: Session owned by the current iteration.
        method: HTTP verb.
        url: Absolute URL.
        stage: Stage name recorded on any error raised.
        timeout: Seconds allowed for connect and for each read.
        accept: Predicate deciding which status codes count as success.
        **kwargs: Passed through to ``session.request`` (``data``,
            ``headers``...).

    Returns:
        The reply, with status accepted by *accept*.

    Raises:
        TransportError: The request could not be completed, or no
            response object was produced.
        StatusError: The status code was rejected by *accept*.
    """
    started = time.perf_counter()
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        logger.debug("%s %s failed: %s", method, url, exc)
        raise TransportError(url, exc, stage=stage) from exc

    if response is None:
        raise TransportError(url, ConnectionError("no response received"), stage=stage)

    try:
        body = response.content
    except requests.RequestException as exc:
        # Body read can fail mid-stream (connection reset, bad chunking).
        raise TransportError(url, exc, stage=stage) from exc
    finally:
        response.close()

    reply = HttpReply(url=url, status_code=response.status_code, body=body or b"")
    logger.debug(
        "%s %s -> %s in %.1f ms",
        method,
        url,
        reply.status_code,
        (time.perf_counter() - started) * 1000,
    )

    if not accept(reply.status_code):
        raise StatusError(url, reply.status_code, stage=stage)
    return reply
