from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from ..errors import RequestCancelled, TransportError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


class CancelToken:
    """
    Cooperative cancellation flag shared between the UI thread and a worker.

    Clients register callbacks with on_cancel() to tear down an open
    connection when the token is raised from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            _run_callback(callback)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled("Request cancelled")

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run `callback` when the token is cancelled (right away if it already is).

        Returns a function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        _run_callback(callback)
        return lambda: None

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.warning("Cancel callback %r failed", callback, exc_info=True)


@dataclass(frozen=True)
class HttpResult:
    status_code: int
    text: str


def post_json(
    session: requests.Session,
    url: str,
    *,
    body: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
    connect_timeout: float = 10.0,
    deadline_seconds: float = 60.0,
    cancel: Optional[CancelToken] = None,
) -> HttpResult:
    """
    POST a JSON body and return the status code and the decoded body text.

    The body is streamed so the cancel token and the overall deadline are
    honored while the answer is still arriving. Non-2xx answers are returned,
    not raised: classification happens in the caller.

    Raises:
        TransportError: connection failure, timeout or deadline exceeded
        RequestCancelled: the cancel token was raised during the transfer
    """
    started = time.monotonic()
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})

    try:
        resp = session.post(
            url,
            json=body,
            headers=all_headers,
            params=params,
            timeout=(connect_timeout, deadline_seconds),
            stream=True,
        )
    except requests.exceptions.Timeout:
        raise TransportError(f"Request timed out after {deadline_seconds:.0f} seconds") from None
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Network Error: {type(e).__name__}") from e

    # a cancel from the UI thread closes the response and ends the read loop
    unregister = cancel.on_cancel(resp.close) if cancel is not None else None
    with resp:
        chunks = []
        try:
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if cancel is not None:
                    cancel.raise_if_cancelled()
                if time.monotonic() - started > deadline_seconds:
                    raise TransportError(
                        f"Request exceeded its {deadline_seconds:.0f} second deadline"
                    )
                chunks.append(chunk)
        except requests.exceptions.RequestException as e:
            if cancel is not None:
                cancel.raise_if_cancelled()
            raise TransportError(f"Network Error while reading response: {type(e).__name__}") from e
        finally:
            if unregister is not None:
                unregister()
        if cancel is not None:
            cancel.raise_if_cancelled()

        encoding = resp.encoding or "utf-8"
        text = b"".join(chunks).decode(encoding, errors="replace")

    logger.debug("POST %s -> %s (%d bytes)", resp.url.split("?")[0], resp.status_code, len(text))
    return HttpResult(status_code=resp.status_code, text=text)
