"""Reconnecting consumer for the live dashboard event stream.

:class:`LiveEventClient` keeps a best-effort stream open against
``GET /v1/events`` and reports its status as a small state machine::

    disconnected -> connecting -> connected -> retrying -> connecting -> ...

Permanent failures (bad tenant id, rejected credentials, any other 4xx
except 408/429, a response that is not an event stream) go straight to
``disconnected`` and are never retried. Any other ``httpx`` error, 5xx,
408/429 and a stream that simply ends are retried with capped exponential
backoff, at most ``max_retries`` times in a row. Exceptions raised by the
callbacks are logged and never stop the client.

Usage::

    client = LiveEventClient(
        "https://api.example.com", org_id, token=token,
        on_transition=lambda t: print(t.current), on_event=handle,
    )
    client.start()
    ...
    await client.close()
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import httpx
from pydantic import ValidationError

from vigor.config import settings
from vigor.events.codec import CONTROL_EVENTS, Frame, FrameDecoder
from vigor.events.types import DomainEvent, parse_event
from vigor.exceptions import LiveStreamError
from vigor.validation import is_valid_identifier

logger = logging.getLogger("vigor.client")

#: 4xx statuses that are worth retrying.
RETRYABLE_CLIENT_STATUSES: frozenset[int] = frozenset({408, 429})

JITTER_RATIO = 0.1


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RETRYING = "retrying"


@dataclass(frozen=True)
class Transition:
    """One status change, delivered to ``on_transition`` in order."""

    previous: ConnectionStatus
    current: ConnectionStatus
    attempt: int
    error: str | None = None


def is_permanent_status(status_code: int) -> bool:
    """True for HTTP statuses a reconnect cannot fix."""
    return 400 <= status_code < 500 and status_code not in RETRYABLE_CLIENT_STATUSES


def backoff_delay(
    retry: int, base: float, ceiling: float, *, jitter: Callable[[], float] = random.random
) -> float:
    """Delay before retry number *retry* (1-based), in seconds.

    ``min(base * 2**(retry - 1), ceiling)`` plus up to 10% jitter.
    """
    delay = min(base * (2 ** max(retry - 1, 0)), ceiling)
    return delay + delay * JITTER_RATIO * jitter()


class LiveEventClient:
    """Consume tenant events with bounded, classified reconnects."""

    def __init__(
        self,
        base_url: str,
        org_id: str | None,
        location_id: str | None = None,
        *,
        token: str | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        max_retry_delay: float | None = None,
        on_transition: Callable[[Transition], None] | None = None,
        on_event: Callable[[DomainEvent], None] | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        path: str = "/v1/events",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.org_id = org_id
        self.location_id = location_id
        self.path = path
        self.max_retries = settings.client_max_retries if max_retries is None else max_retries
        self.retry_delay = (
            settings.client_retry_delay_ms / 1000 if retry_delay is None else retry_delay
        )
        self.max_retry_delay = (
            settings.client_max_retry_delay_ms / 1000 if max_retry_delay is None else max_retry_delay
        )
        self._token = token
        self._on_transition = on_transition
        self._on_event = on_event
        self._sleep = sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))

        self.status = ConnectionStatus.DISCONNECTED
        self.retries = 0
        self.last_error: str | None = None
        self.last_event_id: str | None = None
        self.event_count = 0
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _transition(self, current: ConnectionStatus, error: str | None = None) -> None:
        if self._closed:
            return
        if error is not None:
            self.last_error = error
        if current is self.status and error is None:
            return
        previous, self.status = self.status, current
        if self._on_transition is None:
            return
        try:
            self._on_transition(Transition(previous, current, self.retries, error))
        except Exception:
            logger.exception("on_transition callback failed")

    def _config_error(self) -> str | None:
        if not self.org_id or not self.org_id.strip():
            return "orgId is required"
        if not is_valid_identifier(self.org_id):
            return "orgId must be a valid UUID"
        if self.location_id is not None and not is_valid_identifier(self.location_id):
            return "locationId must be a valid UUID"
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Run the client in a background task. Idempotent while running."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(
                self.run(), name="vigor-live-client"
            )
        return self._task

    async def run(self) -> None:
        """Connect and keep reconnecting until a terminal state or :meth:`close`."""
        if self._closed:
            return

        error = self._config_error()
        if error is not None:
            logger.warning("Not connecting to live events: %s", error)
            self._transition(ConnectionStatus.DISCONNECTED, error)
            return

        self.retries = 0
        while not self._closed:
            self._transition(ConnectionStatus.CONNECTING)
            try:
                await self._consume()
                error = "Stream ended"
            except LiveStreamError as e:
                if e.permanent:
                    logger.warning("Live events rejected: %s", e)
                    self._transition(ConnectionStatus.DISCONNECTED, str(e))
                    return
                error = str(e)
            except (httpx.HTTPError, httpx.StreamError) as e:
                error = str(e) or type(e).__name__

            if self._closed:
                return
            if self.retries >= self.max_retries:
                logger.warning("Live events gave up after %d retries: %s", self.retries, error)
                self._transition(ConnectionStatus.DISCONNECTED, error)
                return

            self.retries += 1
            self._transition(ConnectionStatus.RETRYING, error)
            delay = backoff_delay(self.retries, self.retry_delay, self.max_retry_delay)
            logger.info("Live events retry %d in %.2fs: %s", self.retries, delay, error)
            await self._sleep(delay)

    async def close(self) -> None:
        """Tear down the stream and silence all callbacks. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self.status = ConnectionStatus.DISCONNECTED

        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Stream
    # ------------------------------------------------------------------

    def _request_headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id
        return headers

    def _request_params(self) -> dict[str, str]:
        params = {"orgId": self.org_id or ""}
        if self.location_id is not None:
            params["locationId"] = self.location_id
        return params

    async def _consume(self) -> None:
        async with self._http.stream(
            "GET",
            f"{self.base_url}{self.path}",
            params=self._request_params(),
            headers=self._request_headers(),
        ) as response:
            if response.status_code >= 400:
                await response.aread()
                raise LiveStreamError(
                    f"HTTP {response.status_code}",
                    permanent=is_permanent_status(response.status_code),
                    status_code=response.status_code,
                )
            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("text/event-stream"):
                raise LiveStreamError(
                    f"Unexpected content type: {content_type or 'none'}",
                    permanent=True,
                    status_code=response.status_code,
                )

            self.retries = 0
            self._transition(ConnectionStatus.CONNECTED)

            decoder = FrameDecoder()
            async for chunk in response.aiter_text():
                for frame in decoder.feed(chunk):
                    self._dispatch(frame)
                if self._closed:
                    return

    def _dispatch(self, frame: Frame) -> None:
        if frame.id:
            self.last_event_id = frame.id
        if frame.event in CONTROL_EVENTS or self._closed:
            return
        try:
            event = parse_event(frame.data)
        except ValidationError:
            logger.warning("Dropping malformed %s frame", frame.event, extra={"event_type": frame.event})
            return
        self.event_count += 1
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception("on_event callback failed", extra={"event_type": event.type})
