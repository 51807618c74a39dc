"""WebhookSink — POSTs session events as JSON to an HTTP endpoint.

Note: fire-and-forget delivery may drop events once retries run out.
Pass ``on_failure`` in production to find out about such gaps.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Awaitable, Callable

import aiohttp

from rollcall.audit import SessionEvent

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=10)

FailureCallback = Callable[[str, Exception], Awaitable[None]]


class WebhookSink:
    """Delivers each SessionEvent to ``url`` as a JSON body.

    ``emit`` returns straight away and never holds up the session. Inside
    a running event loop the POST is scheduled as a task (see ``flush``).
    Without one it runs on a daemon thread with its own loop and client
    session (see ``join``). Async callers that want the outcome use
    ``await deliver(event)``.

    Args:
        url: Endpoint receiving the POSTs.
        headers: Extra request headers, e.g. an auth token.
        max_retries: Attempts per event, the first one included.
        base_delay: Backoff before retry n is ``base_delay * 2**(n-1)`` seconds.
        timeout: Per-request aiohttp timeout. Defaults to 10s total.
        on_failure: Awaited with ``(body, last_exception)`` once every
            attempt for an event has failed.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        timeout: aiohttp.ClientTimeout | None = None,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._max_retries = max(1, max_retries)
        self._base_delay = base_delay
        self._timeout = timeout or _DEFAULT_TIMEOUT
        self._on_failure = on_failure
        self._client: aiohttp.ClientSession | None = None
        self._pending: set[asyncio.Task] = set()
        self._threads: set[threading.Thread] = set()
        self._threads_lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._url

    def emit(self, event: SessionEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver_in_thread(event)
            return

        task = loop.create_task(self.deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    async def deliver(self, event: SessionEvent) -> bool:
        """POST one event, retrying with exponential backoff. True once accepted."""
        return await self._post(event, self._get_client())

    async def flush(self) -> None:
        """Wait for every delivery ``emit`` scheduled on the running loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def join(self, timeout: float | None = None) -> None:
        """Wait for every delivery ``emit`` started on a background thread."""
        with self._threads_lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)

    async def close(self) -> None:
        """Close the client session used by ``deliver``."""
        if self._client is not None and not self._client.closed:
            await self._client.close()
        self._client = None

    async def _post(self, event: SessionEvent, client: aiohttp.ClientSession) -> bool:
        body = json.dumps(event.to_dict())
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                async with client.post(self._url, data=body, headers=self._headers) as resp:
                    resp.raise_for_status()
                    logger.debug("Delivered %s to %s", event.kind.value, self._url)
                    return True
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_error = exc
                if attempt < self._max_retries:
                    delay = self._base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        "Webhook %s rejected %s (attempt %d/%d): %s. Retrying in %.1fs.",
                        self._url,
                        event.kind.value,
                        attempt,
                        self._max_retries,
                        exc,
                        delay,
                    )
                    await asyncio.sleep(delay)

        logger.error(
            "Webhook %s failed after %d retries for %s: %s",
            self._url,
            self._max_retries,
            event.kind.value,
            last_error,
        )
        if self._on_failure is not None and last_error is not None:
            try:
                await self._on_failure(body, last_error)
            except Exception:
                logger.exception("on_failure callback raised")
        return False

    def _get_client(self) -> aiohttp.ClientSession:
        if self._client is None or self._client.closed:
            self._client = aiohttp.ClientSession(timeout=self._timeout)
        return self._client

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Webhook delivery to %s raised", self._url, exc_info=exc)

    def _deliver_in_thread(self, event: SessionEvent) -> None:
        thread = threading.Thread(
            target=self._run_delivery,
            args=(event,),
            name=f"rollcall-webhook-{event.kind.value}",
            daemon=True,
        )
        with self._threads_lock:
            self._threads.add(thread)
        thread.start()

    def _run_delivery(self, event: SessionEvent) -> None:
        try:
            asyncio.run(self._post_with_own_client(event))
        except Exception:
            logger.exception("Webhook delivery to %s raised", self._url)
        finally:
            with self._threads_lock:
                self._threads.discard(threading.current_thread())

    async def _post_with_own_client(self, event: SessionEvent) -> bool:
        # Each thread runs its own loop; a client session cannot cross loops.
        async with aiohttp.ClientSession(timeout=self._timeout) as client:
            return await self._post(event, client)
