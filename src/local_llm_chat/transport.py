"""HTTP transport with timeout and cooperative cancellation."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
import time
from typing import Any

import httpx

from .exceptions import (
    DeadlineExceededError,
    NetworkError,
    RequestCancelledError,
)

LOGGER = logging.getLogger(__name__)

# Keep error messages readable when a backend answers with an HTML page.
MAX_ERROR_BODY_CHARS = 2000


class CancelReason(str, Enum):
    """Why an in-flight request was withdrawn."""

    USER_CANCELLED = "user_cancelled"
    SUPERSEDED = "superseded"


class CancelSignal:
    """One-shot cancellation signal shared by a controller and a transport call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: CancelReason | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    def cancel(self, reason: CancelReason = CancelReason.USER_CANCELLED) -> None:
        """Raise the signal; the first reason wins."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> CancelReason | None:
        await self._event.wait()
        return self._reason


class HttpTransport:
    """Issue one JSON POST per chat turn.

    Every call opens its own ``httpx.AsyncClient`` with the caller's timeout
    and closes it before returning.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @staticmethod
    def build_headers(bearer_token: str = "") -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"
        return headers

    async def send(
        self,
        url: str,
        body: dict[str, Any],
        *,
        timeout: float,
        bearer_token: str = "",
        cancel: CancelSignal | None = None,
    ) -> bytes:
        """POST ``body`` to ``url`` and return the raw response bytes."""
        signal = cancel or CancelSignal()
        if signal.cancelled:
            raise RequestCancelledError(signal.reason.value)

        started = time.monotonic()
        post = asyncio.ensure_future(
            self._post(url, body, timeout=timeout, bearer_token=bearer_token)
        )
        waiter = asyncio.ensure_future(signal.wait())
        try:
            done, _pending = await asyncio.wait(
                {post, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (post, waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(post, waiter, return_exceptions=True)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if post in done:
            LOGGER.info(
                "transport.request.complete",
                extra={
                    "event": "transport.request.complete",
                    "url": url,
                    "elapsed_ms": elapsed_ms,
                },
            )
            return post.result()
        if waiter in done:
            reason = signal.reason or CancelReason.USER_CANCELLED
            LOGGER.info(
                "transport.request.cancelled",
                extra={
                    "event": "transport.request.cancelled",
                    "url": url,
                    "reason": reason.value,
                    "elapsed_ms": elapsed_ms,
                },
            )
            raise RequestCancelledError(reason.value)
        LOGGER.warning(
            "transport.request.timeout",
            extra={"event": "transport.request.timeout", "url": url, "timeout": timeout},
        )
        raise DeadlineExceededError(timeout)

    async def _post(
        self, url: str, body: dict[str, Any], *, timeout: float, bearer_token: str
    ) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url, json=body, headers=self.build_headers(bearer_token)
                )
        except httpx.TimeoutException as exc:
            raise DeadlineExceededError(timeout) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Unable to reach {url}: {exc}") from exc

        if not response.is_success:
            detail = response.text[:MAX_ERROR_BODY_CHARS]
            raise NetworkError(
                f"LLM API request failed with status {response.status_code}: {detail}",
                status_code=response.status_code,
                body=detail,
            )
        return response.content
