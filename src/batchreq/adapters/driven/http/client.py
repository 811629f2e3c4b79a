"""HTTP client adapter with metrics integration."""

import asyncio
import json
import logging
from types import TracebackType
from typing import Any

import aiohttp
from aiohttp import ClientResponse, ClientTimeout

from batchreq.core.errors import HttpStatusError
from batchreq.ports.http import HttpMethod, HttpResponse, RequestPayload
from batchreq.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = ["HttpClient"]

logger = logging.getLogger(__name__)

FIRST_FAILING_HTTP_CODE = 400


class HttpClient:
    """aiohttp transport executing one request per call.

    Features:
    - Maps a RequestPayload onto ``ClientSession.request`` arguments.
    - Resolves with the decoded body, or an HttpResponse on request.
    - Metrics collection (latency, failure rate).
    - Context manager for proper resource cleanup.
    """

    def __init__(
        self, metrics: MetricsPort | None = None, timeout_sec: float | None = None
    ) -> None:
        """Initialize HTTP client.

        Args:
            metrics: Optional metrics collector to track attempts.
            timeout_sec: Default total timeout for payloads without their own.
        """
        self.metrics = metrics
        self.timeout_sec = timeout_sec
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpClient":
        """Enter async context manager (start session).

        Returns:
            Self for use in async with statement.
        """
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Exit async context manager (close session).

        Args:
            exc_type: Exception type if raised in context.
            exc: Exception instance if raised in context.
            tb: Traceback if raised in context.
        """
        if self.session:
            await self.session.close()

    def request_kwargs(self, payload: RequestPayload) -> dict[str, Any]:
        """Translate a payload into ``ClientSession.request`` keyword arguments.

        Args:
            payload: Assembled request.

        Returns:
            Keyword arguments; options are forwarded unchanged.
        """
        kwargs: dict[str, Any] = dict(payload.options)

        if payload.headers:
            kwargs["headers"] = payload.headers
        if payload.qs:
            kwargs["params"] = payload.qs

        if payload.json is not None and not isinstance(payload.json, bool):
            kwargs["json"] = payload.json
        elif payload.body is not None:
            kwargs["json" if payload.json else "data"] = payload.body

        if payload.timeout is not None:
            kwargs["timeout"] = ClientTimeout(total=payload.timeout / 1_000)
        elif self.timeout_sec is not None:
            kwargs["timeout"] = ClientTimeout(total=self.timeout_sec)

        return kwargs

    async def execute(self, method: HttpMethod, payload: RequestPayload) -> Any:
        """Send one HTTP request and record metrics.

        Args:
            method: HTTP verb.
            payload: Assembled request; ``url`` must be set.

        Returns:
            HttpResponse when the payload asks for the full response,
            otherwise the decoded body.

        Raises:
            RuntimeError: If session not initialized.
            HttpStatusError: Non-2xx status for a body-only request.
            aiohttp exceptions: Network/timeout errors.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        if not payload.url:
            raise ValueError("Cannot send a request without url")

        loop = asyncio.get_running_loop()
        started = loop.time()
        status: int | None = None

        try:
            resp = await self.session.request(
                method.value, payload.url, **self.request_kwargs(payload)
            )
            status = resp.status
            body = await self._read_body(resp, payload, status)
        except Exception:
            self._record(method, payload.url, started, status, failed=True)
            raise

        self._record(
            method, payload.url, started, status, failed=status >= FIRST_FAILING_HTTP_CODE
        )

        if payload.resolve_with_full_response:
            return HttpResponse(
                status=status,
                headers=dict(resp.headers),
                body=body,
                url=str(resp.url),
            )
        if not 200 <= status < 300:
            raise HttpStatusError(status, payload.url, body)
        return body

    @staticmethod
    async def _read_body(resp: ClientResponse, payload: RequestPayload, status: int) -> Any:
        # Error pages are rarely JSON; keep them as text.
        if not payload.json or not 200 <= status < 300:
            return await resp.text()
        try:
            return await resp.json(content_type=None)
        except (json.JSONDecodeError, aiohttp.ContentTypeError):
            logger.warning(f"Response from {resp.url} is not valid JSON; returning text")
            return await resp.text()

    def _record(
        self,
        method: HttpMethod,
        url: str,
        started: float,
        status: int | None,
        failed: bool,
    ) -> None:
        if not self.metrics:
            return
        self.metrics.update(
            HttpAttemptDto(
                method=method.value,
                url=url,
                started_at_sec=started,
                finished_at_sec=asyncio.get_running_loop().time(),
                is_failed=failed,
                status_code=status,
            )
        )
        logger.info(f"HTTP metrics: {self.metrics}")
