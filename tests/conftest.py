"""Shared fixtures for batchreq tests."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from batchreq.ports.http import HttpMethod, RequestPayload


class FakeTransport:
    """Transport recording every call with its start and end time.

    ``responses`` maps a URL to either a value to return or an exception to
    raise; unknown URLs answer ``{"url": url}``.
    """

    def __init__(self, delay_sec: float = 0.0) -> None:
        self.delay_sec = delay_sec
        self.responses: dict[str, Any] = {}
        self.calls: list[tuple[HttpMethod, RequestPayload]] = []
        self.started_at: list[float] = []
        self.finished_at: list[float] = []

    async def execute(self, method: HttpMethod, payload: RequestPayload) -> Any:
        loop = asyncio.get_running_loop()
        self.calls.append((method, payload))
        self.started_at.append(loop.time())
        try:
            if self.delay_sec:
                await asyncio.sleep(self.delay_sec)
            response = self.responses.get(payload.url, {"url": payload.url})
            if isinstance(response, BaseException):
                raise response
            return response
        finally:
            self.finished_at.append(loop.time())


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport
