"""Single HTTP request executed right away."""

import logging
from typing import Any

from batchreq.core.errors import MissingTargetError
from batchreq.core.payload import PayloadBuilder
from batchreq.ports.http import HttpMethod, RequestPayload, TransportPort

__all__ = ["HttpRequest"]

logger = logging.getLogger(__name__)


class HttpRequest(PayloadBuilder):
    """Builder that sends itself through a transport.

    Example:
        body = await HttpRequest(transport).url("http://api/items").json().get()
    """

    def __init__(self, transport: TransportPort) -> None:
        super().__init__()
        self._transport = transport

    async def get(self, payload: RequestPayload | None = None) -> Any:
        return await self.execute(HttpMethod.GET, payload)

    async def post(self, payload: RequestPayload | None = None) -> Any:
        return await self.execute(HttpMethod.POST, payload)

    async def put(self, payload: RequestPayload | None = None) -> Any:
        return await self.execute(HttpMethod.PUT, payload)

    async def delete(self, payload: RequestPayload | None = None) -> Any:
        return await self.execute(HttpMethod.DELETE, payload)

    async def execute(self, method: HttpMethod, payload: RequestPayload | None = None) -> Any:
        """Send one request and pass the result through the validator.

        Args:
            method: HTTP verb.
            payload: Explicit payload; defaults to the accumulated one.

        Returns:
            Decoded body, or HttpResponse for full-response payloads.

        Raises:
            MissingTargetError: If the payload has no URL.
            Exception: Whatever the transport or the validator raises.
        """
        if payload is None:
            payload = self.payload
        if not payload.url:
            raise MissingTargetError()

        logger.debug(f"Sending {method} {payload.url}")
        result = await self._transport.execute(method, payload)
        return self.validator(result) if self.validator else result
