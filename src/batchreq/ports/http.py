"""HTTP port definitions (DTOs and transport interface)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

__all__ = ["HttpMethod", "HttpResponse", "RequestPayload", "TransportPort"]


class HttpMethod(StrEnum):
    """HTTP verbs a request can be finalized with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(slots=True, frozen=True)
class RequestPayload:
    """Canonical, read-only view of an assembled request.

    Decouples request assembly from HTTP implementation details.

    Attributes:
        url: Target HTTP endpoint URL; None when not set yet.
        headers: Request headers.
        body: Raw request body (or JSON-serializable object when ``json`` is True).
        json: True to send/parse JSON, or a JSON object used as the body.
        qs: Query string parameters.
        timeout: Request timeout in milliseconds.
        resolve_with_full_response: Deliver an HttpResponse instead of the body.
        options: Extra keyword arguments forwarded to the transport.
    """

    url: str | None = None
    headers: dict[str, str] | None = None
    body: Any = None
    json: Any = None
    qs: dict[str, Any] | None = None
    timeout: float | None = None
    resolve_with_full_response: bool = False
    options: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Render the payload as one flat mapping.

        Options come first so that explicit fields win on key clashes.
        Unset fields are omitted; the full-response flag is always present.

        Returns:
            Flat dictionary view of the payload.
        """
        data: dict[str, Any] = dict(self.options)
        for key in ("url", "headers", "body", "json", "qs", "timeout"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data["resolve_with_full_response"] = self.resolve_with_full_response
        return data


@dataclass(slots=True, frozen=True)
class HttpResponse:
    """Full response delivered when a payload asks for it.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        body: Decoded response body.
        url: Final URL of the response.
    """

    status: int
    headers: dict[str, str]
    body: Any
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class TransportPort(Protocol):
    """Interface for executing exactly one HTTP call.

    Implementations return the decoded body, or an HttpResponse when
    ``payload.resolve_with_full_response`` is set, and raise on
    transport-level failures.
    """

    async def execute(self, method: HttpMethod, payload: RequestPayload, /) -> Any:
        """Perform one HTTP call.

        Args:
            method: HTTP verb.
            payload: Assembled request.

        Returns:
            Decoded body or HttpResponse.
        """
        ...
