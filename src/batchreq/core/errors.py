"""Error types raised or delivered by requests and batches."""

from typing import Any

__all__ = [
    "BatchAlreadyExecutingError",
    "HttpRequestError",
    "HttpStatusError",
    "MemberAlreadyFinalizedError",
    "MissingTargetError",
    "MissingTargetOrMethodError",
]


class HttpRequestError(Exception):
    """Base class for request errors.

    Attributes:
        code: Stable error code, e.g. ``BatchRequest_400``.
        domain: Component that raised the error.
        title: Short human-readable summary.
    """

    code: str = "HttpRequest_500"
    domain: str = "HttpRequest"
    title: str = "Internal Error"
    default_message: str = "HttpRequest failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.args == self.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class MissingTargetError(HttpRequestError):
    code = "HttpRequest_400"
    title = "Bad Request"
    default_message = "Cannot execute HttpRequest with empty payload or url"


class MissingTargetOrMethodError(HttpRequestError):
    code = "BatchRequest_400"
    title = "Bad Request"
    default_message = "Cannot execute batched HttpRequest with empty payload, url, or method"


class BatchAlreadyExecutingError(HttpRequestError):
    code = "BatchRequest_409"
    title = "Conflict"
    default_message = "Cannot add to a batch that is already executing"


class MemberAlreadyFinalizedError(HttpRequestError):
    code = "BatchRequest_409"
    title = "Conflict"
    default_message = "Batched HttpRequest has already been finalized with a method"


class HttpStatusError(HttpRequestError):
    """Non-2xx response for a request that only asked for the body."""

    code = "HttpRequest_502"
    title = "Bad Status"

    def __init__(self, status: int, url: str, body: Any = None) -> None:
        super().__init__(f"{url} responded with HTTP {status}")
        self.status = status
        self.url = url
        self.body = body
