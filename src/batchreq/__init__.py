"""batchreq: fluent HTTP requests with debounced, throttled batching."""

from batchreq.adapters.driven.config.settings import Settings, load_settings
from batchreq.adapters.driven.http.client import HttpClient
from batchreq.adapters.driven.logging.logging_config import configure_logs
from batchreq.core.batch import BatchGroup, BatchMember, BatchRegistry, BatchState
from batchreq.core.errors import (
    BatchAlreadyExecutingError,
    HttpRequestError,
    HttpStatusError,
    MemberAlreadyFinalizedError,
    MissingTargetError,
    MissingTargetOrMethodError,
)
from batchreq.core.payload import PayloadBuilder
from batchreq.core.request import HttpRequest
from batchreq.core.requester import Requester
from batchreq.main import open_requester
from batchreq.ports.http import HttpMethod, HttpResponse, RequestPayload, TransportPort

__all__ = [
    "BatchAlreadyExecutingError",
    "BatchGroup",
    "BatchMember",
    "BatchRegistry",
    "BatchState",
    "HttpClient",
    "HttpMethod",
    "HttpRequest",
    "HttpRequestError",
    "HttpResponse",
    "HttpStatusError",
    "MemberAlreadyFinalizedError",
    "MissingTargetError",
    "MissingTargetOrMethodError",
    "PayloadBuilder",
    "RequestPayload",
    "Requester",
    "Settings",
    "TransportPort",
    "configure_logs",
    "load_settings",
    "open_requester",
]

__version__ = "0.1.0"
