"""Entry point for single and batched requests sharing one transport."""

from collections.abc import Hashable

from batchreq.core.batch import BatchMember, BatchRegistry
from batchreq.core.request import HttpRequest
from batchreq.ports.http import TransportPort
from batchreq.ports.settings import BatchSettingsPort

__all__ = ["Requester"]


class Requester:
    """Create requests that run now, or join batches that run together.

    Example:
        requester = Requester(transport)
        user = await requester.create().url(user_url).json().get()

        a = requester.batch("sync").url(url_a).post()
        b = requester.batch("sync").url(url_b).post()
        results = await asyncio.gather(a, b)
    """

    def __init__(self, transport: TransportPort, settings: BatchSettingsPort | None = None) -> None:
        """Initialize requester.

        Args:
            transport: Executes the underlying HTTP calls.
            settings: Defaults applied to newly created batch groups.
        """
        self.transport = transport
        self.batches = BatchRegistry(transport, settings)

    def create(self) -> HttpRequest:
        return HttpRequest(self.transport)

    def batch(self, batch_id: Hashable) -> BatchMember:
        return self.batches.batch(batch_id)
