"""Composition root wiring settings, metrics and transport into a Requester."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from batchreq.adapters.driven.config.settings import Settings, load_settings
from batchreq.adapters.driven.http.client import HttpClient
from batchreq.adapters.driven.metrics.http_metrics import Metrics
from batchreq.core.requester import Requester

__all__ = ["open_requester"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_requester(settings: Settings | None = None) -> AsyncIterator[Requester]:
    """Open an aiohttp-backed Requester for the duration of the context.

    Startup sequence:
    1. Load and validate configuration (unless given).
    2. Open the HTTP client with metrics.
    3. Yield a Requester; the session closes on exit.

    Args:
        settings: Explicit settings; loaded from the environment when None.

    Yields:
        Requester sharing one HTTP session across single and batched requests.
    """
    if settings is None:
        settings = load_settings()

    http_client = HttpClient(metrics=Metrics(), timeout_sec=settings.http_timeout_sec)

    async with http_client as http:
        logger.info("HTTP session opened")
        yield Requester(transport=http, settings=settings.to_port())

    logger.info("HTTP session closed")
